"""
Deterministic random number source for the simulation.

Every stochastic decision in a run draws from one SeededRandom instance, so
a seed fully determines the trajectory. The generator refuses to produce
numbers until it has been seeded.

Draw order per engine substep is fixed:
    1. mortality survival test (one uniform draw, only when the
       stochastic test runs)
    2. health noise (one Gaussian sample = two uniform draws)
"""
import math
import random
from typing import Any, Dict, Optional

from .exceptions import InvalidParameterError, RNGNotSeededError

# Smallest uniform value passed to log() in the Box-Muller transform
_MIN_UNIFORM = 1e-12


class SeededRandom:
    """Seedable wrapper around random.Random with a fixed draw contract.

    Gaussian samples use the Box-Muller transform on exactly two uniform
    draws so the number of draws per call never varies.

    Attributes:
        seed_value: The seed the generator was last seeded with (None if unseeded)
        draws: Number of uniform draws taken since seeding
    """

    def __init__(self, seed: Optional[int] = None):
        """Create a generator, seeding it immediately when a seed is given."""
        self._random: Optional[random.Random] = None
        self.seed_value: Optional[int] = None
        self.draws = 0
        if seed is not None:
            self.seed(seed)

    @property
    def is_seeded(self) -> bool:
        return self._random is not None

    def seed(self, seed: int) -> None:
        """Seed (or reseed) the generator.

        Args:
            seed: Integer seed

        Raises:
            InvalidParameterError: If the seed is not an integer
        """
        if isinstance(seed, bool):
            raise InvalidParameterError('seed', seed, "must be an integer")
        if not isinstance(seed, int):
            try:
                as_float = float(seed)
            except (TypeError, ValueError):
                raise InvalidParameterError('seed', seed, "must be an integer")
            if not math.isfinite(as_float) or as_float != int(as_float):
                raise InvalidParameterError('seed', seed, "must be an integer")
            seed = int(as_float)
        self.seed_value = seed
        self._random = random.Random(seed)
        self.draws = 0

    def random(self) -> float:
        """Return a uniform float in [0, 1)."""
        if self._random is None:
            raise RNGNotSeededError()
        self.draws += 1
        return self._random.random()

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        """Return a uniform float in [low, high)."""
        return low + (high - low) * self.random()

    def randint(self, low: int, high: int) -> int:
        """Return an integer in [low, high], both ends inclusive (one draw)."""
        if high < low:
            raise InvalidParameterError('high', high, f"must be >= low ({low})")
        return int(math.floor(self.random() * (high - low + 1))) + low

    def gauss(self, mean: float = 0.0, std: float = 1.0) -> float:
        """Return a normal sample via Box-Muller (always two draws)."""
        u1 = max(self.random(), _MIN_UNIFORM)
        u2 = self.random()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + std * z

    def get_state(self) -> Dict[str, Any]:
        """Return a JSON-serializable description of the generator state."""
        if self._random is None:
            raise RNGNotSeededError()
        version, internal, gauss_next = self._random.getstate()
        return {
            'seed': self.seed_value,
            'draws': self.draws,
            'version': version,
            'internal': list(internal),
            'gauss_next': gauss_next,
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        """Restore a state produced by get_state()."""
        generator = random.Random()
        generator.setstate((state['version'], tuple(state['internal']), state['gauss_next']))
        self._random = generator
        self.seed_value = state.get('seed')
        self.draws = int(state.get('draws', 0))

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed_value!r}, draws={self.draws})"
