"""
Fixed-timestep scheduler.

Wall-clock frame time is scaled by the speed multiplier and accumulated;
the engine is stepped in fixed substeps while enough time is banked, up to
a per-call cap. Leftover time carries to the next call, so the total number
of substeps depends only on the total elapsed time, not on how it was split.
"""
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .exceptions import InvalidParameterError, validate_positive, validate_range
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SchedulerSettings:
    """Timing constants.

    Attributes:
        substep_days: Simulated days per engine step
        max_substeps_per_call: Cap on steps run by one advance() call
        max_frame_seconds: Frame delta cap (None disables the cap)
        speed_multiplier: Simulated days per wall-clock second
    """
    substep_days: float = 1.0 / 60.0
    max_substeps_per_call: int = 10
    max_frame_seconds: Optional[float] = 0.1
    speed_multiplier: float = 1.0

    def __post_init__(self):
        validate_positive(self.substep_days, 'substep_days')
        if self.max_substeps_per_call < 1:
            raise InvalidParameterError('max_substeps_per_call', self.max_substeps_per_call,
                                        "must be at least 1")
        if self.max_frame_seconds is not None:
            validate_positive(self.max_frame_seconds, 'max_frame_seconds')
        validate_range(self.speed_multiplier, 0, 10, 'speed_multiplier')


class FixedTimestepScheduler:
    """Drives a step function at a fixed timestep from variable frame times.

    Attributes:
        accumulator: Banked simulated time not yet stepped
        total_substeps: Steps run since creation
        simulated_days: Simulated time stepped since creation
        is_paused: When True, advance() banks nothing and runs nothing
    """

    def __init__(self, step: Callable[[float], Any],
                 settings: SchedulerSettings = SchedulerSettings()):
        self._step = step
        self.settings = settings
        self.substep = settings.substep_days
        self.max_substeps = settings.max_substeps_per_call
        self.max_frame_seconds = settings.max_frame_seconds
        self.speed_multiplier = settings.speed_multiplier
        self.accumulator = 0.0
        self.total_substeps = 0
        self.simulated_days = 0.0
        self.is_paused = False

    def advance(self, elapsed_seconds: float) -> int:
        """Bank ``elapsed_seconds`` of wall-clock time and run due substeps.

        Negative or non-finite elapsed values count as zero.

        Returns:
            Number of substeps run by this call
        """
        if self.is_paused:
            return 0
        try:
            elapsed = float(elapsed_seconds)
        except (TypeError, ValueError):
            elapsed = 0.0
        if not math.isfinite(elapsed) or elapsed < 0:
            elapsed = 0.0
        if self.max_frame_seconds is not None:
            elapsed = min(elapsed, self.max_frame_seconds)

        self.accumulator += elapsed * self.speed_multiplier
        steps = 0
        while self.accumulator >= self.substep and steps < self.max_substeps:
            self._run_one()
            self.accumulator -= self.substep
            steps += 1
        return steps

    def run_substeps(self, count: int) -> int:
        """Run ``count`` substeps immediately, bypassing the accumulator.

        Used for headless batch runs; the banked time is left untouched.
        """
        for _ in range(max(0, int(count))):
            self._run_one()
        return max(0, int(count))

    def run_days(self, days: float) -> int:
        """Run as many whole substeps as fit in ``days`` of simulated time."""
        count = int(math.floor(days / self.substep + 1e-9)) if days > 0 else 0
        return self.run_substeps(count)

    def _run_one(self) -> None:
        self._step(self.substep)
        self.total_substeps += 1
        self.simulated_days += self.substep

    def toggle_pause(self) -> bool:
        self.is_paused = not self.is_paused
        logger.info(f"Simulation {'paused' if self.is_paused else 'resumed'}")
        return self.is_paused

    def set_speed(self, multiplier: float) -> None:
        """Set simulated days per wall-clock second (0-10)."""
        validate_range(multiplier, 0, 10, 'speed_multiplier')
        self.speed_multiplier = float(multiplier)
        logger.info(f"Simulation speed set to x{self.speed_multiplier}")

    def reset(self) -> None:
        self.accumulator = 0.0
        self.total_substeps = 0
        self.simulated_days = 0.0
