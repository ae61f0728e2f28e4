"""
Mortality hazard model for pytreesim.

Death is a two-state machine per tree: Alive -> Dead(cause). A tree dies
deterministically once it reaches its maximum age, or stochastically when
a survival test against the annual hazard fails:

    hazard = base + senescence + stress + drought + heat + disease
             + storm + fire + windthrow            (capped per year)
    p(death in dt) = 1 - exp(-hazard * dt_years)

The cause is chosen by which risk condition is active, in fixed priority
order (windthrow, fire, disease, drought, senescence, generic), not by which
hazard term is largest.
"""
import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from .exceptions import (
    ConfigurationError, InvalidParameterError, validate_positive, validate_proportion,
    validate_range,
)
from .logging_config import get_logger, log_death
from .model_base import ParameterizedModel
from .validation import clamp

if TYPE_CHECKING:
    from .environment import EnvironmentSnapshot
    from .rng import SeededRandom
    from .tree import TreeState

DAYS_PER_YEAR = 365.0

# Ages within this many years of max_age count as having reached it
AGE_TOLERANCE = 1e-9


class DeathCause(str, Enum):
    """Attributed cause of death."""

    OLD_AGE = "Old age"
    WINDTHROW = "Windthrow"
    FIRE = "Fire"
    DISEASE = "Disease"
    DROUGHT = "Drought"
    SENESCENCE = "Senescence"
    MORTALITY_EVENT = "Mortality event"


@dataclass(frozen=True)
class MortalityParameters:
    """Per-tree mortality settings.

    Immutable once the tree exists; use reconfigure() to derive a new set.

    Attributes:
        enabled: Run the stochastic survival test (max age applies regardless)
        base_rate_per_year: Background hazard
        senescence_start_age: Age (years) after which senescence hazard ramps up
        max_age: Age (years) at which the tree dies of old age
        drought_threshold: Water fraction (0-1) below which drought hazard applies
        heat_stress_temp: Temperature (degC) above which heat hazard applies
        disease_base_rate_per_year: Disease hazard at zero health
        storm_frequency: Storm hazard multiplier
        fire_resistance: 0-1, species bark/fire resistance
        windthrow_resistance: 0-1, species anchorage
    """
    enabled: bool = True
    base_rate_per_year: float = 0.001
    senescence_start_age: float = 150.0
    max_age: float = 600.0
    drought_threshold: float = 0.3
    heat_stress_temp: float = 35.0
    disease_base_rate_per_year: float = 0.02
    storm_frequency: float = 0.05
    fire_resistance: float = 0.5
    windthrow_resistance: float = 0.5

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name != 'enabled' and not math.isfinite(value):
                raise InvalidParameterError(f.name, value, "must be finite")
        validate_positive(self.max_age, 'max_age')
        validate_range(self.senescence_start_age, 0.0, self.max_age, 'senescence_start_age')
        for name in ('base_rate_per_year', 'disease_base_rate_per_year', 'storm_frequency'):
            if getattr(self, name) < 0:
                raise InvalidParameterError(name, getattr(self, name), "must be non-negative")
        for name in ('drought_threshold', 'fire_resistance', 'windthrow_resistance'):
            validate_proportion(getattr(self, name), name)

    def reconfigure(self, **changes) -> "MortalityParameters":
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_config(cls, section: Mapping[str, Any], max_age: float,
                    fire_resistance: float = 0.5,
                    windthrow_resistance: float = 0.5) -> "MortalityParameters":
        """Build parameters from the 'mortality' configuration section.

        Args:
            section: Configuration values; a null max_age means ``max_age``
            max_age: Species maximum age used when the section has none
            fire_resistance: Species fire resistance
            windthrow_resistance: Species windthrow resistance
        """
        known = {f.name for f in fields(cls)} - {'fire_resistance', 'windthrow_resistance'}
        unknown = set(section) - known
        if unknown:
            raise ConfigurationError(f"Unknown mortality settings: {sorted(unknown)}")
        values = dict(section)
        if values.get('max_age') is None:
            values['max_age'] = max_age
        try:
            for key, value in values.items():
                values[key] = bool(value) if key == 'enabled' else float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid mortality settings: {e}") from e
        # Senescence cannot begin after death by old age
        start = values.get('senescence_start_age', cls.senescence_start_age)
        values['senescence_start_age'] = min(start, values['max_age'])
        try:
            return cls(fire_resistance=fire_resistance,
                       windthrow_resistance=windthrow_resistance, **values)
        except InvalidParameterError as e:
            raise ConfigurationError(f"Invalid mortality settings: {e}") from e


@dataclass(frozen=True)
class HazardBreakdown:
    """Annual hazard components and which risk conditions were active."""
    base: float = 0.0
    senescence: float = 0.0
    stress: float = 0.0
    drought: float = 0.0
    heat: float = 0.0
    disease: float = 0.0
    storm: float = 0.0
    fire: float = 0.0
    windthrow: float = 0.0
    cap: float = 5.0
    windthrow_active: bool = False
    fire_active: bool = False
    disease_active: bool = False
    drought_active: bool = False
    senescence_active: bool = False

    @property
    def uncapped_total(self) -> float:
        return (self.base + self.senescence + self.stress + self.drought + self.heat
                + self.disease + self.storm + self.fire + self.windthrow)

    @property
    def total(self) -> float:
        return clamp(self.uncapped_total, 0.0, self.cap)


@dataclass
class MortalityResult:
    """Result of one mortality evaluation.

    Attributes:
        died: Whether the tree died this substep
        cause: Attributed cause when died
        hazard: Hazard components (None when the stochastic test did not run)
        probability: Death probability for the substep
        draw: Uniform value drawn for the survival test (None when no draw)
    """
    died: bool
    cause: Optional[DeathCause] = None
    hazard: Optional[HazardBreakdown] = None
    probability: float = 0.0
    draw: Optional[float] = None


def death_probability(hazard_per_year: float, dt_years: float) -> float:
    """Exact Poisson-process probability of at least one event in dt_years."""
    if hazard_per_year <= 0 or dt_years <= 0:
        return 0.0
    return 1.0 - math.exp(-hazard_per_year * dt_years)


def attribute_cause(hazard: HazardBreakdown) -> DeathCause:
    """Pick the death cause from the active risk conditions, in priority order."""
    if hazard.windthrow_active:
        return DeathCause.WINDTHROW
    if hazard.fire_active:
        return DeathCause.FIRE
    if hazard.disease_active:
        return DeathCause.DISEASE
    if hazard.drought_active:
        return DeathCause.DROUGHT
    if hazard.senescence_active:
        return DeathCause.SENESCENCE
    return DeathCause.MORTALITY_EVENT


class MortalityModel(ParameterizedModel):
    """Annual hazard model with species-specific resistances.

    Hazard weights and thresholds are global; fire and windthrow resistance
    come from the species section of the coefficient file.

    Attributes:
        weights: Hazard component weights (per year at full severity)
        thresholds: Activation thresholds and scaling ranges
    """

    COEFFICIENT_FILE = 'mortality_coefficients.json'
    COEFFICIENT_KEY = 'species_coefficients'
    FALLBACK_PARAMETERS = {
        'OAK': {'fire_resistance': 0.6, 'windthrow_resistance': 0.65},
        'MAPLE': {'fire_resistance': 0.3, 'windthrow_resistance': 0.5},
        'PINE': {'fire_resistance': 0.7, 'windthrow_resistance': 0.4},
        'BIRCH': {'fire_resistance': 0.2, 'windthrow_resistance': 0.35},
    }
    DEFAULT_SPECIES = 'OAK'

    DEFAULT_WEIGHTS = {
        'senescence': 0.02,
        'stress': 0.03,
        'drought': 0.04,
        'heat': 0.03,
        'storm': 0.02,
        'fire': 0.05,
        'windthrow': 0.06,
    }
    DEFAULT_THRESHOLDS = {
        'heat_range': 20.0,
        'heat_severity_cap': 2.0,
        'fire_drought_threshold': 0.15,
        'fire_heat_threshold': 38.0,
        'fire_heat_range': 20.0,
        'windthrow_wind_threshold': 60.0,
        'windthrow_wind_range': 40.0,
        'hazard_cap_per_year': 5.0,
        'span_epsilon': 1e-6,
    }

    def __init__(self, species_code: str = None):
        super().__init__(species_code)
        self.weights = {**self.DEFAULT_WEIGHTS, **self.raw_data.get('hazard_weights', {})}
        self.thresholds = {**self.DEFAULT_THRESHOLDS, **self.raw_data.get('thresholds', {})}
        if self.thresholds['fire_drought_threshold'] <= 0:
            raise ConfigurationError("fire_drought_threshold must be positive")
        if self.thresholds['windthrow_wind_range'] <= 0:
            raise ConfigurationError("windthrow_wind_range must be positive")

    @property
    def fire_resistance(self) -> float:
        return float(self.get_coefficient('fire_resistance', 0.5))

    @property
    def windthrow_resistance(self) -> float:
        return float(self.get_coefficient('windthrow_resistance', 0.5))

    def calculate_hazard(self, tree: 'TreeState', env: 'EnvironmentSnapshot',
                         params: MortalityParameters,
                         max_height: float) -> HazardBreakdown:
        """Compute the annual hazard components for the current conditions.

        Args:
            tree: Current tree state
            env: Environment snapshot for the substep
            params: Tree mortality parameters
            max_height: Species maximum height, for windthrow size scaling

        Returns:
            HazardBreakdown with every component clamped non-negative
        """
        w = self.weights
        t = self.thresholds
        eps = t['span_epsilon']
        age = tree.age
        water01 = clamp(env.water / 100.0, 0.0, 1.0)

        senescence = 0.0
        senescence_active = age > params.senescence_start_age
        if senescence_active:
            span = max(eps, params.max_age - params.senescence_start_age)
            progress = clamp((age - params.senescence_start_age) / span, 0.0, 1.0)
            senescence = w['senescence'] * progress ** 2

        stress01 = clamp(tree.vitality.stress_level / 100.0, 0.0, 1.0)
        stress = w['stress'] * stress01 ** 2

        drought = 0.0
        drought_active = water01 < params.drought_threshold
        if drought_active:
            shortfall = (params.drought_threshold - water01) / max(eps, params.drought_threshold)
            drought = w['drought'] * shortfall

        heat = 0.0
        if env.temperature > params.heat_stress_temp:
            excess = (env.temperature - params.heat_stress_temp) / t['heat_range']
            heat = w['heat'] * clamp(excess, 0.0, t['heat_severity_cap'])

        disease = 0.0
        if env.disease:
            health01 = clamp(tree.vitality.health / 100.0, 0.0, 1.0)
            disease = params.disease_base_rate_per_year * (1.0 - health01)

        storm = 0.0
        if env.storm:
            storm = params.storm_frequency * w['storm'] * clamp(env.wind_speed / 100.0, 0.0, 1.0)

        fire = 0.0
        fire_threshold = t['fire_drought_threshold']
        fire_active = water01 < fire_threshold and env.temperature > t['fire_heat_threshold']
        if fire_active:
            drought_severity = (fire_threshold - water01) / fire_threshold
            heat_severity = clamp((env.temperature - t['fire_heat_threshold']) / t['fire_heat_range'],
                                  0.0, 1.0)
            fire = w['fire'] * drought_severity * heat_severity * (1.0 - params.fire_resistance)

        windthrow = 0.0
        windthrow_active = env.storm and env.wind_speed > t['windthrow_wind_threshold']
        if windthrow_active:
            wind_severity = clamp(
                (env.wind_speed - t['windthrow_wind_threshold']) / t['windthrow_wind_range'], 0.0, 1.0)
            size = clamp(tree.morphology.height / max(eps, max_height), 0.0, 1.0)
            windthrow = w['windthrow'] * wind_severity * size * (1.0 - params.windthrow_resistance)

        return HazardBreakdown(
            base=max(0.0, params.base_rate_per_year),
            senescence=max(0.0, senescence),
            stress=max(0.0, stress),
            drought=max(0.0, drought),
            heat=max(0.0, heat),
            disease=max(0.0, disease),
            storm=max(0.0, storm),
            fire=max(0.0, fire),
            windthrow=max(0.0, windthrow),
            cap=t['hazard_cap_per_year'],
            windthrow_active=windthrow_active,
            fire_active=fire_active,
            disease_active=env.disease,
            drought_active=drought_active,
            senescence_active=senescence_active,
        )

    @staticmethod
    def has_reached_max_age(tree: 'TreeState', params: MortalityParameters) -> bool:
        return tree.age >= params.max_age - AGE_TOLERANCE

    def evaluate(self, tree: 'TreeState', env: 'EnvironmentSnapshot',
                 params: MortalityParameters, max_height: float, dt_days: float,
                 rng: 'SeededRandom', days_per_year: float = DAYS_PER_YEAR) -> MortalityResult:
        """Decide whether the tree dies during this substep.

        The max-age check never draws from ``rng``; the survival test draws
        exactly one uniform value, and only when mortality is enabled and
        dt is positive.
        """
        if not tree.alive:
            return MortalityResult(died=False)

        if self.has_reached_max_age(tree, params):
            return MortalityResult(died=True, cause=DeathCause.OLD_AGE, probability=1.0)

        dt_years = dt_days / days_per_year
        if not params.enabled or dt_years <= 0:
            return MortalityResult(died=False)

        hazard = self.calculate_hazard(tree, env, params, max_height)
        probability = death_probability(hazard.total, dt_years)
        draw = rng.random()
        died = draw < probability
        return MortalityResult(
            died=died,
            cause=attribute_cause(hazard) if died else None,
            hazard=hazard,
            probability=probability,
            draw=draw,
        )

    def apply(self, tree: 'TreeState', env: 'EnvironmentSnapshot',
              params: MortalityParameters, max_height: float, dt_days: float,
              rng: 'SeededRandom', days_per_year: float = DAYS_PER_YEAR) -> MortalityResult:
        """Evaluate mortality and kill the tree when the result says so."""
        result = self.evaluate(tree, env, params, max_height, dt_days, rng, days_per_year)
        if result.died:
            tree.kill(result.cause)
            log_death(self.logger, tree.tree_id, result.cause.value, tree.age,
                      result.hazard.total if result.hazard else None)
        return result

    def enforce_max_age(self, tree: 'TreeState', params: MortalityParameters) -> bool:
        """Kill the tree of old age if it has reached max_age. Never draws."""
        if tree.alive and self.has_reached_max_age(tree, params):
            tree.kill(DeathCause.OLD_AGE)
            log_death(self.logger, tree.tree_id, DeathCause.OLD_AGE.value, tree.age)
            return True
        return False


def create_mortality_model(species_code: str = None) -> MortalityModel:
    """Factory function to create a mortality model for a species."""
    return MortalityModel(species_code)
