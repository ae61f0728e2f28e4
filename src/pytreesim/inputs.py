"""
Input adapter: turns a variables document into clamped simulation settings.

A variables document is a plain mapping with optional sections:

    ui_defaults:      light_intensity (0-1), water_level (0-1), temperature
    environment:      any environment condition or stressor flag
    config_overrides: simulation_speed, enable_mortality, enable_growth
    hdr_parameters:   max_age, senescence_start_age, base_mortality_rate
    stressors:        drought_threshold, heat_stress_temp, disease_base_rate,
                      storm_frequency, and the disease/pests/storm/pollution flags

Every numeric value is clamped into range. Missing values keep the current
setting; non-numeric or non-finite values fall back to it with a warning.
Nothing here raises on bad values.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .config_loader import load_variables_file
from .environment import default_conditions
from .logging_config import get_logger
from .mortality import MortalityParameters
from .validation import (
    ENVIRONMENT_BOUNDS, STRESSOR_NAMES, ParameterValidator, clamp_number, coerce_bool,
)

logger = get_logger(__name__)

SECTIONS = ('ui_defaults', 'environment', 'config_overrides', 'hdr_parameters', 'stressors')

SPEED_RANGE = (0.0, 10.0)
DEFAULT_SPEED = 1.0

# Document key -> MortalityParameters field
_HDR_KEYS = {
    'max_age': 'max_age',
    'senescence_start_age': 'senescence_start_age',
    'base_mortality_rate': 'base_rate_per_year',
}
_STRESSOR_KEYS = {
    'drought_threshold': 'drought_threshold',
    'heat_stress_temp': 'heat_stress_temp',
    'disease_base_rate': 'disease_base_rate_per_year',
    'storm_frequency': 'storm_frequency',
}


@dataclass(frozen=True)
class SimulationSettings:
    """User-controllable settings of a running simulation.

    Attributes:
        environment: Environment conditions and stressor flags (already clamped)
        mortality: Mortality parameters of the tree; None keeps the parameters
            the tree already has (species max age and resistances)
        enable_growth: When False, size and biomass are frozen
        simulation_speed: Simulated days per wall-clock second (0-10)
    """
    environment: Dict[str, Any] = field(default_factory=default_conditions)
    mortality: Optional[MortalityParameters] = None
    enable_growth: bool = True
    simulation_speed: float = DEFAULT_SPEED

    @property
    def enable_mortality(self) -> bool:
        return self.mortality.enabled if self.mortality is not None else True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'environment': dict(self.environment),
            'mortality': self.mortality.to_dict() if self.mortality is not None else None,
            'enable_growth': self.enable_growth,
            'simulation_speed': self.simulation_speed,
        }


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = document.get(name) or {}
    if not isinstance(value, Mapping):
        logger.warning(f"Ignoring variables section '{name}': expected a mapping")
        return {}
    return value


def apply_variables(document: Any,
                    settings: Optional[SimulationSettings] = None) -> SimulationSettings:
    """Apply a variables document on top of ``settings``.

    Args:
        document: Variables mapping (anything else is ignored with a warning)
        settings: Current settings; defaults when omitted

    Returns:
        New SimulationSettings with every value clamped
    """
    settings = settings or SimulationSettings()
    if not isinstance(document, Mapping):
        logger.warning(f"Ignoring variables document of type {type(document).__name__}")
        return settings

    unknown = set(document) - set(SECTIONS)
    if unknown:
        logger.warning(f"Ignoring unknown variables sections: {sorted(unknown)}")

    environment = _apply_environment(document, settings.environment)

    overrides = _section(document, 'config_overrides')
    speed = settings.simulation_speed
    if 'simulation_speed' in overrides:
        speed = clamp_number(overrides['simulation_speed'], *SPEED_RANGE, fallback=speed)
    enable_growth = settings.enable_growth
    if 'enable_growth' in overrides:
        enable_growth = coerce_bool(overrides['enable_growth'], enable_growth)

    mortality = _apply_mortality(document, settings.mortality)
    if 'enable_mortality' in overrides:
        mortality = (mortality or MortalityParameters()).reconfigure(
            enabled=coerce_bool(overrides['enable_mortality'], settings.enable_mortality))

    return replace(settings, environment=environment, mortality=mortality,
                   enable_growth=enable_growth, simulation_speed=speed)


def _apply_environment(document: Mapping[str, Any],
                       current: Mapping[str, Any]) -> Dict[str, Any]:
    raw: Dict[str, Any] = {}

    ui = _section(document, 'ui_defaults')
    # Slider values are fractions of the 0-100 condition scale
    if 'light_intensity' in ui:
        raw['light'] = clamp_number(ui['light_intensity'], 0.0, 1.0, 0.7) * 100.0
    if 'water_level' in ui:
        raw['water'] = clamp_number(ui['water_level'], 0.0, 1.0, 0.6) * 100.0
    if 'temperature' in ui:
        lower, upper, default = ENVIRONMENT_BOUNDS['temperature']
        raw['temperature'] = clamp_number(ui['temperature'], lower, upper, default)

    stressors = _section(document, 'stressors')
    raw.update({name: stressors[name] for name in STRESSOR_NAMES if name in stressors})

    conditions = _section(document, 'environment')
    known = set(ENVIRONMENT_BOUNDS) | set(STRESSOR_NAMES)
    unknown = set(conditions) - known
    if unknown:
        logger.warning(f"Ignoring unknown environment conditions: {sorted(unknown)}")
    raw.update({k: v for k, v in conditions.items() if k in known})

    return ParameterValidator.validate_environment(raw, current)


def _apply_mortality(document: Mapping[str, Any],
                     current: Optional[MortalityParameters]) -> Optional[MortalityParameters]:
    raw: Dict[str, Any] = {}
    hdr = _section(document, 'hdr_parameters')
    for key, name in _HDR_KEYS.items():
        if key in hdr:
            raw[name] = hdr[key]
    stressors = _section(document, 'stressors')
    for key, name in _STRESSOR_KEYS.items():
        if key in stressors:
            raw[name] = stressors[key]
    if not raw:
        return current
    # No tree to inherit from: overrides start from the generic parameters
    if current is None:
        current = MortalityParameters()
    validated = ParameterValidator.validate_mortality_inputs(raw, current.to_dict())
    return current.reconfigure(**validated)


def load_variables(path: Union[str, Path],
                   settings: Optional[SimulationSettings] = None) -> SimulationSettings:
    """Read a variables file (YAML, TOML or JSON) and apply it."""
    document = load_variables_file(path)
    logger.info(f"Loaded variables from {path}")
    return apply_variables(document, settings)
