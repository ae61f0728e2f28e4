"""
Boundary validation for simulation inputs.

Values arriving from configuration files or user interfaces are clamped
into range here, so nothing downstream has to re-check them.
"""
import math
from typing import Any, Dict, Mapping, Optional, Tuple

from .logging_config import get_logger

logger = get_logger(__name__)

# (min, max, default) for every numeric environment field
ENVIRONMENT_BOUNDS: Dict[str, Tuple[float, float, float]] = {
    'light': (0.0, 100.0, 70.0),
    'water': (0.0, 100.0, 60.0),
    'temperature': (-20.0, 50.0, 20.0),
    'soil_quality': (0.0, 100.0, 70.0),
    'wind_speed': (0.0, 100.0, 30.0),
    'humidity': (0.0, 100.0, 60.0),
}

STRESSOR_NAMES = ('disease', 'pests', 'storm', 'pollution')

_TRUE_STRINGS = {'true', 'yes', 'on', '1'}
_FALSE_STRINGS = {'false', 'no', 'off', '0'}


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp a finite value into [lower, upper]."""
    return max(lower, min(upper, value))


def clamp_number(value: Any, lower: float, upper: float, fallback: float) -> float:
    """Coerce a value to a finite float inside [lower, upper].

    Missing, non-numeric and non-finite values resolve to ``fallback``
    (itself clamped, so a bad fallback cannot leak out of range).

    Args:
        value: Raw value (number, numeric string, None, ...)
        lower: Lower bound
        upper: Upper bound
        fallback: Value used when ``value`` is unusable

    Returns:
        Clamped float
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        if value is not None:
            logger.warning(f"Non-numeric input {value!r} replaced by {fallback}")
        number = float(fallback)

    if not math.isfinite(number):
        logger.warning(f"Non-finite input {value!r} replaced by {fallback}")
        number = float(fallback)

    clamped = clamp(number, lower, upper)
    if clamped != number:
        logger.debug(f"Input {number} clamped to {clamped} (range {lower}..{upper})")
    return clamped


def coerce_bool(value: Any, fallback: bool) -> bool:
    """Interpret booleans, 0/1 numbers and yes/no strings; otherwise fall back."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    if value is not None:
        logger.warning(f"Unrecognised boolean input {value!r} replaced by {fallback}")
    return fallback


class ParameterValidator:
    """Validates and clamps grouped simulation parameters."""

    @staticmethod
    def validate_environment(values: Mapping[str, Any],
                             current: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Clamp environment conditions.

        Args:
            values: Raw condition values; unknown keys are ignored
            current: Existing conditions used as fallbacks for missing keys

        Returns:
            Dictionary with every numeric field and stressor flag
        """
        current = current or {}
        validated: Dict[str, Any] = {}
        for name, (lower, upper, default) in ENVIRONMENT_BOUNDS.items():
            fallback = current.get(name, default)
            validated[name] = clamp_number(values.get(name, fallback), lower, upper, fallback)
        for name in STRESSOR_NAMES:
            fallback = bool(current.get(name, False))
            validated[name] = coerce_bool(values.get(name, fallback), fallback)
        return validated

    @staticmethod
    def validate_mortality_inputs(values: Mapping[str, Any],
                                  current: Mapping[str, Any]) -> Dict[str, Any]:
        """Clamp mortality tuning values against the current parameters.

        Senescence start is clamped after max age so it can never exceed it.
        """
        max_age = clamp_number(values.get('max_age', current['max_age']),
                               1.0, 5000.0, current['max_age'])
        senescence = clamp_number(
            values.get('senescence_start_age', current['senescence_start_age']),
            0.0, max_age, min(current['senescence_start_age'], max_age)
        )
        return {
            'max_age': max_age,
            'senescence_start_age': senescence,
            'base_rate_per_year': clamp_number(
                values.get('base_rate_per_year', current['base_rate_per_year']),
                0.0, 5.0, current['base_rate_per_year']),
            'drought_threshold': clamp_number(
                values.get('drought_threshold', current['drought_threshold']),
                0.0, 1.0, current['drought_threshold']),
            'heat_stress_temp': clamp_number(
                values.get('heat_stress_temp', current['heat_stress_temp']),
                -50.0, 100.0, current['heat_stress_temp']),
            'disease_base_rate_per_year': clamp_number(
                values.get('disease_base_rate_per_year', current['disease_base_rate_per_year']),
                0.0, 5.0, current['disease_base_rate_per_year']),
            'storm_frequency': clamp_number(
                values.get('storm_frequency', current['storm_frequency']),
                0.0, 5.0, current['storm_frequency']),
        }
