"""
Simulation configuration.

SimulationConfig gathers the parameter dataclasses of every component. It
is built once, from the packaged simulation_defaults.yaml optionally
overlaid with user overrides, in a single validated merge: unknown keys
and out-of-range values raise ConfigurationError here rather than
surfacing mid-simulation.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, Mapping, Optional

from .config_loader import ConfigLoader, get_config_loader
from .environment import DEFAULT_CALENDAR, SeasonCalendar
from .exceptions import ConfigurationError, ParameterError
from .growth import GrowthParameters
from .phenology import PhenologyParameters
from .physiology import PhysiologyParameters, StressParameters
from .scheduler import SchedulerSettings
from .tree import InitialTreeParameters
from .vitality import VitalityParameters

# Sections handled by plain flat dataclasses
_FLAT_SECTIONS = {
    'scheduler': SchedulerSettings,
    'physiology': PhysiologyParameters,
    'stress': StressParameters,
    'vitality': VitalityParameters,
    'phenology': PhenologyParameters,
    'tree': InitialTreeParameters,
    'history': None,
}


@dataclass(frozen=True)
class HistorySettings:
    """Health history sampling."""
    sample_interval: int = 5
    max_samples: int = 600

    def __post_init__(self):
        if self.sample_interval < 1 or self.max_samples < 1:
            raise ConfigurationError("history sample_interval and max_samples must be >= 1")


@dataclass(frozen=True)
class SimulationConfig:
    """All model constants for one simulation.

    The 'mortality' section is kept raw because it is resolved per species
    (see MortalityParameters.from_config).
    """
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    calendar: SeasonCalendar = DEFAULT_CALENDAR
    physiology: PhysiologyParameters = field(default_factory=PhysiologyParameters)
    stress: StressParameters = field(default_factory=StressParameters)
    vitality: VitalityParameters = field(default_factory=VitalityParameters)
    growth: GrowthParameters = field(default_factory=GrowthParameters)
    phenology: PhenologyParameters = field(default_factory=PhenologyParameters)
    tree: InitialTreeParameters = field(default_factory=InitialTreeParameters)
    history: HistorySettings = field(default_factory=HistorySettings)
    mortality: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationConfig":
        """Build a configuration from a (possibly partial) mapping."""
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

        values: Dict[str, Any] = {}
        try:
            for name, section_cls in _FLAT_SECTIONS.items():
                if name in data:
                    section_cls = section_cls or HistorySettings
                    values[name] = _build_flat(section_cls, name, data[name] or {})
            if 'calendar' in data:
                values['calendar'] = SeasonCalendar.from_dict(data['calendar'] or {})
            if 'growth' in data:
                _reject_unknown(GrowthParameters, 'growth', data['growth'] or {})
                values['growth'] = GrowthParameters.from_dict(data['growth'] or {})
        except ParameterError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        if 'mortality' in data:
            values['mortality'] = dict(data['mortality'] or {})
        return cls(**values)

    @classmethod
    def load(cls, overrides: Optional[Mapping[str, Any]] = None,
             loader: Optional[ConfigLoader] = None) -> "SimulationConfig":
        """Load packaged defaults and merge user overrides section by section."""
        loader = loader or get_config_loader()
        merged = _merge(loader.load_simulation_defaults(), overrides or {})
        return cls.from_dict(merged)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, SeasonCalendar):
                data[f.name] = value.to_dict()
            elif is_dataclass(value):
                data[f.name] = {sf.name: getattr(value, sf.name) for sf in fields(value)}
            else:
                data[f.name] = dict(value)
        return data


def _reject_unknown(section_cls, name: str, values: Mapping[str, Any]) -> None:
    unknown = set(values) - {f.name for f in fields(section_cls)}
    if unknown:
        raise ConfigurationError(f"Unknown {name} settings: {sorted(unknown)}")


def _build_flat(section_cls, name: str, values: Mapping[str, Any]):
    _reject_unknown(section_cls, name, values)
    converted = {}
    for f in fields(section_cls):
        if f.name not in values:
            continue
        value = values[f.name]
        if value is None:
            converted[f.name] = None
        elif f.type in (int, 'int'):
            converted[f.name] = int(value)
        else:
            converted[f.name] = float(value)
    return section_cls(**converted)


def _merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``overrides`` on ``base`` (lists are replaced)."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
