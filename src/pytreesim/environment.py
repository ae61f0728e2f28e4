"""
Site environment and the seasonal calendar.

EnvironmentState is the mutable site (conditions set by the user plus the
simulation clock). Each engine substep reads an immutable
EnvironmentSnapshot so that every component sees the same values.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .exceptions import ConfigurationError
from .validation import ENVIRONMENT_BOUNDS, STRESSOR_NAMES, ParameterValidator

DAYS_PER_YEAR = 365


class Season(str, Enum):
    """Calendar season."""

    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class SeasonWindow:
    """A season's day range [start_day, end_day) and growth multiplier."""
    season: Season
    start_day: float
    end_day: float
    growth_multiplier: float

    @property
    def length(self) -> float:
        return self.end_day - self.start_day


DEFAULT_SEASON_WINDOWS: Tuple[SeasonWindow, ...] = (
    SeasonWindow(Season.SPRING, 0.0, 91.0, 1.6),
    SeasonWindow(Season.SUMMER, 91.0, 182.0, 1.0),
    SeasonWindow(Season.AUTUMN, 182.0, 273.0, 0.25),
    SeasonWindow(Season.WINTER, 273.0, 365.0, 0.03),
)


@dataclass(frozen=True)
class SeasonCalendar:
    """Maps day-of-year to season, within-season progress and growth multiplier.

    The windows must tile [0, days_per_year) without gaps, in order, with
    each season appearing exactly once.
    """
    windows: Tuple[SeasonWindow, ...] = DEFAULT_SEASON_WINDOWS
    days_per_year: int = DAYS_PER_YEAR

    def __post_init__(self):
        if self.days_per_year <= 0:
            raise ConfigurationError("days_per_year must be positive")
        if sorted(w.season for w in self.windows) != sorted(Season):
            raise ConfigurationError("calendar must define each season exactly once")
        expected_start = 0.0
        for window in self.windows:
            if window.start_day != expected_start or window.end_day <= window.start_day:
                raise ConfigurationError(
                    f"season windows must be contiguous from day 0; "
                    f"{window.season.value} starts at {window.start_day}"
                )
            if window.growth_multiplier < 0:
                raise ConfigurationError(
                    f"growth multiplier for {window.season.value} must be non-negative"
                )
            expected_start = window.end_day
        if expected_start != self.days_per_year:
            raise ConfigurationError(
                f"season windows end at day {expected_start}, expected {self.days_per_year}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SeasonCalendar":
        """Build a calendar from the 'calendar' configuration section."""
        unknown = set(data) - {'days_per_year', 'seasons'}
        if unknown:
            raise ConfigurationError(f"Unknown calendar settings: {sorted(unknown)}")
        days = int(data.get('days_per_year', DAYS_PER_YEAR))
        rows: Optional[Sequence[Mapping[str, Any]]] = data.get('seasons')
        if rows is None:
            return cls(days_per_year=days) if days == DAYS_PER_YEAR else cls._even(days)
        try:
            windows = tuple(
                SeasonWindow(
                    season=Season(str(row['season']).lower()),
                    start_day=float(row['start_day']),
                    end_day=float(row['end_day']),
                    growth_multiplier=float(row['growth_multiplier']),
                )
                for row in rows
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid season table: {e}") from e
        return cls(windows=windows, days_per_year=days)

    @classmethod
    def _even(cls, days_per_year: int) -> "SeasonCalendar":
        quarter = days_per_year / 4.0
        windows = tuple(
            SeasonWindow(w.season, i * quarter, days_per_year if i == 3 else (i + 1) * quarter,
                         w.growth_multiplier)
            for i, w in enumerate(DEFAULT_SEASON_WINDOWS)
        )
        return cls(windows=windows, days_per_year=days_per_year)

    def normalize_day(self, day_of_year: float) -> float:
        """Wrap any day number into [0, days_per_year)."""
        day = day_of_year % self.days_per_year
        # Float modulo can return days_per_year for tiny negative inputs
        return 0.0 if day >= self.days_per_year else day

    def window_for(self, day_of_year: float) -> SeasonWindow:
        day = self.normalize_day(day_of_year)
        for window in self.windows:
            if window.start_day <= day < window.end_day:
                return window
        return self.windows[-1]

    def classify(self, day_of_year: float) -> Season:
        return self.window_for(day_of_year).season

    def progress(self, day_of_year: float) -> float:
        """Fractional position inside the current season, in [0, 1)."""
        day = self.normalize_day(day_of_year)
        window = self.window_for(day)
        return (day - window.start_day) / window.length

    def growth_multiplier(self, season: Season) -> float:
        for window in self.windows:
            if window.season == season:
                return window.growth_multiplier
        raise ConfigurationError(f"No season window for {season}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'days_per_year': self.days_per_year,
            'seasons': [
                {'season': w.season.value, 'start_day': w.start_day,
                 'end_day': w.end_day, 'growth_multiplier': w.growth_multiplier}
                for w in self.windows
            ],
        }


DEFAULT_CALENDAR = SeasonCalendar()


def classify_season(day_of_year: float, calendar: SeasonCalendar = DEFAULT_CALENDAR) -> Season:
    """Return the season containing ``day_of_year``."""
    return calendar.classify(day_of_year)


def season_progress(day_of_year: float, calendar: SeasonCalendar = DEFAULT_CALENDAR) -> float:
    """Return the fractional position of ``day_of_year`` inside its season."""
    return calendar.progress(day_of_year)


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Immutable view of the site for one substep.

    Attributes:
        light, water, soil_quality, wind_speed, humidity: 0-100
        temperature: degC
        disease, pests, storm, pollution: stressor flags
        day_of_year: [0, days_per_year)
        year: Completed years since the simulation started
        season: Season of day_of_year
        season_progress: Position inside the season, [0, 1)
    """
    light: float
    water: float
    temperature: float
    soil_quality: float
    wind_speed: float
    humidity: float
    disease: bool
    pests: bool
    storm: bool
    pollution: bool
    day_of_year: float
    year: int
    season: Season
    season_progress: float

    @property
    def season_display(self) -> str:
        return self.season.display_name

    @property
    def active_stressors(self) -> List[str]:
        return [name for name in STRESSOR_NAMES if getattr(self, name)]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['season'] = self.season.value
        return data


def default_conditions() -> Dict[str, Any]:
    conditions: Dict[str, Any] = {name: bounds[2] for name, bounds in ENVIRONMENT_BOUNDS.items()}
    conditions.update({name: False for name in STRESSOR_NAMES})
    return conditions


@dataclass
class EnvironmentState:
    """Mutable site state: user-controlled conditions plus the clock.

    Conditions are only changed through set_conditions(), which clamps
    every value, so the state is always within bounds.
    """
    calendar: SeasonCalendar = DEFAULT_CALENDAR
    day_of_year: float = 0.0
    year: int = 0
    conditions: Dict[str, Any] = field(default_factory=default_conditions)

    def __post_init__(self):
        self.conditions = ParameterValidator.validate_environment(self.conditions)
        self.day_of_year = self.calendar.normalize_day(self.day_of_year)

    def set_conditions(self, **values) -> None:
        """Update conditions; values are clamped and unknown names rejected."""
        unknown = set(values) - set(self.conditions)
        if unknown:
            raise ConfigurationError(f"Unknown environment conditions: {sorted(unknown)}")
        self.conditions = ParameterValidator.validate_environment(values, self.conditions)

    def advance_time(self, dt_days: float) -> None:
        """Move the clock forward, rolling over into the next year as needed."""
        if dt_days <= 0:
            return
        self.day_of_year += dt_days
        while self.day_of_year >= self.calendar.days_per_year:
            self.day_of_year -= self.calendar.days_per_year
            self.year += 1

    @property
    def season(self) -> Season:
        return self.calendar.classify(self.day_of_year)

    def snapshot(self) -> EnvironmentSnapshot:
        """Freeze the current conditions and clock."""
        return EnvironmentSnapshot(
            day_of_year=self.day_of_year,
            year=self.year,
            season=self.calendar.classify(self.day_of_year),
            season_progress=self.calendar.progress(self.day_of_year),
            **self.conditions,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day_of_year': self.day_of_year,
            'year': self.year,
            'conditions': dict(self.conditions),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any],
                  calendar: SeasonCalendar = DEFAULT_CALENDAR) -> "EnvironmentState":
        return cls(
            calendar=calendar,
            day_of_year=float(data.get('day_of_year', 0.0)),
            year=int(data.get('year', 0)),
            conditions=dict(data.get('conditions', {})),
        )
