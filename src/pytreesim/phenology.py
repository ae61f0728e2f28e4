"""
Phenology: seasonal growth multipliers, dormancy and phenology flags.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

from .environment import DEFAULT_CALENDAR, EnvironmentSnapshot, Season, SeasonCalendar
from .exceptions import InvalidParameterError, validate_proportion
from .species import SpeciesProfile

if TYPE_CHECKING:
    from .tree import TreeState

PHENOLOGY_FLAGS = ('dormant', 'bud_burst', 'flowering', 'leaf_senescence')


@dataclass(frozen=True)
class PhenologyParameters:
    """Timing windows for phenology flags and chlorophyll dynamics.

    Progress values are fractions of the current season.
    """
    late_autumn_progress: float = 0.7
    bud_burst_window: float = 0.5
    flowering_start: float = 0.3
    flowering_end: float = 0.8
    flowering_min_health: float = 50.0
    flowering_age: float = 1.0
    evergreen_chlorophyll_floor: float = 50.0
    evergreen_chlorophyll_loss: float = 0.5
    chlorophyll_recovery: float = 2.0

    def __post_init__(self):
        for name in ('late_autumn_progress', 'bud_burst_window', 'flowering_start', 'flowering_end'):
            validate_proportion(getattr(self, name), name)
        if self.flowering_end < self.flowering_start:
            raise InvalidParameterError('flowering_end', self.flowering_end,
                                        "must not precede flowering_start")


def seasonal_growth_multiplier(season: Season, calendar: SeasonCalendar = DEFAULT_CALENDAR) -> float:
    """Growth multiplier for a season from the calendar's lookup table."""
    return calendar.growth_multiplier(season)


def is_dormant(season: Season, progress: float, temperature: float, evergreen: bool,
               dormancy_temperature: float, late_autumn_progress: float = 0.7) -> bool:
    """Dormancy predicate.

    Deciduous trees are dormant through winter and late autumn. Any tree
    is dormant while the temperature is below its species floor; for
    evergreens that floor is the only trigger.
    """
    if temperature < dormancy_temperature:
        return True
    if evergreen:
        return False
    if season == Season.WINTER:
        return True
    return season == Season.AUTUMN and progress > late_autumn_progress


class PhenologyModel:
    """Season-driven phenology for one species."""

    def __init__(self, species: SpeciesProfile,
                 params: PhenologyParameters = PhenologyParameters(),
                 calendar: SeasonCalendar = DEFAULT_CALENDAR):
        self.species = species
        self.params = params
        self.calendar = calendar

    def growth_multiplier(self, env: EnvironmentSnapshot) -> float:
        return seasonal_growth_multiplier(env.season, self.calendar)

    def is_dormant(self, env: EnvironmentSnapshot) -> bool:
        return is_dormant(env.season, env.season_progress, env.temperature,
                          self.species.evergreen, self.species.dormancy_temperature,
                          self.params.late_autumn_progress)

    def update_flags(self, tree: 'TreeState', env: EnvironmentSnapshot,
                     dormant: bool) -> Dict[str, bool]:
        """Recompute the phenology flags on ``tree``.

        Returns:
            The flags whose value changed, mapped to their new value
        """
        p = self.params
        spring_active = env.season == Season.SPRING and not dormant
        new_flags = {
            'dormant': dormant,
            'bud_burst': spring_active and env.season_progress < p.bud_burst_window,
            'flowering': (spring_active
                          and p.flowering_start <= env.season_progress < p.flowering_end
                          and tree.vitality.health >= p.flowering_min_health
                          and tree.age >= p.flowering_age),
            'leaf_senescence': not self.species.evergreen and env.season == Season.AUTUMN,
        }
        changed = {}
        for name, value in new_flags.items():
            if getattr(tree.phenology, name) != value:
                setattr(tree.phenology, name, value)
                changed[name] = value
        return changed

    def update_chlorophyll(self, tree: 'TreeState', env: EnvironmentSnapshot, dt: float) -> None:
        """Advance chlorophyll content for one substep.

        Deciduous trees follow the season curve (green-up in spring, fade in
        autumn, none in winter); evergreens dip slowly in winter down to a floor.
        """
        p = self.params
        vitality = tree.vitality
        chlorophyll = vitality.chlorophyll_content
        if self.species.evergreen:
            if env.season == Season.WINTER:
                chlorophyll = max(p.evergreen_chlorophyll_floor,
                                  chlorophyll - dt * p.evergreen_chlorophyll_loss)
            else:
                chlorophyll = min(100.0, chlorophyll + dt * p.chlorophyll_recovery)
        elif env.season == Season.AUTUMN:
            chlorophyll = max(0.0, 100.0 * (1.0 - env.season_progress))
        elif env.season == Season.SPRING:
            chlorophyll = min(100.0, env.season_progress * 100.0)
        elif env.season == Season.WINTER:
            chlorophyll = 0.0
        else:
            chlorophyll = min(100.0, chlorophyll + dt * p.chlorophyll_recovery)
        vitality.chlorophyll_content = chlorophyll
