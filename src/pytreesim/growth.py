"""
Growth allocator: turns a positive net growth factor into size and biomass.

Height follows a saturating allometric curve toward the species ceiling;
DBH tracks an allometric target and never shrinks; crown dimensions are
derived from height and health; roots grow with soil quality under caps
tied to height and crown. Biomass is split across compartments with
season-dependent ratios.
"""
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping

from .environment import EnvironmentSnapshot, Season
from .exceptions import ConfigurationError
from .physiology import PhysiologyResult
from .species import SpeciesProfile

if TYPE_CHECKING:
    from .tree import TreeState

COMPARTMENTS = ('trunk', 'branches', 'leaves', 'roots')

DEFAULT_ALLOCATION: Dict[str, Dict[str, float]] = {
    'default': {'trunk': 0.35, 'branches': 0.20, 'leaves': 0.25, 'roots': 0.20},
    'spring': {'trunk': 0.25, 'branches': 0.20, 'leaves': 0.40, 'roots': 0.15},
    'autumn': {'trunk': 0.35, 'branches': 0.20, 'leaves': 0.10, 'roots': 0.35},
}

DEFAULT_CONVERSION: Dict[str, float] = {
    'trunk': 10.0, 'branches': 5.0, 'leaves': 2.0, 'roots': 3.0,
}


def _default_allocation() -> Dict[str, Dict[str, float]]:
    return {key: dict(row) for key, row in DEFAULT_ALLOCATION.items()}


def _default_conversion() -> Dict[str, float]:
    return dict(DEFAULT_CONVERSION)


@dataclass(frozen=True)
class GrowthParameters:
    """Allometric constants and biomass allocation tables.

    ``allocation`` maps a season name (or 'default') to compartment shares
    that must sum to 1. ``conversion`` maps compartments to the biomass
    gained per unit of allocated growth.
    """
    viability_floor: float = 25.0
    age_window: float = 0.4
    min_age_factor: float = 0.1
    height_factor: float = 0.9
    dbh_exponent: float = 0.8
    dbh_coefficient: float = 0.05
    dbh_tracking: float = 0.1
    dbh_factor: float = 0.18
    dbh_direct_coefficient: float = 0.0005
    crown_radius_ratio: float = 0.4
    crown_height_ratio: float = 0.5
    root_factor: float = 1.3
    root_coefficient: float = 0.005
    root_spread_share: float = 0.8
    root_depth_cap: float = 0.8
    root_spread_cap: float = 1.5
    leaves_per_m2: float = 500.0
    heartwood_age: float = 10.0
    heartwood_rate: float = 0.001
    allocation: Dict[str, Dict[str, float]] = field(default_factory=_default_allocation)
    conversion: Dict[str, float] = field(default_factory=_default_conversion)

    def __post_init__(self):
        if 'default' not in self.allocation:
            raise ConfigurationError("growth allocation table needs a 'default' row")
        for key, row in self.allocation.items():
            if key != 'default' and key not in {s.value for s in Season}:
                raise ConfigurationError(f"Unknown season in allocation table: {key}")
            if set(row) != set(COMPARTMENTS):
                raise ConfigurationError(
                    f"Allocation row '{key}' must define exactly {list(COMPARTMENTS)}")
            if any(share < 0 for share in row.values()):
                raise ConfigurationError(f"Allocation row '{key}' has a negative share")
            if not math.isclose(sum(row.values()), 1.0, abs_tol=1e-9):
                raise ConfigurationError(
                    f"Allocation row '{key}' sums to {sum(row.values())}, expected 1")
        if set(self.conversion) != set(COMPARTMENTS):
            raise ConfigurationError(f"conversion must define exactly {list(COMPARTMENTS)}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GrowthParameters":
        values = dict(data)
        if 'allocation' in values:
            table = _default_allocation()
            for key, row in values['allocation'].items():
                table[str(key).lower()] = {k: float(v) for k, v in row.items()}
            values['allocation'] = table
        if 'conversion' in values:
            conversion = _default_conversion()
            conversion.update({k: float(v) for k, v in values['conversion'].items()})
            values['conversion'] = conversion
        return cls(**values)

    def allocation_for(self, season: Season) -> Dict[str, float]:
        return self.allocation.get(season.value, self.allocation['default'])


class GrowthAllocator:
    """Applies morphological and biomass growth to a living tree."""

    def __init__(self, species: SpeciesProfile,
                 params: GrowthParameters = GrowthParameters()):
        self.species = species
        self.params = params

    def growth_rate(self, tree: 'TreeState', result: PhysiologyResult) -> float:
        p = self.params
        age_factor = max(p.min_age_factor, 1.0 - tree.age / (self.species.max_age * p.age_window))
        return (result.net_growth_factor
                * (tree.vitality.health / 100.0)
                * (tree.vitality.vigor / 100.0)
                * age_factor
                * self.species.growth_rate)

    def can_grow(self, tree: 'TreeState', result: PhysiologyResult) -> bool:
        return (tree.alive
                and not result.dormant
                and result.net_growth_factor > 0
                and tree.vitality.health > self.params.viability_floor)

    def grow(self, tree: 'TreeState', env: EnvironmentSnapshot,
             result: PhysiologyResult, dt: float) -> bool:
        """Apply size growth for one substep. Returns True if the tree grew."""
        if not self.can_grow(tree, result):
            return False

        p = self.params
        m = tree.morphology
        rate = self.growth_rate(tree, result)
        health01 = tree.vitality.health / 100.0
        height_limit = self.species.max_height

        saturation = max(0.0, 1.0 - m.height / height_limit) ** 2
        height_growth = rate * p.height_factor * saturation
        m.height = min(height_limit, m.height + height_growth * dt)
        tree.growth_this_year += height_growth * dt

        expected_dbh = m.height ** p.dbh_exponent * p.dbh_coefficient
        dbh_growth = ((expected_dbh - m.dbh) * rate * p.dbh_tracking
                      + rate * p.dbh_factor * p.dbh_direct_coefficient)
        m.dbh = max(m.dbh, m.dbh + dbh_growth * dt)

        m.crown_radius = m.height * p.crown_radius_ratio * health01
        m.crown_height = m.height * p.crown_height_ratio * health01

        root_growth = rate * p.root_factor * (env.soil_quality / 100.0) * p.root_coefficient
        m.root_depth = min(m.height * p.root_depth_cap, m.root_depth + root_growth * dt)
        m.root_spread = min(m.crown_radius * p.root_spread_cap,
                            m.root_spread + root_growth * p.root_spread_share * dt)

        foliage = tree.foliage
        foliage.leaf_area = math.pi * m.crown_radius ** 2 * foliage.opacity * health01
        foliage.leaf_count = int(math.floor(foliage.leaf_area * p.leaves_per_m2))
        return True

    def allocate_biomass(self, tree: 'TreeState', env: EnvironmentSnapshot,
                         result: PhysiologyResult, dt: float) -> None:
        """Distribute the growth increment over the biomass compartments."""
        if not tree.alive or result.net_growth_factor <= 0:
            return

        p = self.params
        biomass = tree.biomass
        allocation = result.net_growth_factor * (tree.vitality.health / 100.0) * dt
        shares = p.allocation_for(env.season)
        conv = p.conversion

        biomass.trunk += allocation * shares['trunk'] * conv['trunk']
        biomass.branches += allocation * shares['branches'] * conv['branches']
        biomass.leaves += allocation * shares['leaves'] * conv['leaves'] * tree.foliage.opacity
        biomass.roots += allocation * shares['roots'] * conv['roots']

        if tree.age > p.heartwood_age:
            biomass.heartwood += biomass.sapwood * p.heartwood_rate * dt
            biomass.sapwood = biomass.trunk - biomass.heartwood
        else:
            biomass.sapwood = biomass.trunk
