"""
State of the simulated tree.

TreeState groups morphology, biomass, vitality, foliage, phenology flags and
gas-exchange totals. The engine components mutate it in place; callers that
need a stable view take a copy().
"""
import copy
import math
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .exceptions import InvalidParameterError, validate_positive
from .mortality import DeathCause
from .rng import SeededRandom
from .species import SpeciesProfile
from .validation import clamp

__all__ = [
    'Morphology', 'Biomass', 'Vitality', 'Foliage', 'PhenologyFlags',
    'GasExchange', 'TreeState', 'InitialTreeParameters', 'LifeStage',
    'create_sapling', 'life_stage', 'status_label',
]


@dataclass
class Morphology:
    """Tree dimensions in metres."""
    height: float
    dbh: float
    crown_radius: float
    crown_height: float
    root_depth: float
    root_spread: float

    @property
    def crown_volume(self) -> float:
        """Crown volume (m3) treating the crown as a spheroid."""
        return 4.0 / 3.0 * math.pi * self.crown_radius ** 2 * (self.crown_height / 2.0)


@dataclass
class Biomass:
    """Dry biomass compartments (kg).

    Heartwood and sapwood partition the trunk; they are not added to the total.
    """
    trunk: float
    branches: float
    leaves: float
    roots: float
    heartwood: float = 0.0
    sapwood: float = 0.0

    @property
    def total(self) -> float:
        return self.trunk + self.branches + self.leaves + self.roots

    def to_dict(self) -> Dict[str, float]:
        data = asdict(self)
        data['total'] = self.total
        return data


@dataclass
class Vitality:
    """Vitality indices, each kept in [0, 100]."""
    health: float = 100.0
    vigor: float = 100.0
    water_content: float = 100.0
    stress_level: float = 0.0
    disease_load: float = 0.0
    chlorophyll_content: float = 100.0

    def clamp(self) -> None:
        for f in fields(self):
            setattr(self, f.name, clamp(getattr(self, f.name), 0.0, 100.0))


@dataclass
class Foliage:
    """Canopy state: opacity and density in [0, 1], leaf area in m2."""
    opacity: float = 1.0
    density: float = 1.0
    leaf_area: float = 0.1
    leaf_count: int = 50


@dataclass
class PhenologyFlags:
    dormant: bool = False
    bud_burst: bool = False
    flowering: bool = False
    leaf_senescence: bool = False


@dataclass
class GasExchange:
    """Cumulative exchange totals (kg) and current stored carbon."""
    co2_absorbed: float = 0.0
    o2_produced: float = 0.0
    water_transpired: float = 0.0
    carbon_stored: float = 0.0


@dataclass
class TreeState:
    """Complete mutable state of one tree.

    Once ``alive`` is False the engine components leave the state untouched.
    """
    species: str
    morphology: Morphology
    biomass: Biomass
    vitality: Vitality = field(default_factory=Vitality)
    foliage: Foliage = field(default_factory=Foliage)
    phenology: PhenologyFlags = field(default_factory=PhenologyFlags)
    exchange: GasExchange = field(default_factory=GasExchange)
    age: float = 0.0
    days_since_birth: float = 0.0
    growth_this_year: float = 0.0
    rings_grown: int = 0
    germination_day: int = 0
    disease_resistance: float = 0.5
    alive: bool = True
    death_cause: Optional[DeathCause] = None
    tree_id: str = "tree-1"

    def kill(self, cause: DeathCause) -> bool:
        """Mark the tree dead. Returns False if it was already dead."""
        if not self.alive:
            return False
        self.alive = False
        self.death_cause = cause
        self.vitality.health = 0.0
        return True

    @property
    def leaf_area_index(self) -> float:
        """Leaf area per unit of crown ground projection."""
        projected = math.pi * self.morphology.crown_radius ** 2
        if projected <= 1e-9:
            return 0.0
        return self.foliage.leaf_area / projected

    def copy(self) -> "TreeState":
        """Return an independent deep copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'species': self.species,
            'tree_id': self.tree_id,
            'age': self.age,
            'days_since_birth': self.days_since_birth,
            'growth_this_year': self.growth_this_year,
            'rings_grown': self.rings_grown,
            'germination_day': self.germination_day,
            'disease_resistance': self.disease_resistance,
            'alive': self.alive,
            'death_cause': self.death_cause.value if self.death_cause else None,
            'morphology': asdict(self.morphology),
            'biomass': self.biomass.to_dict(),
            'vitality': asdict(self.vitality),
            'foliage': asdict(self.foliage),
            'phenology': asdict(self.phenology),
            'exchange': asdict(self.exchange),
        }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TreeState":
        biomass = dict(data['biomass'])
        biomass.pop('total', None)
        cause = data.get('death_cause')
        return cls(
            species=data['species'],
            tree_id=data.get('tree_id', 'tree-1'),
            morphology=Morphology(**data['morphology']),
            biomass=Biomass(**biomass),
            vitality=Vitality(**data['vitality']),
            foliage=Foliage(**data['foliage']),
            phenology=PhenologyFlags(**data['phenology']),
            exchange=GasExchange(**data['exchange']),
            age=float(data['age']),
            days_since_birth=float(data['days_since_birth']),
            growth_this_year=float(data.get('growth_this_year', 0.0)),
            rings_grown=int(data.get('rings_grown', 0)),
            germination_day=int(data.get('germination_day', 0)),
            disease_resistance=float(data.get('disease_resistance', 0.5)),
            alive=bool(data['alive']),
            death_cause=DeathCause(cause) if cause else None,
        )


@dataclass(frozen=True)
class InitialTreeParameters:
    """Sapling dimensions and the ranges of seeded initial traits."""
    height: float = 0.25
    dbh: float = 0.008
    crown_radius_ratio: float = 0.6
    crown_height_ratio: float = 0.4
    root_depth_ratio: float = 0.3
    root_spread_ratio: float = 0.5
    trunk: float = 0.3
    branches: float = 0.1
    leaves: float = 0.05
    roots: float = 0.05
    leaf_count: int = 50
    leaf_area: float = 0.1
    germination_day_min: int = 60
    germination_day_max: int = 120
    disease_resistance_min: float = 0.25
    disease_resistance_max: float = 0.75

    def __post_init__(self):
        validate_positive(self.height, 'height')
        validate_positive(self.dbh, 'dbh')
        if self.germination_day_max < self.germination_day_min:
            raise InvalidParameterError('germination_day_max', self.germination_day_max,
                                        "must be >= germination_day_min")
        if not 0 <= self.disease_resistance_min <= self.disease_resistance_max <= 1:
            raise InvalidParameterError('disease_resistance_min/max',
                                        (self.disease_resistance_min, self.disease_resistance_max),
                                        "must satisfy 0 <= min <= max <= 1")


def create_sapling(species: SpeciesProfile, rng: SeededRandom,
                   params: InitialTreeParameters = InitialTreeParameters(),
                   tree_id: str = "tree-1") -> TreeState:
    """Create a freshly germinated sapling.

    Draws the germination day and then the disease resistance from ``rng``,
    in that order.
    """
    germination_day = rng.randint(params.germination_day_min, params.germination_day_max)
    disease_resistance = rng.uniform(params.disease_resistance_min, params.disease_resistance_max)

    h = params.height
    return TreeState(
        species=species.code,
        tree_id=tree_id,
        morphology=Morphology(
            height=h,
            dbh=params.dbh,
            crown_radius=h * params.crown_radius_ratio,
            crown_height=h * params.crown_height_ratio,
            root_depth=h * params.root_depth_ratio,
            root_spread=h * params.root_spread_ratio,
        ),
        biomass=Biomass(
            trunk=params.trunk,
            branches=params.branches,
            leaves=params.leaves,
            roots=params.roots,
            heartwood=0.0,
            sapwood=params.trunk,
        ),
        foliage=Foliage(leaf_area=params.leaf_area, leaf_count=params.leaf_count),
        germination_day=germination_day,
        disease_resistance=disease_resistance,
    )


class LifeStage(str, Enum):
    """Developmental stage by age."""

    GERMINATING = "Germinating"
    SEEDLING = "Seedling"
    SAPLING = "Sapling"
    YOUNG = "Young tree"
    MATURE = "Mature"
    OLD_GROWTH = "Old-growth"
    ANCIENT = "Ancient"
    LEGENDARY = "Legendary"


# Upper age bound (years, exclusive) of each stage
_LIFE_STAGE_LIMITS = (
    (0.5, LifeStage.GERMINATING),
    (2.0, LifeStage.SEEDLING),
    (8.0, LifeStage.SAPLING),
    (25.0, LifeStage.YOUNG),
    (80.0, LifeStage.MATURE),
    (200.0, LifeStage.OLD_GROWTH),
    (400.0, LifeStage.ANCIENT),
)


def life_stage(age: float) -> LifeStage:
    """Classify an age in years into a LifeStage."""
    for limit, stage in _LIFE_STAGE_LIMITS:
        if age < limit:
            return stage
    return LifeStage.LEGENDARY


def status_label(tree: TreeState) -> str:
    """Short human-readable status for display."""
    if not tree.alive:
        cause = tree.death_cause.value if tree.death_cause else "unknown"
        return f"Dead ({cause})"
    health = tree.vitality.health
    if health < 15:
        return "Dying"
    if health < 30:
        return "Critical"
    if health < 50:
        return "Stressed"
    if health < 70:
        return "Recovering"
    if tree.phenology.dormant:
        return f"{life_stage(tree.age).value} (dormant)"
    if tree.phenology.flowering:
        return f"{life_stage(tree.age).value} (flowering)"
    return life_stage(tree.age).value
