"""
Simulation engine for pytreesim.

SimulationEngine owns one tree, its site environment and the random
source, and advances them by one fixed substep at a time. Simulation wraps
an engine in a FixedTimestepScheduler, which is the only caller of
SimulationEngine.step().

Substep order:
    1. advance the environment clock and freeze a snapshot
    2. mortality (max age first, then the survival test); a death ends the substep
    3. physiology
    4. vitality (health, vigor, stress, disease, foliage)
    5. growth and biomass allocation
    6. gas exchange and water balance
    7. chlorophyll and phenology flags
    8. aging and growth rings, then the max-age check again
    9. history
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .environment import EnvironmentSnapshot, EnvironmentState
from .growth import GrowthAllocator
from .history import HealthHistory, TrajectoryRecorder
from .inputs import SimulationSettings, apply_variables
from .logging_config import get_logger, log_phenology_transition, log_simulation_summary
from .mortality import (
    DeathCause, MortalityModel, MortalityParameters, MortalityResult, create_mortality_model,
)
from .phenology import PhenologyModel
from .physiology import PhysiologyEngine, PhysiologyResult
from .rng import SeededRandom
from .scheduler import FixedTimestepScheduler, SchedulerSettings
from .simulation_config import SimulationConfig
from .species import SpeciesCode, SpeciesProfile, get_species_profile
from .tree import TreeState, create_sapling
from .vitality import VitalityTracker

DEFAULT_SEED = 12345


@dataclass
class StepResult:
    """Outcome of one engine substep.

    Attributes:
        dt: Substep length (days)
        alive: Whether the tree is alive after the substep
        died: Whether the tree died during this substep
        death_cause: Cause when died
        grew: Whether size growth was applied
        new_ring: Whether a growth ring was completed
        physiology: Physiology rates (None when the substep was cut short)
        mortality: Mortality evaluation (None for a dead tree)
        phenology_changes: Phenology flags that switched, with their new value
    """
    dt: float
    alive: bool
    died: bool = False
    death_cause: Optional[DeathCause] = None
    grew: bool = False
    new_ring: bool = False
    physiology: Optional[PhysiologyResult] = None
    mortality: Optional[MortalityResult] = None
    phenology_changes: Dict[str, bool] = field(default_factory=dict)


class SimulationEngine:
    """Per-substep update chain for a single tree.

    Args:
        tree: Tree to simulate (mutated in place)
        environment: Site environment (its clock is advanced by step())
        rng: Seeded random source shared by every stochastic decision
        species: Species profile of the tree
        config: Model constants; packaged defaults when omitted
        mortality_params: Mortality settings; built from config and species when omitted
        mortality_model: Hazard model; created for the species when omitted
        enable_growth: When False, size and biomass are left unchanged
    """

    def __init__(self, tree: TreeState, environment: EnvironmentState, rng: SeededRandom,
                 species: SpeciesProfile, config: Optional[SimulationConfig] = None,
                 mortality_params: Optional[MortalityParameters] = None,
                 mortality_model: Optional[MortalityModel] = None,
                 enable_growth: bool = True):
        self.logger = get_logger(__name__)
        self.tree = tree
        self.environment = environment
        self.rng = rng
        self.species = species
        self.config = config or SimulationConfig()
        self.enable_growth = enable_growth

        self.phenology = PhenologyModel(species, self.config.phenology, self.config.calendar)
        self.physiology = PhysiologyEngine(self.phenology, self.config.physiology,
                                           self.config.stress)
        self.vitality = VitalityTracker(species, self.config.vitality)
        self.growth = GrowthAllocator(species, self.config.growth)
        self.mortality_model = mortality_model or create_mortality_model(species.code)
        self.mortality_params = mortality_params or MortalityParameters.from_config(
            self.config.mortality,
            max_age=species.max_age,
            fire_resistance=self.mortality_model.fire_resistance,
            windthrow_resistance=self.mortality_model.windthrow_resistance,
        )

        self.history = HealthHistory(self.config.history.sample_interval,
                                     self.config.history.max_samples)
        self.recorder: Optional[TrajectoryRecorder] = None
        self.substeps = 0
        self.last_snapshot: EnvironmentSnapshot = environment.snapshot()

    @property
    def days_per_year(self) -> int:
        return self.config.calendar.days_per_year

    def step(self, dt: float) -> StepResult:
        """Advance the simulation by ``dt`` days.

        A dead tree is left untouched and the clock does not move.
        """
        tree = self.tree
        if not tree.alive:
            return StepResult(dt=dt, alive=False)

        self.environment.advance_time(dt)
        env = self.environment.snapshot()
        self.last_snapshot = env
        self.substeps += 1

        mortality = self.mortality_model.apply(
            tree, env, self.mortality_params, self.species.max_height, dt, self.rng,
            self.days_per_year,
        )
        if mortality.died:
            self._record(env, force=True)
            return StepResult(dt=dt, alive=False, died=True, death_cause=tree.death_cause,
                              mortality=mortality)

        result = self.physiology.evaluate(tree, env)
        self.vitality.update(tree, env, result, dt, self.rng)

        grew = False
        if self.enable_growth:
            grew = self.growth.grow(tree, env, result, dt)
            self.growth.allocate_biomass(tree, env, result, dt)

        self.physiology.exchange_gases(tree, result, dt, self.days_per_year)
        self.vitality.update_water(tree, env, result, dt)

        self.phenology.update_chlorophyll(tree, env, dt)
        changes = self.phenology.update_flags(tree, env, result.dormant)
        for flag, active in changes.items():
            log_phenology_transition(self.logger, tree.tree_id, flag, active,
                                     env.day_of_year, env.year)

        new_ring = self._age(dt)
        died = self.mortality_model.enforce_max_age(tree, self.mortality_params)

        self._record(env, force=died)
        return StepResult(
            dt=dt,
            alive=tree.alive,
            died=died,
            death_cause=tree.death_cause if died else None,
            grew=grew,
            new_ring=new_ring,
            physiology=result,
            mortality=mortality,
            phenology_changes=changes,
        )

    def _age(self, dt: float) -> bool:
        """Age the tree by ``dt`` days. Returns True when a year (ring) completes."""
        tree = self.tree
        previous_year = math.floor(tree.days_since_birth / self.days_per_year)
        tree.age += dt / self.days_per_year
        tree.days_since_birth += dt
        if math.floor(tree.days_since_birth / self.days_per_year) > previous_year:
            tree.rings_grown += 1
            tree.growth_this_year = 0.0
            self.logger.debug(f"Tree {tree.tree_id} completed growth ring {tree.rings_grown}")
            return True
        return False

    def _record(self, env: EnvironmentSnapshot, force: bool = False) -> None:
        self.history.record(self.tree.vitality.health)
        if self.recorder is not None:
            self.recorder.record(self.tree, env, force=force)

    def apply_settings(self, settings: SimulationSettings) -> None:
        """Apply user settings (environment conditions, mortality, growth toggle)."""
        self.environment.set_conditions(**settings.environment)
        if settings.mortality is not None:
            self.mortality_params = settings.mortality
        self.enable_growth = settings.enable_growth

    def current_settings(self, simulation_speed: float = 1.0) -> SimulationSettings:
        return SimulationSettings(
            environment=dict(self.environment.conditions),
            mortality=self.mortality_params,
            enable_growth=self.enable_growth,
            simulation_speed=simulation_speed,
        )


class Simulation:
    """A tree, its site and the scheduler that drives them.

    Use Simulation.create() for a fresh seeded sapling.

    Attributes:
        engine: The per-substep update chain
        scheduler: Fixed-timestep scheduler calling engine.step()
    """

    def __init__(self, engine: SimulationEngine,
                 settings: Optional[SchedulerSettings] = None):
        self.engine = engine
        self.scheduler = FixedTimestepScheduler(
            engine.step, settings or engine.config.scheduler)

    @classmethod
    def create(cls, seed: int = DEFAULT_SEED, species='OAK',
               config: Optional[SimulationConfig] = None,
               settings: Optional[SimulationSettings] = None,
               tree_id: str = "tree-1") -> "Simulation":
        """Create a simulation of a new sapling.

        Args:
            seed: RNG seed; the whole trajectory is a function of it
            species: SpeciesCode or species code string
            config: Model constants; packaged defaults when omitted
            settings: Initial user settings (environment, mortality, speed)
            tree_id: Identifier used in log messages

        Returns:
            Simulation ready to run
        """
        code = SpeciesCode.from_string(species.value if isinstance(species, SpeciesCode)
                                       else species)
        profile = get_species_profile(code)
        config = config or SimulationConfig.load()
        rng = SeededRandom(seed)
        tree = create_sapling(profile, rng, config.tree, tree_id=tree_id)
        environment = EnvironmentState(calendar=config.calendar)
        engine = SimulationEngine(tree, environment, rng, profile, config)
        simulation = cls(engine)
        if settings is not None:
            simulation.apply_settings(settings)
        engine.logger.info(
            f"Created {profile.name} sapling {tree_id} (seed={seed}, "
            f"germination day {tree.germination_day}, "
            f"disease resistance {tree.disease_resistance:.2f})"
        )
        return simulation

    @property
    def tree(self) -> TreeState:
        return self.engine.tree

    @property
    def environment(self) -> EnvironmentState:
        return self.engine.environment

    @property
    def rng(self) -> SeededRandom:
        return self.engine.rng

    def apply_settings(self, settings: SimulationSettings) -> None:
        self.engine.apply_settings(settings)
        self.scheduler.set_speed(settings.simulation_speed)

    def current_settings(self) -> SimulationSettings:
        return self.engine.current_settings(self.scheduler.speed_multiplier)

    def apply_variables(self, document: Mapping[str, Any]) -> SimulationSettings:
        """Clamp a variables document against the current settings and apply it."""
        settings = apply_variables(document, self.current_settings())
        self.apply_settings(settings)
        return settings

    def tick(self, elapsed_seconds: float) -> int:
        """Advance by a wall-clock frame. Returns the number of substeps run."""
        return self.scheduler.advance(elapsed_seconds)

    def run_days(self, days: float, stop_on_death: bool = True) -> int:
        """Run whole substeps covering ``days`` simulated days.

        Returns:
            Number of substeps run
        """
        if not stop_on_death:
            return self.scheduler.run_days(days)
        total = int(math.floor(days / self.scheduler.substep + 1e-9)) if days > 0 else 0
        run = 0
        while run < total and self.tree.alive:
            self.scheduler.run_substeps(1)
            run += 1
        return run

    def run_substeps(self, count: int) -> int:
        return self.scheduler.run_substeps(count)

    def record_trajectory(self, every: int = 60) -> TrajectoryRecorder:
        """Start recording a trajectory row every ``every`` substeps."""
        self.engine.recorder = TrajectoryRecorder(every)
        return self.engine.recorder

    def snapshot(self) -> TreeState:
        """Independent copy of the current tree state."""
        return self.tree.copy()

    def summary(self) -> None:
        tree = self.tree
        log_simulation_summary(self.engine.logger, self.scheduler.simulated_days,
                               self.scheduler.total_substeps, tree.morphology.height,
                               tree.morphology.dbh, tree.vitality.health, tree.alive)


def run_simulation(days: float, seed: int = DEFAULT_SEED, species='OAK',
                   variables: Optional[Mapping[str, Any]] = None,
                   config: Optional[SimulationConfig] = None,
                   record_every: Optional[int] = None) -> Simulation:
    """Create a simulation and run it headless for ``days`` simulated days.

    Args:
        days: Simulated days to run (stops early if the tree dies)
        seed: RNG seed
        species: Species code
        variables: Variables document applied before the run (see pytreesim.inputs)
        config: Model constants
        record_every: When given, record a trajectory row every this many substeps

    Returns:
        The finished Simulation
    """
    simulation = Simulation.create(seed=seed, species=species, config=config)
    if variables:
        simulation.apply_variables(variables)
    if record_every:
        simulation.record_trajectory(record_every)
    simulation.run_days(days)
    simulation.summary()
    return simulation
