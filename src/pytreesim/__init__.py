"""
pytreesim: Single-tree physiology and mortality simulation

Simulates the lifecycle of one woody plant under a time-varying site
environment: carbon-balance growth, stress and vitality, seasonal
phenology and a hazard-based, cause-attributed death.

Quick Start:
    >>> from pytreesim import Simulation
    >>> sim = Simulation.create(seed=42, species='OAK')
    >>> sim.environment.set_conditions(water=35, temperature=24)
    >>> sim.run_days(365)
    >>> print(sim.tree.morphology.height, sim.tree.alive)
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__author__ = "pytreesim Development Team"

# =============================================================================
# Core Classes - Primary API
# =============================================================================
from .simulation_engine import Simulation, SimulationEngine, StepResult, run_simulation
from .simulation_config import SimulationConfig, HistorySettings
from .tree import (
    TreeState,
    Morphology,
    Biomass,
    Vitality,
    Foliage,
    PhenologyFlags,
    GasExchange,
    InitialTreeParameters,
    LifeStage,
    create_sapling,
    life_stage,
    status_label,
)

# =============================================================================
# Environment and Calendar
# =============================================================================
from .environment import (
    Season,
    SeasonCalendar,
    SeasonWindow,
    EnvironmentState,
    EnvironmentSnapshot,
    classify_season,
    season_progress,
)

# =============================================================================
# Species
# =============================================================================
from .species import SpeciesCode, SpeciesProfile, get_species_profile

# =============================================================================
# Model Components
# =============================================================================
from .phenology import PhenologyModel, PhenologyParameters, is_dormant, seasonal_growth_multiplier
from .physiology import (
    PhysiologyEngine,
    PhysiologyParameters,
    PhysiologyResult,
    StressParameters,
    composite_stress,
    evapotranspiration,
    net_growth_factor,
    photosynthesis,
    respiration,
)
from .vitality import VitalityTracker, VitalityParameters
from .growth import GrowthAllocator, GrowthParameters
from .mortality import (
    DeathCause,
    HazardBreakdown,
    MortalityModel,
    MortalityParameters,
    MortalityResult,
    attribute_cause,
    create_mortality_model,
    death_probability,
)

# =============================================================================
# Scheduling and Randomness
# =============================================================================
from .scheduler import FixedTimestepScheduler, SchedulerSettings
from .rng import SeededRandom

# =============================================================================
# Inputs, History and Export
# =============================================================================
from .inputs import SimulationSettings, apply_variables, load_variables
from .history import HealthHistory, TrajectoryRecorder
from .data_export import DataExporter, SNAPSHOT_VERSION

# =============================================================================
# Configuration Loading
# =============================================================================
from .config_loader import ConfigLoader, get_config_loader, load_species_config

# =============================================================================
# Logging
# =============================================================================
from .logging_config import setup_logging, get_logger

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    TreeSimError,
    ConfigurationError,
    SpeciesNotFoundError,
    ParameterError,
    InvalidParameterError,
    SimulationError,
    RNGNotSeededError,
    DataError,
    InvalidDataError,
    SnapshotVersionError,
)

# =============================================================================
# Base Classes (for extension)
# =============================================================================
from .model_base import ParameterizedModel

__all__ = [
    # Metadata
    '__version__',
    # Core
    'Simulation',
    'SimulationEngine',
    'StepResult',
    'run_simulation',
    'SimulationConfig',
    'HistorySettings',
    'TreeState',
    'Morphology',
    'Biomass',
    'Vitality',
    'Foliage',
    'PhenologyFlags',
    'GasExchange',
    'InitialTreeParameters',
    'LifeStage',
    'create_sapling',
    'life_stage',
    'status_label',
    # Environment
    'Season',
    'SeasonCalendar',
    'SeasonWindow',
    'EnvironmentState',
    'EnvironmentSnapshot',
    'classify_season',
    'season_progress',
    # Species
    'SpeciesCode',
    'SpeciesProfile',
    'get_species_profile',
    # Components
    'PhenologyModel',
    'PhenologyParameters',
    'is_dormant',
    'seasonal_growth_multiplier',
    'PhysiologyEngine',
    'PhysiologyParameters',
    'PhysiologyResult',
    'StressParameters',
    'composite_stress',
    'evapotranspiration',
    'net_growth_factor',
    'photosynthesis',
    'respiration',
    'VitalityTracker',
    'VitalityParameters',
    'GrowthAllocator',
    'GrowthParameters',
    'DeathCause',
    'HazardBreakdown',
    'MortalityModel',
    'MortalityParameters',
    'MortalityResult',
    'attribute_cause',
    'create_mortality_model',
    'death_probability',
    # Scheduling
    'FixedTimestepScheduler',
    'SchedulerSettings',
    'SeededRandom',
    # Inputs / output
    'SimulationSettings',
    'apply_variables',
    'load_variables',
    'HealthHistory',
    'TrajectoryRecorder',
    'DataExporter',
    'SNAPSHOT_VERSION',
    # Configuration
    'ConfigLoader',
    'get_config_loader',
    'load_species_config',
    # Logging
    'setup_logging',
    'get_logger',
    # Exceptions
    'TreeSimError',
    'ConfigurationError',
    'SpeciesNotFoundError',
    'ParameterError',
    'InvalidParameterError',
    'SimulationError',
    'RNGNotSeededError',
    'DataError',
    'InvalidDataError',
    'SnapshotVersionError',
    # Base classes
    'ParameterizedModel',
]
