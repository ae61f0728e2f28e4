"""
Shared pytest fixtures for pytreesim tests.

This module provides commonly used species, trees, environments and
simulations, reducing code duplication across test files.
"""
import pytest

from pytreesim.environment import EnvironmentState
from pytreesim.physiology import PhysiologyResult
from pytreesim.rng import SeededRandom
from pytreesim.simulation_engine import Simulation
from pytreesim.species import get_species_profile
from pytreesim.tree import create_sapling

SUBSTEP = 1.0 / 60.0


# =============================================================================
# Species Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def oak():
    """Deciduous, long-lived species (max age 500, max height 35 m)."""
    return get_species_profile('OAK')


@pytest.fixture(scope="session")
def pine():
    """Evergreen species with a -10 degC dormancy floor."""
    return get_species_profile('PINE')


# =============================================================================
# Tree Fixtures
# =============================================================================

@pytest.fixture
def rng():
    """Seeded random source."""
    return SeededRandom(42)


@pytest.fixture
def sapling(oak):
    """Freshly germinated oak sapling (height 0.25 m, health 100)."""
    return create_sapling(oak, SeededRandom(7))


@pytest.fixture
def established_tree(oak):
    """Five-year-old oak with moderate health, old enough to flower."""
    tree = create_sapling(oak, SeededRandom(11))
    tree.age = 5.0
    tree.days_since_birth = 5 * 365.0
    tree.morphology.height = 4.0
    tree.morphology.crown_radius = 1.2
    tree.morphology.root_depth = 1.0
    tree.morphology.root_spread = 1.0
    tree.vitality.health = 80.0
    tree.vitality.vigor = 80.0
    return tree


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def make_env():
    """Factory for environment snapshots.

    Usage: make_env(day_of_year=300, water=10, storm=True)
    Conditions not given keep their defaults (light 70, water 60,
    temperature 20, soil 70, wind 30, humidity 60, no stressors).
    """
    def _make(day_of_year=120.0, **conditions):
        state = EnvironmentState(day_of_year=day_of_year)
        if conditions:
            state.set_conditions(**conditions)
        return state.snapshot()
    return _make


@pytest.fixture
def make_result():
    """Factory for PhysiologyResult with neutral defaults."""
    def _make(**values):
        defaults = dict(
            photosynthesis=0.5,
            respiration=0.01,
            net_carbon=0.49,
            stress=0.0,
            seasonal_multiplier=1.0,
            dormant=False,
            net_growth_factor=0.4,
            evapotranspiration=0.1,
        )
        defaults.update(values)
        return PhysiologyResult(**defaults)
    return _make


# =============================================================================
# Simulation Fixtures
# =============================================================================

@pytest.fixture
def simulation():
    """Oak simulation with packaged defaults and seed 42."""
    return Simulation.create(seed=42, species='OAK')
