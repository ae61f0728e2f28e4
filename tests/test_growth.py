"""
Tests for the growth allocator and biomass partitioning.
"""
import math

import pytest

from pytreesim.environment import Season
from pytreesim.exceptions import ConfigurationError
from pytreesim.growth import GrowthAllocator, GrowthParameters


@pytest.fixture
def allocator(oak):
    return GrowthAllocator(oak)


class TestGrowthParameters:
    """Allocation table validation."""

    def test_default_rows_sum_to_one(self):
        params = GrowthParameters()
        for row in params.allocation.values():
            assert math.isclose(sum(row.values()), 1.0)

    @pytest.mark.parametrize("season,leaves", [
        pytest.param(Season.SPRING, 0.40, id="spring"),
        pytest.param(Season.SUMMER, 0.25, id="summer_uses_default"),
        pytest.param(Season.AUTUMN, 0.10, id="autumn"),
        pytest.param(Season.WINTER, 0.25, id="winter_uses_default"),
    ])
    def test_allocation_for_season(self, season, leaves):
        assert GrowthParameters().allocation_for(season)['leaves'] == leaves

    def test_row_not_summing_to_one_rejected(self):
        with pytest.raises(ConfigurationError):
            GrowthParameters.from_dict({'allocation': {
                'summer': {'trunk': 0.5, 'branches': 0.5, 'leaves': 0.5, 'roots': 0.5},
            }})

    def test_unknown_season_rejected(self):
        with pytest.raises(ConfigurationError):
            GrowthParameters.from_dict({'allocation': {
                'monsoon': {'trunk': 0.25, 'branches': 0.25, 'leaves': 0.25, 'roots': 0.25},
            }})

    def test_from_dict_merges_rows(self):
        params = GrowthParameters.from_dict({'allocation': {
            'winter': {'trunk': 0.5, 'branches': 0.1, 'leaves': 0.0, 'roots': 0.4},
        }})
        assert params.allocation_for(Season.WINTER)['roots'] == 0.4
        assert params.allocation_for(Season.SPRING)['leaves'] == 0.40


class TestGating:
    """Growth only happens for viable, active trees."""

    @pytest.mark.parametrize("health,dormant,ngf,expected", [
        pytest.param(80.0, False, 0.4, True, id="healthy_active"),
        pytest.param(80.0, True, 0.4, False, id="dormant"),
        pytest.param(25.0, False, 0.4, False, id="at_viability_floor"),
        pytest.param(80.0, False, 0.0, False, id="no_carbon_surplus"),
    ])
    def test_can_grow(self, allocator, sapling, make_result, health, dormant, ngf, expected):
        sapling.vitality.health = health
        result = make_result(dormant=dormant, net_growth_factor=ngf)
        assert allocator.can_grow(sapling, result) is expected

    def test_no_growth_leaves_size_unchanged(self, allocator, sapling, make_env, make_result):
        before = sapling.morphology.height
        grew = allocator.grow(sapling, make_env(), make_result(dormant=True), dt=1.0)
        assert grew is False
        assert sapling.morphology.height == before


class TestSizeGrowth:

    def test_height_increment(self, allocator, sapling, make_env, make_result, oak):
        result = make_result(net_growth_factor=0.4)
        rate = allocator.growth_rate(sapling, result)
        expected = 0.25 + rate * 0.9 * (1 - 0.25 / oak.max_height) ** 2 * 0.5
        allocator.grow(sapling, make_env(), result, dt=0.5)
        assert sapling.morphology.height == pytest.approx(expected)
        assert sapling.growth_this_year == pytest.approx(expected - 0.25)

    def test_height_capped_at_species_maximum(self, allocator, sapling, make_env,
                                              make_result, oak):
        sapling.morphology.height = oak.max_height
        allocator.grow(sapling, make_env(), make_result(net_growth_factor=5.0), dt=10.0)
        assert sapling.morphology.height == oak.max_height

    def test_dbh_never_decreases(self, allocator, sapling, make_env, make_result):
        sapling.morphology.dbh = 0.5
        allocator.grow(sapling, make_env(), make_result(), dt=1.0)
        assert sapling.morphology.dbh >= 0.5

    def test_crown_and_roots_follow_height(self, allocator, established_tree, make_env,
                                           make_result):
        allocator.grow(established_tree, make_env(), make_result(), dt=1.0)
        m = established_tree.morphology
        health01 = established_tree.vitality.health / 100.0
        assert m.crown_radius == pytest.approx(m.height * 0.4 * health01)
        assert m.crown_height == pytest.approx(m.height * 0.5 * health01)
        assert m.root_depth <= 0.8 * m.height
        assert m.root_spread <= 1.5 * m.crown_radius

    def test_leaf_area_and_count(self, allocator, established_tree, make_env, make_result):
        allocator.grow(established_tree, make_env(), make_result(), dt=1.0)
        foliage = established_tree.foliage
        radius = established_tree.morphology.crown_radius
        assert foliage.leaf_area == pytest.approx(math.pi * radius ** 2 * foliage.opacity * 0.8)
        assert foliage.leaf_count == int(math.floor(foliage.leaf_area * 500))

    def test_old_trees_grow_slower(self, allocator, sapling, make_result):
        result = make_result()
        young = allocator.growth_rate(sapling, result)
        sapling.age = 400.0
        assert allocator.growth_rate(sapling, result) == pytest.approx(young * 0.1)


class TestBiomass:

    def test_total_is_sum_of_compartments(self, allocator, sapling, make_env, make_result):
        for day in (20.0, 120.0, 200.0, 300.0):
            allocator.allocate_biomass(sapling, make_env(day_of_year=day), make_result(), dt=1.0)
            b = sapling.biomass
            assert b.total == pytest.approx(b.trunk + b.branches + b.leaves + b.roots)
            assert b.to_dict()['total'] == b.total

    def test_spring_allocation(self, allocator, sapling, make_env, make_result):
        before = sapling.biomass.leaves
        allocator.allocate_biomass(sapling, make_env(day_of_year=20.0),
                                   make_result(net_growth_factor=0.5), dt=1.0)
        # allocation = ngf * health/100 * dt = 0.5; leaves share 0.40, conversion 2 * opacity 1
        assert sapling.biomass.leaves == pytest.approx(before + 0.5 * 0.40 * 2.0)

    def test_no_allocation_without_surplus(self, allocator, sapling, make_env, make_result):
        before = sapling.biomass.to_dict()
        allocator.allocate_biomass(sapling, make_env(), make_result(net_growth_factor=0.0), 1.0)
        assert sapling.biomass.to_dict() == before

    def test_young_trees_have_no_heartwood(self, allocator, sapling, make_env, make_result):
        allocator.allocate_biomass(sapling, make_env(), make_result(), dt=1.0)
        assert sapling.biomass.heartwood == 0.0
        assert sapling.biomass.sapwood == sapling.biomass.trunk

    def test_heartwood_forms_after_ten_years(self, allocator, sapling, make_env, make_result):
        sapling.age = 12.0
        sapling.biomass.sapwood = sapling.biomass.trunk
        allocator.allocate_biomass(sapling, make_env(), make_result(), dt=1.0)
        b = sapling.biomass
        assert b.heartwood > 0.0
        assert b.sapwood == pytest.approx(b.trunk - b.heartwood)
