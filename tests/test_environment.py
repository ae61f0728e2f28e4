"""
Tests for the seasonal calendar and the site environment.
"""
import dataclasses

import pytest

from pytreesim.environment import (
    DEFAULT_CALENDAR, EnvironmentState, Season, SeasonCalendar, SeasonWindow,
    classify_season, season_progress,
)
from pytreesim.exceptions import ConfigurationError


SEASON_CASES = [
    pytest.param(0.0, Season.SPRING, id="first_day"),
    pytest.param(90.9, Season.SPRING, id="end_of_spring"),
    pytest.param(91.0, Season.SUMMER, id="summer_boundary"),
    pytest.param(181.5, Season.SUMMER, id="end_of_summer"),
    pytest.param(182.0, Season.AUTUMN, id="autumn_boundary"),
    pytest.param(272.0, Season.AUTUMN, id="end_of_autumn"),
    pytest.param(273.0, Season.WINTER, id="winter_boundary"),
    pytest.param(364.9, Season.WINTER, id="last_day"),
    pytest.param(365.0, Season.SPRING, id="wraps_to_next_year"),
    pytest.param(-1.0, Season.WINTER, id="negative_wraps_back"),
]

PROGRESS_CASES = [
    pytest.param(0.0, 0.0, id="spring_start"),
    pytest.param(45.5, 0.5, id="mid_spring"),
    pytest.param(136.5, 0.5, id="mid_summer"),
    pytest.param(227.5, 0.5, id="mid_autumn"),
    pytest.param(319.0, 0.5, id="mid_winter"),
]


class TestSeasonCalendar:
    """Season classification and within-season progress."""

    @pytest.mark.parametrize("day,expected", SEASON_CASES)
    def test_classify_season(self, day, expected):
        assert classify_season(day) == expected

    @pytest.mark.parametrize("day,expected", PROGRESS_CASES)
    def test_season_progress(self, day, expected):
        assert season_progress(day) == pytest.approx(expected)

    def test_progress_stays_below_one(self):
        day = 0.0
        while day < 365.0:
            assert 0.0 <= season_progress(day) < 1.0
            day += 0.7

    @pytest.mark.parametrize("season,multiplier", [
        pytest.param(Season.SPRING, 1.6, id="spring"),
        pytest.param(Season.SUMMER, 1.0, id="summer"),
        pytest.param(Season.AUTUMN, 0.25, id="autumn"),
        pytest.param(Season.WINTER, 0.03, id="winter"),
    ])
    def test_growth_multipliers(self, season, multiplier):
        assert DEFAULT_CALENDAR.growth_multiplier(season) == multiplier

    def test_gap_in_windows_rejected(self):
        windows = (
            SeasonWindow(Season.SPRING, 0.0, 90.0, 1.6),
            SeasonWindow(Season.SUMMER, 91.0, 182.0, 1.0),
            SeasonWindow(Season.AUTUMN, 182.0, 273.0, 0.25),
            SeasonWindow(Season.WINTER, 273.0, 365.0, 0.03),
        )
        with pytest.raises(ConfigurationError):
            SeasonCalendar(windows=windows)

    def test_missing_season_rejected(self):
        windows = (
            SeasonWindow(Season.SPRING, 0.0, 182.0, 1.6),
            SeasonWindow(Season.AUTUMN, 182.0, 273.0, 0.25),
            SeasonWindow(Season.WINTER, 273.0, 365.0, 0.03),
        )
        with pytest.raises(ConfigurationError):
            SeasonCalendar(windows=windows)

    def test_from_dict_round_trip(self):
        calendar = SeasonCalendar.from_dict(DEFAULT_CALENDAR.to_dict())
        assert calendar == DEFAULT_CALENDAR

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            SeasonCalendar.from_dict({'days_per_year': 365, 'leap_years': True})

    def test_display_name(self):
        assert Season.AUTUMN.display_name == "Autumn"


class TestEnvironmentState:
    """Mutable site state and snapshots."""

    def test_defaults(self):
        env = EnvironmentState().snapshot()
        assert env.light == 70.0
        assert env.water == 60.0
        assert env.temperature == 20.0
        assert env.active_stressors == []
        assert env.season == Season.SPRING
        assert env.year == 0

    @pytest.mark.parametrize("name,value,expected", [
        pytest.param('water', 150, 100.0, id="water_above_range"),
        pytest.param('water', -5, 0.0, id="water_below_range"),
        pytest.param('temperature', -40, -20.0, id="temperature_below_range"),
        pytest.param('temperature', 75, 50.0, id="temperature_above_range"),
        pytest.param('light', 'bright', 70.0, id="non_numeric_keeps_current"),
        pytest.param('humidity', float('nan'), 60.0, id="nan_keeps_current"),
        pytest.param('wind_speed', '45', 45.0, id="numeric_string"),
    ])
    def test_set_conditions_clamps(self, name, value, expected):
        state = EnvironmentState()
        state.set_conditions(**{name: value})
        assert state.conditions[name] == expected

    def test_stressor_flags(self):
        state = EnvironmentState()
        state.set_conditions(disease=True, storm='yes')
        snapshot = state.snapshot()
        assert snapshot.active_stressors == ['disease', 'storm']

    def test_unknown_condition_rejected(self):
        with pytest.raises(ConfigurationError):
            EnvironmentState().set_conditions(rainfall=10)

    def test_advance_time_rolls_over_year(self):
        state = EnvironmentState(day_of_year=364.0)
        state.advance_time(2.0)
        assert state.day_of_year == pytest.approx(1.0)
        assert state.year == 1
        assert state.season == Season.SPRING

    def test_advance_time_ignores_non_positive(self):
        state = EnvironmentState(day_of_year=10.0)
        state.advance_time(0.0)
        state.advance_time(-5.0)
        assert state.day_of_year == 10.0

    def test_snapshot_is_frozen(self):
        snapshot = EnvironmentState().snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.water = 10.0

    def test_snapshot_does_not_follow_later_changes(self):
        state = EnvironmentState()
        snapshot = state.snapshot()
        state.set_conditions(water=5)
        assert snapshot.water == 60.0

    def test_dict_round_trip(self):
        state = EnvironmentState(day_of_year=200.0, year=3)
        state.set_conditions(pests=True, temperature=31)
        restored = EnvironmentState.from_dict(state.to_dict())
        assert restored.snapshot() == state.snapshot()
