"""
Tests for the fixed-timestep scheduler.
"""
import math

import pytest

from pytreesim.exceptions import InvalidParameterError
from pytreesim.scheduler import FixedTimestepScheduler, SchedulerSettings

# Binary fractions keep accumulator arithmetic exact
QUARTER_DAY = SchedulerSettings(substep_days=0.25, max_frame_seconds=None)


class StepCounter:
    """Step function that records every dt it is called with."""

    def __init__(self):
        self.calls = []

    def __call__(self, dt):
        self.calls.append(dt)


@pytest.fixture
def counter():
    return StepCounter()


class TestAccumulator:

    @pytest.mark.parametrize("chunk,repeats", [
        pytest.param(0.125, 16, id="half_substep_frames"),
        pytest.param(0.5, 4, id="two_substep_frames"),
        pytest.param(0.0625, 32, id="quarter_substep_frames"),
    ])
    def test_total_steps_independent_of_frame_split(self, counter, chunk, repeats):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        total = sum(scheduler.advance(chunk) for _ in range(repeats))
        assert total == 8
        assert scheduler.total_substeps == 8
        assert scheduler.simulated_days == pytest.approx(2.0)
        assert scheduler.accumulator == 0.0

    @pytest.mark.parametrize("frames", [
        pytest.param([0.013] * 150, id="even_frames"),
        pytest.param([0.0071] * 300, id="short_frames"),
        pytest.param([0.013, 0.0071] * 100, id="alternating_frames"),
        pytest.param([0.0071, 0.0071, 0.013, 0.0003] * 80, id="ragged_frames"),
    ])
    def test_default_substep_with_uneven_frames(self, counter, frames):
        scheduler = FixedTimestepScheduler(counter, SchedulerSettings())
        total = sum(scheduler.advance(frame) for frame in frames)
        expected = math.floor(sum(frames) * 60.0)
        assert abs(total - expected) <= 1
        assert scheduler.accumulator < scheduler.substep + 1e-12

    def test_steps_use_fixed_dt(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        scheduler.advance(0.75)
        assert counter.calls == [0.25, 0.25, 0.25]

    def test_leftover_carries_over(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        assert scheduler.advance(0.375) == 1
        assert scheduler.accumulator == 0.125
        assert scheduler.advance(0.125) == 1

    def test_per_call_cap(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        assert scheduler.advance(10.0) == 10
        assert scheduler.accumulator == 7.5
        assert scheduler.advance(0.0) == 10

    def test_frame_delta_cap(self, counter):
        settings = SchedulerSettings(substep_days=1.0 / 32.0, max_frame_seconds=0.125)
        scheduler = FixedTimestepScheduler(counter, settings)
        assert scheduler.advance(5.0) == 4
        assert scheduler.accumulator == 0.0

    @pytest.mark.parametrize("elapsed", [
        pytest.param(-1.0, id="negative"),
        pytest.param(float('nan'), id="nan"),
        pytest.param(float('inf'), id="infinite"),
        pytest.param('soon', id="not_a_number"),
    ])
    def test_bad_elapsed_counts_as_zero(self, counter, elapsed):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        assert scheduler.advance(elapsed) == 0
        assert scheduler.accumulator == 0.0


class TestControls:

    def test_paused_scheduler_banks_nothing(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        assert scheduler.toggle_pause() is True
        assert scheduler.advance(1.0) == 0
        assert scheduler.accumulator == 0.0
        assert scheduler.toggle_pause() is False
        assert scheduler.advance(0.5) == 2

    def test_speed_multiplier(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        scheduler.set_speed(2)
        assert scheduler.advance(0.5) == 4

    def test_zero_speed_freezes_time(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        scheduler.set_speed(0)
        assert scheduler.advance(1.0) == 0

    @pytest.mark.parametrize("speed", [-1, 11])
    def test_speed_out_of_range(self, counter, speed):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        with pytest.raises(InvalidParameterError):
            scheduler.set_speed(speed)

    def test_reset(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        scheduler.advance(0.625)
        scheduler.reset()
        assert scheduler.accumulator == 0.0
        assert scheduler.total_substeps == 0
        assert scheduler.simulated_days == 0.0


class TestBatchRuns:

    def test_run_days_at_default_substep(self, counter):
        scheduler = FixedTimestepScheduler(counter)
        assert scheduler.run_days(1.0) == 60
        assert len(counter.calls) == 60

    def test_run_substeps_leaves_accumulator(self, counter):
        scheduler = FixedTimestepScheduler(counter, QUARTER_DAY)
        scheduler.advance(0.125)
        assert scheduler.run_substeps(3) == 3
        assert scheduler.accumulator == 0.125

    @pytest.mark.parametrize("days", [0.0, -3.0])
    def test_run_days_non_positive(self, counter, days):
        assert FixedTimestepScheduler(counter).run_days(days) == 0


class TestSettings:

    @pytest.mark.parametrize("values", [
        pytest.param({'substep_days': 0.0}, id="zero_substep"),
        pytest.param({'max_substeps_per_call': 0}, id="zero_cap"),
        pytest.param({'max_frame_seconds': -0.1}, id="negative_frame_cap"),
        pytest.param({'speed_multiplier': 12.0}, id="speed_too_high"),
    ])
    def test_invalid_settings(self, values):
        with pytest.raises(InvalidParameterError):
            SchedulerSettings(**values)
