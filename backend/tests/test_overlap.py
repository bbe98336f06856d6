"""
Tests for leg and run window overlap queries.
"""

import pytest

from core.legs.overlap import (
    percent_overlap,
    overlaps,
    overlapping_leg_range,
    nearest_step,
    flight_nearest_step,
)
from core.models.leg import Leg, LegCollection
from core.validation import LegInvariantError, ZeroDurationLegError


def _timed_leg(leg_id, from_s, to_s, first_key=None, last_key=None):
    return Leg(leg_id=leg_id, first_key=first_key, last_key=last_key,
               min_sum_time_ms=int(from_s * 1000), max_sum_time_ms=int(to_s * 1000))


class TestPercentOverlap:
    """Tests for percent_overlap arithmetic."""

    def test_half_covered_by_open_window(self):
        """A window from 15 s to the end covers half of a 10 s to 20 s leg."""
        assert percent_overlap(_timed_leg(1, 10, 20), 15, 0) == 50

    def test_fully_covered(self):
        """A window around the leg covers all of it."""
        assert percent_overlap(_timed_leg(1, 10, 20), 0, 30) == 100

    def test_window_after_leg_is_negative(self):
        """A window that misses the leg gives a negative percentage."""
        assert percent_overlap(_timed_leg(1, 10, 20), 25, 30) == -50

    def test_rounds_to_nearest_percent(self):
        """The percentage is rounded, not truncated."""
        assert percent_overlap(_timed_leg(1, 0, 3), 0, 2) == 67

    def test_zero_duration_leg_raises(self):
        """Overlap of an instantaneous leg is undefined."""
        with pytest.raises(ZeroDurationLegError):
            percent_overlap(_timed_leg(4, 10, 10), 0, 0)

    def test_zero_duration_error_is_division_error(self):
        """Callers may catch the error as a plain division by zero."""
        with pytest.raises(ZeroDivisionError):
            percent_overlap(_timed_leg(4, 10, 10), 0, 0)


class TestOverlaps:
    """Tests for the overlap threshold."""

    def test_threshold_is_inclusive(self):
        """Exactly 20 percent counts as overlapping."""
        leg = _timed_leg(1, 0, 10)
        assert overlaps(leg, 8, 0)
        assert not overlaps(leg, 8.5, 0)

    def test_zero_duration_leg_never_overlaps(self):
        """Instantaneous legs are treated as outside every window."""
        assert not overlaps(_timed_leg(1, 5, 5), 0, 0)


class TestOverlappingLegRange:
    """Tests for finding the legs inside a run window."""

    @pytest.fixture
    def four_legs(self):
        return LegCollection([
            _timed_leg(1, 0, 10),
            _timed_leg(2, 10, 20),
            _timed_leg(3, 20, 30),
            _timed_leg(4, 30, 40),
        ])

    def test_middle_legs(self, four_legs):
        """Legs mostly inside the window are returned as an id range."""
        assert overlapping_leg_range(four_legs, 12, 28) == (2, 3)

    def test_open_window_covers_to_last_leg(self, four_legs):
        """An open ended window reaches the last leg."""
        assert overlapping_leg_range(four_legs, 0, 0) == (1, 4)

    def test_no_overlap(self, four_legs):
        """A window after the flight overlaps nothing."""
        assert overlapping_leg_range(four_legs, 50, 60) is None

    def test_only_first_contiguous_run(self):
        """A non-overlapping leg ends the run even if later legs overlap."""
        legs = LegCollection([
            _timed_leg(1, 0, 10),
            _timed_leg(2, 10, 10),
            _timed_leg(3, 12, 20),
        ])
        assert overlapping_leg_range(legs, 0, 0) == (1, 1)


class TestNearestStep:
    """Tests for nearest step lookups."""

    def test_nearest_within_leg(self, make_series, straight_rows):
        """The member step closest in time is returned."""
        series = make_series(straight_rows(10))  # Steps at 500, 1000, ... 5000 ms
        leg = _timed_leg(1, 1.5, 3.5, first_key=2, last_key=6)

        assert nearest_step(leg, 2600, series).key == 4
        assert nearest_step(leg, 1500, series).key == 2
        assert nearest_step(leg, 3500, series).key == 6

    def test_target_outside_leg_is_invariant_error(self, make_series, straight_rows):
        """Asking a leg about a time it does not cover is a caller bug."""
        series = make_series(straight_rows(10))
        leg = _timed_leg(1, 1.5, 3.5, first_key=2, last_key=6)

        with pytest.raises(LegInvariantError):
            nearest_step(leg, 4000, series)

    def test_flight_nearest_prefers_leg_boundary(self, make_series, straight_rows):
        """Times within 100 ms of a leg boundary snap to the boundary step."""
        series = make_series(straight_rows(10))
        legs = LegCollection([_timed_leg(1, 1.5, 3.5, first_key=2, last_key=6)])

        assert flight_nearest_step(series, legs, 1450).key == 2
        assert flight_nearest_step(series, legs, 3540).key == 6

    def test_flight_nearest_outside_legs(self, make_series, straight_rows):
        """Times outside every leg fall back to the whole flight."""
        series = make_series(straight_rows(10))
        legs = LegCollection([_timed_leg(1, 1.5, 3.5, first_key=2, last_key=6)])

        assert flight_nearest_step(series, legs, 4900).key == 9
        assert flight_nearest_step(series, legs, 700).key == 0
