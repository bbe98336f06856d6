"""
Tests for leg assembly, gimbal lag trimming and leg summarisation.
"""

import pytest

from core.legs import (
    compute_step_leg_ids,
    build_legs,
    trim_gimbal_lag,
    assemble_legs,
    no_flight_data_legs,
    summarise_legs,
    link_steps_to_legs,
    SegmentationResult,
    SegmentationStatus,
    Leg,
    LegCollection,
    legs_to_dataframe,
)
from core.models.config import ThresholdConfig, GimbalMode
from core.validation import LegInvariantError


def _apply_leg_ids(series, step_leg_ids):
    for key, leg_id in step_leg_ids.items():
        series[key].leg_id = leg_id


@pytest.fixture
def summarised_gap_legs(gap_series, no_gimbal_config):
    """Legs of the gap flight after the full assemble and summarise passes."""
    result = compute_step_leg_ids(gap_series, no_gimbal_config)
    legs = assemble_legs(gap_series, result, no_gimbal_config)
    summarise_legs(legs, gap_series)
    link_steps_to_legs(legs, gap_series)
    return legs


class TestBuildLegs:
    """Tests for grouping step leg ids into legs."""

    def test_groups_consecutive_ids(self, make_series, straight_rows):
        """Each run of equal non-zero ids becomes one leg."""
        series = make_series(straight_rows(6))
        step_leg_ids = {0: 0, 1: 1, 2: 1, 3: 0, 4: 2, 5: 2}

        legs = build_legs(series, step_leg_ids, ["Large yaw change: 12.0", "No more steps"])

        assert legs.ids == [1, 2]
        assert (legs[0].first_key, legs[0].last_key) == (1, 2)
        assert (legs[1].first_key, legs[1].last_key) == (4, 5)
        assert legs[0].min_sum_lineal_m == 5.0
        assert legs[0].max_sum_lineal_m == 10.0
        assert legs[0].why_leg_ended == "Large yaw change: 12.0"
        assert legs[1].why_leg_ended == "No more steps"

    def test_no_leg_ids_gives_no_legs(self, make_series, straight_rows):
        """A flight with no kept legs assembles to an empty collection."""
        series = make_series(straight_rows(4))
        legs = build_legs(series, {k: 0 for k in range(4)}, [])
        assert len(legs) == 0
        assert legs.describe() == ""


class TestGimbalLagTrim:
    """Tests for removing the gimbal settling time from each leg."""

    def test_leg_start_moves_one_second_later(self, make_series, straight_rows):
        """Steps in the first second of the leg leave it."""
        series = make_series(straight_rows(10, interval_ms=250))
        step_leg_ids = {k: 1 for k in range(10)}
        _apply_leg_ids(series, step_leg_ids)
        legs = build_legs(series, step_leg_ids, ["No more steps"])

        trim_gimbal_lag(series, legs)

        assert legs[0].first_key == 4  # 1250 ms is the first step >= 250 + 1000 ms
        assert legs[0].last_key == 9
        assert legs[0].min_sum_lineal_m == series[4].sum_lineal_m
        assert [series[k].leg_id for k in range(10)] == [0, 0, 0, 0, 1, 1, 1, 1, 1, 1]

    def test_leg_shorter_than_trim_is_removed(self, make_series, straight_rows):
        """A leg with no step a second after its start disappears and later legs are renumbered."""
        series = make_series(straight_rows(12, interval_ms=250))
        step_leg_ids = {0: 1, 1: 1, 2: 1, 3: 0}
        step_leg_ids.update({k: 2 for k in range(4, 12)})
        _apply_leg_ids(series, step_leg_ids)
        legs = build_legs(series, step_leg_ids, ["Large gap: 600", "No more steps"])

        trim_gimbal_lag(series, legs)

        assert legs.ids == [1]
        assert legs[0].why_leg_ended == "No more steps"
        assert legs[0].first_key == 8
        assert [series[k].leg_id for k in range(12)] == [0] * 8 + [1] * 4

    def test_assemble_trims_only_when_gimbal_absent(self, make_series, straight_rows):
        """Logs known to lack gimbal data are trimmed; others are left alone."""
        result = SegmentationResult(status=SegmentationStatus.OK,
                                    step_leg_ids={k: 1 for k in range(10)},
                                    end_reasons=["No more steps"])

        untrimmed_series = make_series(straight_rows(10, interval_ms=250))
        _apply_leg_ids(untrimmed_series, result.step_leg_ids)
        untrimmed = assemble_legs(untrimmed_series, result, ThresholdConfig(gimbal_mode=GimbalMode.NOT_USED))
        assert untrimmed[0].first_key == 0

        trimmed_series = make_series(straight_rows(10, interval_ms=250))
        _apply_leg_ids(trimmed_series, result.step_leg_ids)
        trimmed = assemble_legs(trimmed_series, result, ThresholdConfig(gimbal_mode=GimbalMode.ABSENT))
        assert trimmed[0].first_key == 4


class TestNoFlightDataLegs:
    """Tests for the placeholder leg used without telemetry."""

    def test_spans_run_window(self):
        """The placeholder leg covers the requested run window."""
        legs = no_flight_data_legs(ThresholdConfig(run_from_s=5.0, run_to_s=8.0))

        assert len(legs) == 1
        assert legs[0].leg_id == 1
        assert legs[0].why_leg_ended == "N/A"
        assert (legs[0].min_sum_time_ms, legs[0].max_sum_time_ms) == (5000, 8000)

    def test_unbounded_window_uses_flight_end(self):
        """An open ended run window extends to the end of the flight."""
        legs = no_flight_data_legs(ThresholdConfig(run_from_s=2.0), flight_end_ms=60000)
        assert (legs[0].min_sum_time_ms, legs[0].max_sum_time_ms) == (2000, 60000)

    def test_placeholder_passes_assertions(self):
        """The placeholder is a valid leg collection without steps."""
        legs = no_flight_data_legs(ThresholdConfig())
        legs.assert_good(has_steps=False)


class TestSummariseLegs:
    """Tests for recomputing leg aggregates."""

    def test_extrema_from_member_steps(self, summarised_gap_legs):
        """Times, distances and altitudes come from the member steps only."""
        first, second = summarised_gap_legs.legs

        assert (first.first_key, first.last_key) == (0, 4)
        assert (first.min_sum_time_ms, first.max_sum_time_ms) == (500, 2500)
        assert (first.min_altitude_m, first.max_altitude_m) == (50.0, 54.0)
        assert first.average_altitude_m == pytest.approx(52.0)
        assert first.step_count == 5
        assert first.distance_m == pytest.approx(20.0)
        assert first.duration_ms == 2000
        assert first.average_speed_mps == pytest.approx(10.0)

        assert (second.first_key, second.last_key) == (6, 9)
        assert (second.min_sum_time_ms, second.max_sum_time_ms) == (4500, 6000)
        assert second.distance_m == pytest.approx(15.0)

    def test_public_summary(self, summarised_gap_legs):
        """The flat summary carries name, times, distance, altitude and speed."""
        summary = summarised_gap_legs[1].to_summary().to_dict()

        assert summary['leg_id'] == 2
        assert summary['leg_name'] == "B"
        assert summary['start_time_ms'] == 4500
        assert summary['end_time_ms'] == 6000
        assert summary['why_leg_ended'] == "No more steps"

    def test_leg_without_steps_is_invariant_error(self, gap_series):
        """A leg no step belongs to cannot be summarised."""
        legs = LegCollection([Leg(leg_id=3)])
        with pytest.raises(LegInvariantError) as exc_info:
            summarise_legs(legs, gap_series)
        assert exc_info.value.operation == "summarise_legs"

    def test_collection_passes_assertions(self, summarised_gap_legs):
        """Summarised legs are ordered, disjoint and well formed."""
        summarised_gap_legs.assert_good(has_steps=True)

    def test_overlapping_legs_fail_assertions(self):
        """Legs sharing a step key are rejected."""
        legs = LegCollection([
            Leg(leg_id=1, first_key=0, last_key=5, min_sum_time_ms=0, max_sum_time_ms=2500),
            Leg(leg_id=2, first_key=5, last_key=8, min_sum_time_ms=2500, max_sum_time_ms=4000),
        ])
        with pytest.raises(LegInvariantError):
            legs.assert_good(has_steps=True)

    def test_leg_distance_sum_and_description(self, summarised_gap_legs):
        """Collection level totals cover every leg."""
        assert summarised_gap_legs.sum_lineal_m() == pytest.approx(35.0)
        assert summarised_gap_legs.describe() == ", 2 legs"

    def test_legs_to_dataframe(self, summarised_gap_legs):
        """Each leg becomes one row."""
        df = legs_to_dataframe(summarised_gap_legs)
        assert list(df['leg_name']) == ["A", "B"]
        assert list(df['step_count']) == [5, 4]


class TestLinkStepsToLegs:
    """Tests for the step to leg index."""

    def test_member_steps_link_to_their_leg(self, summarised_gap_legs):
        """Every member step looks up its leg; other steps have none."""
        assert summarised_gap_legs.leg_of(2) is summarised_gap_legs[0]
        assert summarised_gap_legs.leg_of(7) is summarised_gap_legs[1]
        assert summarised_gap_legs.leg_of(5) is None

    def test_unknown_leg_id_is_invariant_error(self, summarised_gap_legs, gap_series):
        """A step pointing at a missing leg is a consistency failure."""
        gap_series[5].leg_id = 7
        with pytest.raises(LegInvariantError):
            link_steps_to_legs(summarised_gap_legs, gap_series)

    def test_step_outside_leg_range_is_invariant_error(self, summarised_gap_legs, gap_series):
        """A step carrying a leg id outside that leg's key range is rejected."""
        gap_series[5].leg_id = 1
        with pytest.raises(LegInvariantError):
            link_steps_to_legs(summarised_gap_legs, gap_series)


class TestLegNaming:
    """Tests for leg display names."""

    @pytest.mark.parametrize("leg_id,name", [(1, "A"), (2, "B"), (26, "Z"), (27, "AA"), (28, "AB")])
    def test_letters_from_id(self, leg_id, name):
        """Names run A..Z then AA, AB, ..."""
        assert Leg(leg_id=leg_id).name == name
