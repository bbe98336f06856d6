"""
Leg overlap with the user selected run window.

These read-only queries back the playback window restriction: how much of a
leg the run window covers, which contiguous run of legs it covers, and which
step of a leg is nearest a flight time.
"""

import logging
from typing import Optional, Tuple

from core.constants import MIN_OVERLAP_PERCENT, NEAREST_STEP_BOUNDARY_MS
from core.models.leg import Leg, LegCollection
from core.models.telemetry import Step
from core.telemetry import TelemetrySeries
from core.validation import assert_invariant, ZeroDurationLegError

logger = logging.getLogger(__name__)


def percent_overlap(leg: Leg, run_from_s: float, run_to_s: float) -> int:
    """
    Percentage of the leg's duration that lies inside the run window.

    Args:
        leg: Summarised leg
        run_from_s: Window start in seconds
        run_to_s: Window end in seconds (0 means unbounded)

    Returns:
        Rounded percentage; negative when the window misses the leg

    Raises:
        ZeroDurationLegError: If the leg starts and ends at the same time
    """
    leg_from_s = leg.start_time_s
    leg_to_s = leg.end_time_s
    assert_invariant(leg_from_s is not None and leg_to_s is not None,
                     "percent_overlap", f"leg {leg.leg_id} has no time range")

    if leg_to_s == leg_from_s:
        raise ZeroDurationLegError("percent_overlap", leg.leg_id)

    lower_bound = max(run_from_s, leg_from_s)
    upper_bound = min(leg_to_s if run_to_s == 0 else run_to_s, leg_to_s)

    return round(100.0 * (upper_bound - lower_bound) / (leg_to_s - leg_from_s))


def overlaps(leg: Leg, run_from_s: float, run_to_s: float,
             min_percent: int = MIN_OVERLAP_PERCENT) -> bool:
    """Is enough of the leg inside the run window? Zero-duration legs never are."""
    try:
        return percent_overlap(leg, run_from_s, run_to_s) >= min_percent
    except ZeroDurationLegError as e:
        logger.debug(f"Treating as non-overlapping: {e}")
        return False


def overlapping_leg_range(legs: LegCollection, run_from_s: float,
                          run_to_s: float) -> Optional[Tuple[int, int]]:
    """
    Find the first contiguous run of legs that overlap the run window.

    Returns:
        (first_leg_id, last_leg_id), or None if no leg overlaps
    """
    first_id = None
    last_id = None

    for leg in legs:
        if overlaps(leg, run_from_s, run_to_s):
            if first_id is None:
                first_id = leg.leg_id
            last_id = leg.leg_id
        elif first_id is not None:
            break

    if first_id is None:
        return None
    return first_id, last_id


def nearest_step(leg: Leg, target_ms: int, series: TelemetrySeries) -> Optional[Step]:
    """
    Return the step of the leg whose elapsed time is closest to target_ms.

    Relies on elapsed time never decreasing with key, so the scan stops as
    soon as the distance starts growing.

    Raises:
        LegInvariantError: If target_ms lies outside the leg
    """
    assert_invariant(leg.min_sum_time_ms is not None and target_ms >= leg.min_sum_time_ms,
                     "nearest_step", f"{target_ms}ms is before leg {leg.leg_id}")
    assert_invariant(leg.max_sum_time_ms is not None and target_ms <= leg.max_sum_time_ms,
                     "nearest_step", f"{target_ms}ms is after leg {leg.leg_id}")

    nearest = None
    nearest_delta = None
    for step in series.steps_between(leg.first_key, leg.last_key):
        delta = abs(step.sum_time_ms - target_ms)
        if nearest_delta is None or delta < nearest_delta:
            nearest = step
            nearest_delta = delta
        elif delta > nearest_delta:
            break

    return nearest


def flight_nearest_step(series: TelemetrySeries, legs: LegCollection,
                        flight_ms: int) -> Optional[Step]:
    """
    Return the step of the flight closest to flight_ms.

    Run windows usually start and end on leg boundaries, so leg boundaries
    and the containing leg are checked before falling back to a full scan.
    """
    if not len(series):
        return None

    for leg in legs:
        if leg.first_key is None or leg.min_sum_time_ms is None:
            continue
        if abs(leg.min_sum_time_ms - flight_ms) < NEAREST_STEP_BOUNDARY_MS:
            return series[leg.first_key]
        if abs(leg.max_sum_time_ms - flight_ms) < NEAREST_STEP_BOUNDARY_MS:
            return series[leg.last_key]
        if leg.min_sum_time_ms < flight_ms < leg.max_sum_time_ms:
            return nearest_step(leg, flight_ms, series)

    return series.nearest_step(flight_ms)
