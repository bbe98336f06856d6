"""
Leg assembly.

This module turns per-step leg ids into Leg records, trims the gimbal
settling time off the start of each leg, and synthesises the single
placeholder leg used when a flight has no usable telemetry.
"""

import logging
from typing import Dict, List, Optional

from core.constants import GIMBAL_LAG_TRIM_MS, MILLISECONDS_PER_SECOND, REASON_NO_FLIGHT_DATA
from core.models.config import ThresholdConfig
from core.models.leg import Leg, LegCollection
from core.telemetry import TelemetrySeries
from core.legs.engine import SegmentationResult

logger = logging.getLogger(__name__)


def build_legs(series: TelemetrySeries,
               step_leg_ids: Dict[int, int],
               end_reasons: List[str]) -> LegCollection:
    """
    Group consecutive steps sharing a leg id into Leg records.

    Args:
        series: Steps in key order
        step_leg_ids: Leg id per step key (0 = no leg)
        end_reasons: End reason per kept leg, indexed leg_id - 1

    Returns:
        LegCollection in time order
    """
    legs = LegCollection()
    open_leg: Optional[Leg] = None

    for key, step in series.items():
        leg_id = step_leg_ids.get(key, 0)

        if open_leg is not None and open_leg.leg_id == leg_id:
            open_leg.last_key = key
            open_leg.max_sum_lineal_m = step.sum_lineal_m
            continue

        # The id changed: any open leg is finished
        open_leg = None
        if leg_id > 0:
            open_leg = Leg(
                leg_id=leg_id,
                first_key=key,
                last_key=key,
                min_sum_lineal_m=step.sum_lineal_m,
                max_sum_lineal_m=step.sum_lineal_m,
                why_leg_ended=end_reasons[leg_id - 1] if leg_id <= len(end_reasons) else "",
            )
            legs.add(open_leg)

    logger.debug(f"Built {len(legs)} legs from step leg ids")
    return legs


def trim_gimbal_lag(series: TelemetrySeries, legs: LegCollection,
                    trim_ms: int = GIMBAL_LAG_TRIM_MS) -> LegCollection:
    """
    Remove the first trim_ms of every leg.

    After a turn the camera gimbal keeps re-centering for a moment after the
    drone itself has stopped yawing, and the flight log does not record it.
    Each leg therefore starts at its first step at least trim_ms after the
    original first step; skipped steps leave the leg. The search stops at
    the leg's last step, and a leg with no such step is removed entirely
    (the remaining legs and their steps are renumbered 1..N).

    Args:
        series: Steps in key order
        legs: Legs from build_legs
        trim_ms: Settling time to remove (simulated flight time)

    Returns:
        The same collection, trimmed
    """
    erased: List[Leg] = []

    for leg in legs:
        first_step = series[leg.first_key]
        threshold_ms = first_step.sum_time_ms + trim_ms

        new_first = None
        for step in series.steps_between(leg.first_key, leg.last_key):
            if step.sum_time_ms >= threshold_ms:
                new_first = step
                break
            if step.leg_id == leg.leg_id:
                step.leg_id = 0

        if new_first is None:
            logger.warning(f"Gimbal lag trim removed all of leg {leg.leg_id} "
                           f"(steps {leg.first_key}-{leg.last_key})")
            erased.append(leg)
            continue

        leg.first_key = new_first.key
        leg.min_sum_lineal_m = new_first.sum_lineal_m

    if erased:
        erased_ids = {leg.leg_id for leg in erased}
        legs.legs = [leg for leg in legs.legs if leg.leg_id not in erased_ids]
        renumber_legs(series, legs)

    return legs


def renumber_legs(series: TelemetrySeries, legs: LegCollection) -> None:
    """Give the legs (and their steps) dense ids 1..N in time order."""
    for new_id, leg in enumerate(legs, start=1):
        if leg.leg_id == new_id:
            continue
        for step in series.steps_between(leg.first_key, leg.last_key):
            if step.leg_id == leg.leg_id:
                step.leg_id = new_id
        logger.debug(f"Renumbered leg {leg.leg_id} to {new_id}")
        leg.leg_id = new_id


def assemble_legs(series: TelemetrySeries, result: SegmentationResult,
                  config: ThresholdConfig) -> LegCollection:
    """
    Build the legs for a segmentation result, applying the gimbal lag trim
    when the drone is known to log no gimbal data.
    """
    legs = build_legs(series, result.step_leg_ids, result.end_reasons)

    if config.trim_gimbal_lag and len(legs):
        legs = trim_gimbal_lag(series, legs)

    return legs


def no_flight_data_legs(config: ThresholdConfig, flight_end_ms: Optional[int] = None) -> LegCollection:
    """
    Create the single leg used when there is no usable flight telemetry.

    The leg spans the run window. An unbounded window end falls back to
    flight_end_ms when known.
    """
    start_ms = int(config.run_from_s * MILLISECONDS_PER_SECOND)
    if config.run_to_s:
        end_ms = int(config.run_to_s * MILLISECONDS_PER_SECOND)
    else:
        end_ms = flight_end_ms if flight_end_ms is not None else start_ms

    leg = Leg(
        leg_id=1,
        why_leg_ended=REASON_NO_FLIGHT_DATA,
        min_sum_time_ms=start_ms,
        max_sum_time_ms=end_ms,
    )
    return LegCollection([leg])
