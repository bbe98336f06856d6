"""
Leg summarisation.

Two separate passes run after assembly:

1. summarise_legs recomputes every leg's aggregates from scratch by scanning
   all steps, so it also checks that the assembled key ranges agree with the
   step leg ids.
2. link_steps_to_legs rebuilds the step -> leg index. Callers that only
   need the links refreshed can run it on its own.
"""

import logging

from core.models.leg import LegCollection
from core.telemetry import TelemetrySeries
from core.validation import assert_invariant

logger = logging.getLogger(__name__)


def summarise_legs(legs: LegCollection, series: TelemetrySeries) -> LegCollection:
    """
    Recompute each leg's key range and extrema from its member steps.

    Args:
        legs: Assembled legs
        series: All steps of the flight

    Returns:
        The same collection with aggregates filled in

    Raises:
        LegInvariantError: If a leg ends up with no members or degenerate bounds
    """
    legs_by_id = {leg.leg_id: leg for leg in legs}
    for leg in legs:
        leg.reset_summary()

    for step in series:
        leg = legs_by_id.get(step.leg_id)
        if leg is not None:
            leg.summarise_step(step)

    for leg in legs:
        assert_invariant(leg.first_key is not None and leg.first_key >= 0,
                         "summarise_legs", f"leg {leg.leg_id} has bad first key {leg.first_key}")
        assert_invariant(leg.last_key is not None and leg.last_key > 0,
                         "summarise_legs", f"leg {leg.leg_id} has bad last key {leg.last_key}")

    logger.debug(f"Summarised {len(legs)} legs")
    return legs


def link_steps_to_legs(legs: LegCollection, series: TelemetrySeries) -> LegCollection:
    """
    Rebuild the index from each member step to its leg.

    Raises:
        LegInvariantError: If a step carries a leg id no leg has, or lies
            outside its leg's key range
    """
    legs.clear_step_index()
    legs_by_id = {leg.leg_id: leg for leg in legs}

    for step in series:
        if step.leg_id <= 0:
            continue

        leg = legs_by_id.get(step.leg_id)
        assert_invariant(leg is not None, "link_steps_to_legs",
                         f"step {step.key} has unknown leg id {step.leg_id}")
        assert_invariant(leg.contains_key(step.key), "link_steps_to_legs",
                         f"step {step.key} lies outside leg {leg.leg_id} "
                         f"({leg.first_key}-{leg.last_key})")
        legs.link_step(step.key, leg)

    return legs
