"""
Leg segmentation engine.

This module walks a telemetry series once, in ascending key order, and
assigns each step a leg id (0 = no leg). A leg starts on a step that is
flying straight and level enough, grows while the drone keeps its heading
and pitch relative to the leg's first step, and ends on the first step that
breaks a rule. Ended legs that are too short, too brief or a single step
long are discarded and their id is reused.

The engine mutates Step.leg_id in place. It does not clear leg ids first:
call TelemetrySeries.reset_leg_ids() before re-running on the same series.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from core.constants import REASON_NO_MORE_STEPS
from core.models.config import ThresholdConfig
from core.models.telemetry import Step
from core.telemetry import TelemetrySeries
from core.validation import assert_invariant

logger = logging.getLogger(__name__)


class LegIdAllocator:
    """
    Hands out dense, ascending leg ids starting at 1.

    Only the most recently allocated id can be released, which keeps the
    kept ids packed as 1..N.
    """

    def __init__(self):
        self._last_id = 0

    @property
    def last_id(self) -> int:
        """The highest id currently allocated (0 if none)."""
        return self._last_id

    def allocate(self) -> int:
        self._last_id += 1
        return self._last_id

    def release_last(self, leg_id: int) -> None:
        """Give back the most recently allocated id so it is handed out again."""
        assert_invariant(leg_id == self._last_id and leg_id > 0,
                         "LegIdAllocator.release_last",
                         f"can only release the last id {self._last_id}, got {leg_id}")
        self._last_id -= 1


class SegmentationStatus(str, Enum):
    OK = "ok"
    NO_YAW_PITCH_DATA = "no_yaw_pitch_data"


@dataclass
class SegmentationResult:
    """Outcome of one leg segmentation run."""
    status: SegmentationStatus
    step_leg_ids: Dict[int, int] = field(default_factory=dict)
    end_reasons: List[str] = field(default_factory=list)  # end_reasons[leg_id - 1]

    @property
    def ok(self) -> bool:
        return self.status == SegmentationStatus.OK

    @property
    def leg_count(self) -> int:
        return len(self.end_reasons)

    def reason_for(self, leg_id: int) -> str:
        """End reason of a kept leg ("" if unknown)."""
        if 0 < leg_id <= len(self.end_reasons):
            return self.end_reasons[leg_id - 1]
        return ""

    @classmethod
    def no_yaw_pitch_data(cls) -> 'SegmentationResult':
        return cls(status=SegmentationStatus.NO_YAW_PITCH_DATA)


@dataclass
class _ActiveLeg:
    """State of the leg currently being grown."""
    leg_id: int
    start_step: Step
    end_step: Step
    duration_ms: int
    step_count: int = 1


# =============================================================================
# RULES
# =============================================================================

def can_start_leg(step: Step, config: ThresholdConfig) -> bool:
    """
    May this step be the first step of a new leg?

    The step must not be turning, and unless the gimbal compensates for
    airframe pitch it must be close to level.
    """
    if abs(step.delta_yaw_deg or 0.0) >= config.max_leg_step_delta_yaw_deg:
        return False

    if not config.use_gimbal_data and abs(step.pitch_deg or 0.0) >= config.max_leg_step_pitch_deg:
        return False

    return True


def find_leg_violation(start: Step, step: Step, config: ThresholdConfig) -> Optional[str]:
    """
    Check whether step breaks the active leg that started at start.

    Args:
        start: First step of the active leg
        step: Candidate next step
        config: Thresholds

    Returns:
        None if the step may join the leg, otherwise the reason the leg ends
        (yaw drift, pitch drift, time gap, step pitch, camera down, in that
        priority order)
    """
    yaw_drift = step.yaw_drift_from(start)
    bad_yaw = abs(yaw_drift) > config.max_leg_sum_delta_yaw_deg
    bad_sum_pitch = abs(step.pitch_drift_from(start)) >= config.max_leg_sum_pitch_deg
    bad_gap = step.time_ms > config.max_leg_gap_duration_ms

    step_pitch = step.pitch_deg or 0.0
    pitch = abs(step_pitch)
    bad_step_pitch = (not config.use_gimbal_data) and pitch >= config.max_leg_step_pitch_deg
    bad_camera_down = config.use_gimbal_data and pitch < config.min_camera_down_deg

    if bad_yaw:
        return f"Large yaw change: {yaw_drift:.1f}"
    if bad_sum_pitch:
        return f"Large pitch sum: {start.pitch_deg or 0.0:.1f} to {step.pitch_deg or 0.0:.1f}"
    if bad_gap:
        return f"Large gap: {step.time_ms}"
    if bad_step_pitch:
        return f"Large pitch: {step_pitch:.1f}"
    if bad_camera_down:
        return f"Small camera: {step_pitch:.1f}"
    return None


def passes_quality_gate(leg: _ActiveLeg, config: ThresholdConfig) -> bool:
    """Did the ended leg last long enough, travel far enough and span more than one step?"""
    if leg.duration_ms < config.min_leg_duration_ms:
        return False
    if leg.step_count < 2:
        return False
    if leg.start_step.distance_to(leg.end_step) < config.min_leg_distance_m:
        return False
    return True


# =============================================================================
# ENGINE
# =============================================================================

def _discard_leg(series: TelemetrySeries, leg: _ActiveLeg, allocator: LegIdAllocator) -> None:
    """Reset the leg's steps to no leg and give its id back."""
    for step in series.steps_between(leg.start_step.key, leg.end_step.key):
        if step.leg_id == leg.leg_id:
            step.leg_id = 0
    allocator.release_last(leg.leg_id)

    logger.debug(f"Discarded candidate leg {leg.leg_id} (steps {leg.start_step.key}-{leg.end_step.key}, "
                 f"{leg.duration_ms}ms, {leg.step_count} steps)")


def _close_leg(series: TelemetrySeries, leg: _ActiveLeg, reason: str,
               config: ThresholdConfig, allocator: LegIdAllocator, end_reasons: List[str]) -> None:
    if passes_quality_gate(leg, config):
        end_reasons.append(reason)
        logger.debug(f"Kept leg {leg.leg_id} (steps {leg.start_step.key}-{leg.end_step.key}): {reason}")
    else:
        _discard_leg(series, leg, allocator)


def compute_step_leg_ids(series: TelemetrySeries, config: ThresholdConfig) -> SegmentationResult:
    """
    Assign a leg id to every step of the series.

    Args:
        series: Steps in ascending key order, leg ids already reset to 0
        config: Leg detection thresholds

    Returns:
        SegmentationResult with the per-step leg ids and one end reason per
        kept leg, or a NO_YAW_PITCH_DATA result if the flight log has no
        attitude data to judge legs by
    """
    if not series.has_yaw_data() or not series.has_pitch_data():
        logger.warning("Flight log has no yaw or pitch data; skipping leg detection")
        return SegmentationResult.no_yaw_pitch_data()

    allocator = LegIdAllocator()
    end_reasons: List[str] = []
    active: Optional[_ActiveLeg] = None

    for step in series:
        if active is not None:
            reason = find_leg_violation(active.start_step, step, config)
            if reason is None:
                # Include this step in the leg
                step.leg_id = active.leg_id
                active.end_step = step
                active.duration_ms += step.time_ms
                active.step_count += 1
                continue

            # This step is not part of any leg. It may start one on a later step only.
            _close_leg(series, active, reason, config, allocator, end_reasons)
            active = None
            continue

        if can_start_leg(step, config):
            leg_id = allocator.allocate()
            step.leg_id = leg_id
            active = _ActiveLeg(leg_id=leg_id, start_step=step, end_step=step, duration_ms=step.time_ms)

    if active is not None:
        _close_leg(series, active, REASON_NO_MORE_STEPS, config, allocator, end_reasons)

    assert_invariant(len(end_reasons) == allocator.last_id, "compute_step_leg_ids",
                     f"{len(end_reasons)} end reasons for {allocator.last_id} legs")

    logger.info(f"Leg detection found {len(end_reasons)} legs in {len(series)} steps")
    return SegmentationResult(
        status=SegmentationStatus.OK,
        step_leg_ids=series.step_leg_ids(),
        end_reasons=end_reasons,
    )
