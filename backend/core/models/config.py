"""
Leg detection threshold configuration.

This module defines the immutable set of thresholds the leg segmentation
engine is run with, plus the gimbal mode that changes which pitch checks apply.
"""

from dataclasses import dataclass, asdict, fields, replace
from enum import Enum
from typing import Dict, Any

from core.constants import (
    DEFAULT_MAX_LEG_STEP_DELTA_YAW_DEG,
    DEFAULT_MAX_LEG_SUM_DELTA_YAW_DEG,
    DEFAULT_MAX_LEG_STEP_PITCH_DEG,
    DEFAULT_MAX_LEG_SUM_PITCH_DEG,
    DEFAULT_MIN_CAMERA_DOWN_DEG,
    DEFAULT_MIN_LEG_DURATION_MS,
    DEFAULT_MIN_LEG_DISTANCE_M,
    DEFAULT_MAX_LEG_GAP_DURATION_MS,
    MIN_CAMERA_DOWN_DEG_FLOOR,
    MIN_CAMERA_DOWN_DEG_CEILING,
    GIMBAL_RELAXED_PITCH_DEG,
)


class GimbalMode(str, Enum):
    """
    How far the logged pitch/yaw/roll can be trusted to describe the camera.

    USED: the log reports gimbal (camera) attitude; camera-down checks apply.
    NOT_USED: the log reports airframe attitude; gimbal may exist but is ignored.
    ABSENT: the drone is known to log no gimbal data; legs lose their
        settling time at the start.
    """
    USED = "used"
    NOT_USED = "not_used"
    ABSENT = "absent"


@dataclass(frozen=True)
class ThresholdConfig:
    """Thresholds controlling where legs start and end."""
    # Direction
    max_leg_step_delta_yaw_deg: float = DEFAULT_MAX_LEG_STEP_DELTA_YAW_DEG  # To start a leg
    max_leg_sum_delta_yaw_deg: float = DEFAULT_MAX_LEG_SUM_DELTA_YAW_DEG  # Drift from leg start

    # Pitch
    max_leg_step_pitch_deg: float = DEFAULT_MAX_LEG_STEP_PITCH_DEG  # Airframe pitch, non-gimbal only
    max_leg_sum_pitch_deg: float = DEFAULT_MAX_LEG_SUM_PITCH_DEG  # Drift from leg start
    min_camera_down_deg: float = DEFAULT_MIN_CAMERA_DOWN_DEG  # Gimbal only
    gimbal_mode: GimbalMode = GimbalMode.ABSENT

    # Size
    min_leg_duration_ms: int = DEFAULT_MIN_LEG_DURATION_MS
    min_leg_distance_m: float = DEFAULT_MIN_LEG_DISTANCE_M
    max_leg_gap_duration_ms: int = DEFAULT_MAX_LEG_GAP_DURATION_MS

    # User selected playback window in seconds (run_to_s == 0 means unbounded)
    run_from_s: float = 0.0
    run_to_s: float = 0.0

    @property
    def use_gimbal_data(self) -> bool:
        """Is the logged pitch the camera's pitch?"""
        return self.gimbal_mode == GimbalMode.USED

    @property
    def trim_gimbal_lag(self) -> bool:
        """Should each leg lose its gimbal settling window?"""
        return self.gimbal_mode == GimbalMode.ABSENT

    def normalised(self) -> 'ThresholdConfig':
        """
        Return a copy with the derived adjustments applied.

        The camera-down angle is clamped to its supported range. When the
        gimbal compensates for airframe pitch the pitch sanity limits are
        relaxed so that only the camera-down check constrains pitch.
        """
        changes: Dict[str, Any] = {
            'min_camera_down_deg': min(max(self.min_camera_down_deg, MIN_CAMERA_DOWN_DEG_FLOOR),
                                       MIN_CAMERA_DOWN_DEG_CEILING)
        }
        if self.use_gimbal_data:
            changes['max_leg_step_pitch_deg'] = GIMBAL_RELAXED_PITCH_DEG
            changes['max_leg_sum_pitch_deg'] = GIMBAL_RELAXED_PITCH_DEG
        return replace(self, **changes)

    def with_run_window(self, run_from_s: float, run_to_s: float) -> 'ThresholdConfig':
        """Return a copy with a different playback window."""
        return replace(self, run_from_s=run_from_s, run_to_s=run_to_s)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (gimbal mode as its string value)."""
        result = asdict(self)
        result['gimbal_mode'] = self.gimbal_mode.value
        return result

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'ThresholdConfig':
        """Build a config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known and v is not None}
        if 'gimbal_mode' in kwargs:
            kwargs['gimbal_mode'] = GimbalMode(kwargs['gimbal_mode'])
        return cls(**kwargs)
