"""
Shared fixtures for leg detection tests.

Synthetic flights are described as rows of
(interval_ms, advance_m, yaw_deg, pitch_deg): the drone moves advance_m
north during each interval.
"""

import pytest
from typing import List, Optional, Sequence, Tuple

from core.calculations import yaw_degs_delta
from core.models.config import ThresholdConfig, GimbalMode
from core.models.telemetry import Step
from core.telemetry import TelemetrySeries

Row = Tuple[int, float, Optional[float], Optional[float]]


def _make_series(rows: Sequence[Row], altitude_m: float = 50.0) -> TelemetrySeries:
    """Build a TelemetrySeries with keys 0..N-1 from synthetic rows."""
    steps: List[Step] = []
    sum_time_ms = 0
    northing_m = 0.0
    previous = None

    for key, (interval_ms, advance_m, yaw_deg, pitch_deg) in enumerate(rows):
        sum_time_ms += interval_ms
        northing_m += advance_m
        step = Step(
            key=key,
            time_ms=interval_ms,
            sum_time_ms=sum_time_ms,
            northing_m=northing_m,
            easting_m=0.0,
            lineal_m=advance_m if previous is not None else 0.0,
            sum_lineal_m=(previous.sum_lineal_m + advance_m) if previous is not None else 0.0,
            altitude_m=altitude_m + key,
            yaw_deg=yaw_deg,
            delta_yaw_deg=yaw_degs_delta(previous.yaw_deg, yaw_deg) if previous is not None else 0.0,
            pitch_deg=pitch_deg,
        )
        steps.append(step)
        previous = step

    return TelemetrySeries(steps)


def _straight_rows(count: int, interval_ms: int = 500, advance_m: float = 5.0,
                   yaw_deg: float = 0.0, pitch_deg: float = 0.0) -> List[Row]:
    return [(interval_ms, advance_m, yaw_deg, pitch_deg) for _ in range(count)]


@pytest.fixture
def no_gimbal_config():
    """Default thresholds on a log whose attitude is the airframe's (no lag trim)."""
    return ThresholdConfig(gimbal_mode=GimbalMode.NOT_USED)


@pytest.fixture
def single_leg_series():
    """Five steps flying straight north, 5 m and 500 ms apart."""
    return _make_series(_straight_rows(5))


@pytest.fixture
def gap_series():
    """Ten straight steps with a 1500 ms logging gap before step 5."""
    rows = _straight_rows(10)
    rows[5] = (1500, 5.0, 0.0, 0.0)
    return _make_series(rows)


@pytest.fixture
def make_series():
    """Factory building a series from (interval_ms, advance_m, yaw_deg, pitch_deg) rows."""
    return _make_series


@pytest.fixture
def straight_rows():
    """Factory for rows of straight, level flight."""
    return _straight_rows
