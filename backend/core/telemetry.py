"""
Telemetry series construction.

This module turns a validated sections DataFrame (one row per flight log
sample) into the ordered Step series the leg pipeline works on. Each
function has a single responsibility and can be tested independently.
"""

import pandas as pd
import numpy as np
import logging
from bisect import bisect_left, bisect_right
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from core.calculations import relative_offset_m, yaw_degs_delta, normalize_yaw
from core.constants import DEFAULT_SMOOTH_SECTION_RADIUS, MAX_SENSIBLE_SECTION_DURATION_MS
from core.models.telemetry import Section, Step
from core.validation import validate_sections_dataframe

logger = logging.getLogger(__name__)


ATTITUDE_COLUMNS = ['altitude_m', 'yaw_deg', 'pitch_deg', 'roll_deg']
SECTION_COLUMNS = ['key', 'time_ms', 'latitude', 'longitude'] + ATTITUDE_COLUMNS


class TelemetrySeries:
    """
    Ordered key -> Step mapping for one flight.

    Steps are held in ascending key order. The raw sections are kept only to
    answer the data availability questions.
    """

    def __init__(self, steps: Iterable[Step], sections: Optional[Iterable[Section]] = None):
        self._steps: Dict[int, Step] = {step.key: step for step in sorted(steps, key=lambda s: s.key)}
        self._keys: List[int] = list(self._steps)
        self._sections: Dict[int, Section] = {s.key: s for s in sections} if sections is not None else {}

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, key: int) -> bool:
        return key in self._steps

    def __getitem__(self, key: int) -> Step:
        return self._steps[key]

    def get(self, key: int) -> Optional[Step]:
        return self._steps.get(key)

    def keys(self) -> List[int]:
        return list(self._steps.keys())

    def items(self) -> Iterator[Tuple[int, Step]]:
        return iter(self._steps.items())

    @property
    def sections(self) -> List[Section]:
        return list(self._sections.values())

    @property
    def first_key(self) -> Optional[int]:
        return next(iter(self._steps), None)

    @property
    def last_key(self) -> Optional[int]:
        return next(reversed(self._steps), None) if self._steps else None

    def steps_between(self, first_key: int, last_key: int) -> Iterator[Step]:
        """Steps with first_key <= key <= last_key in key order (keys may have gaps)."""
        start = bisect_left(self._keys, first_key)
        stop = bisect_right(self._keys, last_key)
        for key in self._keys[start:stop]:
            yield self._steps[key]

    def has_yaw_data(self) -> bool:
        """Did the flight log provide yaw at all? Some drone models never do."""
        if self._sections:
            return any(s.yaw_deg is not None for s in self._sections.values())
        return any(step.yaw_deg is not None for step in self._steps.values())

    def has_pitch_data(self) -> bool:
        """Did the flight log provide pitch at all?"""
        if self._sections:
            return any(s.pitch_deg is not None for s in self._sections.values())
        return any(step.pitch_deg is not None for step in self._steps.values())

    def reset_leg_ids(self) -> None:
        """Clear every step's leg id. Required before re-running leg detection."""
        for step in self._steps.values():
            step.leg_id = 0

    def step_leg_ids(self) -> Dict[int, int]:
        return {key: step.leg_id for key, step in self._steps.items()}

    def total_lineal_m(self) -> float:
        """Distance flown over the whole series."""
        last_key = self.last_key
        return 0.0 if last_key is None else self._steps[last_key].sum_lineal_m

    def nearest_step(self, flight_ms: int) -> Optional[Step]:
        """Return the step whose elapsed time is closest to flight_ms (full scan)."""
        nearest = None
        nearest_delta = None
        for step in self._steps.values():
            delta = abs(step.sum_time_ms - flight_ms)
            if nearest_delta is None or delta < nearest_delta:
                nearest = step
                nearest_delta = delta
            elif delta > nearest_delta:
                break
        return nearest

    def to_dataframe(self) -> pd.DataFrame:
        if not self._steps:
            return pd.DataFrame()
        return pd.DataFrame([step.to_dict() for step in self._steps.values()])


def sections_from_dataframe(df: pd.DataFrame) -> List[Section]:
    """
    Convert a validated sections DataFrame into Section objects.

    Args:
        df: DataFrame with 'time_ms', 'latitude', 'longitude' and optional
            attitude columns; any other columns are kept as extras

    Returns:
        List of sections in time order
    """
    extra_columns = [col for col in df.columns if col not in SECTION_COLUMNS]
    keys = df['key'] if 'key' in df.columns else pd.Series(range(len(df)), index=df.index)

    sections = []
    for key, (_, row) in zip(keys, df.iterrows()):
        sections.append(Section(
            key=int(key),
            time_ms=int(row['time_ms']),
            latitude=float(row['latitude']),
            longitude=float(row['longitude']),
            altitude_m=_optional_float(row.get('altitude_m')),
            yaw_deg=_optional_float(row.get('yaw_deg')),
            pitch_deg=_optional_float(row.get('pitch_deg')),
            roll_deg=_optional_float(row.get('roll_deg')),
            extras={col: row[col] for col in extra_columns if pd.notna(row[col])},
        ))

    return sections


def calculate_section_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add interval time and local-frame position to each section.

    Args:
        df: DataFrame with 'time_ms', 'latitude', 'longitude' columns

    Returns:
        DataFrame with added 'interval_ms', 'northing_m', 'easting_m' columns
    """
    result = df.copy()

    # The first interval is the offset of the first sample from the flight start
    intervals = result['time_ms'].diff()
    intervals.iloc[0] = result['time_ms'].iloc[0]
    result['interval_ms'] = intervals.astype(int)

    origin_lat = result['latitude'].iloc[0]
    origin_lon = result['longitude'].iloc[0]
    offsets = [relative_offset_m(origin_lat, origin_lon, lat, lon)
               for lat, lon in zip(result['latitude'], result['longitude'])]
    result['northing_m'] = [northing for northing, _ in offsets]
    result['easting_m'] = [easting for _, easting in offsets]

    logger.debug(f"Calculated section metrics for {len(result)} sections")
    return result


def smooth_sections(df: pd.DataFrame, radius: int = DEFAULT_SMOOTH_SECTION_RADIUS) -> pd.DataFrame:
    """
    Smooth position, altitude and attitude over a centred window.

    Smoothing never spans a gap longer than MAX_SENSIBLE_SECTION_DURATION_MS.
    Yaw is smoothed on the unwrapped angle so a +179 to -179 crossing does
    not average to 0.

    Args:
        df: DataFrame from calculate_section_metrics
        radius: Number of sections either side to average over (0 disables)

    Returns:
        Smoothed copy of the DataFrame
    """
    result = df.copy()
    if radius <= 0 or len(result) < 2:
        return result

    window = 2 * radius + 1
    run_ids = (result['interval_ms'] > MAX_SENSIBLE_SECTION_DURATION_MS).cumsum()

    def rolling_mean(series: pd.Series) -> pd.Series:
        return series.groupby(run_ids).transform(
            lambda run: run.rolling(window, center=True, min_periods=1).mean())

    for col in ['northing_m', 'easting_m', 'altitude_m', 'pitch_deg', 'roll_deg']:
        if col in result.columns and result[col].notna().all():
            result[col] = rolling_mean(result[col])

    if 'yaw_deg' in result.columns and result['yaw_deg'].notna().all():
        unwrapped = pd.Series(np.degrees(np.unwrap(np.radians(result['yaw_deg'].to_numpy()))),
                              index=result.index)
        result['yaw_deg'] = [normalize_yaw(yaw) for yaw in rolling_mean(unwrapped)]

    return result


def fill_attitude_gaps(df: pd.DataFrame) -> pd.DataFrame:
    """Carry the nearest reading into samples where a partially logged attitude is missing."""
    result = df.copy()
    for col in ['yaw_deg', 'pitch_deg', 'roll_deg', 'altitude_m']:
        if col not in result.columns:
            continue
        missing = result[col].isna()
        if missing.any() and not missing.all():
            logger.warning(f"Filling {missing.sum()} missing {col} values from neighbouring sections")
            result[col] = result[col].ffill().bfill()
    return result


def build_steps(df: pd.DataFrame) -> List[Step]:
    """
    Build Step objects from smoothed section metrics.

    Args:
        df: DataFrame from smooth_sections

    Returns:
        Steps in key order with cumulative time, distance and delta yaw set
    """
    keys = df['key'] if 'key' in df.columns else pd.Series(range(len(df)), index=df.index)

    steps: List[Step] = []
    previous: Optional[Step] = None
    for key, (_, row) in zip(keys, df.iterrows()):
        step = Step(
            key=int(key),
            time_ms=int(row['interval_ms']),
            sum_time_ms=int(row['time_ms']),
            northing_m=float(row['northing_m']),
            easting_m=float(row['easting_m']),
            altitude_m=_optional_float(row.get('altitude_m')),
            yaw_deg=_optional_float(row.get('yaw_deg')),
            pitch_deg=_optional_float(row.get('pitch_deg')),
            roll_deg=_optional_float(row.get('roll_deg')),
        )

        if previous is not None:
            step.lineal_m = step.distance_to(previous)
            step.sum_lineal_m = previous.sum_lineal_m + step.lineal_m

        if step.yaw_deg is not None:
            step.delta_yaw_deg = yaw_degs_delta(previous.yaw_deg, step.yaw_deg) if previous else 0.0

        steps.append(step)
        previous = step

    return steps


def build_series(df: pd.DataFrame,
                 smooth_radius: int = DEFAULT_SMOOTH_SECTION_RADIUS) -> TelemetrySeries:
    """
    Build the telemetry series for one flight (main entry point).

    Args:
        df: Sections DataFrame as produced by core.flight_log
        smooth_radius: Smoothing window radius in sections

    Returns:
        TelemetrySeries holding both the raw sections and the derived steps
    """
    validate_sections_dataframe(df, "Telemetry series input")

    df = df.reset_index(drop=True)
    sections = sections_from_dataframe(df)

    metrics = calculate_section_metrics(fill_attitude_gaps(df))
    smoothed = smooth_sections(metrics, smooth_radius)
    steps = build_steps(smoothed)

    logger.info(f"Built telemetry series with {len(steps)} steps from {len(sections)} sections")
    return TelemetrySeries(steps, sections)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)
