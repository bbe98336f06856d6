"""
Shared flight leg analysis service.

This module provides the single analysis pipeline used by the API and the
command line script, so both report the same legs for the same flight log.
"""

import pandas as pd
import logging
from typing import Dict, Any, Optional, Tuple

from core.constants import (
    MILLISECONDS_PER_SECOND,
    USE_LEGS_MIN_SECTIONS,
    USE_LEGS_MIN_LEGS,
    USE_LEGS_MIN_LINEAL_FRACTION,
)
from core.flight_log import load_flight_log
from core.legs import (
    compute_step_leg_ids,
    assemble_legs,
    summarise_legs,
    link_steps_to_legs,
    no_flight_data_legs,
    overlapping_leg_range,
    LegCollection,
    SegmentationStatus,
    legs_to_dataframe,
)
from core.models.config import ThresholdConfig
from core.telemetry import TelemetrySeries, build_series
from core.validation import validate_threshold_config
from config.settings import DEFAULT_SMOOTH_RADIUS

logger = logging.getLogger(__name__)


class LegAnalysisResult:
    """Container for leg analysis results."""

    def __init__(self,
                 series: TelemetrySeries,
                 legs: LegCollection,
                 config: ThresholdConfig,
                 status: SegmentationStatus,
                 filename: str,
                 metadata: Optional[Dict[str, Any]] = None):
        self.series = series
        self.legs = legs
        self.config = config
        self.status = status
        self.filename = filename
        self.metadata = metadata or {}

        # Calculate derived metrics
        self._calculate_summary_metrics()

    def _calculate_summary_metrics(self) -> None:
        """Calculate flight level metrics from the legs and steps."""
        self.section_count = len(self.series.sections) or len(self.series)
        self.step_count = len(self.series)
        self.total_distance_m = self.series.total_lineal_m()
        self.leg_distance_m = self.legs.sum_lineal_m() if self.step_count else 0.0

        last_key = self.series.last_key
        self.duration_ms = self.series[last_key].sum_time_ms if last_key is not None else 0

        self.use_legs = should_use_legs(self.section_count, self.legs, self.total_distance_m)
        self.default_run_from_s, self.default_run_to_s = default_run_window(
            self.legs, self.use_legs, self.duration_ms)

        run_from_s = self.config.run_from_s
        run_to_s = self.config.run_to_s
        if run_from_s == 0 and run_to_s == 0:
            run_from_s, run_to_s = self.default_run_from_s, self.default_run_to_s
        self.overlapping_range = overlapping_leg_range(self.legs, run_from_s, run_to_s)

    @property
    def has_flight_data(self) -> bool:
        return self.status == SegmentationStatus.OK

    @property
    def legs_df(self) -> pd.DataFrame:
        return legs_to_dataframe(self.legs)

    def describe(self) -> str:
        """One line flight description, e.g. 'flight.csv: 1234m, 95s, 4 legs'."""
        return (f"{self.filename}: {self.total_distance_m:.0f}m, "
                f"{self.duration_ms / MILLISECONDS_PER_SECOND:.0f}s{self.legs.describe()}")

    def flight_summary(self) -> Dict[str, Any]:
        return {
            'filename': self.filename,
            'status': self.status.value,
            'section_count': self.section_count,
            'step_count': self.step_count,
            'duration_s': self.duration_ms / MILLISECONDS_PER_SECOND,
            'total_distance_m': float(self.total_distance_m),
            'leg_distance_m': float(self.leg_distance_m),
            'leg_count': len(self.legs),
            'use_legs': self.use_legs,
            'default_run_from_s': self.default_run_from_s,
            'default_run_to_s': self.default_run_to_s,
        }


def should_use_legs(section_count: int, legs: LegCollection, total_distance_m: float) -> bool:
    """
    Are the legs a good default way to view this flight?

    Only when the flight is long enough, has several legs, and a meaningful
    share of the distance flown was flown within legs.
    """
    if section_count <= USE_LEGS_MIN_SECTIONS or len(legs) < USE_LEGS_MIN_LEGS:
        return False
    if total_distance_m <= 0:
        return False
    return legs.sum_lineal_m() > USE_LEGS_MIN_LINEAL_FRACTION * total_distance_m


def default_run_window(legs: LegCollection, use_legs: bool, duration_ms: int) -> Tuple[float, float]:
    """
    Default playback window in seconds.

    When legs are used the window spans the first leg's start to the last
    leg's end, otherwise the whole flight.
    """
    if use_legs and len(legs) and legs[0].start_time_s is not None and legs[-1].end_time_s is not None:
        return legs[0].start_time_s, legs[-1].end_time_s
    return 0.0, duration_ms / MILLISECONDS_PER_SECOND


def analyze_flight(series: TelemetrySeries,
                   config: Optional[ThresholdConfig] = None,
                   filename: str = "flight.csv",
                   metadata: Optional[Dict[str, Any]] = None) -> LegAnalysisResult:
    """
    Run leg detection on a telemetry series that's already built.

    Args:
        series: Steps of the flight
        config: Thresholds (defaults apply when omitted)
        filename: Name for the flight (for display purposes)
        metadata: Optional metadata dict

    Returns:
        LegAnalysisResult: Complete analysis results

    Raises:
        ValidationError: If the thresholds are out of range
        LegInvariantError: If the detected legs are inconsistent
    """
    config = (config or ThresholdConfig()).normalised()
    validate_threshold_config(config)

    logger.info(f"Analyzing flight {filename} with {len(series)} steps")

    # Step 1: Assign steps to legs, starting from a clean slate
    series.reset_leg_ids()
    if len(series):
        result = compute_step_leg_ids(series, config)
        status = result.status
    else:
        result = None
        status = SegmentationStatus.NO_YAW_PITCH_DATA

    if result is None or not result.ok:
        # Step 2a: No usable telemetry, so the whole run window is one leg
        last_key = series.last_key
        flight_end_ms = series[last_key].sum_time_ms if last_key is not None else None
        legs = no_flight_data_legs(config, flight_end_ms)
        legs.assert_good(has_steps=False)
        logger.warning(f"No yaw/pitch data for {filename}; using a single placeholder leg")
        return LegAnalysisResult(series, legs, config, status, filename, metadata)

    # Step 2: Build legs, trimming gimbal settling time where needed
    legs = assemble_legs(series, result, config)

    # Step 3: Recompute aggregates and relink steps to their legs
    summarise_legs(legs, series)
    link_steps_to_legs(legs, series)
    legs.assert_good(has_steps=True)

    logger.info(f"Successfully analyzed {filename}: {len(legs)} legs")
    return LegAnalysisResult(series, legs, config, status, filename, metadata)


def analyze_flight_data(sections: pd.DataFrame,
                        config: Optional[ThresholdConfig] = None,
                        filename: str = "flight.csv",
                        metadata: Optional[Dict[str, Any]] = None,
                        smooth_radius: int = DEFAULT_SMOOTH_RADIUS) -> LegAnalysisResult:
    """
    Build the telemetry series for a sections DataFrame and analyze it.

    Raises:
        ValidationError: If the sections or thresholds are invalid
    """
    series = build_series(sections, smooth_radius)
    return analyze_flight(series, config, filename, metadata)


def analyze_flight_file(file,
                        config: Optional[ThresholdConfig] = None,
                        filename: Optional[str] = None,
                        smooth_radius: int = DEFAULT_SMOOTH_RADIUS) -> LegAnalysisResult:
    """
    Analyze a single flight log file using the standard pipeline.

    Args:
        file: File object to analyze (CSV or GPX)
        config: Thresholds (defaults apply when omitted)
        filename: Name to report and to pick the parser by
        smooth_radius: Smoothing window radius in sections

    Returns:
        LegAnalysisResult: Complete analysis results
    """
    filename = filename or getattr(file, 'name', str(file))

    try:
        sections, metadata = load_flight_log(file, filename)
        logger.info(f"Loaded {filename} with {len(sections)} sections")

        return analyze_flight_data(sections, config, filename, metadata, smooth_radius)

    except Exception as e:
        logger.error(f"Error analyzing {filename}: {e}")
        raise
