"""
Input validation and error types for core functions.

This module provides the exception types raised by the leg pipeline and the
validation functions that guard its inputs:

- ValidationError: bad input data or configuration (recoverable, user-facing)
- LegInvariantError: internal consistency failure (fatal, never corrected)
- ZeroDurationLegError: overlap arithmetic on a leg with no duration
"""

import pandas as pd
import numpy as np
import logging
from typing import Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)


SUPPORTED_FLIGHT_LOG_SUFFIXES = ('.csv', '.gpx')


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


class LegInvariantError(AssertionError):
    """
    A leg or step violates an internal consistency invariant.

    Raised with the name of the operation that detected the problem and the
    ids involved. Callers must not recover from it.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation}: {detail}")


class ZeroDurationLegError(ZeroDivisionError):
    """Overlap percentage requested for a leg whose start and end times are equal."""

    def __init__(self, operation: str, leg_id: int):
        self.operation = operation
        self.leg_id = leg_id
        super().__init__(f"{operation}: leg {leg_id} has zero duration")


def assert_invariant(condition: bool, operation: str, detail: str) -> None:
    """
    Raise LegInvariantError if condition does not hold.

    Args:
        condition: The invariant that must be true
        operation: Name of the operation checking the invariant
        detail: Description including the relevant ids
    """
    if not condition:
        logger.error(f"Invariant violated in {operation}: {detail}")
        raise LegInvariantError(operation, detail)


def validate_sections_dataframe(df: pd.DataFrame, context: str = "Flight log") -> pd.DataFrame:
    """
    Validate a flight sections DataFrame has required columns and valid data.

    Args:
        df: DataFrame to validate
        context: Context description for error messages

    Returns:
        Validated DataFrame

    Raises:
        ValidationError: If validation fails
    """
    if df is None:
        raise ValidationError(f"{context}: DataFrame is None")

    if df.empty:
        raise ValidationError(f"{context}: DataFrame is empty")

    required_columns = ['time_ms', 'latitude', 'longitude']
    missing_columns = [col for col in required_columns if col not in df.columns]

    if missing_columns:
        raise ValidationError(f"{context}: Missing required columns: {missing_columns}")

    if not df['latitude'].between(-90, 90).all():
        invalid_count = (~df['latitude'].between(-90, 90)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid latitude values (must be -90 to 90)")

    if not df['longitude'].between(-180, 180).all():
        invalid_count = (~df['longitude'].between(-180, 180)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid longitude values (must be -180 to 180)")

    if df['time_ms'].isna().any():
        raise ValidationError(f"{context}: {df['time_ms'].isna().sum()} sections have no timestamp")

    if (np.diff(df['time_ms'].to_numpy()) < 0).any():
        raise ValidationError(f"{context}: Section timestamps are not in ascending order")

    for col in ('yaw_deg', 'pitch_deg'):
        if col in df.columns and df[col].isna().any():
            nan_count = df[col].isna().sum()
            logger.warning(f"{context}: {nan_count} NaN values in {col} column")

    logger.debug(f"{context}: Validation passed for {len(df)} sections")
    return df


def validate_threshold_config(config: Any) -> None:
    """
    Validate threshold ranges for leg detection.

    Args:
        config: ThresholdConfig to check

    Raises:
        ValidationError: If any threshold is out of valid range
    """
    for name in ('max_leg_step_delta_yaw_deg', 'max_leg_sum_delta_yaw_deg'):
        value = getattr(config, name)
        if not 0 < value <= 180:
            raise ValidationError(f"{name} must be 0-180°, got {value}")

    for name in ('max_leg_step_pitch_deg', 'max_leg_sum_pitch_deg'):
        value = getattr(config, name)
        if not 0 < value <= 180:
            raise ValidationError(f"{name} must be 0-180°, got {value}")

    if not 0 <= config.min_camera_down_deg <= 90:
        raise ValidationError(f"min_camera_down_deg must be 0-90°, got {config.min_camera_down_deg}")

    if not 0 <= config.min_leg_duration_ms <= 3600 * 1000:  # 1 hour max
        raise ValidationError(f"min_leg_duration_ms must be 0-3600000ms, got {config.min_leg_duration_ms}")

    if not 0 <= config.min_leg_distance_m <= 10000:  # 10km max
        raise ValidationError(f"min_leg_distance_m must be 0-10000m, got {config.min_leg_distance_m}")

    if config.max_leg_gap_duration_ms <= 0:
        raise ValidationError(f"max_leg_gap_duration_ms must be positive, got {config.max_leg_gap_duration_ms}")

    if config.run_from_s < 0 or config.run_to_s < 0:
        raise ValidationError(f"Run window must be non-negative, got {config.run_from_s}-{config.run_to_s}s")

    if config.run_to_s and config.run_to_s < config.run_from_s:
        raise ValidationError(f"Run window ends before it starts: {config.run_from_s}-{config.run_to_s}s")


def validate_flight_log_filename(filename: Optional[str]) -> None:
    """
    Check the flight log file name has a supported extension.

    Raises:
        ValidationError: If the name is missing or not a CSV or GPX file
    """
    if not filename:
        raise ValidationError("Flight log has no file name")

    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_FLIGHT_LOG_SUFFIXES:
        raise ValidationError(f"Invalid file type: {suffix or 'none'} "
                              f"(expected one of {', '.join(SUPPORTED_FLIGHT_LOG_SUFFIXES)})")


def validate_file_upload(uploaded_file: Any, max_size: Optional[int] = None,
                         filename: Optional[str] = None) -> None:
    """
    Validate uploaded flight log before processing.

    Args:
        uploaded_file: Uploaded file-like object
        max_size: Optional size limit in bytes (defaults to 10MB)
        filename: Name to check the extension of (defaults to uploaded_file.name)

    Raises:
        ValidationError: If file validation fails
    """
    if uploaded_file is None:
        raise ValidationError("No file uploaded")

    max_size = max_size or 10 * 1024 * 1024
    if hasattr(uploaded_file, 'size') and uploaded_file.size > max_size:
        raise ValidationError(f"File too large: {uploaded_file.size / 1024 / 1024:.1f}MB "
                              f"(max {max_size / 1024 / 1024:.0f}MB)")

    filename = filename or getattr(uploaded_file, 'name', None)
    if isinstance(filename, str):
        validate_flight_log_filename(filename)

    logger.debug(f"File validation passed: {filename or 'unknown'}")
