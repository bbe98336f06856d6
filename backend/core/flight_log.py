"""
Flight log file parsing and handling.

This module contains functions for loading drone flight logs into a pandas
DataFrame of sections (one row per logged sample). CSV flight logs carry
position, altitude and attitude; GPX tracks carry position and altitude only,
so flights loaded from GPX fall back to a single leg.
"""

import os
import gpxpy
import pandas as pd
import logging
from typing import Tuple, Dict, Any, Optional

from core.validation import validate_file_upload, validate_sections_dataframe, ValidationError

logger = logging.getLogger(__name__)


# Accepted CSV header spellings, mapped to section column names
CSV_COLUMN_ALIASES = {
    'lat': 'latitude',
    'latitude': 'latitude',
    'lon': 'longitude',
    'lng': 'longitude',
    'long': 'longitude',
    'longitude': 'longitude',
    'alt': 'altitude_m',
    'altitude': 'altitude_m',
    'altitude_m': 'altitude_m',
    'yaw': 'yaw_deg',
    'yaw_deg': 'yaw_deg',
    'heading': 'yaw_deg',
    'pitch': 'pitch_deg',
    'pitch_deg': 'pitch_deg',
    'roll': 'roll_deg',
    'roll_deg': 'roll_deg',
    'time': 'time',
    'datetime': 'time',
    'timestamp': 'time',
    'time_ms': 'time_ms',
    'offset_ms': 'time_ms',
    'time_s': 'time_s',
    'offset_s': 'time_s',
}


def normalize_time_column(df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert whichever time column the log has into 'time_ms' offsets from the first sample.

    Raises:
        ValidationError: If the log has no recognisable time column or no usable times
    """
    result = df.copy()

    if 'time_ms' in result.columns:
        offsets = pd.to_numeric(result['time_ms'], errors='coerce')
    elif 'time_s' in result.columns:
        offsets = pd.to_numeric(result['time_s'], errors='coerce') * 1000
    elif 'time' in result.columns:
        timestamps = pd.to_datetime(result['time'], errors='coerce', utc=True)
        if timestamps.isna().all():
            raise ValidationError("Flight log time column could not be parsed")
        offsets = (timestamps - timestamps.dropna().iloc[0]).dt.total_seconds() * 1000
        result['timestamp'] = timestamps
    else:
        raise ValidationError("Flight log has no time column (expected time, time_ms or time_s)")

    if offsets.dropna().empty:
        raise ValidationError("Flight log has no timestamped sections")

    result['time_ms'] = (offsets - offsets.dropna().iloc[0]).round()
    return result.drop(columns=[c for c in ('time', 'time_s') if c in result.columns])


def load_csv_flight_log(csv_file) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load and parse a CSV flight log into a sections DataFrame.

    Args:
        csv_file: A file-like object or path containing CSV data

    Returns:
        tuple: (DataFrame with section data, dict with metadata)

    Raises:
        ValidationError: If parsing or validation fails
    """
    try:
        raw = pd.read_csv(csv_file)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid CSV flight log: {str(e)}") from e

    renamed = {col: CSV_COLUMN_ALIASES[col.strip().lower()] for col in raw.columns
               if col.strip().lower() in CSV_COLUMN_ALIASES}
    df = raw.rename(columns=renamed)
    df = normalize_time_column(df)

    metadata = {
        'name': _file_stem(csv_file),
        'format': 'csv',
        'has_attitude': 'yaw_deg' in df.columns and 'pitch_deg' in df.columns,
    }

    validated_df = validate_sections_dataframe(df, f"CSV flight log {metadata['name'] or 'unknown'}")

    logger.info(f"Successfully loaded CSV flight log with {len(validated_df)} sections")
    return validated_df, metadata


def load_gpx_flight_log(gpx_file) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load and parse a GPX track into a sections DataFrame.

    Args:
        gpx_file: A file-like object containing GPX data

    Returns:
        tuple: (DataFrame with section data, dict with metadata)

    Raises:
        ValidationError: If parsing or validation fails
    """
    try:
        gpx = gpxpy.parse(gpx_file)

        if not gpx.tracks:
            raise ValidationError("GPX file contains no tracks")

    except gpxpy.gpx.GPXException as e:
        raise ValidationError(f"Invalid GPX file format: {str(e)}") from e

    metadata = {
        'name': gpx.tracks[0].name or _file_stem(gpx_file),
        'format': 'gpx',
        'has_attitude': False,
    }

    data = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                data.append({
                    'time': point.time,
                    'latitude': point.latitude,
                    'longitude': point.longitude,
                    'altitude_m': point.elevation,
                })

    df = normalize_time_column(pd.DataFrame(data))
    validated_df = validate_sections_dataframe(df, f"GPX file {metadata['name'] or 'unknown'}")

    logger.info(f"Successfully loaded GPX file with {len(validated_df)} track points")
    return validated_df, metadata


def load_flight_log(log_file, filename: Optional[str] = None) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load a flight log, choosing the parser from the file extension.

    Args:
        log_file: A file-like object containing the log
        filename: Name to take the extension from (defaults to log_file.name)

    Returns:
        tuple: (DataFrame with section data, dict with metadata)
    """
    filename = filename or getattr(log_file, 'name', '') or ''
    validate_file_upload(log_file, filename=filename or None)

    if filename.lower().endswith('.gpx'):
        df, metadata = load_gpx_flight_log(log_file)
    else:
        df, metadata = load_csv_flight_log(log_file)

    if filename and not metadata.get('name'):
        metadata['name'] = os.path.splitext(os.path.basename(filename))[0]

    return df, metadata


def load_flight_log_from_path(file_path: str) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load a flight log from disk path.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Flight log not found: {file_path}")

    with open(file_path, 'r') as f:
        return load_flight_log(f, file_path)


def _file_stem(file_obj) -> Optional[str]:
    name = file_obj if isinstance(file_obj, str) else getattr(file_obj, 'name', None)
    if not isinstance(name, str):
        return None
    return os.path.splitext(os.path.basename(name))[0]
