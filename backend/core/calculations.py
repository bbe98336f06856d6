"""
Shared calculations module.

This module contains the shared calculation functions used by the telemetry
and leg modules. This provides a single source of truth for the angle,
distance and range arithmetic.
"""

import math
from geopy.distance import geodesic
from typing import Optional, Tuple

from core.constants import (
    FULL_CIRCLE_DEGREES, ANGLE_WRAP_BOUNDARY_DEGREES, MILLISECONDS_PER_SECOND
)


# =============================================================================
# BASIC GEOMETRIC CALCULATIONS
# =============================================================================

def relative_offset_m(origin_lat: float, origin_lon: float,
                      lat: float, lon: float) -> Tuple[float, float]:
    """
    Calculate the northing/easting of a point relative to an origin.

    Args:
        origin_lat, origin_lon: Origin of the local frame (degrees)
        lat, lon: Point to convert (degrees)

    Returns:
        (northing_m, easting_m), positive to the north and east
    """
    northing = geodesic((origin_lat, origin_lon), (lat, origin_lon)).meters
    easting = geodesic((lat, origin_lon), (lat, lon)).meters

    if lat < origin_lat:
        northing = -northing
    if lon < origin_lon:
        easting = -easting

    return northing, easting


def planar_distance_m(northing1: float, easting1: float,
                      northing2: float, easting2: float) -> float:
    """Straight line distance between two points in the local frame (meters)."""
    return math.hypot(northing2 - northing1, easting2 - easting1)


# =============================================================================
# ANGLE CALCULATIONS
# =============================================================================

def wrap_yaw_delta(delta_deg: float) -> float:
    """Wrap a yaw difference into the -180..+180 degree range."""
    if delta_deg > ANGLE_WRAP_BOUNDARY_DEGREES:
        delta_deg -= FULL_CIRCLE_DEGREES
    elif delta_deg < -ANGLE_WRAP_BOUNDARY_DEGREES:
        delta_deg += FULL_CIRCLE_DEGREES
    return delta_deg


def yaw_degs_delta(from_yaw_deg: Optional[float], to_yaw_deg: Optional[float]) -> float:
    """
    Calculate the change in heading between two yaw readings.

    A jump from +174 to -166 degrees is a 20 degree turn, not 340, so the
    result is wrapped into -180..+180. Missing readings count as no change.

    Args:
        from_yaw_deg: Earlier yaw (degrees, -180..+180)
        to_yaw_deg: Later yaw (degrees, -180..+180)

    Returns:
        Yaw difference in degrees
    """
    if from_yaw_deg is None or to_yaw_deg is None:
        return 0.0

    return wrap_yaw_delta(from_yaw_deg - to_yaw_deg)


def normalize_yaw(yaw_deg: float) -> float:
    """Normalize any yaw angle into the -180..+180 degree range."""
    yaw = math.fmod(yaw_deg, FULL_CIRCLE_DEGREES)
    return wrap_yaw_delta(yaw)


# =============================================================================
# SPEED AND RANGE CALCULATIONS
# =============================================================================

def speed_mps(lineal_m: float, time_ms: int) -> float:
    """Speed over one interval in meters per second (0 for a degenerate interval)."""
    if time_ms <= 0 or lineal_m <= 0:
        return 0.0
    return MILLISECONDS_PER_SECOND * lineal_m / time_ms


def summarise_range(current_min: Optional[float], current_max: Optional[float],
                    value: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
    """
    Extend a (min, max) range with a new value.

    Missing values leave the range unchanged. An empty range is seeded by the
    first value seen.
    """
    if value is None:
        return current_min, current_max

    if current_max is None:
        return value, value

    return min(current_min, value), max(current_max, value)


# =============================================================================
# NAMING
# =============================================================================

def id_to_letter(leg_id: int) -> str:
    """
    Convert a one-based id into a spreadsheet style name.

    1 -> "A", 26 -> "Z", 27 -> "AA". Ids below 1 have no name.
    """
    if leg_id <= 0:
        return ""

    name = ""
    remaining = leg_id
    while remaining > 0:
        remaining, remainder = divmod(remaining - 1, 26)
        name = chr(ord('A') + remainder) + name

    return name
