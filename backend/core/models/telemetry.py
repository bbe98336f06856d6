"""
Telemetry data models.

This module defines the raw flight log sample (Section) and the derived,
smoothed sample the leg engine walks over (Step).
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from core.calculations import yaw_degs_delta, planar_distance_m, speed_mps


@dataclass(frozen=True)
class Section:
    """
    One raw telemetry sample as logged by the drone.

    Attitude fields are None when the flight log format never provides them.
    """
    key: int
    time_ms: int  # Offset from the start of the flight
    latitude: float
    longitude: float
    altitude_m: Optional[float] = None
    yaw_deg: Optional[float] = None
    pitch_deg: Optional[float] = None
    roll_deg: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict, compare=False)  # e.g. image name, heat range


@dataclass
class Step:
    """
    One smoothed telemetry sample, keyed like its Section.

    Everything except leg_id is fixed before leg detection runs. leg_id is 0
    while the step belongs to no leg.
    """
    key: int

    # Time
    time_ms: int  # Interval since the previous step
    sum_time_ms: int  # Elapsed since the start of the flight

    # Position in the flight's local frame
    northing_m: float
    easting_m: float
    lineal_m: float = 0.0  # Distance from the previous step
    sum_lineal_m: float = 0.0  # Distance since the start of the flight
    altitude_m: Optional[float] = None

    # Attitude
    yaw_deg: Optional[float] = None
    delta_yaw_deg: Optional[float] = None  # Yaw change from the previous step
    pitch_deg: Optional[float] = None
    roll_deg: Optional[float] = None

    leg_id: int = 0

    @property
    def speed_mps(self) -> float:
        """Speed over the interval ending at this step."""
        return speed_mps(self.lineal_m, self.time_ms)

    def yaw_drift_from(self, start: 'Step') -> float:
        """Yaw change between start and this step, wrapped to -180..+180."""
        return yaw_degs_delta(start.yaw_deg, self.yaw_deg)

    def pitch_drift_from(self, start: 'Step') -> float:
        """Pitch change between start and this step."""
        return (start.pitch_deg or 0.0) - (self.pitch_deg or 0.0)

    def distance_to(self, other: 'Step') -> float:
        """Straight line distance to another step in meters."""
        return planar_distance_m(self.northing_m, self.easting_m, other.northing_m, other.easting_m)

    def to_dict(self) -> Dict[str, Any]:
        """Convert step to dictionary for DataFrame creation."""
        return {
            'key': self.key,
            'time_ms': self.time_ms,
            'sum_time_ms': self.sum_time_ms,
            'northing_m': self.northing_m,
            'easting_m': self.easting_m,
            'lineal_m': self.lineal_m,
            'sum_lineal_m': self.sum_lineal_m,
            'altitude_m': self.altitude_m,
            'yaw_deg': self.yaw_deg,
            'delta_yaw_deg': self.delta_yaw_deg,
            'pitch_deg': self.pitch_deg,
            'roll_deg': self.roll_deg,
            'leg_id': self.leg_id,
        }
