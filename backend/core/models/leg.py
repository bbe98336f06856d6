"""
Flight leg data models.

This module defines the data structures for flight legs detected in drone
telemetry, and the time-ordered collection the pipeline rebuilds on every run.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Iterator
import pandas as pd

from core.calculations import id_to_letter, summarise_range
from core.constants import MILLISECONDS_PER_SECOND
from core.models.telemetry import Step
from core.validation import assert_invariant


@dataclass
class Leg:
    """
    Represents one flight leg.

    A leg is a contiguous run of steps where the drone flew in a mostly
    constant direction for a significant duration and distance. The leg
    does not own its steps: membership is the steps' leg_id, and the key
    range here is a cache rebuilt from it.
    """
    leg_id: int

    # Step key boundaries (None for a leg synthesised without telemetry)
    first_key: Optional[int] = None
    last_key: Optional[int] = None

    # Cumulative distance boundaries
    min_sum_lineal_m: Optional[float] = None
    max_sum_lineal_m: Optional[float] = None

    why_leg_ended: str = ""

    # Aggregates filled in by the summariser
    min_sum_time_ms: Optional[int] = None
    max_sum_time_ms: Optional[int] = None
    min_altitude_m: Optional[float] = None
    max_altitude_m: Optional[float] = None
    min_speed_mps: Optional[float] = None
    max_speed_mps: Optional[float] = None
    sum_altitude_m: float = 0.0
    altitude_count: int = 0
    step_count: int = 0

    @property
    def name(self) -> str:
        """Display name: A, B, C, ... by id."""
        return id_to_letter(self.leg_id)

    @property
    def duration_ms(self) -> int:
        """Elapsed time between the first and last step."""
        if self.min_sum_time_ms is None or self.max_sum_time_ms is None:
            return 0
        return self.max_sum_time_ms - self.min_sum_time_ms

    @property
    def distance_m(self) -> float:
        """Distance flown along the leg in meters."""
        if self.min_sum_lineal_m is None or self.max_sum_lineal_m is None:
            return 0.0
        return self.max_sum_lineal_m - self.min_sum_lineal_m

    @property
    def average_speed_mps(self) -> float:
        """Average ground speed over the leg in meters per second."""
        if self.duration_ms <= 0:
            return 0.0
        return self.distance_m * MILLISECONDS_PER_SECOND / self.duration_ms

    @property
    def average_altitude_m(self) -> Optional[float]:
        """Mean altitude of the member steps that report one."""
        if self.altitude_count == 0:
            return None
        return self.sum_altitude_m / self.altitude_count

    @property
    def start_time_s(self) -> Optional[float]:
        return None if self.min_sum_time_ms is None else self.min_sum_time_ms / MILLISECONDS_PER_SECOND

    @property
    def end_time_s(self) -> Optional[float]:
        return None if self.max_sum_time_ms is None else self.max_sum_time_ms / MILLISECONDS_PER_SECOND

    def contains_key(self, key: int) -> bool:
        """Does the step key fall within this leg's key range?"""
        if self.first_key is None or self.last_key is None:
            return False
        return self.first_key <= key <= self.last_key

    def reset_summary(self) -> None:
        """Forget all aggregates so they can be recomputed from the steps."""
        self.first_key = None
        self.last_key = None
        self.min_sum_lineal_m = None
        self.max_sum_lineal_m = None
        self.min_sum_time_ms = None
        self.max_sum_time_ms = None
        self.min_altitude_m = None
        self.max_altitude_m = None
        self.min_speed_mps = None
        self.max_speed_mps = None
        self.sum_altitude_m = 0.0
        self.altitude_count = 0
        self.step_count = 0

    def summarise_step(self, step: Step) -> None:
        """Extend the aggregates with one member step."""
        self.first_key, self.last_key = summarise_range(self.first_key, self.last_key, step.key)
        self.min_sum_time_ms, self.max_sum_time_ms = summarise_range(
            self.min_sum_time_ms, self.max_sum_time_ms, step.sum_time_ms)
        self.min_sum_lineal_m, self.max_sum_lineal_m = summarise_range(
            self.min_sum_lineal_m, self.max_sum_lineal_m, step.sum_lineal_m)
        self.min_altitude_m, self.max_altitude_m = summarise_range(
            self.min_altitude_m, self.max_altitude_m, step.altitude_m)
        self.min_speed_mps, self.max_speed_mps = summarise_range(
            self.min_speed_mps, self.max_speed_mps, step.speed_mps)

        if step.altitude_m is not None:
            self.sum_altitude_m += step.altitude_m
            self.altitude_count += 1

        self.step_count += 1

    def to_summary(self) -> 'LegSummary':
        """Build the flat public summary record."""
        return LegSummary(
            leg_id=self.leg_id,
            leg_name=self.name,
            start_time_ms=self.min_sum_time_ms,
            end_time_ms=self.max_sum_time_ms,
            distance_m=self.distance_m,
            average_altitude_m=self.average_altitude_m,
            average_speed_mps=self.average_speed_mps,
            why_leg_ended=self.why_leg_ended,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert leg to dictionary for DataFrame creation."""
        return {
            'leg_id': self.leg_id,
            'leg_name': self.name,
            'why_leg_ended': self.why_leg_ended,
            'first_key': self.first_key,
            'last_key': self.last_key,
            'min_sum_time_ms': self.min_sum_time_ms,
            'max_sum_time_ms': self.max_sum_time_ms,
            'duration_ms': self.duration_ms,
            'min_sum_lineal_m': self.min_sum_lineal_m,
            'max_sum_lineal_m': self.max_sum_lineal_m,
            'distance_m': self.distance_m,
            'min_altitude_m': self.min_altitude_m,
            'max_altitude_m': self.max_altitude_m,
            'average_altitude_m': self.average_altitude_m,
            'average_speed_mps': self.average_speed_mps,
            'step_count': self.step_count,
        }


@dataclass
class LegSummary:
    """Flat per-leg record handed to reporting and the public API."""
    leg_id: int
    leg_name: str
    start_time_ms: Optional[int]
    end_time_ms: Optional[int]
    distance_m: float
    average_altitude_m: Optional[float]
    average_speed_mps: float
    why_leg_ended: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'leg_id': self.leg_id,
            'leg_name': self.leg_name,
            'start_time_ms': self.start_time_ms,
            'end_time_ms': self.end_time_ms,
            'distance_m': self.distance_m,
            'average_altitude_m': self.average_altitude_m,
            'average_speed_mps': self.average_speed_mps,
            'why_leg_ended': self.why_leg_ended,
        }


class LegCollection:
    """
    Time-ordered list of legs, rebuilt on every segmentation run.

    Also owns the step key -> leg index that stands in for a step's
    reference to its leg.
    """

    def __init__(self, legs: Optional[List[Leg]] = None):
        self.legs: List[Leg] = list(legs) if legs else []
        self._step_index: Dict[int, Leg] = {}

    def __iter__(self) -> Iterator[Leg]:
        return iter(self.legs)

    def __len__(self) -> int:
        return len(self.legs)

    def __getitem__(self, index: int) -> Leg:
        return self.legs[index]

    def add(self, leg: Leg) -> None:
        self.legs.append(leg)

    def leg_of(self, step_key: int) -> Optional[Leg]:
        """Return the leg the step was linked to by the last reconciliation pass."""
        return self._step_index.get(step_key)

    def clear_step_index(self) -> None:
        self._step_index.clear()

    def link_step(self, step_key: int, leg: Leg) -> None:
        self._step_index[step_key] = leg

    @property
    def ids(self) -> List[int]:
        return [leg.leg_id for leg in self.legs]

    def sum_lineal_m(self) -> float:
        """Total distance flown within legs."""
        return sum(leg.distance_m for leg in self.legs
                   if leg.min_sum_lineal_m is not None and leg.max_sum_lineal_m is not None)

    def describe(self) -> str:
        """Short description for flight summaries, e.g. ', 4 legs'."""
        if not self.legs:
            return ""
        return f", {len(self.legs)} legs"

    def summaries(self) -> List[LegSummary]:
        return [leg.to_summary() for leg in self.legs]

    def assert_good(self, has_steps: bool) -> None:
        """
        Check the finalized legs are internally consistent.

        Raises:
            LegInvariantError: If any leg has bad ids or bounds
        """
        previous_last_key = None
        for leg in self.legs:
            assert_invariant(leg.leg_id > 0, "LegCollection.assert_good", f"bad leg id {leg.leg_id}")
            if not has_steps:
                continue

            context = f"leg {leg.leg_id}"
            assert_invariant(leg.first_key is not None and leg.first_key >= 0,
                             "LegCollection.assert_good", f"{context} has bad first key {leg.first_key}")
            assert_invariant(leg.last_key is not None and leg.last_key >= leg.first_key,
                             "LegCollection.assert_good", f"{context} has bad last key {leg.last_key}")
            assert_invariant(leg.duration_ms >= 0,
                             "LegCollection.assert_good", f"{context} has negative duration")
            assert_invariant(previous_last_key is None or leg.first_key > previous_last_key,
                             "LegCollection.assert_good", f"{context} overlaps the previous leg")
            previous_last_key = leg.last_key


def legs_to_dataframe(legs: LegCollection) -> pd.DataFrame:
    """
    Convert a collection of legs to a pandas DataFrame.

    Args:
        legs: Legs to convert

    Returns:
        pandas DataFrame with one row per leg
    """
    if not len(legs):
        return pd.DataFrame()

    return pd.DataFrame([leg.to_dict() for leg in legs])
