"""
Legs package.

This package contains functionality for flight leg detection and analysis.
Clean, focused interface with no circular dependencies.
"""

# Leg detection
from .engine import (
    compute_step_leg_ids,
    can_start_leg,
    find_leg_violation,
    passes_quality_gate,
    LegIdAllocator,
    SegmentationResult,
    SegmentationStatus,
)

# Leg assembly and summarisation
from .assembler import build_legs, trim_gimbal_lag, renumber_legs, assemble_legs, no_flight_data_legs
from .summarizer import summarise_legs, link_steps_to_legs

# Run window queries
from .overlap import (
    percent_overlap,
    overlaps,
    overlapping_leg_range,
    nearest_step,
    flight_nearest_step,
)

# Leg models
from core.models.leg import Leg, LegCollection, LegSummary, legs_to_dataframe

__all__ = [
    # Detection
    'compute_step_leg_ids',
    'can_start_leg',
    'find_leg_violation',
    'passes_quality_gate',
    'LegIdAllocator',
    'SegmentationResult',
    'SegmentationStatus',

    # Assembly
    'build_legs',
    'trim_gimbal_lag',
    'renumber_legs',
    'assemble_legs',
    'no_flight_data_legs',
    'summarise_legs',
    'link_steps_to_legs',

    # Overlap
    'percent_overlap',
    'overlaps',
    'overlapping_leg_range',
    'nearest_step',
    'flight_nearest_step',

    # Models
    'Leg',
    'LegCollection',
    'LegSummary',
    'legs_to_dataframe',
]
