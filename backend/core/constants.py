"""
Constants for the Flight Leg Lab application.

This module contains all the mathematical, algorithmic, and domain-specific
constants used throughout the codebase. Constants are grouped by their purpose
and documented with their units where applicable.
"""

# =============================================================================
# CONVERSION FACTORS
# =============================================================================

MILLISECONDS_PER_SECOND = 1000

# =============================================================================
# ANGLE CONSTANTS (all in degrees)
# =============================================================================

FULL_CIRCLE_DEGREES = 360
ANGLE_WRAP_BOUNDARY_DEGREES = 180  # Yaw deltas are wrapped into -180..+180

# =============================================================================
# TELEMETRY CONSTANTS
# =============================================================================

# Flight logs record a section roughly every 250ms
SECTION_MIN_MS = 250

# Smoothing window radius in sections (2 spans 5 sections or ~1.25 seconds)
DEFAULT_SMOOTH_SECTION_RADIUS = 2

# Sections longer than this are gaps and are never smoothed across
MAX_SENSIBLE_SECTION_DURATION_MS = 500

# =============================================================================
# LEG DETECTION THRESHOLDS (defaults, overridable per flight)
# =============================================================================

# Maximum instantaneous delta yaw allowed for a step to start a leg
DEFAULT_MAX_LEG_STEP_DELTA_YAW_DEG = 4

# Maximum yaw drift from the leg start step
DEFAULT_MAX_LEG_SUM_DELTA_YAW_DEG = 10

# Maximum instantaneous pitch when gimbal data is not used
DEFAULT_MAX_LEG_STEP_PITCH_DEG = 12

# Maximum pitch drift from the leg start step
DEFAULT_MAX_LEG_SUM_PITCH_DEG = 18

# Minimum camera down angle when gimbal data is used
DEFAULT_MIN_CAMERA_DOWN_DEG = 15
MIN_CAMERA_DOWN_DEG_FLOOR = 15
MIN_CAMERA_DOWN_DEG_CEILING = 90

# Pitch sanity limits are relaxed to this when the gimbal compensates pitch
GIMBAL_RELAXED_PITCH_DEG = 95

# Minimum leg duration and distance
DEFAULT_MIN_LEG_DURATION_MS = 2000
DEFAULT_MIN_LEG_DISTANCE_M = 5.0

# Maximum gap between consecutive steps inside a leg
DEFAULT_MAX_LEG_GAP_DURATION_MS = 2 * SECTION_MIN_MS

# =============================================================================
# LEG POST-PROCESSING
# =============================================================================

# Settling time sacrificed at the start of each leg when the drone has no gimbal log
GIMBAL_LAG_TRIM_MS = 1000

# Minimum overlap between a leg and the run window for the leg to be "in scope"
MIN_OVERLAP_PERCENT = 20

# Leg boundary tolerance when looking up the step nearest a flight time
NEAREST_STEP_BOUNDARY_MS = 100

# Legs are used by default only if the flight is mostly legs
USE_LEGS_MIN_SECTIONS = 20
USE_LEGS_MIN_LEGS = 3
USE_LEGS_MIN_LINEAL_FRACTION = 0.33

# =============================================================================
# LEG END REASONS
# =============================================================================

REASON_NO_MORE_STEPS = "No more steps"
REASON_NO_FLIGHT_DATA = "N/A"

# =============================================================================
# VALIDATION
# =============================================================================

assert MIN_CAMERA_DOWN_DEG_FLOOR <= DEFAULT_MIN_CAMERA_DOWN_DEG <= MIN_CAMERA_DOWN_DEG_CEILING, \
    "Default camera down angle must lie within its clamp range"
