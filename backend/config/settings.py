"""
Application settings and configuration.

This module contains application-specific configuration, API settings, and defaults.
For algorithmic constants, see core.constants module.
"""

import os
import logging
from typing import Dict, Any

# Import algorithmic constants from core module
from core.constants import (
    DEFAULT_MAX_LEG_STEP_DELTA_YAW_DEG,
    DEFAULT_MAX_LEG_SUM_DELTA_YAW_DEG,
    DEFAULT_MAX_LEG_STEP_PITCH_DEG,
    DEFAULT_MAX_LEG_SUM_PITCH_DEG,
    DEFAULT_MIN_CAMERA_DOWN_DEG,
    DEFAULT_MIN_LEG_DURATION_MS,
    DEFAULT_MIN_LEG_DISTANCE_M,
    DEFAULT_MAX_LEG_GAP_DURATION_MS,
    DEFAULT_SMOOTH_SECTION_RADIUS,
    MIN_CAMERA_DOWN_DEG_FLOOR,
    MIN_CAMERA_DOWN_DEG_CEILING,
    MIN_OVERLAP_PERCENT,
)

# App information
APP_NAME = "Flight Leg Lab"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Split drone flight logs into straight, level legs"

# File paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.path.join(BASE_DIR, "data")
LOGS_DIR = os.path.join(BASE_DIR, "logs")

# Application-specific defaults (reference core constants where appropriate)
DEFAULT_GIMBAL_MODE = "absent"  # Most consumer drone logs carry airframe attitude only
DEFAULT_SMOOTH_RADIUS = DEFAULT_SMOOTH_SECTION_RADIUS  # From core.constants

# API defaults
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8000
DEFAULT_API_URL = f"http://localhost:{DEFAULT_API_PORT}"
MAX_UPLOAD_SIZE_BYTES = 50 * 1024 * 1024  # 50MB
MIN_UPLOAD_SIZE_BYTES = 50  # Smaller files cannot hold a header and one section

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",  # Web frontend dev server
    "http://localhost:3001",  # Web frontend dev server (alt port)
]

# Logging configuration
LOGGING_CONFIG = {
    "level": logging.INFO,
    "format": '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
}


# =============== Configuration Classes ===============
# These classes provide typed access to configuration sections

class LegConfig:
    """Default thresholds for leg detection, as offered to API clients."""
    MAX_STEP_DELTA_YAW_DEG = DEFAULT_MAX_LEG_STEP_DELTA_YAW_DEG
    MAX_SUM_DELTA_YAW_DEG = DEFAULT_MAX_LEG_SUM_DELTA_YAW_DEG
    MAX_STEP_PITCH_DEG = DEFAULT_MAX_LEG_STEP_PITCH_DEG
    MAX_SUM_PITCH_DEG = DEFAULT_MAX_LEG_SUM_PITCH_DEG
    MIN_CAMERA_DOWN_DEG = DEFAULT_MIN_CAMERA_DOWN_DEG
    MIN_DURATION_MS = DEFAULT_MIN_LEG_DURATION_MS
    MIN_DISTANCE_M = DEFAULT_MIN_LEG_DISTANCE_M
    MAX_GAP_DURATION_MS = DEFAULT_MAX_LEG_GAP_DURATION_MS
    GIMBAL_MODE = DEFAULT_GIMBAL_MODE
    SMOOTH_RADIUS = DEFAULT_SMOOTH_RADIUS
    OVERLAP_PERCENT = MIN_OVERLAP_PERCENT  # From core.constants

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get leg configuration as a dictionary."""
        return {
            'max_leg_step_delta_yaw_deg': cls.MAX_STEP_DELTA_YAW_DEG,
            'max_leg_sum_delta_yaw_deg': cls.MAX_SUM_DELTA_YAW_DEG,
            'max_leg_step_pitch_deg': cls.MAX_STEP_PITCH_DEG,
            'max_leg_sum_pitch_deg': cls.MAX_SUM_PITCH_DEG,
            'min_camera_down_deg': cls.MIN_CAMERA_DOWN_DEG,
            'min_leg_duration_ms': cls.MIN_DURATION_MS,
            'min_leg_distance_m': cls.MIN_DISTANCE_M,
            'max_leg_gap_duration_ms': cls.MAX_GAP_DURATION_MS,
            'gimbal_mode': cls.GIMBAL_MODE,
            'smooth_radius': cls.SMOOTH_RADIUS,
            'min_overlap_percent': cls.OVERLAP_PERCENT,
        }

    @classmethod
    def ranges(cls) -> Dict[str, Dict[str, float]]:
        """Slider ranges for the threshold controls."""
        return {
            'max_leg_step_delta_yaw_deg': {"min": 1, "max": 20, "step": 1},
            'max_leg_sum_delta_yaw_deg': {"min": 2, "max": 45, "step": 1},
            'max_leg_step_pitch_deg': {"min": 2, "max": 45, "step": 1},
            'max_leg_sum_pitch_deg': {"min": 2, "max": 45, "step": 1},
            'min_camera_down_deg': {"min": MIN_CAMERA_DOWN_DEG_FLOOR, "max": MIN_CAMERA_DOWN_DEG_CEILING, "step": 1},
            'min_leg_duration_ms': {"min": 500, "max": 30000, "step": 500},
            'min_leg_distance_m': {"min": 1, "max": 200, "step": 1},
            'max_leg_gap_duration_ms': {"min": 250, "max": 5000, "step": 250},
        }


class ApiConfig:
    """Configuration parameters for the HTTP API."""
    HOST = DEFAULT_API_HOST
    PORT = DEFAULT_API_PORT
    MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_BYTES
    MIN_UPLOAD_SIZE = MIN_UPLOAD_SIZE_BYTES
    ALLOWED_ORIGINS = CORS_ALLOWED_ORIGINS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get API configuration as a dictionary."""
        return {
            'host': cls.HOST,
            'port': cls.PORT,
            'max_upload_size': cls.MAX_UPLOAD_SIZE,
            'min_upload_size': cls.MIN_UPLOAD_SIZE,
            'allowed_origins': list(cls.ALLOWED_ORIGINS),
        }
