"""
FastAPI backend for Flight Leg Lab.

This provides REST API endpoints for flight log leg detection, enabling
framework-agnostic frontend development.
"""

from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Dict, List, Optional, Any
import logging
import io
import sys
import os

# Add parent directory to path to import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import APP_NAME, APP_VERSION, APP_DESCRIPTION, LOGGING_CONFIG, LegConfig, ApiConfig

# Initialize logging
logging.basicConfig(level=LOGGING_CONFIG["level"], format=LOGGING_CONFIG["format"])
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=f"{APP_NAME} API",
    description=APP_DESCRIPTION,
    version=APP_VERSION
)

# Add CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=ApiConfig.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Import our services
from services.leg_analysis_service import analyze_flight_file, LegAnalysisResult
from core.models.config import ThresholdConfig, GimbalMode
from core.validation import ValidationError, LegInvariantError, validate_flight_log_filename


# Pydantic models for API requests/responses
class LegSummaryResponse(BaseModel):
    leg_id: int
    leg_name: str
    start_time_ms: Optional[int]
    end_time_ms: Optional[int]
    distance_m: float
    average_altitude_m: Optional[float]
    average_speed_mps: float
    why_leg_ended: str


class OverlapRangeResponse(BaseModel):
    first_leg_id: int
    last_leg_id: int


class FlightAnalysisResponse(BaseModel):
    legs: List[LegSummaryResponse]
    overlapping_range: Optional[OverlapRangeResponse]
    flight_summary: Dict[str, Any]
    thresholds: Dict[str, Any]


def build_response(result: LegAnalysisResult) -> FlightAnalysisResponse:
    """Convert an analysis result into the API response model."""
    overlapping_range = None
    if result.overlapping_range is not None:
        first_leg_id, last_leg_id = result.overlapping_range
        overlapping_range = OverlapRangeResponse(first_leg_id=first_leg_id, last_leg_id=last_leg_id)

    return FlightAnalysisResponse(
        legs=[LegSummaryResponse(**summary.to_dict()) for summary in result.legs.summaries()],
        overlapping_range=overlapping_range,
        flight_summary=result.flight_summary(),
        thresholds=result.config.to_dict(),
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"{APP_NAME} API",
        "version": APP_VERSION,
        "endpoints": {
            "POST /api/analyze-flight": "Detect legs in a CSV or GPX flight log",
            "GET /api/config": "Default leg detection thresholds",
            "GET /api/health": "Health check endpoint"
        }
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "flight-leg-lab-api"}


@app.get("/api/config")
async def get_config():
    """Get default configuration values."""
    return {
        "defaults": LegConfig.as_dict(),
        "ranges": LegConfig.ranges(),
        "gimbal_modes": [mode.value for mode in GimbalMode],
    }


@app.post("/api/analyze-flight", response_model=FlightAnalysisResponse)
async def analyze_flight_endpoint(
    file: UploadFile = File(...),
    max_leg_step_delta_yaw_deg: float = LegConfig.MAX_STEP_DELTA_YAW_DEG,
    max_leg_sum_delta_yaw_deg: float = LegConfig.MAX_SUM_DELTA_YAW_DEG,
    max_leg_step_pitch_deg: float = LegConfig.MAX_STEP_PITCH_DEG,
    max_leg_sum_pitch_deg: float = LegConfig.MAX_SUM_PITCH_DEG,
    min_camera_down_deg: float = LegConfig.MIN_CAMERA_DOWN_DEG,
    min_leg_duration_ms: int = LegConfig.MIN_DURATION_MS,
    min_leg_distance_m: float = LegConfig.MIN_DISTANCE_M,
    max_leg_gap_duration_ms: int = LegConfig.MAX_GAP_DURATION_MS,
    gimbal_mode: GimbalMode = GimbalMode(LegConfig.GIMBAL_MODE),
    run_from_s: float = 0.0,
    run_to_s: float = 0.0,
    smooth_radius: int = LegConfig.SMOOTH_RADIUS
):
    """
    Detect the legs of a flight log.

    Args:
        file: CSV or GPX flight log to analyze
        max_leg_step_delta_yaw_deg: Largest per-step yaw change that may start a leg
        max_leg_sum_delta_yaw_deg: Largest yaw drift from the leg's first step
        max_leg_step_pitch_deg: Largest airframe pitch inside a leg
        max_leg_sum_pitch_deg: Largest pitch drift from the leg's first step
        min_camera_down_deg: Smallest camera down angle (gimbal logs only)
        min_leg_duration_ms: Shortest leg kept
        min_leg_distance_m: Shortest leg distance kept
        max_leg_gap_duration_ms: Longest gap between steps inside a leg
        gimbal_mode: used, not_used or absent
        run_from_s: Playback window start in seconds
        run_to_s: Playback window end in seconds (0 = end of flight)
        smooth_radius: Smoothing window radius in sections

    Returns:
        Leg summaries, the legs overlapping the run window, and a flight summary
    """
    try:
        # Validate file type
        validate_flight_log_filename(file.filename)

        # Read file content
        content = await file.read()

        if len(content) > ApiConfig.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {ApiConfig.MAX_UPLOAD_SIZE / 1024 / 1024:.0f}MB, "
                       f"received {len(content) / 1024 / 1024:.1f}MB"
            )

        # Validate minimum file size (empty files)
        if len(content) < ApiConfig.MIN_UPLOAD_SIZE:
            raise HTTPException(status_code=400, detail="File appears to be empty or corrupted")

        config = ThresholdConfig(
            max_leg_step_delta_yaw_deg=max_leg_step_delta_yaw_deg,
            max_leg_sum_delta_yaw_deg=max_leg_sum_delta_yaw_deg,
            max_leg_step_pitch_deg=max_leg_step_pitch_deg,
            max_leg_sum_pitch_deg=max_leg_sum_pitch_deg,
            min_camera_down_deg=min_camera_down_deg,
            gimbal_mode=gimbal_mode,
            min_leg_duration_ms=min_leg_duration_ms,
            min_leg_distance_m=min_leg_distance_m,
            max_leg_gap_duration_ms=max_leg_gap_duration_ms,
            run_from_s=run_from_s,
            run_to_s=run_to_s,
        )

        logger.info(f"Processing file: {file.filename}")
        result = analyze_flight_file(
            io.BytesIO(content),
            config=config,
            filename=file.filename,
            smooth_radius=smooth_radius
        )

        return build_response(result)

    except HTTPException:
        raise
    except ValidationError as e:
        logger.warning(f"Rejected flight log {file.filename}: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except LegInvariantError as e:
        logger.error(f"Leg invariant failed for {file.filename}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Internal leg consistency error: {str(e)}")
    except Exception as e:
        logger.error(f"Error analyzing flight: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error analyzing flight: {str(e)}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=ApiConfig.HOST, port=ApiConfig.PORT)
