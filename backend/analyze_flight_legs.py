#!/usr/bin/env python3
"""
Flight Leg Report Script

Prints the legs detected in one or more drone flight logs:
- Per-leg timing, distance, altitude and speed
- Why each leg ended
- Whether the legs cover enough of the flight to be used by default
- Which legs overlap the requested run window

Logs are analyzed locally, or posted to a running API server with --api-url.

Usage:
    python analyze_flight_legs.py data/flight.csv --gimbal-mode not_used
    python analyze_flight_legs.py data/flight.csv --api-url http://localhost:8000
"""

import sys
import argparse
import logging
import requests
from pathlib import Path
from typing import Dict, Any, List

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

# Import backend modules
from config.settings import LOGGING_CONFIG, LegConfig
from core.calculations import id_to_letter
from core.models.config import ThresholdConfig, GimbalMode
from core.validation import ValidationError
from services.leg_analysis_service import analyze_flight_file

# Set up logging
logging.basicConfig(
    level=LOGGING_CONFIG["level"],
    format='%(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def print_section_header(title: str, char: str = "="):
    """Print a formatted section header."""
    print("\n" + char * 80)
    print(f"  {title}")
    print(char * 80 + "\n")


def print_leg_table(legs: List[Dict[str, Any]]):
    """Print one row per leg summary dictionary."""
    if not legs:
        print("No legs detected")
        return

    print(f"{'Leg':>4} {'Start s':>9} {'End s':>9} {'Dist m':>9} {'Alt m':>8} {'Speed m/s':>10}  Ended because")
    for leg in legs:
        start_s = leg['start_time_ms'] / 1000 if leg['start_time_ms'] is not None else float('nan')
        end_s = leg['end_time_ms'] / 1000 if leg['end_time_ms'] is not None else float('nan')
        altitude = leg['average_altitude_m']
        altitude_text = f"{altitude:8.1f}" if altitude is not None else f"{'-':>8}"
        print(f"{leg['leg_name']:>4} {start_s:9.1f} {end_s:9.1f} {leg['distance_m']:9.1f} "
              f"{altitude_text} {leg['average_speed_mps']:10.2f}  {leg['why_leg_ended']}")


def print_flight_summary(summary: Dict[str, Any], overlapping_range):
    """Print the flight level results."""
    print(f"\nSections: {summary['section_count']}, steps: {summary['step_count']}")
    print(f"Duration: {summary['duration_s']:.1f}s")
    print(f"Distance: {summary['total_distance_m']:.0f}m, of which {summary['leg_distance_m']:.0f}m in legs")
    print(f"Use legs by default: {'yes' if summary['use_legs'] else 'no'}")
    print(f"Default run window: {summary['default_run_from_s']:.1f}s - {summary['default_run_to_s']:.1f}s")

    if overlapping_range is None:
        print("Legs overlapping run window: none")
    else:
        first_id, last_id = overlapping_range
        print(f"Legs overlapping run window: {id_to_letter(first_id)} - {id_to_letter(last_id)}")


def report_local(path: Path, config: ThresholdConfig, smooth_radius: int) -> bool:
    """Analyze a flight log in process and print its legs."""
    with open(path, 'r') as f:
        result = analyze_flight_file(f, config=config, filename=path.name, smooth_radius=smooth_radius)

    print(result.describe())
    if not result.has_flight_data:
        print("⚠ Flight log has no yaw/pitch data; showing a single placeholder leg")

    print_leg_table([summary.to_dict() for summary in result.legs.summaries()])
    print_flight_summary(result.flight_summary(), result.overlapping_range)
    return True


def report_remote(path: Path, config: ThresholdConfig, smooth_radius: int, api_url: str) -> bool:
    """Post a flight log to the API server and print the legs it found."""
    params = config.to_dict()
    params['smooth_radius'] = smooth_radius

    with open(path, 'rb') as f:
        files = {'file': (path.name, f, 'application/octet-stream')}
        response = requests.post(f"{api_url.rstrip('/')}/api/analyze-flight", files=files, params=params)

    if response.status_code != 200:
        print(f"ERROR: API returned {response.status_code}: {response.text}")
        return False

    payload = response.json()
    overlapping = payload.get('overlapping_range')
    overlapping_range = (overlapping['first_leg_id'], overlapping['last_leg_id']) if overlapping else None

    print_leg_table(payload['legs'])
    print_flight_summary(payload['flight_summary'], overlapping_range)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print the legs detected in drone flight logs")
    parser.add_argument("paths", nargs="+", type=Path, help="CSV or GPX flight logs")
    parser.add_argument("--gimbal-mode", choices=[mode.value for mode in GimbalMode],
                        default=LegConfig.GIMBAL_MODE, help="Whether the log's attitude is the camera's")
    parser.add_argument("--min-duration-ms", type=int, default=LegConfig.MIN_DURATION_MS,
                        help="Shortest leg kept")
    parser.add_argument("--min-distance-m", type=float, default=LegConfig.MIN_DISTANCE_M,
                        help="Shortest leg distance kept")
    parser.add_argument("--max-gap-ms", type=int, default=LegConfig.MAX_GAP_DURATION_MS,
                        help="Longest gap between steps inside a leg")
    parser.add_argument("--run-from-s", type=float, default=0.0, help="Run window start in seconds")
    parser.add_argument("--run-to-s", type=float, default=0.0, help="Run window end in seconds (0 = end)")
    parser.add_argument("--smooth-radius", type=int, default=LegConfig.SMOOTH_RADIUS,
                        help="Smoothing window radius in sections")
    parser.add_argument("--api-url", type=str, default=None,
                        help="Post the logs to this API server instead of analyzing locally")
    return parser


def main(argv=None) -> int:
    """Main report routine."""
    args = build_parser().parse_args(argv)

    config = ThresholdConfig(
        gimbal_mode=GimbalMode(args.gimbal_mode),
        min_leg_duration_ms=args.min_duration_ms,
        min_leg_distance_m=args.min_distance_m,
        max_leg_gap_duration_ms=args.max_gap_ms,
        run_from_s=args.run_from_s,
        run_to_s=args.run_to_s,
    )

    all_ok = True
    for path in args.paths:
        print_section_header(f"FLIGHT LEGS: {path.name}", "=")

        if not path.exists():
            print(f"ERROR: File not found: {path}")
            all_ok = False
            continue

        try:
            if args.api_url:
                ok = report_remote(path, config, args.smooth_radius, args.api_url)
            else:
                ok = report_local(path, config, args.smooth_radius)
        except ValidationError as e:
            print(f"ERROR: {e}")
            ok = False
        except requests.RequestException as e:
            print(f"ERROR: Could not reach API server: {e}")
            ok = False

        all_ok = all_ok and ok

    return 0 if all_ok else 1


if __name__ == "__main__":
    sys.exit(main())
