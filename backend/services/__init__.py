"""
Services package.

Provides business logic layer between API and core algorithms.

Modules:
    leg_analysis_service: Leg detection pipeline for drone flight logs
"""

from services.leg_analysis_service import (
    analyze_flight,
    analyze_flight_data,
    analyze_flight_file,
    LegAnalysisResult,
)

__all__ = [
    'analyze_flight',
    'analyze_flight_data',
    'analyze_flight_file',
    'LegAnalysisResult',
]
