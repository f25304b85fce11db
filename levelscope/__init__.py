"""
levelscope

Deterministic support/resistance analysis for OHLCV series: indicators,
confluence-scored levels and an auditable confidence score.
"""

from levelscope.schemas import AnalysisConfig, AnalysisOutput, AnalysisRequest, Bar
from levelscope.services.base import ComputationError, InputError
from levelscope.services.analysis import AnalysisService, analyze_bars, get_analysis_service

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisOutput",
    "AnalysisRequest",
    "Bar",
    "ComputationError",
    "InputError",
    "AnalysisService",
    "analyze_bars",
    "get_analysis_service",
]
