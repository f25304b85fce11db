"""
Analysis Service

CONTRACT:
    Input:  AnalysisRequest
    Output: AnalysisOutput

Chains the indicator engine and level scoring into one pure call.
No market-data fetching, persistence or narrative generation happens here.
"""

from levelscope.services.analysis.interface import AnalysisServiceInterface
from levelscope.services.analysis.service import (
    AnalysisService,
    analyze_bars,
    get_analysis_service,
)

__all__ = [
    "AnalysisServiceInterface",
    "AnalysisService",
    "analyze_bars",
    "get_analysis_service",
]
