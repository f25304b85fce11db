"""
levelscope Schema Contracts

This module defines all data contracts between pipeline components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from levelscope.schemas.market import (
    Bar,
    AnalysisRequest,
    IntervalCategory,
    categorize_interval,
)
from levelscope.schemas.config import (
    AnalysisConfig,
    ConfluenceWeights,
    get_analysis_config,
    load_analysis_config,
)
from levelscope.schemas.indicators import (
    IndicatorSet,
    EMAData,
    ATRData,
    BollingerData,
    OverextensionData,
    FibonacciData,
    VolumeProfile,
    TrendState,
    SwingPoint,
)
from levelscope.schemas.levels import (
    CandidateLevel,
    LevelFactor,
    ScoredLevel,
    Zone,
    LevelSide,
    LevelStrength,
)
from levelscope.schemas.analysis import (
    Confidence,
    ConfidenceFactor,
    ScoredAnalysis,
    AnalysisOutput,
)

__all__ = [
    # Market
    "Bar",
    "AnalysisRequest",
    "IntervalCategory",
    "categorize_interval",
    # Config
    "AnalysisConfig",
    "ConfluenceWeights",
    "get_analysis_config",
    "load_analysis_config",
    # Indicators
    "IndicatorSet",
    "EMAData",
    "ATRData",
    "BollingerData",
    "OverextensionData",
    "FibonacciData",
    "VolumeProfile",
    "TrendState",
    "SwingPoint",
    # Levels
    "CandidateLevel",
    "LevelFactor",
    "ScoredLevel",
    "Zone",
    "LevelSide",
    "LevelStrength",
    # Analysis
    "Confidence",
    "ConfidenceFactor",
    "ScoredAnalysis",
    "AnalysisOutput",
]
