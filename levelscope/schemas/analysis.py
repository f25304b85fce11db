"""
CONTRACT 4: Scored Analysis

Input: AnalysisRequest
Output: AnalysisOutput (IndicatorSet + ScoredAnalysis)

The structured result handed to downstream collaborators (narrative
generation, archiving). Serializable with ``model_dump_json()``.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from levelscope.schemas.indicators import IndicatorSet
from levelscope.schemas.levels import ScoredLevel


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ConfidenceLabel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConfidenceFactor(_Frozen):
    """Single signed contribution to the overall confidence."""

    name: str
    impact: float
    reason: str


class Confidence(_Frozen):
    overall: int = Field(..., ge=0, le=100)
    label: ConfidenceLabel
    factors: tuple[ConfidenceFactor, ...]


class LevelSlice(_Frozen):
    support: tuple[ScoredLevel, ...] = ()
    resistance: tuple[ScoredLevel, ...] = ()


class ScoredAnalysis(_Frozen):
    """Ranked levels per side plus the overall confidence."""

    support_levels: tuple[ScoredLevel, ...] = ()
    resistance_levels: tuple[ScoredLevel, ...] = ()
    display_levels: LevelSlice = LevelSlice()
    expanded_levels: LevelSlice = LevelSlice()
    confidence: Confidence


class AnalysisOutput(_Frozen):
    """
    Complete analysis for one symbol/interval.
    Returned by: AnalysisService
    Consumed by: narrative generation, persistence (both external)
    """

    symbol: str
    interval: str
    as_of: Optional[datetime] = None
    indicators: IndicatorSet
    analysis: ScoredAnalysis
