"""
CONTRACT 3: Level Candidates and Scored Levels

Input: IndicatorSet
Output: CandidateLevel (transient) -> ScoredLevel

Candidates carry factor tags; the confluence scorer merges overlapping
zones, unions their tags and weighs them into a 0-100 score.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# ENUMS
# =============================================================================


class LevelSide(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


class LevelStrength(str, Enum):
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


class FactorKind(str, Enum):
    SWING = "swing"
    MOVING_AVERAGE = "moving_average"
    FIBONACCI = "fibonacci"
    VOLUME_NODE = "volume_node"
    ROUND_NUMBER = "round_number"


# =============================================================================
# CANDIDATES
# =============================================================================


class Zone(_Frozen):
    low: float
    high: float

    @model_validator(mode="after")
    def _ordered(self):
        if self.low > self.high:
            raise ValueError(f"zone low {self.low} above high {self.high}")
        return self

    def contains(self, price: float) -> bool:
        return self.low <= price <= self.high


class LevelFactor(_Frozen):
    """
    One contributing signal attached to a candidate.

    Only the attributes relevant to ``kind`` are set.
    """

    kind: FactorKind
    price: float
    touches: Optional[int] = None  # swing
    is_recent: Optional[bool] = None  # swing
    swing_index: Optional[int] = None  # swing
    period: Optional[int] = None  # moving_average
    ratio: Optional[float] = None  # fibonacci
    label: Optional[str] = None  # fibonacci
    weight: Optional[float] = None  # fibonacci
    volume_percent: Optional[float] = None  # volume_node

    def sort_key(self) -> tuple:
        return (self.kind.value, self.model_dump_json())


class CandidateLevel(_Frozen):
    """Raw level candidate. Consumed entirely by ConfluenceScorer."""

    price: float
    zone: Zone
    side: LevelSide
    factors: tuple[LevelFactor, ...]

    def sort_key(self) -> tuple:
        return (
            self.zone.low,
            self.zone.high,
            self.price,
            self.side.value,
            tuple(f.sort_key() for f in self.factors),
        )


# =============================================================================
# SCORED LEVELS
# =============================================================================


class TouchFactor(_Frozen):
    count: int = Field(default=0, ge=0)
    points: float = Field(default=0.0, ge=0)


class FibonacciFactor(_Frozen):
    label: str
    ratio: float
    points: float = Field(..., ge=0)


class MovingAverageFactor(_Frozen):
    period: int
    points: float = Field(..., ge=0)


class VolumeNodeFactor(_Frozen):
    volume_percent: float
    points: float = Field(..., ge=0)


class RoundNumberFactor(_Frozen):
    value: float
    points: float = Field(..., ge=0)


class RecencyFactor(_Frozen):
    last_swing_index: int
    points: float = Field(..., ge=0)


class ConfluenceFactors(_Frozen):
    """Itemized score breakdown of one level."""

    historical_touches: TouchFactor = TouchFactor()
    fibonacci: Optional[FibonacciFactor] = None
    moving_average: Optional[MovingAverageFactor] = None
    volume_node: Optional[VolumeNodeFactor] = None
    round_number: Optional[RoundNumberFactor] = None
    recent_relevance: Optional[RecencyFactor] = None

    @property
    def raw_points(self) -> float:
        total = self.historical_touches.points
        for item in (
            self.fibonacci,
            self.moving_average,
            self.volume_node,
            self.round_number,
            self.recent_relevance,
        ):
            if item is not None:
                total += item.points
        return total


class ScoredLevel(_Frozen):
    """
    Ranked support/resistance level.
    Returned by: ConfluenceScorer
    Consumed by: ConfidenceAggregator, narrative layer
    """

    id: str
    side: LevelSide
    price: float
    zone: Zone
    confluence_score: float = Field(..., ge=0, le=100)
    strength: LevelStrength
    factors: ConfluenceFactors
    sources: tuple[FactorKind, ...]
    description: str
    distance: float = Field(..., ge=0, description="Absolute distance from current price")
    distance_percent: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _price_in_zone(self):
        if not self.zone.contains(self.price):
            raise ValueError(f"level price {self.price} outside zone {self.zone}")
        return self
