"""
CONTRACT 2: Indicator Engine

Input: validated Bar series
Output: IndicatorSet

This module performs ALL per-series calculations.
Pure Python/NumPy - deterministic and reproducible.

Indicators that may not apply (EMA200 on a short series, Fibonacci without a
qualifying swing, %B on a zero-width band) are ``Optional`` and ``None`` when
absent. Absent is never encoded as zero.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from levelscope.schemas.market import IntervalCategory


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# ENUMS
# =============================================================================


class TrendDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class EMAAlignment(str, Enum):
    BULLISH_STACK = "bullish_stack"
    BEARISH_STACK = "bearish_stack"
    MIXED = "mixed"


class TradingBias(str, Enum):
    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"


class VolatilityRegime(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BandPosition(str, Enum):
    ABOVE_UPPER = "above_upper"
    UPPER_HALF = "upper_half"
    LOWER_HALF = "lower_half"
    BELOW_LOWER = "below_lower"


class OverextensionStatus(str, Enum):
    NORMAL = "normal"
    MODERATELY_EXTENDED = "moderately_extended"
    OVEREXTENDED = "overextended"
    EXTREME = "extreme"


class PriceDirection(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class SwingKind(str, Enum):
    HIGH = "high"
    LOW = "low"


class SwingDirection(str, Enum):
    UP = "up"  # low then high
    DOWN = "down"  # high then low


# =============================================================================
# OUTPUT: Indicator Components
# =============================================================================


class EMAValue(_Frozen):
    period: int
    value: Optional[float] = Field(default=None, description="None when fewer bars than the period")
    price_position: Optional[PriceDirection] = None


class EMAData(_Frozen):
    """Latest EMA per period."""

    values: tuple[EMAValue, ...]

    def get(self, period: int) -> Optional[float]:
        for item in self.values:
            if item.period == period:
                return item.value
        return None


class ATRData(_Frozen):
    atr: float = Field(..., ge=0)
    period: int
    atr_percent: Optional[float] = Field(default=None, ge=0, description="ATR as % of price")
    regime: Optional[VolatilityRegime] = None


class BollingerData(_Frozen):
    upper: float
    middle: float
    lower: float
    bandwidth: Optional[float] = Field(default=None, ge=0, description="(upper - lower) / middle")
    percent_b: Optional[float] = Field(
        default=None, description="Price position within bands; may fall outside 0-1"
    )
    squeeze: bool
    position: BandPosition


class OverextensionData(_Frozen):
    ema_period: int
    distance: float
    distance_percent: float
    atr_normalized_distance: Optional[float] = Field(
        default=None, ge=0, description="|distance %| / ATR %; None when ATR is zero"
    )
    status: OverextensionStatus
    direction: PriceDirection
    mean_reversion_signal: bool
    signal_type: str


class SwingPoint(_Frozen):
    """Local price extremum. Ordered by index."""

    index: int = Field(..., ge=0)
    price: float
    kind: SwingKind
    timestamp: datetime
    touches: int = Field(default=1, ge=0, description="Separate visits within touch tolerance")
    is_recent: bool = False


class FibonacciLevelPrice(_Frozen):
    ratio: float
    label: str
    price: float
    weight: float


class FibonacciData(_Frozen):
    swing_high: float
    swing_high_index: int
    swing_high_time: datetime
    swing_low: float
    swing_low_index: int
    swing_low_time: datetime
    direction: SwingDirection
    levels: tuple[FibonacciLevelPrice, ...]
    current_retracement: float = Field(..., ge=0, le=1)

    def level(self, ratio: float) -> Optional[FibonacciLevelPrice]:
        for item in self.levels:
            if abs(item.ratio - ratio) < 1e-9:
                return item
        return None


class VolumeNode(_Frozen):
    price_low: float
    price_high: float
    price_mid: float
    volume: float
    volume_percent: float = Field(..., ge=0, le=100)


class VolumeProfile(_Frozen):
    nodes: tuple[VolumeNode, ...] = ()
    point_of_control: Optional[float] = Field(default=None, description="None when total volume is zero")
    average_volume: float = Field(default=0.0, ge=0)
    bucket_count: int


class TrendState(_Frozen):
    direction: TrendDirection
    alignment: EMAAlignment
    strength: int = Field(..., ge=0, le=100, description="Consistency of EMA stack, position and slopes")
    bias: TradingBias
    bias_reason: str


# =============================================================================
# OUTPUT: IndicatorSet (Complete Snapshot)
# =============================================================================


class IndicatorSet(_Frozen):
    """
    Per-series indicator snapshot.
    Returned by: IndicatorEngine
    Consumed by: LevelCandidateBuilder, ConfluenceScorer, ConfidenceAggregator
    """

    symbol: str
    interval: str
    interval_category: IntervalCategory
    bar_count: int
    current_price: float
    price_change: float
    price_change_percent: Optional[float] = None

    ema: EMAData
    atr: ATRData
    bollinger: Optional[BollingerData] = None
    overextension: Optional[OverextensionData] = None
    fibonacci: Optional[FibonacciData] = None
    volume_profile: VolumeProfile
    trend: TrendState
    swing_points: tuple[SwingPoint, ...] = ()
