"""
CONTRACT 0: Analysis Configuration

Every tunable number of the indicator, confluence and confidence pipeline.
One frozen object is injected into each component; algorithm code reads its
thresholds from here and never from literals.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

from levelscope.schemas.market import IntervalCategory


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PerInterval(_Frozen):
    """A value that depends on the interval category."""

    intraday: float
    daily: float
    weekly: float

    def for_category(self, category: IntervalCategory) -> float:
        return getattr(self, category.value)


class VolatilityThresholds(_Frozen):
    """ATR% cut points: below ``low`` is low, above ``high`` is high."""

    low: float = Field(default=1.5, gt=0)
    high: float = Field(default=3.0, gt=0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.low >= self.high:
            raise ValueError("volatility.low must be below volatility.high")
        return self


class OverextensionThresholds(_Frozen):
    """Bands for moderately_extended / overextended / extreme."""

    moderate: float = Field(..., gt=0)
    overextended: float = Field(..., gt=0)
    extreme: float = Field(..., gt=0)

    @model_validator(mode="after")
    def _ordered(self):
        if not (self.moderate < self.overextended < self.extreme):
            raise ValueError("overextension thresholds must be strictly increasing")
        return self


class TrendSettings(_Frozen):
    slope_lookback: int = Field(default=5, ge=1)
    slope_threshold_percent: float = Field(
        default=0.05, ge=0, description="EMA change (% of price) below which a slope counts as flat"
    )
    direction_threshold: float = Field(
        default=0.3, gt=0, le=1, description="Mean signal needed to call a direction"
    )


class FibonacciLevel(_Frozen):
    ratio: float = Field(..., ge=0, le=1)
    label: str
    weight: float = Field(..., ge=0)


DEFAULT_FIB_LEVELS = (
    FibonacciLevel(ratio=0.0, label="0%", weight=10),
    FibonacciLevel(ratio=0.236, label="23.6%", weight=10),
    FibonacciLevel(ratio=0.382, label="38.2%", weight=15),
    FibonacciLevel(ratio=0.5, label="50%", weight=20),
    FibonacciLevel(ratio=0.618, label="61.8%", weight=25),
    FibonacciLevel(ratio=0.786, label="78.6%", weight=15),
    FibonacciLevel(ratio=1.0, label="100%", weight=10),
)


class FibonacciSettings(_Frozen):
    levels: tuple[FibonacciLevel, ...] = DEFAULT_FIB_LEVELS
    min_move_percent: PerInterval = PerInterval(intraday=1.5, daily=5.0, weekly=10.0)

    @property
    def max_weight(self) -> float:
        return max((lvl.weight for lvl in self.levels), default=0.0)


class ConfluenceWeights(_Frozen):
    """
    Points per factor type. Touches dominate, with diminishing returns:
    ``historical_touches * min(1, ln(1 + t) / ln(1 + touch_saturation))``.
    """

    historical_touches: float = Field(default=45, ge=0)
    touch_saturation: int = Field(default=3, ge=1)
    fibonacci: float = Field(default=20, ge=0)
    volume_node: float = Field(default=15, ge=0)
    moving_average: float = Field(default=10, ge=0)
    round_number: float = Field(default=5, ge=0)
    recent_relevance: float = Field(default=5, ge=0)

    @property
    def total(self) -> float:
        return (
            self.historical_touches
            + self.fibonacci
            + self.volume_node
            + self.moving_average
            + self.round_number
            + self.recent_relevance
        )

    @model_validator(mode="after")
    def _non_empty(self):
        if self.total <= 0:
            raise ValueError("confluence weights must sum to a positive value")
        return self


class StrengthThresholds(_Frozen):
    strong: float = Field(default=70, ge=0, le=100)
    medium: float = Field(default=40, ge=0, le=100)
    min_score: float = Field(default=15, ge=0, le=100, description="Levels below this are discarded")

    @model_validator(mode="after")
    def _ordered(self):
        if not (self.min_score <= self.medium < self.strong):
            raise ValueError("expected min_score <= medium < strong")
        return self


class DisplaySettings(_Frozen):
    max_per_side: int = Field(default=2, ge=1)
    max_expanded_per_side: int = Field(default=3, ge=1)
    min_level_spacing_percent: float = Field(default=1.0, ge=0)


class ConfidenceSettings(_Frozen):
    data_sufficiency: float = Field(default=20, ge=0)
    trend_clarity: float = Field(default=30, ge=0)
    level_consensus: float = Field(default=50, ge=0)
    ideal_bars: PerInterval = PerInterval(intraday=100, daily=100, weekly=52)

    empty_side_penalty: float = Field(default=-10, le=0)
    high_volatility_penalty: float = Field(default=-15, le=0)
    squeeze_penalty: float = Field(default=-10, le=0)
    overextension_penalty: float = Field(default=-10, le=0)
    conflicting_signal_penalty: float = Field(default=-10, le=0)
    conflict_distance_percent: float = Field(default=3.0, ge=0)

    high: float = Field(default=70, ge=0, le=100)
    medium: float = Field(default=40, ge=0, le=100)

    @model_validator(mode="after")
    def _ordered(self):
        if self.medium >= self.high:
            raise ValueError("confidence.medium must be below confidence.high")
        return self


class AnalysisConfig(_Frozen):
    """
    Complete tuning for one analysis run.

    Defaults are the production values. Tune with ``config.updated(...)`` or
    JSON overrides; both go through validation (``model_copy`` does not).
    """

    min_bars: int = Field(default=20, ge=2)

    # Moving averages
    ema_periods: tuple[int, ...] = (9, 21, 50, 200)
    dynamic_level_periods: tuple[int, ...] = (21, 200)

    # Volatility
    atr_period: int = Field(default=10, ge=1)
    volatility: VolatilityThresholds = VolatilityThresholds()

    # Bollinger Bands
    bollinger_period: int = Field(default=20, ge=2)
    bollinger_std_dev: float = Field(default=2.0, gt=0)
    squeeze_ratio: float = Field(default=0.8, gt=0)

    # Overextension from EMA21
    overextension_period: int = 21
    overextension_atr: OverextensionThresholds = OverextensionThresholds(
        moderate=1.5, overextended=2.0, extreme=3.0
    )
    overextension_percent: OverextensionThresholds = OverextensionThresholds(
        moderate=2.0, overextended=4.0, extreme=6.0
    )

    trend: TrendSettings = TrendSettings()

    # Swings
    swing_window: int = Field(default=3, ge=1)
    recent_fraction: float = Field(default=0.2, gt=0, le=1)
    touch_tolerance_percent: float = Field(default=1.0, gt=0)

    fibonacci: FibonacciSettings = FibonacciSettings()

    # Volume profile
    volume_profile_buckets: int = Field(default=20, ge=2)
    volume_node_threshold: float = Field(default=1.5, gt=0)
    max_volume_nodes: int = Field(default=5, ge=0)

    # Round numbers
    round_number_step_percent: float = Field(default=5.0, gt=0)
    round_number_range_percent: float = Field(default=10.0, ge=0)

    # Zones
    zone_width_factor: float = Field(default=0.25, ge=0)
    min_zone_width_percent: float = Field(default=0.5, ge=0)

    weights: ConfluenceWeights = ConfluenceWeights()
    strength: StrengthThresholds = StrengthThresholds()
    display: DisplaySettings = DisplaySettings()
    confidence: ConfidenceSettings = ConfidenceSettings()

    @model_validator(mode="after")
    def _periods(self):
        if any(p < 1 for p in self.ema_periods):
            raise ValueError("EMA periods must be positive")
        missing = set(self.dynamic_level_periods) - set(self.ema_periods)
        if missing:
            raise ValueError(f"dynamic level periods {sorted(missing)} are not computed EMA periods")
        if self.overextension_period not in self.ema_periods:
            raise ValueError("overextension_period must be one of ema_periods")
        return self

    def updated(self, **changes) -> "AnalysisConfig":
        """
        Validated copy with top-level fields replaced.

        A nested section passed as a dict replaces that whole section, so
        omitted keys fall back to their defaults.
        """
        return AnalysisConfig.model_validate({**self.model_dump(), **changes})


def load_analysis_config(path: Union[str, Path]) -> AnalysisConfig:
    """Load an AnalysisConfig from a JSON file of overrides."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return AnalysisConfig.model_validate(data)


@lru_cache()
def _load_cached(path: Optional[str]) -> AnalysisConfig:
    if path is None:
        return AnalysisConfig()
    return load_analysis_config(path)


def get_analysis_config(path: Optional[str] = None) -> AnalysisConfig:
    """
    Resolve the active AnalysisConfig.

    An explicit path wins, then ``Settings.analysis_config_file``, then defaults.
    """
    if path is None:
        from levelscope.core.config import get_settings

        path = get_settings().analysis_config_file
    return _load_cached(path)
