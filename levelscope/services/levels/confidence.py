"""
Confidence Aggregator

Blends data sufficiency, trend clarity and level consensus into one 0-100
score, minus penalties for missing sides, high volatility, squeezes,
overextension and conflicting signals. Every contribution is reported with
its signed impact; the overall score is their clamped sum.
"""

import logging
from typing import Optional, Sequence

from levelscope.schemas.analysis import Confidence, ConfidenceFactor, ConfidenceLabel
from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.indicators import (
    IndicatorSet,
    OverextensionStatus,
    TradingBias,
    VolatilityRegime,
)
from levelscope.schemas.levels import LevelSide, LevelStrength, ScoredLevel

logger = logging.getLogger(__name__)


class ConfidenceAggregator:
    """Auditable overall confidence for one analysis."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def aggregate(self, indicators: IndicatorSet, levels: Sequence[ScoredLevel]) -> Confidence:
        settings = self.config.confidence
        support = [lvl for lvl in levels if lvl.side == LevelSide.SUPPORT]
        resistance = [lvl for lvl in levels if lvl.side == LevelSide.RESISTANCE]
        factors: list[ConfidenceFactor] = []

        # Data sufficiency
        ideal = settings.ideal_bars.for_category(indicators.interval_category)
        coverage = min(1.0, indicators.bar_count / ideal) if ideal > 0 else 1.0
        factors.append(
            ConfidenceFactor(
                name="Data Sufficiency",
                impact=round(settings.data_sufficiency * coverage, 2),
                reason=f"{indicators.bar_count} bars of {ideal:g} ideal",
            )
        )

        # Trend clarity
        trend = indicators.trend
        factors.append(
            ConfidenceFactor(
                name="Trend Clarity",
                impact=round(settings.trend_clarity * trend.strength / 100, 2),
                reason=f"{trend.direction.value} trend, strength {trend.strength}",
            )
        )

        # Level consensus: an empty side contributes zero
        top_support = max((lvl.confluence_score for lvl in support), default=0.0)
        top_resistance = max((lvl.confluence_score for lvl in resistance), default=0.0)
        consensus = (top_support + top_resistance) / 2
        factors.append(
            ConfidenceFactor(
                name="Level Consensus",
                impact=round(settings.level_consensus * consensus / 100, 2),
                reason=f"Top support {top_support:g}, top resistance {top_resistance:g}",
            )
        )

        if not support:
            factors.append(
                ConfidenceFactor(
                    name="Missing Support",
                    impact=settings.empty_side_penalty,
                    reason="No support level cleared the minimum score",
                )
            )
        if not resistance:
            factors.append(
                ConfidenceFactor(
                    name="Missing Resistance",
                    impact=settings.empty_side_penalty,
                    reason="No resistance level cleared the minimum score",
                )
            )

        if indicators.atr.regime == VolatilityRegime.HIGH:
            factors.append(
                ConfidenceFactor(
                    name="High Volatility",
                    impact=settings.high_volatility_penalty,
                    reason=f"ATR {indicators.atr.atr_percent:.2f}% of price",
                )
            )

        if indicators.bollinger is not None and indicators.bollinger.squeeze:
            factors.append(
                ConfidenceFactor(
                    name="Bollinger Squeeze",
                    impact=settings.squeeze_penalty,
                    reason="Band width contracted; breakout pending",
                )
            )

        extension = indicators.overextension
        if extension is not None and extension.status in (
            OverextensionStatus.OVEREXTENDED,
            OverextensionStatus.EXTREME,
        ):
            factors.append(
                ConfidenceFactor(
                    name="Overextension",
                    impact=settings.overextension_penalty,
                    reason=f"Price {extension.status.value} {extension.direction.value} EMA{extension.ema_period}",
                )
            )

        conflict = self._conflict(trend.bias, support, resistance)
        if conflict:
            factors.append(
                ConfidenceFactor(
                    name="Conflicting Signals",
                    impact=settings.conflicting_signal_penalty,
                    reason=conflict,
                )
            )

        overall = int(max(0, min(100, round(sum(f.impact for f in factors)))))
        if overall >= settings.high:
            label = ConfidenceLabel.HIGH
        elif overall >= settings.medium:
            label = ConfidenceLabel.MEDIUM
        else:
            label = ConfidenceLabel.LOW

        logger.debug(f"Confidence for {indicators.symbol}: {overall} ({label.value})")
        return Confidence(overall=overall, label=label, factors=tuple(factors))

    def _conflict(
        self,
        bias: TradingBias,
        support: Sequence[ScoredLevel],
        resistance: Sequence[ScoredLevel],
    ) -> Optional[str]:
        limit = self.config.confidence.conflict_distance_percent

        def strong_nearby(levels: Sequence[ScoredLevel]) -> bool:
            return any(
                lvl.strength == LevelStrength.STRONG and lvl.distance_percent < limit for lvl in levels
            )

        if bias == TradingBias.LONG and strong_nearby(resistance):
            return "Bullish bias but approaching strong resistance"
        if bias == TradingBias.SHORT and strong_nearby(support):
            return "Bearish bias but approaching strong support"
        return None
