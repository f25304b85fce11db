"""
Level Candidate Builder

Turns an IndicatorSet into raw price candidates: swing points, dynamic EMAs,
Fibonacci levels, high-volume nodes and nearby round numbers. Each candidate
gets a zone whose width scales with ATR.
"""

import logging
import math
from typing import Optional

from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.indicators import IndicatorSet, SwingKind
from levelscope.schemas.levels import CandidateLevel, FactorKind, LevelFactor, LevelSide, Zone
from levelscope.services.base import ComputationError
from levelscope.services.indicators.calculations import round_number_step

logger = logging.getLogger(__name__)


def side_for(price: float, current_price: float) -> LevelSide:
    """Below current price is support; at or above is resistance."""
    return LevelSide.SUPPORT if price < current_price else LevelSide.RESISTANCE


class LevelCandidateBuilder:
    """Builds CandidateLevels from one IndicatorSet."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def build(self, indicators: IndicatorSet) -> list[CandidateLevel]:
        current = indicators.current_price
        candidates: list[CandidateLevel] = []

        # Swing points
        for swing in indicators.swing_points:
            factor = LevelFactor(
                kind=FactorKind.SWING,
                price=swing.price,
                touches=swing.touches,
                is_recent=swing.is_recent,
                swing_index=swing.index,
            )
            side = LevelSide.RESISTANCE if swing.kind == SwingKind.HIGH else LevelSide.SUPPORT
            candidates.append(self._candidate(swing.price, side, factor, indicators))

        # Long-lived EMAs as dynamic levels
        for period in self.config.dynamic_level_periods:
            value = indicators.ema.get(period)
            if value is None:
                continue
            factor = LevelFactor(kind=FactorKind.MOVING_AVERAGE, price=value, period=period)
            candidates.append(self._candidate(value, side_for(value, current), factor, indicators))

        # Fibonacci retracements
        if indicators.fibonacci is not None:
            for level in indicators.fibonacci.levels:
                factor = LevelFactor(
                    kind=FactorKind.FIBONACCI,
                    price=level.price,
                    ratio=level.ratio,
                    label=level.label,
                    weight=level.weight,
                )
                candidates.append(self._candidate(level.price, side_for(level.price, current), factor, indicators))

        # High-volume nodes
        for node in indicators.volume_profile.nodes:
            factor = LevelFactor(
                kind=FactorKind.VOLUME_NODE,
                price=node.price_mid,
                volume_percent=node.volume_percent,
            )
            candidates.append(self._candidate(node.price_mid, side_for(node.price_mid, current), factor, indicators))

        # Psychological round numbers near price
        for value in self.round_numbers(current):
            factor = LevelFactor(kind=FactorKind.ROUND_NUMBER, price=value)
            candidates.append(self._candidate(value, side_for(value, current), factor, indicators))

        logger.debug(f"Built {len(candidates)} level candidates for {indicators.symbol}")
        return candidates

    def round_numbers(self, current_price: float) -> list[float]:
        """Multiples of the price-scaled round step within the configured range of price."""
        try:
            step = round_number_step(current_price, self.config.round_number_step_percent)
        except ComputationError as e:
            logger.debug(f"Round numbers unavailable: {e.message}")
            return []

        span = current_price * self.config.round_number_range_percent / 100
        first = math.ceil((current_price - span) / step - 1e-9)
        last = math.floor((current_price + span) / step + 1e-9)

        values = []
        for k in range(first, last + 1):
            value = round(k * step, 10)
            if value > 0:
                values.append(value)
        return values

    def zone_width(self, price: float, atr: float) -> float:
        return max(atr * self.config.zone_width_factor, price * self.config.min_zone_width_percent / 100)

    def _candidate(
        self, price: float, side: LevelSide, factor: LevelFactor, indicators: IndicatorSet
    ) -> CandidateLevel:
        half = self.zone_width(price, indicators.atr.atr) / 2
        return CandidateLevel(
            price=price,
            zone=Zone(low=price - half, high=price + half),
            side=side,
            factors=(factor,),
        )
