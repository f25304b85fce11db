"""
Confluence Scorer

Merges overlapping candidate zones, weighs their combined factors into a
0-100 confluence score, classifies strength and ranks each side.

Merging is an interval sweep over candidates sorted by zone, so the result is
the same for any input order. Every factor contributes the maximum over the
merged members, so a merged level never scores below any of its parts.
"""

import logging
import math
from typing import Iterable, Optional, Sequence

from levelscope.schemas.analysis import LevelSlice
from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.indicators import IndicatorSet
from levelscope.schemas.levels import (
    CandidateLevel,
    ConfluenceFactors,
    FactorKind,
    FibonacciFactor,
    LevelFactor,
    LevelSide,
    LevelStrength,
    MovingAverageFactor,
    RecencyFactor,
    RoundNumberFactor,
    ScoredLevel,
    TouchFactor,
    VolumeNodeFactor,
    Zone,
)
from levelscope.services.levels.candidates import side_for

logger = logging.getLogger(__name__)


# =============================================================================
# MERGE
# =============================================================================


def _merge_group(group: list[CandidateLevel], current_price: float) -> CandidateLevel:
    low = min(c.zone.low for c in group)
    high = max(c.zone.high for c in group)
    price = sum(c.price for c in group) / len(group)
    price = min(max(price, low), high)

    factors = tuple(sorted({f for c in group for f in c.factors}, key=LevelFactor.sort_key))
    return CandidateLevel(
        price=price,
        zone=Zone(low=low, high=high),
        side=side_for(price, current_price),
        factors=factors,
    )


def merge_candidates(candidates: Iterable[CandidateLevel], current_price: float) -> list[CandidateLevel]:
    """
    Merge candidates whose zones overlap (touching counts), sort-then-sweep.

    The merged candidate spans the union of zones, sits at the mean member
    price and carries the union of factor tags.
    """
    ordered = sorted(candidates, key=CandidateLevel.sort_key)

    merged: list[CandidateLevel] = []
    group: list[CandidateLevel] = []
    group_high = 0.0

    for candidate in ordered:
        if group and candidate.zone.low <= group_high:
            group.append(candidate)
            group_high = max(group_high, candidate.zone.high)
            continue
        if group:
            merged.append(_merge_group(group, current_price))
        group = [candidate]
        group_high = candidate.zone.high

    if group:
        merged.append(_merge_group(group, current_price))

    return merged


# =============================================================================
# SCORER
# =============================================================================


class ConfluenceScorer:
    """
    Scores and ranks support/resistance levels.

    All weights and cut-offs come from ``AnalysisConfig``.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def score(self, candidates: Sequence[CandidateLevel], indicators: IndicatorSet) -> list[ScoredLevel]:
        """
        Merge, weigh, classify and rank.

        Returns supports (best first) followed by resistances (best first).
        Levels under the minimum score are dropped; an empty side is not an error.
        """
        current = indicators.current_price
        merged = merge_candidates(candidates, current)

        ranked: dict[LevelSide, list[tuple]] = {LevelSide.SUPPORT: [], LevelSide.RESISTANCE: []}
        dropped = 0
        for candidate in merged:
            score, breakdown = self.score_factors(candidate.factors)
            if score < self.config.strength.min_score:
                dropped += 1
                continue
            distance = abs(candidate.price - current)
            ranked[candidate.side].append((-score, distance, candidate.price, candidate, score, breakdown))

        levels: list[ScoredLevel] = []
        for side, prefix in ((LevelSide.SUPPORT, "S"), (LevelSide.RESISTANCE, "R")):
            entries = sorted(ranked[side], key=lambda e: e[:3])
            for rank, (_, distance, _, candidate, score, breakdown) in enumerate(entries, start=1):
                levels.append(
                    ScoredLevel(
                        id=f"{prefix}{rank}",
                        side=side,
                        price=candidate.price,
                        zone=candidate.zone,
                        confluence_score=score,
                        strength=self.classify(score),
                        factors=breakdown,
                        sources=self._sources(candidate.factors),
                        description=self.describe(breakdown, side),
                        distance=distance,
                        distance_percent=distance / current * 100,
                    )
                )

        logger.debug(
            f"Scored {len(merged)} merged zones from {len(candidates)} candidates "
            f"({dropped} below floor) for {indicators.symbol}"
        )
        return levels

    def score_factors(self, factors: Iterable[LevelFactor]) -> tuple[float, ConfluenceFactors]:
        """Weighted, normalized 0-100 score of a factor set plus its itemized breakdown."""
        weights = self.config.weights
        by_kind: dict[FactorKind, list[LevelFactor]] = {}
        for factor in factors:
            by_kind.setdefault(factor.kind, []).append(factor)

        swings = by_kind.get(FactorKind.SWING, [])
        touches = max((f.touches or 0 for f in swings), default=0)
        touch_points = 0.0
        if touches > 0:
            ratio = math.log1p(touches) / math.log1p(weights.touch_saturation)
            touch_points = weights.historical_touches * min(1.0, ratio)

        fibonacci = None
        fibs = by_kind.get(FactorKind.FIBONACCI, [])
        max_weight = self.config.fibonacci.max_weight
        if fibs:
            best = max(fibs, key=lambda f: (f.weight or 0.0, f.ratio or 0.0))
            points = weights.fibonacci * (best.weight or 0.0) / max_weight if max_weight > 0 else 0.0
            fibonacci = FibonacciFactor(label=best.label or "", ratio=best.ratio or 0.0, points=points)

        moving_average = None
        averages = by_kind.get(FactorKind.MOVING_AVERAGE, [])
        if averages:
            period = max(f.period or 0 for f in averages)
            moving_average = MovingAverageFactor(period=period, points=weights.moving_average)

        volume_node = None
        nodes = by_kind.get(FactorKind.VOLUME_NODE, [])
        if nodes:
            volume_node = VolumeNodeFactor(
                volume_percent=max(f.volume_percent or 0.0 for f in nodes),
                points=weights.volume_node,
            )

        round_number = None
        rounds = by_kind.get(FactorKind.ROUND_NUMBER, [])
        if rounds:
            round_number = RoundNumberFactor(value=max(f.price for f in rounds), points=weights.round_number)

        recent_relevance = None
        recent = [f for f in swings if f.is_recent]
        if recent:
            recent_relevance = RecencyFactor(
                last_swing_index=max(f.swing_index or 0 for f in recent),
                points=weights.recent_relevance,
            )

        breakdown = ConfluenceFactors(
            historical_touches=TouchFactor(count=touches, points=touch_points),
            fibonacci=fibonacci,
            moving_average=moving_average,
            volume_node=volume_node,
            round_number=round_number,
            recent_relevance=recent_relevance,
        )
        score = breakdown.raw_points / weights.total * 100
        return round(min(100.0, max(0.0, score)), 2), breakdown

    def classify(self, score: float) -> LevelStrength:
        thresholds = self.config.strength
        if score >= thresholds.strong:
            return LevelStrength.STRONG
        if score >= thresholds.medium:
            return LevelStrength.MEDIUM
        return LevelStrength.WEAK

    @staticmethod
    def partition(levels: Sequence[ScoredLevel]) -> tuple[list[ScoredLevel], list[ScoredLevel]]:
        """Split ranked levels into (support, resistance), keeping rank order."""
        support = [lvl for lvl in levels if lvl.side == LevelSide.SUPPORT]
        resistance = [lvl for lvl in levels if lvl.side == LevelSide.RESISTANCE]
        return support, resistance

    def select_display(
        self, levels: Sequence[ScoredLevel], max_levels: int, current_price: float
    ) -> list[ScoredLevel]:
        """Top ``max_levels`` in rank order, skipping levels crowding an already chosen one."""
        spacing = self.config.display.min_level_spacing_percent
        selected: list[ScoredLevel] = []
        for level in levels:
            if len(selected) >= max_levels:
                break
            crowded = any(
                abs(level.price - chosen.price) / current_price * 100 < spacing for chosen in selected
            )
            if not crowded:
                selected.append(level)
        return selected

    def level_slice(self, levels: Sequence[ScoredLevel], max_per_side: int, current_price: float) -> LevelSlice:
        support, resistance = self.partition(levels)
        return LevelSlice(
            support=tuple(self.select_display(support, max_per_side, current_price)),
            resistance=tuple(self.select_display(resistance, max_per_side, current_price)),
        )

    @staticmethod
    def describe(factors: ConfluenceFactors, side: LevelSide) -> str:
        parts = []
        touches = factors.historical_touches.count
        if touches:
            parts.append(f"{touches} historical touch{'es' if touches != 1 else ''}")
        if factors.fibonacci:
            parts.append(f"{factors.fibonacci.label} Fib")
        if factors.moving_average:
            parts.append(f"near EMA {factors.moving_average.period}")
        if factors.volume_node:
            parts.append("high volume node")
        if factors.round_number:
            parts.append(f"{factors.round_number.value:g} psychological level")
        if factors.recent_relevance:
            parts.append("recently tested")

        prefix = "Support" if side == LevelSide.SUPPORT else "Resistance"
        if not parts:
            return f"{prefix} level"
        return f"{prefix}: {' + '.join(parts)}"

    @staticmethod
    def _sources(factors: Iterable[LevelFactor]) -> tuple[FactorKind, ...]:
        kinds = {f.kind for f in factors}
        return tuple(kind for kind in FactorKind if kind in kinds)
