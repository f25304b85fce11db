"""
Swing Point Detection

Finds pivot highs/lows, counts how often price revisited each one, and picks
the leg used for Fibonacci retracement.
"""

import logging
from typing import Optional, Sequence
from dataclasses import dataclass

from levelscope.schemas.indicators import SwingDirection, SwingKind, SwingPoint
from levelscope.schemas.market import Bar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FibonacciSwing:
    """The leg selected for Fibonacci: ``start`` came first, ``end`` is the most recent pivot."""

    start: SwingPoint
    end: SwingPoint

    @property
    def direction(self) -> SwingDirection:
        return SwingDirection.UP if self.start.kind == SwingKind.LOW else SwingDirection.DOWN

    @property
    def high(self) -> SwingPoint:
        return self.start if self.start.kind == SwingKind.HIGH else self.end

    @property
    def low(self) -> SwingPoint:
        return self.start if self.start.kind == SwingKind.LOW else self.end

    @property
    def move_percent(self) -> float:
        return abs(self.end.price - self.start.price) / self.start.price * 100


def count_touches(bars: Sequence[Bar], price: float, tolerance_percent: float) -> int:
    """
    Count separate visits to ``price``.

    A bar touches when its high/low range comes within the tolerance band;
    consecutive touching bars form one visit.
    """
    band = price * tolerance_percent / 100
    lower, upper = price - band, price + band

    touches = 0
    touching = False
    for bar in bars:
        hit = bar.low <= upper and bar.high >= lower
        if hit and not touching:
            touches += 1
        touching = hit
    return touches


class SwingPointDetector:
    """
    Pivot detector.

    A bar is a swing high when its high is strictly above the ``window`` highs
    to its left and not below the ``window`` highs to its right, so a run of
    equal highs resolves to the earliest bar. Swing lows mirror this on lows.
    """

    def __init__(
        self,
        window: int = 3,
        touch_tolerance_percent: float = 1.0,
        recent_fraction: float = 0.2,
    ):
        if window < 1:
            raise ValueError("swing window must be at least 1")
        self.window = window
        self.touch_tolerance_percent = touch_tolerance_percent
        self.recent_fraction = recent_fraction

    def find(self, bars: Sequence[Bar], window: Optional[int] = None) -> list[SwingPoint]:
        """Detect swing points, ordered by index (high before low on the same bar)."""
        window = window or self.window
        n = len(bars)
        recent_from = int(n * (1 - self.recent_fraction))
        swings: list[SwingPoint] = []

        for i in range(window, n - window):
            high = bars[i].high
            low = bars[i].low
            left = bars[i - window : i]
            right = bars[i + 1 : i + window + 1]

            is_high = all(b.high < high for b in left) and all(b.high <= high for b in right)
            is_low = all(b.low > low for b in left) and all(b.low >= low for b in right)

            if is_high:
                swings.append(self._swing(bars, i, high, SwingKind.HIGH, recent_from))
            if is_low:
                swings.append(self._swing(bars, i, low, SwingKind.LOW, recent_from))

        logger.debug(f"Detected {len(swings)} swing points in {n} bars (window={window})")
        return swings

    def _swing(
        self, bars: Sequence[Bar], index: int, price: float, kind: SwingKind, recent_from: int
    ) -> SwingPoint:
        return SwingPoint(
            index=index,
            price=price,
            kind=kind,
            timestamp=bars[index].timestamp,
            touches=count_touches(bars, price, self.touch_tolerance_percent),
            is_recent=index >= recent_from,
        )

    @staticmethod
    def select_fibonacci_swing(
        swings: Sequence[SwingPoint], min_move_percent: float
    ) -> Optional[FibonacciSwing]:
        """
        Most recent high->low or low->high leg moving at least ``min_move_percent``.

        Consecutive pivots of the same kind collapse to their extreme first
        (earliest on ties). Returns None when no leg qualifies.
        """
        pivots: list[SwingPoint] = []
        for swing in sorted(swings, key=lambda s: (s.index, s.kind.value)):
            if pivots and pivots[-1].kind == swing.kind:
                last = pivots[-1]
                more_extreme = (
                    swing.price > last.price if swing.kind == SwingKind.HIGH else swing.price < last.price
                )
                if more_extreme:
                    pivots[-1] = swing
                continue
            pivots.append(swing)

        for i in range(len(pivots) - 1, 0, -1):
            leg = FibonacciSwing(start=pivots[i - 1], end=pivots[i])
            if leg.move_percent >= min_move_percent:
                return leg

        return None
