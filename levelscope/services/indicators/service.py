"""
Indicator Engine Service Implementation

Calculates every indicator the level analysis needs from OHLCV data.
Pure Python/NumPy calculations.

Degenerate numeric conditions (zero variance, zero ATR) are caught per field
and stored as ``None``; the rest of the snapshot is still produced.
"""

import logging
from typing import Callable, Optional, Sequence, TypeVar
import numpy as np

from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.market import AnalysisRequest, Bar, IntervalCategory, categorize_interval
from levelscope.schemas.indicators import (
    ATRData,
    BandPosition,
    BollingerData,
    EMAAlignment,
    EMAData,
    EMAValue,
    FibonacciData,
    FibonacciLevelPrice,
    IndicatorSet,
    OverextensionData,
    OverextensionStatus,
    PriceDirection,
    SwingDirection,
    SwingPoint,
    TradingBias,
    TrendDirection,
    TrendState,
    VolatilityRegime,
    VolumeNode,
    VolumeProfile,
)
from levelscope.services.base import ComputationError
from levelscope.services.indicators.interface import IndicatorEngineInterface
from levelscope.services.indicators.validator import validate_bars
from levelscope.services.indicators.swings import SwingPointDetector
from levelscope.services.indicators.calculations import (
    OHLCVData,
    atr,
    bollinger_bands,
    ema,
    get_last_valid,
    percent_b,
    safe_ratio,
    slope,
    volume_histogram,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SIGNALS = {
    (OverextensionStatus.MODERATELY_EXTENDED, PriceDirection.ABOVE): "pullback_expected",
    (OverextensionStatus.MODERATELY_EXTENDED, PriceDirection.BELOW): "bounce_expected",
    (OverextensionStatus.OVEREXTENDED, PriceDirection.ABOVE): "bearish_reversal_candidate",
    (OverextensionStatus.OVEREXTENDED, PriceDirection.BELOW): "bullish_reversal_candidate",
    (OverextensionStatus.EXTREME, PriceDirection.ABOVE): "strong_bearish_reversal",
    (OverextensionStatus.EXTREME, PriceDirection.BELOW): "strong_bullish_reversal",
}


def _guarded(field: str, fn: Callable[..., T], *args) -> Optional[T]:
    """Run one field's calculation; a ComputationError leaves the field absent."""
    try:
        return fn(*args)
    except ComputationError as e:
        logger.debug(f"{field} unavailable: {e.message}")
        return None


def _sign(value: float, tolerance: float) -> int:
    if value > tolerance:
        return 1
    if value < -tolerance:
        return -1
    return 0


class IndicatorEngine(IndicatorEngineInterface):
    """
    Indicator Engine Service.

    Builds an immutable IndicatorSet for one bar series.
    All calculations are deterministic and reproducible.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self.detector = SwingPointDetector(
            window=self.config.swing_window,
            touch_tolerance_percent=self.config.touch_tolerance_percent,
            recent_fraction=self.config.recent_fraction,
        )

    async def execute(self, input_data: AnalysisRequest) -> IndicatorSet:
        """Calculate indicators for the request's bar series."""
        return self.compute_all(input_data.bars, input_data.symbol, input_data.interval)

    def compute_all(self, bars: Sequence[Bar], symbol: str, interval: str) -> IndicatorSet:
        """Calculate all indicators for a single series."""
        validate_bars(bars, symbol, interval, self.config.min_bars)

        data = OHLCVData.from_bars(bars)
        closes = data.closes
        current = float(closes[-1])
        first = float(closes[0])
        category = categorize_interval(interval)

        ema_arrays = {period: ema(closes, period) for period in self.config.ema_periods}
        ema_data = self._ema_data(ema_arrays, current)
        atr_data = self._atr_data(data, current)
        swings = self.detector.find(bars)

        indicators = IndicatorSet(
            symbol=symbol,
            interval=interval,
            interval_category=category,
            bar_count=len(bars),
            current_price=current,
            price_change=current - first,
            price_change_percent=_guarded(
                "price_change_percent", safe_ratio, (current - first) * 100, first, "price_change_percent"
            ),
            ema=ema_data,
            atr=atr_data,
            bollinger=self._bollinger(closes, current),
            overextension=self._overextension(current, ema_data, atr_data),
            fibonacci=self._fibonacci(bars, swings, current, category),
            volume_profile=self._volume_profile(data),
            trend=self._trend(ema_arrays, current),
            swing_points=tuple(swings),
        )

        logger.debug(
            f"Indicators for {symbol} ({interval}): {len(bars)} bars, "
            f"trend={indicators.trend.direction.value}, regime="
            f"{atr_data.regime.value if atr_data.regime else None}, "
            f"fibonacci={'yes' if indicators.fibonacci else 'no'}"
        )
        return indicators

    # -------------------------------------------------------------------------
    # EMA
    # -------------------------------------------------------------------------

    def _ema_data(self, ema_arrays: dict[int, np.ndarray], current: float) -> EMAData:
        values = []
        for period in sorted(ema_arrays):
            value = get_last_valid(ema_arrays[period])
            position = None
            if value is not None:
                position = PriceDirection.ABOVE if current >= value else PriceDirection.BELOW
            values.append(EMAValue(period=period, value=value, price_position=position))
        return EMAData(values=tuple(values))

    # -------------------------------------------------------------------------
    # ATR / volatility regime
    # -------------------------------------------------------------------------

    def _atr_data(self, data: OHLCVData, current: float) -> ATRData:
        atr_val = atr(data.highs, data.lows, data.closes, self.config.atr_period)
        atr_pct = _guarded("atr_percent", safe_ratio, atr_val * 100, current, "atr_percent")

        return ATRData(
            atr=atr_val,
            period=self.config.atr_period,
            atr_percent=atr_pct,
            regime=self.classify_volatility(atr_pct),
        )

    def classify_volatility(self, atr_percent: Optional[float]) -> Optional[VolatilityRegime]:
        """Three-way bucket of ATR% against the configured cut points."""
        if atr_percent is None:
            return None
        thresholds = self.config.volatility
        if atr_percent < thresholds.low:
            return VolatilityRegime.LOW
        if atr_percent > thresholds.high:
            return VolatilityRegime.HIGH
        return VolatilityRegime.MEDIUM

    # -------------------------------------------------------------------------
    # Bollinger Bands
    # -------------------------------------------------------------------------

    def _bollinger(self, closes: np.ndarray, current: float) -> Optional[BollingerData]:
        period = self.config.bollinger_period
        if len(closes) < period:
            return None

        upper, middle, lower, bandwidth = bollinger_bands(closes, period, self.config.bollinger_std_dev)
        upper_val, middle_val, lower_val = float(upper[-1]), float(middle[-1]), float(lower[-1])
        bandwidth_val = None if np.isnan(bandwidth[-1]) else float(bandwidth[-1])

        # Squeeze: current width well below its own average over prior windows
        history = bandwidth[period - 1 : -1]
        history = history[~np.isnan(history)]
        squeeze = False
        if bandwidth_val is not None and len(history) > 0:
            squeeze = bool(bandwidth_val < float(np.mean(history)) * self.config.squeeze_ratio)

        if current > upper_val:
            position = BandPosition.ABOVE_UPPER
        elif current >= middle_val:
            position = BandPosition.UPPER_HALF
        elif current >= lower_val:
            position = BandPosition.LOWER_HALF
        else:
            position = BandPosition.BELOW_LOWER

        return BollingerData(
            upper=upper_val,
            middle=middle_val,
            lower=lower_val,
            bandwidth=bandwidth_val,
            percent_b=_guarded("percent_b", percent_b, current, upper_val, lower_val),
            squeeze=squeeze,
            position=position,
        )

    # -------------------------------------------------------------------------
    # Overextension
    # -------------------------------------------------------------------------

    def _overextension(
        self, current: float, ema_data: EMAData, atr_data: ATRData
    ) -> Optional[OverextensionData]:
        period = self.config.overextension_period
        anchor = ema_data.get(period)
        if anchor is None:
            return None

        distance = current - anchor
        distance_pct = _guarded("distance_percent", safe_ratio, distance * 100, anchor, "distance_percent")
        if distance_pct is None:
            return None

        normalized = None
        if atr_data.atr_percent is not None:
            normalized = _guarded(
                "atr_normalized_distance", safe_ratio, abs(distance_pct), atr_data.atr_percent,
                "atr_normalized_distance",
            )

        # Without a usable ATR fall back to plain percent bands
        if normalized is not None:
            status = self._extension_status(normalized, self.config.overextension_atr)
        else:
            status = self._extension_status(abs(distance_pct), self.config.overextension_percent)

        direction = PriceDirection.ABOVE if distance >= 0 else PriceDirection.BELOW

        return OverextensionData(
            ema_period=period,
            distance=distance,
            distance_percent=distance_pct,
            atr_normalized_distance=normalized,
            status=status,
            direction=direction,
            mean_reversion_signal=status != OverextensionStatus.NORMAL,
            signal_type=_SIGNALS.get((status, direction), "none"),
        )

    @staticmethod
    def _extension_status(value: float, bands) -> OverextensionStatus:
        if value >= bands.extreme:
            return OverextensionStatus.EXTREME
        if value >= bands.overextended:
            return OverextensionStatus.OVEREXTENDED
        if value >= bands.moderate:
            return OverextensionStatus.MODERATELY_EXTENDED
        return OverextensionStatus.NORMAL

    # -------------------------------------------------------------------------
    # Fibonacci
    # -------------------------------------------------------------------------

    def _fibonacci(
        self,
        bars: Sequence[Bar],
        swings: list[SwingPoint],
        current: float,
        category: IntervalCategory,
    ) -> Optional[FibonacciData]:
        settings = self.config.fibonacci
        leg = self.detector.select_fibonacci_swing(swings, settings.min_move_percent.for_category(category))
        if leg is None:
            logger.debug("No qualifying swing; Fibonacci omitted")
            return None

        high, low = leg.high, leg.low
        price_range = high.price - low.price
        if price_range <= 0:
            return None

        levels = []
        for fib in settings.levels:
            if leg.direction == SwingDirection.DOWN:
                # Retracing a decline: measured up from the low
                price = low.price + price_range * fib.ratio
            else:
                price = high.price - price_range * fib.ratio
            levels.append(FibonacciLevelPrice(ratio=fib.ratio, label=fib.label, price=price, weight=fib.weight))

        if leg.direction == SwingDirection.DOWN:
            retracement = (current - low.price) / price_range
        else:
            retracement = (high.price - current) / price_range

        return FibonacciData(
            swing_high=high.price,
            swing_high_index=high.index,
            swing_high_time=bars[high.index].timestamp,
            swing_low=low.price,
            swing_low_index=low.index,
            swing_low_time=bars[low.index].timestamp,
            direction=leg.direction,
            levels=tuple(levels),
            current_retracement=min(1.0, max(0.0, retracement)),
        )

    # -------------------------------------------------------------------------
    # Volume profile
    # -------------------------------------------------------------------------

    def _volume_profile(self, data: OHLCVData) -> VolumeProfile:
        buckets = self.config.volume_profile_buckets
        total = float(np.sum(data.volumes))
        average = total / len(data)

        if total <= 0:
            return VolumeProfile(nodes=(), point_of_control=None, average_volume=0.0, bucket_count=buckets)

        price_low = float(np.min(data.lows))
        price_high = float(np.max(data.highs))

        histogram = _guarded(
            "volume_profile", volume_histogram, data.closes, data.volumes, price_low, price_high, buckets
        )
        if histogram is None:
            # Zero price range: every unit of volume traded at one price
            node = VolumeNode(
                price_low=price_low, price_high=price_high, price_mid=price_low, volume=total, volume_percent=100.0
            )
            return VolumeProfile(
                nodes=(node,) if self.config.max_volume_nodes > 0 else (),
                point_of_control=price_low,
                average_volume=average,
                bucket_count=buckets,
            )

        volumes, edges = histogram
        threshold = total / buckets * self.config.volume_node_threshold

        nodes = []
        for i, volume in enumerate(volumes):
            if volume > threshold:
                nodes.append(
                    VolumeNode(
                        price_low=float(edges[i]),
                        price_high=float(edges[i + 1]),
                        price_mid=float((edges[i] + edges[i + 1]) / 2),
                        volume=float(volume),
                        volume_percent=float(volume / total * 100),
                    )
                )
        nodes.sort(key=lambda n: (-n.volume, n.price_low))

        poc = int(np.argmax(volumes))
        return VolumeProfile(
            nodes=tuple(nodes[: self.config.max_volume_nodes]),
            point_of_control=float((edges[poc] + edges[poc + 1]) / 2),
            average_volume=average,
            bucket_count=buckets,
        )

    # -------------------------------------------------------------------------
    # Trend
    # -------------------------------------------------------------------------

    def _trend(self, ema_arrays: dict[int, np.ndarray], current: float) -> TrendState:
        settings = self.config.trend
        tolerance = current * 1e-9

        available = []
        for period in sorted(ema_arrays):
            value = get_last_valid(ema_arrays[period])
            if value is not None:
                available.append((period, value, ema_arrays[period]))

        # Fast-over-slow stacking
        stack = [
            _sign(fast[1] - slow[1], tolerance) for fast, slow in zip(available, available[1:])
        ]
        # Price against each EMA
        position = [_sign(current - value, tolerance) for _, value, _ in available]
        # Direction of each EMA over the lookback
        slopes = []
        for _, _, series in available:
            change = slope(series, settings.slope_lookback)
            if change is not None:
                slopes.append(_sign(change / current * 100, settings.slope_threshold_percent))

        signals = stack + position + slopes
        mean = sum(signals) / len(signals) if signals else 0.0

        if mean >= settings.direction_threshold:
            direction = TrendDirection.BULLISH
        elif mean <= -settings.direction_threshold:
            direction = TrendDirection.BEARISH
        else:
            direction = TrendDirection.NEUTRAL

        if stack and all(s == 1 for s in stack):
            alignment = EMAAlignment.BULLISH_STACK
        elif stack and all(s == -1 for s in stack):
            alignment = EMAAlignment.BEARISH_STACK
        else:
            alignment = EMAAlignment.MIXED

        anchor_period = self.config.overextension_period
        anchor = next((v for p, v, _ in available if p == anchor_period), None)
        if anchor is None and available:
            anchor = available[0][1]

        periods = "/".join(str(p) for p, _, _ in available) or "none"
        if direction == TrendDirection.BULLISH and anchor is not None and current > anchor:
            bias = TradingBias.LONG
            reason = f"Price above rising EMAs ({periods}) with bullish alignment"
        elif direction == TrendDirection.BEARISH and anchor is not None and current < anchor:
            bias = TradingBias.SHORT
            reason = f"Price below falling EMAs ({periods}) with bearish alignment"
        elif direction == TrendDirection.NEUTRAL:
            bias = TradingBias.NEUTRAL
            reason = f"EMAs ({periods}) intertwined, no clear trend direction"
        else:
            bias = TradingBias.NEUTRAL
            reason = f"{direction.value.capitalize()} EMA structure but price on the wrong side of EMA{anchor_period}"

        return TrendState(
            direction=direction,
            alignment=alignment,
            strength=int(round(min(1.0, abs(mean)) * 100)),
            bias=bias,
            bias_reason=reason,
        )


# Singleton instance
_engine_instance: Optional[IndicatorEngine] = None


def get_indicator_engine() -> IndicatorEngine:
    """Get or create indicator engine instance."""
    global _engine_instance
    if _engine_instance is None:
        from levelscope.schemas.config import get_analysis_config

        _engine_instance = IndicatorEngine(get_analysis_config())
    return _engine_instance
