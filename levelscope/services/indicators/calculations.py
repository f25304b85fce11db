"""
Technical Indicator Calculations

Pure Python/NumPy implementations of the indicators used for level analysis.
All math is deterministic.

Array functions return NaN where a value is undefined (e.g. before an EMA
seed). Scalar helpers raise ComputationError for degenerate input so callers
can drop just that field.
"""

import math
import numpy as np
from typing import Optional
from dataclasses import dataclass

from levelscope.services.base import ComputationError


@dataclass
class OHLCVData:
    """OHLCV data arrays for calculations."""

    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray

    @classmethod
    def from_bars(cls, bars) -> "OHLCVData":
        return cls(
            opens=np.array([b.open for b in bars], dtype=float),
            highs=np.array([b.high for b in bars], dtype=float),
            lows=np.array([b.low for b in bars], dtype=float),
            closes=np.array([b.close for b in bars], dtype=float),
            volumes=np.array([b.volume for b in bars], dtype=float),
        )

    def __len__(self) -> int:
        return len(self.closes)


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """
    Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values, then
    ``ema[i] = data[i] * k + ema[i - 1] * (1 - k)`` with ``k = 2 / (period + 1)``.
    """
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    multiplier = 2 / (period + 1)

    # Start with SMA
    result[period - 1] = np.mean(data[:period])

    for i in range(period, len(data)):
        result[i] = data[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True Range per bar. The first bar has no previous close and uses high - low."""
    tr = np.zeros(len(closes))
    if len(closes) == 0:
        return tr

    tr[0] = highs[0] - lows[0]
    for i in range(1, len(closes)):
        tr[i] = max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
    return tr


def atr(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 10) -> float:
    """Average True Range: simple average of the last ``period`` true ranges."""
    tr = true_range(highs, lows, closes)
    if len(tr) == 0:
        raise ComputationError("calculations", "ATR of an empty series")
    window = tr[-period:]
    return float(max(0.0, np.mean(window)))


def rolling_std(data: np.ndarray, period: int) -> np.ndarray:
    """Population standard deviation over a trailing window."""
    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.std(data[i - period + 1 : i + 1])
    return result


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands.

    Returns: (upper, middle, lower, bandwidth)
    """
    middle = sma(closes, period)
    std = rolling_std(closes, period)

    upper = middle + (std_dev * std)
    lower = middle - (std_dev * std)

    with np.errstate(divide="ignore", invalid="ignore"):
        bandwidth = (upper - lower) / middle

    return upper, middle, lower, bandwidth


def percent_b(price: float, upper: float, lower: float) -> float:
    """%B: position of price within the bands. Outside 0-1 when price is outside."""
    return safe_ratio(price - lower, upper - lower, "percent_b")


# =============================================================================
# VOLUME
# =============================================================================


def volume_histogram(
    closes: np.ndarray,
    volumes: np.ndarray,
    price_low: float,
    price_high: float,
    buckets: int = 20,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Volume by price bucket, each bar's volume assigned to its close.

    Returns: (bucket_volumes, bucket_edges)
    """
    if not price_high > price_low:
        raise ComputationError("calculations", "volume profile needs a non-zero price range")
    return np.histogram(closes, bins=buckets, range=(price_low, price_high), weights=volumes)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def safe_ratio(numerator: float, denominator: float, field: str) -> float:
    """Divide, raising ComputationError instead of returning inf/NaN."""
    if denominator == 0 or not math.isfinite(denominator) or not math.isfinite(numerator):
        raise ComputationError(
            "calculations",
            f"{field}: degenerate ratio {numerator}/{denominator}",
            {"field": field},
        )
    return numerator / denominator


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Get last non-NaN value from array."""
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None


def slope(arr: np.ndarray, lookback: int) -> Optional[float]:
    """Change of the last valid value over ``lookback`` bars, None if not enough history."""
    if len(arr) <= lookback:
        return None
    last, prior = arr[-1], arr[-1 - lookback]
    if np.isnan(last) or np.isnan(prior):
        return None
    return float(last - prior)


def round_number_step(price: float, max_step_percent: float) -> float:
    """
    Largest 1 / 2 / 2.5 / 5 x 10^n step not exceeding ``max_step_percent`` of price.

    100 at 5% -> 5; 2450 at 5% -> 100; 0.8 at 5% -> 0.025.
    """
    raw = safe_ratio(price * max_step_percent, 100.0, "round_number_step")
    if raw <= 0:
        raise ComputationError("calculations", "round number step needs a positive price")
    base = 10.0 ** math.floor(math.log10(raw))
    for multiple in (5.0, 2.5, 2.0, 1.0):
        step = multiple * base
        if step <= raw * (1 + 1e-12):
            return step
    return base
