"""
Bar Validator

Checks series shape before any computation. Pass-through on success.
"""

import logging
import math
from datetime import datetime
from typing import Sequence

from levelscope.schemas.market import Bar
from levelscope.services.base import InputError

logger = logging.getLogger(__name__)

MIN_BARS = 20

_SERVICE = "BarValidator"


def _is_aware(timestamp: datetime) -> bool:
    return timestamp.tzinfo is not None and timestamp.utcoffset() is not None


def validate_bars(
    bars: Sequence[Bar],
    symbol: str,
    interval: str,
    min_bars: int = MIN_BARS,
) -> Sequence[Bar]:
    """
    Validate an OHLCV series.

    Raises:
        InputError: fewer than ``min_bars`` bars, timestamps not strictly
            increasing (or mixing timezone-aware and naive values), a
            non-positive or non-finite OHLC value, or a
            negative volume.

    Returns:
        The same ``bars`` object, unchanged.
    """
    count = len(bars) if bars is not None else 0
    if count < min_bars:
        raise InputError(
            _SERVICE,
            f"Insufficient data for {symbol} ({interval}): {count} bars, need at least {min_bars}",
            {"symbol": symbol, "interval": interval, "bars": count, "min_bars": min_bars},
        )

    previous = None
    aware = _is_aware(bars[0].timestamp) if count else False
    for index, bar in enumerate(bars):
        if _is_aware(bar.timestamp) != aware:
            raise InputError(
                _SERVICE,
                f"Timestamps mix timezone-aware and naive values ({symbol} bar {index})",
                {"symbol": symbol, "index": index, "field": "timestamp"},
            )
        if previous is not None and bar.timestamp <= previous.timestamp:
            raise InputError(
                _SERVICE,
                f"Timestamps must be strictly increasing ({symbol} bar {index})",
                {"symbol": symbol, "index": index},
            )

        for field in ("open", "high", "low", "close"):
            value = getattr(bar, field)
            if not math.isfinite(value) or value <= 0:
                raise InputError(
                    _SERVICE,
                    f"Non-positive {field} {value} at bar {index} for {symbol}",
                    {"symbol": symbol, "index": index, "field": field},
                )

        if not math.isfinite(bar.volume) or bar.volume < 0:
            raise InputError(
                _SERVICE,
                f"Negative volume {bar.volume} at bar {index} for {symbol}",
                {"symbol": symbol, "index": index, "field": "volume"},
            )

        previous = bar

    logger.debug(f"Validated {count} bars for {symbol} ({interval})")
    return bars
