"""
CONTRACT 1: Price Series Input

Input: AnalysisRequest (symbol, interval label, ordered OHLCV bars)

Bars are accepted as plain typed records. Shape rules (positive prices,
strictly increasing timestamps, minimum length) are enforced by the bar
validator so that violations surface as InputError rather than as schema
errors.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class IntervalCategory(str, Enum):
    INTRADAY = "intraday"
    DAILY = "daily"
    WEEKLY = "weekly"


_INTRADAY_PATTERN = re.compile(r"^\d*\s*(s|sec|secs|second|seconds|m|min|mins|minute|minutes|h|hr|hrs|hour|hours)$")
_WEEKLY_PATTERN = re.compile(r"^\d*\s*(w|wk|wks|week|weeks|weekly|mo|mon|month|months|monthly|q|y|yr|year)$")


def categorize_interval(interval: str) -> IntervalCategory:
    """
    Map a free-text interval label onto a coarse category.

    "5m", "15min", "1h", "60" -> intraday
    "1d", "D", "daily" -> daily
    "1w", "1wk", "1mo", "M" -> weekly
    """
    raw = interval.strip()
    # Upper-case M is the conventional monthly label
    if raw in ("M", "1M"):
        return IntervalCategory.WEEKLY

    label = raw.lower()
    if label.isdigit():
        # Bare numbers are minutes (TradingView style); 1440+ is a day or more
        return IntervalCategory.INTRADAY if int(label) < 1440 else IntervalCategory.DAILY
    if _INTRADAY_PATTERN.match(label):
        return IntervalCategory.INTRADAY
    if _WEEKLY_PATTERN.match(label):
        return IntervalCategory.WEEKLY
    return IntervalCategory.DAILY


# =============================================================================
# BARS
# =============================================================================


class Bar(BaseModel):
    """Single OHLCV candle. Immutable."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


# =============================================================================
# INPUT: AnalysisRequest
# =============================================================================


class AnalysisRequest(BaseModel):
    """
    Request for a support/resistance analysis.
    Sent by: service layer / CLI
    Received by: AnalysisService
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "symbol": "AAPL",
                "interval": "1d",
                "bars": [
                    {
                        "timestamp": "2024-02-05T00:00:00Z",
                        "open": 187.15,
                        "high": 189.25,
                        "low": 185.84,
                        "close": 187.68,
                        "volume": 69668800,
                    }
                ],
            }
        },
    )

    symbol: str = Field(..., min_length=1, description="Instrument symbol, e.g. 'AAPL'")
    interval: str = Field(..., min_length=1, description="Bar interval label, e.g. '1d'")
    bars: tuple[Bar, ...] = Field(..., description="Bars in ascending timestamp order")
    as_of: Optional[datetime] = Field(
        default=None,
        description="Caller-supplied 'now'; echoed in the output, never read from the clock",
    )
