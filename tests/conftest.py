import pytest
from datetime import datetime, timedelta

from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.market import Bar


START = datetime(2024, 1, 1)

# Pullbacks to 95 three times, then a breakout to 110
SCENARIO_B_CLOSES = [
    90, 91.5, 93, 94.5, 96, 97.5, 99, 97, 95.5, 97,
    99, 100.5, 98, 95.5, 97.5, 99.5, 101, 98.5, 95.5, 98,
    100, 102, 103.5, 105, 106, 107, 108, 108.5, 109.5, 110,
]

# Rally to 120, decline to 100, partial recovery to 108
SCENARIO_D_CLOSES = [
    105, 106.5, 108, 109.5, 111, 112.5, 114, 115.5, 117, 119,
    118, 116, 113, 110, 107, 104, 102, 101, 100.5, 101.5,
    102.5, 103.5, 104.5, 105, 105.5, 106, 106.5, 107, 107.5, 108,
]


def build_bars(
    closes,
    pad=0.3,
    volume=1000.0,
    first_open=None,
    high_overrides=None,
    low_overrides=None,
    step=timedelta(days=1),
):
    """
    Bars whose open is the previous close and whose high/low sit ``pad`` beyond
    the body. Individual highs/lows can be overridden by index.
    """
    high_overrides = high_overrides or {}
    low_overrides = low_overrides or {}
    bars = []
    prev = closes[0] if first_open is None else first_open
    for i, close in enumerate(closes):
        open_ = prev
        high = high_overrides.get(i, max(open_, close) + pad)
        low = low_overrides.get(i, min(open_, close) - pad)
        bars.append(
            Bar(
                timestamp=START + step * i,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volume,
            )
        )
        prev = close
    return bars


def bars_from_extremes(highs, lows):
    """Bars with explicit highs/lows; open and close at the midpoint."""
    bars = []
    for i, (high, low) in enumerate(zip(highs, lows)):
        mid = (high + low) / 2
        bars.append(Bar(timestamp=START + timedelta(days=i), open=mid, high=high, low=low, close=mid, volume=100))
    return bars


@pytest.fixture
def config():
    return AnalysisConfig()


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def flat_bars():
    """25 bars with open = high = low = close = 100."""
    return [
        Bar(timestamp=START + timedelta(days=i), open=100, high=100, low=100, close=100, volume=1000)
        for i in range(25)
    ]


@pytest.fixture
def support_bars():
    return build_bars(SCENARIO_B_CLOSES, first_open=90, low_overrides={8: 95.0, 13: 95.0, 18: 95.0})


@pytest.fixture
def retracement_bars():
    return build_bars(SCENARIO_D_CLOSES, pad=0.2, high_overrides={10: 120.0}, low_overrides={18: 100.0})


@pytest.fixture
def uptrend_bars():
    return build_bars([100.0 + i for i in range(60)])


@pytest.fixture
def downtrend_bars():
    return build_bars([200.0 - i for i in range(60)])
