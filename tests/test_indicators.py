import asyncio

import pytest

from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.indicators import (
    BandPosition,
    EMAAlignment,
    OverextensionStatus,
    PriceDirection,
    SwingDirection,
    TradingBias,
    TrendDirection,
    VolatilityRegime,
)
from levelscope.schemas.levels import FactorKind, LevelSide
from levelscope.schemas.market import AnalysisRequest, IntervalCategory, categorize_interval
from levelscope.services.base import InputError
from levelscope.services.indicators import IndicatorEngine, get_indicator_engine
from levelscope.services.indicators import service as engine_module
from levelscope.services.levels import LevelCandidateBuilder


@pytest.fixture
def engine(config):
    return IndicatorEngine(config)


@pytest.mark.parametrize(
    "label, category",
    [
        ("5m", IntervalCategory.INTRADAY),
        ("15min", IntervalCategory.INTRADAY),
        ("1h", IntervalCategory.INTRADAY),
        ("60", IntervalCategory.INTRADAY),
        ("1d", IntervalCategory.DAILY),
        ("D", IntervalCategory.DAILY),
        ("1440", IntervalCategory.DAILY),
        ("1wk", IntervalCategory.WEEKLY),
        ("1mo", IntervalCategory.WEEKLY),
        ("M", IntervalCategory.WEEKLY),
    ],
)
def test_categorize_interval(label, category):
    assert categorize_interval(label) == category


def test_flat_series_degenerate_fields(engine, flat_bars):
    """Zero variance leaves individual fields empty without aborting the snapshot."""
    indicators = engine.compute_all(flat_bars, "FLAT", "1d")

    assert indicators.current_price == 100
    assert indicators.price_change == 0
    assert indicators.atr.atr == 0
    assert indicators.atr.regime == VolatilityRegime.LOW

    assert indicators.ema.get(9) == pytest.approx(100)
    assert indicators.ema.get(21) == pytest.approx(100)
    assert indicators.ema.get(50) is None
    assert indicators.ema.get(200) is None

    assert indicators.bollinger is not None
    assert indicators.bollinger.percent_b is None
    assert indicators.bollinger.squeeze is False
    assert indicators.bollinger.position == BandPosition.UPPER_HALF

    assert indicators.overextension.atr_normalized_distance is None
    assert indicators.overextension.status == OverextensionStatus.NORMAL
    assert indicators.overextension.signal_type == "none"

    assert indicators.fibonacci is None
    assert indicators.swing_points == ()

    assert indicators.trend.direction == TrendDirection.NEUTRAL
    assert indicators.trend.strength == 0

    nodes = indicators.volume_profile.nodes
    assert len(nodes) == 1
    assert nodes[0].volume_percent == 100.0


def test_rejects_short_series(engine, support_bars):
    with pytest.raises(InputError):
        engine.compute_all(support_bars[:19], "TEST", "1d")


def test_uptrend(engine, uptrend_bars):
    indicators = engine.compute_all(uptrend_bars, "UP", "1d")
    trend = indicators.trend

    assert trend.direction == TrendDirection.BULLISH
    assert trend.alignment == EMAAlignment.BULLISH_STACK
    assert trend.bias == TradingBias.LONG
    assert trend.strength == 100
    assert indicators.ema.get(50) is not None
    assert indicators.ema.get(200) is None

    # EMA21 lags a linear trend by (21 - 1) / 2 bars
    extension = indicators.overextension
    assert extension.distance == pytest.approx(10.0)
    assert extension.direction == PriceDirection.ABOVE
    assert extension.status == OverextensionStatus.EXTREME
    assert extension.mean_reversion_signal is True
    assert extension.signal_type == "strong_bearish_reversal"


def test_downtrend(engine, downtrend_bars):
    trend = engine.compute_all(downtrend_bars, "DOWN", "1d").trend

    assert trend.direction == TrendDirection.BEARISH
    assert trend.alignment == EMAAlignment.BEARISH_STACK
    assert trend.bias == TradingBias.SHORT


def test_retracement_of_decline(engine, retracement_bars):
    indicators = engine.compute_all(retracement_bars, "FIB", "1d")
    fib = indicators.fibonacci

    assert fib is not None
    assert fib.direction == SwingDirection.DOWN
    assert fib.swing_high == 120.0
    assert fib.swing_low == 100.0
    assert fib.swing_high_index == 10
    assert fib.swing_low_index == 18
    assert fib.level(0.618).price == pytest.approx(112.36)
    assert fib.level(0.0).price == pytest.approx(100.0)
    assert fib.level(1.0).price == pytest.approx(120.0)
    assert fib.current_retracement == pytest.approx(0.4)


def test_retracement_candidate_is_resistance(engine, config, retracement_bars):
    indicators = engine.compute_all(retracement_bars, "FIB", "1d")
    candidates = LevelCandidateBuilder(config).build(indicators)

    golden = [
        c
        for c in candidates
        if any(f.kind == FactorKind.FIBONACCI and f.ratio == 0.618 for f in c.factors)
    ]
    assert len(golden) == 1
    assert golden[0].price == pytest.approx(112.36)
    assert golden[0].side == LevelSide.RESISTANCE


def test_fibonacci_available_intraday(engine, retracement_bars):
    assert engine.compute_all(retracement_bars, "FIB", "5m").fibonacci is not None


def test_fibonacci_omitted_when_move_too_small(retracement_bars):
    strict = AnalysisConfig().updated(
        fibonacci={"min_move_percent": {"intraday": 50, "daily": 50, "weekly": 50}}
    )
    assert IndicatorEngine(strict).compute_all(retracement_bars, "FIB", "1d").fibonacci is None


def test_atr_non_negative_and_regime(engine, support_bars):
    atr = engine.compute_all(support_bars, "TEST", "1d").atr

    assert atr.atr >= 0
    assert atr.atr_percent == pytest.approx(1.8 / 110 * 100)
    assert atr.regime == VolatilityRegime.MEDIUM
    assert engine.classify_volatility(atr.atr_percent) == atr.regime


@pytest.mark.parametrize(
    "atr_percent, regime",
    [
        (0.5, VolatilityRegime.LOW),
        (1.5, VolatilityRegime.MEDIUM),
        (3.0, VolatilityRegime.MEDIUM),
        (3.01, VolatilityRegime.HIGH),
        (None, None),
    ],
)
def test_classify_volatility(engine, atr_percent, regime):
    assert engine.classify_volatility(atr_percent) == regime


def test_bollinger_ordering(engine, support_bars):
    bands = engine.compute_all(support_bars, "TEST", "1d").bollinger
    assert bands.upper >= bands.middle >= bands.lower


def test_volume_nodes_above_threshold(engine, support_bars):
    profile = engine.compute_all(support_bars, "TEST", "1d").volume_profile

    assert 0 < len(profile.nodes) <= 5
    volumes = [n.volume for n in profile.nodes]
    assert volumes == sorted(volumes, reverse=True)
    for node in profile.nodes:
        assert node.volume > 30000 / 20 * 1.5
        assert node.price_low <= node.price_mid <= node.price_high


def test_zero_volume_has_no_nodes(engine, support_bars):
    bars = [bar.model_copy(update={"volume": 0.0}) for bar in support_bars]
    profile = engine.compute_all(bars, "TEST", "1d").volume_profile

    assert profile.nodes == ()
    assert profile.point_of_control is None


def test_execute_matches_compute_all(engine, support_bars):
    request = AnalysisRequest(symbol="TEST", interval="1d", bars=tuple(support_bars))
    result = asyncio.run(engine.execute(request))

    assert result == engine.compute_all(support_bars, "TEST", "1d")
    assert asyncio.run(engine.health_check()) is True
    assert engine.name == "IndicatorEngine"


def test_get_indicator_engine_singleton(monkeypatch):
    monkeypatch.setattr(engine_module, "_engine_instance", None)

    engine = get_indicator_engine()

    assert isinstance(engine, IndicatorEngine)
    assert get_indicator_engine() is engine
