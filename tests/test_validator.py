import pytest
from pydantic import ValidationError
from datetime import timedelta, timezone

from levelscope.schemas.market import Bar
from levelscope.services.analysis import analyze_bars
from levelscope.services.base import InputError, ServiceError
from levelscope.services.indicators.validator import MIN_BARS, validate_bars


def _with(bars, index, **changes):
    bars = list(bars)
    bars[index] = bars[index].model_copy(update=changes)
    return bars


def test_valid_series_passes_through(support_bars):
    assert validate_bars(support_bars, "TEST", "1d") is support_bars


def test_nineteen_bars_rejected(support_bars):
    with pytest.raises(InputError) as exc:
        validate_bars(support_bars[:19], "TEST", "1d")

    assert exc.value.details["bars"] == 19
    assert exc.value.details["min_bars"] == MIN_BARS
    assert "Insufficient data" in exc.value.message


def test_input_error_is_a_service_error(support_bars):
    with pytest.raises(ServiceError):
        validate_bars(support_bars[:5], "TEST", "1d")


def test_empty_series_rejected():
    with pytest.raises(InputError):
        validate_bars([], "TEST", "1d")


def test_custom_minimum(support_bars):
    assert validate_bars(support_bars[:10], "TEST", "1d", min_bars=10)


def test_duplicate_timestamp_rejected(support_bars):
    bars = _with(support_bars, 5, timestamp=support_bars[4].timestamp)
    with pytest.raises(InputError) as exc:
        validate_bars(bars, "TEST", "1d")
    assert exc.value.details["index"] == 5


def test_descending_timestamp_rejected(support_bars):
    bars = _with(support_bars, 12, timestamp=support_bars[11].timestamp - timedelta(hours=1))
    with pytest.raises(InputError):
        validate_bars(bars, "TEST", "1d")


@pytest.mark.parametrize("field", ["open", "high", "low", "close"])
def test_non_positive_price_rejected(support_bars, field):
    bars = _with(support_bars, 3, **{field: 0.0})
    with pytest.raises(InputError) as exc:
        validate_bars(bars, "TEST", "1d")
    assert exc.value.details["field"] == field


def test_non_finite_price_rejected(support_bars):
    bars = _with(support_bars, 7, high=float("nan"))
    with pytest.raises(InputError):
        validate_bars(bars, "TEST", "1d")


def test_negative_volume_rejected(support_bars):
    bars = _with(support_bars, 0, volume=-1.0)
    with pytest.raises(InputError) as exc:
        validate_bars(bars, "TEST", "1d")
    assert exc.value.details["field"] == "volume"


def test_zero_volume_accepted(support_bars):
    bars = [bar.model_copy(update={"volume": 0.0}) for bar in support_bars]
    assert validate_bars(bars, "TEST", "1d") is bars


def test_bar_is_immutable(support_bars):
    with pytest.raises(ValidationError):
        support_bars[0].close = 1.0
    assert isinstance(support_bars[0], Bar)


def test_mixed_timezone_awareness_rejected(support_bars):
    aware = support_bars[5].timestamp.replace(tzinfo=timezone.utc)
    bars = _with(support_bars, 5, timestamp=aware)

    with pytest.raises(InputError) as exc:
        validate_bars(bars, "TEST", "1d")
    assert exc.value.details == {"symbol": "TEST", "index": 5, "field": "timestamp"}


def test_mixed_timezone_awareness_rejected_by_pipeline(support_bars):
    aware = support_bars[5].timestamp.replace(tzinfo=timezone.utc)
    with pytest.raises(InputError):
        analyze_bars(_with(support_bars, 5, timestamp=aware), "TEST", "1d")


def test_all_aware_timestamps_accepted(support_bars):
    bars = [bar.model_copy(update={"timestamp": bar.timestamp.replace(tzinfo=timezone.utc)}) for bar in support_bars]
    assert validate_bars(bars, "TEST", "1d") is bars
