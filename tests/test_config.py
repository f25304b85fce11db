import json

import pytest
from pydantic import ValidationError

from levelscope.core.config import Settings
from levelscope.schemas.config import (
    AnalysisConfig,
    ConfidenceSettings,
    ConfluenceWeights,
    OverextensionThresholds,
    StrengthThresholds,
    VolatilityThresholds,
    get_analysis_config,
    load_analysis_config,
)
from levelscope.schemas.market import IntervalCategory


def test_defaults(config):
    assert config.min_bars == 20
    assert config.ema_periods == (9, 21, 50, 200)
    assert config.weights.total == pytest.approx(100.0)
    assert config.fibonacci.max_weight == 25
    assert config.fibonacci.min_move_percent.for_category(IntervalCategory.WEEKLY) == 10
    assert config.confidence.ideal_bars.for_category(IntervalCategory.WEEKLY) == 52


def test_config_is_frozen(config):
    with pytest.raises(ValidationError):
        config.min_bars = 50


def test_unknown_keys_rejected():
    with pytest.raises(ValidationError):
        AnalysisConfig(min_barz=30)


def test_volatility_thresholds_ordered():
    with pytest.raises(ValidationError):
        VolatilityThresholds(low=3.0, high=1.5)


def test_overextension_thresholds_increasing():
    with pytest.raises(ValidationError):
        OverextensionThresholds(moderate=2.0, overextended=1.5, extreme=3.0)


def test_weights_must_not_all_be_zero():
    with pytest.raises(ValidationError):
        ConfluenceWeights(
            historical_touches=0,
            fibonacci=0,
            volume_node=0,
            moving_average=0,
            round_number=0,
            recent_relevance=0,
        )


def test_negative_weight_rejected():
    with pytest.raises(ValidationError):
        ConfluenceWeights(fibonacci=-5)


def test_strength_thresholds_ordered():
    with pytest.raises(ValidationError):
        StrengthThresholds(strong=40, medium=70)
    with pytest.raises(ValidationError):
        StrengthThresholds(min_score=50, medium=40)


def test_confidence_cut_points_ordered():
    with pytest.raises(ValidationError):
        ConfidenceSettings(high=40, medium=70)


def test_dynamic_levels_must_be_computed_emas():
    with pytest.raises(ValidationError):
        AnalysisConfig(dynamic_level_periods=(100,))


def test_overextension_anchor_must_be_computed():
    with pytest.raises(ValidationError):
        AnalysisConfig(overextension_period=34)


def test_load_overrides_from_json(tmp_path):
    path = tmp_path / "tuning.json"
    path.write_text(json.dumps({"min_bars": 30, "weights": {"round_number": 0}, "strength": {"strong": 75}}))

    config = load_analysis_config(path)

    assert config.min_bars == 30
    assert config.weights.round_number == 0
    assert config.weights.historical_touches == 45
    assert config.strength.strong == 75
    assert config.strength.medium == 40


def test_load_rejects_inconsistent_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"volatility": {"low": 5, "high": 1}}))

    with pytest.raises(ValidationError):
        load_analysis_config(path)


def test_get_analysis_config_explicit_path(tmp_path):
    path = tmp_path / "tuning.json"
    path.write_text(json.dumps({"swing_window": 5}))

    assert get_analysis_config(str(path)).swing_window == 5


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LEVELSCOPE_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LEVELSCOPE_ENABLE_RESULT_CACHE", "true")
    monkeypatch.setenv("LEVELSCOPE_RESULT_CACHE_SIZE", "16")

    settings = Settings()

    assert settings.log_level == "DEBUG"
    assert settings.enable_result_cache is True
    assert settings.result_cache_size == 16
    assert settings.analysis_config_file is None


def test_updated_copy_is_validated(config):
    tuned = config.updated(swing_window=5, strength={"strong": 80, "medium": 50})

    assert tuned.swing_window == 5
    assert tuned.strength.strong == 80
    assert tuned.strength.min_score == 15
    assert config.swing_window == 3

    with pytest.raises(ValidationError):
        config.updated(strength={"strong": 10})
    with pytest.raises(ValidationError):
        config.updated(dynamic_level_periods=(100,))
