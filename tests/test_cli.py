import json

import pytest

from levelscope.cli import EXIT_ERROR, EXIT_INPUT_ERROR, EXIT_OK, main


def _write_bars(path, bars):
    path.write_text(json.dumps([bar.model_dump(mode="json") for bar in bars]))
    return str(path)


def test_analyze_prints_output(tmp_path, capsys, support_bars):
    path = _write_bars(tmp_path / "bars.json", support_bars)

    code = main(["analyze", path, "--symbol", "TEST", "--interval", "1d", "--as-of", "2024-02-01T16:00:00"])

    assert code == EXIT_OK
    output = json.loads(capsys.readouterr().out)
    assert output["symbol"] == "TEST"
    assert output["as_of"] == "2024-02-01T16:00:00"
    assert output["indicators"]["bar_count"] == 30
    assert output["analysis"]["support_levels"]


def test_compact_output(tmp_path, capsys, support_bars):
    path = _write_bars(tmp_path / "bars.json", support_bars)

    assert main(["analyze", path, "--symbol", "TEST", "--interval", "1d", "--indent", "0"]) == EXIT_OK
    assert capsys.readouterr().out.count("\n") == 1


def test_short_series_exits_with_input_error(tmp_path, capsys, support_bars):
    path = _write_bars(tmp_path / "bars.json", support_bars[:19])

    assert main(["analyze", path, "--symbol", "TEST", "--interval", "1d"]) == EXIT_INPUT_ERROR
    assert capsys.readouterr().out == ""


def test_malformed_bars_exit_with_input_error(tmp_path):
    path = tmp_path / "bars.json"
    path.write_text(json.dumps([{"timestamp": "not a date", "open": 1}]))

    assert main(["analyze", str(path), "--symbol", "TEST", "--interval", "1d"]) == EXIT_INPUT_ERROR


def test_missing_file(tmp_path):
    missing = str(tmp_path / "nope.json")
    assert main(["analyze", missing, "--symbol", "TEST", "--interval", "1d"]) == EXIT_ERROR


def test_config_overrides(tmp_path, capsys, support_bars):
    bars = _write_bars(tmp_path / "bars.json", support_bars)
    tuning = tmp_path / "tuning.json"
    tuning.write_text(json.dumps({"min_bars": 40}))

    code = main(["analyze", bars, "--symbol", "TEST", "--interval", "1d", "--config", str(tuning)])

    assert code == EXIT_INPUT_ERROR


def test_invalid_config(tmp_path, support_bars):
    bars = _write_bars(tmp_path / "bars.json", support_bars)
    tuning = tmp_path / "tuning.json"
    tuning.write_text(json.dumps({"strength": {"strong": 10}}))

    assert main(["analyze", bars, "--symbol", "TEST", "--interval", "1d", "--config", str(tuning)]) == EXIT_ERROR


def test_symbol_required(tmp_path, support_bars):
    bars = _write_bars(tmp_path / "bars.json", support_bars)
    with pytest.raises(SystemExit):
        main(["analyze", bars, "--interval", "1d"])


def test_mixed_timezones_exit_with_input_error(tmp_path, support_bars):
    rows = [bar.model_dump(mode="json") for bar in support_bars]
    rows[5]["timestamp"] = rows[5]["timestamp"] + "Z"
    path = tmp_path / "bars.json"
    path.write_text(json.dumps(rows))

    assert main(["analyze", str(path), "--symbol", "TEST", "--interval", "1d"]) == EXIT_INPUT_ERROR
