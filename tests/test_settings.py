"""
Tests for settings loading and the probability-table frame behind !plot.
"""

import pytest

from dicecalc.plot import table_frame
from dicecalc.settings import SettingsError, default_settings, load_settings


def test_defaults():
    settings = default_settings()
    assert settings["prefix"] == "!"
    assert settings["seed"] is None
    assert settings["log_level"] == "INFO"
    assert settings["timeout"] > 0


def test_overrides(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("seed: 12\ntoken: abc\n")
    settings = load_settings(str(path))
    assert settings["seed"] == 12
    assert settings["token"] == "abc"
    assert settings["prefix"] == "!"


def test_empty_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("")
    assert load_settings(str(path)) == default_settings()


def test_unknown_key(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("seeed: 12\n")
    with pytest.raises(SettingsError, match="unknown settings seeed"):
        load_settings(str(path))


def test_not_a_mapping(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(SettingsError, match="expected a mapping"):
        load_settings(str(path))


def test_malformed_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("seed: [1, 2\n")
    with pytest.raises(SettingsError, match="not valid YAML"):
        load_settings(str(path))


def test_table_frame():
    frame = table_frame({"1d2": {1.0: 0.5, 2.0: 0.5}, "2": {2.0: 1.0}})
    assert list(frame.columns) == ["value", "1d2", "2"]
    assert list(frame["value"]) == ["1", "2"]
    assert list(frame["1d2"]) == [0.5, 0.5]
    assert list(frame["2"]) == [0.0, 1.0]
