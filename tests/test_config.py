"""
Tests for engine settings.

These tests verify:
    - Defaults
    - YAML loading (explicit path and environment variable)
    - Rejection of unknown keys and bad values (pydantic validation)
"""

import logging

import pytest
from pydantic import ValidationError
from formrules.config import (
    SETTINGS_ENV_VAR,
    EngineSettings,
    SettingsError,
    configure_logging,
    load_settings,
)


def test_defaults():
    settings = EngineSettings()
    assert settings.autosave_interval_seconds == 30.0
    assert settings.drop_hidden_answers is False
    assert settings.messages == {}
    assert settings.log_level == "WARNING"


def test_from_yaml():
    settings = EngineSettings.from_yaml(
        "autosave_interval_seconds: 10\n"
        "drop_hidden_answers: true\n"
        "log_level: debug\n"
        "messages:\n"
        "  required: 'Please answer {label}'\n"
    )
    assert settings.autosave_interval_seconds == 10.0
    assert isinstance(settings.autosave_interval_seconds, float)
    assert settings.drop_hidden_answers is True
    assert settings.log_level == "DEBUG"
    assert settings.messages == {"required": "Please answer {label}"}


def test_empty_yaml_gives_defaults():
    assert EngineSettings.from_yaml("") == EngineSettings()


@pytest.mark.parametrize("data", [
    {"autosave_interval": 10},
    {"autosave_interval_seconds": -1},
    {"autosave_interval_seconds": "soon"},
    {"autosave_interval_seconds": True},
    {"drop_hidden_answers": "yes"},
    {"messages": ["required"]},
    {"messages": {"required": 3}},
    {"log_level": "LOUD"},
])
def test_invalid_settings(data):
    with pytest.raises(SettingsError):
        EngineSettings.from_dict(data)


def test_not_a_mapping():
    with pytest.raises(SettingsError):
        EngineSettings.from_yaml("- a\n- b\n")


def test_invalid_yaml():
    with pytest.raises(SettingsError, match="Invalid settings YAML"):
        EngineSettings.from_yaml("messages: {required: [")


def test_load_from_path(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("autosave_interval_seconds: 5\n", encoding="utf-8")
    assert load_settings(str(path)).autosave_interval_seconds == 5.0


def test_load_from_env(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("drop_hidden_answers: true\n", encoding="utf-8")
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(path))
    assert load_settings().drop_hidden_answers is True


def test_load_without_file(monkeypatch):
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    assert load_settings() == EngineSettings()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "missing.yaml"))


def test_configure_logging(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging(EngineSettings(log_level="INFO"))
    assert calls["level"] == "INFO"


def test_error_names_the_setting():
    with pytest.raises(SettingsError, match="autosave_interval_seconds"):
        EngineSettings.from_dict({"autosave_interval_seconds": -1})


def test_direct_construction_is_validated():
    with pytest.raises(ValidationError):
        EngineSettings(colour="blue")
    assert EngineSettings(log_level="info").log_level == "INFO"
