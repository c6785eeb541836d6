"""
Engine settings.

Settings are a pydantic model, read from an optional YAML file:

    autosave_interval_seconds: 30
    drop_hidden_answers: false
    log_level: INFO
    messages:
      required: "Please answer {label}"

Lookup order for load_settings():
    1. explicit path argument
    2. FORMRULES_SETTINGS environment variable
    3. built-in defaults
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, StrictBool, StrictStr, ValidationError, field_validator

SETTINGS_ENV_VAR = "FORMRULES_SETTINGS"


class SettingsError(Exception):
    """Raised when a settings file is malformed."""
    pass


class EngineSettings(BaseModel):
    """
    Tunables for a FormSession.

    Properties:
        autosave_interval_seconds:
            How long a dirty session waits before autosave_due() says yes
        drop_hidden_answers:
            Strip answers of hidden components from completed submissions
        messages:
            Error message templates overriding the defaults, keyed by code
        log_level:
            Level used by configure_logging()
    """

    autosave_interval_seconds: float = 30.0
    drop_hidden_answers: StrictBool = False
    messages: Dict[str, StrictStr] = {}
    log_level: str = "WARNING"

    model_config = {"extra": "forbid"}

    @field_validator("autosave_interval_seconds", mode="before")
    @classmethod
    def check_interval(cls, v):
        """Accept only non-negative numbers; YAML booleans and strings are mistakes."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a number of seconds")
        if v < 0:
            raise ValueError("must not be negative")
        return float(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def check_log_level(cls, v):
        """Upper-case the level name and make sure logging knows it."""
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EngineSettings":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise SettingsError(f"Settings must be a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise SettingsError(f"Invalid settings: {exc}")

    @classmethod
    def from_yaml(cls, text: str) -> "EngineSettings":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SettingsError(f"Invalid settings YAML: {exc}")
        return cls.from_dict(data)


def load_settings(path: Optional[str] = None) -> EngineSettings:
    """
    Load settings from a YAML file.

    Args:
        path: Settings file; defaults to $FORMRULES_SETTINGS

    Returns:
        EngineSettings (defaults when no file is configured)

    Raises:
        FileNotFoundError: If the configured file does not exist
        SettingsError: If the file content is invalid
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV_VAR)
    if not path:
        return EngineSettings()
    with open(path, "r", encoding="utf-8") as f:
        return EngineSettings.from_yaml(f.read())


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Basic console logging for scripts and demos. Libraries never call this."""
    settings = settings or EngineSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
