"""Configuration for the Responses client.

Settings are resolved once (explicit overrides, then environment, then an
optional TOML file, then defaults) and are read-only afterwards.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

from openai_responses.transport import DEFAULT_BASE_URL


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class TransportKind(str, Enum):
    HTTPX = "httpx"
    SDK = "sdk"


ENV_API_KEY = "OPENAI_API_KEY"
ENV_BASE_URL = "OPENAI_BASE_URL"
ENV_ORGANIZATION = "OPENAI_ORG_ID"
ENV_PROJECT = "OPENAI_PROJECT_ID"
ENV_MODEL = "OPENAI_RESPONSES_MODEL"
ENV_LOG_LEVEL = "OPENAI_RESPONSES_LOG_LEVEL"


class Settings(BaseModel):
    """Resolved client settings."""

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    api_key: SecretStr | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    connect_timeout: float = 5.0
    organization: str | None = None
    project: str | None = None
    default_model: str | None = None
    transport: TransportKind = TransportKind.HTTPX
    log_level: LogLevel = LogLevel.WARNING

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: SecretStr | None) -> SecretStr | None:
        if value is None:
            return None
        stripped = value.get_secret_value().strip()
        return SecretStr(stripped) if stripped else None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value

    @field_validator("timeout", "connect_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @field_validator("log_level", "transport", mode="before")
    @classmethod
    def _lower_enum_value(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("default_model")
    @classmethod
    def _validate_model(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    config_path: Path | str | None = None,
) -> Settings:
    """Resolve settings; the TOML file is optional and only read when given."""

    env = os.environ if env is None else env
    overrides = overrides or {}
    config_data = _read_toml(Path(config_path)) if config_path else {}

    values = {
        "api_key": _first_value(
            _clean_str(overrides.get("api_key")),
            _clean_str(env.get(ENV_API_KEY)),
            _clean_str(_get_config_value(config_data, "auth", "api_key")),
        ),
        "base_url": _first_value(
            _clean_str(overrides.get("base_url")),
            _clean_str(env.get(ENV_BASE_URL)),
            _clean_str(_get_config_value(config_data, "api", "base_url")),
        ),
        "timeout": _first_value(overrides.get("timeout"), _get_config_value(config_data, "api", "timeout")),
        "connect_timeout": _first_value(
            overrides.get("connect_timeout"), _get_config_value(config_data, "api", "connect_timeout")
        ),
        "organization": _first_value(
            _clean_str(overrides.get("organization")),
            _clean_str(env.get(ENV_ORGANIZATION)),
            _clean_str(_get_config_value(config_data, "auth", "organization")),
        ),
        "project": _first_value(
            _clean_str(overrides.get("project")),
            _clean_str(env.get(ENV_PROJECT)),
            _clean_str(_get_config_value(config_data, "auth", "project")),
        ),
        "default_model": _first_value(
            _clean_str(overrides.get("default_model")),
            _clean_str(env.get(ENV_MODEL)),
            _clean_str(_get_config_value(config_data, "model", "default")),
        ),
        "transport": _first_value(
            _clean_str(overrides.get("transport")),
            _clean_str(_get_config_value(config_data, "api", "transport")),
        ),
        "log_level": _first_value(
            _clean_str(overrides.get("log_level")),
            _clean_str(env.get(ENV_LOG_LEVEL)),
            _clean_str(_get_config_value(config_data, "logging", "log_level")),
        ),
    }
    return Settings(**{key: value for key, value in values.items() if value is not None})


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _get_config_value(config: Mapping[str, Any], section: str, key: str) -> Any:
    section_data = config.get(section)
    if not isinstance(section_data, dict):
        return None
    return section_data.get(key)


def _clean_str(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def _first_value(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


__all__ = [
    "ENV_API_KEY",
    "ENV_BASE_URL",
    "ENV_LOG_LEVEL",
    "ENV_MODEL",
    "ENV_ORGANIZATION",
    "ENV_PROJECT",
    "LogLevel",
    "Settings",
    "TransportKind",
    "load_settings",
]
