from pathlib import Path

import pytest
from pydantic import ValidationError

from openai_responses.config import LogLevel, Settings, TransportKind, load_settings


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.api_key is None
    assert settings.base_url == "https://api.openai.com/v1"
    assert settings.timeout == 60.0
    assert settings.connect_timeout == 5.0
    assert settings.transport is TransportKind.HTTPX
    assert settings.log_level is LogLevel.WARNING


def test_settings_hides_api_key() -> None:
    settings = Settings(api_key="sk-very-secret")
    assert "sk-very-secret" not in repr(settings)
    assert "sk-very-secret" not in str(settings.model_dump())
    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-very-secret"


def test_settings_normalization() -> None:
    settings = Settings(
        api_key="  sk-x  ",
        base_url="https://proxy.example/v1/",
        default_model="  gpt-4o ",
        log_level="DEBUG",
        transport="SDK",
    )
    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-x"
    assert settings.base_url == "https://proxy.example/v1"
    assert settings.default_model == "gpt-4o"
    assert settings.log_level is LogLevel.DEBUG
    assert settings.transport is TransportKind.SDK
    assert Settings(api_key="   ").api_key is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": "ftp://example.com"},
        {"timeout": 0},
        {"connect_timeout": -1},
        {"log_level": "verbose"},
        {"transport": "grpc"},
        {"unknown": True},
    ],
)
def test_settings_validation(kwargs) -> None:
    with pytest.raises(ValidationError):
        Settings(**kwargs)


def test_settings_are_frozen() -> None:
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.timeout = 10.0  # type: ignore[misc]


def test_load_settings_from_env() -> None:
    settings = load_settings(
        env={
            "OPENAI_API_KEY": "sk-env",
            "OPENAI_BASE_URL": "https://env.example/v1",
            "OPENAI_ORG_ID": "org_env",
            "OPENAI_PROJECT_ID": "proj_env",
            "OPENAI_RESPONSES_MODEL": "gpt-4o-mini",
            "OPENAI_RESPONSES_LOG_LEVEL": "info",
        }
    )
    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-env"
    assert settings.base_url == "https://env.example/v1"
    assert settings.organization == "org_env"
    assert settings.project == "proj_env"
    assert settings.default_model == "gpt-4o-mini"
    assert settings.log_level is LogLevel.INFO


def test_load_settings_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-process")
    settings = load_settings()
    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-process"


def test_load_settings_from_toml(tmp_path: Path) -> None:
    cfg = tmp_path / "config.toml"
    cfg.write_text(
        """
[auth]
api_key = "sk-file"
organization = "org_file"

[api]
base_url = "https://file.example/v1"
timeout = 30
connect_timeout = 2.5
transport = "sdk"

[model]
default = "o3"

[logging]
log_level = "error"
""",
        encoding="utf-8",
    )

    settings = load_settings(env={}, config_path=cfg)

    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-file"
    assert settings.organization == "org_file"
    assert settings.base_url == "https://file.example/v1"
    assert settings.timeout == 30.0
    assert settings.connect_timeout == 2.5
    assert settings.transport is TransportKind.SDK
    assert settings.default_model == "o3"
    assert settings.log_level is LogLevel.ERROR


def test_load_settings_precedence(tmp_path: Path) -> None:
    cfg = tmp_path / "config.toml"
    cfg.write_text('[auth]\napi_key = "sk-file"\n\n[model]\ndefault = "o3"\n', encoding="utf-8")

    settings = load_settings(
        overrides={"api_key": "sk-override"},
        env={"OPENAI_API_KEY": "sk-env", "OPENAI_RESPONSES_MODEL": "gpt-4o"},
        config_path=cfg,
    )

    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-override"
    assert settings.default_model == "gpt-4o"


def test_load_settings_ignores_blank_values() -> None:
    settings = load_settings(overrides={"api_key": "  "}, env={"OPENAI_API_KEY": "sk-env", "OPENAI_BASE_URL": ""})
    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "sk-env"
    assert settings.base_url == "https://api.openai.com/v1"


def test_load_settings_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(env={}, config_path=tmp_path / "missing.toml")
