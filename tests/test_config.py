from __future__ import annotations

from pathlib import Path

import pytest

from backoffice_reports.config import ConfigError, load_config


def test_load_config_requires_base_url(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigError, match="BACKOFFICE_API_BASE_URL"):
        load_config()


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL", "https://api.example.com/")

    cfg = load_config()

    assert cfg.env_name == "dev"
    assert cfg.api_base_url == "https://api.example.com"
    assert cfg.timeout_seconds == 10.0
    assert cfg.connect_timeout_seconds == 5.0
    assert cfg.max_connections == 20
    assert cfg.verify_ssl is True
    assert cfg.synthetic_seed is None
    assert cfg.log_level == "INFO"
    assert cfg.telemetry_enabled is False


def test_load_config_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_ENV", "Staging")
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL_STAGING", "https://staging.example.com")

    cfg = load_config()

    assert cfg.api_base_url == "https://staging.example.com"
    assert cfg.env_name == "staging"


def test_load_config_optional_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("BACKOFFICE_TIMEOUT_SECONDS", "3")
    monkeypatch.setenv("BACKOFFICE_VERIFY_SSL", "false")
    monkeypatch.setenv("BACKOFFICE_SYNTHETIC_SEED", "42")
    monkeypatch.setenv("BACKOFFICE_LOG_LEVEL", "debug")
    monkeypatch.setenv("BACKOFFICE_TELEMETRY_ENABLED", "yes")

    cfg = load_config()

    assert cfg.timeout_seconds == 3.0
    assert cfg.connect_timeout_seconds == 3.0
    assert cfg.verify_ssl is False
    assert cfg.synthetic_seed == 42
    assert cfg.log_level == "DEBUG"
    assert cfg.telemetry_enabled is True


def test_load_config_reads_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("BACKOFFICE_API_BASE_URL=https://dotenv.example.com\n", encoding="utf-8")

    cfg = load_config(str(env_file))

    assert cfg.api_base_url == "https://dotenv.example.com"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("BACKOFFICE_TIMEOUT_SECONDS", "0"),
        ("BACKOFFICE_CONNECT_TIMEOUT_SECONDS", "-1"),
        ("BACKOFFICE_MAX_CONNECTIONS", "0"),
        ("BACKOFFICE_LOG_LEVEL", "LOUD"),
    ],
)
def test_load_config_rejects_invalid_ranges(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError, match=key):
        load_config()


@pytest.mark.parametrize(
    "key",
    [
        "BACKOFFICE_TIMEOUT_SECONDS",
        "BACKOFFICE_CONNECT_TIMEOUT_SECONDS",
        "BACKOFFICE_MAX_CONNECTIONS",
        "BACKOFFICE_SYNTHETIC_SEED",
    ],
)
def test_load_config_rejects_invalid_types(monkeypatch: pytest.MonkeyPatch, key: str) -> None:
    monkeypatch.setenv("BACKOFFICE_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv(key, "abc")

    with pytest.raises(ConfigError, match=key):
        load_config()
