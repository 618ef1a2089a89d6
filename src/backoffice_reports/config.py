from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class EngineConfig:
    env_name: str
    api_base_url: str
    timeout_seconds: float = 10.0
    connect_timeout_seconds: float = 5.0
    max_connections: int = 20
    verify_ssl: bool = True
    synthetic_seed: int | None = None
    log_level: str = "INFO"
    telemetry_enabled: bool = False


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _read_optional_int(name: str) -> int | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    return _read_int(name, raw)


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> EngineConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("BACKOFFICE_ENV") or "dev").strip().lower()

    # A profile-specific URL (BACKOFFICE_API_BASE_URL_STAGING) wins over the generic one.
    api_base_url = (
        (os.getenv(f"BACKOFFICE_API_BASE_URL_{env_name.upper()}") or "").strip()
        or (os.getenv("BACKOFFICE_API_BASE_URL") or "").strip()
    )
    _validate(bool(api_base_url), "Missing required config value: BACKOFFICE_API_BASE_URL")

    timeout_seconds = _read_float("BACKOFFICE_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid BACKOFFICE_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    connect_timeout_seconds = _read_float(
        "BACKOFFICE_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        (
            "Invalid BACKOFFICE_CONNECT_TIMEOUT_SECONDS: "
            f"expected > 0, got {connect_timeout_seconds}"
        ),
    )

    max_connections = _read_int("BACKOFFICE_MAX_CONNECTIONS", "20")
    _validate(
        max_connections >= 1,
        f"Invalid BACKOFFICE_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    log_level = (os.getenv("BACKOFFICE_LOG_LEVEL") or "INFO").strip().upper()
    _validate(
        log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
        f"Invalid BACKOFFICE_LOG_LEVEL: got {log_level!r}",
    )

    return EngineConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        timeout_seconds=timeout_seconds,
        connect_timeout_seconds=connect_timeout_seconds,
        max_connections=max_connections,
        verify_ssl=_coerce_bool(os.getenv("BACKOFFICE_VERIFY_SSL"), True),
        synthetic_seed=_read_optional_int("BACKOFFICE_SYNTHETIC_SEED"),
        log_level=log_level,
        telemetry_enabled=_coerce_bool(os.getenv("BACKOFFICE_TELEMETRY_ENABLED"), False),
    )
