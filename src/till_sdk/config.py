from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv
from platformdirs import user_data_dir

DEFAULT_TENANT_ID = "extraction"
DEFAULT_PATH_PREFIX = "/t/pos/till"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    tenant_id: str = DEFAULT_TENANT_ID
    till_path_prefix: str = DEFAULT_PATH_PREFIX
    database_url: str = "sqlite:///:memory:"
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True

    def till_path(self, action: str) -> str:
        return f"{self.till_path_prefix.rstrip('/')}/{action.lstrip('/')}"


@dataclass(frozen=True)
class _NumericSetting:
    field: str
    cast: Callable[[str], float | int]
    minimum: float
    inclusive: bool


# env suffix -> where it lands on ClientConfig and its lower bound
_NUMERIC_SETTINGS = {
    "CONNECT_TIMEOUT_SECONDS": _NumericSetting("connect_timeout_seconds", float, 0, inclusive=False),
    "READ_TIMEOUT_SECONDS": _NumericSetting("read_timeout_seconds", float, 0, inclusive=False),
    "RETRIES": _NumericSetting("retries", int, 0, inclusive=True),
    "RETRY_BACKOFF_SECONDS": _NumericSetting("retry_backoff_seconds", float, 0, inclusive=True),
    "MAX_CONNECTIONS": _NumericSetting("max_connections", int, 1, inclusive=True),
}


def default_database_url(app_name: str = "pos-till") -> str:
    base = Path(user_data_dir(app_name, "POS"))
    base.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{base / 'till.db'}"


def _env(suffix: str) -> str | None:
    value = os.getenv(f"POS_TILL_{suffix}")
    return value.strip() if value and value.strip() else None


def _numeric(suffix: str, setting: _NumericSetting) -> float | int | None:
    raw = _env(suffix)
    if raw is None:
        return None
    name = f"POS_TILL_{suffix}"
    try:
        value = setting.cast(raw)
    except ValueError as exc:
        kind = "an integer" if setting.cast is int else "a number"
        raise ConfigError(f"Invalid {name}: expected {kind}, got {raw!r}") from exc
    in_range = value >= setting.minimum if setting.inclusive else value > setting.minimum
    if not in_range:
        bound = ">=" if setting.inclusive else ">"
        raise ConfigError(f"Invalid {name}: expected {bound} {setting.minimum}, got {value}")
    return value


def load_config(env_file: str | None = None) -> ClientConfig:
    """Build a ``ClientConfig`` from ``POS_TILL_*`` variables (and ``env_file``).

    Only the base URL is required. ``POS_TILL_API_BASE_URL_<ENV>`` wins over
    the plain variable so one ``.env`` can hold several terminals' backends.
    """
    load_dotenv(env_file)

    env_name = _env("ENV") or "dev"
    api_base_url = _env(f"API_BASE_URL_{env_name.upper()}") or _env("API_BASE_URL")
    if not api_base_url:
        raise ConfigError("Missing required config values: POS_TILL_API_BASE_URL")

    path_prefix = _env("PATH_PREFIX") or DEFAULT_PATH_PREFIX
    if not path_prefix.startswith("/"):
        raise ConfigError(f"Invalid POS_TILL_PATH_PREFIX: expected a leading '/', got {path_prefix!r}")

    overrides = {}
    for suffix, setting in _NUMERIC_SETTINGS.items():
        value = _numeric(suffix, setting)
        if value is not None:
            overrides[setting.field] = value

    verify_ssl = _env("VERIFY_SSL")
    if verify_ssl is not None:
        overrides["verify_ssl"] = verify_ssl.lower() in {"1", "true", "yes", "on"}

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        tenant_id=_env("TENANT_ID") or DEFAULT_TENANT_ID,
        till_path_prefix=path_prefix,
        database_url=_env("DATABASE_URL") or default_database_url(),
        **overrides,
    )
