from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_PACKAGE_LOGGER = "till_sdk"
_REDACTED_KEYS = {"token", "authorization", "access_token", "password"}


def get_logger(name: str) -> logging.Logger:
    # One stream handler on the package logger; module loggers propagate to it.
    package = logging.getLogger(_PACKAGE_LOGGER)
    if not package.handlers:
        package.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        package.addHandler(handler)
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    get_logger(_PACKAGE_LOGGER).setLevel(getattr(logging, level.upper(), logging.INFO))


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "outcome": outcome,
    }
    for key, value in context.items():
        payload[key] = "***" if key.lower() in _REDACTED_KEYS else value
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
