from __future__ import annotations

import re
import secrets
import string
import time
import uuid

_BASE36 = string.digits + string.ascii_lowercase
# Backend till sessions are Mongo ObjectIds.
_BACKEND_ID = re.compile(r"[0-9a-fA-F]{24}")


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def idempotency_headers(idempotency_key: str | None = None) -> dict[str, str]:
    return {"Idempotency-Key": idempotency_key or new_idempotency_key()}


def new_local_session_id(now_ms: int | None = None) -> str:
    """Id for a till opened without a backend-issued session id."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"till-{stamp}-{suffix}"


def is_local_session_id(session_id: str) -> bool:
    """True for any id that is not a backend-issued ObjectId."""
    return _BACKEND_ID.fullmatch(session_id) is None
