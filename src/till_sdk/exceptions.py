from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.code}: {self.message}"


class AuthError(ApiError):
    """Missing or rejected bearer token."""


class PermissionError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


class RequestCancelledError(TransportError):
    pass


class TillError(Exception):
    """Base class for local till session failures."""


class TillValidationError(TillError, ValueError):
    def __init__(self, issues: list) -> None:
        self.issues = list(issues)
        summary = "; ".join(f"{issue.field} {issue.reason}" for issue in self.issues)
        super().__init__(summary or "invalid till payload")


class TillStateError(TillError):
    """A transition the till state machine does not allow."""


class TillNotOpenError(TillStateError):
    pass


class TillAlreadyOpenError(TillStateError):
    def __init__(self, pos_id: str, session_id: str | None = None) -> None:
        self.pos_id = pos_id
        self.session_id = session_id
        suffix = f" ({session_id})" if session_id else ""
        super().__init__(f"Till already open for POS terminal {pos_id}{suffix}")


class TillSyncError(TillError):
    """The backend refused or could not be reached for a shift transition."""

    def __init__(self, message: str, error: str | None = None) -> None:
        self.error = error
        super().__init__(message)
