from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from pydantic import ValidationError as ModelValidationError

from ..cancellation import CancelToken
from ..error_mapper import DEFAULT_ERROR_MESSAGE
from ..exceptions import ApiError, NotFoundError, TransportError
from ..idempotency import idempotency_headers
from ..logger import get_logger, log_action
from ..models import (
    ActiveTillCheck,
    BackendTillSession,
    CloseTillRequest,
    CloseTillResult,
    OpenTillRequest,
    OpenTillResult,
    TillSessionLookup,
)
from ..till_validation import validate_close_till_payload, validate_open_till_payload
from .base import BaseClient

logger = get_logger(__name__)

NO_TOKEN_ERROR = "No authentication token"
CONNECTION_MESSAGE = "Unable to connect to server. Please check your internet connection."

# Field -> (error, message) reported when local validation fails.
_FIELD_ERRORS: dict[str, tuple[str, str]] = {
    "pos_id": ("Missing posId", "POS terminal ID is required"),
    "branch_id": ("Missing branchId", "Branch ID is required"),
    "till_session_id": ("Missing tillSessionId", "Till session ID is required"),
    "opening_amount": ("Invalid opening amount", "Opening amount must be zero or greater"),
    "declared_closing_amount": (
        "Invalid declared closing amount",
        "Declared closing amount must be zero or greater",
    ),
    "system_closing_amount": (
        "Invalid system closing amount",
        "System closing amount must be zero or greater",
    ),
    "cash_counts": ("Invalid cash counts", "Cash counts must use positive denominations and counts"),
}


def _wire(model: OpenTillRequest | CloseTillRequest) -> dict[str, Any]:
    body = model.model_dump(by_alias=True, exclude_none=True)
    return {key: float(value) if isinstance(value, Decimal) else value for key, value in body.items()}


def _coerce(value: Any, model_type: type[Any]):
    if isinstance(value, model_type):
        return value
    return model_type.model_validate(value)


def _as_mapping(data: Any) -> Mapping[str, Any]:
    return data if isinstance(data, Mapping) else {}


def _result_block(data: Any) -> Mapping[str, Any]:
    payload = _as_mapping(data)
    result = payload.get("result")
    return result if isinstance(result, Mapping) else payload


def _backend_failure(exc: ApiError, error: str, message: str) -> tuple[str, str]:
    if exc.message and exc.message != DEFAULT_ERROR_MESSAGE:
        return exc.message, exc.message
    return error, message


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        value = raw
    else:
        value = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class TillClient(BaseClient):
    """Backend till endpoints, normalized to ``success`` results.

    None of the public methods raise: validation, auth, transport and
    backend failures all come back as ``success=False`` with a message.
    """

    def open_till(
        self,
        request: OpenTillRequest | Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> OpenTillResult:
        try:
            request = _coerce(request, OpenTillRequest)
        except ModelValidationError as exc:
            return OpenTillResult(success=False, error="Invalid request", message=str(exc))
        if not self.current_token():
            return OpenTillResult(success=False, error=NO_TOKEN_ERROR, message="Please log in first")
        validation = validate_open_till_payload(
            pos_id=request.pos_id,
            branch_id=request.branch_id,
            opening_amount=request.opening_amount,
            cash_counts=request.cash_counts,
        )
        if not validation.ok:
            error, message = _FIELD_ERRORS[validation.issues[0].field]
            return OpenTillResult(success=False, error=error, message=message)

        try:
            data = self._request(
                "POST",
                self.http.config.till_path("open"),
                json_body=_wire(request),
                headers=idempotency_headers(idempotency_key),
                retry_mutation=True,
                operation="till.open",
                cancel_token=cancel_token,
            )
        except TransportError as exc:
            log_action(logger, "till_client", "open", "transport_error", error=exc.message)
            return OpenTillResult(success=False, error=exc.message, message=CONNECTION_MESSAGE)
        except ApiError as exc:
            log_action(logger, "till_client", "open", "rejected", status_code=exc.status_code)
            error, message = _backend_failure(exc, "Failed to open till", "Unable to open till session")
            return OpenTillResult(success=False, error=error, message=message)

        block = _result_block(data)
        payload = _as_mapping(data)
        till_session_id = block.get("tillSessionId") or payload.get("tillSessionId") or payload.get("id")
        if not till_session_id:
            return OpenTillResult(
                success=False,
                error="Missing tillSessionId",
                message="Backend did not return a till session id",
            )
        log_action(logger, "till_client", "open", "success", till_session_id=till_session_id)
        return OpenTillResult(success=True, till_session_id=str(till_session_id))

    def close_till(
        self,
        request: CloseTillRequest | Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> CloseTillResult:
        try:
            request = _coerce(request, CloseTillRequest)
        except ModelValidationError as exc:
            return CloseTillResult(success=False, error="Invalid request", message=str(exc))
        if not self.current_token():
            return CloseTillResult(success=False, error=NO_TOKEN_ERROR, message="Please log in first")
        validation = validate_close_till_payload(
            declared_closing_amount=request.declared_closing_amount,
            system_closing_amount=request.system_closing_amount,
            pos_id=request.pos_id,
            branch_id=request.branch_id,
            till_session_id=request.till_session_id,
            cash_counts=request.cash_counts,
            require_backend_fields=True,
        )
        if not validation.ok:
            error, message = _FIELD_ERRORS[validation.issues[0].field]
            return CloseTillResult(success=False, error=error, message=message)

        try:
            data = self._request(
                "POST",
                self.http.config.till_path("close"),
                json_body=_wire(request),
                headers=idempotency_headers(idempotency_key),
                retry_mutation=True,
                operation="till.close",
                cancel_token=cancel_token,
            )
        except TransportError as exc:
            log_action(logger, "till_client", "close", "transport_error", error=exc.message)
            return CloseTillResult(success=False, error=exc.message, message=CONNECTION_MESSAGE)
        except ApiError as exc:
            log_action(logger, "till_client", "close", "rejected", status_code=exc.status_code)
            error, message = _backend_failure(exc, "Failed to close till", "Unable to close till session")
            return CloseTillResult(success=False, error=error, message=message)

        block = _result_block(data)
        token = block.get("token") or _as_mapping(data).get("token")
        log_action(logger, "till_client", "close", "success", till_session_id=request.till_session_id)
        return CloseTillResult(success=True, token=str(token) if token else None)

    def get_till_session(self, *, cancel_token: CancelToken | None = None) -> TillSessionLookup:
        if not self.current_token():
            return TillSessionLookup(success=False, error=NO_TOKEN_ERROR)
        try:
            data = self._request(
                "GET",
                self.http.config.till_path("session"),
                operation="till.session",
                cancel_token=cancel_token,
            )
        except NotFoundError:
            return TillSessionLookup(success=True, session=None)
        except TransportError as exc:
            return TillSessionLookup(success=False, error=exc.message)
        except ApiError as exc:
            return TillSessionLookup(success=False, error=f"HTTP {exc.status_code}")

        block = _result_block(data)
        till_session = block.get("tillSession")
        session_flags = block.get("session")
        has_till_session = isinstance(session_flags, Mapping) and bool(session_flags.get("hasTillSession"))
        if not (
            has_till_session
            and isinstance(till_session, Mapping)
            and till_session.get("_id")
            and till_session.get("status") == "open"
        ):
            return TillSessionLookup(success=True, session=None)

        try:
            session = BackendTillSession(
                till_session_id=str(till_session["_id"]),
                opening_amount=Decimal(str(till_session.get("openingAmount") or 0)),
                opening_cash_counts=till_session.get("cashCounts") or None,
                opening_notes=till_session.get("notes") or None,
                opened_at=_parse_timestamp(till_session.get("openedAt")),
            )
        except (ArithmeticError, ValueError, ModelValidationError) as exc:
            return TillSessionLookup(success=False, error=f"Malformed till session: {exc}")
        return TillSessionLookup(success=True, session=session)

    def check_active_till(self, *, cancel_token: CancelToken | None = None) -> ActiveTillCheck:
        lookup = self.get_till_session(cancel_token=cancel_token)
        return ActiveTillCheck(
            success=lookup.success,
            has_active_till=lookup.session is not None,
            error=lookup.error,
        )
