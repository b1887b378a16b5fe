from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .cancellation import CancelToken
from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import RequestCancelledError, TransportError
from .logger import get_logger, log_action

RETRYABLE_METHODS = {"GET", "HEAD"}

logger = get_logger(__name__)


@dataclass
class LastOperation:
    operation: str
    duration_ms: int
    result: str
    attempts: int


@dataclass
class HttpClient:
    config: ClientConfig
    session: requests.Session | None = None
    sleep: Callable[[float], None] = time.sleep
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.config.max_connections,
                pool_maxsize=self.config.max_connections,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        retry_mutation: bool = False,
        operation: str = "unknown",
        cancel_token: CancelToken | None = None,
    ) -> dict[str, Any] | list[Any] | None:
        """Send one logical request, retrying transport failures and 5xx.

        Mutations are only retried when ``retry_mutation`` is set, which
        callers do when the request carries an ``Idempotency-Key``.
        """
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        normalized_method = method.upper()
        url = self._build_url(path)
        can_retry = normalized_method in RETRYABLE_METHODS or retry_mutation
        attempts = self.config.retries + 1 if can_retry else 1

        started = time.monotonic()
        response: requests.Response | None = None
        attempt = 0
        for attempt in range(attempts):
            self._raise_if_cancelled(cancel_token, operation)
            try:
                response = self.session.request(
                    method=normalized_method,
                    url=url,
                    headers=request_headers,
                    json=json_body,
                    params=params,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if attempt >= attempts - 1:
                    self._record_operation(operation, started, "transport_error", attempt + 1)
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc),
                        details={"type": type(exc).__name__},
                        status_code=0,
                        raw_payload=None,
                    ) from exc
            else:
                if response.status_code < 500 or attempt >= attempts - 1:
                    break
            self._backoff(attempt, cancel_token, operation)

        if response is None:
            raise RuntimeError("HTTP request failed without response")

        if response.ok:
            self._record_operation(operation, started, "success", attempt + 1)
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise map_error(
                    response.status_code,
                    {"code": "INVALID_JSON", "message": "Backend returned a non-JSON body"},
                ) from exc

        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}
        self._record_operation(operation, started, "error", attempt + 1)
        raise map_error(response.status_code, payload if isinstance(payload, dict) else {})

    def _backoff(self, attempt: int, cancel_token: CancelToken | None, operation: str) -> None:
        delay = self.config.retry_backoff_seconds * (2**attempt)
        if cancel_token is not None:
            if cancel_token.wait(delay):
                self._raise_if_cancelled(cancel_token, operation)
            return
        self.sleep(delay)

    @staticmethod
    def _raise_if_cancelled(cancel_token: CancelToken | None, operation: str) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise RequestCancelledError(
                code="REQUEST_CANCELLED",
                message=cancel_token.reason or "Request cancelled",
                details={"operation": operation},
                status_code=0,
                raw_payload=None,
            )

    def _record_operation(self, operation: str, started: float, result: str, attempts: int) -> None:
        self.last_operation = LastOperation(
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            attempts=attempts,
        )
        log_action(
            logger,
            module="http",
            action=operation,
            outcome=result,
            duration_ms=self.last_operation.duration_ms,
            attempts=attempts,
        )
