from __future__ import annotations

from till_sdk.error_mapper import map_error
from till_sdk.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)


def test_error_mapper_classes() -> None:
    assert isinstance(map_error(401, {"code": "INVALID_TOKEN", "message": "bad"}), AuthError)
    assert isinstance(map_error(404, {"message": "missing"}), NotFoundError)
    assert isinstance(map_error(422, {"message": "bad"}), ValidationError)
    assert isinstance(map_error(409, {"message": "duplicate"}), ConflictError)
    assert isinstance(map_error(429, {}), RateLimitError)
    assert isinstance(map_error(503, {}), ServerError)


def test_error_mapper_reads_error_field_when_message_missing() -> None:
    err = map_error(400, {"success": False, "error": "Till already open"})
    assert err.message == "Till already open"
    assert err.code == "HTTP_ERROR"
    assert str(err) == "[400] HTTP_ERROR: Till already open"


def test_error_mapper_nested_error_message() -> None:
    err = map_error(400, {"error": {"message": "Branch mismatch"}})
    assert err.message == "Branch mismatch"


def test_error_mapper_defaults() -> None:
    err = map_error(500, None)
    assert err.message == "Request failed"
    assert err.raw_payload == {}
