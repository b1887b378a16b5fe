from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

import requests
import responses

from till_sdk.clients.till_client import CONNECTION_MESSAGE, TillClient
from till_sdk.http_client import HttpClient
from till_sdk.models import CloseTillRequest, OpenTillRequest

OPEN_URL = "https://api.example.com/t/pos/till/open"
CLOSE_URL = "https://api.example.com/t/pos/till/close"
SESSION_URL = "https://api.example.com/t/pos/till/session"


def _open_request(**overrides) -> OpenTillRequest:
    values = {"branch_id": "B1", "pos_id": "P1", "opening_amount": Decimal("500"), "cash_counts": {"500": 1}}
    values.update(overrides)
    return OpenTillRequest(**values)


def _close_request(**overrides) -> CloseTillRequest:
    values = {
        "branch_id": "B1",
        "pos_id": "P1",
        "till_session_id": "ts-1",
        "declared_closing_amount": Decimal("700"),
        "system_closing_amount": Decimal("700"),
        "cash_counts": {"500": 1, "100": 2},
        "notes": "end of day",
    }
    values.update(overrides)
    return CloseTillRequest(**values)


def _session_payload(**till_overrides) -> dict:
    till = {
        "_id": "ts-9",
        "status": "open",
        "openingAmount": 1000,
        "cashCounts": {"1000": 1},
        "notes": "morning",
        "openedAt": "2024-05-01T08:30:00.000Z",
    }
    till.update(till_overrides)
    return {"success": True, "result": {"session": {"hasTillSession": True}, "tillSession": till}}


@responses.activate
def test_open_till_sends_camel_case_body_and_headers(till_client: TillClient) -> None:
    responses.add(responses.POST, OPEN_URL, json={"success": True, "result": {"tillSessionId": "ts-1"}}, status=201)

    result = till_client.open_till(_open_request(notes="float"), idempotency_key="idem-1")

    assert result.success is True
    assert result.till_session_id == "ts-1"
    request = responses.calls[0].request
    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.headers["x-tenant-id"] == "tenant-a"
    assert request.headers["Idempotency-Key"] == "idem-1"
    body = json.loads(request.body)
    assert body == {
        "branchId": "B1",
        "posId": "P1",
        "openingAmount": 500.0,
        "cashCounts": {"500": 1},
        "notes": "float",
    }


@responses.activate
def test_open_till_accepts_mapping_and_top_level_id(till_client: TillClient) -> None:
    responses.add(responses.POST, OPEN_URL, json={"id": "ts-2"}, status=200)

    result = till_client.open_till({"branchId": "B1", "posId": "P1", "openingAmount": 0})

    assert result.success is True
    assert result.till_session_id == "ts-2"
    assert responses.calls[0].request.headers["Idempotency-Key"]


@responses.activate
def test_open_till_without_session_id_fails(till_client: TillClient) -> None:
    responses.add(responses.POST, OPEN_URL, json={"success": True, "result": {}}, status=200)

    result = till_client.open_till(_open_request())

    assert result.success is False
    assert result.error == "Missing tillSessionId"


@responses.activate
def test_open_till_without_token_makes_no_call(http: HttpClient) -> None:
    client = TillClient(http=http)

    result = client.open_till(_open_request())

    assert result.success is False
    assert result.error == "No authentication token"
    assert result.message == "Please log in first"
    assert len(responses.calls) == 0


@responses.activate
def test_open_till_validation_short_circuits(till_client: TillClient) -> None:
    result = till_client.open_till(_open_request(pos_id=""))

    assert result.success is False
    assert result.error == "Missing posId"
    assert result.message == "POS terminal ID is required"
    assert len(responses.calls) == 0


@responses.activate
def test_open_till_negative_amount_short_circuits(till_client: TillClient) -> None:
    result = till_client.open_till(_open_request(opening_amount=Decimal("-1")))

    assert result.success is False
    assert result.error == "Invalid opening amount"
    assert len(responses.calls) == 0


@responses.activate
def test_open_till_backend_message_is_surfaced(till_client: TillClient) -> None:
    responses.add(
        responses.POST,
        OPEN_URL,
        json={"success": False, "message": "Till already open for this POS"},
        status=400,
    )

    result = till_client.open_till(_open_request())

    assert result.success is False
    assert result.error == "Till already open for this POS"
    assert result.message == "Till already open for this POS"


@responses.activate
def test_open_till_backend_without_message_uses_fallback(till_client: TillClient) -> None:
    responses.add(responses.POST, OPEN_URL, json={"success": False}, status=403)

    result = till_client.open_till(_open_request())

    assert result.error == "Failed to open till"
    assert result.message == "Unable to open till session"


@responses.activate
def test_open_till_transport_failure(till_client: TillClient) -> None:
    responses.add(responses.POST, OPEN_URL, body=requests.ConnectionError("offline"))

    result = till_client.open_till(_open_request())

    assert result.success is False
    assert result.message == CONNECTION_MESSAGE
    assert len(responses.calls) == 3


@responses.activate
def test_close_till_returns_refreshed_token(till_client: TillClient) -> None:
    responses.add(responses.POST, CLOSE_URL, json={"success": True, "result": {"token": "jwt-2"}}, status=200)

    result = till_client.close_till(_close_request())

    assert result.success is True
    assert result.token == "jwt-2"
    body = json.loads(responses.calls[0].request.body)
    assert body["tillSessionId"] == "ts-1"
    assert body["declaredClosingAmount"] == 700.0
    assert body["systemClosingAmount"] == 700.0
    assert body["cashCounts"] == {"500": 1, "100": 2}


@responses.activate
def test_close_till_token_at_top_level(till_client: TillClient) -> None:
    responses.add(responses.POST, CLOSE_URL, json={"success": True, "token": "jwt-3"}, status=200)

    assert till_client.close_till(_close_request()).token == "jwt-3"


@responses.activate
def test_close_till_requires_session_id(till_client: TillClient) -> None:
    result = till_client.close_till(_close_request(till_session_id=None))

    assert result.success is False
    assert result.error == "Missing tillSessionId"
    assert len(responses.calls) == 0


@responses.activate
def test_close_till_backend_failure(till_client: TillClient) -> None:
    responses.add(responses.POST, CLOSE_URL, json={"error": "Session already closed"}, status=409)

    result = till_client.close_till(_close_request())

    assert result.success is False
    assert result.error == "Session already closed"


@responses.activate
def test_get_till_session_parses_open_session(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json=_session_payload(), status=200)

    lookup = till_client.get_till_session()

    assert lookup.success is True
    assert lookup.session is not None
    assert lookup.session.till_session_id == "ts-9"
    assert lookup.session.opening_amount == Decimal("1000")
    assert lookup.session.opening_cash_counts == {"1000": 1}
    assert lookup.session.opening_notes == "morning"
    assert lookup.session.opened_at == datetime(2024, 5, 1, 8, 30)


@responses.activate
def test_get_till_session_not_found_means_none(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json={"message": "No session"}, status=404)

    lookup = till_client.get_till_session()

    assert lookup.success is True
    assert lookup.session is None


@responses.activate
def test_get_till_session_ignores_closed_session(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json=_session_payload(status="closed"), status=200)

    assert till_client.get_till_session().session is None


@responses.activate
def test_get_till_session_requires_flag(till_client: TillClient) -> None:
    payload = _session_payload()
    payload["result"]["session"] = {"hasTillSession": False}
    responses.add(responses.GET, SESSION_URL, json=payload, status=200)

    assert till_client.get_till_session().session is None


@responses.activate
def test_get_till_session_http_error(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json={}, status=401)

    lookup = till_client.get_till_session()

    assert lookup.success is False
    assert lookup.error == "HTTP 401"


@responses.activate
def test_check_active_till(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json=_session_payload(), status=200)
    responses.add(responses.GET, SESSION_URL, json={}, status=404)

    assert till_client.check_active_till().has_active_till is True
    second = till_client.check_active_till()
    assert second.success is True
    assert second.has_active_till is False


@responses.activate
def test_token_provider_takes_precedence(http: HttpClient) -> None:
    responses.add(responses.GET, SESSION_URL, json={}, status=404)
    client = TillClient(http=http, access_token="stale", token_provider=lambda: "fresh")

    client.get_till_session()

    assert responses.calls[0].request.headers["Authorization"] == "Bearer fresh"


@responses.activate
def test_open_till_non_numeric_denomination_short_circuits(till_client: TillClient) -> None:
    result = till_client.open_till(_open_request(cash_counts={"NaN": 1, "500": 1}))

    assert result.success is False
    assert result.error == "Invalid cash counts"
    assert len(responses.calls) == 0


@responses.activate
def test_close_till_infinite_denomination_short_circuits(till_client: TillClient) -> None:
    result = till_client.close_till(_close_request(cash_counts={"Infinity": 1}))

    assert result.success is False
    assert result.error == "Invalid cash counts"
    assert len(responses.calls) == 0


@responses.activate
def test_close_till_negative_system_amount_short_circuits(till_client: TillClient) -> None:
    result = till_client.close_till(_close_request(system_closing_amount=Decimal("-1")))

    assert result.success is False
    assert result.error == "Invalid system closing amount"
    assert len(responses.calls) == 0


@responses.activate
def test_get_till_session_negative_opening_amount_is_malformed(till_client: TillClient) -> None:
    responses.add(responses.GET, SESSION_URL, json=_session_payload(openingAmount=-5), status=200)

    lookup = till_client.get_till_session()

    assert lookup.success is False
    assert lookup.session is None
    assert lookup.error.startswith("Malformed till session")
