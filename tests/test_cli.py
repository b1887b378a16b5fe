from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest
import responses

from till_sdk import auth_store
from till_sdk.cli import main

OPEN_URL = "https://api.example.com/t/pos/till/open"
CLOSE_URL = "https://api.example.com/t/pos/till/close"
BACKEND_ID = "665f1c2e9b1e8a0012345678"


@pytest.fixture(autouse=True)
def _cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("POS_TILL_ENV", "test")
    monkeypatch.setenv("POS_TILL_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("POS_TILL_DATABASE_URL", f"sqlite:///{tmp_path / 'till.db'}")
    monkeypatch.setenv("POS_TILL_RETRIES", "0")
    monkeypatch.setattr(auth_store, "user_data_dir", lambda *_args: str(tmp_path / "data"))


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> dict:
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def _login(capsys: pytest.CaptureFixture[str]) -> None:
    _run(capsys, "login", "--token", "jwt-1", "--user-id", "U1", "--pos-id", "P1", "--branch-id", "B1")


def test_status_requires_login() -> None:
    with pytest.raises(SystemExit):
        main(["status"])


@responses.activate
def test_open_status_close_flow(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    responses.add(responses.POST, OPEN_URL, json={"result": {"tillSessionId": BACKEND_ID}}, status=201)
    responses.add(responses.POST, CLOSE_URL, json={"result": {"token": "jwt-2"}}, status=200)
    orders_file = tmp_path / "orders.json"
    orders_file.write_text(
        json.dumps(
            [
                {
                    "tillSessionId": BACKEND_ID,
                    "paymentStatus": "paid",
                    "paymentMethod": "cash",
                    "syncStatus": "synced",
                    "total": 200,
                }
            ]
        )
    )
    _login(capsys)

    opened = _run(capsys, "open", "--amount", "500", "--count", "500:1")
    assert opened["id"] == BACKEND_ID
    assert responses.calls[0].request.headers["Authorization"] == "Bearer jwt-1"

    status = _run(capsys, "status", "--orders-file", str(orders_file))
    assert status["status"] == "open"
    assert status["session_id"] == BACKEND_ID
    assert Decimal(status["expected"]) == Decimal("700")

    closed = _run(capsys, "close", "--count", "500:1", "--count", "100:2", "--orders-file", str(orders_file))
    assert closed["state"] == "balanced"
    assert closed["backend_synced"] is True

    stored = json.loads((tmp_path / "data" / "auth.json").read_text())
    assert stored["access_token"] == "jwt-2"


def test_close_without_open_till_exits(capsys: pytest.CaptureFixture[str]) -> None:
    _login(capsys)

    with pytest.raises(SystemExit) as info:
        main(["close", "--declared", "0"])

    assert info.value.code == 1
    assert json.loads(capsys.readouterr().out)["error"] == "TillNotOpenError"


def test_bad_count_exits(capsys: pytest.CaptureFixture[str]) -> None:
    _login(capsys)

    with pytest.raises(SystemExit) as info:
        main(["open", "--amount", "100", "--count", "3:1"])

    assert info.value.code == 1


@responses.activate
@pytest.mark.parametrize("amount", ["abc", "NaN"])
def test_malformed_amount_exits_without_backend_call(capsys: pytest.CaptureFixture[str], amount: str) -> None:
    _login(capsys)

    with pytest.raises(SystemExit) as info:
        main(["open", "--amount", amount])

    assert info.value.code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["error"] == "TillValidationError"
    assert "opening_amount" in output["message"]
    assert len(responses.calls) == 0
