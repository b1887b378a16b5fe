from __future__ import annotations

import argparse
import json
from pathlib import Path

from .cash_counts import parse_cash_counts
from .config import ConfigError, load_config
from .exceptions import TillError
from .logger import configure_logging
from .models import CashOrder, UserContext
from .session import ApiSession


def _session(args: argparse.Namespace) -> ApiSession:
    return ApiSession(load_config(args.env_file))


def _require_user(session: ApiSession) -> UserContext:
    if session.user is None:
        raise SystemExit("No terminal login stored; run `pos-till login` first")
    return session.user


def _orders_from_file(path: str | None):
    if not path:
        return lambda: ()
    raw = json.loads(Path(path).read_text())
    orders = [CashOrder.model_validate(item) for item in raw]
    return lambda: orders


def _print(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_login(args: argparse.Namespace) -> None:
    session = _session(args)
    user = UserContext(id=args.user_id, pos_id=args.pos_id, branch_id=args.branch_id)
    session.establish(args.token, user)
    _print({"user": user.model_dump(), "env": session.config.env_name})


def cmd_open(args: argparse.Namespace) -> None:
    session = _session(args)
    user = _require_user(session)
    shift = session.shift_service()
    till = shift.start_shift(
        user,
        args.amount,
        notes=args.notes,
        cash_counts=parse_cash_counts(args.count),
    )
    _print(till.model_dump(mode="json"))


def cmd_close(args: argparse.Namespace) -> None:
    session = _session(args)
    user = _require_user(session)
    manager = session.till_manager(_orders_from_file(args.orders_file))
    manager.load_active_till(user.pos_id)
    shift = session.shift_service(manager)
    summary = shift.end_shift(
        user,
        cash_counts=parse_cash_counts(args.count),
        declared_amount=args.declared,
        notes=args.notes,
    )
    _print(
        {
            "session": summary.session.model_dump(mode="json"),
            "expected": summary.drawer.expected,
            "counted": summary.drawer.counted,
            "difference": summary.drawer.difference,
            "state": summary.drawer.state,
            "backend_synced": summary.backend_synced,
        }
    )


def cmd_status(args: argparse.Namespace) -> None:
    session = _session(args)
    user = _require_user(session)
    manager = session.till_manager(_orders_from_file(args.orders_file))
    current = manager.load_active_till(user.pos_id)
    _print(
        {
            "status": manager.get_till_status(),
            "session_id": current.id if current else None,
            "expected": manager.get_expected_till_amount(),
        }
    )


def cmd_sync(args: argparse.Namespace) -> None:
    session = _session(args)
    user = _require_user(session)
    manager = session.till_manager()
    adopted = manager.sync_till_from_backend(user)
    if not adopted:
        manager.load_active_till(user.pos_id)
    report = manager.sync_pending_sessions()
    _print(
        {
            "adopted_backend_session": adopted,
            "status": manager.get_till_status(),
            "synced": report.synced,
            "failed": report.failed,
            "skipped": report.skipped,
        }
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pos-till", description="POS till session tools")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--log-level", default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="store a bearer token and terminal context")
    login_parser.add_argument("--token", required=True)
    login_parser.add_argument("--user-id", required=True)
    login_parser.add_argument("--pos-id", required=True)
    login_parser.add_argument("--branch-id", required=True)
    login_parser.set_defaults(func=cmd_login)

    open_parser = subparsers.add_parser("open", help="open the till for this terminal")
    open_parser.add_argument("--amount", required=True)
    open_parser.add_argument("--notes")
    open_parser.add_argument("--count", action="append", help="denomination:count, repeatable")
    open_parser.set_defaults(func=cmd_open)

    close_parser = subparsers.add_parser("close", help="count the drawer and close the till")
    close_parser.add_argument("--count", action="append", help="denomination:count, repeatable")
    close_parser.add_argument("--declared", help="declared amount when not counting notes")
    close_parser.add_argument("--notes")
    close_parser.add_argument("--orders-file", help="JSON list of orders for the expected amount")
    close_parser.set_defaults(func=cmd_close)

    status_parser = subparsers.add_parser("status", help="show the local till state")
    status_parser.add_argument("--orders-file")
    status_parser.set_defaults(func=cmd_status)

    sync_parser = subparsers.add_parser("sync", help="adopt the backend session and push pending closes")
    sync_parser.set_defaults(func=cmd_sync)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        args.func(args)
    except (ConfigError, TillError, ValueError) as exc:
        _print({"error": type(exc).__name__, "message": str(exc)})
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
