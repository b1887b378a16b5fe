from __future__ import annotations

import argparse
import json

from till_sdk import ApiSession, TillError, load_config, parse_cash_counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Count the drawer and close the till (smoke)")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--count", action="append", help="denomination:count, repeatable")
    parser.add_argument("--notes")
    args = parser.parse_args()

    config = load_config(args.env_file)
    session = ApiSession(config)
    if session.user is None:
        raise SystemExit("No stored terminal login; run `pos-till login` first")

    manager = session.till_manager()
    if not manager.sync_till_from_backend(session.user):
        manager.load_active_till(session.user.pos_id)
    print(f"Till status before close: {manager.get_till_status()}")

    try:
        summary = session.shift_service(manager).end_shift(
            session.user,
            cash_counts=parse_cash_counts(args.count),
            notes=args.notes,
        )
    except TillError as exc:
        print(json.dumps({"error": type(exc).__name__, "message": str(exc)}, indent=2))
        raise SystemExit(1) from exc

    drawer = summary.drawer
    print(f"Till closed: {summary.session.id} expected={drawer.expected} counted={drawer.counted} ({drawer.state})")
    report = manager.sync_pending_sessions()
    print(f"Pending sync: synced={len(report.synced)} failed={len(report.failed)} skipped={len(report.skipped)}")


if __name__ == "__main__":
    main()
