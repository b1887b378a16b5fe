from __future__ import annotations

import argparse
import json

from till_sdk import ApiSession, TillError, UserContext, load_config, parse_cash_counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Open a till session for a POS terminal (smoke)")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--pos-id", required=True)
    parser.add_argument("--branch-id", required=True)
    parser.add_argument("--amount", required=True)
    parser.add_argument("--count", action="append", help="denomination:count, repeatable")
    args = parser.parse_args()

    config = load_config(args.env_file)
    session = ApiSession(config)
    if not session.token:
        raise SystemExit("No stored token; run `pos-till login` first")
    user = UserContext(id=args.user_id, pos_id=args.pos_id, branch_id=args.branch_id)

    check = session.till_client().check_active_till()
    print(f"Backend active till: {check.has_active_till} (success={check.success})")

    try:
        till = session.shift_service().start_shift(user, args.amount, cash_counts=parse_cash_counts(args.count))
    except TillError as exc:
        print(json.dumps({"error": type(exc).__name__, "message": str(exc)}, indent=2))
        raise SystemExit(1) from exc

    print(f"Till opened: {till.id} opening_amount={till.opening_amount} sync={till.sync_status}")


if __name__ == "__main__":
    main()
