from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .models import CashOrder, TillSession


def counts_toward_drawer(order: CashOrder, session_id: str) -> bool:
    # Unsynced orders are reconciled by whichever shift syncs them.
    return (
        order.till_session_id == session_id
        and order.payment_status == "paid"
        and order.payment_method == "cash"
        and order.sync_status == "synced"
    )


def cash_sales_total(orders: Iterable[CashOrder], session_id: str) -> Decimal:
    return sum(
        (order.amount for order in orders if counts_toward_drawer(order, session_id)),
        Decimal("0"),
    )


def expected_till_amount(session: TillSession | None, orders: Iterable[CashOrder]) -> Decimal:
    """Opening float plus confirmed cash sales; 0 without an open session."""
    if session is None or not session.is_open:
        return Decimal("0")
    return session.opening_amount + cash_sales_total(orders, session.id)
