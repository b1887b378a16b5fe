from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from .auth_store import AuthStore
from .cash_counts import DrawerDifference, cash_counts_total, compact_cash_counts
from .clients.till_client import TillClient
from .exceptions import TillAlreadyOpenError, TillNotOpenError, TillSyncError
from .idempotency import is_local_session_id
from .logger import get_logger, log_action
from .models import CloseTillRequest, OpenTillRequest, TillSession, UserContext
from .till_manager import TillSessionManager
from .till_validation import parse_amount

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShiftCloseSummary:
    session: TillSession
    drawer: DrawerDifference
    backend_synced: bool


@dataclass
class ShiftService:
    """Clock-in/clock-out flow tying the backend adapter to the local manager.

    Opening goes to the backend first so the local row carries the
    backend-issued id. Closing is recorded locally first so a failed
    backend call leaves a ``pending`` row for ``sync_pending_sessions``.
    """

    manager: TillSessionManager
    client: TillClient | None = None
    auth_store: AuthStore | None = None

    def start_shift(
        self,
        user: UserContext,
        opening_amount: Decimal | int | float | str,
        *,
        notes: str | None = None,
        cash_counts: Mapping[str, int] | None = None,
    ) -> TillSession:
        amount = parse_amount(opening_amount, "opening_amount")
        counts = compact_cash_counts(cash_counts)
        existing = self.manager.current_session
        if existing is None or not existing.is_open:
            existing = self.manager.repository.get_active(user.pos_id)
        if existing is not None:
            # Guard runs before the backend issues a session id.
            raise TillAlreadyOpenError(user.pos_id, existing.id)
        till_session_id: str | None = None
        if self.client is not None:
            result = self.client.open_till(
                OpenTillRequest(
                    branch_id=user.branch_id,
                    pos_id=user.pos_id,
                    opening_amount=amount,
                    cash_counts=counts,
                    notes=notes or None,
                )
            )
            if not result.success:
                raise TillSyncError(result.error or result.message or "Failed to open till", result.error)
            till_session_id = result.till_session_id

        return self.manager.open_till(
            pos_id=user.pos_id,
            branch_id=user.branch_id,
            user_id=user.id,
            opening_amount=amount,
            opening_cash_counts=counts,
            opening_notes=notes or None,
            till_session_id=till_session_id,
        )

    def end_shift(
        self,
        user: UserContext,
        *,
        cash_counts: Mapping[str, int] | None = None,
        declared_amount: Decimal | int | float | str | None = None,
        notes: str | None = None,
    ) -> ShiftCloseSummary:
        current = self.manager.current_session
        if current is None:
            raise TillNotOpenError("No active till session to close")

        counts = compact_cash_counts(cash_counts)
        if declared_amount is not None:
            declared = parse_amount(declared_amount, "declared_amount")
        else:
            declared = cash_counts_total(counts)
        expected = self.manager.get_expected_till_amount()

        closed = self.manager.close_till(
            declared_closing_amount=declared,
            system_closing_amount=expected,
            closing_cash_counts=counts,
            closing_notes=notes or None,
        )
        drawer = DrawerDifference(counted=declared, expected=expected)

        if self.client is None or is_local_session_id(closed.id):
            log_action(logger, "shift", "end", "local_only", till_session_id=closed.id)
            return ShiftCloseSummary(session=closed, drawer=drawer, backend_synced=False)

        result = self.client.close_till(
            CloseTillRequest(
                branch_id=user.branch_id,
                pos_id=user.pos_id,
                till_session_id=closed.id,
                declared_closing_amount=declared,
                system_closing_amount=expected,
                cash_counts=counts,
                notes=notes or None,
            )
        )
        if not result.success:
            log_action(logger, "shift", "end", "backend_failed", till_session_id=closed.id, error=result.error)
            raise TillSyncError(result.message or result.error or "Failed to close till", result.error)

        synced = self.manager.repository.mark_sync_status(closed.id, "synced", self.manager.clock()) or closed
        if result.token and self.auth_store is not None:
            self.auth_store.replace_token(result.token)
        log_action(logger, "shift", "end", "success", till_session_id=closed.id, difference=drawer.difference)
        return ShiftCloseSummary(session=synced, drawer=drawer, backend_synced=True)
