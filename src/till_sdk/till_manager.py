from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Mapping

from pydantic import ValidationError as ModelValidationError

from .clients.till_client import TillClient
from .exceptions import TillAlreadyOpenError, TillNotOpenError, TillValidationError
from .expected_amount import expected_till_amount
from .idempotency import is_local_session_id, new_local_session_id
from .local_store import TillSessionRepository
from .logger import get_logger, log_action
from .models import CashOrder, CloseTillRequest, TillSession, TillStatus, UserContext
from .till_validation import parse_amount, validate_close_till_payload, validate_open_till_payload

logger = get_logger(__name__)

OrdersProvider = Callable[[], Iterable[CashOrder]]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form the local table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def no_orders() -> Iterable[CashOrder]:
    return ()


@dataclass
class SyncReport:
    synced: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.synced) + len(self.failed)


@dataclass
class TillSessionManager:
    """Current till session for one terminal process.

    Transitions: closed -> open via ``open_till`` and open -> closed via
    ``close_till``. Anything else raises a ``TillStateError``.
    """

    repository: TillSessionRepository
    client: TillClient | None = None
    orders_provider: OrdersProvider = no_orders
    clock: Callable[[], datetime] = utcnow
    _current: TillSession | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def current_session(self) -> TillSession | None:
        return self._current

    def open_till(
        self,
        *,
        pos_id: str,
        branch_id: str,
        user_id: str,
        opening_amount: Decimal | int | float | str,
        opening_cash_counts: Mapping[str, int] | None = None,
        opening_notes: str | None = None,
        till_session_id: str | None = None,
    ) -> TillSession:
        amount = parse_amount(opening_amount, "opening_amount")
        validation = validate_open_till_payload(
            pos_id=pos_id,
            branch_id=branch_id,
            user_id=user_id,
            opening_amount=amount,
            cash_counts=opening_cash_counts,
            require_user=True,
        )
        if not validation.ok:
            raise TillValidationError(validation.issues)

        with self._lock:
            if self._current is not None and self._current.is_open:
                raise TillAlreadyOpenError(self._current.pos_id, self._current.id)
            existing = self.repository.get_active(pos_id)
            if existing is not None:
                raise TillAlreadyOpenError(pos_id, existing.id)

            now = self.clock()
            session = TillSession(
                id=till_session_id or new_local_session_id(),
                pos_id=pos_id,
                branch_id=branch_id,
                user_id=user_id,
                status="open",
                opening_amount=amount,
                opening_cash_counts=dict(opening_cash_counts) if opening_cash_counts else None,
                opening_notes=opening_notes,
                opened_at=now,
                sync_status="synced" if till_session_id else "pending",
                synced_at=now if till_session_id else None,
                created_at=now,
                updated_at=now,
            )
            self.repository.put(session)
            self._current = session

        log_action(
            logger,
            "till",
            "open",
            "success",
            till_session_id=session.id,
            pos_id=pos_id,
            id_source="backend" if till_session_id else "local",
        )
        return session

    def close_till(
        self,
        *,
        declared_closing_amount: Decimal | int | float | str,
        system_closing_amount: Decimal | int | float | str,
        closing_cash_counts: Mapping[str, int] | None = None,
        closing_notes: str | None = None,
    ) -> TillSession:
        with self._lock:
            current = self._current
            if current is None:
                raise TillNotOpenError("No active till session to close")

            declared = parse_amount(declared_closing_amount, "declared_closing_amount")
            system = parse_amount(system_closing_amount, "system_closing_amount")
            validation = validate_close_till_payload(
                declared_closing_amount=declared,
                system_closing_amount=system,
                cash_counts=closing_cash_counts,
            )
            if not validation.ok:
                raise TillValidationError(validation.issues)

            now = self.clock()
            closed = current.model_copy(
                update={
                    "status": "closed",
                    "declared_closing_amount": declared,
                    "system_closing_amount": system,
                    "closing_cash_counts": dict(closing_cash_counts) if closing_cash_counts else None,
                    "closing_notes": closing_notes,
                    "closed_at": now,
                    "updated_at": now,
                    "sync_status": "pending",
                }
            )
            self.repository.put(closed)
            self._current = None

        log_action(logger, "till", "close", "success", till_session_id=closed.id, pos_id=closed.pos_id)
        return closed

    def load_active_till(self, pos_id: str) -> TillSession | None:
        session = self.repository.get_active(pos_id)
        self._current = session
        log_action(logger, "till", "load_active", "found" if session else "none", pos_id=pos_id)
        return session

    def sync_till_from_backend(self, user: UserContext) -> bool:
        """Adopt the backend's open session for ``user``'s terminal.

        Returns False, leaving local state untouched, when the backend has
        no open session or could not be asked.
        """
        if self.client is None:
            return False
        lookup = self.client.get_till_session()
        if not lookup.success:
            log_action(logger, "till", "sync_from_backend", "lookup_failed", error=lookup.error)
            return False
        if lookup.session is None:
            log_action(logger, "till", "sync_from_backend", "none", pos_id=user.pos_id)
            return False

        backend = lookup.session
        now = self.clock()
        try:
            session = TillSession(
                id=backend.till_session_id,
                pos_id=user.pos_id,
                branch_id=user.branch_id,
                user_id=user.id,
                status="open",
                opening_amount=backend.opening_amount,
                opening_cash_counts=backend.opening_cash_counts,
                opening_notes=backend.opening_notes,
                opened_at=backend.opened_at,
                sync_status="synced",
                synced_at=now,
                created_at=backend.opened_at,
                updated_at=now,
            )
        except ModelValidationError as exc:
            log_action(logger, "till", "sync_from_backend", "rejected", error=str(exc))
            return False

        with self._lock:
            superseded = None
            existing = self.repository.get_active(user.pos_id)
            if existing is not None and existing.id != session.id:
                # Superseded by the backend's session; left closed with nothing to push.
                superseded = existing.model_copy(
                    update={"status": "closed", "closed_at": now, "updated_at": now, "sync_status": "synced"}
                )
            self.repository.replace_open(superseded, session)
            self._current = session

        log_action(logger, "till", "sync_from_backend", "adopted", till_session_id=session.id)
        return True

    def get_expected_till_amount(self) -> Decimal:
        return expected_till_amount(self._current, self.orders_provider())

    def get_till_status(self) -> TillStatus:
        if self._current is not None and self._current.status == "open":
            return "open"
        return "closed"

    def pending_sessions(self) -> list[TillSession]:
        return self.repository.list_by_sync_status("pending", "failed")

    def sync_pending_sessions(self) -> SyncReport:
        """Push locally closed, backend-issued sessions to the backend."""
        report = SyncReport()
        pending = self.pending_sessions()
        log_action(logger, "till", "sync_pending", "started", count=len(pending))
        if self.client is None:
            report.skipped.extend(session.id for session in pending)
            return report

        for session in pending:
            if session.status != "closed" or is_local_session_id(session.id):
                report.skipped.append(session.id)
                continue
            result = self.client.close_till(
                CloseTillRequest(
                    branch_id=session.branch_id,
                    pos_id=session.pos_id,
                    till_session_id=session.id,
                    declared_closing_amount=session.declared_closing_amount,
                    system_closing_amount=session.system_closing_amount,
                    cash_counts=session.closing_cash_counts,
                    notes=session.closing_notes,
                )
            )
            if result.success:
                self.repository.mark_sync_status(session.id, "synced", self.clock())
                report.synced.append(session.id)
            else:
                self.repository.mark_sync_status(session.id, "failed", self.clock())
                report.failed.append(session.id)
                log_action(logger, "till", "sync_pending", "failed", till_session_id=session.id, error=result.error)

        log_action(
            logger,
            "till",
            "sync_pending",
            "finished",
            synced=len(report.synced),
            failed=len(report.failed),
            skipped=len(report.skipped),
        )
        return report
