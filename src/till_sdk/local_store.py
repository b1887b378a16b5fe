from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import JSON, DateTime, Index, Numeric, String, Text, create_engine, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .exceptions import TillAlreadyOpenError
from .models import SyncStatus, TillSession

Money = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class TillSessionRecord(Base):
    __tablename__ = "till_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    pos_id: Mapped[str] = mapped_column(String(64), nullable=False)
    branch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    opening_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    opening_cash_counts: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    opening_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    opened_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    declared_closing_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    system_closing_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    closing_cash_counts: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    closing_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sync_status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_till_sessions_pos_status", "pos_id", "status"),
        Index(
            "uq_till_sessions_open_pos",
            "pos_id",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
    )


_COLUMNS = [column.name for column in TillSessionRecord.__table__.columns]


def _to_model(record: TillSessionRecord) -> TillSession:
    return TillSession.model_validate(record)


def _apply(record: TillSessionRecord, session: TillSession) -> None:
    data = session.model_dump()
    for name in _COLUMNS:
        setattr(record, name, data[name])


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    connect_args: dict = {}
    engine_kwargs: dict = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in {"sqlite://", "sqlite:///"}:
            engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, echo=False, future=True, connect_args=connect_args, **engine_kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


@dataclass
class TillSessionRepository:
    """Append-only table of till sessions for one or more terminals."""

    session_factory: Callable[[], Session]

    @classmethod
    def from_url(cls, database_url: str) -> "TillSessionRepository":
        return cls(create_session_factory(database_url))

    def put(self, session: TillSession) -> TillSession:
        """Insert or overwrite the row keyed by ``session.id``."""
        with self.session_factory() as db:
            record = db.get(TillSessionRecord, session.id)
            if record is None:
                record = TillSessionRecord()
                db.add(record)
            _apply(record, session)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise TillAlreadyOpenError(session.pos_id, session.id) from exc
        return session

    def replace_open(self, superseded: TillSession | None, session: TillSession) -> TillSession:
        """Close ``superseded`` and store ``session`` in one transaction."""
        with self.session_factory() as db:
            if superseded is not None:
                stale = db.get(TillSessionRecord, superseded.id)
                if stale is not None:
                    _apply(stale, superseded)
                    # The stale row must leave 'open' before the new open row is inserted.
                    db.flush()
            record = db.get(TillSessionRecord, session.id)
            if record is None:
                record = TillSessionRecord()
                db.add(record)
            _apply(record, session)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise TillAlreadyOpenError(session.pos_id, session.id) from exc
        return session

    def get(self, session_id: str) -> TillSession | None:
        with self.session_factory() as db:
            record = db.get(TillSessionRecord, session_id)
            return _to_model(record) if record is not None else None

    def get_active(self, pos_id: str) -> TillSession | None:
        query = (
            select(TillSessionRecord)
            .where(TillSessionRecord.pos_id == pos_id, TillSessionRecord.status == "open")
            .order_by(TillSessionRecord.opened_at.desc())
        )
        with self.session_factory() as db:
            record = db.execute(query).scalars().first()
            return _to_model(record) if record is not None else None

    def list_by_pos(self, pos_id: str) -> list[TillSession]:
        query = (
            select(TillSessionRecord)
            .where(TillSessionRecord.pos_id == pos_id)
            .order_by(TillSessionRecord.opened_at)
        )
        with self.session_factory() as db:
            return [_to_model(record) for record in db.execute(query).scalars().all()]

    def list_by_sync_status(self, *statuses: SyncStatus) -> list[TillSession]:
        wanted = statuses or ("pending",)
        query = (
            select(TillSessionRecord)
            .where(TillSessionRecord.sync_status.in_(wanted))
            .order_by(TillSessionRecord.opened_at)
        )
        with self.session_factory() as db:
            return [_to_model(record) for record in db.execute(query).scalars().all()]

    def count(self) -> int:
        with self.session_factory() as db:
            return db.execute(select(func.count()).select_from(TillSessionRecord)).scalar_one()

    def mark_sync_status(self, session_id: str, sync_status: SyncStatus, at: datetime) -> TillSession | None:
        with self.session_factory() as db:
            record = db.get(TillSessionRecord, session_id)
            if record is None:
                return None
            record.sync_status = sync_status
            record.updated_at = at
            if sync_status == "synced":
                record.synced_at = at
            db.commit()
            return _to_model(record)
