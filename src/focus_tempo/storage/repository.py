"""Session persistence — the store contract and its SQLAlchemy implementation."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from focus_tempo.exceptions import PersistenceError
from focus_tempo.models import FocusSample, FocusSession, utcnow
from focus_tempo.storage.database import FocusPointRow, FocusSessionRow, get_session_factory

logger = structlog.get_logger(__name__)


def _to_db(dt: datetime) -> datetime:
    """SQLite keeps no offset: store naive UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def _from_db(dt: datetime | None) -> datetime | None:
    if dt is not None and dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


class SessionStore(ABC):
    """Contract for the persistence collaborator.

    Implementations raise :class:`PersistenceError` on failure.
    """

    @abstractmethod
    async def save_session(self, session: FocusSession) -> None:
        """Store a finalised session (insert or replace)."""

    @abstractmethod
    async def save_point(self, session_id: str, user_id: str, sample: FocusSample) -> None:
        """Append one focus point to a running session."""

    @abstractmethod
    async def recent_sessions(
        self, user_id: str, days: int = 7, now: datetime | None = None
    ) -> list[FocusSession]:
        """Sessions started within the last ``days`` days, newest first."""


class SqlSessionStore(SessionStore):
    """:class:`SessionStore` on the async SQLAlchemy engine."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._factory = session_factory

    def _session(self) -> AsyncSession:
        return (self._factory or get_session_factory())()

    # ── Write ─────────────────────────────────────────────────

    async def save_session(self, session: FocusSession) -> None:
        row = FocusSessionRow(
            id=session.id,
            user_id=session.user_id,
            start_time=_to_db(session.start_time),
            end_time=_to_db(session.end_time) if session.end_time else None,
            average_focus_level=session.average_focus_level,
            sample_count=session.sample_count,
            history_json=json.dumps([s.model_dump(mode="json") for s in session.history]),
        )
        try:
            async with self._session() as db:
                await db.merge(row)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("store.save_session_failed", session_id=session.id, error=str(exc))
            raise PersistenceError(f"could not save session {session.id}: {exc}") from exc
        logger.info("store.session_saved", session_id=session.id, samples=session.sample_count)

    async def save_point(self, session_id: str, user_id: str, sample: FocusSample) -> None:
        row = FocusPointRow(
            session_id=session_id,
            user_id=user_id,
            timestamp=_to_db(sample.timestamp),
            raw_score=sample.raw_score,
            smoothed_score=sample.smoothed_score,
        )
        try:
            async with self._session() as db:
                db.add(row)
                await db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not save focus point for {session_id}: {exc}") from exc

    # ── Read ──────────────────────────────────────────────────

    async def get_session(self, session_id: str) -> FocusSession | None:
        try:
            async with self._session() as db:
                row = await db.get(FocusSessionRow, session_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not load session {session_id}: {exc}") from exc
        return self._row_to_session(row) if row else None

    async def get_points(self, session_id: str) -> list[FocusSample]:
        stmt = (
            select(FocusPointRow)
            .where(FocusPointRow.session_id == session_id)
            .order_by(FocusPointRow.timestamp, FocusPointRow.id)
        )
        try:
            async with self._session() as db:
                rows = (await db.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not load points for {session_id}: {exc}") from exc
        return [
            FocusSample(
                timestamp=_from_db(r.timestamp),
                raw_score=r.raw_score,
                smoothed_score=r.smoothed_score,
            )
            for r in rows
        ]

    async def recent_sessions(
        self, user_id: str, days: int = 7, now: datetime | None = None
    ) -> list[FocusSession]:
        cutoff = _to_db((now or utcnow()) - timedelta(days=days))
        stmt = (
            select(FocusSessionRow)
            .where(
                FocusSessionRow.user_id == user_id,
                FocusSessionRow.start_time >= cutoff,
            )
            .order_by(FocusSessionRow.start_time.desc())
        )
        try:
            async with self._session() as db:
                rows = (await db.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not load sessions for {user_id}: {exc}") from exc
        return [self._row_to_session(r) for r in rows]

    @staticmethod
    def _row_to_session(row: FocusSessionRow) -> FocusSession:
        return FocusSession(
            id=row.id,
            user_id=row.user_id,
            start_time=_from_db(row.start_time),
            end_time=_from_db(row.end_time),
            average_focus_level=row.average_focus_level,
            sample_count=row.sample_count,
            history=[FocusSample.model_validate(s) for s in json.loads(row.history_json)],
        )
