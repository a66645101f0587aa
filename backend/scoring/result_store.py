"""
Result store: restaurant id -> latest ScoreRecord.

``get`` is a plain lookup that returns ``None`` for unknown ids.
``put`` replaces whatever was stored for the id (last write wins).
Backend failures surface as ``StorageError``; nothing is retried here.
"""
from __future__ import annotations

import threading
from typing import Protocol

from sqlalchemy import Float, String, Text, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import StorageError
from .models import ScoreRecord


class ResultStore(Protocol):
    def get(self, restaurant_id: str) -> ScoreRecord | None: ...

    def put(self, record: ScoreRecord) -> None: ...

    def delete(self, restaurant_id: str) -> bool: ...

    def stats(self) -> dict: ...


class InMemoryResultStore:
    """Lock-protected dict store. Records vanish with the process."""

    def __init__(self) -> None:
        self._records: dict[str, ScoreRecord] = {}
        self._lock = threading.Lock()

    def get(self, restaurant_id: str) -> ScoreRecord | None:
        with self._lock:
            return self._records.get(restaurant_id)

    def put(self, record: ScoreRecord) -> None:
        with self._lock:
            self._records[record.restaurant_id] = record

    def delete(self, restaurant_id: str) -> bool:
        with self._lock:
            return self._records.pop(restaurant_id, None) is not None

    def stats(self) -> dict:
        with self._lock:
            return {"records": len(self._records)}


# ── SQL backend ──────────────────────────────────────────────────────────


class _Base(DeclarativeBase):
    pass


class ScoreRow(_Base):
    __tablename__ = "score_records"

    restaurant_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    compare_fun: Mapped[float] = mapped_column(Float, nullable=False)
    ai_comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    computed_at: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    @classmethod
    def from_record(cls, record: ScoreRecord) -> ScoreRow:
        return cls(
            restaurant_id=record.restaurant_id,
            compare_fun=record.compare_fun,
            ai_comment=record.ai_comment,
            computed_at=record.computed_at,
        )

    def to_record(self) -> ScoreRecord:
        return ScoreRecord(
            restaurant_id=self.restaurant_id,
            compare_fun=self.compare_fun,
            ai_comment=self.ai_comment,
            computed_at=self.computed_at,
        )


def _make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite lives and dies with a single connection.
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class SqlResultStore:
    """Durable store on any SQLAlchemy URL (SQLite by default)."""

    def __init__(self, url: str = "sqlite:///scores.db", engine: Engine | None = None) -> None:
        self._engine = engine if engine is not None else _make_engine(url)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)
        try:
            _Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError("Could not prepare the score_records table") from exc

    def get(self, restaurant_id: str) -> ScoreRecord | None:
        try:
            with self._session_factory() as session:
                row = session.get(ScoreRow, restaurant_id)
                return row.to_record() if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read score for restaurant {restaurant_id!r}") from exc

    def put(self, record: ScoreRecord) -> None:
        try:
            with self._session_factory.begin() as session:
                session.merge(ScoreRow.from_record(record))
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Could not store score for restaurant {record.restaurant_id!r}"
            ) from exc

    def delete(self, restaurant_id: str) -> bool:
        try:
            with self._session_factory.begin() as session:
                row = session.get(ScoreRow, restaurant_id)
                if row is None:
                    return False
                session.delete(row)
                return True
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not delete score for restaurant {restaurant_id!r}") from exc

    def stats(self) -> dict:
        try:
            with self._session_factory() as session:
                count = session.scalar(select(func.count()).select_from(ScoreRow))
        except SQLAlchemyError as exc:
            raise StorageError("Could not count stored scores") from exc
        return {"records": int(count or 0)}

    def dispose(self) -> None:
        self._engine.dispose()
