"""SQLAlchemy-backed record store."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TypeVar

from sqlalchemy import JSON, DateTime, Integer, String, create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from fieldmark.errors import StoreError

from .base import DEFAULT_QUOTA_BYTES, RecordStore, encode_value, entry_size

T = TypeVar("T")


class Base(DeclarativeBase):
    pass


class RecordRow(Base):
    __tablename__ = "records"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    size: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )


def _engine_options(database_url: str) -> dict[str, Any]:
    if not database_url.startswith("sqlite"):
        return {}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        options["poolclass"] = StaticPool
    return options


class SqlRecordStore(RecordStore):
    """Persist records to a SQL database (SQLite by default)."""

    def __init__(
        self,
        database_url: str,
        *,
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
    ) -> None:
        self._quota_bytes = quota_bytes
        try:
            self._engine = create_engine(
                database_url, future=True, **_engine_options(database_url)
            )
            self._session_factory = sessionmaker(self._engine, expire_on_commit=False)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"Unable to open record store {database_url}: {exc}") from exc

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def get(self, key: str) -> Optional[Any]:
        def _get(session: Session) -> Optional[Any]:
            row = session.get(RecordRow, key)
            return row.value if row is not None else None

        return await self._run(_get)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        wanted = list(dict.fromkeys(keys))
        if not wanted:
            return {}

        def _get_many(session: Session) -> Dict[str, Any]:
            rows = session.execute(
                select(RecordRow).where(RecordRow.key.in_(wanted))
            ).scalars()
            found = {row.key: row.value for row in rows}
            return {key: found[key] for key in wanted if key in found}

        return await self._run(_get_many)

    async def set(self, key: str, value: Any) -> None:
        encoded = encode_value(key, value)
        size = entry_size(key, encoded)

        def _set(session: Session) -> None:
            used = session.execute(
                select(func.coalesce(func.sum(RecordRow.size), 0)).where(
                    RecordRow.key != key
                )
            ).scalar_one()
            if used + size > self._quota_bytes:
                raise StoreError(
                    f"QUOTA_BYTES quota exceeded writing '{key}' "
                    f"({self._quota_bytes} bytes available)"
                )
            session.merge(
                RecordRow(
                    key=key,
                    value=value,
                    size=size,
                    updated_at=datetime.now(timezone.utc),
                )
            )

        await self._run(_set)

    async def remove(self, key: str) -> None:
        def _remove(session: Session) -> None:
            session.execute(delete(RecordRow).where(RecordRow.key == key))

        await self._run(_remove)

    async def bytes_in_use(self, keys: Optional[Iterable[str]] = None) -> int:
        wanted = list(keys) if keys is not None else None

        def _bytes(session: Session) -> int:
            stmt = select(func.coalesce(func.sum(RecordRow.size), 0))
            if wanted is not None:
                stmt = stmt.where(RecordRow.key.in_(wanted))
            return int(session.execute(stmt).scalar_one())

        return await self._run(_bytes)

    async def keys(self, prefix: str = "") -> List[str]:
        def _keys(session: Session) -> List[str]:
            stmt = select(RecordRow.key).order_by(RecordRow.key)
            if prefix:
                stmt = stmt.where(RecordRow.key.startswith(prefix, autoescape=True))
            return list(session.execute(stmt).scalars())

        return await self._run(_keys)

    async def close(self) -> None:
        await asyncio.to_thread(self._engine.dispose)

    async def _run(self, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._run_sync, work)

    def _run_sync(self, work: Callable[[Session], T]) -> T:
        try:
            with self.session() as session:
                return work(session)
        except SQLAlchemyError as exc:
            raise StoreError(f"Record store operation failed: {exc}") from exc
