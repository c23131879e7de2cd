"""SQL-backed key-value store for the brief cache."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from daily_brief.core.errors import CacheStorageError
from daily_brief.storage.base import PersistentStore

logger = structlog.get_logger(__name__)

# Type alias for session factory
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def to_async_url(database_url: str) -> str:
    """Convert a plain database URL to its async driver form.

    Args:
        database_url: URL such as ``postgresql://...`` or ``sqlite:///...``.

    Returns:
        URL using asyncpg or aiosqlite; other URLs are returned unchanged.
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class SqlStore(PersistentStore):
    """Key-value store kept in a single ``brief_cache`` table."""

    def __init__(
        self,
        session_factory: SessionFactory,
        engine: AsyncEngine | None = None,
    ) -> None:
        """Initialize store.

        Args:
            session_factory: Factory returning AsyncSession context managers.
            engine: Engine to dispose on close, when the store owns one.
        """
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> SqlStore:
        """Create a store with its own engine.

        Args:
            database_url: Database URL (converted to an async driver URL).

        Returns:
            Store owning the created engine.
        """
        engine = create_async_engine(to_async_url(database_url))
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine=engine)

    async def initialize(self) -> None:
        """Create the cache table if it does not exist.

        Raises:
            CacheStorageError: If the table cannot be created.
        """
        query = text(
            """
            CREATE TABLE IF NOT EXISTS brief_cache (
                key VARCHAR(255) PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        try:
            async with self._session_factory() as session:
                await session.execute(query)
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to create brief_cache table: {e}") from e

    async def get(self, key: str) -> str | None:
        query = text("SELECT value FROM brief_cache WHERE key = :key")
        try:
            async with self._session_factory() as session:
                result = await session.execute(query, {"key": key})
                value = result.scalar()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to read {key!r}: {e}") from e
        return str(value) if value is not None else None

    async def set(self, key: str, value: str) -> None:
        # Delete + insert keeps the statement portable across SQLite and PostgreSQL
        try:
            async with self._session_factory() as session:
                await session.execute(
                    text("DELETE FROM brief_cache WHERE key = :key"), {"key": key}
                )
                await session.execute(
                    text("INSERT INTO brief_cache (key, value) VALUES (:key, :value)"),
                    {"key": key, "value": value},
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to write {key!r}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    text("DELETE FROM brief_cache WHERE key = :key"), {"key": key}
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Failed to remove {key!r}: {e}") from e

    async def close(self) -> None:
        """Dispose the owned engine, if any."""
        if self._engine is not None:
            await self._engine.dispose()
            await logger.ainfo("brief_store_closed")
