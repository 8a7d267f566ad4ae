"""Async database engine and session factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = structlog.get_logger(__name__)


def to_async_url(database_url: str) -> str:
    """Convert a plain postgres URL to one using the asyncpg driver.

    Args:
        database_url: Database URL, possibly without a driver suffix.

    Returns:
        URL usable by ``create_async_engine``.
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """Owns the async engine and hands out sessions."""

    def __init__(self, database_url: str) -> None:
        """Initialize database wrapper.

        Args:
            database_url: Database URL from configuration.
        """
        self._url = to_async_url(database_url)
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    async def connect(self) -> None:
        """Create the engine and session factory."""
        self._engine = create_async_engine(self._url, pool_pre_ping=True)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        await logger.ainfo("database_engine_created")

    async def disconnect(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            await logger.ainfo("database_engine_disposed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session bound to the engine.

        Raises:
            RuntimeError: If ``connect`` has not been called.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        async with self._sessionmaker() as session:
            yield session
