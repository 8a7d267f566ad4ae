"""Tests for inbox_signals.core.database."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from inbox_signals.core.database import Database, to_async_url


class TestToAsyncUrl:
    """Tests for to_async_url."""

    def test_postgresql_scheme(self) -> None:
        """Test postgresql:// gets the asyncpg driver."""
        assert (
            to_async_url("postgresql://user:pw@localhost:5432/db")
            == "postgresql+asyncpg://user:pw@localhost:5432/db"
        )

    def test_postgres_scheme(self) -> None:
        """Test the short postgres:// scheme is also converted."""
        assert to_async_url("postgres://localhost/db") == "postgresql+asyncpg://localhost/db"

    def test_driver_already_set(self) -> None:
        """Test URLs with a driver are left alone."""
        url = "postgresql+asyncpg://localhost/db"
        assert to_async_url(url) == url

    def test_other_database(self) -> None:
        """Test non-postgres URLs pass through."""
        assert to_async_url("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"


class TestDatabase:
    """Tests for Database."""

    @pytest.mark.asyncio
    async def test_session_requires_connect(self) -> None:
        """Test sessions are unavailable before connect."""
        database = Database("postgresql://localhost/db")

        with pytest.raises(RuntimeError, match="not connected"):
            async with database.session():
                pass

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self) -> None:
        """Test the engine is created with the async URL and disposed."""
        engine = MagicMock()
        engine.dispose = AsyncMock()

        with patch(
            "inbox_signals.core.database.create_async_engine", return_value=engine
        ) as create:
            database = Database("postgresql://localhost/db")
            await database.connect()
            await database.disconnect()

        create.assert_called_once_with("postgresql+asyncpg://localhost/db", pool_pre_ping=True)
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect_without_connect(self) -> None:
        """Test disconnect is a no-op when never connected."""
        database = Database("postgresql://localhost/db")
        await database.disconnect()
