"""Tests for database engine and session management."""

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from homestock.database.engine import (
    AsyncSessionLocal,
    _engine_options,
    engine,
    get_session,
)
from homestock.database.models import Base


class TestDatabaseEngine:
    """Tests for database engine."""

    def test_engine_is_async(self) -> None:
        """Test that the engine is an async engine."""
        assert isinstance(engine, AsyncEngine)

    def test_postgres_pool_options(self) -> None:
        options = _engine_options("postgresql+asyncpg://u:p@localhost/homestock")
        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 5

    def test_sqlite_has_no_pool_options(self) -> None:
        assert _engine_options("sqlite+aiosqlite:///./homestock.db") == {}


class TestSessionFactory:
    """Tests for session factory."""

    @pytest.mark.asyncio
    async def test_create_session(self) -> None:
        """Test creating a session from the factory."""
        async with AsyncSessionLocal() as session:
            assert isinstance(session, AsyncSession)


class TestTables:
    """Tests for the table metadata."""

    @pytest.mark.asyncio
    async def test_tables_created(self, test_engine: Any) -> None:
        async with test_engine.connect() as conn:
            result = await conn.run_sync(lambda sync_conn: Base.metadata.tables.keys())
            assert "users" in result
            assert "inventory_items" in result
            assert "inventory_item_history" in result


class TestGetSession:
    """Tests for get_session context manager."""

    @pytest.mark.asyncio
    async def test_get_session_yields_session(self) -> None:
        """Test that get_session yields a valid session."""
        async for session in get_session():
            assert isinstance(session, AsyncSession)
            break
