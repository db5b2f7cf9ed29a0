"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path
from typing import Any, AsyncGenerator

# Must be set before homestock.auth is imported
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ENV", "development")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from homestock.database.crud import create_user
from homestock.database.models import Base, User
from homestock.database.store import InventoryStore
from homestock.inventory import InventoryAdapter


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[Any, None]:
    """Create a test database engine on a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'homestock_test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: Any) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """An anonymous user owning the test inventory."""
    return await create_user(db_session, is_anonymous=True)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> InventoryStore:
    """Document store wired to the test database."""
    return InventoryStore(session_factory)


@pytest_asyncio.fixture
async def adapter(store: InventoryStore, test_user: User) -> AsyncGenerator[InventoryAdapter, None]:
    """Started adapter for the test user."""
    adapter = InventoryAdapter(store, test_user.id)
    await adapter.start()
    yield adapter
    adapter.stop()


@pytest.fixture
def sample_item_data() -> dict[str, Any]:
    """Sample item submission for testing."""
    return {
        "name": "milk",
        "quantity": "1",
        "low_stock_threshold": "2",
        "is_recurring": True,
        "recurring_cycle": "weekly",
        "barcode": "101",
    }


class Recorder:
    """Collects adapter events and diagnostics."""

    def __init__(self) -> None:
        self.events: list[Any] = []
        self.diagnostics: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def on_diagnostic(self, diagnostic: Any) -> None:
        self.diagnostics.append(diagnostic)


@pytest.fixture
def recorder(adapter: InventoryAdapter) -> Recorder:
    """Recorder attached to the test adapter."""
    rec = Recorder()
    adapter.add_listener(rec.on_event)
    adapter.add_diagnostic_listener(rec.on_diagnostic)
    return rec
