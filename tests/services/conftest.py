"""Service test fixtures — async DB, seeded slots, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database seeded with 48 slots
    - get_db and get_settings dependencies overridden for route tests
    - db_manager patched for code paths that bypass get_db (admin sweep)
    - Services receive an explicit Settings instance (UTC slots, 15 min grace)

Design Decisions:
    - SQLite in-memory with StaticPool: fast, no external dependency
    - Concurrency tests use a file-backed database instead (concurrent_factory),
      since one shared in-memory connection cannot interleave transactions
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from prayer_slots.config import Settings, get_settings
from prayer_slots.db.base import Base
from prayer_slots.infrastructure.database import (
    DatabaseSessionManager, enable_sqlite_immediate_transactions, get_db,
)
import prayer_slots.infrastructure.database as db_module
import prayer_slots.models  # noqa: F401
from prayer_slots.main import app
from prayer_slots.services.slot_seed import seed_default_slots


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        slot_timezone="UTC",
        attendance_grace_minutes=15,
        auto_release_threshold=5,
        sweep_enabled=False,
        seed_slots_on_startup=False,
        sweep_lookback_days=7,
    )


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        await seed_default_slots(session, 30)
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory, test_db, settings):
    """FastAPI test client with DB and settings dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def concurrent_factory(tmp_path):
    """File-backed SQLite with BEGIN IMMEDIATE: real concurrent transactions."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'slots.db'}")
    enable_sqlite_immediate_transactions(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with factory() as db:
        await seed_default_slots(db, 30)
    yield factory
    await engine.dispose()
