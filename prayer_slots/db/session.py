"""Async Session Factory — provides async DB sessions outside FastAPI.

Invariants:
    - Meant for scripts (slot seeding) and test fixtures
    - SQLite engines get the same BEGIN IMMEDIATE behaviour as the app engine

Design Decisions:
    - Separate from infrastructure/database.py: this is a convenience for non-FastAPI
      contexts that do not need pooling or error mapping
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from prayer_slots.infrastructure.database import enable_sqlite_immediate_transactions


def create_session_factory(
    database_url: str,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given database URL."""
    engine = create_async_engine(database_url, echo=False)
    if database_url.startswith("sqlite"):
        enable_sqlite_immediate_transactions(engine)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
