"""Database Infrastructure — SQLAlchemy Base and standalone session factory.

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite for development and tests
"""
