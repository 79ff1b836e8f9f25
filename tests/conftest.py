"""Root conftest — shared test configuration."""

import os

# Never touch a real database or start the background sweep from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("SWEEP_ENABLED", "false")
os.environ.setdefault("SEED_SLOTS_ON_STARTUP", "false")
os.environ.setdefault("SLOT_TIMEZONE", "UTC")
os.environ.setdefault("LOG_FORMAT", "text")
