"""Slot Seeding — creates the fixed daily windows once.

Invariants:
    - Idempotent: a non-empty slots table is left untouched
    - Windows are back-to-back and cover the whole day (48 x 30 min by default)

Design Decisions:
    - Runs from the FastAPI lifespan (seed_slots_on_startup) and as a standalone
      script for deployments that seed before starting the API
"""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import get_settings
from prayer_slots.core.domain_types import SlotStatus, daily_ranges
from prayer_slots.db.session import create_session_factory
from prayer_slots.infrastructure.observability import setup_logging
from prayer_slots.models.slot import Slot

logger = logging.getLogger(__name__)


async def seed_default_slots(db: AsyncSession, length_minutes: int = 30) -> int:
    """Insert the daily windows when no slot exists yet. Returns rows inserted."""
    existing = await db.scalar(select(func.count()).select_from(Slot))
    if existing:
        return 0
    ranges = daily_ranges(length_minutes)
    db.add_all(
        Slot(
            start_time=r.start, end_time=r.end,
            status=SlotStatus.FREE.value, consecutive_missed=0,
        )
        for r in ranges
    )
    await db.commit()
    logger.info(f"Seeded {len(ranges)} slots of {length_minutes} minutes")
    return len(ranges)


async def _seed_from_settings() -> int:
    settings = get_settings()
    factory = create_session_factory(settings.database_url)
    async with factory() as db:
        return await seed_default_slots(db, settings.slot_length_minutes)


def main() -> None:
    """Console entry point: prayer-slots-seed."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    inserted = asyncio.run(_seed_from_settings())
    logger.info(f"Inserted {inserted} slot(s)")
