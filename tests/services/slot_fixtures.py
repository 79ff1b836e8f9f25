"""Shared helpers for service tests: fixed instants and seeded-slot lookup."""

from datetime import datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.models.slot import Slot

# 2026-03-02 00:00 UTC, a Monday; fixed instants keep window arithmetic deterministic
DAY0 = datetime(2026, 3, 2, tzinfo=timezone.utc)


def at(day: int, hour: int, minute: int = 0, second: int = 0) -> datetime:
    """DAY0 + day days, at hour:minute:second UTC."""
    return DAY0 + timedelta(days=day, hours=hour, minutes=minute, seconds=second)


async def slot_at(db: AsyncSession, hour: int, minute: int = 0) -> Slot:
    """The seeded slot starting at hour:minute."""
    result = await db.execute(
        select(Slot)
        .where(Slot.start_time == time(hour, minute))
        .execution_options(populate_existing=True),
    )
    return result.scalar_one()
