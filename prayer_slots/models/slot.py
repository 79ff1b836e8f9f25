"""Slot ORM — a recurring daily prayer window and its current ownership.

Invariants:
    - owner_id is UNIQUE: NULLs are distinct, so any number of free slots but one slot per owner
    - status in {free, active, skipped}; "released" is never persisted
    - free slots have owner_id NULL and consecutive_missed 0
    - Rows are seeded once and never deleted

Design Decisions:
    - start_time/end_time as Time columns over the original "22:00–22:30" text:
      queries can order by start without string parsing
    - counting_from denormalized: the sweep never counts occurrences starting before
      it (assignment instant, or the day after a skip ends)
    - skip_until mirrors the approved request's effective_until so lazy expiry is a
      single-row read
"""

from datetime import datetime, time, timezone

from sqlalchemy import String, Integer, DateTime, Time
from sqlalchemy.orm import Mapped, mapped_column

from prayer_slots.core.domain_types import TimeRange
from prayer_slots.db.base import Base


class Slot(Base):
    """Slot aggregate root: one recurring daily window."""
    __tablename__ = "slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False, unique=True)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    owner_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="free", index=True,
    )
    consecutive_missed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    last_attended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    assigned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    counting_from: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    skip_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @property
    def time_slot(self) -> str:
        return self.time_range.label
