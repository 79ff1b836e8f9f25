"""AttendanceRecord ORM — whether a slot's owner showed up for one occurrence.

Invariants:
    - UNIQUE (slot_id, occurrence_date): one record per occurrence, confirmation is an upsert
    - exempt=True only when attended=False and an approved skip covered the occurrence
    - owner_id is captured at record time (slots change hands, history must not)
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from prayer_slots.db.base import Base


class AttendanceRecord(Base):
    """One occurrence outcome for one slot."""
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint(
            "slot_id", "occurrence_date", name="uq_attendance_slot_occurrence",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    slot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("slots.id"), nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    attended: Mapped[bool] = mapped_column(Boolean, nullable=False)
    exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
