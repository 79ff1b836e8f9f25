"""SkipRequest ORM — an owner's request to pause miss accrual for 1–30 days.

Invariants:
    - requested_days CHECK 1..30 (the service raises InvalidRange before this fires)
    - At most one pending request per owner (partial unique index)
    - effective_until set only on approval; decided_at set on approval or rejection
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, DateTime, Index, Integer, String, Text, text,
)
from sqlalchemy.orm import Mapped, mapped_column

from prayer_slots.db.base import Base


class SkipRequest(Base):
    """Admin-moderated skip request."""
    __tablename__ = "skip_requests"
    __table_args__ = (
        CheckConstraint(
            "requested_days >= 1 AND requested_days <= 30",
            name="ck_skip_requests_days",
        ),
        Index(
            "uq_skip_requests_owner_pending", "owner_id", unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    requested_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    admin_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    effective_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
