"""SlotEvent ORM — outbox of notification events for the external dispatcher.

Invariants:
    - Written in the same transaction as the state change it describes
    - dispatched_at NULL until the dispatcher acknowledges delivery
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from prayer_slots.db.base import Base


class SlotEvent(Base):
    """Notification event (slot-assigned, slot-auto-released, skip-request-decided)."""
    __tablename__ = "slot_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    kind: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    slot_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    owner_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    dispatched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
