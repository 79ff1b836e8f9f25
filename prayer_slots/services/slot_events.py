"""Slot Events — outbox writer/reader for the external notification dispatcher.

Invariants:
    - record_event only adds to the caller's session; the caller's commit publishes it
    - mark_dispatched is idempotent (first acknowledgement timestamp wins)
"""

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.core.clock import utc_now
from prayer_slots.core.domain_types import EventKind
from prayer_slots.core.errors import ResourceNotFoundError
from prayer_slots.models.slot_event import SlotEvent

logger = logging.getLogger(__name__)


def record_event(
    db: AsyncSession,
    kind: EventKind,
    slot_id: int | None,
    owner_id: str | None,
    **payload: object,
) -> SlotEvent:
    event = SlotEvent(
        kind=kind.value, slot_id=slot_id, owner_id=owner_id,
        payload={k: _jsonable(v) for k, v in payload.items()},
    )
    db.add(event)
    logger.info(
        f"Event {kind.value} queued",
        extra={"event_kind": kind.value, "slot_id": slot_id, "owner_id": owner_id},
    )
    return event


def _jsonable(value: object) -> object:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SlotEventService:
    """Read side of the outbox."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_events(
        self, pending_only: bool = False, limit: int = 50, offset: int = 0,
    ) -> list[SlotEvent]:
        query = select(SlotEvent).order_by(SlotEvent.created_at)
        if pending_only:
            query = query.where(SlotEvent.dispatched_at.is_(None))
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def mark_dispatched(
        self, event_id: UUID, now: datetime | None = None,
    ) -> SlotEvent:
        event = await self.db.get(SlotEvent, event_id)
        if event is None:
            raise ResourceNotFoundError("Event", str(event_id))
        if event.dispatched_at is None:
            event.dispatched_at = now or utc_now()
            await self.db.commit()
        return event
