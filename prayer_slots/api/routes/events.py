"""Event Routes — outbox feed for the external notification dispatcher."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.infrastructure.database import get_db
from prayer_slots.schemas.event import SlotEventResponse
from prayer_slots.services.slot_events import SlotEventService

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.get("", response_model=list[SlotEventResponse])
async def list_events(
    pending_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Events oldest first; pending_only hides acknowledged ones."""
    return await SlotEventService(db).list_events(pending_only, limit=limit, offset=offset)


@router.post("/{event_id}/dispatched", response_model=SlotEventResponse)
async def mark_event_dispatched(
    event_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await SlotEventService(db).mark_dispatched(event_id)
