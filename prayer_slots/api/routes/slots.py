"""Slot Routes — free pool, coverage, owner dashboard view, assign/change/release.

Invariants:
    - Every mutation returns the authoritative slot state after the write
    - Reported status applies lazy skip expiry (a lapsed skip reads as active)
    - Countdown computed in the slot timezone, zero for non-active slots
"""

from dataclasses import asdict
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.clock import utc_now
from prayer_slots.core.coverage import CoverageEntry, compute_coverage
from prayer_slots.core.countdown import countdown_parts, time_until_next_occurrence
from prayer_slots.core.domain_types import OwnerId, SlotId, SlotStatus
from prayer_slots.core.slot_lifecycle import effective_status
from prayer_slots.infrastructure.database import get_db
from prayer_slots.models.slot import Slot
from prayer_slots.schemas.slot import (
    AssignRequest, ChangeRequest, CountdownResponse, CoverageResponse,
    OwnerSlotResponse, ReleaseRequest, ReleaseResponse, SlotResponse,
)
from prayer_slots.services.slot_assignment import SlotAssignmentService
from prayer_slots.services.slot_registry import SlotRegistry

router = APIRouter(prefix="/api/v1/slots", tags=["slots"])


def slot_response(slot: Slot, now: datetime) -> SlotResponse:
    observed = effective_status(SlotStatus(slot.status), slot.skip_until, now)
    return SlotResponse.model_validate(slot).model_copy(update={"status": observed})


def countdown_response(
    slot: Slot, status: SlotStatus, now: datetime, settings: Settings,
) -> CountdownResponse:
    remaining = time_until_next_occurrence(
        slot.time_range, now.astimezone(settings.slot_tz), status,
    )
    hours, minutes, seconds = countdown_parts(remaining)
    return CountdownResponse(
        seconds=int(remaining.total_seconds()),
        hours=hours,
        minutes=minutes,
        remaining_seconds=seconds,
        next_start_at=now + remaining if remaining > timedelta(0) else None,
    )


@router.get("", response_model=list[SlotResponse])
async def list_slots(db: AsyncSession = Depends(get_db)):
    """All slots in start-time order (dashboard grid)."""
    now = utc_now()
    return [slot_response(s, now) for s in await SlotRegistry(db).list_all()]


@router.get("/free", response_model=list[SlotResponse])
async def list_free_slots(db: AsyncSession = Depends(get_db)):
    now = utc_now()
    return [slot_response(s, now) for s in await SlotRegistry(db).list_free()]


@router.get("/coverage", response_model=CoverageResponse)
async def slot_coverage(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Coverage rate over all slots and whether the slot running now is covered."""
    now = utc_now()
    entries = [
        CoverageEntry(
            SlotId(s.id), s.time_range,
            effective_status(SlotStatus(s.status), s.skip_until, now),
        )
        for s in await SlotRegistry(db).list_all()
    ]
    coverage = compute_coverage(entries, now, settings.slot_tz)
    return CoverageResponse(**asdict(coverage), checked_at=now)


@router.get("/owner/{owner_id}", response_model=OwnerSlotResponse)
async def get_owner_slot(
    owner_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """The owner's slot (if any) with the countdown to its next start."""
    slot = await SlotRegistry(db).get_by_owner(OwnerId(owner_id))
    if slot is None:
        return OwnerSlotResponse(owner_id=owner_id)
    now = utc_now()
    view = slot_response(slot, now)
    return OwnerSlotResponse(
        owner_id=owner_id,
        slot=view,
        countdown=countdown_response(slot, view.status, now, settings),
    )


@router.post("/assign", response_model=SlotResponse)
async def assign_slot(
    body: AssignRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    service = SlotAssignmentService(db, settings)
    slot = await service.assign(OwnerId(body.owner_id), SlotId(body.slot_id))
    return slot_response(slot, utc_now())


@router.post("/change", response_model=SlotResponse)
async def change_slot(
    body: ChangeRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Release the current slot, then claim new_slot_id (CHANGE_FAILED if the claim loses)."""
    service = SlotAssignmentService(db, settings)
    slot = await service.change(OwnerId(body.owner_id), SlotId(body.new_slot_id))
    return slot_response(slot, utc_now())


@router.post("/release", response_model=ReleaseResponse)
async def release_slot(
    body: ReleaseRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    service = SlotAssignmentService(db, settings)
    slot = await service.release(OwnerId(body.owner_id))
    return ReleaseResponse(
        owner_id=body.owner_id,
        released=slot is not None,
        slot=slot_response(slot, utc_now()) if slot else None,
    )
