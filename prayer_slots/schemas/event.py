"""Event and Admin Schemas — outbox entries and sweep reports."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SlotEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kind: str
    slot_id: int | None = None
    owner_id: str | None = None
    payload: dict
    created_at: datetime
    dispatched_at: datetime | None = None


class SweepReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    started_at: datetime
    slots_checked: int
    misses_recorded: int
    exemptions_recorded: int
    skips_expired: int
    released_slot_ids: list[int]
    failed_slot_ids: list[int]


class SweepResponse(BaseModel):
    ran: bool
    report: SweepReportResponse | None = None
