"""Slot Schemas — slot views, ownership requests, and countdown.

Invariants:
    - owner_id: 1-64 chars, stripped, non-empty
    - SlotResponse.time_slot uses the dashboard label format ("22:00–22:30")
"""

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prayer_slots.core.domain_types import SlotStatus


class OwnerRequest(BaseModel):
    """Any request that acts on behalf of one owner."""
    owner_id: str = Field(min_length=1, max_length=64)

    @field_validator("owner_id")
    @classmethod
    def strip_owner_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("owner_id cannot be empty or whitespace")
        return v


class AssignRequest(OwnerRequest):
    slot_id: int = Field(ge=1)


class ChangeRequest(OwnerRequest):
    new_slot_id: int = Field(ge=1)


class ReleaseRequest(OwnerRequest):
    pass


class SlotResponse(BaseModel):
    """Public slot state."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    time_slot: str
    start_time: time
    end_time: time
    status: SlotStatus
    owner_id: str | None = None
    consecutive_missed: int = 0
    last_attended_at: datetime | None = None
    assigned_at: datetime | None = None
    skip_until: datetime | None = None


class CountdownResponse(BaseModel):
    """Time until the slot next starts."""
    seconds: int
    hours: int
    minutes: int
    remaining_seconds: int
    next_start_at: datetime | None = None


class OwnerSlotResponse(BaseModel):
    """Owner dashboard view: the held slot (if any) and its countdown."""
    owner_id: str
    slot: SlotResponse | None = None
    countdown: CountdownResponse | None = None


class ReleaseResponse(BaseModel):
    owner_id: str
    released: bool
    slot: SlotResponse | None = None


class CoverageResponse(BaseModel):
    """Share of the day with an active owner, and whether the current slot has one."""
    total_slots: int
    covered_slots: int
    skipped_slots: int
    free_slots: int
    coverage_rate: float
    current_slot_id: int | None = None
    current_slot_time: str | None = None
    needs_coverage: bool
    checked_at: datetime
