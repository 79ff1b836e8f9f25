"""Skip Request Schemas — submission, decision, and admin queue views.

Invariants:
    - reason: 1-1000 chars, stripped, non-empty
    - days is an int here; its 1-30 range is a domain rule (INVALID_RANGE)
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prayer_slots.core.domain_types import SkipRequestStatus
from prayer_slots.schemas.slot import OwnerRequest


class SkipRequestCreate(OwnerRequest):
    days: int
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be empty or whitespace")
        return v


class SkipRequestDecision(BaseModel):
    approve: bool
    comment: str | None = Field(None, max_length=1000)


class SkipRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    requested_days: int
    reason: str
    status: SkipRequestStatus
    admin_comment: str | None = None
    created_at: datetime
    decided_at: datetime | None = None
    effective_until: datetime | None = None
