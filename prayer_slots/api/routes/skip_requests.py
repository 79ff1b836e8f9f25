"""Skip Request Routes — owner submission and the admin decision queue.

Invariants:
    - days range violations surface as INVALID_RANGE (409), not as validation errors
    - Admin authorization is enforced upstream of this service
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.domain_types import OwnerId, SkipRequestId, SkipRequestStatus
from prayer_slots.infrastructure.database import get_db
from prayer_slots.schemas.skip_request import (
    SkipRequestCreate, SkipRequestDecision, SkipRequestResponse,
)
from prayer_slots.services.skip_requests import SkipRequestManager

router = APIRouter(prefix="/api/v1/skip-requests", tags=["skip-requests"])


@router.post(
    "", response_model=SkipRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_skip_request(
    body: SkipRequestCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    manager = SkipRequestManager(db, settings)
    return await manager.submit(OwnerId(body.owner_id), body.days, body.reason)


@router.get("", response_model=list[SkipRequestResponse])
async def list_skip_requests(
    status_filter: SkipRequestStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Admin queue, newest first."""
    manager = SkipRequestManager(db, settings)
    return await manager.list_requests(status_filter, limit=limit, offset=offset)


@router.get("/owner/{owner_id}", response_model=list[SkipRequestResponse])
async def list_owner_skip_requests(
    owner_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    manager = SkipRequestManager(db, settings)
    return await manager.list_for_owner(OwnerId(owner_id))


@router.post("/{request_id}/decide", response_model=SkipRequestResponse)
async def decide_skip_request(
    request_id: int,
    body: SkipRequestDecision,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Approve or reject a pending request; approval moves the slot to skipped."""
    manager = SkipRequestManager(db, settings)
    return await manager.decide(
        SkipRequestId(request_id), body.approve, body.comment,
    )
