"""Attendance Routes — confirm attendance and read history with metrics."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.domain_types import OwnerId
from prayer_slots.infrastructure.database import get_db
from prayer_slots.schemas.attendance import (
    AttendanceHistoryResponse, AttendanceMetricsResponse,
    AttendanceRecordResponse, ConfirmAttendanceRequest,
)
from prayer_slots.services.attendance_tracker import AttendanceTracker

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post("/confirm", response_model=AttendanceRecordResponse)
async def confirm_attendance(
    body: ConfirmAttendanceRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Mark the current occurrence attended (idempotent per occurrence)."""
    tracker = AttendanceTracker(db, settings)
    return await tracker.confirm_attendance(OwnerId(body.owner_id), at=body.at)


@router.get("/{owner_id}", response_model=AttendanceHistoryResponse)
async def attendance_history(
    owner_id: str,
    limit: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    tracker = AttendanceTracker(db, settings)
    records = await tracker.history(OwnerId(owner_id), limit=limit)
    metrics = await tracker.metrics(OwnerId(owner_id))
    return AttendanceHistoryResponse(
        owner_id=owner_id,
        records=[AttendanceRecordResponse.model_validate(r) for r in records],
        metrics=AttendanceMetricsResponse.model_validate(metrics),
    )
