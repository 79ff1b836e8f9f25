"""Admin Routes — on-demand auto-release sweep and attendance totals.

Invariants:
    - Uses the lifespan scheduler when present so on-demand and timed sweeps
      share one single-flight lock
    - A sweep already running yields ran=false instead of waiting
    - attendance-stats with days=N covers occurrences from N-1 local days ago
      through today
"""

import logging
from dataclasses import asdict
from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.clock import utc_now
from prayer_slots.infrastructure import database
from prayer_slots.infrastructure.database import get_db
from prayer_slots.schemas.attendance import AttendanceSummaryResponse
from prayer_slots.schemas.event import SweepReportResponse, SweepResponse
from prayer_slots.services.attendance_tracker import AttendanceTracker
from prayer_slots.services.auto_release import AutoReleaseScheduler

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


def get_scheduler(
    request: Request, settings: Settings = Depends(get_settings),
) -> AutoReleaseScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        return scheduler
    if database.db_manager is None:
        raise RuntimeError("Database not initialized")
    return AutoReleaseScheduler(database.db_manager.session, settings)


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(scheduler: AutoReleaseScheduler = Depends(get_scheduler)):
    logger.info("On-demand sweep requested")
    report = await scheduler.sweep()
    if report is None:
        return SweepResponse(ran=False)
    return SweepResponse(
        ran=True, report=SweepReportResponse.model_validate(report),
    )


@router.get("/attendance-stats", response_model=AttendanceSummaryResponse)
async def attendance_stats(
    days: int | None = Query(None, ge=1, le=366),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    now = utc_now()
    since = None
    if days is not None:
        since = now.astimezone(settings.slot_tz).date() - timedelta(days=days - 1)
    summary = await AttendanceTracker(db, settings).summary(since)
    return AttendanceSummaryResponse(
        **asdict(summary), since=since, last_updated=now,
    )
