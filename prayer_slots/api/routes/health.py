"""Health Routes — liveness, and readiness of the database and the slot pool.

Invariants:
    - GET /health/ returns 200 whenever the process is up
    - GET /health/ready returns 503 until the database answers and the slot pool
      is seeded; an empty pool would make every assign a 404
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from prayer_slots.infrastructure import database
from prayer_slots.models.slot import Slot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _not_ready(reason: str) -> JSONResponse:
    logger.warning(f"Readiness check failed: {reason}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": "prayer-slots-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return _not_ready("database_unavailable")
    async with manager.session() as db:
        slot_count = await db.scalar(select(func.count()).select_from(Slot))
    if not slot_count:
        return _not_ready("slots_not_seeded")

    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "slots": slot_count,
            "sweep": "running" if scheduler and scheduler.running else "idle",
        },
    }
