"""Prayer Slots API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PrayerSlotError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, slot seeding, and the auto-release task managed by the lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - The sweep runs as one asyncio task inside the API process; the scheduler is
      kept on app.state so POST /admin/sweep shares its single-flight lock
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prayer_slots.api.error_handlers import register_error_handlers
from prayer_slots.api.routes import (
    admin, attendance, events, health, skip_requests, slots,
)
from prayer_slots.config import get_settings
from prayer_slots.infrastructure.database import init_db
from prayer_slots.infrastructure.observability import setup_logging
from prayer_slots.services.auto_release import AutoReleaseScheduler
from prayer_slots.services.slot_seed import seed_default_slots

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.seed_slots_on_startup:
        async with manager.session() as db:
            await seed_default_slots(db, settings.slot_length_minutes)

    scheduler = AutoReleaseScheduler(manager.session, settings)
    app.state.scheduler = scheduler
    sweep_task = None
    if settings.sweep_enabled:
        sweep_task = asyncio.create_task(scheduler.run_forever())
    logger.info("Prayer Slots API started")
    yield
    logger.info("Prayer Slots API shutting down")
    if sweep_task is not None:
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task
    await manager.dispose()


app = FastAPI(
    title="Prayer Slots API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(slots.router)
app.include_router(attendance.router)
app.include_router(skip_requests.router)
app.include_router(events.router)
app.include_router(admin.router)

register_error_handlers(app)
