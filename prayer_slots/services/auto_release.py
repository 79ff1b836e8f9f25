"""Auto-Release Scheduler — periodic sweep that records misses and frees abandoned slots.

Invariants:
    - Single-flight: a sweep requested while another runs is skipped, not queued
    - Each owned slot is processed in its own session; one slot's failure is logged
      and never aborts the rest of the sweep
    - Every step is idempotent: expired skips resume once, each occurrence is
      recorded once, a released slot is no longer owned on the next pass
    - The slot-auto-released event is committed with the release itself, so it is
      emitted exactly once per release
    - A release whose precondition no longer holds (owner left, attendance reset the
      counter) is dropped for this pass, not reported as a failure

Design Decisions:
    - Misses are only counted from max(counting_from, last attendance, now - lookback):
      a long outage does not retroactively release slots for ancient history
    - Writes go through SlotAssignmentService/AttendanceTracker, the same
      compare-and-set paths user requests use, so the sweep may overlap them
    - run_forever swallows and logs per-iteration errors; cancellation (lifespan
      shutdown) propagates
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.clock import ensure_utc, utc_now
from prayer_slots.core.domain_types import SlotId, SlotStatus
from prayer_slots.core.errors import ConflictError
from prayer_slots.core.occurrence import elapsed_occurrences
from prayer_slots.core.slot_lifecycle import effective_status, should_auto_release
from prayer_slots.services.attendance_tracker import AttendanceTracker
from prayer_slots.services.slot_assignment import SlotAssignmentService
from prayer_slots.services.slot_registry import SlotRegistry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class SweepReport:
    """What one sweep did."""
    started_at: datetime
    slots_checked: int = 0
    misses_recorded: int = 0
    exemptions_recorded: int = 0
    skips_expired: int = 0
    released_slot_ids: list[int] = field(default_factory=list)
    failed_slot_ids: list[int] = field(default_factory=list)


class AutoReleaseScheduler:
    """Runs the miss/auto-release sweep on demand or on a timer."""

    def __init__(
        self, session_factory: SessionFactory, settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self.settings = settings or get_settings()
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def sweep(self, now: datetime | None = None) -> SweepReport | None:
        """One pass over every owned slot. Returns None when a sweep is already running."""
        if self._lock.locked():
            logger.info("Sweep already in progress; skipping")
            return None
        async with self._lock:
            now = ensure_utc(now) if now else utc_now()
            report = SweepReport(started_at=now)

            async with self._session_factory() as db:
                slot_ids = [s.id for s in await SlotRegistry(db).list_owned()]

            for slot_id in slot_ids:
                report.slots_checked += 1
                try:
                    await self._process_slot(SlotId(slot_id), now, report)
                except Exception:
                    report.failed_slot_ids.append(slot_id)
                    logger.exception(
                        "Sweep failed for slot", extra={"slot_id": slot_id},
                    )

            logger.info(
                f"Sweep done: {report.slots_checked} checked, "
                f"{report.misses_recorded} missed, "
                f"{len(report.released_slot_ids)} released",
            )
            return report

    async def run_forever(self) -> None:
        interval = self.settings.sweep_interval_seconds
        logger.info(f"Auto-release scheduler started (every {interval}s)")
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("Sweep iteration failed")
            await asyncio.sleep(interval)

    async def _process_slot(
        self, slot_id: SlotId, now: datetime, report: SweepReport,
    ) -> None:
        async with self._session_factory() as db:
            assignment = SlotAssignmentService(db, self.settings)
            tracker = AttendanceTracker(db, self.settings)
            registry = assignment.registry

            slot = await registry.get(slot_id)
            if slot.owner_id is None:
                return

            # 1. lazy skip expiry made durable
            if slot.status == SlotStatus.SKIPPED.value and effective_status(
                SlotStatus.SKIPPED, slot.skip_until, now,
            ) == SlotStatus.ACTIVE:
                slot = await assignment.resume_from_skip(slot, now)
                await db.commit()
                report.skips_expired += 1
                logger.info(
                    "Skip expired; slot active again",
                    extra={"owner_id": slot.owner_id, "slot_id": slot.id},
                )

            # 2. elapsed occurrences without a record
            starts = [
                ensure_utc(slot.counting_from or slot.assigned_at or now),
                now - timedelta(days=self.settings.sweep_lookback_days),
            ]
            if slot.last_attended_at is not None:
                starts.append(ensure_utc(slot.last_attended_at))
            since = max(starts)
            for occurrence in elapsed_occurrences(
                slot.time_range, since, now,
                self.settings.slot_tz, self.settings.attendance_grace,
            ):
                record, created = await tracker.record_missed_occurrence(
                    slot_id, occurrence, now,
                )
                if not created or record is None:
                    continue
                if record.exempt:
                    report.exemptions_recorded += 1
                else:
                    report.misses_recorded += 1

            # 3. release at threshold
            slot = await registry.get(slot_id)
            if slot.owner_id is not None and should_auto_release(
                slot.consecutive_missed, self.settings.auto_release_threshold,
            ):
                try:
                    await assignment.force_release(slot, now)
                except ConflictError:
                    await db.rollback()
                    logger.info(
                        "Slot changed before auto-release; skipped",
                        extra={"slot_id": slot_id},
                    )
                    return
                await db.commit()
                report.released_slot_ids.append(slot_id)
