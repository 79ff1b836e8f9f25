"""Attendance Tracker — confirms attendance and records missed occurrences.

Invariants:
    - One AttendanceRecord per (slot_id, occurrence_date); both operations are upserts
    - confirm_attendance resets consecutive_missed exactly once per occurrence
      (a second confirmation for the same occurrence returns the stored record)
    - OutsideWindow / NoActiveSlot leave no partial state behind
    - record_missed_occurrence increments consecutive_missed only for newly recorded,
      non-exempt occurrences: re-running it for the same date is a no-op
    - Counter writes are guarded by owner_id so a slot released meanwhile is untouched

Design Decisions:
    - Counter updates as SQL expressions (consecutive_missed + 1) instead of
      read-modify-write on the ORM object: a concurrent confirm cannot be lost
    - A unique-constraint race (confirm vs sweep on the same occurrence) resolves by
      re-reading the sweep's record and confirming it: attendance wins over a miss
    - Client-supplied "at" must be close to server time (grace margin): attendance
      cannot be back-dated to wipe out misses
"""

import logging
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.attendance_stats import (
    AttendanceEntry, AttendanceMetrics, AttendanceSummary, compute_metrics,
    summarize_attendance,
)
from prayer_slots.core.clock import ensure_utc, utc_now
from prayer_slots.core.domain_types import OwnerId, SkipRequestStatus, SlotId
from prayer_slots.core.errors import (
    ErrorContext, NoActiveSlotError, OutsideWindowError,
)
from prayer_slots.core.occurrence import (
    find_occurrence, occurrence_window, window_overlaps,
)
from prayer_slots.models.attendance_record import AttendanceRecord
from prayer_slots.models.skip_request import SkipRequest
from prayer_slots.models.slot import Slot
from prayer_slots.services.slot_registry import SlotRegistry

logger = logging.getLogger(__name__)


class AttendanceTracker:
    """Attendance confirmations, missed-occurrence accrual, and history."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.registry = SlotRegistry(db)

    async def confirm_attendance(
        self,
        owner_id: OwnerId,
        at: datetime | None = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Mark the owner's current occurrence attended and reset the miss counter."""
        now = ensure_utc(now) if now else utc_now()
        at = ensure_utc(at) if at else now
        grace = self.settings.attendance_grace

        slot = await self.registry.get_by_owner(owner_id)
        if slot is None:
            raise NoActiveSlotError(owner_id)

        # rollback expires slot; only these plain values are used after a write
        slot_id = slot.id
        label = slot.time_range.label
        ctx = ErrorContext(owner_id=owner_id, slot_id=slot_id)
        occurrence = None
        if abs(at - now) <= grace:
            occurrence = find_occurrence(
                slot.time_range, at, self.settings.slot_tz, grace,
            )
        if occurrence is None:
            raise OutsideWindowError(
                label, self.settings.attendance_grace_minutes, ctx,
            )

        record = await self._get_record(slot_id, occurrence)
        if record is not None and record.attended:
            return record

        if record is None:
            record = AttendanceRecord(
                slot_id=slot_id,
                owner_id=owner_id,
                occurrence_date=occurrence,
                attended=True,
                exempt=False,
                confirmed_at=at,
            )
            self.db.add(record)
        try:
            await self._apply_confirmation(record, slot_id, owner_id, at, now, ctx)
        except IntegrityError:
            # the sweep recorded this occurrence first: confirm its record instead
            await self.db.rollback()
            record = await self._get_record(slot_id, occurrence)
            if record is None:
                raise
            if not record.attended:
                await self._apply_confirmation(
                    record, slot_id, owner_id, at, now, ctx,
                )

        logger.info(
            f"Attendance confirmed for {label}",
            extra={
                "owner_id": owner_id, "slot_id": slot_id,
                "occurrence_date": occurrence,
            },
        )
        return record

    async def record_missed_occurrence(
        self,
        slot_id: SlotId,
        occurrence_date: date,
        now: datetime | None = None,
    ) -> tuple[AttendanceRecord | None, bool]:
        """Record an unattended occurrence. Returns (record, newly_created)."""
        now = ensure_utc(now) if now else utc_now()
        slot = await self.registry.get(slot_id)
        if slot.owner_id is None:
            return None, False

        existing = await self._get_record(slot_id, occurrence_date)
        if existing is not None:
            return existing, False

        window = occurrence_window(
            slot.time_range, occurrence_date, self.settings.slot_tz,
        )
        exempt = await self._covered_by_skip(slot.owner_id, window)
        record = AttendanceRecord(
            slot_id=slot_id,
            owner_id=slot.owner_id,
            occurrence_date=occurrence_date,
            attended=False,
            exempt=exempt,
        )
        self.db.add(record)
        try:
            if not exempt:
                await self.db.execute(
                    update(Slot)
                    .where(Slot.id == slot_id, Slot.owner_id == slot.owner_id)
                    .values(
                        consecutive_missed=Slot.consecutive_missed + 1,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False),
                )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return await self._get_record(slot_id, occurrence_date), False

        logger.info(
            "Occurrence recorded as "
            + ("exempt (approved skip)" if exempt else "missed"),
            extra={
                "owner_id": slot.owner_id, "slot_id": slot_id,
                "occurrence_date": occurrence_date,
            },
        )
        return record, True

    async def history(
        self, owner_id: OwnerId, limit: int = 30,
    ) -> list[AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.owner_id == owner_id)
            .order_by(AttendanceRecord.occurrence_date.desc())
            .limit(limit),
        )
        return list(result.scalars().all())

    async def metrics(self, owner_id: OwnerId) -> AttendanceMetrics:
        result = await self.db.execute(
            select(AttendanceRecord).where(AttendanceRecord.owner_id == owner_id),
        )
        return compute_metrics([
            AttendanceEntry(r.occurrence_date, r.attended, r.exempt)
            for r in result.scalars().all()
        ])

    async def summary(self, since: date | None = None) -> AttendanceSummary:
        """Admin-wide totals, optionally limited to occurrences on or after since."""
        query = select(AttendanceRecord)
        if since is not None:
            query = query.where(AttendanceRecord.occurrence_date >= since)
        result = await self.db.execute(query)
        return summarize_attendance([
            (r.owner_id, AttendanceEntry(r.occurrence_date, r.attended, r.exempt))
            for r in result.scalars().all()
        ])

    async def _apply_confirmation(
        self,
        record: AttendanceRecord,
        slot_id: SlotId,
        owner_id: OwnerId,
        at: datetime,
        now: datetime,
        ctx: ErrorContext,
    ) -> None:
        record.owner_id = owner_id
        record.attended = True
        record.exempt = False
        record.confirmed_at = at
        result = await self.db.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.owner_id == owner_id)
            .values(consecutive_missed=0, last_attended_at=at, updated_at=now)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise NoActiveSlotError(owner_id, ctx)
        await self.db.commit()

    async def _get_record(
        self, slot_id: int, occurrence_date: date,
    ) -> AttendanceRecord | None:
        result = await self.db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.slot_id == slot_id)
            .where(AttendanceRecord.occurrence_date == occurrence_date)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _covered_by_skip(
        self, owner_id: str, window: tuple[datetime, datetime],
    ) -> bool:
        """True when an approved skip for owner_id overlaps the occurrence window."""
        result = await self.db.execute(
            select(SkipRequest)
            .where(SkipRequest.owner_id == owner_id)
            .where(SkipRequest.status == SkipRequestStatus.APPROVED.value),
        )
        for request in result.scalars().all():
            if request.decided_at is None or request.effective_until is None:
                continue
            if window_overlaps(window, request.decided_at, request.effective_until):
                return True
        return False
