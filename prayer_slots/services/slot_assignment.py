"""Slot Assignment — the slot ownership state machine (assign, change, release, skip, auto-release).

Invariants:
    - One person holds zero or one slot (enforced by SlotRegistry's conditional UPDATE)
    - assign() never silently turns into a change: an owner already holding a slot
      gets ConflictError and must call change()
    - change() is two committed steps, release then claim; a lost claim leaves the
      caller slot-less and raises ChangeFailedError(old_slot_released=True)
    - release() is idempotent: no slot (or a slot already released by the sweep) is a no-op
    - Auto-release (force_release) is only invoked by the AutoReleaseScheduler
    - Every state change returns the authoritative Slot row

Design Decisions:
    - All lifecycle transitions live here so routes and the sweep share one state
      machine (the dashboard had several drifting copies in view components)
    - change() pre-checks that the target is free before releasing: a stale client
      list fails fast with the old slot kept; only a genuine race reaches ChangeFailed
      (ADR: availability over two-phase atomicity, documented to callers)
    - Skip approval resets the counter and moves counting_from to the approval
      instant, so occurrences the sweep had not reached yet are never charged later
    - Skip expiry restarts miss counting at the next local midnight after skip_until,
      so the transition day itself can never be charged as a miss
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from prayer_slots.config import Settings, get_settings
from prayer_slots.core.clock import ensure_utc, local_midnight_after, utc_now
from prayer_slots.core.domain_types import EventKind, OwnerId, SlotId, SlotStatus
from prayer_slots.core.errors import (
    ChangeFailedError, ConflictError, ErrorContext,
)
from prayer_slots.core.slot_lifecycle import effective_status
from prayer_slots.models.slot import Slot
from prayer_slots.services.slot_events import record_event
from prayer_slots.services.slot_registry import SlotRegistry

logger = logging.getLogger(__name__)


class SlotAssignmentService:
    """Assign/change/release plus the skip and auto-release transitions."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.registry = SlotRegistry(db)

    # ─── Owner-facing operations ────────────────────────────────

    async def assign(
        self, owner_id: OwnerId, slot_id: SlotId, now: datetime | None = None,
    ) -> Slot:
        """Claim a free slot for an owner who holds none."""
        now = ensure_utc(now) if now else utc_now()
        current = await self.registry.get_by_owner(owner_id)
        if current is not None:
            if current.id == slot_id:
                return current
            raise ConflictError(
                f"Owner already holds slot {current.time_range.label}; "
                "use change to move to another slot",
                ErrorContext(owner_id=owner_id, slot_id=slot_id),
            )
        try:
            slot = await self._claim(owner_id, slot_id, now)
        except ConflictError:
            await self.db.rollback()
            raise
        await self.db.commit()
        logger.info(
            f"Slot {slot.time_range.label} assigned",
            extra={"owner_id": owner_id, "slot_id": slot.id},
        )
        return slot

    async def change(
        self, owner_id: OwnerId, new_slot_id: SlotId, now: datetime | None = None,
    ) -> Slot:
        """Release the owner's slot, then claim new_slot_id (not atomic across slots)."""
        now = ensure_utc(now) if now else utc_now()
        current = await self.registry.get_by_owner(owner_id)
        if current is None:
            return await self.assign(owner_id, new_slot_id, now)
        if current.id == new_slot_id:
            return current

        target = await self.registry.get(new_slot_id)
        if target.status != SlotStatus.FREE.value:
            raise ConflictError(
                f"Slot {target.time_range.label} is no longer free; "
                "your current slot was kept",
                ErrorContext(owner_id=owner_id, slot_id=new_slot_id),
            )

        old_slot_id = current.id
        try:
            await self.registry.transfer_ownership(
                old_slot_id, None, SlotStatus.FREE,
                expected_status=SlotStatus(current.status),
                expected_owner_id=owner_id,
                now=now,
            )
        except ConflictError:
            await self.db.rollback()
            raise
        await self.db.commit()
        logger.info(
            f"Slot change: released slot {old_slot_id}",
            extra={"owner_id": owner_id, "slot_id": old_slot_id},
        )

        try:
            slot = await self._claim(owner_id, new_slot_id, now)
        except ConflictError:
            await self.db.rollback()
            logger.warning(
                f"Slot change failed after release of slot {old_slot_id}",
                extra={"owner_id": owner_id, "slot_id": new_slot_id},
            )
            raise ChangeFailedError(
                old_slot_id, new_slot_id, ErrorContext(owner_id=owner_id),
            )
        await self.db.commit()
        return slot

    async def release(
        self, owner_id: OwnerId, now: datetime | None = None,
    ) -> Slot | None:
        """Return the owner's slot to the free pool. No slot held: no-op."""
        now = ensure_utc(now) if now else utc_now()
        current = await self.registry.get_by_owner(owner_id)
        if current is None:
            return None
        try:
            slot = await self.registry.transfer_ownership(
                current.id, None, SlotStatus.FREE,
                expected_status=SlotStatus(current.status),
                expected_owner_id=owner_id,
                now=now,
            )
        except ConflictError:
            await self.db.rollback()
            if await self.registry.get_by_owner(owner_id) is None:
                return None
            raise
        await self.db.commit()
        logger.info(
            f"Slot {slot.time_range.label} released by owner",
            extra={"owner_id": owner_id, "slot_id": slot.id},
        )
        return slot

    # ─── Lifecycle transitions (skip manager / scheduler) ───────

    async def mark_skipped(
        self, slot: Slot, skip_until: datetime, now: datetime,
    ) -> Slot:
        """active -> skipped until skip_until; misses before now are forgiven. Caller commits."""
        if slot.status == SlotStatus.SKIPPED.value:
            slot = await self.resume_from_skip(slot, now)
        return await self.registry.transfer_ownership(
            slot.id, slot.owner_id, SlotStatus.SKIPPED,
            expected_status=SlotStatus.ACTIVE,
            expected_owner_id=slot.owner_id,
            now=now,
            skip_until=skip_until,
            consecutive_missed=0,
            counting_from=now,
        )

    async def resume_from_skip(self, slot: Slot, now: datetime) -> Slot:
        """skipped -> active; misses count again from the day after the skip ended. Caller commits."""
        ended = ensure_utc(slot.skip_until) or now
        return await self.registry.transfer_ownership(
            slot.id, slot.owner_id, SlotStatus.ACTIVE,
            expected_status=SlotStatus.SKIPPED,
            expected_owner_id=slot.owner_id,
            now=now,
            skip_until=None,
            counting_from=local_midnight_after(min(ended, now), self.settings.slot_tz),
        )

    async def force_release(self, slot: Slot, now: datetime) -> Slot:
        """active|skipped -> released -> free, plus the slot-auto-released event. Caller commits.

        Raises ConflictError when the slot changed since it was read, including an
        attendance that brought consecutive_missed back under the threshold.
        """
        owner_id = slot.owner_id
        missed = slot.consecutive_missed
        label = slot.time_range.label
        released = await self.registry.transfer_ownership(
            slot.id, None, SlotStatus.RELEASED,
            expected_status=SlotStatus(slot.status),
            expected_owner_id=owner_id,
            min_missed=self.settings.auto_release_threshold,
            now=now,
        )
        record_event(
            self.db, EventKind.SLOT_AUTO_RELEASED, released.id, owner_id,
            slot_time=label, consecutive_missed=missed, released_at=now,
        )
        logger.warning(
            f"Slot {label} auto-released after {missed} consecutive misses",
            extra={"owner_id": owner_id, "slot_id": released.id},
        )
        return released

    def observed_status(self, slot: Slot, now: datetime | None = None) -> SlotStatus:
        """Status a reader should see (lazy skip expiry applied)."""
        return effective_status(
            SlotStatus(slot.status), slot.skip_until, now or utc_now(),
        )

    # ─── Internals ──────────────────────────────────────────────

    async def _claim(self, owner_id: OwnerId, slot_id: SlotId, now: datetime) -> Slot:
        slot = await self.registry.transfer_ownership(
            slot_id, owner_id, SlotStatus.ACTIVE,
            expected_status=SlotStatus.FREE,
            now=now,
            assigned_at=now,
            counting_from=now,
            consecutive_missed=0,
        )
        record_event(
            self.db, EventKind.SLOT_ASSIGNED, slot.id, owner_id,
            slot_time=slot.time_range.label, assigned_at=now,
        )
        return slot
