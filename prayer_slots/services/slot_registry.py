"""Slot Registry — the pool of daily windows and the compare-and-set ownership primitive.

Invariants:
    - transfer_ownership is the ONLY code path that writes owner_id/status
    - The precondition (expected status + expected owner) and the write are one
      conditional UPDATE: zero affected rows means another writer got there first
    - A claimant who already owns another slot never matches the UPDATE
      (NOT EXISTS guard, backed by the UNIQUE owner_id constraint)
    - An optional miss-count floor joins the precondition, so an attendance that
      reset the counter meanwhile makes an auto-release match zero rows
    - Moving to free always clears owner, counters, and skip markers
    - transfer_ownership does not commit: the caller groups it with its own
      writes (events, counters) and commits once

Design Decisions:
    - Conditional UPDATE over SELECT ... FOR UPDATE: one round trip, works the same
      on PostgreSQL and SQLite, first committer wins (ADR: linearizable per slot)
    - synchronize_session=False + get(populate_existing=True): the identity map is
      refreshed from the row actually written instead of evaluating the WHERE in Python
    - IntegrityError from the unique owner index surfaces as ConflictError, the same
      signal the caller already handles for a lost race
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from prayer_slots.core.clock import ensure_utc, utc_now
from prayer_slots.core.domain_types import OwnerId, SlotId, SlotStatus
from prayer_slots.core.errors import (
    ConflictError, ErrorContext, ResourceNotFoundError,
)
from prayer_slots.core.slot_lifecycle import check_transition
from prayer_slots.models.slot import Slot

logger = logging.getLogger(__name__)

OWNED_STATUSES = (SlotStatus.ACTIVE.value, SlotStatus.SKIPPED.value)


class SlotRegistry:
    """Slot reads plus the single ownership mutation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_free(self) -> list[Slot]:
        result = await self.db.execute(
            select(Slot)
            .where(Slot.status == SlotStatus.FREE.value)
            .order_by(Slot.start_time),
        )
        return list(result.scalars().all())

    async def list_owned(self) -> list[Slot]:
        result = await self.db.execute(
            select(Slot)
            .where(Slot.status.in_(OWNED_STATUSES))
            .order_by(Slot.id),
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Slot]:
        result = await self.db.execute(select(Slot).order_by(Slot.start_time))
        return list(result.scalars().all())

    async def get(self, slot_id: SlotId) -> Slot:
        slot = await self.db.get(Slot, slot_id, populate_existing=True)
        if slot is None:
            raise ResourceNotFoundError("Slot", str(slot_id))
        return slot

    async def get_by_owner(self, owner_id: OwnerId) -> Slot | None:
        result = await self.db.execute(
            select(Slot)
            .where(Slot.owner_id == owner_id)
            .where(Slot.status.in_(OWNED_STATUSES))
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def transfer_ownership(
        self,
        slot_id: SlotId,
        new_owner_id: OwnerId | None,
        new_status: SlotStatus,
        *,
        expected_status: SlotStatus,
        expected_owner_id: OwnerId | None = None,
        min_missed: int | None = None,
        now: datetime | None = None,
        **fields: object,
    ) -> Slot:
        """Atomically move slot from (expected_status, expected_owner_id) to the new state.

        min_missed additionally requires consecutive_missed >= min_missed at write time.
        """
        persisted = check_transition(expected_status, new_status)
        now = ensure_utc(now) if now else utc_now()

        conditions = [
            Slot.id == slot_id,
            Slot.status == expected_status.value,
            Slot.owner_id.is_(None) if expected_owner_id is None
            else Slot.owner_id == expected_owner_id,
        ]
        if min_missed is not None:
            conditions.append(Slot.consecutive_missed >= min_missed)
        if new_owner_id is not None and new_owner_id != expected_owner_id:
            other = aliased(Slot)
            conditions.append(
                ~select(other.id).where(other.owner_id == new_owner_id).exists(),
            )

        values: dict[str, object] = {
            "owner_id": new_owner_id,
            "status": persisted.value,
            "updated_at": now,
        }
        if persisted == SlotStatus.FREE:
            values.update(
                consecutive_missed=0,
                last_attended_at=None,
                assigned_at=None,
                counting_from=None,
                skip_until=None,
            )
        values.update(fields)

        stmt = (
            update(Slot)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                f"Owner '{new_owner_id}' already holds a slot",
                ErrorContext(owner_id=new_owner_id, slot_id=slot_id),
            )

        if result.rowcount != 1:
            current = await self.get(slot_id)
            logger.info(
                f"Ownership CAS lost: slot is {current.status}/{current.owner_id}, "
                f"expected {expected_status.value}/{expected_owner_id}",
                extra={"slot_id": slot_id, "owner_id": new_owner_id},
            )
            raise ConflictError(
                f"Slot {slot_id} changed before it could be updated; "
                "re-read and try again",
                ErrorContext(owner_id=new_owner_id, slot_id=slot_id),
            )

        return await self.get(slot_id)
