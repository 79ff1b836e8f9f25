"""Slot Registry — reads and the compare-and-set ownership primitive.

Invariants:
    - transfer_ownership succeeds only when expected status and owner match
    - A claimant holding another slot never wins a transfer
    - Moving to free clears owner, counters, and skip markers
"""

import pytest

from prayer_slots.core.domain_types import SlotStatus
from prayer_slots.core.errors import (
    ConflictError, InvalidTransitionError, ResourceNotFoundError,
)
from prayer_slots.services.slot_registry import SlotRegistry
from tests.services.slot_fixtures import at, slot_at


async def test_seeded_pool_is_free_and_ordered(test_db):
    free = await SlotRegistry(test_db).list_free()
    assert len(free) == 48
    assert free[0].time_slot == "00:00–00:30"
    assert free[-1].time_slot == "23:30–00:00"


async def test_get_unknown_slot_raises_not_found(test_db):
    with pytest.raises(ResourceNotFoundError):
        await SlotRegistry(test_db).get(9999)


async def test_transfer_claims_free_slot(test_db):
    registry = SlotRegistry(test_db)
    target = await slot_at(test_db, 22)
    slot = await registry.transfer_ownership(
        target.id, "u1", SlotStatus.ACTIVE,
        expected_status=SlotStatus.FREE, now=at(0, 12),
    )
    await test_db.commit()
    assert slot.owner_id == "u1"
    assert slot.status == SlotStatus.ACTIVE.value
    assert (await registry.get_by_owner("u1")).id == target.id
    assert len(await registry.list_free()) == 47
    assert [s.id for s in await registry.list_owned()] == [target.id]


async def test_transfer_fails_when_precondition_is_stale(test_db):
    registry = SlotRegistry(test_db)
    target = await slot_at(test_db, 22)
    await registry.transfer_ownership(
        target.id, "u1", SlotStatus.ACTIVE, expected_status=SlotStatus.FREE,
    )
    await test_db.commit()

    with pytest.raises(ConflictError):
        await registry.transfer_ownership(
            target.id, "u2", SlotStatus.ACTIVE, expected_status=SlotStatus.FREE,
        )
    assert (await registry.get(target.id)).owner_id == "u1"


async def test_transfer_rejects_claimant_holding_another_slot(test_db):
    registry = SlotRegistry(test_db)
    first = await slot_at(test_db, 5)
    second = await slot_at(test_db, 6)
    await registry.transfer_ownership(
        first.id, "u1", SlotStatus.ACTIVE, expected_status=SlotStatus.FREE,
    )
    await test_db.commit()

    with pytest.raises(ConflictError):
        await registry.transfer_ownership(
            second.id, "u1", SlotStatus.ACTIVE, expected_status=SlotStatus.FREE,
        )
    assert (await registry.get(second.id)).status == SlotStatus.FREE.value


async def test_transfer_to_free_clears_state(test_db):
    registry = SlotRegistry(test_db)
    target = await slot_at(test_db, 22)
    await registry.transfer_ownership(
        target.id, "u1", SlotStatus.ACTIVE, expected_status=SlotStatus.FREE,
        consecutive_missed=3, assigned_at=at(0, 12),
    )
    await test_db.commit()

    slot = await registry.transfer_ownership(
        target.id, None, SlotStatus.RELEASED,
        expected_status=SlotStatus.ACTIVE, expected_owner_id="u1",
    )
    await test_db.commit()
    assert slot.status == SlotStatus.FREE.value
    assert slot.owner_id is None
    assert slot.consecutive_missed == 0
    assert slot.assigned_at is None


async def test_illegal_transition_is_rejected_before_writing(test_db):
    target = await slot_at(test_db, 22)
    with pytest.raises(InvalidTransitionError):
        await SlotRegistry(test_db).transfer_ownership(
            target.id, "u1", SlotStatus.SKIPPED, expected_status=SlotStatus.FREE,
        )
