"""Slot Assignment — assign, change, release, skip transitions, force release.

Invariants:
    - One owner holds at most one slot; assign never becomes a change
    - change keeps the old slot when the target is already taken
    - change that loses the claim after releasing raises CHANGE_FAILED
    - release is idempotent
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, update

from prayer_slots.core.domain_types import EventKind, SlotStatus
from prayer_slots.core.errors import ChangeFailedError, ConflictError
from prayer_slots.models.slot import Slot
from prayer_slots.models.slot_event import SlotEvent
from prayer_slots.services.attendance_tracker import AttendanceTracker
from prayer_slots.services.slot_assignment import SlotAssignmentService
from tests.services.slot_fixtures import DAY0, at, slot_at


@pytest.fixture
def service(test_db, settings):
    return SlotAssignmentService(test_db, settings)


async def _events(db, kind: EventKind) -> list[SlotEvent]:
    result = await db.execute(select(SlotEvent).where(SlotEvent.kind == kind.value))
    return list(result.scalars().all())


async def test_assign_free_slot(service, test_db):
    target = await slot_at(test_db, 22)
    slot = await service.assign("u1", target.id, now=at(0, 12))
    assert slot.owner_id == "u1"
    assert slot.status == SlotStatus.ACTIVE.value
    assert slot.consecutive_missed == 0
    events = await _events(test_db, EventKind.SLOT_ASSIGNED)
    assert len(events) == 1
    assert events[0].payload["slot_time"] == "22:00–22:30"


async def test_assign_taken_slot_conflicts(service, test_db):
    target_id = (await slot_at(test_db, 22)).id
    await service.assign("u1", target_id)
    with pytest.raises(ConflictError):
        await service.assign("u2", target_id)
    assert (await service.registry.get(target_id)).owner_id == "u1"


async def test_assign_same_slot_twice_is_a_noop(service, test_db):
    target = await slot_at(test_db, 22)
    await service.assign("u1", target.id)
    again = await service.assign("u1", target.id)
    assert again.id == target.id
    assert len(await _events(test_db, EventKind.SLOT_ASSIGNED)) == 1


async def test_assign_while_holding_another_slot_conflicts(service, test_db):
    first = await slot_at(test_db, 5)
    second = await slot_at(test_db, 6)
    await service.assign("u1", first.id)
    with pytest.raises(ConflictError):
        await service.assign("u1", second.id)
    assert (await service.registry.get_by_owner("u1")).id == first.id


async def test_change_moves_owner(service, test_db):
    first = await slot_at(test_db, 5)
    second = await slot_at(test_db, 6)
    await service.assign("u1", first.id)
    slot = await service.change("u1", second.id)
    assert slot.id == second.id
    assert (await service.registry.get(first.id)).status == SlotStatus.FREE.value
    assert (await service.registry.get_by_owner("u1")).id == second.id


async def test_change_to_taken_slot_keeps_old_slot(service, test_db):
    first = await slot_at(test_db, 5)
    second = await slot_at(test_db, 6)
    await service.assign("u1", first.id)
    await service.assign("u2", second.id)
    with pytest.raises(ConflictError) as exc:
        await service.change("u1", second.id)
    assert not isinstance(exc.value, ChangeFailedError)
    assert (await service.registry.get_by_owner("u1")).id == first.id


async def test_change_losing_the_claim_reports_released_old_slot(
    service, test_db, monkeypatch,
):
    first_id = (await slot_at(test_db, 5)).id
    second_id = (await slot_at(test_db, 6)).id
    await service.assign("u1", first_id)

    async def lose_claim(owner_id, slot_id, now):
        raise ConflictError("taken meanwhile")

    monkeypatch.setattr(service, "_claim", lose_claim)
    with pytest.raises(ChangeFailedError) as exc:
        await service.change("u1", second_id)
    assert exc.value.old_slot_id == first_id
    assert exc.value.to_response()["error"]["details"]["old_slot_released"] is True
    assert await service.registry.get_by_owner("u1") is None
    assert (await service.registry.get(first_id)).status == SlotStatus.FREE.value


async def test_change_without_a_slot_assigns(service, test_db):
    target = await slot_at(test_db, 7)
    slot = await service.change("u1", target.id)
    assert slot.owner_id == "u1"


async def test_release_frees_and_is_idempotent(service, test_db):
    target = await slot_at(test_db, 22)
    await service.assign("u1", target.id)
    released = await service.release("u1")
    assert released.status == SlotStatus.FREE.value
    assert released.owner_id is None
    assert await service.release("u1") is None


async def test_mark_skipped_and_resume(service, test_db):
    target = await slot_at(test_db, 22)
    slot = await service.assign("u1", target.id, now=at(0, 12))
    until = at(3, 12)
    skipped = await service.mark_skipped(slot, until, at(1, 12))
    await test_db.commit()
    assert skipped.status == SlotStatus.SKIPPED.value
    assert service.observed_status(skipped, at(2, 0)) == SlotStatus.SKIPPED
    assert service.observed_status(skipped, at(3, 13)) == SlotStatus.ACTIVE

    resumed = await service.resume_from_skip(skipped, at(4, 0))
    await test_db.commit()
    assert resumed.status == SlotStatus.ACTIVE.value
    assert resumed.skip_until is None
    # counting restarts at the local midnight after the skip ended
    assert resumed.counting_from.replace(tzinfo=None) == (
        DAY0 + timedelta(days=4)
    ).replace(tzinfo=None)


async def _miss_five(db, slot_id) -> None:
    await db.execute(
        update(Slot).where(Slot.id == slot_id).values(consecutive_missed=5),
    )
    await db.commit()


async def test_force_release_emits_auto_release_event(service, test_db):
    target = await slot_at(test_db, 22)
    await service.assign("u1", target.id)
    await _miss_five(test_db, target.id)
    slot = await service.registry.get(target.id)
    released = await service.force_release(slot, at(5, 23))
    await test_db.commit()
    assert released.status == SlotStatus.FREE.value
    events = await _events(test_db, EventKind.SLOT_AUTO_RELEASED)
    assert len(events) == 1
    assert events[0].owner_id == "u1"
    assert events[0].payload["slot_time"] == "22:00–22:30"


async def test_force_release_below_threshold_conflicts(service, test_db):
    target_id = (await slot_at(test_db, 22)).id
    slot = await service.assign("u1", target_id)
    with pytest.raises(ConflictError):
        await service.force_release(slot, at(5, 23))
    assert (await service.registry.get(target_id)).owner_id == "u1"


async def test_fresh_attendance_beats_stale_auto_release(service, test_db, settings):
    target_id = (await slot_at(test_db, 22)).id
    await service.assign("u1", target_id, now=at(0, 12))
    await _miss_five(test_db, target_id)
    stale = await service.registry.get(target_id)
    assert stale.consecutive_missed == 5

    await AttendanceTracker(test_db, settings).confirm_attendance(
        "u1", now=at(5, 22, 10),
    )
    with pytest.raises(ConflictError):
        await service.force_release(stale, at(5, 23))

    slot = await service.registry.get(target_id)
    assert slot.owner_id == "u1"
    assert slot.consecutive_missed == 0
    assert await _events(test_db, EventKind.SLOT_AUTO_RELEASED) == []
