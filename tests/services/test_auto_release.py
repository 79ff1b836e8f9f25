"""Auto-Release Scheduler — miss accrual, threshold release, skips, isolation.

Invariants:
    - Four consecutive misses keep the slot; the fifth releases it
    - slot-auto-released is emitted exactly once per release, however often the sweep runs
    - Occurrences during an approved skip are exempt; counting restarts after the skip
    - Attendance resets the run of misses
    - One failing slot does not abort the sweep; overlapping sweeps are skipped
"""

import pytest
from sqlalchemy import select

from prayer_slots.core.domain_types import EventKind, SlotStatus
from prayer_slots.models.attendance_record import AttendanceRecord
from prayer_slots.models.slot_event import SlotEvent
from prayer_slots.services.attendance_tracker import AttendanceTracker
from prayer_slots.services.auto_release import AutoReleaseScheduler
from prayer_slots.services.skip_requests import SkipRequestManager
from prayer_slots.services.slot_assignment import SlotAssignmentService
from prayer_slots.services.slot_registry import SlotRegistry
from tests.services.slot_fixtures import at, slot_at


@pytest.fixture
def scheduler(test_session_factory, settings):
    return AutoReleaseScheduler(test_session_factory, settings)


@pytest.fixture
async def owned_slot(test_db, settings):
    target = await slot_at(test_db, 22)
    return await SlotAssignmentService(test_db, settings).assign(
        "u1", target.id, now=at(0, 12),
    )


async def _auto_release_events(db) -> list[SlotEvent]:
    result = await db.execute(
        select(SlotEvent).where(SlotEvent.kind == EventKind.SLOT_AUTO_RELEASED.value),
    )
    return list(result.scalars().all())


async def test_four_misses_keep_the_slot(scheduler, owned_slot, test_db):
    report = await scheduler.sweep(now=at(3, 23))
    assert report.misses_recorded == 4
    assert report.released_slot_ids == []
    slot = await SlotRegistry(test_db).get(owned_slot.id)
    assert slot.owner_id == "u1"
    assert slot.consecutive_missed == 4


async def test_fifth_miss_releases_the_slot(scheduler, owned_slot, test_db):
    await scheduler.sweep(now=at(3, 23))
    report = await scheduler.sweep(now=at(4, 23))
    assert report.misses_recorded == 1
    assert report.released_slot_ids == [owned_slot.id]
    slot = await SlotRegistry(test_db).get(owned_slot.id)
    assert slot.status == SlotStatus.FREE.value
    assert slot.owner_id is None


async def test_five_day_absence_emits_event_exactly_once(
    scheduler, owned_slot, test_db,
):
    first = await scheduler.sweep(now=at(4, 23))
    assert first.misses_recorded == 5
    assert first.released_slot_ids == [owned_slot.id]

    second = await scheduler.sweep(now=at(4, 23, 5))
    assert second.slots_checked == 0
    events = await _auto_release_events(test_db)
    assert len(events) == 1
    assert events[0].owner_id == "u1"
    assert events[0].payload["consecutive_missed"] == 5


async def test_sweep_is_idempotent_for_the_same_instant(
    scheduler, owned_slot, test_db,
):
    await scheduler.sweep(now=at(2, 23))
    again = await scheduler.sweep(now=at(2, 23))
    assert again.misses_recorded == 0
    records = await test_db.execute(select(AttendanceRecord))
    assert len(records.scalars().all()) == 3
    assert (await SlotRegistry(test_db).get(owned_slot.id)).consecutive_missed == 3


async def test_occurrence_not_elapsed_until_grace_closes(scheduler, owned_slot):
    report = await scheduler.sweep(now=at(0, 22, 40))
    assert report.misses_recorded == 0


async def test_attendance_resets_the_run(scheduler, owned_slot, test_db, settings):
    await scheduler.sweep(now=at(1, 23))
    await AttendanceTracker(test_db, settings).confirm_attendance(
        "u1", now=at(2, 22, 10),
    )
    report = await scheduler.sweep(now=at(5, 23))
    assert report.released_slot_ids == []
    assert (await SlotRegistry(test_db).get(owned_slot.id)).consecutive_missed == 3


async def test_skip_exempts_occurrences_and_counting_restarts(
    scheduler, owned_slot, test_db, settings,
):
    manager = SkipRequestManager(test_db, settings)
    request = await manager.submit("u1", 3, "travel", now=at(0, 13))
    await manager.decide(request.id, True, now=at(0, 14))  # until day 3, 14:00

    during = await scheduler.sweep(now=at(2, 23))
    assert during.exemptions_recorded == 3
    assert during.misses_recorded == 0

    after = await scheduler.sweep(now=at(6, 23))
    assert after.skips_expired == 1
    # day 3 is the transition day; days 4-6 count
    assert after.misses_recorded == 3
    slot = await SlotRegistry(test_db).get(owned_slot.id)
    assert slot.status == SlotStatus.ACTIVE.value
    assert slot.consecutive_missed == 3


async def test_approval_forgives_misses_the_sweep_had_not_reached(
    scheduler, owned_slot, test_db, settings,
):
    manager = SkipRequestManager(test_db, settings)
    request = await manager.submit("u1", 1, "family", now=at(4, 9))
    await manager.decide(request.id, True, now=at(4, 10))

    report = await scheduler.sweep(now=at(4, 10, 5))
    assert report.misses_recorded == 0
    slot = await SlotRegistry(test_db).get(owned_slot.id)
    assert slot.consecutive_missed == 0
    assert slot.status == SlotStatus.SKIPPED.value


async def test_approval_ends_at_zero_whether_or_not_the_sweep_ran_first(
    scheduler, owned_slot, test_db, settings,
):
    await scheduler.sweep(now=at(4, 9))
    assert (await SlotRegistry(test_db).get(owned_slot.id)).consecutive_missed == 4

    manager = SkipRequestManager(test_db, settings)
    request = await manager.submit("u1", 1, "family", now=at(4, 9))
    await manager.decide(request.id, True, now=at(4, 10))
    await scheduler.sweep(now=at(4, 10, 5))
    assert (await SlotRegistry(test_db).get(owned_slot.id)).consecutive_missed == 0


async def test_lookback_bounds_history_after_outage(
    scheduler, owned_slot, test_db, settings,
):
    report = await scheduler.sweep(now=at(30, 23))
    assert report.misses_recorded == settings.sweep_lookback_days
    assert report.released_slot_ids == [owned_slot.id]


async def test_failing_slot_does_not_abort_sweep(
    scheduler, owned_slot, test_db, settings, monkeypatch,
):
    other = await slot_at(test_db, 6)
    await SlotAssignmentService(test_db, settings).assign(
        "u2", other.id, now=at(0, 1),
    )
    original = AutoReleaseScheduler._process_slot

    async def flaky(self, slot_id, now, report):
        if slot_id == owned_slot.id:
            raise RuntimeError("boom")
        await original(self, slot_id, now, report)

    monkeypatch.setattr(AutoReleaseScheduler, "_process_slot", flaky)
    report = await scheduler.sweep(now=at(4, 23))
    assert report.failed_slot_ids == [owned_slot.id]
    assert report.released_slot_ids == [other.id]


async def test_overlapping_sweep_is_skipped(scheduler):
    async with scheduler._lock:
        assert scheduler.running
        assert await scheduler.sweep() is None
