"""Tests for the error hierarchy — codes, HTTP mapping, response envelope."""

from prayer_slots.core.errors import (
    ChangeFailedError, ConflictError, DatabaseError, DuplicatePendingError,
    ErrorContext, NoActiveSlotError, OutsideWindowError, PrayerSlotError,
    ResourceNotFoundError,
)


def test_conflict_maps_to_409():
    err = ConflictError("lost the race", ErrorContext(owner_id="u1", slot_id=3))
    assert err.code == "CONFLICT"
    assert err.http_status == 409
    body = err.to_response()["error"]
    assert body["context"]["owner_id"] == "u1"
    assert body["context"]["slot_id"] == 3
    assert body["details"] == {}


def test_change_failed_reports_released_old_slot():
    err = ChangeFailedError(4, 9, ErrorContext(owner_id="u1"))
    body = err.to_response()["error"]
    assert body["code"] == "CHANGE_FAILED"
    assert body["details"]["old_slot_released"] is True
    assert body["details"]["old_slot_id"] == 4
    assert err.new_slot_id == 9
    assert err.http_status == 409


def test_status_codes_per_error():
    assert NoActiveSlotError("u1").http_status == 404
    assert ResourceNotFoundError("Slot", "99").http_status == 404
    assert OutsideWindowError("22:00–22:30", 15).http_status == 422
    assert DuplicatePendingError("u1").http_status == 409
    assert DatabaseError("boom", "commit").http_status == 503


def test_no_active_slot_sets_owner_in_context():
    err = NoActiveSlotError("u7")
    assert err.context.owner_id == "u7"
    assert "u7" in err.message


def test_all_errors_share_the_base_class():
    for err in (
        ConflictError("x"), NoActiveSlotError("u"), DatabaseError("x", "q"),
    ):
        assert isinstance(err, PrayerSlotError)
