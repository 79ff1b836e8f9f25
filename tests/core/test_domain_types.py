"""Tests for TimeRange and daily_ranges — labels, durations, and day partitioning."""

from datetime import time, timedelta

import pytest

from prayer_slots.core.domain_types import (
    EventKind, SkipRequestStatus, SlotStatus, TimeRange, daily_ranges,
)


def test_label_uses_en_dash():
    assert TimeRange(time(22, 0), time(22, 30)).label == "22:00–22:30"


def test_window_ending_at_midnight_crosses_midnight():
    last = TimeRange(time(23, 30), time(0, 0))
    assert last.crosses_midnight
    assert last.duration == timedelta(minutes=30)


def test_regular_window_duration():
    assert TimeRange(time(10, 0), time(10, 30)).duration == timedelta(minutes=30)
    assert not TimeRange(time(10, 0), time(10, 30)).crosses_midnight


def test_daily_ranges_default_is_48_back_to_back_half_hours():
    ranges = daily_ranges()
    assert len(ranges) == 48
    assert ranges[0].label == "00:00–00:30"
    assert ranges[-1].label == "23:30–00:00"
    for current, following in zip(ranges, ranges[1:]):
        assert current.end == following.start


def test_daily_ranges_rejects_lengths_not_dividing_a_day():
    with pytest.raises(ValueError):
        daily_ranges(7)
    with pytest.raises(ValueError):
        daily_ranges(0)


def test_enum_values_are_wire_strings():
    assert SlotStatus.SKIPPED.value == "skipped"
    assert SkipRequestStatus.PENDING.value == "pending"
    assert EventKind.SLOT_AUTO_RELEASED.value == "slot-auto-released"
