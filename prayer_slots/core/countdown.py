"""Countdown — time remaining until a slot's next daily occurrence.

Invariants:
    - time_until_next_occurrence is PURE: no clock reads, "now" is a parameter
    - Result is never negative; non-active slots always yield zero
    - Occurrence starting exactly at "now" counts as passed (next one is tomorrow)
    - Remaining time is elapsed real time, so a DST change in between is honoured

Design Decisions:
    - Built in now's own timezone: the caller converts to the slot's local zone,
      so the same function works for UTC tests and local display
"""

from datetime import datetime, timedelta, timezone

from prayer_slots.core.domain_types import SlotStatus, TimeRange


def time_until_next_occurrence(
    time_range: TimeRange,
    now: datetime,
    status: SlotStatus = SlotStatus.ACTIVE,
) -> timedelta:
    """Time until the window next starts, rolling over to tomorrow when passed."""
    if status != SlotStatus.ACTIVE:
        return timedelta(0)
    target = datetime.combine(now.date(), time_range.start, tzinfo=now.tzinfo)
    if target <= now:
        target = datetime.combine(
            now.date() + timedelta(days=1), time_range.start, tzinfo=now.tzinfo,
        )
    # aware datetimes sharing a tzinfo subtract as wall clock; compare real instants
    remaining = target.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(remaining, timedelta(0))


def countdown_parts(remaining: timedelta) -> tuple[int, int, int]:
    """Split a countdown into (hours, minutes, seconds), dropping microseconds."""
    total = max(int(remaining.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return hours, minutes, seconds
