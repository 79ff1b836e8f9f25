"""Occurrences — maps a daily TimeRange onto concrete calendar-day windows.

Invariants:
    - An occurrence is identified by the local calendar date its window STARTS on
    - Windows are computed in the slot timezone and returned as UTC instants
    - Grace extends both edges of a window when confirming attendance
    - An occurrence has elapsed only once end + grace <= now (late confirmations
      must still be possible while the sweep is looking)

Design Decisions:
    - find_occurrence checks yesterday/today/tomorrow: a window crossing midnight
      (23:30–00:00) plus grace can contain instants on either neighbouring date
"""

from datetime import date, datetime, timedelta, timezone, tzinfo

from prayer_slots.core.clock import ensure_utc
from prayer_slots.core.domain_types import TimeRange


def occurrence_window(
    time_range: TimeRange, occurrence_date: date, tz: tzinfo,
) -> tuple[datetime, datetime]:
    """(start, end) of the occurrence on occurrence_date, as UTC."""
    start = datetime.combine(occurrence_date, time_range.start, tzinfo=tz)
    end = start + time_range.duration
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def find_occurrence(
    time_range: TimeRange, at: datetime, tz: tzinfo, grace: timedelta,
) -> date | None:
    """Date of the occurrence whose grace-extended window contains at."""
    at = ensure_utc(at)
    local_day = at.astimezone(tz).date()
    for candidate in (local_day, local_day - timedelta(days=1), local_day + timedelta(days=1)):
        start, end = occurrence_window(time_range, candidate, tz)
        if start - grace <= at <= end + grace:
            return candidate
    return None


def elapsed_occurrences(
    time_range: TimeRange,
    since: datetime,
    now: datetime,
    tz: tzinfo,
    grace: timedelta,
) -> list[date]:
    """Occurrences starting at/after since whose grace window closed by now, oldest first."""
    since = ensure_utc(since)
    now = ensure_utc(now)
    if now <= since:
        return []
    first = since.astimezone(tz).date() - timedelta(days=1)
    last = now.astimezone(tz).date()
    dates = []
    day = first
    while day <= last:
        start, end = occurrence_window(time_range, day, tz)
        if start >= since and end + grace <= now:
            dates.append(day)
        day += timedelta(days=1)
    return dates


def window_overlaps(
    window: tuple[datetime, datetime],
    period_start: datetime,
    period_end: datetime,
) -> bool:
    """True when [window) and [period_start, period_end) intersect."""
    start, end = window
    return start < ensure_utc(period_end) and end > ensure_utc(period_start)
