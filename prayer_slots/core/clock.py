"""Clock Helpers — UTC normalization shared by core rules and services.

Invariants:
    - Every instant stored or compared is timezone-aware UTC
    - Naive datetimes are interpreted as UTC (SQLite drops tzinfo on round-trip)
"""

from datetime import datetime, timezone, tzinfo, time, timedelta


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Tag naive values as UTC and convert aware values to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_midnight_after(instant: datetime, tz: tzinfo) -> datetime:
    """Start of the local calendar day following instant, as UTC."""
    local_day = ensure_utc(instant).astimezone(tz).date()
    return datetime.combine(
        local_day + timedelta(days=1), time(), tzinfo=tz,
    ).astimezone(timezone.utc)
