"""Slot Lifecycle — the single state machine for slot ownership and skip rules.

Invariants:
    - ALLOWED_TRANSITIONS is the single source of truth for legal status changes
    - RELEASED is transient: check_transition maps it onto FREE for persistence
    - A skipped slot whose skip_until has passed is effectively ACTIVE (lazy expiry)
    - Skip length bounded to [min_days, max_days] (defaults 1–30)

Design Decisions:
    - Pure functions returning values or raising domain errors; services own the writes
    - Only one skip request may be open per owner: pending, or approved and unexpired
"""

from datetime import datetime

from prayer_slots.core.clock import ensure_utc
from prayer_slots.core.domain_types import SlotStatus, SkipRequestStatus
from prayer_slots.core.errors import InvalidRangeError, InvalidTransitionError


AUTO_RELEASE_THRESHOLD: int = 5
SKIP_MIN_DAYS: int = 1
SKIP_MAX_DAYS: int = 30

ALLOWED_TRANSITIONS: dict[SlotStatus, frozenset[SlotStatus]] = {
    SlotStatus.FREE: frozenset({SlotStatus.ACTIVE}),
    SlotStatus.ACTIVE: frozenset({
        SlotStatus.SKIPPED, SlotStatus.RELEASED, SlotStatus.FREE,
    }),
    SlotStatus.SKIPPED: frozenset({
        SlotStatus.ACTIVE, SlotStatus.RELEASED, SlotStatus.FREE,
    }),
    SlotStatus.RELEASED: frozenset({SlotStatus.FREE}),
}


def check_transition(current: SlotStatus, target: SlotStatus) -> SlotStatus:
    """Validate current -> target and return the status to persist."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)
    if target == SlotStatus.RELEASED:
        return SlotStatus.FREE
    return target


def effective_status(
    status: SlotStatus, skip_until: datetime | None, now: datetime,
) -> SlotStatus:
    """Status as observed at now, applying lazy skip expiry."""
    if status == SlotStatus.SKIPPED:
        if skip_until is None or ensure_utc(skip_until) <= ensure_utc(now):
            return SlotStatus.ACTIVE
    return status


def should_auto_release(
    consecutive_missed: int, threshold: int = AUTO_RELEASE_THRESHOLD,
) -> bool:
    return consecutive_missed >= threshold


def validate_skip_days(
    days: int, min_days: int = SKIP_MIN_DAYS, max_days: int = SKIP_MAX_DAYS,
) -> int:
    if not min_days <= days <= max_days:
        raise InvalidRangeError(days, min_days, max_days)
    return days


def is_open_skip_request(
    status: SkipRequestStatus,
    effective_until: datetime | None,
    now: datetime,
) -> bool:
    """Pending, or approved and still in effect."""
    if status == SkipRequestStatus.PENDING:
        return True
    if status == SkipRequestStatus.APPROVED and effective_until is not None:
        return ensure_utc(effective_until) > ensure_utc(now)
    return False
