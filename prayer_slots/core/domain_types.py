"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SlotId, OwnerId, SkipRequestId wrap primitives: never pass bare ints/strs in domain logic
    - All valid states encoded as Enums: no raw string matching
    - TimeRange has no date component; end <= start means the window ends the next day

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to String columns without custom encoders
    - SlotStatus.RELEASED exists for the state machine and events only; it is never
      persisted (auto-release collapses released -> free in one write)
"""

from dataclasses import dataclass
from datetime import time, timedelta, datetime, date
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

SlotId = NewType("SlotId", int)
OwnerId = NewType("OwnerId", str)
SkipRequestId = NewType("SkipRequestId", int)


# ─── Enums ───────────────────────────────────────────────────────

class SlotStatus(str, Enum):
    """Slot lifecycle states — maps to DB `status` column (except RELEASED)."""
    FREE = "free"
    ACTIVE = "active"
    SKIPPED = "skipped"
    RELEASED = "released"


class SkipRequestStatus(str, Enum):
    """Skip request lifecycle — pending until an admin decides."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EventKind(str, Enum):
    """Notification events consumed by the external dispatcher."""
    SLOT_ASSIGNED = "slot-assigned"
    SLOT_AUTO_RELEASED = "slot-auto-released"
    SKIP_REQUEST_DECIDED = "skip-request-decided"


# ─── Time Range ──────────────────────────────────────────────────

@dataclass(frozen=True)
class TimeRange:
    """Daily local clock window [start, end)."""
    start: time
    end: time

    @property
    def crosses_midnight(self) -> bool:
        return self.end <= self.start

    @property
    def duration(self) -> timedelta:
        start = datetime.combine(date.min, self.start)
        end = datetime.combine(date.min, self.end)
        if self.crosses_midnight:
            end += timedelta(days=1)
        return end - start

    @property
    def label(self) -> str:
        """Dashboard format with an en dash: "22:00–22:30"."""
        return f"{self.start:%H:%M}–{self.end:%H:%M}"


def daily_ranges(length_minutes: int = 30) -> list[TimeRange]:
    """Partition the day into back-to-back windows of length_minutes."""
    if length_minutes <= 0 or (24 * 60) % length_minutes:
        raise ValueError(
            f"length_minutes must divide a day evenly, got {length_minutes}",
        )
    ranges = []
    for offset in range(0, 24 * 60, length_minutes):
        start = datetime.combine(date.min, time()) + timedelta(minutes=offset)
        end = start + timedelta(minutes=length_minutes)
        ranges.append(TimeRange(start=start.time(), end=end.time()))
    return ranges
