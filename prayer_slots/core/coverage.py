"""Slot Coverage — how much of the day has someone praying, and whether right now does.

Invariants:
    - A slot is covered only when its observed status is active; a skipped slot has
      an owner but nobody praying
    - coverage_rate is a percentage of all slots, rounded to 2 decimals
    - The current slot is the one whose window [start, end) contains now; a current
      slot that is not covered needs coverage
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from prayer_slots.core.clock import ensure_utc
from prayer_slots.core.domain_types import SlotId, SlotStatus, TimeRange
from prayer_slots.core.occurrence import occurrence_window


@dataclass(frozen=True)
class CoverageEntry:
    slot_id: SlotId
    time_range: TimeRange
    status: SlotStatus  # observed, lazy skip expiry already applied


@dataclass(frozen=True)
class SlotCoverage:
    total_slots: int
    covered_slots: int
    skipped_slots: int
    free_slots: int
    coverage_rate: float
    current_slot_id: SlotId | None
    current_slot_time: str | None
    needs_coverage: bool


def current_entry(
    entries: list[CoverageEntry], now: datetime, tz: tzinfo,
) -> CoverageEntry | None:
    """Entry whose half-open window [start, end) contains now."""
    now = ensure_utc(now)
    today = now.astimezone(tz).date()
    for entry in entries:
        for day in (today, today - timedelta(days=1)):
            start, end = occurrence_window(entry.time_range, day, tz)
            if start <= now < end:
                return entry
    return None


def compute_coverage(
    entries: list[CoverageEntry], now: datetime, tz: tzinfo,
) -> SlotCoverage:
    covered = sum(1 for e in entries if e.status == SlotStatus.ACTIVE)
    skipped = sum(1 for e in entries if e.status == SlotStatus.SKIPPED)
    current = current_entry(entries, now, tz)
    return SlotCoverage(
        total_slots=len(entries),
        covered_slots=covered,
        skipped_slots=skipped,
        free_slots=len(entries) - covered - skipped,
        coverage_rate=round(covered / len(entries) * 100, 2) if entries else 0.0,
        current_slot_id=current.slot_id if current else None,
        current_slot_time=current.time_range.label if current else None,
        needs_coverage=current is not None and current.status != SlotStatus.ACTIVE,
    )
