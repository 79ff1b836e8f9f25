"""Attendance Stats — streak and rate metrics per owner, plus the admin-wide summary.

Invariants:
    - Exempt (skip-covered) occurrences neither extend nor break a streak
    - attendance_rate is a percentage of counted occurrences, rounded to 2 decimals, 0.0 when nothing counted
    - The summary counts exempt occurrences separately and leaves them out of the rate
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class AttendanceEntry:
    occurrence_date: date
    attended: bool
    exempt: bool = False


@dataclass(frozen=True)
class AttendanceMetrics:
    current_streak: int
    longest_streak: int
    days_attended: int
    days_missed: int
    days_exempt: int
    attendance_rate: float
    last_attended_date: date | None


def compute_metrics(entries: list[AttendanceEntry]) -> AttendanceMetrics:
    ordered = sorted(entries, key=lambda e: e.occurrence_date)
    counted = [e for e in ordered if not e.exempt]

    longest = run = 0
    for entry in counted:
        run = run + 1 if entry.attended else 0
        longest = max(longest, run)

    current = 0
    for entry in reversed(counted):
        if not entry.attended:
            break
        current += 1

    attended = sum(1 for e in counted if e.attended)
    missed = len(counted) - attended
    rate = round(attended / len(counted) * 100, 2) if counted else 0.0
    last = max((e.occurrence_date for e in counted if e.attended), default=None)

    return AttendanceMetrics(
        current_streak=current,
        longest_streak=longest,
        days_attended=attended,
        days_missed=missed,
        days_exempt=len(ordered) - len(counted),
        attendance_rate=rate,
        last_attended_date=last,
    )


@dataclass(frozen=True)
class AttendanceSummary:
    total_sessions: int
    attended_sessions: int
    missed_sessions: int
    exempt_sessions: int
    overall_attendance_rate: float
    active_users: int


def summarize_attendance(
    entries: list[tuple[str, AttendanceEntry]],
) -> AttendanceSummary:
    """Totals across owners; entries are (owner_id, entry) pairs."""
    counted = [e for _, e in entries if not e.exempt]
    attended = sum(1 for e in counted if e.attended)
    rate = round(attended / len(counted) * 100, 2) if counted else 0.0
    return AttendanceSummary(
        total_sessions=len(counted),
        attended_sessions=attended,
        missed_sessions=len(counted) - attended,
        exempt_sessions=len(entries) - len(counted),
        overall_attendance_rate=rate,
        active_users=len({owner_id for owner_id, _ in entries}),
    )
