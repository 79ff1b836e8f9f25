"""Attendance Schemas — confirmation request, records, and metrics."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from prayer_slots.schemas.slot import OwnerRequest


class ConfirmAttendanceRequest(OwnerRequest):
    """at defaults to server time; must lie within the grace margin of it."""
    at: datetime | None = None


class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slot_id: int
    owner_id: str
    occurrence_date: date
    attended: bool
    exempt: bool
    confirmed_at: datetime | None = None


class AttendanceMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    days_attended: int
    days_missed: int
    days_exempt: int
    attendance_rate: float
    last_attended_date: date | None = None


class AttendanceHistoryResponse(BaseModel):
    owner_id: str
    records: list[AttendanceRecordResponse]
    metrics: AttendanceMetricsResponse


class AttendanceSummaryResponse(BaseModel):
    """Admin-wide attendance totals; exempt occurrences are outside the rate."""
    total_sessions: int
    attended_sessions: int
    missed_sessions: int
    exempt_sessions: int
    overall_attendance_rate: float
    active_users: int
    since: date | None = None
    last_updated: datetime
