"""Error Hierarchy — typed, categorized exceptions for all slot lifecycle failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable by the caller; infrastructure errors are critical
    - to_response() produces the REST envelope consumed by the global handlers
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with PrayerSlotError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - ChangeFailedError carries old_slot_released/old_slot_id in details so the client
      can re-prompt for another slot instead of guessing what happened
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    owner_id: str | None = None
    slot_id: int | None = None
    request_id: int | None = None
    debug_info: dict[str, Any] | None = None


class PrayerSlotError(Exception):
    """Base exception for all prayer slot errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "owner_id": self.context.owner_id,
                    "slot_id": self.context.slot_id,
                    "request_id": self.context.request_id,
                },
                "details": self.context.debug_info or {},
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ConflictError(PrayerSlotError):
    """Slot state did not match the caller's expected precondition."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ChangeFailedError(PrayerSlotError):
    """Slot change released the old slot but could not claim the new one."""
    def __init__(
        self, old_slot_id: int, new_slot_id: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.slot_id = new_slot_id
        ctx.debug_info = {
            "old_slot_released": True,
            "old_slot_id": old_slot_id,
            "new_slot_id": new_slot_id,
        }
        super().__init__(
            f"Slot {new_slot_id} could not be claimed; previous slot "
            f"{old_slot_id} was already released. Pick another free slot.",
            "CHANGE_FAILED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.old_slot_id = old_slot_id
        self.new_slot_id = new_slot_id


class InvalidTransitionError(PrayerSlotError):
    """Requested slot status change is not part of the lifecycle."""
    def __init__(self, current: str, target: str, context: ErrorContext | None = None):
        super().__init__(
            f"Slot cannot move from '{current}' to '{target}'",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current = current
        self.target = target


class NoActiveSlotError(PrayerSlotError):
    """Owner holds no slot."""
    def __init__(self, owner_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.owner_id = owner_id
        super().__init__(
            f"Owner '{owner_id}' does not hold a prayer slot",
            "NO_ACTIVE_SLOT", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx, 404,
        )


class OutsideWindowError(PrayerSlotError):
    """Attendance confirmed outside every occurrence's grace window."""
    def __init__(
        self, slot_label: str, grace_minutes: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Attendance can only be confirmed during {slot_label} "
            f"(±{grace_minutes} min)",
            "OUTSIDE_WINDOW", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 422,
        )


class InvalidRangeError(PrayerSlotError):
    """Skip days outside the allowed range."""
    def __init__(
        self, days: int, min_days: int, max_days: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Skip must be between {min_days} and {max_days} days, got {days}",
            "INVALID_RANGE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 409,
        )
        self.days = days


class DuplicatePendingError(PrayerSlotError):
    """Owner already has an open skip request."""
    def __init__(self, owner_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.owner_id = owner_id
        super().__init__(
            "A skip request is already pending or in effect",
            "DUPLICATE_PENDING", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )


class ResourceNotFoundError(PrayerSlotError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(PrayerSlotError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
