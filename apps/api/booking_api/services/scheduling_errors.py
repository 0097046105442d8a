"""Typed scheduling errors.

Every failure the scheduler reports is scoped to a single request. ``scope``
tells the caller what to try next:

- ``request``: the input itself is wrong (fix and resend)
- ``date``: the whole date is closed (pick another date)
- ``slot``: this staff/time is taken (pick another staff or time)
"""

from typing import Any

from booking_api.db.enums import UnavailableReason


class SchedulingError(Exception):
    """Base exception for scheduling errors."""

    code = "scheduling_error"
    status_code = 400
    scope = "request"
    retryable = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.code,
            "detail": self.message,
            "scope": self.scope,
            "retryable": self.retryable,
        }
        for key, value in self.details.items():
            payload[key] = value if isinstance(value, (int, float, bool)) else str(value)
        return payload


class BookingValidationError(SchedulingError):
    """Missing or malformed booking input."""

    code = "validation_error"
    status_code = 400


class NotFoundError(SchedulingError):
    """Tenant, service, customer, staff or booking does not exist."""

    code = "not_found"
    status_code = 404


class OutsideBusinessHoursError(SchedulingError):
    """Requested interval is outside the tenant's opening hours."""

    code = "outside_business_hours"
    status_code = 422
    scope = "date"


class DateBlockedError(SchedulingError):
    """Requested date is blocked tenant-wide."""

    code = "date_blocked"
    status_code = 422
    scope = "date"


class StaffInactiveError(SchedulingError):
    """Staff member is deactivated."""

    code = "staff_inactive"
    status_code = 409
    scope = "slot"


class StaffNotQualifiedError(SchedulingError):
    """Staff member has no capability mapping for the service."""

    code = "staff_not_qualified"
    status_code = 409
    scope = "slot"


class StaffOnLeaveError(SchedulingError):
    """Staff member is on leave that day."""

    code = "staff_on_leave"
    status_code = 409
    scope = "slot"


class OutsideWorkingHoursError(SchedulingError):
    """Interval is outside the staff member's working hours."""

    code = "outside_working_hours"
    status_code = 409
    scope = "slot"


class TimeConflictError(SchedulingError):
    """Interval (with buffer) overlaps an existing booking for the staff."""

    code = "time_conflict"
    status_code = 409
    scope = "slot"


class QuotaExceededError(SchedulingError):
    """Staff member has no home-visit quota left for the date."""

    code = "quota_exceeded"
    status_code = 409
    scope = "slot"


class SlotUnavailableError(SchedulingError):
    """Slot was taken or became ineligible at commit time."""

    code = "slot_unavailable"
    status_code = 409
    scope = "slot"

    def __init__(
        self,
        message: str = "This time slot is no longer available",
        reason: UnavailableReason | str | None = None,
        **details: Any,
    ) -> None:
        if isinstance(reason, UnavailableReason):
            reason = reason.value
        super().__init__(message, reason=reason, **details)
        self.reason = reason


class InvalidStatusTransitionError(SchedulingError):
    """Booking status does not allow the requested change."""

    code = "invalid_status_transition"
    status_code = 409


class SchedulingTimeoutError(SchedulingError):
    """Database did not answer in time; safe to retry."""

    code = "scheduling_timeout"
    status_code = 503
    retryable = True


# Single-candidate rejection reason -> error raised at booking creation
REASON_ERRORS: dict[str, type[SchedulingError]] = {
    UnavailableReason.STAFF_INACTIVE.value: StaffInactiveError,
    UnavailableReason.ON_LEAVE.value: StaffOnLeaveError,
    UnavailableReason.OUTSIDE_WORKING_HOURS.value: OutsideWorkingHoursError,
    UnavailableReason.TIME_CONFLICT.value: TimeConflictError,
    UnavailableReason.QUOTA_EXCEEDED.value: QuotaExceededError,
}
