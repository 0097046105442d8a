"""Scheduling enums."""

from enum import Enum


class LocationType(str, Enum):
    """Where a service can be delivered."""

    ON_PREMISE = "on_premise"
    HOME_VISIT = "home_visit"
    BOTH = "both"

    def allows(self, is_home_visit: bool) -> bool:
        if self == LocationType.BOTH:
            return True
        return (self == LocationType.HOME_VISIT) == is_home_visit


class BookingStatus(str, Enum):
    """
    Booking lifecycle status.

    Flow: pending → confirmed → completed
              ↘ cancelled
    """

    PENDING = "pending"  # Created, awaiting payment or manual confirmation
    CONFIRMED = "confirmed"
    COMPLETED = "completed"  # Service delivered
    CANCELLED = "cancelled"


# Statuses that occupy a staff member's calendar
LIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

ALLOWED_STATUS_TRANSITIONS: dict[str, set[str]] = {
    BookingStatus.PENDING.value: {
        BookingStatus.CONFIRMED.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.CONFIRMED.value: {
        BookingStatus.COMPLETED.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.COMPLETED.value: set(),
    BookingStatus.CANCELLED.value: set(),
}


class RecurringPattern(str, Enum):
    """Recurrence of a blocked date."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class UnavailableReason(str, Enum):
    """Why a staff member cannot take a requested slot."""

    STAFF_INACTIVE = "staff_inactive"
    ON_LEAVE = "on_leave"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    TIME_CONFLICT = "time_conflict"
    QUOTA_EXCEEDED = "quota_exceeded"


class BookingEventType(str, Enum):
    """State changes recorded for downstream dispatchers (notifications, invoicing)."""

    CREATED = "created"
    STAFF_ASSIGNED = "staff_assigned"
    STAFF_UNASSIGNED = "staff_unassigned"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Day keys used in the business-hours schedule, indexed by day_of_week (Sunday=0)
DAY_KEYS = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
