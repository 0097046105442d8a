"""SQLAlchemy ORM models."""

from booking_api.db.models.tenants import Customer, Tenant
from booking_api.db.models.catalog import Service
from booking_api.db.models.staff import (
    Staff,
    StaffCapability,
    StaffLeave,
    StaffScheduleEntry,
)
from booking_api.db.models.calendar import BlockedDate, BusinessHours
from booking_api.db.models.bookings import Booking, BookingEvent, StaffDayLedger

__all__ = [
    "BlockedDate",
    "Booking",
    "BookingEvent",
    "BusinessHours",
    "Customer",
    "Service",
    "Staff",
    "StaffCapability",
    "StaffDayLedger",
    "StaffLeave",
    "StaffScheduleEntry",
    "Tenant",
]
