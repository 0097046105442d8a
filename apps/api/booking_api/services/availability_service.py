"""Staff availability resolution.

Composes the calendar, staff schedules, capabilities, conflict and quota
checks into a ranked candidate list for a requested booking.

Checks per candidate, first failure wins:
- staff inactive
- staff on leave for the local date
- outside working hours (day off, outside [start, end), or overlapping a break)
- buffered interval [start - buffer, end + buffer) overlaps a live booking
- no home-visit quota left (home visits only)
"""

from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from booking_api.core.config import settings
from booking_api.db.enums import UnavailableReason
from booking_api.db.models import Service, Staff
from booking_api.services import (
    calendar_service,
    capability_service,
    catalog_service,
    conflict_service,
    quota_service,
    staff_schedule_service,
    tenant_service,
)
from booking_api.services.scheduling_errors import BookingValidationError


# =============================================================================
# Types
# =============================================================================

class StaffAvailability(NamedTuple):
    """One candidate staff member for a requested slot."""
    staff_id: UUID
    staff_name: str
    is_available: bool
    unavailable_reason: str | None
    home_visit_count: int
    max_home_visits: int | None


class TimeSlot(NamedTuple):
    """Bookable slot and the staff who could take it."""
    start: datetime
    end: datetime
    staff_ids: list[UUID]


def sort_candidates(candidates: list[StaffAvailability]) -> list[StaffAvailability]:
    """Available first, then least-loaded, then by name."""
    return sorted(
        candidates,
        key=lambda c: (not c.is_available, c.home_visit_count, c.staff_name.lower()),
    )


def resolve_buffer(service: Service, is_home_visit: bool, buffer_minutes: int | None) -> int:
    buffer = service.buffer_for(is_home_visit) if buffer_minutes is None else buffer_minutes
    if buffer < 0:
        raise BookingValidationError("buffer_minutes must not be negative")
    return buffer


def resolve_duration(service: Service, duration_minutes: int | None) -> int:
    duration = service.duration_minutes if duration_minutes is None else duration_minutes
    if duration <= 0:
        raise BookingValidationError("duration_minutes must be positive")
    return duration


# =============================================================================
# Single candidate
# =============================================================================

def evaluate_staff(
    db: Session,
    tenant_id: UUID,
    staff: Staff,
    service: Service,
    start: datetime,
    duration_minutes: int,
    buffer_minutes: int,
    is_home_visit: bool,
    tz: ZoneInfo | None = None,
    exclude_booking_id: UUID | None = None,
) -> StaffAvailability:
    """Run every availability check for one staff member (capability is assumed)."""
    if tz is None:
        tz = calendar_service.get_tenant_timezone(db, tenant_id)
    start = calendar_service.normalize_instant(start, tz)
    end = start + timedelta(minutes=duration_minutes)
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    local_date = local_start.date()

    count = quota_service.home_visit_count(
        db, tenant_id, staff.id, service.id, local_date,
        tz=tz, exclude_booking_id=exclude_booking_id,
    )

    def result(reason: UnavailableReason | None) -> StaffAvailability:
        return StaffAvailability(
            staff_id=staff.id,
            staff_name=staff.name,
            is_available=reason is None,
            unavailable_reason=reason.value if reason else None,
            home_visit_count=count,
            max_home_visits=service.daily_quota_per_staff,
        )

    if not staff.is_active:
        return result(UnavailableReason.STAFF_INACTIVE)

    if staff_schedule_service.find_leave(db, tenant_id, staff.id, local_date):
        return result(UnavailableReason.ON_LEAVE)

    window = staff_schedule_service.get_working_window(db, tenant_id, staff.id, local_date)
    if not staff_schedule_service.within_working_hours(window, local_start, local_end):
        return result(UnavailableReason.OUTSIDE_WORKING_HOURS)

    buffer = timedelta(minutes=buffer_minutes)
    if conflict_service.has_conflict(
        db, tenant_id, staff.id, start - buffer, end + buffer,
        exclude_booking_id=exclude_booking_id,
    ):
        return result(UnavailableReason.TIME_CONFLICT)

    if is_home_visit:
        remaining = quota_service.remaining_quota(
            db, tenant_id, staff.id, service, local_date,
            tz=tz, exclude_booking_id=exclude_booking_id,
        )
        if remaining is not None and remaining <= 0:
            return result(UnavailableReason.QUOTA_EXCEEDED)

    return result(None)


# =============================================================================
# Candidate listing
# =============================================================================

def list_available_staff(
    db: Session,
    tenant_id: UUID,
    service_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int | None = None,
    buffer_minutes: int | None = None,
    is_home_visit: bool = True,
    exclude_booking_id: UUID | None = None,
) -> list[StaffAvailability]:
    """
    Every staff member mapped to the service, annotated and ranked.

    Raises NotFoundError for an unknown tenant or service. No capable staff
    is a valid, empty result.
    """
    tenant_service.get_tenant(db, tenant_id)
    service = catalog_service.get_service(db, tenant_id, service_id)
    duration = resolve_duration(service, duration_minutes)
    buffer = resolve_buffer(service, is_home_visit, buffer_minutes)
    tz = calendar_service.get_tenant_timezone(db, tenant_id)

    candidates = [
        evaluate_staff(
            db, tenant_id, staff, service, scheduled_at, duration, buffer,
            is_home_visit, tz=tz, exclude_booking_id=exclude_booking_id,
        )
        for staff in capability_service.list_capable_staff(db, tenant_id, service.id)
    ]
    return sort_candidates(candidates)


# =============================================================================
# Slot listing
# =============================================================================

def get_available_slots(
    db: Session,
    tenant_id: UUID,
    service_id: UUID,
    on_date: date,
    is_home_visit: bool = False,
    staff_id: UUID | None = None,
    slot_interval_minutes: int | None = None,
) -> list[TimeSlot]:
    """
    Walk the day's open window and list bookable slots.

    Staff filtering applies when a staff member is requested, for home
    visits, and for services that require staff assignment. Otherwise
    every future slot in the window is returned.
    """
    tenant_service.get_tenant(db, tenant_id)
    service = catalog_service.get_service(db, tenant_id, service_id)
    if not service.location_type_allows(is_home_visit):
        return []

    if calendar_service.is_blocked(db, tenant_id, on_date):
        return []
    window = calendar_service.get_open_window(db, tenant_id, on_date)
    if window is None:
        return []

    if staff_id is not None:
        staff = catalog_service.get_staff(db, tenant_id, staff_id)
        if not capability_service.can_perform(db, tenant_id, staff.id, service.id):
            return []
        staff_members = [staff]
    else:
        staff_members = capability_service.list_capable_staff(db, tenant_id, service.id)
    # Without a staff requirement every open slot is bookable; staff_ids is informational
    staff_required = staff_id is not None or service.needs_staff(is_home_visit)
    if staff_required and not staff_members:
        return []

    tz = calendar_service.get_tenant_timezone(db, tenant_id)
    duration = resolve_duration(service, None)
    buffer = resolve_buffer(service, is_home_visit, None)
    step = timedelta(minutes=slot_interval_minutes or settings.SLOT_INTERVAL_MINUTES)
    length = timedelta(minutes=duration)
    opens, closes = window
    now = datetime.now(timezone.utc)

    slots: list[TimeSlot] = []
    current = opens
    while current + length <= closes:
        if current > now:
            available = [
                staff.id
                for staff in staff_members
                if evaluate_staff(
                    db, tenant_id, staff, service, current, duration, buffer,
                    is_home_visit, tz=tz,
                ).is_available
            ]
            if available or not staff_required:
                slots.append(TimeSlot(start=current, end=current + length, staff_ids=available))
        current += step
    return slots
