"""Booking scheduler - creation, staff assignment and lifecycle.

Handles:
- Request validation (time window, duration, location type)
- Blocked-date and business-hours checks
- Staff selection (caller-supplied, auto-assigned, or left unassigned)
- Race-safe reservation through the per-staff day ledger
- Confirm / complete / cancel transitions with history events

Every mutation commits once or rolls back entirely.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from booking_api.core.config import settings
from booking_api.core.structured_logging import build_log_context
from booking_api.db.enums import (
    ALLOWED_STATUS_TRANSITIONS,
    LIVE_BOOKING_STATUSES,
    BookingEventType,
    BookingStatus,
    UnavailableReason,
)
from booking_api.db.models import Booking, Service, Staff
from booking_api.services import (
    availability_service,
    booking_history_service,
    calendar_service,
    capability_service,
    catalog_service,
    slot_ledger_service,
    tenant_service,
)
from booking_api.services.scheduling_errors import (
    REASON_ERRORS,
    BookingValidationError,
    DateBlockedError,
    InvalidStatusTransitionError,
    NotFoundError,
    OutsideBusinessHoursError,
    SchedulingTimeoutError,
    SlotUnavailableError,
    StaffInactiveError,
    StaffNotQualifiedError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

@contextmanager
def _reservation_guard(db: Session) -> Iterator[None]:
    """Map database failures during a reservation to scheduling errors."""
    try:
        yield
    except IntegrityError as exc:
        # Ledger unique key or the PostgreSQL exclusion constraint
        db.rollback()
        raise SlotUnavailableError() from exc
    except OperationalError as exc:
        db.rollback()
        logger.warning("booking_db_timeout", exc_info=True)
        raise SchedulingTimeoutError("Database did not respond in time, please retry") from exc


def _attempts() -> int:
    return max(settings.RESERVATION_RETRY_ATTEMPTS, 0) + 1


def _validate_window(start: datetime, duration_minutes: int | None) -> None:
    now = datetime.now(timezone.utc)
    if start <= now:
        raise BookingValidationError("scheduled_at must be in the future")
    if start > now + timedelta(days=settings.MAX_BOOKING_HORIZON_DAYS):
        raise BookingValidationError(
            f"scheduled_at must be within {settings.MAX_BOOKING_HORIZON_DAYS} days"
        )
    if duration_minutes is not None and duration_minutes <= 0:
        raise BookingValidationError("duration_minutes must be positive")


def _ledger_snapshot(
    db: Session,
    staff_id: UUID,
    start: datetime,
    end: datetime,
    buffer_minutes: int,
    tz: ZoneInfo,
) -> dict[date, int]:
    buffer = timedelta(minutes=buffer_minutes)
    dates = slot_ledger_service.ledger_dates(start - buffer, end + buffer, tz)
    return slot_ledger_service.read_versions(db, staff_id, dates)


def get_booking(db: Session, tenant_id: UUID, booking_id: UUID) -> Booking:
    booking = db.query(Booking).filter(
        Booking.id == booking_id,
        Booking.tenant_id == tenant_id,
    ).first()
    if not booking:
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return booking


def list_bookings(
    db: Session,
    tenant_id: UUID,
    status: str | None = None,
    staff_id: UUID | None = None,
    unassigned_only: bool = False,
    date_start: date | None = None,
    date_end: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Booking], int]:
    """List bookings for a tenant with pagination (dates are tenant-local)."""
    query = db.query(Booking).filter(Booking.tenant_id == tenant_id)

    if status:
        query = query.filter(Booking.status == status)
    if staff_id:
        query = query.filter(Booking.assigned_staff_id == staff_id)
    if unassigned_only:
        query = query.filter(Booking.assigned_staff_id.is_(None))

    if date_start or date_end:
        tz = calendar_service.get_tenant_timezone(db, tenant_id)
        if date_start:
            start_dt = datetime.combine(date_start, time.min, tzinfo=tz)
            query = query.filter(Booking.scheduled_at >= start_dt.astimezone(timezone.utc))
        if date_end:
            end_dt = datetime.combine(date_end + timedelta(days=1), time.min, tzinfo=tz)
            query = query.filter(Booking.scheduled_at < end_dt.astimezone(timezone.utc))

    total = query.count()
    bookings = query.order_by(Booking.scheduled_at).offset(offset).limit(limit).all()
    return bookings, total


# =============================================================================
# Create
# =============================================================================

def _pick_candidate(
    db: Session,
    tenant_id: UUID,
    service: Service,
    start: datetime,
    duration: int,
    buffer: int,
    is_home_visit: bool,
    required: bool = False,
) -> Staff | None:
    """Best available candidate; with required=True, no candidate raises the top one's reason."""
    candidates = availability_service.list_available_staff(
        db,
        tenant_id,
        service.id,
        start,
        duration_minutes=duration,
        buffer_minutes=buffer,
        is_home_visit=is_home_visit,
    )
    for candidate in candidates:
        if candidate.is_available:
            return catalog_service.get_staff(db, tenant_id, candidate.staff_id)
    if not required:
        return None
    if not candidates:
        raise StaffNotQualifiedError(
            "No staff member can perform this service",
            service_id=service.id,
        )
    best = candidates[0]
    error_cls = REASON_ERRORS[best.unavailable_reason]
    raise error_cls(
        f"No staff member is available for this slot ({best.unavailable_reason})",
        staff_id=best.staff_id,
    )


def _create_once(
    db: Session,
    tenant_id: UUID,
    service: Service,
    *,
    customer_id: UUID,
    start: datetime,
    duration: int,
    buffer: int,
    is_home_visit: bool,
    staff_id: UUID | None,
    auto_assign: bool,
    home_visit_address: str | None,
    latitude: float | None,
    longitude: float | None,
    notes: str | None,
) -> Booking:
    tz = calendar_service.get_tenant_timezone(db, tenant_id)
    end = start + timedelta(minutes=duration)

    staff: Staff | None = None
    if staff_id is not None:
        staff = catalog_service.get_staff(db, tenant_id, staff_id)
        if not capability_service.can_perform(db, tenant_id, staff.id, service.id):
            raise StaffNotQualifiedError(
                "Staff member cannot perform this service",
                staff_id=staff.id,
                service_id=service.id,
            )
    elif service.assigns_automatically(is_home_visit):
        staff = _pick_candidate(
            db, tenant_id, service, start, duration, buffer, is_home_visit, required=True,
        )
    elif auto_assign:
        staff = _pick_candidate(db, tenant_id, service, start, duration, buffer, is_home_visit)

    seen: dict[date, int] = {}
    if staff is not None:
        # Versions are read before the checks so a concurrent write is detected at claim time
        seen = _ledger_snapshot(db, staff.id, start, end, buffer, tz)
        verdict = availability_service.evaluate_staff(
            db, tenant_id, staff, service, start, duration, buffer, is_home_visit, tz=tz,
        )
        if not verdict.is_available:
            error_cls = REASON_ERRORS[verdict.unavailable_reason]
            raise error_cls(
                f"Staff member is not available ({verdict.unavailable_reason})",
                staff_id=staff.id,
            )

    booking = Booking(
        tenant_id=tenant_id,
        service_id=service.id,
        customer_id=customer_id,
        assigned_staff_id=staff.id if staff else None,
        scheduled_at=start,
        scheduled_end=end,
        duration_minutes=duration,
        buffer_minutes=buffer,
        status=BookingStatus.PENDING.value,
        is_home_visit=is_home_visit,
        home_visit_address=home_visit_address,
        latitude=latitude,
        longitude=longitude,
        notes=notes,
    )

    if staff is not None:
        slot_ledger_service.claim_staff_days(db, tenant_id, staff.id, seen)
    db.add(booking)
    db.flush()
    booking_history_service.record_event(
        db,
        booking,
        BookingEventType.CREATED,
        to_status=booking.status,
        staff_id=booking.assigned_staff_id,
    )
    db.commit()
    db.refresh(booking)
    return booking


def create_booking(
    db: Session,
    tenant_id: UUID,
    *,
    service_id: UUID,
    customer_id: UUID,
    scheduled_at: datetime,
    is_home_visit: bool,
    duration_minutes: int | None = None,
    staff_id: UUID | None = None,
    home_visit_address: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    notes: str | None = None,
    auto_assign: bool = False,
) -> Booking:
    """
    Create a pending booking.

    Validation and lookups run before anything is written. A caller-supplied
    staff member must pass every availability check. Without one, a home
    visit of a service that does not require manual assignment takes the
    best available candidate (failing when there is none); any other booking
    is left unassigned unless auto_assign picks the best candidate.

    Raises:
        BookingValidationError, NotFoundError, DateBlockedError,
        OutsideBusinessHoursError, StaffNotQualifiedError, StaffInactiveError,
        StaffOnLeaveError, OutsideWorkingHoursError, TimeConflictError,
        QuotaExceededError, SlotUnavailableError, SchedulingTimeoutError
    """
    tenant_service.get_tenant(db, tenant_id)
    tz = calendar_service.get_tenant_timezone(db, tenant_id)
    start = calendar_service.normalize_instant(scheduled_at, tz)
    _validate_window(start, duration_minutes)

    service = catalog_service.get_service(db, tenant_id, service_id)
    catalog_service.get_customer(db, tenant_id, customer_id)
    if not service.location_type_allows(is_home_visit):
        kind = "home visits" if is_home_visit else "on-premise bookings"
        raise BookingValidationError(f"Service does not offer {kind}", service_id=service.id)

    duration = availability_service.resolve_duration(service, duration_minutes)
    buffer = service.buffer_for(is_home_visit)

    local_date = start.astimezone(tz).date()
    blocked = calendar_service.find_blocking_date(db, tenant_id, local_date)
    if blocked is not None:
        raise DateBlockedError(
            "Bookings are not available on this date",
            date=local_date.isoformat(),
            blocked_reason=blocked.reason,
        )
    if not calendar_service.is_open(db, tenant_id, start, duration):
        raise OutsideBusinessHoursError(
            "Requested time is outside business hours",
            date=local_date.isoformat(),
        )

    attempts = _attempts()
    for attempt in range(1, attempts + 1):
        try:
            with _reservation_guard(db):
                booking = _create_once(
                    db,
                    tenant_id,
                    service,
                    customer_id=customer_id,
                    start=start,
                    duration=duration,
                    buffer=buffer,
                    is_home_visit=is_home_visit,
                    staff_id=staff_id,
                    auto_assign=auto_assign,
                    home_visit_address=home_visit_address,
                    latitude=latitude,
                    longitude=longitude,
                    notes=notes,
                )
        except SlotUnavailableError:
            if attempt >= attempts:
                raise
            logger.info(
                "booking_reservation_retry",
                extra=build_log_context(tenant_id=tenant_id, service_id=service_id, staff_id=staff_id),
            )
            continue

        logger.info(
            "booking_created",
            extra=build_log_context(
                tenant_id=tenant_id,
                booking_id=booking.id,
                service_id=booking.service_id,
                staff_id=booking.assigned_staff_id,
            ),
        )
        return booking

    raise SlotUnavailableError()


# =============================================================================
# Staff assignment
# =============================================================================

def _require_live(booking: Booking, action: str) -> None:
    if booking.status not in LIVE_BOOKING_STATUSES:
        raise InvalidStatusTransitionError(
            f"Cannot {action} a {booking.status} booking",
            booking_id=booking.id,
            status=booking.status,
        )


def _assign_once(
    db: Session,
    tenant_id: UUID,
    booking_id: UUID,
    staff_id: UUID,
    after_lost_race: bool = False,
) -> Booking:
    # Reload everything: a previous attempt may have rolled back
    booking = get_booking(db, tenant_id, booking_id)
    _require_live(booking, "assign staff to")
    staff = catalog_service.get_staff(db, tenant_id, staff_id)
    if booking.assigned_staff_id == staff.id:
        return booking

    service = catalog_service.get_service(db, tenant_id, booking.service_id, active_only=False)
    tz = calendar_service.get_tenant_timezone(db, tenant_id)

    seen = _ledger_snapshot(
        db, staff.id, booking.scheduled_at, booking.scheduled_end, booking.buffer_minutes, tz
    )
    verdict = availability_service.evaluate_staff(
        db,
        tenant_id,
        staff,
        service,
        booking.scheduled_at,
        booking.duration_minutes,
        booking.buffer_minutes,
        booking.is_home_visit,
        tz=tz,
        exclude_booking_id=booking.id,
    )
    if not verdict.is_available:
        if not after_lost_race or verdict.unavailable_reason == UnavailableReason.STAFF_INACTIVE.value:
            error_cls = REASON_ERRORS[verdict.unavailable_reason]
            raise error_cls(
                f"Staff member is not available ({verdict.unavailable_reason})",
                staff_id=staff.id,
                booking_id=booking.id,
            )
        # Eligible when first checked, taken by a concurrent writer since
        raise SlotUnavailableError(
            "Staff member is no longer available for this slot",
            reason=verdict.unavailable_reason,
            staff_id=staff.id,
            booking_id=booking.id,
        )

    previous_staff_id = booking.assigned_staff_id
    slot_ledger_service.claim_staff_days(db, tenant_id, staff.id, seen)
    booking.assigned_staff_id = staff.id
    booking_history_service.record_event(
        db,
        booking,
        BookingEventType.STAFF_ASSIGNED,
        staff_id=staff.id,
        details={"previous_staff_id": str(previous_staff_id)} if previous_staff_id else None,
    )
    db.commit()
    db.refresh(booking)
    return booking


def assign_staff(db: Session, tenant_id: UUID, booking_id: UUID, staff_id: UUID) -> Booking:
    """
    Assign (or reassign) a staff member to a live booking.

    Eligibility is re-checked inside the reservation. A staff member who is
    not eligible up front raises the concrete error (QuotaExceededError,
    TimeConflictError, ...); eligibility lost to another writer between the
    check and the ledger claim surfaces as SlotUnavailableError carrying the
    reason.
    """
    booking = get_booking(db, tenant_id, booking_id)
    _require_live(booking, "assign staff to")
    staff = catalog_service.get_staff(db, tenant_id, staff_id)
    if booking.assigned_staff_id == staff.id:
        return booking
    if not staff.is_active:
        raise StaffInactiveError("Staff member is inactive", staff_id=staff.id)
    if not capability_service.can_perform(db, tenant_id, staff.id, booking.service_id):
        raise StaffNotQualifiedError(
            "Staff member cannot perform this service",
            staff_id=staff.id,
            service_id=booking.service_id,
        )

    attempts = _attempts()
    for attempt in range(1, attempts + 1):
        try:
            with _reservation_guard(db):
                booking = _assign_once(
                    db, tenant_id, booking_id, staff_id, after_lost_race=attempt > 1,
                )
        except SlotUnavailableError as exc:
            if attempt >= attempts or exc.reason is not None:
                raise
            logger.info(
                "booking_assignment_retry",
                extra=build_log_context(tenant_id=tenant_id, booking_id=booking_id, staff_id=staff_id),
            )
            continue

        logger.info(
            "booking_staff_assigned",
            extra=build_log_context(tenant_id=tenant_id, booking_id=booking_id, staff_id=staff_id),
        )
        return booking

    raise SlotUnavailableError()


def unassign_staff(db: Session, tenant_id: UUID, booking_id: UUID) -> Booking:
    """Return a booking to the unassigned pool, freeing the staff interval."""
    booking = get_booking(db, tenant_id, booking_id)
    _require_live(booking, "unassign staff from")
    if booking.is_unassigned:
        return booking

    previous_staff_id = booking.assigned_staff_id
    booking.assigned_staff_id = None
    booking_history_service.record_event(
        db,
        booking,
        BookingEventType.STAFF_UNASSIGNED,
        staff_id=previous_staff_id,
    )
    db.commit()
    db.refresh(booking)

    logger.info(
        "booking_staff_unassigned",
        extra=build_log_context(tenant_id=tenant_id, booking_id=booking_id, staff_id=previous_staff_id),
    )
    return booking


# =============================================================================
# Lifecycle
# =============================================================================

_TRANSITION_EVENTS = {
    BookingStatus.CONFIRMED.value: BookingEventType.CONFIRMED,
    BookingStatus.COMPLETED.value: BookingEventType.COMPLETED,
    BookingStatus.CANCELLED.value: BookingEventType.CANCELLED,
}


def _transition(
    db: Session,
    tenant_id: UUID,
    booking_id: UUID,
    to_status: BookingStatus,
    reason: str | None = None,
) -> Booking:
    booking = get_booking(db, tenant_id, booking_id)
    from_status = booking.status
    if to_status.value not in ALLOWED_STATUS_TRANSITIONS.get(from_status, set()):
        raise InvalidStatusTransitionError(
            f"Cannot change booking from {from_status} to {to_status.value}",
            booking_id=booking.id,
            status=from_status,
        )

    now = datetime.now(timezone.utc)
    booking.status = to_status.value
    if to_status == BookingStatus.CONFIRMED:
        booking.confirmed_at = now
    elif to_status == BookingStatus.COMPLETED:
        booking.completed_at = now
    elif to_status == BookingStatus.CANCELLED:
        booking.cancelled_at = now
        booking.cancellation_reason = reason

    booking_history_service.record_event(
        db,
        booking,
        _TRANSITION_EVENTS[to_status.value],
        from_status=from_status,
        to_status=to_status.value,
        staff_id=booking.assigned_staff_id,
        details={"reason": reason} if reason else None,
    )
    db.commit()
    db.refresh(booking)

    logger.info(
        f"booking_{to_status.value}",
        extra=build_log_context(tenant_id=tenant_id, booking_id=booking.id),
    )
    return booking


def confirm_booking(db: Session, tenant_id: UUID, booking_id: UUID) -> Booking:
    return _transition(db, tenant_id, booking_id, BookingStatus.CONFIRMED)


def complete_booking(db: Session, tenant_id: UUID, booking_id: UUID) -> Booking:
    return _transition(db, tenant_id, booking_id, BookingStatus.COMPLETED)


def cancel_booking(
    db: Session,
    tenant_id: UUID,
    booking_id: UUID,
    reason: str | None = None,
) -> Booking:
    """Cancel a pending or confirmed booking; its interval and quota are freed at once."""
    return _transition(db, tenant_id, booking_id, BookingStatus.CANCELLED, reason=reason)
