"""Daily home-visit quota per staff member and service."""

from datetime import date
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from booking_api.core.config import settings
from booking_api.db.enums import BookingStatus
from booking_api.db.models import Booking, Service
from booking_api.services import calendar_service


def counted_statuses() -> tuple[str, ...]:
    """Statuses that consume quota. Cancelled bookings never do."""
    if settings.QUOTA_COUNTS_PENDING:
        return (
            BookingStatus.PENDING.value,
            BookingStatus.CONFIRMED.value,
            BookingStatus.COMPLETED.value,
        )
    return (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


def home_visit_count(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    service_id: UUID,
    on_date: date,
    tz: ZoneInfo | None = None,
    exclude_booking_id: UUID | None = None,
) -> int:
    """Home visits of this service assigned to staff_id on a tenant-local date."""
    if tz is None:
        tz = calendar_service.get_tenant_timezone(db, tenant_id)
    day_start, day_end = calendar_service.local_day_bounds(on_date, tz)

    query = db.query(func.count(Booking.id)).filter(
        Booking.tenant_id == tenant_id,
        Booking.assigned_staff_id == staff_id,
        Booking.service_id == service_id,
        Booking.is_home_visit.is_(True),
        Booking.status.in_(counted_statuses()),
        Booking.scheduled_at >= day_start,
        Booking.scheduled_at < day_end,
    )
    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.scalar() or 0


def remaining_quota(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    service: Service,
    on_date: date,
    tz: ZoneInfo | None = None,
    exclude_booking_id: UUID | None = None,
) -> int | None:
    """Home visits left for the date, or None when the service has no cap."""
    if service.daily_quota_per_staff is None:
        return None
    used = home_visit_count(
        db,
        tenant_id,
        staff_id,
        service.id,
        on_date,
        tz=tz,
        exclude_booking_id=exclude_booking_id,
    )
    return max(service.daily_quota_per_staff - used, 0)
