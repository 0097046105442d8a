"""Interval conflict detection against a staff member's live bookings.

Intervals are half-open ``[start, end)``: a booking ending at 10:00 and one
starting at 10:00 do not overlap. Only pending and confirmed bookings occupy
a calendar.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.db.enums import LIVE_BOOKING_STATUSES
from booking_api.db.models import Booking


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflicting_bookings(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: UUID | None = None,
) -> list[Booking]:
    """Live bookings assigned to staff_id that overlap [start, end)."""
    query = db.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.assigned_staff_id == staff_id,
        Booking.status.in_(LIVE_BOOKING_STATUSES),
        Booking.scheduled_at < end,
        Booking.scheduled_end > start,
    )
    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.scheduled_at).all()


def has_conflict(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: UUID | None = None,
) -> bool:
    return bool(
        find_conflicting_bookings(
            db, tenant_id, staff_id, start, end, exclude_booking_id=exclude_booking_id
        )
    )
