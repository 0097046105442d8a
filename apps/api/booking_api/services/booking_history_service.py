"""Booking state-change history.

Notification and invoicing collaborators observe these rows; nothing here
calls out to them.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.db.enums import BookingEventType
from booking_api.db.models import Booking, BookingEvent


def record_event(
    db: Session,
    booking: Booking,
    event_type: BookingEventType,
    *,
    from_status: str | None = None,
    to_status: str | None = None,
    staff_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> BookingEvent:
    """Add an event to the current transaction (caller commits)."""
    event = BookingEvent(
        tenant_id=booking.tenant_id,
        booking_id=booking.id,
        event_type=event_type.value,
        from_status=from_status,
        to_status=to_status,
        staff_id=staff_id,
        details=details or {},
    )
    db.add(event)
    return event


def list_events(db: Session, tenant_id: UUID, booking_id: UUID) -> list[BookingEvent]:
    return db.query(BookingEvent).filter(
        BookingEvent.tenant_id == tenant_id,
        BookingEvent.booking_id == booking_id,
    ).order_by(BookingEvent.created_at, BookingEvent.id).all()
