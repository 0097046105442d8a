"""Bookings router - create, list, assign and move bookings through their lifecycle.

Scheduling errors raised by the services are rendered by the app-level
handler in main.py, so handlers here stay thin.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from booking_api.core.config import settings
from booking_api.core.deps import get_db, get_tenant_id
from booking_api.core.rate_limit import limiter
from booking_api.db.enums import BookingStatus
from booking_api.schemas.booking import (
    AssignStaffRequest,
    BookingCancel,
    BookingCreate,
    BookingEventRead,
    BookingListResponse,
    BookingRead,
)
from booking_api.services import booking_history_service, booking_service
from booking_api.services.tenant_service import TenantId

router = APIRouter()


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_BOOKING)
def create_booking(
    data: BookingCreate,
    request: Request,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Create a booking.

    Home visits without a staff member stay unassigned unless auto_assign
    is set. Rate limited per client address.
    """
    booking = booking_service.create_booking(
        db,
        tenant_id,
        service_id=data.service_id,
        customer_id=data.customer_id,
        scheduled_at=data.scheduled_at,
        is_home_visit=data.is_home_visit,
        duration_minutes=data.duration_minutes,
        staff_id=data.staff_id,
        home_visit_address=data.home_visit_address,
        latitude=data.latitude,
        longitude=data.longitude,
        notes=data.notes,
        auto_assign=data.auto_assign,
    )
    return BookingRead.model_validate(booking)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status"),
    staff_id: UUID | None = None,
    unassigned: bool = False,
    date_start: date | None = None,
    date_end: date | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """List bookings; dates are in the tenant's timezone."""
    bookings, total = booking_service.list_bookings(
        db,
        tenant_id,
        status=status_filter.value if status_filter else None,
        staff_id=staff_id,
        unassigned_only=unassigned,
        date_start=date_start,
        date_end=date_end,
        limit=limit,
        offset=offset,
    )
    return BookingListResponse(
        items=[BookingRead.model_validate(b) for b in bookings],
        total=total,
    )


@router.get("/{booking_id}", response_model=BookingRead)
def get_booking(
    booking_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return BookingRead.model_validate(booking_service.get_booking(db, tenant_id, booking_id))


@router.get("/{booking_id}/events", response_model=list[BookingEventRead])
def list_booking_events(
    booking_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """State-change history, oldest first."""
    booking_service.get_booking(db, tenant_id, booking_id)
    events = booking_history_service.list_events(db, tenant_id, booking_id)
    return [BookingEventRead.model_validate(e) for e in events]


@router.post("/{booking_id}/assign-staff", response_model=BookingRead)
def assign_staff(
    booking_id: UUID,
    data: AssignStaffRequest,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Assign or reassign staff; eligibility is re-checked at commit time."""
    booking = booking_service.assign_staff(db, tenant_id, booking_id, data.staff_id)
    return BookingRead.model_validate(booking)


@router.delete("/{booking_id}/assign-staff", response_model=BookingRead)
def unassign_staff(
    booking_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    booking = booking_service.unassign_staff(db, tenant_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingRead)
def confirm_booking(
    booking_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    booking = booking_service.confirm_booking(db, tenant_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingRead)
def complete_booking(
    booking_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    booking = booking_service.complete_booking(db, tenant_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
def cancel_booking(
    booking_id: UUID,
    data: BookingCancel | None = None,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Cancel a pending or confirmed booking, freeing its slot."""
    reason = data.reason if data else None
    booking = booking_service.cancel_booking(db, tenant_id, booking_id, reason=reason)
    return BookingRead.model_validate(booking)
