"""Availability router - ranked staff candidates and open slots."""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from booking_api.core.deps import get_db, get_tenant_id
from booking_api.schemas.availability import (
    AvailableSlotsResponse,
    AvailableStaffResponse,
    StaffAvailabilityRead,
    TimeSlotRead,
)
from booking_api.services import availability_service, catalog_service
from booking_api.services.tenant_service import TenantId

router = APIRouter()


@router.get("/staff", response_model=AvailableStaffResponse)
def list_available_staff(
    service_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int | None = Query(None, gt=0, le=1440),
    buffer_minutes: int | None = Query(None, ge=0, le=480),
    is_home_visit: bool = True,
    exclude_booking_id: UUID | None = None,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Staff who can perform the service, available first then least loaded.

    Duration and buffer default to the service's settings.
    """
    candidates = availability_service.list_available_staff(
        db,
        tenant_id,
        service_id,
        scheduled_at,
        duration_minutes=duration_minutes,
        buffer_minutes=buffer_minutes,
        is_home_visit=is_home_visit,
        exclude_booking_id=exclude_booking_id,
    )
    service = catalog_service.get_service(db, tenant_id, service_id)
    return AvailableStaffResponse(
        service_id=service.id,
        scheduled_at=scheduled_at,
        duration_minutes=availability_service.resolve_duration(service, duration_minutes),
        buffer_minutes=availability_service.resolve_buffer(service, is_home_visit, buffer_minutes),
        staff=[StaffAvailabilityRead(**c._asdict()) for c in candidates],
    )


@router.get("/slots", response_model=AvailableSlotsResponse)
def list_available_slots(
    service_id: UUID,
    on_date: date = Query(..., alias="date"),
    is_home_visit: bool = False,
    staff_id: UUID | None = None,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Bookable start times for a tenant-local date."""
    slots = availability_service.get_available_slots(
        db,
        tenant_id,
        service_id,
        on_date,
        is_home_visit=is_home_visit,
        staff_id=staff_id,
    )
    return AvailableSlotsResponse(
        service_id=service_id,
        on_date=on_date,
        slots=[TimeSlotRead(start=s.start, end=s.end, staff_ids=s.staff_ids) for s in slots],
    )
