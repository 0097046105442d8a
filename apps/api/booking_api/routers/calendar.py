"""Tenant calendar settings router - business hours and blocked dates."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booking_api.core.deps import get_db, get_tenant_id
from booking_api.schemas.calendar import (
    BlockedDateCreate,
    BlockedDateRead,
    BusinessHoursRead,
    BusinessHoursUpdate,
)
from booking_api.services import calendar_service
from booking_api.services.tenant_service import TenantId

router = APIRouter()


def _hours_to_read(db: Session, tenant_id: TenantId) -> BusinessHoursRead:
    hours = calendar_service.get_business_hours(db, tenant_id)
    return BusinessHoursRead(
        schedule=calendar_service.effective_schedule(db, tenant_id),
        timezone=calendar_service.get_tenant_timezone(db, tenant_id).key,
        is_configured=hours is not None,
    )


@router.get("/business-hours", response_model=BusinessHoursRead)
def get_business_hours(
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Effective weekly hours; unset days show the default calendar."""
    return _hours_to_read(db, tenant_id)


@router.put("/business-hours", response_model=BusinessHoursRead)
def set_business_hours(
    data: BusinessHoursUpdate,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    schedule = {day: hours.model_dump(by_alias=True) for day, hours in data.schedule.items()}
    calendar_service.upsert_business_hours(db, tenant_id, schedule, data.timezone)
    return _hours_to_read(db, tenant_id)


@router.get("/blocked-dates", response_model=list[BlockedDateRead])
def list_blocked_dates(
    date_from: date | None = None,
    date_to: date | None = None,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    blocked = calendar_service.list_blocked_dates(db, tenant_id, date_from, date_to)
    return [BlockedDateRead.model_validate(b) for b in blocked]


@router.post(
    "/blocked-dates",
    response_model=BlockedDateRead,
    status_code=status.HTTP_201_CREATED,
)
def create_blocked_date(
    data: BlockedDateCreate,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    blocked = calendar_service.create_blocked_date(
        db,
        tenant_id,
        on_date=data.blocked_date,
        reason=data.reason,
        is_recurring=data.is_recurring,
        recurring_pattern=data.recurring_pattern,
        recurring_until=data.recurring_until,
    )
    return BlockedDateRead.model_validate(blocked)


@router.delete("/blocked-dates/{blocked_date_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_date(
    blocked_date_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    calendar_service.delete_blocked_date(db, tenant_id, blocked_date_id)
