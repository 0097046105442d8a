"""Staff router - weekly schedules, active flag, capabilities and leave."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booking_api.core.deps import get_db, get_tenant_id
from booking_api.schemas.staff import (
    CapabilityRead,
    CapabilitySet,
    LeaveCreate,
    LeaveRead,
    ScheduleEntryRead,
    StaffRead,
    StaffServicesRead,
    StaffStatusUpdate,
    WeeklyScheduleSet,
)
from booking_api.services import capability_service, catalog_service, staff_schedule_service
from booking_api.services.tenant_service import TenantId

router = APIRouter()


def _schedule_to_read(schedule: dict) -> list[ScheduleEntryRead]:
    return [ScheduleEntryRead.model_validate(schedule[dow]) for dow in sorted(schedule)]


@router.get("", response_model=list[StaffRead])
def list_staff(
    include_inactive: bool = True,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    staff = catalog_service.list_staff(db, tenant_id, include_inactive=include_inactive)
    return [StaffRead.model_validate(s) for s in staff]


@router.get("/{staff_id}/schedule", response_model=list[ScheduleEntryRead])
def get_schedule(
    staff_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Configured days only; missing days follow business hours."""
    catalog_service.get_staff(db, tenant_id, staff_id)
    return _schedule_to_read(staff_schedule_service.get_weekly_schedule(db, tenant_id, staff_id))


@router.put("/{staff_id}/schedule", response_model=list[ScheduleEntryRead])
def set_schedule(
    staff_id: UUID,
    data: WeeklyScheduleSet,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Upsert the given days; days not listed keep their current entry."""
    schedule = staff_schedule_service.set_weekly_schedule(
        db,
        tenant_id,
        staff_id,
        [entry.model_dump() for entry in data.entries],
    )
    return _schedule_to_read(schedule)


@router.patch("/{staff_id}/status", response_model=StaffRead)
def set_status(
    staff_id: UUID,
    data: StaffStatusUpdate,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    staff = staff_schedule_service.set_staff_active(db, tenant_id, staff_id, data.is_active)
    return StaffRead.model_validate(staff)


@router.get("/{staff_id}/services", response_model=StaffServicesRead)
def list_staff_services(
    staff_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    catalog_service.get_staff(db, tenant_id, staff_id)
    return StaffServicesRead(
        staff_id=staff_id,
        service_ids=capability_service.list_staff_service_ids(db, tenant_id, staff_id),
    )


@router.put("/{staff_id}/services/{service_id}", response_model=CapabilityRead)
def set_capability(
    staff_id: UUID,
    service_id: UUID,
    data: CapabilitySet,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    capability = capability_service.set_capability(
        db, tenant_id, staff_id, service_id, data.can_perform
    )
    return CapabilityRead.model_validate(capability)


@router.get("/{staff_id}/leave", response_model=list[LeaveRead])
def list_leave(
    staff_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    catalog_service.get_staff(db, tenant_id, staff_id)
    leave = staff_schedule_service.list_leave(db, tenant_id, staff_id)
    return [LeaveRead.model_validate(entry) for entry in leave]


@router.post("/{staff_id}/leave", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def create_leave(
    staff_id: UUID,
    data: LeaveCreate,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    leave = staff_schedule_service.create_leave(
        db,
        tenant_id,
        staff_id,
        date_start=data.date_start,
        date_end=data.date_end,
        reason=data.reason,
    )
    return LeaveRead.model_validate(leave)


@router.delete("/{staff_id}/leave/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave(
    staff_id: UUID,
    leave_id: UUID,
    tenant_id: TenantId = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    staff_schedule_service.delete_leave(db, tenant_id, staff_id, leave_id)
