"""Staff schemas - schedule, status, capabilities and leave."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field


class StaffRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    is_active: bool


class StaffStatusUpdate(BaseModel):
    is_active: bool


class ScheduleEntryInput(BaseModel):
    """One weekday of a staff member's week."""
    day_of_week: int = Field(..., ge=0, le=6, description="Sunday=0, Saturday=6")
    start_time: time
    end_time: time
    is_available: bool = True
    break_start: time | None = None
    break_end: time | None = None


class WeeklyScheduleSet(BaseModel):
    entries: list[ScheduleEntryInput] = Field(..., max_length=7)


class ScheduleEntryRead(BaseModel):
    model_config = {"from_attributes": True}

    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool
    break_start: time | None
    break_end: time | None


class CapabilitySet(BaseModel):
    can_perform: bool = True


class CapabilityRead(BaseModel):
    model_config = {"from_attributes": True}

    staff_id: UUID
    service_id: UUID
    can_perform: bool


class LeaveCreate(BaseModel):
    date_start: date
    date_end: date
    reason: str = Field(..., min_length=1, max_length=255)


class LeaveRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    staff_id: UUID
    date_start: date
    date_end: date
    reason: str
    created_at: datetime


class StaffServicesRead(BaseModel):
    """Services a staff member is mapped to (can_perform only)."""
    staff_id: UUID
    service_ids: list[UUID]
