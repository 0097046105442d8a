"""Availability schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class StaffAvailabilityRead(BaseModel):
    """One ranked candidate for a requested slot."""
    staff_id: UUID
    staff_name: str
    is_available: bool
    unavailable_reason: str | None = None
    home_visit_count: int
    max_home_visits: int | None = None


class AvailableStaffResponse(BaseModel):
    service_id: UUID
    scheduled_at: datetime
    duration_minutes: int
    buffer_minutes: int
    staff: list[StaffAvailabilityRead]


class TimeSlotRead(BaseModel):
    start: datetime
    end: datetime
    staff_ids: list[UUID]


class AvailableSlotsResponse(BaseModel):
    service_id: UUID
    on_date: date
    slots: list[TimeSlotRead]
