"""Booking schemas - Pydantic models for the bookings API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    scheduled_at without an offset is read in the tenant's timezone.
    """
    service_id: UUID
    customer_id: UUID
    scheduled_at: datetime
    is_home_visit: bool = False
    duration_minutes: int | None = Field(None, gt=0, le=1440)
    staff_id: UUID | None = None
    home_visit_address: str | None = Field(None, max_length=500)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    notes: str | None = Field(None, max_length=2000)
    auto_assign: bool = False


class BookingRead(BaseModel):
    """Schema for reading a booking."""
    model_config = {"from_attributes": True}

    id: UUID
    tenant_id: UUID
    service_id: UUID
    customer_id: UUID
    assigned_staff_id: UUID | None
    is_unassigned: bool
    scheduled_at: datetime
    scheduled_end: datetime
    duration_minutes: int
    buffer_minutes: int
    status: str
    is_home_visit: bool
    home_visit_address: str | None
    latitude: float | None
    longitude: float | None
    notes: str | None
    confirmed_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime


class BookingListResponse(BaseModel):
    """Paginated booking list."""
    items: list[BookingRead]
    total: int


class AssignStaffRequest(BaseModel):
    staff_id: UUID


class BookingCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


class BookingEventRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    booking_id: UUID
    event_type: str
    from_status: str | None
    to_status: str | None
    staff_id: UUID | None
    details: dict[str, Any]
    created_at: datetime
