"""Booking, booking event and reservation ledger models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_api.db.base import Base
from booking_api.db.enums import BookingStatus
from booking_api.db.models._common import JSONType, utcnow


class Booking(Base):
    """
    A customer's booking of a service.

    Occupies [scheduled_at, scheduled_end) on the assigned staff member's
    calendar while pending or confirmed. Home visits with no staff yet are
    unassigned and hold no interval or quota.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_staff_time", "assigned_staff_id", "scheduled_at", "scheduled_end"),
        Index("idx_bookings_tenant_status", "tenant_id", "status"),
        Index("idx_bookings_tenant_time", "tenant_id", "scheduled_at"),
        CheckConstraint("scheduled_end > scheduled_at", name="ck_booking_interval"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False
    )
    assigned_staff_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True
    )

    # Timing (UTC)
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    scheduled_end: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=BookingStatus.PENDING.value, nullable=False
    )

    # Home visit
    is_home_visit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    home_visit_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    events: Mapped[list["BookingEvent"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingEvent.created_at",
    )

    @property
    def is_unassigned(self) -> bool:
        return self.assigned_staff_id is None


class BookingEvent(Base):
    """
    Append-only history of booking state changes.

    Notification and invoicing collaborators poll these rows; the scheduler
    never calls them directly.
    """

    __tablename__ = "booking_events"
    __table_args__ = (Index("idx_booking_events_booking", "booking_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    staff_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="events")


class StaffDayLedger(Base):
    """
    Reservation guard: one versioned row per staff member per local date.

    Every write that places a booking on a staff calendar bumps the version
    of each date its buffered interval touches, compare-and-swap style. Two
    concurrent writers that read the same version cannot both commit.
    """

    __tablename__ = "staff_day_ledger"
    __table_args__ = (
        UniqueConstraint("staff_id", "ledger_date", name="uq_staff_day_ledger"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    ledger_date: Mapped[date] = mapped_column(Date, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)
