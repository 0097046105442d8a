"""Staff, weekly schedule, leave and capability models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_api.db.base import Base
from booking_api.db.models._common import utcnow


class Staff(Base):
    """Staff member who can be assigned to bookings."""

    __tablename__ = "staff"
    __table_args__ = (Index("idx_staff_tenant", "tenant_id", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    schedule_entries: Mapped[list["StaffScheduleEntry"]] = relationship(
        back_populates="staff", cascade="all, delete-orphan"
    )


class StaffScheduleEntry(Base):
    """
    Weekly working hours for one day (e.g. "Monday 09:00-17:00").

    Day numbering follows the booking calendar: Sunday=0 ... Saturday=6.
    One row per staff per day; writing a day replaces the existing row.
    """

    __tablename__ = "staff_schedule_entries"
    __table_args__ = (
        UniqueConstraint("staff_id", "day_of_week", name="uq_staff_schedule_day"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_day_of_week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )

    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Optional unpaid break inside the working window
    break_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end: Mapped[time | None] = mapped_column(Time, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    staff: Mapped["Staff"] = relationship(back_populates="schedule_entries")


class StaffLeave(Base):
    """Inclusive date range during which a staff member takes no bookings."""

    __tablename__ = "staff_leave"
    __table_args__ = (
        Index("idx_staff_leave_range", "staff_id", "date_start", "date_end"),
        CheckConstraint("date_start <= date_end", name="ck_staff_leave_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class StaffCapability(Base):
    """Which staff may perform which services."""

    __tablename__ = "staff_capabilities"
    __table_args__ = (
        UniqueConstraint("staff_id", "service_id", name="uq_staff_capability"),
        Index("idx_staff_capabilities_service", "service_id", "can_perform"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    can_perform: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    staff: Mapped["Staff"] = relationship()
