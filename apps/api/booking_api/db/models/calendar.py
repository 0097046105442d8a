"""Tenant calendar models: business hours and blocked dates."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from booking_api.db.base import Base
from booking_api.db.models._common import JSONType, utcnow


class BusinessHours(Base):
    """
    Weekly opening hours for a tenant (one row per tenant).

    schedule format:
        {"monday": {"isOpen": true, "openTime": "09:00", "closeTime": "17:00"}, ...}
    """

    __tablename__ = "business_hours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    schedule: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    timezone: Mapped[str] = mapped_column(String(50), default="Asia/Jakarta", nullable=False)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)


class BlockedDate(Base):
    """
    Tenant-wide closure (holiday, renovation, ...).

    Recurring entries repeat from ``date`` by ``recurring_pattern`` until
    ``recurring_until`` (inclusive, open-ended when NULL).
    """

    __tablename__ = "blocked_dates"
    __table_args__ = (Index("idx_blocked_dates_tenant", "tenant_id", "date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_pattern: Mapped[str | None] = mapped_column(String(20), nullable=True)
    recurring_until: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
