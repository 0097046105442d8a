"""Service catalog model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from booking_api.db.base import Base
from booking_api.db.enums import LocationType
from booking_api.db.models._common import utcnow


class Service(Base):
    """
    A bookable service (e.g. "Haircut", "Home massage").

    Defines how long a booking occupies a staff member, where it can be
    delivered, and the optional per-staff daily cap on home visits.
    """

    __tablename__ = "services"
    __table_args__ = (
        Index("idx_services_tenant", "tenant_id", "is_active"),
        CheckConstraint("duration_minutes > 0", name="ck_service_duration_positive"),
        CheckConstraint(
            "daily_quota_per_staff IS NULL OR daily_quota_per_staff >= 0",
            name="ck_service_quota_non_negative",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    location_type: Mapped[str] = mapped_column(
        String(20), default=LocationType.ON_PREMISE.value, nullable=False
    )

    # Home visit settings
    daily_quota_per_staff: Mapped[int | None] = mapped_column(Integer, nullable=True)
    home_visit_buffer_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requires_staff_assignment: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    def buffer_for(self, is_home_visit: bool) -> int:
        """Travel buffer applied around a booking of this service."""
        if not is_home_visit:
            return 0
        return self.home_visit_buffer_minutes or 0

    def needs_staff(self, is_home_visit: bool) -> bool:
        """Home visits always need a staff member; on-premise only when the service says so."""
        return bool(self.requires_staff_assignment) or is_home_visit

    def assigns_automatically(self, is_home_visit: bool) -> bool:
        """Home visits of services without manual assignment get the best candidate at booking time."""
        return is_home_visit and not self.requires_staff_assignment

    def location_type_allows(self, is_home_visit: bool) -> bool:
        return LocationType(self.location_type).allows(is_home_visit)
