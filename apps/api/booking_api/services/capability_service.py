"""Staff-to-service capability mapping."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.core.structured_logging import build_log_context
from booking_api.db.models import Staff, StaffCapability
from booking_api.services import catalog_service

logger = logging.getLogger(__name__)


def set_capability(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    service_id: UUID,
    can_perform: bool = True,
) -> StaffCapability:
    """Create or update the (staff, service) mapping."""
    catalog_service.get_staff(db, tenant_id, staff_id)
    catalog_service.get_service(db, tenant_id, service_id, active_only=False)

    capability = db.query(StaffCapability).filter(
        StaffCapability.staff_id == staff_id,
        StaffCapability.service_id == service_id,
    ).first()
    if capability is None:
        capability = StaffCapability(
            tenant_id=tenant_id,
            staff_id=staff_id,
            service_id=service_id,
        )
        db.add(capability)
    capability.can_perform = can_perform
    db.commit()
    db.refresh(capability)

    logger.info(
        "staff_capability_set",
        extra={
            **build_log_context(tenant_id=tenant_id, staff_id=staff_id, service_id=service_id),
            "can_perform": can_perform,
        },
    )
    return capability


def can_perform(db: Session, tenant_id: UUID, staff_id: UUID, service_id: UUID) -> bool:
    return db.query(StaffCapability.id).filter(
        StaffCapability.tenant_id == tenant_id,
        StaffCapability.staff_id == staff_id,
        StaffCapability.service_id == service_id,
        StaffCapability.can_perform.is_(True),
    ).first() is not None


def list_capable_staff(db: Session, tenant_id: UUID, service_id: UUID) -> list[Staff]:
    """All staff mapped to the service, active or not."""
    return (
        db.query(Staff)
        .join(StaffCapability, StaffCapability.staff_id == Staff.id)
        .filter(
            Staff.tenant_id == tenant_id,
            StaffCapability.tenant_id == tenant_id,
            StaffCapability.service_id == service_id,
            StaffCapability.can_perform.is_(True),
        )
        .order_by(Staff.name)
        .all()
    )


def list_staff_service_ids(db: Session, tenant_id: UUID, staff_id: UUID) -> list[UUID]:
    rows = db.query(StaffCapability.service_id).filter(
        StaffCapability.tenant_id == tenant_id,
        StaffCapability.staff_id == staff_id,
        StaffCapability.can_perform.is_(True),
    ).all()
    return [row[0] for row in rows]
