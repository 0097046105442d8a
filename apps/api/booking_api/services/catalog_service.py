"""Tenant-scoped lookups for services, customers and staff."""

from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.db.models import Customer, Service, Staff
from booking_api.services.scheduling_errors import NotFoundError


def get_service(
    db: Session,
    tenant_id: UUID,
    service_id: UUID,
    *,
    active_only: bool = True,
) -> Service:
    query = db.query(Service).filter(
        Service.id == service_id,
        Service.tenant_id == tenant_id,
    )
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    service = query.first()
    if not service:
        raise NotFoundError("Service not found", service_id=service_id)
    return service


def get_customer(db: Session, tenant_id: UUID, customer_id: UUID) -> Customer:
    customer = db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.tenant_id == tenant_id,
    ).first()
    if not customer:
        raise NotFoundError("Customer not found", customer_id=customer_id)
    return customer


def get_staff(db: Session, tenant_id: UUID, staff_id: UUID) -> Staff:
    staff = db.query(Staff).filter(
        Staff.id == staff_id,
        Staff.tenant_id == tenant_id,
    ).first()
    if not staff:
        raise NotFoundError("Staff not found", staff_id=staff_id)
    return staff


def list_staff(db: Session, tenant_id: UUID, include_inactive: bool = True) -> list[Staff]:
    query = db.query(Staff).filter(Staff.tenant_id == tenant_id)
    if not include_inactive:
        query = query.filter(Staff.is_active.is_(True))
    return query.order_by(Staff.name).all()
