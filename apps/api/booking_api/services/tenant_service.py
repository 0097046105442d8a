"""Tenant resolution at the request boundary.

Callers identify a tenant by UUID or by subdomain. The identifier is resolved
exactly once into a ``TenantId``; services below the routers only ever take
the resolved value.
"""

from typing import NewType
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.db.models import Tenant
from booking_api.services.scheduling_errors import NotFoundError

TenantId = NewType("TenantId", UUID)


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


def resolve_tenant_id(db: Session, identifier: str | UUID) -> TenantId:
    """Resolve a UUID or subdomain into an existing, active tenant id."""
    if isinstance(identifier, UUID):
        tenant_uuid: UUID | None = identifier
    else:
        identifier = (identifier or "").strip()
        if not identifier:
            raise NotFoundError("Tenant not found")
        tenant_uuid = _parse_uuid(identifier)

    if tenant_uuid is not None:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_uuid).first()
    else:
        tenant = (
            db.query(Tenant)
            .filter(Tenant.subdomain == str(identifier).lower())
            .first()
        )

    if not tenant or not tenant.is_active:
        raise NotFoundError("Tenant not found", tenant=str(identifier))
    return TenantId(tenant.id)


def get_tenant(db: Session, tenant_id: UUID) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise NotFoundError("Tenant not found", tenant_id=tenant_id)
    return tenant
