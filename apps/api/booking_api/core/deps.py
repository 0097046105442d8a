"""FastAPI dependencies for database access and tenant resolution."""

from typing import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from booking_api.db.session import SessionLocal
from booking_api.services.tenant_service import TenantId, resolve_tenant_id

TENANT_HEADER = "X-Tenant-ID"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_tenant_id(
    x_tenant_id: str = Header(..., alias=TENANT_HEADER),
    db: Session = Depends(get_db),
) -> TenantId:
    """
    Resolve the calling tenant once per request.

    The header carries either the tenant UUID or its subdomain. Unknown
    tenants raise NotFoundError (rendered as 404 by the app handler).
    """
    return resolve_tenant_id(db, x_tenant_id)
