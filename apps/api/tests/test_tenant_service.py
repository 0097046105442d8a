"""Tests for tenant resolution at the request boundary."""

import uuid

import pytest

from booking_api.db.models import Tenant
from booking_api.services import tenant_service
from booking_api.services.scheduling_errors import NotFoundError


class TestResolveTenantId:

    def test_by_uuid_string_and_uuid(self, db, tenant):
        assert tenant_service.resolve_tenant_id(db, str(tenant.id)) == tenant.id
        assert tenant_service.resolve_tenant_id(db, tenant.id) == tenant.id

    def test_by_subdomain_case_insensitive(self, db, tenant):
        assert tenant_service.resolve_tenant_id(db, tenant.subdomain.upper()) == tenant.id
        assert tenant_service.resolve_tenant_id(db, f"  {tenant.subdomain} ") == tenant.id

    @pytest.mark.parametrize("identifier", ["", "   ", "no-such-tenant"])
    def test_unknown_identifier(self, db, tenant, identifier):
        with pytest.raises(NotFoundError):
            tenant_service.resolve_tenant_id(db, identifier)

    def test_unknown_uuid(self, db, tenant):
        with pytest.raises(NotFoundError):
            tenant_service.resolve_tenant_id(db, str(uuid.uuid4()))

    def test_inactive_tenant_not_resolved(self, db):
        dormant = Tenant(name="Dormant", subdomain="dormant", is_active=False)
        db.add(dormant)
        db.commit()

        with pytest.raises(NotFoundError):
            tenant_service.resolve_tenant_id(db, "dormant")
        with pytest.raises(NotFoundError):
            tenant_service.resolve_tenant_id(db, dormant.id)


def test_get_tenant_unknown(db):
    with pytest.raises(NotFoundError) as exc_info:
        tenant_service.get_tenant(db, uuid.uuid4())
    assert exc_info.value.status_code == 404
