"""
HTTP tests for the bookings and availability routers.

Coverage:
- Tenant resolution from X-Tenant-ID (UUID or subdomain)
- Error payload shape (code, scope, retryable) and status codes
- Assignment and lifecycle endpoints, history
- Availability listings
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from booking_api.db.models import Tenant
from booking_api.services import slot_ledger_service


def _headers(tenant, by="id"):
    value = str(tenant.id) if by == "id" else tenant.subdomain
    return {"X-Tenant-ID": value}


def _payload(service, customer, start, **extra):
    body = {
        "service_id": str(service.id),
        "customer_id": str(customer.id),
        "scheduled_at": start.isoformat(),
        "is_home_visit": True,
    }
    body.update({k: (str(v) if k.endswith("_id") else v) for k, v in extra.items()})
    return body


# =============================================================================
# Tenant resolution
# =============================================================================

class TestTenantHeader:

    @pytest.mark.asyncio
    async def test_create_with_uuid_header(self, client: AsyncClient, tenant, customer, service, at):
        response = await client.post(
            "/bookings", json=_payload(service, customer, at(10, 0)), headers=_headers(tenant)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["assigned_staff_id"] is None
        assert data["tenant_id"] == str(tenant.id)
        assert data["buffer_minutes"] == 30

    @pytest.mark.asyncio
    async def test_create_with_subdomain_header(
        self, client: AsyncClient, tenant, customer, service, make_staff, at
    ):
        staff = make_staff("Ana", services=[service])
        response = await client.post(
            "/bookings",
            json=_payload(service, customer, at(10, 0), staff_id=staff.id),
            headers=_headers(tenant, by="subdomain"),
        )

        assert response.status_code == 201
        assert response.json()["assigned_staff_id"] == str(staff.id)

    @pytest.mark.asyncio
    async def test_missing_header_rejected(self, client: AsyncClient, tenant, customer, service, at):
        response = await client.post("/bookings", json=_payload(service, customer, at(10, 0)))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client: AsyncClient, tenant):
        response = await client.get("/bookings", headers={"X-Tenant-ID": "nobody-here"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_bookings_are_tenant_scoped(self, client: AsyncClient, db, tenant, customer, service, at):
        created = await client.post(
            "/bookings", json=_payload(service, customer, at(10, 0)), headers=_headers(tenant)
        )
        other = Tenant(name="Other", subdomain="other-salon")
        db.add(other)
        db.commit()

        response = await client.get(
            f"/bookings/{created.json()['id']}", headers={"X-Tenant-ID": "other-salon"}
        )
        assert response.status_code == 404


# =============================================================================
# Error payloads
# =============================================================================

class TestErrorResponses:

    @pytest.mark.asyncio
    async def test_time_conflict_payload(self, client: AsyncClient, tenant, customer, service, make_staff, at):
        staff = make_staff("Ana", services=[service])
        first = await client.post(
            "/bookings",
            json=_payload(service, customer, at(9, 0), staff_id=staff.id),
            headers=_headers(tenant),
        )
        assert first.status_code == 201

        response = await client.post(
            "/bookings",
            json=_payload(service, customer, at(10, 15), staff_id=staff.id),
            headers=_headers(tenant),
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "time_conflict"
        assert data["scope"] == "slot"
        assert data["retryable"] is False
        assert data["staff_id"] == str(staff.id)

    @pytest.mark.asyncio
    async def test_outside_business_hours(self, client: AsyncClient, tenant, customer, service, at):
        response = await client.post(
            "/bookings", json=_payload(service, customer, at(7, 0)), headers=_headers(tenant)
        )

        assert response.status_code == 422
        assert response.json()["error"] == "outside_business_hours"
        assert response.json()["scope"] == "date"

    @pytest.mark.asyncio
    async def test_past_time_is_validation_error(self, client: AsyncClient, tenant, customer, service):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        response = await client.post(
            "/bookings", json=_payload(service, customer, past), headers=_headers(tenant)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["scope"] == "request"

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(
        self, client: AsyncClient, tenant, customer, service, make_staff, at, monkeypatch
    ):
        staff = make_staff("Ana", services=[service])

        def slow_claim(db, tenant_id, staff_id, seen):
            raise OperationalError("UPDATE staff_day_ledger", {}, Exception("statement timeout"))

        monkeypatch.setattr(slot_ledger_service, "claim_staff_days", slow_claim)

        response = await client.post(
            "/bookings",
            json=_payload(service, customer, at(10, 0), staff_id=staff.id),
            headers=_headers(tenant),
        )

        assert response.status_code == 503
        assert response.json()["retryable"] is True
        assert response.headers["Retry-After"] == "1"

    @pytest.mark.asyncio
    async def test_unknown_booking(self, client: AsyncClient, tenant):
        response = await client.get(
            "/bookings/00000000-0000-0000-0000-000000000000", headers=_headers(tenant)
        )
        assert response.status_code == 404


# =============================================================================
# Assignment and lifecycle
# =============================================================================

class TestBookingLifecycle:

    @pytest.mark.asyncio
    async def test_assign_confirm_cancel(self, client: AsyncClient, tenant, customer, service, make_staff, at):
        staff = make_staff("Ana", services=[service])
        headers = _headers(tenant)
        created = await client.post("/bookings", json=_payload(service, customer, at(10, 0)), headers=headers)
        booking_id = created.json()["id"]
        assert created.json()["is_unassigned"] is True

        response = await client.post(
            f"/bookings/{booking_id}/assign-staff", json={"staff_id": str(staff.id)}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["assigned_staff_id"] == str(staff.id)
        assert response.json()["is_unassigned"] is False

        response = await client.delete(f"/bookings/{booking_id}/assign-staff", headers=headers)
        assert response.status_code == 200
        assert response.json()["assigned_staff_id"] is None
        assert response.json()["is_unassigned"] is True

        response = await client.post(f"/bookings/{booking_id}/confirm", headers=headers)
        assert response.json()["status"] == "confirmed"

        response = await client.post(
            f"/bookings/{booking_id}/cancel", json={"reason": "Rescheduled"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "Rescheduled"

        response = await client.post(f"/bookings/{booking_id}/confirm", headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_status_transition"

        response = await client.get(f"/bookings/{booking_id}/events", headers=headers)
        assert [e["event_type"] for e in response.json()] == [
            "created",
            "staff_assigned",
            "staff_unassigned",
            "confirmed",
            "cancelled",
        ]

    @pytest.mark.asyncio
    async def test_cancel_without_body(self, client: AsyncClient, tenant, customer, service, at):
        headers = _headers(tenant)
        created = await client.post("/bookings", json=_payload(service, customer, at(10, 0)), headers=headers)

        response = await client.post(f"/bookings/{created.json()['id']}/cancel", headers=headers)

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] is None

    @pytest.mark.asyncio
    async def test_assign_conflict_reports_concrete_error(
        self, client: AsyncClient, tenant, customer, service, make_staff, at
    ):
        staff = make_staff("Ana", services=[service])
        headers = _headers(tenant)
        await client.post(
            "/bookings", json=_payload(service, customer, at(10, 0), staff_id=staff.id), headers=headers
        )
        pending = await client.post("/bookings", json=_payload(service, customer, at(10, 30)), headers=headers)

        response = await client.post(
            f"/bookings/{pending.json()['id']}/assign-staff",
            json={"staff_id": str(staff.id)},
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "time_conflict"
        assert response.json()["staff_id"] == str(staff.id)

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, tenant, customer, service, make_staff, at, monday):
        staff = make_staff("Ana", services=[service])
        headers = _headers(tenant)
        await client.post(
            "/bookings", json=_payload(service, customer, at(9, 0), staff_id=staff.id), headers=headers
        )
        await client.post("/bookings", json=_payload(service, customer, at(13, 0)), headers=headers)

        response = await client.get("/bookings", headers=headers)
        assert response.json()["total"] == 2

        response = await client.get("/bookings", params={"unassigned": "true"}, headers=headers)
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["assigned_staff_id"] is None

        response = await client.get(
            "/bookings",
            params={"staff_id": str(staff.id), "date_start": monday.isoformat(), "date_end": monday.isoformat()},
            headers=headers,
        )
        assert response.json()["total"] == 1

        response = await client.get("/bookings", params={"status": "confirmed"}, headers=headers)
        assert response.json()["total"] == 0


# =============================================================================
# Availability
# =============================================================================

class TestAvailabilityEndpoints:

    @pytest.mark.asyncio
    async def test_available_staff_ranked(
        self, client: AsyncClient, tenant, service, make_staff, add_booking, at
    ):
        ana = make_staff("Ana", services=[service])
        make_staff("Budi", services=[service])
        add_booking(service, ana, at(10, 0))

        response = await client.get(
            "/availability/staff",
            params={"service_id": str(service.id), "scheduled_at": at(10, 30).isoformat()},
            headers=_headers(tenant),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["duration_minutes"] == 60
        assert data["buffer_minutes"] == 30
        assert [s["staff_name"] for s in data["staff"]] == ["Budi", "Ana"]
        assert data["staff"][0]["is_available"] is True
        assert data["staff"][1]["unavailable_reason"] == "time_conflict"

    @pytest.mark.asyncio
    async def test_available_slots_for_staff(self, client: AsyncClient, tenant, service, make_staff, monday):
        staff = make_staff("Ana", services=[service])

        response = await client.get(
            "/availability/slots",
            params={
                "service_id": str(service.id),
                "date": monday.isoformat(),
                "staff_id": str(staff.id),
            },
            headers=_headers(tenant),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["on_date"] == monday.isoformat()
        # 09:00 through 16:00 every 30 minutes
        assert len(data["slots"]) == 15
        assert all(slot["staff_ids"] == [str(staff.id)] for slot in data["slots"])

    @pytest.mark.asyncio
    async def test_unknown_service(self, client: AsyncClient, tenant, at):
        response = await client.get(
            "/availability/staff",
            params={
                "service_id": "00000000-0000-0000-0000-000000000000",
                "scheduled_at": at(10, 0).isoformat(),
            },
            headers=_headers(tenant),
        )
        assert response.status_code == 404
