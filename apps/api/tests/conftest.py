"""
Test configuration and fixtures.

Provides:
- A throwaway SQLite database (tables created and dropped per test)
- Factories for tenants, services, staff, customers and bookings
- Local-time helpers pinned to a future Monday in the tenant timezone
- HTTPX AsyncClient bound to the app
"""
import os
import tempfile
import uuid
from datetime import date, datetime, time, timedelta
from typing import AsyncGenerator, Callable, Generator
from zoneinfo import ZoneInfo

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

_DB_DIR = tempfile.mkdtemp(prefix="booking-api-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}")
os.environ["TESTING"] = "1"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEFAULT_TIMEZONE"] = "Asia/Jakarta"

from booking_api.main import app
from booking_api.core.deps import get_db
from booking_api.db.base import Base
from booking_api.db.enums import BookingStatus, LocationType
from booking_api.db.models import (
    Booking,
    Customer,
    Service,
    Staff,
    StaffCapability,
    StaffScheduleEntry,
    Tenant,
)
from booking_api.db.session import SessionLocal, engine

TENANT_TZ = ZoneInfo("Asia/Jakarta")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    Services commit and roll back on their own (and concurrency tests use
    several sessions), so isolation comes from recreating the tables rather
    than from an outer transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# Time helpers
# =============================================================================

def next_monday(min_days_ahead: int = 2) -> date:
    """A Monday at least min_days_ahead days from today (tenant local)."""
    today = datetime.now(TENANT_TZ).date()
    days_until_monday = (7 - today.weekday()) % 7
    while days_until_monday < min_days_ahead:
        days_until_monday += 7
    return today + timedelta(days=days_until_monday)


@pytest.fixture
def monday() -> date:
    return next_monday()


@pytest.fixture
def at(monday: date) -> Callable[..., datetime]:
    """at(10, 30) -> 10:30 tenant-local on the test Monday (aware datetime)."""
    def _at(hour: int, minute: int = 0, day: date | None = None) -> datetime:
        return datetime.combine(day or monday, time(hour, minute), tzinfo=TENANT_TZ)
    return _at


# =============================================================================
# Entity factories
# =============================================================================

@pytest.fixture
def tenant(db: Session) -> Tenant:
    tenant = Tenant(
        id=uuid.uuid4(),
        name="Test Salon",
        subdomain=f"salon-{uuid.uuid4().hex[:8]}",
    )
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def customer(db: Session, tenant: Tenant) -> Customer:
    customer = Customer(
        id=uuid.uuid4(),
        tenant_id=tenant.id,
        name="Test Customer",
        phone="+620000000000",
    )
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def make_service(db: Session, tenant: Tenant) -> Callable[..., Service]:
    def _make(**overrides) -> Service:
        fields = {
            "name": "Home Massage",
            "duration_minutes": 60,
            "location_type": LocationType.BOTH.value,
            "daily_quota_per_staff": None,
            "home_visit_buffer_minutes": None,
            "requires_staff_assignment": True,
        }
        fields.update(overrides)
        service = Service(id=uuid.uuid4(), tenant_id=tenant.id, **fields)
        db.add(service)
        db.commit()
        return service
    return _make


@pytest.fixture
def service(make_service) -> Service:
    """60-minute service with a 30-minute home-visit buffer and no quota."""
    return make_service(home_visit_buffer_minutes=30)


@pytest.fixture
def make_staff(db: Session, tenant: Tenant) -> Callable[..., Staff]:
    """
    Create a staff member, capability-mapped to the given services.

    Works 09:00-17:00 every day unless hours=None (no schedule entries, so
    business hours apply) or other hours are given.
    """
    def _make(
        name: str,
        services: tuple = (),
        is_active: bool = True,
        hours: tuple[time, time] | None = (time(9, 0), time(17, 0)),
        break_window: tuple[time, time] | None = None,
    ) -> Staff:
        staff = Staff(id=uuid.uuid4(), tenant_id=tenant.id, name=name, is_active=is_active)
        db.add(staff)
        db.flush()
        for svc in services:
            db.add(StaffCapability(tenant_id=tenant.id, staff_id=staff.id, service_id=svc.id))
        if hours is not None:
            for dow in range(7):
                db.add(
                    StaffScheduleEntry(
                        tenant_id=tenant.id,
                        staff_id=staff.id,
                        day_of_week=dow,
                        start_time=hours[0],
                        end_time=hours[1],
                        is_available=True,
                        break_start=break_window[0] if break_window else None,
                        break_end=break_window[1] if break_window else None,
                    )
                )
        db.commit()
        return staff
    return _make


@pytest.fixture
def add_booking(db: Session, tenant: Tenant, customer: Customer) -> Callable[..., Booking]:
    """Insert a booking row directly, bypassing scheduler checks."""
    def _add(
        service: Service,
        staff: Staff | None,
        start: datetime,
        duration_minutes: int | None = None,
        status: BookingStatus = BookingStatus.PENDING,
        is_home_visit: bool = True,
    ) -> Booking:
        duration = duration_minutes or service.duration_minutes
        booking = Booking(
            id=uuid.uuid4(),
            tenant_id=tenant.id,
            service_id=service.id,
            customer_id=customer.id,
            assigned_staff_id=staff.id if staff else None,
            scheduled_at=start,
            scheduled_end=start + timedelta(minutes=duration),
            duration_minutes=duration,
            buffer_minutes=service.buffer_for(is_home_visit),
            status=status.value,
            is_home_visit=is_home_visit,
        )
        db.add(booking)
        db.commit()
        return booking
    return _add


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient sharing the test session with the app."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
