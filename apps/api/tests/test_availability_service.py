"""
Tests for staff availability resolution.

Coverage:
- Each rejection reason, in check order
- Ranking (available first, least loaded, name)
- Quota-exhausted staff sorted after available staff
- Fallback to business hours when a staff member has no schedule
- Slot listing
"""

import uuid
from datetime import time, timedelta

import pytest

from booking_api.db.enums import BookingStatus, UnavailableReason
from booking_api.db.models import StaffLeave
from booking_api.services import (
    availability_service,
    calendar_service,
    capability_service,
    staff_schedule_service,
)
from booking_api.services.availability_service import StaffAvailability, sort_candidates
from booking_api.services.scheduling_errors import NotFoundError


def _by_name(candidates):
    return {c.staff_name: c for c in candidates}


class TestListAvailableStaff:

    def test_unknown_tenant_and_service(self, db, tenant, service, at):
        with pytest.raises(NotFoundError):
            availability_service.list_available_staff(db, uuid.uuid4(), service.id, at(10, 0))
        with pytest.raises(NotFoundError):
            availability_service.list_available_staff(db, tenant.id, uuid.uuid4(), at(10, 0))

    def test_no_capable_staff_is_empty(self, db, tenant, service, make_staff, at):
        make_staff("Unmapped")
        assert availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0)) == []

    def test_capability_can_be_revoked(self, db, tenant, service, make_staff, at):
        staff = make_staff("Ana", services=[service])
        capability_service.set_capability(db, tenant.id, staff.id, service.id, can_perform=False)

        assert availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0)) == []

    def test_inactive_staff(self, db, tenant, service, make_staff, at):
        make_staff("Ana", services=[service], is_active=False)

        [candidate] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0))
        assert not candidate.is_available
        assert candidate.unavailable_reason == UnavailableReason.STAFF_INACTIVE.value

    def test_on_leave(self, db, tenant, service, make_staff, at, monday):
        staff = make_staff("Ana", services=[service])
        db.add(StaffLeave(tenant_id=tenant.id, staff_id=staff.id, date_start=monday,
                          date_end=monday + timedelta(days=2), reason="Family"))
        db.commit()

        [candidate] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0))
        assert candidate.unavailable_reason == UnavailableReason.ON_LEAVE.value

    @pytest.mark.parametrize("hour, minute", [(8, 0), (16, 30), (17, 0)])
    def test_outside_working_hours(self, db, tenant, service, make_staff, at, hour, minute):
        make_staff("Ana", services=[service])

        [candidate] = availability_service.list_available_staff(
            db, tenant.id, service.id, at(hour, minute), buffer_minutes=0,
        )
        assert candidate.unavailable_reason == UnavailableReason.OUTSIDE_WORKING_HOURS.value

    def test_working_hours_edges_are_inclusive(self, db, tenant, service, make_staff, at):
        make_staff("Ana", services=[service])

        for start in (at(9, 0), at(16, 0)):
            [candidate] = availability_service.list_available_staff(
                db, tenant.id, service.id, start, buffer_minutes=0,
            )
            assert candidate.is_available

    def test_break_blocks_overlapping_requests(self, db, tenant, service, make_staff, at):
        make_staff("Ana", services=[service], break_window=(time(12, 0), time(13, 0)))

        [during] = availability_service.list_available_staff(db, tenant.id, service.id, at(11, 30))
        [after] = availability_service.list_available_staff(db, tenant.id, service.id, at(13, 0))
        assert during.unavailable_reason == UnavailableReason.OUTSIDE_WORKING_HOURS.value
        assert after.is_available

    def test_day_off(self, db, tenant, service, make_staff, at, monday):
        staff = make_staff("Ana", services=[service])
        staff_schedule_service.upsert_schedule_entry(
            db, tenant.id, staff.id,
            day_of_week=calendar_service.day_of_week(monday),
            start_time=time(9, 0), end_time=time(17, 0), is_available=False,
        )

        [candidate] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0))
        assert candidate.unavailable_reason == UnavailableReason.OUTSIDE_WORKING_HOURS.value

    def test_no_schedule_falls_back_to_business_hours(self, db, tenant, service, make_staff, at):
        make_staff("Ana", services=[service], hours=None)

        # Default business hours are 08:00-17:00
        [early] = availability_service.list_available_staff(db, tenant.id, service.id, at(8, 0), buffer_minutes=0)
        [late] = availability_service.list_available_staff(db, tenant.id, service.id, at(16, 30), buffer_minutes=0)
        assert early.is_available
        assert late.unavailable_reason == UnavailableReason.OUTSIDE_WORKING_HOURS.value

    def test_buffered_time_conflict(self, db, tenant, service, make_staff, add_booking, at):
        staff = make_staff("Ana", services=[service])
        add_booking(service, staff, at(9, 0))

        [inside_buffer] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 15))
        [clear] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 30))
        assert inside_buffer.unavailable_reason == UnavailableReason.TIME_CONFLICT.value
        assert clear.is_available

    def test_on_premise_uses_no_buffer(self, db, tenant, service, make_staff, add_booking, at):
        staff = make_staff("Ana", services=[service])
        add_booking(service, staff, at(9, 0), is_home_visit=False)

        [candidate] = availability_service.list_available_staff(
            db, tenant.id, service.id, at(10, 0), is_home_visit=False,
        )
        assert candidate.is_available

    def test_cancelled_booking_frees_the_slot(self, db, tenant, service, make_staff, add_booking, at):
        staff = make_staff("Ana", services=[service])
        add_booking(service, staff, at(10, 0), status=BookingStatus.CANCELLED)

        [candidate] = availability_service.list_available_staff(db, tenant.id, service.id, at(10, 0))
        assert candidate.is_available

    def test_quota_exhausted_sorted_after_available(self, db, tenant, make_service, make_staff, add_booking, at):
        service = make_service(daily_quota_per_staff=1)
        # "Aaron" would sort first by name; quota must push him down
        aaron = make_staff("Aaron", services=[service])
        make_staff("Zara", services=[service])
        add_booking(service, aaron, at(9, 0))

        candidates = availability_service.list_available_staff(db, tenant.id, service.id, at(14, 0))

        assert [c.staff_name for c in candidates] == ["Zara", "Aaron"]
        zara, aaron_row = candidates
        assert zara.is_available and zara.home_visit_count == 0 and zara.max_home_visits == 1
        assert not aaron_row.is_available
        assert aaron_row.unavailable_reason == UnavailableReason.QUOTA_EXCEEDED.value
        assert aaron_row.home_visit_count == 1

    def test_quota_ignored_for_on_premise(self, db, tenant, make_service, make_staff, add_booking, at):
        service = make_service(daily_quota_per_staff=1)
        staff = make_staff("Ana", services=[service])
        add_booking(service, staff, at(9, 0))

        [candidate] = availability_service.list_available_staff(
            db, tenant.id, service.id, at(14, 0), is_home_visit=False,
        )
        assert candidate.is_available

    def test_least_loaded_first(self, db, tenant, make_service, make_staff, add_booking, at):
        service = make_service(daily_quota_per_staff=5)
        busy = make_staff("Ana", services=[service])
        make_staff("Budi", services=[service])
        add_booking(service, busy, at(9, 0))

        candidates = availability_service.list_available_staff(db, tenant.id, service.id, at(14, 0))
        assert [c.staff_name for c in candidates] == ["Budi", "Ana"]
        assert all(c.is_available for c in candidates)

    def test_explicit_duration_and_buffer(self, db, tenant, service, make_staff, add_booking, at):
        staff = make_staff("Ana", services=[service])
        add_booking(service, staff, at(12, 0))

        [short] = availability_service.list_available_staff(
            db, tenant.id, service.id, at(11, 15), duration_minutes=30, buffer_minutes=30,
        )
        [no_buffer] = availability_service.list_available_staff(
            db, tenant.id, service.id, at(11, 15), duration_minutes=30, buffer_minutes=0,
        )
        assert short.unavailable_reason == UnavailableReason.TIME_CONFLICT.value
        assert no_buffer.is_available


class TestSortCandidates:

    def test_available_then_load_then_name(self):
        def row(name, available, load):
            return StaffAvailability(uuid.uuid4(), name, available, None if available else "x", load, None)

        ordered = sort_candidates([
            row("Citra", False, 0),
            row("Budi", True, 2),
            row("ana", True, 2),
            row("Dewi", True, 0),
        ])
        assert [r.staff_name for r in ordered] == ["Dewi", "ana", "Budi", "Citra"]


class TestAvailableSlots:

    def test_slots_follow_open_window_and_bookings(self, db, tenant, make_service, make_staff, add_booking, at, monday):
        service = make_service(duration_minutes=60)
        staff = make_staff("Ana", services=[service], hours=None)
        add_booking(service, staff, at(10, 0), is_home_visit=False)

        slots = availability_service.get_available_slots(
            db, tenant.id, service.id, monday, is_home_visit=False, slot_interval_minutes=60,
        )
        starts = [s.start.astimezone(at(0).tzinfo).hour for s in slots]

        # Default hours 08:00-17:00, 10:00 taken
        assert starts == [8, 9, 11, 12, 13, 14, 15, 16]
        assert all(s.staff_ids == [staff.id] for s in slots)

    def test_blocked_date_has_no_slots(self, db, tenant, service, make_staff, monday):
        make_staff("Ana", services=[service])
        calendar_service.create_blocked_date(db, tenant.id, on_date=monday)

        assert availability_service.get_available_slots(db, tenant.id, service.id, monday) == []

    def test_location_type_mismatch_has_no_slots(self, db, tenant, make_service, make_staff, monday):
        service = make_service(location_type="on_premise")
        make_staff("Ana", services=[service])

        assert availability_service.get_available_slots(
            db, tenant.id, service.id, monday, is_home_visit=True,
        ) == []

    def test_specific_staff_must_be_capable(self, db, tenant, service, make_staff, monday):
        outsider = make_staff("Outsider")

        assert availability_service.get_available_slots(
            db, tenant.id, service.id, monday, staff_id=outsider.id,
        ) == []

    def test_on_premise_without_staff_requirement_lists_open_window(
        self, db, tenant, make_service, make_staff, add_booking, at, monday
    ):
        service = make_service(requires_staff_assignment=False)

        slots = availability_service.get_available_slots(db, tenant.id, service.id, monday)

        # 08:00 through 16:00 every 30 minutes, nobody mapped
        assert len(slots) == 17
        assert all(s.staff_ids == [] for s in slots)

        staff = make_staff("Ana", services=[service], hours=None)
        add_booking(service, staff, at(10, 0), is_home_visit=False)
        slots = availability_service.get_available_slots(db, tenant.id, service.id, monday)

        by_hour = {s.start.astimezone(at(0).tzinfo).hour: s for s in slots if s.start.minute == 0}
        assert len(slots) == 17
        assert by_hour[10].staff_ids == []
        assert by_hour[12].staff_ids == [staff.id]

    def test_home_visit_always_filters_by_staff(self, db, tenant, make_service, make_staff, monday):
        service = make_service(requires_staff_assignment=False)

        assert availability_service.get_available_slots(
            db, tenant.id, service.id, monday, is_home_visit=True,
        ) == []

        staff = make_staff("Ana", services=[service])
        slots = availability_service.get_available_slots(
            db, tenant.id, service.id, monday, is_home_visit=True,
        )
        # Ana works 09:00-17:00
        assert len(slots) == 15
        assert all(s.staff_ids == [staff.id] for s in slots)

    def test_staff_requirement_filters_on_premise_slots(self, db, tenant, service, monday):
        assert service.requires_staff_assignment

        assert availability_service.get_available_slots(db, tenant.id, service.id, monday) == []
