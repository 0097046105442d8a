"""Staff weekly schedules, leave and active flag.

A staff member's week is a map ``day_of_week -> StaffScheduleEntry`` (Sunday=0).
Writing a day replaces whatever was stored for it. Days with no entry follow
the tenant's business hours.
"""

import logging
from datetime import date, datetime, time
from typing import NamedTuple
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.core.structured_logging import build_log_context
from booking_api.db.models import Staff, StaffLeave, StaffScheduleEntry
from booking_api.services import calendar_service, catalog_service
from booking_api.services.scheduling_errors import BookingValidationError, NotFoundError

logger = logging.getLogger(__name__)


class WorkingWindow(NamedTuple):
    """A staff member's working hours on one local date."""
    is_available: bool
    start_time: time
    end_time: time
    break_start: time | None = None
    break_end: time | None = None


# =============================================================================
# Weekly schedule
# =============================================================================

def get_weekly_schedule(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
) -> dict[int, StaffScheduleEntry]:
    entries = db.query(StaffScheduleEntry).filter(
        StaffScheduleEntry.tenant_id == tenant_id,
        StaffScheduleEntry.staff_id == staff_id,
    ).all()
    return {entry.day_of_week: entry for entry in entries}


def _validate_entry(
    day_of_week: int,
    start_time: time,
    end_time: time,
    break_start: time | None,
    break_end: time | None,
) -> None:
    if not 0 <= day_of_week <= 6:
        raise BookingValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if start_time >= end_time:
        raise BookingValidationError("start_time must be before end_time")
    if (break_start is None) != (break_end is None):
        raise BookingValidationError("break_start and break_end must be set together")
    if break_start is not None and break_end is not None:
        if not (start_time <= break_start < break_end <= end_time):
            raise BookingValidationError("Break must fall inside working hours")


def _upsert_entry(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    *,
    day_of_week: int,
    start_time: time,
    end_time: time,
    is_available: bool = True,
    break_start: time | None = None,
    break_end: time | None = None,
) -> StaffScheduleEntry:
    _validate_entry(day_of_week, start_time, end_time, break_start, break_end)

    entry = db.query(StaffScheduleEntry).filter(
        StaffScheduleEntry.staff_id == staff_id,
        StaffScheduleEntry.day_of_week == day_of_week,
    ).first()
    if entry is None:
        entry = StaffScheduleEntry(
            tenant_id=tenant_id,
            staff_id=staff_id,
            day_of_week=day_of_week,
        )
        db.add(entry)
    entry.start_time = start_time
    entry.end_time = end_time
    entry.is_available = is_available
    entry.break_start = break_start
    entry.break_end = break_end
    return entry


def upsert_schedule_entry(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    **fields,
) -> StaffScheduleEntry:
    """Set one day of a staff member's week, replacing any existing entry."""
    catalog_service.get_staff(db, tenant_id, staff_id)
    entry = _upsert_entry(db, tenant_id, staff_id, **fields)
    db.commit()
    db.refresh(entry)
    return entry


def set_weekly_schedule(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    entries: list[dict],
) -> dict[int, StaffScheduleEntry]:
    """Upsert several days at once (single transaction)."""
    catalog_service.get_staff(db, tenant_id, staff_id)
    seen: set[int] = set()
    for fields in entries:
        dow = fields["day_of_week"]
        if dow in seen:
            db.rollback()
            raise BookingValidationError(f"Duplicate entry for day_of_week {dow}")
        seen.add(dow)
        try:
            _upsert_entry(db, tenant_id, staff_id, **fields)
        except BookingValidationError:
            db.rollback()
            raise
    db.commit()

    logger.info(
        "staff_schedule_updated",
        extra=build_log_context(tenant_id=tenant_id, staff_id=staff_id),
    )
    return get_weekly_schedule(db, tenant_id, staff_id)


def get_working_window(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    on_date: date,
) -> WorkingWindow:
    """Working hours for a local date; falls back to business hours when unset."""
    dow = calendar_service.day_of_week(on_date)
    entry = db.query(StaffScheduleEntry).filter(
        StaffScheduleEntry.tenant_id == tenant_id,
        StaffScheduleEntry.staff_id == staff_id,
        StaffScheduleEntry.day_of_week == dow,
    ).first()
    if entry is not None:
        return WorkingWindow(
            is_available=entry.is_available,
            start_time=entry.start_time,
            end_time=entry.end_time,
            break_start=entry.break_start,
            break_end=entry.break_end,
        )

    hours = calendar_service.get_day_hours(db, tenant_id, on_date)
    return WorkingWindow(hours.is_open, hours.open_time, hours.close_time)


def within_working_hours(
    window: WorkingWindow,
    local_start: datetime,
    local_end: datetime,
) -> bool:
    """True if [local_start, local_end) fits the window and misses the break."""
    if not window.is_available:
        return False
    if local_start.date() != local_end.date():
        return False
    start, end = local_start.time(), local_end.time()
    if start < window.start_time or end > window.end_time:
        return False
    if window.break_start is not None and window.break_end is not None:
        if start < window.break_end and window.break_start < end:
            return False
    return True


# =============================================================================
# Active flag
# =============================================================================

def set_staff_active(db: Session, tenant_id: UUID, staff_id: UUID, is_active: bool) -> Staff:
    staff = catalog_service.get_staff(db, tenant_id, staff_id)
    staff.is_active = is_active
    db.commit()
    db.refresh(staff)

    logger.info(
        "staff_status_changed",
        extra={
            **build_log_context(tenant_id=tenant_id, staff_id=staff_id),
            "is_active": is_active,
        },
    )
    return staff


# =============================================================================
# Leave
# =============================================================================

def create_leave(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    *,
    date_start: date,
    date_end: date,
    reason: str,
) -> StaffLeave:
    catalog_service.get_staff(db, tenant_id, staff_id)
    if date_start > date_end:
        raise BookingValidationError("date_start must not be after date_end")

    leave = StaffLeave(
        tenant_id=tenant_id,
        staff_id=staff_id,
        date_start=date_start,
        date_end=date_end,
        reason=reason,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def list_leave(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    date_from: date | None = None,
) -> list[StaffLeave]:
    query = db.query(StaffLeave).filter(
        StaffLeave.tenant_id == tenant_id,
        StaffLeave.staff_id == staff_id,
    )
    if date_from:
        query = query.filter(StaffLeave.date_end >= date_from)
    return query.order_by(StaffLeave.date_start).all()


def delete_leave(db: Session, tenant_id: UUID, staff_id: UUID, leave_id: UUID) -> None:
    leave = db.query(StaffLeave).filter(
        StaffLeave.id == leave_id,
        StaffLeave.tenant_id == tenant_id,
        StaffLeave.staff_id == staff_id,
    ).first()
    if not leave:
        raise NotFoundError("Leave not found", leave_id=leave_id)
    db.delete(leave)
    db.commit()


def find_leave(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    on_date: date,
) -> StaffLeave | None:
    return db.query(StaffLeave).filter(
        StaffLeave.tenant_id == tenant_id,
        StaffLeave.staff_id == staff_id,
        StaffLeave.date_start <= on_date,
        StaffLeave.date_end >= on_date,
    ).first()
