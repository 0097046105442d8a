"""Per-staff day ledger guarding check-then-act reservations.

The conflict and quota checks read bookings, then the scheduler writes one.
To make that sequence atomic, every write that puts a booking on a staff
calendar first compare-and-swaps a version counter for each local date the
buffered interval touches:

1. ``read_versions`` before any eligibility check
2. run conflict / quota / working-hours checks
3. ``claim_staff_days`` in the same transaction as the booking write

If another writer committed a booking for the same staff and date in
between, the version has moved and the claim fails with
``SlotUnavailableError``. The caller re-runs the checks against fresh state.
"""

import logging
from datetime import date, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_api.core.structured_logging import build_log_context
from booking_api.db.models import StaffDayLedger
from booking_api.db.models._common import utcnow
from booking_api.services.scheduling_errors import SlotUnavailableError

logger = logging.getLogger(__name__)


def ledger_dates(start: datetime, end: datetime, tz: ZoneInfo) -> list[date]:
    """Local dates touched by [start, end)."""
    first = start.astimezone(tz).date()
    last = (end - timedelta(microseconds=1)).astimezone(tz).date()
    if last < first:
        last = first
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def read_versions(db: Session, staff_id: UUID, dates: list[date]) -> dict[date, int]:
    """Current ledger version per date; dates never claimed read as 0."""
    rows = db.query(StaffDayLedger.ledger_date, StaffDayLedger.version).filter(
        StaffDayLedger.staff_id == staff_id,
        StaffDayLedger.ledger_date.in_(dates),
    ).all()
    versions = {ledger_date: version for ledger_date, version in rows}
    return {d: versions.get(d, 0) for d in dates}


def _lost_race(db: Session, tenant_id: UUID, staff_id: UUID, ledger_date: date) -> SlotUnavailableError:
    db.rollback()
    logger.info(
        "slot_reservation_lost_race",
        extra={
            **build_log_context(tenant_id=tenant_id, staff_id=staff_id),
            "ledger_date": ledger_date.isoformat(),
        },
    )
    return SlotUnavailableError(staff_id=staff_id, date=ledger_date.isoformat())


def claim_staff_days(
    db: Session,
    tenant_id: UUID,
    staff_id: UUID,
    seen_versions: dict[date, int],
) -> None:
    """
    Bump each date's version if it still equals what was read.

    Does not commit. On a lost race the transaction is rolled back and
    SlotUnavailableError is raised. Dates are claimed in order so two
    writers spanning the same dates wait on each other instead of
    deadlocking.
    """
    for ledger_date in sorted(seen_versions):
        seen = seen_versions[ledger_date]
        if seen == 0:
            db.add(
                StaffDayLedger(
                    tenant_id=tenant_id,
                    staff_id=staff_id,
                    ledger_date=ledger_date,
                    version=1,
                )
            )
            try:
                db.flush()
            except IntegrityError:
                raise _lost_race(db, tenant_id, staff_id, ledger_date)
            continue

        result = db.execute(
            update(StaffDayLedger)
            .where(
                StaffDayLedger.staff_id == staff_id,
                StaffDayLedger.ledger_date == ledger_date,
                StaffDayLedger.version == seen,
            )
            .values(version=seen + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise _lost_race(db, tenant_id, staff_id, ledger_date)
