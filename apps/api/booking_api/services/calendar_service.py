"""Tenant calendar: business hours, blocked dates and local-time helpers.

Read paths never fail on missing configuration. A tenant with no
business-hours row gets the default calendar from settings, and a configured
schedule without an entry for a weekday falls back to the same default day.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, NamedTuple
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from booking_api.core.config import settings
from booking_api.core.structured_logging import build_log_context
from booking_api.db.enums import DAY_KEYS, RecurringPattern
from booking_api.db.models import BlockedDate, BusinessHours
from booking_api.services.scheduling_errors import BookingValidationError, NotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================

class DayHours(NamedTuple):
    """Opening window for one weekday (local wall-clock times)."""
    is_open: bool
    open_time: time
    close_time: time


class BlockedDateRule(NamedTuple):
    """A blocked date and how it repeats. pattern=None means one-off."""
    date: date
    pattern: str | None = None
    until: date | None = None


# =============================================================================
# Time helpers
# =============================================================================

def get_timezone(name: str | None) -> ZoneInfo:
    """Get a ZoneInfo timezone with safe fallback to the default."""
    if not name:
        return ZoneInfo(settings.DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("calendar_unknown_timezone", extra={"timezone": name})
        return ZoneInfo(settings.DEFAULT_TIMEZONE)


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time."""
    try:
        hours, minutes = value.split(":", 1)
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as exc:
        raise BookingValidationError(f"Invalid time '{value}', expected HH:MM") from exc


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def day_of_week(on_date: date) -> int:
    """Calendar day number, Sunday=0 ... Saturday=6."""
    return (on_date.weekday() + 1) % 7


def normalize_instant(value: datetime, tz: ZoneInfo) -> datetime:
    """Make value timezone-aware (naive = tenant local time) and convert to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


def local_day_bounds(on_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants for [local midnight, next local midnight)."""
    start = datetime.combine(on_date, time.min, tzinfo=tz)
    end = datetime.combine(on_date + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def get_tenant_timezone(db: Session, tenant_id: UUID) -> ZoneInfo:
    tz_name = db.query(BusinessHours.timezone).filter(
        BusinessHours.tenant_id == tenant_id,
    ).scalar()
    return get_timezone(tz_name)


# =============================================================================
# Business hours
# =============================================================================

def default_day_hours() -> DayHours:
    return DayHours(
        is_open=settings.DEFAULT_CALENDAR_OPEN,
        open_time=parse_hhmm(settings.DEFAULT_OPEN_TIME),
        close_time=parse_hhmm(settings.DEFAULT_CLOSE_TIME),
    )


def resolve_day_hours(schedule: dict[str, Any] | None, dow: int) -> DayHours:
    """Pick the opening window for a weekday out of a stored schedule."""
    if not schedule:
        return default_day_hours()
    entry = schedule.get(DAY_KEYS[dow])
    if not entry:
        return default_day_hours()
    if not entry.get("isOpen"):
        return DayHours(False, time.min, time.min)
    try:
        return DayHours(
            True,
            parse_hhmm(entry.get("openTime", "")),
            parse_hhmm(entry.get("closeTime", "")),
        )
    except BookingValidationError:
        # Stored rows are validated on write; a broken one keeps the day closed
        logger.warning("calendar_invalid_day_entry", extra={"day": DAY_KEYS[dow]})
        return DayHours(False, time.min, time.min)


def get_business_hours(db: Session, tenant_id: UUID) -> BusinessHours | None:
    return db.query(BusinessHours).filter(BusinessHours.tenant_id == tenant_id).first()


def get_day_hours(db: Session, tenant_id: UUID, on_date: date) -> DayHours:
    hours = get_business_hours(db, tenant_id)
    return resolve_day_hours(hours.schedule if hours else None, day_of_week(on_date))


def window_contains(hours: DayHours, local_start: datetime, local_end: datetime) -> bool:
    """True if [local_start, local_end) sits inside the day's open window."""
    if not hours.is_open:
        return False
    if local_start.date() != local_end.date():
        return False
    return hours.open_time <= local_start.time() and local_end.time() <= hours.close_time


def is_open(
    db: Session,
    tenant_id: UUID,
    start: datetime,
    duration_minutes: int,
) -> bool:
    """Check the tenant is open for the whole of [start, start + duration)."""
    tz = get_tenant_timezone(db, tenant_id)
    local_start = normalize_instant(start, tz).astimezone(tz)
    local_end = local_start + timedelta(minutes=duration_minutes)
    hours = get_day_hours(db, tenant_id, local_start.date())
    return window_contains(hours, local_start, local_end)


def get_open_window(
    db: Session,
    tenant_id: UUID,
    on_date: date,
) -> tuple[datetime, datetime] | None:
    """UTC open window for a local date, or None if closed."""
    tz = get_tenant_timezone(db, tenant_id)
    hours = get_day_hours(db, tenant_id, on_date)
    if not hours.is_open or hours.open_time >= hours.close_time:
        return None
    opens = datetime.combine(on_date, hours.open_time, tzinfo=tz)
    closes = datetime.combine(on_date, hours.close_time, tzinfo=tz)
    return opens.astimezone(timezone.utc), closes.astimezone(timezone.utc)


def effective_schedule(db: Session, tenant_id: UUID) -> dict[str, dict[str, Any]]:
    """Full seven-day schedule with defaults filled in."""
    hours = get_business_hours(db, tenant_id)
    schedule = hours.schedule if hours else None
    result: dict[str, dict[str, Any]] = {}
    for dow, key in enumerate(DAY_KEYS):
        day = resolve_day_hours(schedule, dow)
        result[key] = {
            "isOpen": day.is_open,
            "openTime": format_hhmm(day.open_time) if day.is_open else None,
            "closeTime": format_hhmm(day.close_time) if day.is_open else None,
        }
    return result


def _validate_schedule(schedule: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, entry in schedule.items():
        if key not in DAY_KEYS:
            raise BookingValidationError(f"Unknown day '{key}'")
        is_day_open = bool(entry.get("isOpen"))
        if not is_day_open:
            cleaned[key] = {"isOpen": False}
            continue
        open_time = parse_hhmm(entry.get("openTime", ""))
        close_time = parse_hhmm(entry.get("closeTime", ""))
        if open_time >= close_time:
            raise BookingValidationError(f"{key}: openTime must be before closeTime")
        cleaned[key] = {
            "isOpen": True,
            "openTime": format_hhmm(open_time),
            "closeTime": format_hhmm(close_time),
        }
    return cleaned


def upsert_business_hours(
    db: Session,
    tenant_id: UUID,
    schedule: dict[str, Any],
    timezone_name: str | None = None,
) -> BusinessHours:
    """Create or replace the tenant's weekly business hours."""
    cleaned = _validate_schedule(schedule)
    tz_name = timezone_name or settings.DEFAULT_TIMEZONE
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BookingValidationError(f"Unknown timezone '{tz_name}'") from exc

    hours = get_business_hours(db, tenant_id)
    if hours:
        hours.schedule = cleaned
        hours.timezone = tz_name
    else:
        hours = BusinessHours(tenant_id=tenant_id, schedule=cleaned, timezone=tz_name)
        db.add(hours)
    db.commit()
    db.refresh(hours)

    logger.info("business_hours_updated", extra=build_log_context(tenant_id=tenant_id))
    return hours


# =============================================================================
# Blocked dates
# =============================================================================

def blocked_rule_matches(rule: BlockedDateRule, target: date) -> bool:
    """Evaluate a (possibly recurring) blocked-date rule against one date."""
    if target < rule.date:
        return False
    if rule.until is not None and target > rule.until:
        return False

    if rule.pattern is None:
        return target == rule.date
    if rule.pattern == RecurringPattern.DAILY.value:
        return True
    if rule.pattern == RecurringPattern.WEEKLY.value:
        return target.weekday() == rule.date.weekday()
    if rule.pattern == RecurringPattern.MONTHLY.value:
        # Exact day of month only: a rule on the 31st skips shorter months
        return target.day == rule.date.day
    if rule.pattern == RecurringPattern.YEARLY.value:
        return (target.month, target.day) == (rule.date.month, rule.date.day)
    return target == rule.date


def rule_for(blocked: BlockedDate) -> BlockedDateRule:
    return BlockedDateRule(
        date=blocked.date,
        pattern=blocked.recurring_pattern if blocked.is_recurring else None,
        until=blocked.recurring_until if blocked.is_recurring else None,
    )


def find_blocking_date(db: Session, tenant_id: UUID, on_date: date) -> BlockedDate | None:
    """Return the first blocked-date entry matching on_date, if any."""
    candidates = db.query(BlockedDate).filter(
        BlockedDate.tenant_id == tenant_id,
        or_(
            BlockedDate.date == on_date,
            and_(BlockedDate.is_recurring.is_(True), BlockedDate.date <= on_date),
        ),
    ).order_by(BlockedDate.date).all()
    for blocked in candidates:
        if blocked_rule_matches(rule_for(blocked), on_date):
            return blocked
    return None


def is_blocked(db: Session, tenant_id: UUID, on_date: date) -> bool:
    return find_blocking_date(db, tenant_id, on_date) is not None


def create_blocked_date(
    db: Session,
    tenant_id: UUID,
    *,
    on_date: date,
    reason: str | None = None,
    is_recurring: bool = False,
    recurring_pattern: RecurringPattern | str | None = None,
    recurring_until: date | None = None,
) -> BlockedDate:
    if isinstance(recurring_pattern, RecurringPattern):
        recurring_pattern = recurring_pattern.value
    if is_recurring and not recurring_pattern:
        raise BookingValidationError("recurring_pattern is required for recurring dates")
    if recurring_pattern and recurring_pattern not in {p.value for p in RecurringPattern}:
        raise BookingValidationError(f"Unknown recurring pattern '{recurring_pattern}'")
    if recurring_until and recurring_until < on_date:
        raise BookingValidationError("recurring_until must not be before date")

    blocked = BlockedDate(
        tenant_id=tenant_id,
        date=on_date,
        reason=reason,
        is_recurring=is_recurring,
        recurring_pattern=recurring_pattern if is_recurring else None,
        recurring_until=recurring_until if is_recurring else None,
    )
    db.add(blocked)
    db.commit()
    db.refresh(blocked)

    logger.info(
        "blocked_date_created",
        extra={**build_log_context(tenant_id=tenant_id), "date": on_date.isoformat()},
    )
    return blocked


def list_blocked_dates(
    db: Session,
    tenant_id: UUID,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[BlockedDate]:
    """List blocked-date entries; recurring entries are kept when they start before date_to."""
    query = db.query(BlockedDate).filter(BlockedDate.tenant_id == tenant_id)
    if date_to:
        query = query.filter(BlockedDate.date <= date_to)
    if date_from:
        query = query.filter(
            or_(
                BlockedDate.date >= date_from,
                and_(
                    BlockedDate.is_recurring.is_(True),
                    or_(
                        BlockedDate.recurring_until.is_(None),
                        BlockedDate.recurring_until >= date_from,
                    ),
                ),
            )
        )
    return query.order_by(BlockedDate.date).all()


def delete_blocked_date(db: Session, tenant_id: UUID, blocked_date_id: UUID) -> None:
    blocked = db.query(BlockedDate).filter(
        BlockedDate.id == blocked_date_id,
        BlockedDate.tenant_id == tenant_id,
    ).first()
    if not blocked:
        raise NotFoundError("Blocked date not found", blocked_date_id=blocked_date_id)
    db.delete(blocked)
    db.commit()
