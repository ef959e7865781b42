"""Time helpers.

Timestamps are persisted as naive UTC. The business day is the calendar day
in ``settings.TIMEZONE``.
"""
from datetime import date, datetime, time, timedelta, timezone

from core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """Convert a stored naive UTC timestamp to the restaurant's timezone."""
    return value.replace(tzinfo=timezone.utc).astimezone(settings.APP_TIMEZONE)


def business_date(now: datetime | None = None) -> date:
    return to_local(now or utcnow()).date()


def business_day_bounds(day: date | None = None) -> tuple[datetime, datetime]:
    """Return the [start, end) of a business day as naive UTC datetimes."""
    day = day or business_date()
    start_local = datetime.combine(day, time.min, tzinfo=settings.APP_TIMEZONE)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=settings.APP_TIMEZONE)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def range_start(range_name: str, now: datetime | None = None) -> datetime:
    """Lower bound for the admin listing ranges: today, week, month, year."""
    now = now or utcnow()
    if range_name == "today":
        return business_day_bounds(business_date(now))[0]
    if range_name == "week":
        return now - timedelta(days=7)
    if range_name == "month":
        return now - timedelta(days=30)
    if range_name == "year":
        return now - timedelta(days=365)
    raise ValueError(f"Unknown range: {range_name}")
