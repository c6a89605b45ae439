"""Datetime utilities shared by the ledger, the leave workflow and the worker.

Every calendar-day decision (cutoff checks, leave coverage, the absence
sweep) goes through the configured ``TIMEZONE`` so all components agree on
where one day ends and the next begins.

Usage:
    from libs.common.datetime_utils import local_today, utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    This replaces the deprecated datetime.utcnow() which returns naive datetimes.
    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def get_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def to_local(dt: datetime) -> datetime:
    """Convert a datetime to the configured timezone.

    Naive datetimes are assumed to already be local wall-clock time.
    """
    tz = get_timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def local_now() -> datetime:
    return utc_now().astimezone(get_timezone())


def local_today(now: Optional[datetime] = None) -> date:
    """Calendar day of ``now`` (default: the current instant) in the configured zone."""
    return to_local(now or utc_now()).date()


def local_datetime(day: date, at: time) -> datetime:
    """Aware datetime for ``at`` o'clock on ``day`` in the configured zone."""
    return datetime.combine(day, at, tzinfo=get_timezone())


def utc_midnight(value) -> datetime:
    """Normalize a date or datetime to 00:00 UTC of its (UTC) calendar day."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.date()
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
