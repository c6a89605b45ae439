"""Attendance ledger: one row per person per calendar day.

The unique constraint on ``(person_id, date)`` is the real guard against
double entries. The reads done here before inserting only exist to give
callers a precise error; a writer that loses a race still gets
``AlreadyMarked`` (or a silent skip, for batch writers).
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import (
    local_datetime,
    local_today,
    to_local,
    utc_midnight,
    utc_now,
)
from libs.common.errors import ConflictError, ValidationError
from libs.common.logging import get_logger
from services.attendance_service.models import (
    BLOCKING_LEAVE_STATUSES,
    AttendanceRecord,
    AttendanceRemark,
    AttendanceStatus,
    LeaveRequest,
)
from services.attendance_service.schemas import AttendanceQuery
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def find_blocking_leave(
    db: AsyncSession, person_id: uuid.UUID, day: date
) -> Optional[LeaveRequest]:
    """Return a pending or approved leave of ``person_id`` covering ``day``."""
    result = await db.execute(
        select(LeaveRequest)
        .where(
            LeaveRequest.person_id == person_id,
            LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_attendance_for_day(
    db: AsyncSession, person_id: uuid.UUID, day: date
) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.person_id == person_id,
            AttendanceRecord.date == day,
        )
    )
    return result.scalar_one_or_none()


async def insert_attendance_if_absent(
    db: AsyncSession,
    *,
    person_id: uuid.UUID,
    day: date,
    status: AttendanceStatus,
    marked_at: Optional[datetime] = None,
) -> Optional[AttendanceRecord]:
    """Insert a ledger row inside a savepoint.

    Returns ``None`` when a row for ``(person_id, day)`` already exists; the
    surrounding transaction stays usable either way. The caller commits.
    """
    record = AttendanceRecord(
        person_id=person_id,
        date=day,
        status=status,
        marked_at=marked_at or utc_now(),
    )
    try:
        async with db.begin_nested():
            db.add(record)
    except IntegrityError:
        logger.debug(f"Attendance for {person_id} on {day} already exists, skipping")
        return None
    return record


def remark_for(as_of_local: datetime, settings: Settings) -> Optional[AttendanceRemark]:
    """On-time vs late, only when an on-time threshold is configured."""
    threshold = settings.ON_TIME_THRESHOLD
    if threshold is None:
        return None
    if as_of_local < local_datetime(as_of_local.date(), threshold):
        return AttendanceRemark.ON_TIME
    return AttendanceRemark.LATE


async def mark_present(
    db: AsyncSession,
    *,
    person_id: uuid.UUID,
    as_of: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> AttendanceRecord:
    """Self-service present mark for the calendar day of ``as_of``.

    Raises:
        ConflictError: ``AlreadyMarked`` or ``OnLeave``
        ValidationError: ``WindowClosed`` at or after the daily cutoff
    """
    settings = settings or get_settings()
    as_of_local = to_local(as_of or utc_now())
    day = as_of_local.date()

    if await get_attendance_for_day(db, person_id, day):
        raise ConflictError("Attendance already marked for today", code="AlreadyMarked")

    leave = await find_blocking_leave(db, person_id, day)
    if leave:
        raise ConflictError(
            f"A {leave.status.value} leave covers {day}", code="OnLeave"
        )

    cutoff = local_datetime(day, settings.ATTENDANCE_CUTOFF_TIME)
    if as_of_local >= cutoff:
        raise ValidationError(
            f"Attendance cannot be marked after {settings.ATTENDANCE_CUTOFF_TIME:%H:%M}",
            code="WindowClosed",
        )

    record = AttendanceRecord(
        person_id=person_id,
        date=day,
        status=AttendanceStatus.PRESENT,
        remark=remark_for(as_of_local, settings),
        marked_at=as_of_local.astimezone(timezone.utc),
    )
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent writer (sweep, approval, second mark) got there first
        await db.rollback()
        raise ConflictError(
            "Attendance already marked for today", code="AlreadyMarked"
        )
    await db.refresh(record)

    logger.info(f"Marked {person_id} present on {day} (remark={record.remark})")
    return record


def _normalize_bound(value: Union[date, datetime]) -> date:
    return utc_midnight(value).date()


async def query_attendance(
    db: AsyncSession,
    *,
    person_id: Optional[uuid.UUID],
    filters: Optional[AttendanceQuery] = None,
    today: Optional[date] = None,
) -> list[AttendanceRecord]:
    """Attendance rows matching ``filters``, newest first.

    ``person_id=None`` queries every person (administrator reporting). An
    empty list is a normal "no records" outcome.
    """
    filters = filters or AttendanceQuery()
    used = [
        name
        for name, value in (
            ("on", filters.on),
            ("range", filters.start_date or filters.end_date),
            ("window", filters.window),
        )
        if value
    ]
    if len(used) > 1:
        raise ValidationError(
            f"Filters {', '.join(used)} cannot be combined", code="InvalidFilter"
        )

    query = select(AttendanceRecord)
    if person_id is not None:
        query = query.where(AttendanceRecord.person_id == person_id)

    if filters.on:
        query = query.where(AttendanceRecord.date == _normalize_bound(filters.on))
    elif filters.start_date or filters.end_date:
        start = _normalize_bound(filters.start_date) if filters.start_date else None
        end = _normalize_bound(filters.end_date) if filters.end_date else None
        if start and end and start > end:
            raise ValidationError(
                "start_date must not be after end_date", code="InvalidFilter"
            )
        if start:
            query = query.where(AttendanceRecord.date >= start)
        if end:
            query = query.where(AttendanceRecord.date <= end)
    elif filters.window:
        today = today or local_today()
        query = query.where(
            AttendanceRecord.date >= today - timedelta(days=filters.window.days),
            AttendanceRecord.date <= today,
        )

    if filters.status:
        query = query.where(AttendanceRecord.status == filters.status)

    result = await db.execute(
        query.order_by(AttendanceRecord.date.desc(), AttendanceRecord.person_id)
    )
    return list(result.scalars().all())
