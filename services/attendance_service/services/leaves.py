"""Leave request workflow: pending -> approved | rejected.

Transitions out of ``pending`` are compare-and-swap updates conditioned on
the row still being pending, so a reviewer and the auto-rejection job racing
on the same request cannot both win. The loser sees ``AlreadyReviewed`` and
performs none of its side effects.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Optional

from libs.common.datetime_utils import date_range, local_today, utc_now
from libs.common.emails.client import EmailClient
from libs.common.errors import ConflictError, NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.attendance_service.models import (
    BLOCKING_LEAVE_STATUSES,
    AttendanceStatus,
    LeaveDecision,
    LeaveReason,
    LeaveRequest,
    LeaveStatus,
    User,
)
from services.attendance_service.schemas import LeaveQuery, LeaveWindow
from services.attendance_service.services import notifications
from services.attendance_service.services.ledger import insert_attendance_if_absent
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_user(db: AsyncSession, person_id: uuid.UUID, *, lock: bool = False) -> User:
    query = select(User).where(User.id == person_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(f"User {person_id} not found")
    return user


async def get_leave(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
    result = await db.execute(
        select(LeaveRequest)
        .where(LeaveRequest.id == leave_id)
        .execution_options(populate_existing=True)
    )
    leave = result.scalar_one_or_none()
    if not leave:
        raise NotFoundError(f"Leave request {leave_id} not found")
    return leave


async def find_overlapping_leave(
    db: AsyncSession,
    person_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> Optional[LeaveRequest]:
    """Non-rejected leave of ``person_id`` intersecting the inclusive range."""
    result = await db.execute(
        select(LeaveRequest)
        .where(
            LeaveRequest.person_id == person_id,
            LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def submit_leave(
    db: AsyncSession,
    *,
    person_id: uuid.UUID,
    start_date: date,
    end_date: date,
    reason: LeaveReason,
    today: Optional[date] = None,
    email_client: Optional[EmailClient] = None,
) -> LeaveRequest:
    """Create a pending leave request and tell the administrators about it.

    Raises:
        ValidationError: ``InvalidRange`` for reversed or past dates
        ConflictError: ``Overlap`` with another non-rejected request
    """
    today = today or local_today()
    if start_date > end_date:
        raise ValidationError(
            "Start date must not be after end date", code="InvalidRange"
        )
    if start_date < today or end_date < today:
        raise ValidationError(
            "Start date and end date must be today or later", code="InvalidRange"
        )

    # Lock the requester's row so concurrent submissions are checked one at a time
    user = await get_user(db, person_id, lock=True)

    existing = await find_overlapping_leave(db, person_id, start_date, end_date)
    if existing:
        message = (
            f"Overlaps leave {existing.start_date}..{existing.end_date} "
            f"({existing.status.value})"
        )
        # Releases the row lock; expires every loaded instance
        await db.rollback()
        raise ConflictError(message, code="Overlap")

    leave = LeaveRequest(
        person_id=person_id,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=LeaveStatus.PENDING,
    )
    db.add(leave)
    await db.commit()
    await db.refresh(leave)

    logger.info(
        f"Leave {leave.id} submitted by {person_id} for {start_date}..{end_date}"
    )

    subject, html = notifications.leave_submitted_message(user, leave)
    admin_emails = await notifications.get_admin_emails(db)
    await notifications.dispatch(admin_emails, subject, html, email_client)
    return leave


async def _raise_transition_failure(db: AsyncSession, leave_id: uuid.UUID) -> None:
    """Explain why a conditional update matched no row."""
    await db.rollback()
    leave = await get_leave(db, leave_id)
    raise ConflictError(
        f"Leave request is already {leave.status.value}", code="AlreadyReviewed"
    )


async def review_leave(
    db: AsyncSession,
    *,
    leave_id: uuid.UUID,
    decision: LeaveDecision,
    reviewer: str,
    now: Optional[datetime] = None,
    email_client: Optional[EmailClient] = None,
) -> LeaveRequest:
    """Approve or reject a pending leave.

    Approval writes a ``leave`` attendance row for every day in the range,
    leaving days that already have a row untouched. Ledger rows and the
    status change commit together; the requester is notified afterwards.

    Raises:
        NotFoundError: unknown ``leave_id``
        ConflictError: ``AlreadyReviewed`` when the request is not pending
    """
    now = now or utc_now()
    new_status = (
        LeaveStatus.APPROVED
        if decision == LeaveDecision.APPROVE
        else LeaveStatus.REJECTED
    )

    result = await db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.id == leave_id,
            LeaveRequest.status == LeaveStatus.PENDING,
        )
        .values(
            status=new_status,
            reviewed_by=reviewer,
            reviewed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await _raise_transition_failure(db, leave_id)

    leave = await get_leave(db, leave_id)

    written = 0
    if new_status == LeaveStatus.APPROVED:
        for day in date_range(leave.start_date, leave.end_date):
            record = await insert_attendance_if_absent(
                db,
                person_id=leave.person_id,
                day=day,
                status=AttendanceStatus.LEAVE,
                marked_at=now,
            )
            if record is not None:
                written += 1

    await db.commit()
    logger.info(
        f"Leave {leave_id} {new_status.value} by {reviewer}; "
        f"{written} leave day(s) written to the ledger"
    )

    user = await get_user(db, leave.person_id)
    subject, html = notifications.leave_reviewed_message(user, leave)
    await notifications.dispatch([user.email], subject, html, email_client)
    return leave


async def amend_leave(
    db: AsyncSession,
    *,
    leave_id: uuid.UUID,
    person_id: uuid.UUID,
    reason: LeaveReason,
    today: Optional[date] = None,
) -> LeaveRequest:
    """Change the reason of one's own pending leave before it starts.

    Raises:
        NotFoundError: unknown leave or owned by someone else
        ValidationError: ``Terminal`` once reviewed, ``Started`` once the
            leave window has begun
    """
    today = today or local_today()
    leave = await get_leave(db, leave_id)
    if leave.person_id != person_id:
        raise NotFoundError(f"Leave request {leave_id} not found")
    if leave.status != LeaveStatus.PENDING:
        raise ValidationError(
            f"Leave request is already {leave.status.value}", code="Terminal"
        )
    if leave.start_date <= today:
        raise ValidationError("Leave has already started", code="Started")

    result = await db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.id == leave_id,
            LeaveRequest.status == LeaveStatus.PENDING,
        )
        .values(reason=reason, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Reviewed between the read above and this write
        await db.rollback()
        raise ValidationError("Leave request is no longer pending", code="Terminal")

    await db.commit()
    logger.info(f"Leave {leave_id} reason changed to {reason.value}")
    return await get_leave(db, leave_id)


async def list_leaves(
    db: AsyncSession,
    *,
    person_id: Optional[uuid.UUID],
    filters: Optional[LeaveQuery] = None,
    today: Optional[date] = None,
) -> list[LeaveRequest]:
    """Leave requests matching ``filters``, oldest first.

    ``person_id=None`` lists every person's requests (administrators).
    Window semantics, relative to ``today``:
    today -> covering today; upcoming -> starting after today;
    past -> ended before today; week/month/year -> started within the last
    7/30/365 days and already ended.
    """
    filters = filters or LeaveQuery()

    if filters.leave_id:
        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.id == filters.leave_id)
        )
        leave = result.scalar_one_or_none()
        if not leave or (person_id is not None and leave.person_id != person_id):
            raise NotFoundError("Invalid leaveId")
        return [leave]

    query = select(LeaveRequest)
    if person_id is not None:
        query = query.where(LeaveRequest.person_id == person_id)
    if filters.status:
        query = query.where(LeaveRequest.status == filters.status)
    if filters.reason:
        query = query.where(LeaveRequest.reason == filters.reason)

    if filters.window:
        today = today or local_today()
        window = filters.window
        if window == LeaveWindow.TODAY:
            query = query.where(
                LeaveRequest.start_date <= today, LeaveRequest.end_date >= today
            )
        elif window == LeaveWindow.UPCOMING:
            query = query.where(LeaveRequest.start_date > today)
        elif window == LeaveWindow.PAST:
            query = query.where(LeaveRequest.end_date < today)
        else:
            query = query.where(
                LeaveRequest.start_date >= today - timedelta(days=window.days),
                LeaveRequest.end_date < today,
            )
    else:
        if filters.start_date:
            query = query.where(LeaveRequest.start_date >= filters.start_date)
        if filters.end_date:
            query = query.where(LeaveRequest.end_date <= filters.end_date)

    result = await db.execute(
        query.order_by(LeaveRequest.created_at, LeaveRequest.start_date)
    )
    return list(result.scalars().all())


async def list_pending_leaves(db: AsyncSession) -> list[LeaveRequest]:
    """Review queue for administrators, oldest request first."""
    result = await db.execute(
        select(LeaveRequest)
        .where(LeaveRequest.status == LeaveStatus.PENDING)
        .order_by(LeaveRequest.created_at)
    )
    return list(result.scalars().all())
