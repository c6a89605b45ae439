"""Scheduled reconciliation jobs.

Each job is safe to run twice for the same day: the absence sweep relies on
the ledger's per-day uniqueness, and the leave jobs only ever act on rows
that are still pending at write time. Notification failures are logged and
never undo a committed ledger change.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import local_today, utc_now
from libs.common.emails.client import EmailClient
from libs.common.logging import get_logger
from services.attendance_service.models import (
    BLOCKING_LEAVE_STATUSES,
    AttendanceRecord,
    AttendanceStatus,
    LeaveRequest,
    LeaveStatus,
    User,
    UserRole,
)
from services.attendance_service.services import notifications
from services.attendance_service.services.ledger import insert_attendance_if_absent
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

AUTO_REVIEWER = "system"


@dataclass
class JobResult:
    job: str
    run_date: date
    affected: int = 0
    notified: bool = False
    failed: int = 0


async def run_absence_sweep(
    db: AsyncSession,
    *,
    day: Optional[date] = None,
    now: Optional[datetime] = None,
) -> JobResult:
    """Mark every eligible member with no ledger row and no leave as absent.

    eligible = active, approved members; minus anyone with any attendance
    row for ``day``; minus anyone with a pending or approved leave covering
    ``day``.
    """
    day = day or local_today()
    now = now or utc_now()
    result = JobResult(job="absence_sweep", run_date=day)

    eligible = set(
        (
            await db.execute(
                select(User.id).where(
                    User.role == UserRole.MEMBER,
                    User.active.is_(True),
                    User.approved.is_(True),
                )
            )
        )
        .scalars()
        .all()
    )
    attended = set(
        (
            await db.execute(
                select(AttendanceRecord.person_id).where(AttendanceRecord.date == day)
            )
        )
        .scalars()
        .all()
    )
    on_leave = set(
        (
            await db.execute(
                select(LeaveRequest.person_id).where(
                    LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
                    LeaveRequest.start_date <= day,
                    LeaveRequest.end_date >= day,
                )
            )
        )
        .scalars()
        .all()
    )

    absentees = sorted(eligible - attended - on_leave)
    for person_id in absentees:
        try:
            record = await insert_attendance_if_absent(
                db,
                person_id=person_id,
                day=day,
                status=AttendanceStatus.ABSENT,
                marked_at=now,
            )
        except Exception:
            logger.exception(f"Absence sweep could not record {person_id} on {day}")
            result.failed += 1
            continue
        if record is not None:
            result.affected += 1

    await db.commit()

    if absentees:
        logger.info(
            f"Absence sweep for {day}: marked {result.affected} absent "
            f"({len(absentees) - result.affected - result.failed} already recorded, "
            f"{result.failed} failed)"
        )
    else:
        logger.info(f"Absence sweep for {day}: no absences to record")
    return result


async def run_leave_auto_rejection(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
    email_client: Optional[EmailClient] = None,
) -> JobResult:
    """Reject every leave still pending, then notify the affected requesters.

    The update is conditioned on ``status = pending`` and reports exactly
    which rows it changed, so a review committed just before this job wins
    and is left untouched.
    """
    now = now or utc_now()
    result = JobResult(job="leave_auto_rejection", run_date=local_today(now))

    rejected = (
        await db.execute(
            update(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.PENDING)
            .values(
                status=LeaveStatus.REJECTED,
                reviewed_by=AUTO_REVIEWER,
                reviewed_at=now,
                updated_at=now,
            )
            .returning(LeaveRequest.id, LeaveRequest.person_id)
            .execution_options(synchronize_session=False)
        )
    ).all()
    await db.commit()

    result.affected = len(rejected)
    if not rejected:
        logger.info("Leave auto-rejection: no pending leaves")
        return result

    logger.info(f"Leave auto-rejection: rejected {len(rejected)} pending leave(s)")

    person_ids = {person_id for _, person_id in rejected}
    emails = (
        await db.execute(select(User.email).where(User.id.in_(person_ids)))
    ).scalars().all()
    subject, html = notifications.auto_rejection_message()
    result.notified = await notifications.dispatch(emails, subject, html, email_client)
    return result


async def run_pending_approval_reminder(
    db: AsyncSession,
    *,
    today: Optional[date] = None,
    email_client: Optional[EmailClient] = None,
) -> JobResult:
    """Send administrators one digest if any leave is waiting for review."""
    result = JobResult(job="pending_approval_reminder", run_date=today or local_today())

    pending_count = (
        await db.execute(
            select(func.count())
            .select_from(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.PENDING)
        )
    ).scalar_one()
    result.affected = pending_count
    if pending_count == 0:
        logger.info("Pending-approval reminder: no pending leaves found")
        return result

    admin_emails = await notifications.get_admin_emails(db)
    subject, html = notifications.pending_reminder_message(pending_count)
    result.notified = await notifications.dispatch(
        admin_emails, subject, html, email_client
    )
    return result
