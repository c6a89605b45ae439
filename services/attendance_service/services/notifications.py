"""Notification messages for the leave workflow and reconciliation jobs.

Every dispatch happens after the related ledger change has been committed.
A failed dispatch is logged and reported back as ``False``; it never undoes
the commit and is never re-queued.
"""

from datetime import date
from typing import Iterable, Optional

from libs.common.emails.client import EmailClient, get_email_client
from libs.common.logging import get_logger
from services.attendance_service.models import (
    LeaveRequest,
    LeaveStatus,
    User,
    UserRole,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_admin_emails(db: AsyncSession) -> list[str]:
    """Emails of administrators who are both active and approved."""
    result = await db.execute(
        select(User.email).where(
            User.role == UserRole.ADMIN,
            User.active.is_(True),
            User.approved.is_(True),
        )
    )
    return list(result.scalars().all())


async def dispatch(
    recipients: Iterable[str],
    subject: str,
    html_body: str,
    email_client: Optional[EmailClient] = None,
) -> bool:
    recipients = sorted({r for r in recipients if r})
    if not recipients:
        logger.info(f"No recipients for '{subject}', skipping dispatch")
        return False

    client = email_client or get_email_client()
    try:
        result = await client.send(
            recipients=recipients, subject=subject, html_body=html_body
        )
    except Exception:
        logger.exception(f"Dispatcher raised while sending '{subject}'")
        return False

    if not result.success:
        logger.error(
            f"Dispatch of '{subject}' to {len(recipients)} recipient(s) failed: "
            f"{result.error or 'unknown error'}"
        )
        return False

    logger.info(f"Dispatched '{subject}' to {len(recipients)} recipient(s)")
    return True


def _format_day(day: date) -> str:
    return day.strftime("%d %b %Y")


def leave_submitted_message(user: User, leave: LeaveRequest) -> tuple[str, str]:
    html = f"""
    <div>
      <h1>Dear Admin!</h1>
      <h2>A leave request is pending approval</h2>
      <h3>Username: {user.username}</h3>
      <p>Start Date: {_format_day(leave.start_date)}</p>
      <p>End Date: {_format_day(leave.end_date)}</p>
      <p>Reason: {leave.reason.value}</p>
      <p>Visit your admin panel to approve or reject this leave.</p>
    </div>
    """
    return "Leave Request Notification", html


def leave_reviewed_message(user: User, leave: LeaveRequest) -> tuple[str, str]:
    verdict = "approved" if leave.status == LeaveStatus.APPROVED else "rejected"
    html = f"""
    <div>
      <h2>Dear {user.first_name}!</h2>
      <p>Your leave request from {_format_day(leave.start_date)} to
      {_format_day(leave.end_date)} has been <strong>{verdict}</strong>.</p>
    </div>
    """
    return f"Leave Request {verdict.capitalize()}", html


def auto_rejection_message() -> tuple[str, str]:
    html = """
    <h1>Leave Rejection</h1>
    <div>
      <h2>Dear User!</h2>
      <h3>Your leave request has been rejected automatically because it was
      not reviewed in time.</h3>
    </div>
    """
    return "Automatic Leave Rejection", html


def pending_reminder_message(pending_count: int) -> tuple[str, str]:
    noun = "leave request is" if pending_count == 1 else "leave requests are"
    html = f"""
    <p>Dear Admin,</p>
    <p>This is a reminder that {pending_count} {noun} pending approval.
    Please approve or reject them.</p>
    <p>Thank you.</p>
    """
    return "Pending Leaves Approval Reminder", html
