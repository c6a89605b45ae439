from dataclasses import asdict

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.emails.client import EmailClient, get_email_client
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.attendance_service.schemas import JobRunResponse
from services.attendance_service.tasks import (
    run_absence_sweep,
    run_leave_auto_rejection,
    run_pending_approval_reminder,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-tasks"])
logger = get_logger(__name__)


# --- Admin Tasks ---
# Same code paths as the scheduled worker jobs; safe to re-run.


@router.post("/admin/tasks/absence-sweep", response_model=JobRunResponse)
async def trigger_absence_sweep(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Manually mark today's absentees.
    """
    logger.info(f"Absence sweep triggered by {current_user.person_id}")
    return JobRunResponse(**asdict(await run_absence_sweep(db)))


@router.post("/admin/tasks/leave-auto-rejection", response_model=JobRunResponse)
async def trigger_leave_auto_rejection(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Manually reject every pending leave request.
    """
    logger.info(f"Leave auto-rejection triggered by {current_user.person_id}")
    result = await run_leave_auto_rejection(db, email_client=email_client)
    return JobRunResponse(**asdict(result))


@router.post("/admin/tasks/pending-approval-reminder", response_model=JobRunResponse)
async def trigger_pending_approval_reminder(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Manually send the pending-approval digest to administrators.
    """
    result = await run_pending_approval_reminder(db, email_client=email_client)
    return JobRunResponse(**asdict(result))
