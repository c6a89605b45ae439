import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin, require_member
from libs.auth.models import AuthUser
from libs.common.emails.client import EmailClient, get_email_client
from libs.common.errors import NotFoundError
from libs.db.session import get_async_db
from services.attendance_service.schemas import (
    LeaveAmend,
    LeaveCreate,
    LeaveQuery,
    LeaveResponse,
    LeaveReview,
)
from services.attendance_service.services import leaves
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["leaves"])


# --- Member ---


@router.post(
    "/leaves", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED
)
async def submit_leave_request(
    leave_in: LeaveCreate,
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Submit a leave request. Administrators are notified by email.
    """
    return await leaves.submit_leave(
        db,
        person_id=current_user.person_id,
        start_date=leave_in.start_date,
        end_date=leave_in.end_date,
        reason=leave_in.reason,
        email_client=email_client,
    )


@router.get("/leaves", response_model=List[LeaveResponse])
async def list_my_leaves(
    filters: Annotated[LeaveQuery, Query()],
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Leave requests of the caller, optionally filtered.
    """
    results = await leaves.list_leaves(
        db, person_id=current_user.person_id, filters=filters
    )
    if not results and filters.model_dump(exclude_none=True):
        raise NotFoundError("No leaves found")
    return results


@router.patch("/leaves/{leave_id}", response_model=LeaveResponse)
async def amend_leave_request(
    leave_id: uuid.UUID,
    leave_in: LeaveAmend,
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Change the reason of a pending leave that has not started yet.
    """
    return await leaves.amend_leave(
        db,
        leave_id=leave_id,
        person_id=current_user.person_id,
        reason=leave_in.reason,
    )


# --- Admin ---


@router.get("/admin/leaves/pending", response_model=List[LeaveResponse])
async def list_pending_leaves(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Review queue, oldest request first (Admin only).
    """
    return await leaves.list_pending_leaves(db)


@router.post("/admin/leaves/{leave_id}/review", response_model=LeaveResponse)
async def review_leave_request(
    leave_id: uuid.UUID,
    review_in: LeaveReview,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Approve or reject a pending leave (Admin only).
    Approval writes leave days into the attendance ledger.
    """
    return await leaves.review_leave(
        db,
        leave_id=leave_id,
        decision=review_in.decision,
        reviewer=str(current_user.person_id),
        email_client=email_client,
    )
