from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin, require_member
from libs.auth.models import AuthUser
from libs.common.errors import NotFoundError
from libs.db.session import get_async_db
from services.attendance_service.schemas import (
    AdminAttendanceQuery,
    AttendanceQuery,
    AttendanceResponse,
)
from services.attendance_service.services import ledger
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["attendance"])


def _has_filters(filters: AttendanceQuery) -> bool:
    return bool(filters.model_dump(exclude_none=True, exclude={"person_id"}))


@router.post(
    "/attendance",
    response_model=AttendanceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def mark_my_attendance(
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Mark the caller present for today. Only allowed before the daily cutoff.
    """
    return await ledger.mark_present(db, person_id=current_user.person_id)


@router.get("/attendance/me", response_model=List[AttendanceResponse])
async def get_my_attendance(
    filters: Annotated[AttendanceQuery, Query()],
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Attendance history of the caller.
    """
    records = await ledger.query_attendance(
        db, person_id=current_user.person_id, filters=filters
    )
    if not records and _has_filters(filters):
        raise NotFoundError("No attendance records found")
    return records


@router.get("/admin/attendance", response_model=List[AttendanceResponse])
async def get_attendance_report(
    filters: Annotated[AdminAttendanceQuery, Query()],
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Attendance of one person, or everyone when ``person_id`` is omitted (Admin only).
    """
    records = await ledger.query_attendance(
        db, person_id=filters.person_id, filters=filters
    )
    if not records and _has_filters(filters):
        raise NotFoundError("No attendance records found")
    return records
