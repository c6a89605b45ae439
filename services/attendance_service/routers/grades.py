import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin, require_member
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.attendance_service.models import LetterGrade
from services.attendance_service.schemas import GradeFilter, GradeReport, GradeResponse
from services.attendance_service.services import grades
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["grades"])


@router.get("/grades/me", response_model=GradeResponse)
async def get_my_grade(
    current_user: AuthUser = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Recompute and return the caller's attendance grade.
    """
    return await grades.compute_grade(db, current_user.person_id)


@router.get("/admin/grades", response_model=GradeReport)
async def get_grade_report(
    person_ids: Optional[List[uuid.UUID]] = Query(None),
    grade: Optional[LetterGrade] = None,
    min_percentage: Optional[float] = Query(None, ge=0, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Recompute grades for all active members, optionally filtered (Admin only).
    """
    summaries, failed = await grades.compute_all(
        db,
        GradeFilter(
            person_ids=person_ids, grade=grade, min_percentage=min_percentage
        ),
    )
    return GradeReport(
        grades=[GradeResponse.model_validate(s) for s in summaries],
        failed_person_ids=failed,
    )
