"""Grade aggregation from the attendance ledger.

``GradeSummary`` rows are a cache: every read recomputes them from the
ledger and upserts the result.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError
from libs.common.logging import get_logger
from services.attendance_service.models import (
    AttendanceRecord,
    AttendanceStatus,
    GradeSummary,
    LetterGrade,
    User,
    UserRole,
)
from services.attendance_service.schemas import GradeFilter
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Lower bound (inclusive) of each letter, highest first
GRADE_THRESHOLDS = (
    (90.0, LetterGrade.A),
    (80.0, LetterGrade.B),
    (70.0, LetterGrade.C),
    (60.0, LetterGrade.D),
    (50.0, LetterGrade.E),
)


def letter_grade_for(percentage: float) -> LetterGrade:
    for lower_bound, letter in GRADE_THRESHOLDS:
        if percentage >= lower_bound:
            return letter
    return LetterGrade.F


async def _count_by_status(
    db: AsyncSession, person_id: uuid.UUID
) -> dict[AttendanceStatus, int]:
    # One grouped query so all counts come from the same snapshot
    result = await db.execute(
        select(AttendanceRecord.status, func.count())
        .where(AttendanceRecord.person_id == person_id)
        .group_by(AttendanceRecord.status)
    )
    return {AttendanceStatus(status): count for status, count in result.all()}


async def compute_grade(db: AsyncSession, person_id: uuid.UUID) -> GradeSummary:
    """Recompute and upsert the grade cache of one person."""
    user = await db.get(User, person_id)
    if user is None:
        raise NotFoundError(f"User {person_id} not found")

    counts = await _count_by_status(db, person_id)
    total_days = sum(counts.values())
    total_present = counts.get(AttendanceStatus.PRESENT, 0)
    percentage = total_present / total_days * 100 if total_days > 0 else 0.0

    values = {
        "total_days": total_days,
        "total_present": total_present,
        "total_absent": counts.get(AttendanceStatus.ABSENT, 0),
        "total_leave": counts.get(AttendanceStatus.LEAVE, 0),
        "percentage": percentage,
        "letter_grade": letter_grade_for(percentage),
        "updated_at": utc_now(),
    }

    grade = await db.get(GradeSummary, person_id, populate_existing=True)
    if grade is None:
        grade = GradeSummary(person_id=person_id, **values)
        try:
            async with db.begin_nested():
                db.add(grade)
        except IntegrityError:
            # Another reader created the cache row first; overwrite it
            grade = await db.get(GradeSummary, person_id, populate_existing=True)
            for key, value in values.items():
                setattr(grade, key, value)
    else:
        for key, value in values.items():
            setattr(grade, key, value)

    await db.commit()
    await db.refresh(grade)
    return grade


async def compute_all(
    db: AsyncSession, filters: Optional[GradeFilter] = None
) -> tuple[list[GradeSummary], list[uuid.UUID]]:
    """Recompute grades for every eligible member matching ``filters``.

    Each person is processed on their own: one failure is logged and
    reported in the second element of the result, the rest carry on.
    """
    filters = filters or GradeFilter()
    query = select(User.id).where(
        User.role == UserRole.MEMBER,
        User.active.is_(True),
        User.approved.is_(True),
    )
    if filters.person_ids:
        query = query.where(User.id.in_(filters.person_ids))
    result = await db.execute(query.order_by(User.username))
    person_ids = list(result.scalars().all())

    grades: list[GradeSummary] = []
    failed: list[uuid.UUID] = []
    for person_id in person_ids:
        try:
            grades.append(await compute_grade(db, person_id))
        except Exception:
            logger.exception(f"Grade computation failed for {person_id}")
            await db.rollback()
            failed.append(person_id)

    if failed:
        # A rollback expired the summaries computed so far
        for grade in grades:
            await db.refresh(grade)

    if filters.grade:
        grades = [g for g in grades if g.letter_grade == filters.grade]
    if filters.min_percentage is not None:
        grades = [g for g in grades if g.percentage >= filters.min_percentage]

    logger.info(
        f"Computed {len(person_ids) - len(failed)} grade(s), {len(failed)} failure(s)"
    )
    return grades, failed
