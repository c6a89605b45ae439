"""Unit tests for grade aggregation."""

import uuid
from datetime import date, timedelta

import pytest
from libs.common.errors import NotFoundError
from services.attendance_service.models import AttendanceStatus, LetterGrade
from services.attendance_service.schemas import GradeFilter
from services.attendance_service.services import grades
from services.attendance_service.services.grades import (
    compute_all,
    compute_grade,
    letter_grade_for,
)
from tests.factories import AttendanceRecordFactory, UserFactory, persist

START = date(2025, 6, 1)


async def _seed(db, person_id, present=0, absent=0, leave=0):
    statuses = (
        [AttendanceStatus.PRESENT] * present
        + [AttendanceStatus.ABSENT] * absent
        + [AttendanceStatus.LEAVE] * leave
    )
    if statuses:
        await persist(
            db,
            *[
                AttendanceRecordFactory.create(
                    person_id=person_id, day=START + timedelta(days=i), status=status
                )
                for i, status in enumerate(statuses)
            ],
        )


@pytest.mark.unit
@pytest.mark.parametrize(
    "percentage, expected",
    [
        (100.0, LetterGrade.A),
        (90.0, LetterGrade.A),
        (89.99, LetterGrade.B),
        (80.0, LetterGrade.B),
        (70.0, LetterGrade.C),
        (60.0, LetterGrade.D),
        (50.0, LetterGrade.E),
        (49.99, LetterGrade.F),
        (0.0, LetterGrade.F),
    ],
)
def test_letter_grade_boundaries(percentage, expected):
    assert letter_grade_for(percentage) == expected


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_grade_counts_by_status(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed(db_session, user.id, present=7, absent=2, leave=1)

    grade = await compute_grade(db_session, user.id)

    assert grade.total_days == 10
    assert grade.total_present == 7
    assert grade.total_absent == 2
    assert grade.total_leave == 1
    assert grade.percentage == pytest.approx(70.0)
    assert grade.letter_grade == LetterGrade.C


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_grade_with_no_history(db_session):
    user = await persist(db_session, UserFactory.create())

    grade = await compute_grade(db_session, user.id)

    assert grade.total_days == 0
    assert grade.percentage == 0.0
    assert grade.letter_grade == LetterGrade.F


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_grade_refreshes_cached_summary(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed(db_session, user.id, present=1, absent=1)
    first = await compute_grade(db_session, user.id)
    assert first.letter_grade == LetterGrade.E

    await persist(
        db_session,
        AttendanceRecordFactory.create(
            person_id=user.id, day=START + timedelta(days=10)
        ),
        AttendanceRecordFactory.create(
            person_id=user.id, day=START + timedelta(days=11)
        ),
    )
    second = await compute_grade(db_session, user.id)

    assert second.total_days == 4
    assert second.percentage == pytest.approx(75.0)
    assert second.letter_grade == LetterGrade.C


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_grade_unknown_person(db_session):
    with pytest.raises(NotFoundError):
        await compute_grade(db_session, uuid.uuid4())


# ---------------------------------------------------------------------------
# compute_all
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_all_covers_only_eligible_members(db_session):
    member = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        UserFactory.create(approved=False),
        UserFactory.create(active=False),
        UserFactory.create_admin(),
    )

    summaries, failed = await compute_all(db_session)

    assert [s.person_id for s in summaries] == [member.id]
    assert failed == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_all_isolates_failures(db_session, monkeypatch):
    healthy = await persist(db_session, UserFactory.create(username="a-healthy"))
    broken = await persist(db_session, UserFactory.create(username="b-broken"))
    healthy_id, broken_id = healthy.id, broken.id
    await _seed(db_session, healthy_id, present=3, absent=1)

    real_compute = grades.compute_grade

    async def _flaky(db, person_id):
        if person_id == broken_id:
            raise RuntimeError("boom")
        return await real_compute(db, person_id)

    monkeypatch.setattr(grades, "compute_grade", _flaky)

    summaries, failed = await compute_all(db_session)

    assert failed == [broken_id]
    assert [s.person_id for s in summaries] == [healthy_id]
    assert summaries[0].percentage == pytest.approx(75.0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_compute_all_filters(db_session):
    strong = await persist(db_session, UserFactory.create())
    weak = await persist(db_session, UserFactory.create())
    await _seed(db_session, strong.id, present=9, absent=1)
    await _seed(db_session, weak.id, present=1, absent=3)

    by_grade, _ = await compute_all(db_session, GradeFilter(grade=LetterGrade.A))
    by_percentage, _ = await compute_all(db_session, GradeFilter(min_percentage=50))
    by_person, _ = await compute_all(db_session, GradeFilter(person_ids=[weak.id]))

    assert [s.person_id for s in by_grade] == [strong.id]
    assert [s.person_id for s in by_percentage] == [strong.id]
    assert [s.person_id for s in by_person] == [weak.id]
    assert by_person[0].letter_grade == LetterGrade.F
