"""Unit tests for the attendance ledger.

Tests call ledger functions directly with the db_session fixture and an
explicit ``as_of`` instant, so the daily cutoff is deterministic.
"""

from datetime import date, time, timedelta, timezone

import pytest
from libs.common.config import Settings
from libs.common.datetime_utils import local_datetime
from libs.common.errors import ConflictError, ValidationError
from services.attendance_service.models import (
    AttendanceRemark,
    AttendanceStatus,
    LeaveStatus,
)
from services.attendance_service.schemas import AttendanceQuery, AttendanceWindow
from services.attendance_service.services import ledger
from services.attendance_service.services.ledger import (
    get_attendance_for_day,
    insert_attendance_if_absent,
    mark_present,
    query_attendance,
)
from tests.factories import (
    AttendanceRecordFactory,
    LeaveRequestFactory,
    UserFactory,
    persist,
)

DAY = date(2025, 6, 11)


def _at(hour, minute=0, second=0, day=DAY):
    return local_datetime(day, time(hour, minute, second))


# ---------------------------------------------------------------------------
# mark_present
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_present_one_second_before_cutoff(db_session):
    user = await persist(db_session, UserFactory.create())

    record = await mark_present(db_session, person_id=user.id, as_of=_at(6, 59, 59))

    assert record.status == AttendanceStatus.PRESENT
    assert record.date == DAY
    assert record.remark is None


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("as_of", [(7, 0, 0), (7, 0, 1), (15, 30, 0)])
async def test_mark_present_at_or_after_cutoff_is_rejected(db_session, as_of):
    user = await persist(db_session, UserFactory.create())

    with pytest.raises(ValidationError) as exc_info:
        await mark_present(db_session, person_id=user.id, as_of=_at(*as_of))

    assert exc_info.value.code == "WindowClosed"
    assert await get_attendance_for_day(db_session, user.id, DAY) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_present_twice_is_already_marked(db_session):
    user = await persist(db_session, UserFactory.create())
    await mark_present(db_session, person_id=user.id, as_of=_at(6, 0))

    with pytest.raises(ConflictError) as exc_info:
        await mark_present(db_session, person_id=user.id, as_of=_at(6, 30))

    assert exc_info.value.code == "AlreadyMarked"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_already_marked_reported_before_window_closed(db_session):
    """A second attempt after the cutoff still reports the existing mark."""
    user = await persist(db_session, UserFactory.create())
    await mark_present(db_session, person_id=user.id, as_of=_at(6, 0))

    with pytest.raises(ConflictError) as exc_info:
        await mark_present(db_session, person_id=user.id, as_of=_at(9, 0))

    assert exc_info.value.code == "AlreadyMarked"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_present_when_absence_already_recorded(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        AttendanceRecordFactory.create(
            person_id=user.id, day=DAY, status=AttendanceStatus.ABSENT
        ),
    )

    with pytest.raises(ConflictError) as exc_info:
        await mark_present(db_session, person_id=user.id, as_of=_at(6, 0))

    assert exc_info.value.code == "AlreadyMarked"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_present_losing_insert_race_is_already_marked(
    db_session, monkeypatch
):
    """A row written after the existence check is caught at commit."""
    user = await persist(db_session, UserFactory.create())
    user_id = user.id
    await persist(
        db_session,
        AttendanceRecordFactory.create(
            person_id=user_id, day=DAY, status=AttendanceStatus.ABSENT
        ),
    )

    async def _not_marked_yet(*args, **kwargs):
        return None

    monkeypatch.setattr(ledger, "get_attendance_for_day", _not_marked_yet)

    with pytest.raises(ConflictError) as exc_info:
        await mark_present(db_session, person_id=user_id, as_of=_at(6, 0))

    assert exc_info.value.code == "AlreadyMarked"
    monkeypatch.undo()
    records = await query_attendance(db_session, person_id=user_id)
    assert [r.status for r in records] == [AttendanceStatus.ABSENT]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_marked_at_is_stored_in_utc(db_session):
    user = await persist(db_session, UserFactory.create())
    as_of = _at(6, 15)

    record = await mark_present(db_session, person_id=user.id, as_of=as_of)

    marked_at = record.marked_at
    if marked_at.tzinfo is None:
        # SQLite drops the offset
        marked_at = marked_at.replace(tzinfo=timezone.utc)
    assert marked_at == as_of


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("leave_status", [LeaveStatus.PENDING, LeaveStatus.APPROVED])
async def test_mark_present_blocked_by_covering_leave(db_session, leave_status):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        LeaveRequestFactory.create(
            person_id=user.id,
            start_date=DAY - timedelta(days=1),
            end_date=DAY + timedelta(days=1),
            status=leave_status,
        ),
    )

    with pytest.raises(ConflictError) as exc_info:
        await mark_present(db_session, person_id=user.id, as_of=_at(6, 0))

    assert exc_info.value.code == "OnLeave"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejected_leave_does_not_block_marking(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        LeaveRequestFactory.create(
            person_id=user.id,
            start_date=DAY,
            end_date=DAY,
            status=LeaveStatus.REJECTED,
        ),
    )

    record = await mark_present(db_session, person_id=user.id, as_of=_at(6, 0))
    assert record.status == AttendanceStatus.PRESENT


@pytest.mark.asyncio
@pytest.mark.unit
async def test_remark_follows_on_time_threshold(db_session):
    settings = Settings(ON_TIME_THRESHOLD="06:30")
    early = await persist(db_session, UserFactory.create())
    late = await persist(db_session, UserFactory.create())

    on_time_record = await mark_present(
        db_session, person_id=early.id, as_of=_at(6, 29, 59), settings=settings
    )
    late_record = await mark_present(
        db_session, person_id=late.id, as_of=_at(6, 30), settings=settings
    )

    assert on_time_record.remark == AttendanceRemark.ON_TIME
    assert late_record.remark == AttendanceRemark.LATE


# ---------------------------------------------------------------------------
# insert_attendance_if_absent
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_insert_if_absent_skips_existing_day(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(db_session, AttendanceRecordFactory.create(person_id=user.id, day=DAY))

    skipped = await insert_attendance_if_absent(
        db_session, person_id=user.id, day=DAY, status=AttendanceStatus.ABSENT
    )
    written = await insert_attendance_if_absent(
        db_session,
        person_id=user.id,
        day=DAY + timedelta(days=1),
        status=AttendanceStatus.ABSENT,
    )
    await db_session.commit()

    assert skipped is None
    assert written is not None
    existing = await get_attendance_for_day(db_session, user.id, DAY)
    assert existing.status == AttendanceStatus.PRESENT


# ---------------------------------------------------------------------------
# query_attendance
# ---------------------------------------------------------------------------


async def _seed_history(db, person_id):
    statuses = [
        AttendanceStatus.PRESENT,
        AttendanceStatus.ABSENT,
        AttendanceStatus.PRESENT,
        AttendanceStatus.LEAVE,
    ]
    records = [
        AttendanceRecordFactory.create(
            person_id=person_id, day=DAY - timedelta(days=offset), status=status
        )
        for offset, status in enumerate(statuses)
    ]
    await persist(db, *records)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_without_filters_returns_newest_first(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed_history(db_session, user.id)

    records = await query_attendance(db_session, person_id=user.id)

    assert [r.date for r in records] == [DAY - timedelta(days=i) for i in range(4)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_range_is_inclusive(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed_history(db_session, user.id)

    records = await query_attendance(
        db_session,
        person_id=user.id,
        filters=AttendanceQuery(
            start_date=DAY - timedelta(days=2), end_date=DAY - timedelta(days=1)
        ),
    )

    assert [r.date for r in records] == [
        DAY - timedelta(days=1),
        DAY - timedelta(days=2),
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_on_day_with_status(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed_history(db_session, user.id)

    present = await query_attendance(
        db_session,
        person_id=user.id,
        filters=AttendanceQuery(on=DAY, status=AttendanceStatus.PRESENT),
    )
    absent = await query_attendance(
        db_session,
        person_id=user.id,
        filters=AttendanceQuery(on=DAY, status=AttendanceStatus.ABSENT),
    )

    assert len(present) == 1
    assert absent == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_window_counts_back_from_today(db_session):
    user = await persist(db_session, UserFactory.create())
    await _seed_history(db_session, user.id)
    await persist(
        db_session,
        AttendanceRecordFactory.create(person_id=user.id, day=DAY - timedelta(days=40)),
    )

    records = await query_attendance(
        db_session,
        person_id=user.id,
        filters=AttendanceQuery(window=AttendanceWindow.MONTH),
        today=DAY,
    )

    assert len(records) == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_query_all_people_when_person_id_is_none(db_session):
    first = await persist(db_session, UserFactory.create())
    second = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        AttendanceRecordFactory.create(person_id=first.id, day=DAY),
        AttendanceRecordFactory.create(person_id=second.id, day=DAY),
    )

    records = await query_attendance(
        db_session, person_id=None, filters=AttendanceQuery(on=DAY)
    )

    assert {r.person_id for r in records} == {first.id, second.id}


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "filters",
    [
        AttendanceQuery(on=DAY, window=AttendanceWindow.WEEK),
        AttendanceQuery(on=DAY, start_date=DAY),
        AttendanceQuery(start_date=DAY, window=AttendanceWindow.YEAR),
        AttendanceQuery(start_date=DAY, end_date=DAY - timedelta(days=1)),
    ],
)
async def test_query_rejects_conflicting_filters(db_session, filters):
    user = await persist(db_session, UserFactory.create())

    with pytest.raises(ValidationError) as exc_info:
        await query_attendance(db_session, person_id=user.id, filters=filters)

    assert exc_info.value.code == "InvalidFilter"
