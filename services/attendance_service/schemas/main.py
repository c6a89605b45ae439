import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.attendance_service.models.enums import (
    AttendanceRemark,
    AttendanceStatus,
    LeaveDecision,
    LeaveReason,
    LeaveStatus,
    LetterGrade,
)
from services.attendance_service.schemas.enums import AttendanceWindow, LeaveWindow

# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


class AttendanceResponse(BaseModel):
    id: uuid.UUID
    person_id: uuid.UUID
    date: date
    status: AttendanceStatus
    remark: Optional[AttendanceRemark] = None
    marked_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttendanceQuery(BaseModel):
    """Filters for attendance history.

    ``on`` selects one exact day; ``start_date``/``end_date`` select an
    inclusive range; ``window`` selects a relative look-back. They are
    mutually exclusive. ``status`` combines with any of them.
    """

    model_config = ConfigDict(extra="forbid")

    on: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    window: Optional[AttendanceWindow] = None
    status: Optional[AttendanceStatus] = None


class AdminAttendanceQuery(AttendanceQuery):
    person_id: Optional[uuid.UUID] = None


# ---------------------------------------------------------------------------
# Leave
# ---------------------------------------------------------------------------


class LeaveCreate(BaseModel):
    start_date: date
    end_date: date
    reason: LeaveReason


class LeaveAmend(BaseModel):
    reason: LeaveReason


class LeaveReview(BaseModel):
    decision: LeaveDecision


class LeaveResponse(BaseModel):
    id: uuid.UUID
    person_id: uuid.UUID
    start_date: date
    end_date: date
    reason: LeaveReason
    status: LeaveStatus
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaveQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    leave_id: Optional[uuid.UUID] = None
    status: Optional[LeaveStatus] = None
    reason: Optional[LeaveReason] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    window: Optional[LeaveWindow] = None


# ---------------------------------------------------------------------------
# Grades
# ---------------------------------------------------------------------------


class GradeResponse(BaseModel):
    person_id: uuid.UUID
    total_days: int
    total_present: int
    total_absent: int
    total_leave: int
    percentage: float
    letter_grade: LetterGrade
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GradeFilter(BaseModel):
    """Which members an administrator report covers."""

    person_ids: Optional[List[uuid.UUID]] = None
    grade: Optional[LetterGrade] = None
    min_percentage: Optional[float] = Field(default=None, ge=0, le=100)


class GradeReport(BaseModel):
    grades: List[GradeResponse]
    failed_person_ids: List[uuid.UUID] = []


# ---------------------------------------------------------------------------
# Reconciliation jobs
# ---------------------------------------------------------------------------


class JobRunResponse(BaseModel):
    job: str
    run_date: date
    affected: int
    notified: bool = False
    failed: int = 0
