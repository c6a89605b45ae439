"""Attendance Service models package."""

from services.attendance_service.models.core import (
    AttendanceRecord,
    GradeSummary,
    LeaveRequest,
    User,
)
from services.attendance_service.models.enums import (
    BLOCKING_LEAVE_STATUSES,
    AttendanceRemark,
    AttendanceStatus,
    LeaveDecision,
    LeaveReason,
    LeaveStatus,
    LetterGrade,
    UserRole,
)

__all__ = [
    "AttendanceRecord",
    "AttendanceRemark",
    "AttendanceStatus",
    "BLOCKING_LEAVE_STATUSES",
    "GradeSummary",
    "LeaveDecision",
    "LeaveReason",
    "LeaveRequest",
    "LeaveStatus",
    "LetterGrade",
    "User",
    "UserRole",
]
