"""Attendance Service schemas package."""

from services.attendance_service.schemas.enums import AttendanceWindow, LeaveWindow
from services.attendance_service.schemas.main import (
    AdminAttendanceQuery,
    AttendanceQuery,
    AttendanceResponse,
    GradeFilter,
    GradeReport,
    GradeResponse,
    JobRunResponse,
    LeaveAmend,
    LeaveCreate,
    LeaveQuery,
    LeaveResponse,
    LeaveReview,
)

__all__ = [
    "AdminAttendanceQuery",
    "AttendanceQuery",
    "AttendanceResponse",
    "AttendanceWindow",
    "GradeFilter",
    "GradeReport",
    "GradeResponse",
    "JobRunResponse",
    "LeaveAmend",
    "LeaveCreate",
    "LeaveQuery",
    "LeaveResponse",
    "LeaveReview",
    "LeaveWindow",
]
