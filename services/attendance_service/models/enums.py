"""Enum definitions for attendance service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"


class AttendanceRemark(str, enum.Enum):
    ON_TIME = "on_time"
    LATE = "late"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveReason(str, enum.Enum):
    MEDICAL = "medical"
    PERSONAL = "personal"
    ACADEMIC = "academic"
    OTHER = "other"


class LeaveDecision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class LetterGrade(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"


# Leaves in these states block attendance marking and count towards overlap.
BLOCKING_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)
