import datetime as dt
import uuid
from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.attendance_service.models.enums import (
    AttendanceRemark,
    AttendanceStatus,
    LeaveReason,
    LeaveStatus,
    LetterGrade,
    UserRole,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Float, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class User(Base):
    """Organization member or administrator.

    Rows are created and flagged by the registration/approval flows; this
    service only reads them.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            name="user_role_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=UserRole.MEMBER,
        nullable=False,
    )
    # active: email verified / enabled; approved: cleared by an admin
    active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User {self.username} role={self.role}>"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    status: Mapped[AttendanceStatus] = mapped_column(
        SAEnum(
            AttendanceStatus,
            name="attendance_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    remark: Mapped[Optional[AttendanceRemark]] = mapped_column(
        SAEnum(
            AttendanceRemark,
            name="attendance_remark_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )

    marked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    # One row per person per calendar day, enforced by the store so racing
    # writers (self-service mark, absence sweep, leave approval) cannot both win.
    __table_args__ = (
        UniqueConstraint("person_id", "date", name="uq_attendance_person_date"),
    )

    def __repr__(self):
        return f"<AttendanceRecord Person={self.person_id} Date={self.date} {self.status}>"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[LeaveReason] = mapped_column(
        SAEnum(
            LeaveReason,
            name="leave_reason_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    status: Mapped[LeaveStatus] = mapped_column(
        SAEnum(
            LeaveStatus,
            name="leave_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=LeaveStatus.PENDING,
        nullable=False,
    )

    # "system" when the auto-rejection job made the decision
    reviewed_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="leave_range_order"),
        Index("ix_leave_requests_person_status", "person_id", "status"),
    )

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def __repr__(self):
        return (
            f"<LeaveRequest {self.id} Person={self.person_id} "
            f"{self.start_date}..{self.end_date} {self.status}>"
        )


class GradeSummary(Base):
    """Cached grade, always derivable from the person's attendance rows."""

    __tablename__ = "grade_summaries"

    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_present: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_absent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_leave: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    letter_grade: Mapped[LetterGrade] = mapped_column(
        SAEnum(
            LetterGrade,
            name="letter_grade_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=LetterGrade.F,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<GradeSummary Person={self.person_id} {self.percentage:.1f}% {self.letter_grade}>"
