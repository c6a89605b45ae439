import enum


class AttendanceWindow(str, enum.Enum):
    """Relative look-back windows for attendance queries."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def days(self) -> int:
        return {"week": 7, "month": 30, "year": 365}[self.value]


class LeaveWindow(str, enum.Enum):
    TODAY = "today"
    PAST = "past"
    UPCOMING = "upcoming"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def days(self) -> int:
        return {"week": 7, "month": 30, "year": 365}.get(self.value, 0)
