"""Public exports for attendance reconciliation jobs."""

from services.attendance_service.tasks.reconciliation import (
    JobResult,
    run_absence_sweep,
    run_leave_auto_rejection,
    run_pending_approval_reminder,
)

__all__ = [
    "JobResult",
    "run_absence_sweep",
    "run_leave_auto_rejection",
    "run_pending_approval_reminder",
]
