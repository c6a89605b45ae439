"""ARQ worker for the attendance reconciliation jobs.

The worker process owns the three daily cron jobs; the API process never
runs them. Trigger times and the timezone come from settings, and the DB
engine and email client live in the worker context between startup and
shutdown.

Run with: arq services.attendance_service.worker.WorkerSettings
"""

from datetime import time
from zoneinfo import ZoneInfo

from arq import cron
from arq.connections import RedisSettings
from arq.cron import CronJob
from libs.common.config import Settings, get_settings
from libs.common.emails.client import EmailClient
from libs.common.logging import configure_logging, get_logger
from libs.db.config import build_engine, build_session_factory

logger = get_logger(__name__)


# ── Lifecycle ──


async def startup(ctx: dict) -> None:
    configure_logging()
    settings = get_settings()
    ctx["engine"] = build_engine(settings)
    ctx["session_factory"] = build_session_factory(ctx["engine"])
    ctx["email_client"] = EmailClient()
    logger.info(f"Attendance worker started (timezone={settings.TIMEZONE})")


async def shutdown(ctx: dict) -> None:
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
    logger.info("Attendance worker stopped")


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_absence_sweep(ctx: dict) -> dict:
    """Mark absentees for today once the attendance cutoff has passed."""
    from services.attendance_service.tasks import run_absence_sweep

    logger.info("Running: absence_sweep")
    async with ctx["session_factory"]() as db:
        result = await run_absence_sweep(db)
    return {"affected": result.affected, "failed": result.failed}


async def task_leave_auto_rejection(ctx: dict) -> dict:
    """Reject leave requests nobody reviewed in time."""
    from services.attendance_service.tasks import run_leave_auto_rejection

    logger.info("Running: leave_auto_rejection")
    async with ctx["session_factory"]() as db:
        result = await run_leave_auto_rejection(db, email_client=ctx["email_client"])
    return {"affected": result.affected, "notified": result.notified}


async def task_pending_approval_reminder(ctx: dict) -> dict:
    """Remind administrators about leaves waiting for review."""
    from services.attendance_service.tasks import run_pending_approval_reminder

    logger.info("Running: pending_approval_reminder")
    async with ctx["session_factory"]() as db:
        result = await run_pending_approval_reminder(
            db, email_client=ctx["email_client"]
        )
    return {"affected": result.affected, "notified": result.notified}


# ── Worker configuration ──


def _daily(task, at: time) -> CronJob:
    # unique=True: workers sharing one Redis run each tick only once
    return cron(
        task,
        hour=at.hour,
        minute=at.minute,
        second=0,
        run_at_startup=False,
        unique=True,
    )


def build_cron_jobs(settings: Settings) -> list[CronJob]:
    return [
        _daily(task_absence_sweep, settings.ABSENCE_SWEEP_TIME),
        _daily(task_leave_auto_rejection, settings.LEAVE_REJECTION_TIME),
        _daily(task_pending_approval_reminder, settings.REMINDER_TIME),
    ]


_settings = get_settings()


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = RedisSettings.from_dsn(_settings.REDIS_URL)
    timezone = ZoneInfo(_settings.TIMEZONE)

    on_startup = startup
    on_shutdown = shutdown

    # Register all task functions so they can also be enqueued on demand
    functions = [
        task_absence_sweep,
        task_leave_auto_rejection,
        task_pending_approval_reminder,
    ]

    cron_jobs = build_cron_jobs(_settings)
