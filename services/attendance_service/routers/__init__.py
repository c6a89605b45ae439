"""Attendance service routers."""

from services.attendance_service.routers.admin_tasks import router as admin_tasks_router
from services.attendance_service.routers.attendance import router as attendance_router
from services.attendance_service.routers.grades import router as grades_router
from services.attendance_service.routers.leaves import router as leaves_router

__all__ = [
    "admin_tasks_router",
    "attendance_router",
    "grades_router",
    "leaves_router",
]
