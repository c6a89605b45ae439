"""FastAPI application for the Attendance Service."""
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from libs.common.error_handler import add_exception_handlers
from libs.common.logging import configure_logging
from services.attendance_service.routers import (
    admin_tasks_router,
    attendance_router,
    grades_router,
    leaves_router,
)


def create_app() -> FastAPI:
    """Create and configure the Attendance Service FastAPI app."""
    configure_logging()

    app = FastAPI(
        title="Attendance Service",
        version="0.1.0",
        description="Daily attendance, leave requests and attendance grades.",
    )

    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "attendance"}

    app.include_router(attendance_router, prefix="/api")
    app.include_router(leaves_router, prefix="/api")
    app.include_router(grades_router, prefix="/api")
    app.include_router(admin_tasks_router, prefix="/api")

    return app


app = create_app()
