"""Global exception handlers for consistent error responses.

Usage:
    from libs.common.error_handler import add_exception_handlers

    app = FastAPI()
    add_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from libs.common.errors import DependencyError, ServiceError
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _error_response(exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.code, "detail": exc.message},
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return _error_response(exc)


async def store_unavailable_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return _error_response(DependencyError("Record store unavailable"))


def add_exception_handlers(app: FastAPI) -> None:
    """Register handlers for the service error taxonomy."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(OperationalError, store_unavailable_handler)
