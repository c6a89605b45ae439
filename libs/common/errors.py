"""Error taxonomy shared by request handlers and background jobs.

Services raise these instead of ``HTTPException`` so the same code path can
run from a FastAPI route or an ARQ job. ``libs.common.error_handler`` turns
them into JSON responses at the HTTP edge.
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for business rule and dependency failures."""

    status_code = 500
    default_code = "ServiceError"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(ServiceError):
    """Malformed or out-of-policy input. Nothing was mutated."""

    status_code = 400
    default_code = "ValidationError"


class ConflictError(ServiceError):
    """Input conflicts with existing state (duplicate mark, overlap, ...)."""

    status_code = 409
    default_code = "Conflict"


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "NotFound"


class DependencyError(ServiceError):
    """The record store or the notification dispatcher failed."""

    status_code = 503
    default_code = "DependencyError"
