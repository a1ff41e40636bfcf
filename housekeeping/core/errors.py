"""
Domain errors and their HTTP translation

Services raise these; the handlers registered on the FastAPI app turn them
into JSON responses with the message as ``detail``.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class HousekeepingError(Exception):
    """Base class for every business error"""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(HousekeepingError):
    """Referenced id does not resolve to a stored row"""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(HousekeepingError):
    """Role mismatch, cross-tenant access or self-service violation"""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidInputError(HousekeepingError):
    """Business-rule violation"""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(InvalidInputError):
    """Duplicate name or email within its uniqueness scope"""


class InvalidTransitionError(InvalidInputError):
    """Task status change not allowed from the current status"""


class AuthenticationError(HousekeepingError):
    status_code = status.HTTP_401_UNAUTHORIZED


class UpstreamError(HousekeepingError):
    """Identity provider or object store failure"""

    status_code = status.HTTP_502_BAD_GATEWAY


async def housekeeping_error_handler(request: Request, exc: HousekeepingError) -> JSONResponse:
    """Render a domain error as ``{"detail": message}``"""
    log = logger.error if isinstance(exc, UpstreamError) else logger.warning
    log(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        error=type(exc).__name__,
        detail=exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handler on the application"""
    app.add_exception_handler(HousekeepingError, housekeeping_error_handler)
