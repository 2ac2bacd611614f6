"""Impersonation error taxonomy and exception handlers with request_id in responses."""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.console.core.logging import get_logger

logger = get_logger(__name__)


class ImpersonationError(Exception):
    """Base class for caller-facing impersonation failures.

    Each subclass carries a stable machine-readable ``code`` and the HTTP
    status it maps to. ``details`` is rendered verbatim into the response.
    """

    code: str = "impersonation_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RoleNotAllowed(ImpersonationError):
    code = "role_not_allowed"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidReason(ImpersonationError):
    code = "invalid_reason"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT


class DurationOutOfRange(ImpersonationError):
    code = "duration_out_of_range"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT


class TenantNotFound(ImpersonationError):
    code = "tenant_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class TenantUnavailable(ImpersonationError):
    code = "tenant_unavailable"
    status_code = status.HTTP_409_CONFLICT


class ConcurrentSessionNotAllowed(ImpersonationError):
    code = "concurrent_session_not_allowed"
    status_code = status.HTTP_409_CONFLICT


class SessionNotFound(ImpersonationError):
    code = "session_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class SessionAccessDenied(ImpersonationError):
    code = "session_access_denied"
    status_code = status.HTTP_403_FORBIDDEN


class SessionNotActive(ImpersonationError):
    code = "session_not_active"
    status_code = status.HTTP_409_CONFLICT


class SessionExpired(ImpersonationError):
    code = "session_expired"
    status_code = status.HTTP_410_GONE


class PermissionDenied(ImpersonationError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


class RestrictionViolated(ImpersonationError):
    code = "restriction_violated"
    status_code = status.HTTP_403_FORBIDDEN


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(ImpersonationError)
    async def impersonation_error_handler(
        request: Request, exc: ImpersonationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "code": exc.code,
                "request_id": correlation_id.get(),
                "details": exc.details,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
