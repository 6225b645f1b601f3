"""Application error taxonomy and FastAPI handlers."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(AppError):
    """The request cannot be served with the current configuration."""

    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(AppError):
    """User supplied data failed validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """A write was based on a stale revision."""

    status_code = status.HTTP_409_CONFLICT


class TransportError(AppError):
    """An upstream service failed or returned a non-2xx response."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "api.error",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def register_exception_handlers(application: FastAPI) -> None:
    """Render every AppError as a JSON error payload."""

    application.add_exception_handler(AppError, _handle_app_error)
