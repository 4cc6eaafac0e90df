import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception.

    ``kind`` is the machine-readable error name returned to clients.
    """

    kind: str = "AppError"
    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input: bad date range, missing or invalid field."""

    kind = "ValidationError"
    default_status_code = status.HTTP_400_BAD_REQUEST


class InvalidRangeError(ValidationError):
    """A date range whose start falls after its end."""


class NotFoundError(AppError):
    """Entity does not exist or lies outside the caller's organization."""

    kind = "NotFound"
    default_status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    """Actor lacks the capability required for the operation."""

    kind = "Forbidden"
    default_status_code = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(AppError):
    """Attempted state change on a request that is not in the required state."""

    kind = "InvalidTransition"
    default_status_code = status.HTTP_400_BAD_REQUEST


class InsufficientBalanceError(AppError):
    """Approval would drive a leave quota negative."""

    kind = "InsufficientBalance"
    default_status_code = status.HTTP_400_BAD_REQUEST


class DependencyUnavailableError(AppError):
    """A directory, identity or persistence collaborator failed."""

    kind = "DependencyUnavailable"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.kind,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error=ValidationError.kind,
            detail=str(exc.errors()),
            status_code=status.HTTP_400_BAD_REQUEST,
        ).model_dump(),
    )


async def _database_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    logger.exception("Database error while handling %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error=DependencyUnavailableError.kind,
            detail="Persistence layer unavailable",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DBAPIError, _database_exception_handler)  # type: ignore[arg-type]
