"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept errors raised
by services (domain and unexpected) and return the same secure JSON envelope
the request guards produce.

Design:
- AppError subclasses → appropriate HTTP status (400, 403, 404, 413, 500)
- FastAPI request validation errors → 400
- Unexpected Exception → generic 500 (safety net, logged in full)
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.api_response import error_response
from app.core.errors import (
    AppError,
    ForbiddenAppError,
    NotFoundAppError,
    PayloadTooLargeAppError,
    StorageAppError,
)
from app.core.logging import get_request_id
from app.core.request_validation import format_validation_error

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (PayloadTooLargeAppError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (ForbiddenAppError, status.HTTP_403_FORBIDDEN),
    (NotFoundAppError, status.HTTP_404_NOT_FOUND),
    (StorageAppError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status (400 when nothing more specific applies)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the secure JSON envelope.

    Server-side failures (5xx) keep their message generic for the client and
    are logged at error level; client faults are logged as warnings.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error message.
    """
    status_code = status_for_error(exc)

    log_extra = {
        "error_code": exc.code,
        "error_message": exc.message,
        "status_code": status_code,
        "has_details": bool(exc.details),
        "request_path": request.url.path,
        "request_id": get_request_id(),
    }
    if status_code >= 500:
        logger.error("app_error_handled", extra=log_extra, exc_info=exc)
    else:
        logger.warning("app_error_handled", extra=log_extra)

    return error_response(exc.message, status_code, code=exc.code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn FastAPI's 422 validation failures (query/path params) into 400s."""
    message = format_validation_error(exc.errors())

    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )
    return error_response(message, status.HTTP_400_BAD_REQUEST, code="invalid_request")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack trace or driver message reaches the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
        exc_info=exc,
    )

    return error_response(
        "An unexpected error occurred. Please try again later.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_server_error",
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
