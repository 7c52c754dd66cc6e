"""Prepared JSON error responses for API routes.

Every helper returns a ready-to-send ``JSONResponse`` carrying the same
no-store caching and content-sniffing headers, so guards and handlers can hand
failures back without raising.
"""

from __future__ import annotations

import logging
import re

from fastapi import status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import RateLimitResult
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


SECURITY_HEADERS: dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Content-Type-Options": "nosniff",
}

ERROR_MESSAGES = {
    "unauthorized": "Unauthorized",
    "forbidden": "Forbidden",
    "rate_limited": "Too many requests",
}

# "Please wait a moment before trying again."
RATE_LIMIT_USER_MESSAGE = "សូមរង់ចាំមួយភ្លែត មុននឹងព្យាយាមម្តងទៀត"

_ANGLE_BRACKETS = re.compile(r"[<>]")


def sanitize_message(message: str) -> str:
    """Strip angle brackets so messages cannot reflect markup."""
    return _ANGLE_BRACKETS.sub("", message)


def failed_message(action: str, resource: str) -> str:
    return f"Failed to {action} {resource}"


def secure_json_response(
    content: object,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a JSONResponse with the security headers applied."""
    merged = dict(SECURITY_HEADERS)
    if headers:
        merged.update(headers)
    return JSONResponse(content=content, status_code=status_code, headers=merged)


def error_response(
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
    *,
    code: str | None = None,
) -> JSONResponse:
    content: dict[str, str] = {"error": sanitize_message(message)}
    if code:
        content["code"] = code
    return secure_json_response(content, status_code, headers)


def unauthorized_response() -> JSONResponse:
    return error_response(ERROR_MESSAGES["unauthorized"], status.HTTP_401_UNAUTHORIZED)


def forbidden_response(message: str | None = None) -> JSONResponse:
    return error_response(message or ERROR_MESSAGES["forbidden"], status.HTTP_403_FORBIDDEN)


def bad_request_response(message: str) -> JSONResponse:
    return error_response(message, status.HTTP_400_BAD_REQUEST)


def not_found_response(message: str) -> JSONResponse:
    return error_response(message, status.HTTP_404_NOT_FOUND)


def internal_error_response(action: str, resource: str, error: BaseException) -> JSONResponse:
    """Log the triggering error in full and return a generic 500.

    Args:
        action: Verb describing the failed operation (e.g. "upload").
        resource: Resource name (e.g. "file").
        error: The exception that caused the failure. Never sent to the client.
    """
    message = failed_message(action, resource)
    logger.error(
        "api.internal_error",
        extra={
            "action": action,
            "resource": resource,
            "error_type": type(error).__name__,
            "error_msg": str(error),
            "request_id": get_request_id(),
        },
        exc_info=error,
    )
    return error_response(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


def rate_limit_response(
    result: RateLimitResult,
    now_ms: int,
    *,
    include_headers: bool = True,
) -> JSONResponse:
    """Build the 429 response for an exhausted budget.

    Args:
        result: Failed limiter result.
        now_ms: Current time (epoch ms) used to compute Retry-After.
        include_headers: Whether to attach X-RateLimit-* and Retry-After.
    """
    retry_after = result.retry_after_seconds(now_ms)

    headers: dict[str, str] = {}
    if include_headers:
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(result.reset)
        headers["Retry-After"] = str(retry_after)

    return secure_json_response(
        {
            "error": ERROR_MESSAGES["rate_limited"],
            "message": RATE_LIMIT_USER_MESSAGE,
            "retryAfter": retry_after,
        },
        status.HTTP_429_TOO_MANY_REQUESTS,
        headers,
    )
