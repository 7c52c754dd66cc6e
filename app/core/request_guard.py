"""Request guards composing authentication and rate limiting.

A guard never raises: it returns a ``GuardResult`` that either carries the
authenticated principal or a prepared error response. Handlers branch once::

    guard = await require_auth_and_rate_limit(request, "upload:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

Authentication runs before rate limiting, so anonymous callers never consume
an authenticated endpoint's budget.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request, Response

from app.adapters.rate_limit.base import RateLimitConfig
from app.core.api_response import internal_error_response, rate_limit_response, unauthorized_response
from app.core.auth import get_session_provider
from app.core.client_id import resolve_client_id
from app.core.config import settings
from app.core.logging import fingerprint
from app.core.rate_limit import RATE_LIMITS, get_rate_limiter
from app.schemas.user import AuthenticatedUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardResult:
    """Outcome of a guard.

    Attributes:
        success: Whether the request may proceed.
        user: Authenticated principal, when an auth check passed.
        response: Ready-to-send failure response when ``success`` is False.
    """

    success: bool
    user: AuthenticatedUser | None = None
    response: Response | None = None


async def require_auth(request: Request) -> GuardResult:
    """Require an authenticated principal with an id (401 otherwise)."""

    provider = get_session_provider(request)
    try:
        user = await provider.get_user(request)
    except Exception as exc:
        return GuardResult(success=False, response=internal_error_response("authenticate", "request", exc))

    if user is None or not user.id:
        logger.info(
            "auth.missing_session",
            extra={"request_path": request.url.path, "request_method": request.method},
        )
        return GuardResult(success=False, response=unauthorized_response())

    return GuardResult(success=True, user=user)


def require_rate_limit(
    request: Request,
    endpoint: str,
    config: RateLimitConfig = RATE_LIMITS["api"],
) -> GuardResult:
    """Count the request against ``endpoint``'s budget for this client (429 when exhausted).

    Args:
        request: Incoming request; its headers identify the client.
        endpoint: Endpoint name, e.g. ``"projects:get"``; keeps budgets separate.
        config: Budget class to enforce.
    """

    if not settings.rate_limit.enabled:
        return GuardResult(success=True)

    limiter = get_rate_limiter(request)
    client_id = resolve_client_id(request.headers)
    result = limiter.check(f"{endpoint}:{client_id}", config)

    if result.success:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "endpoint": endpoint,
                "client_hash": fingerprint(client_id),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return GuardResult(success=True)

    now_ms = limiter.now_ms()
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "endpoint": endpoint,
            "client_hash": fingerprint(client_id),
            "limit": result.limit,
            "window_s": config.window_seconds,
            "retry_after_s": result.retry_after_seconds(now_ms),
        },
    )
    response = rate_limit_response(
        result,
        now_ms,
        include_headers=settings.rate_limit.include_headers,
    )
    return GuardResult(success=False, response=response)


async def require_auth_and_rate_limit(
    request: Request,
    endpoint: str,
    config: RateLimitConfig = RATE_LIMITS["api"],
) -> GuardResult:
    """Run ``require_auth`` then ``require_rate_limit``, stopping at the first failure."""

    auth_result = await require_auth(request)
    if not auth_result.success:
        return auth_result

    rate_limit_result = require_rate_limit(request, endpoint, config)
    if not rate_limit_result.success:
        return rate_limit_result

    return GuardResult(success=True, user=auth_result.user)
