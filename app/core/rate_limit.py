"""Rate limit presets and limiter construction.

Endpoints are grouped into budget classes; each route names the class it
draws from when it calls the request guard. The limiter itself is built once
by the app factory and kept on ``app.state``.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


RATE_LIMITS: dict[str, RateLimitConfig] = {
    "api": RateLimitConfig(limit=60, window_seconds=60),
    "read": RateLimitConfig(limit=120, window_seconds=60),
    "write": RateLimitConfig(limit=30, window_seconds=60),
    "heavy": RateLimitConfig(limit=10, window_seconds=60),
    # Global budget per client IP across every /api endpoint
    "ip": RateLimitConfig(limit=200, window_seconds=60),
}


def build_rate_limiter(
    cfg: RateLimitSettings,
    *,
    clock: Callable[[], float] | None = None,
) -> AbstractRateLimiter:
    """Create the limiter selected by configuration.

    Args:
        cfg: Rate limit settings.
        clock: Optional time source (UNIX seconds), mainly for tests.

    Returns:
        AbstractRateLimiter: Configured limiter instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    backend = cfg.backend.lower()
    clock_kwargs = {"clock": clock} if clock is not None else {}

    if backend == "memory":
        return InMemoryRateLimiter(
            cleanup_interval_seconds=cfg.cleanup_interval_seconds,
            **clock_kwargs,
        )

    if backend == "redis":
        if not cfg.redis_url:
            raise ValidationAppError(
                code="rate_limit_missing_redis_url",
                message="Redis rate limit backend requires RATE_LIMIT_REDIS_URL",
            )
        import redis

        from app.adapters.rate_limit.redis_store import RedisRateLimiter

        client = redis.Redis.from_url(cfg.redis_url, socket_timeout=1)
        logger.info("rate_limit.backend", extra={"backend": "redis"})
        return RedisRateLimiter(client, **clock_kwargs)

    raise ValidationAppError(
        code="rate_limit_unknown_backend",
        message=f"Unknown rate limit backend: '{cfg.backend}'. Supported backends: memory, redis",
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter attached to the running application."""
    return request.app.state.rate_limiter
