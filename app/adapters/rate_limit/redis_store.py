"""Redis-backed fixed-window rate limiter.

Counters live in Redis so every API instance shares the same budget. Each
window is a key incremented with INCR; the first increment arms a PEXPIRE so
Redis drops the key when the window ends (no sweep needed).

When Redis is unreachable the limiter fails open: the request is allowed and
the error is logged.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import redis

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig, RateLimitResult

logger = logging.getLogger(__name__)


class RedisRateLimiter(AbstractRateLimiter):
    """Rate limiter storing fixed-window counters in Redis."""

    def __init__(
        self,
        redis_client: redis.Redis,
        *,
        key_prefix: str = "ratelimit:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.redis = redis_client
        self._key_prefix = key_prefix
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.RedisError as exc:
            logger.warning(
                "rate_limit.store_unreachable",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return False

    def _make_key(self, identifier: str) -> str:
        return f"{self._key_prefix}{identifier}"

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        key = self._make_key(identifier)
        now = self.now_ms()

        try:
            pipe = self.redis.pipeline()
            pipe.incr(key)
            pipe.pttl(key)
            count, ttl_ms = pipe.execute()

            if ttl_ms is None or ttl_ms < 0:
                # First hit of the window (or a key that lost its expiry)
                self.redis.pexpire(key, config.window_ms)
                ttl_ms = config.window_ms
        except redis.RedisError as exc:
            logger.error(
                "rate_limit.store_unavailable",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return RateLimitResult(
                success=True,
                limit=config.limit,
                remaining=config.limit,
                reset=now + config.window_ms,
            )

        count = int(count)
        reset = now + int(ttl_ms)
        if count > config.limit:
            return RateLimitResult(success=False, limit=config.limit, remaining=0, reset=reset)

        return RateLimitResult(
            success=True,
            limit=config.limit,
            remaining=max(0, config.limit - count),
            reset=reset,
        )
