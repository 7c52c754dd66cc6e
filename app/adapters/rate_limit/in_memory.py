"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Expired entries are swept opportunistically on the request path, at most
  once per cleanup interval.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig, RateLimitResult

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_SECONDS = 60


@dataclass
class RateLimitEntry:
    count: int
    reset_time: int


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    A window starts with the first request for a key and lasts
    ``config.window_seconds``; the entry is replaced once its reset time has
    passed.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        cleanup_interval_seconds: int = DEFAULT_CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
            cleanup_interval_seconds: Minimum delay between expiry sweeps.

        Raises:
            ValueError: If cleanup_interval_seconds is invalid.
        """
        if cleanup_interval_seconds < 1:
            raise ValueError("cleanup_interval_seconds must be >= 1")

        self._clock = clock
        self._cleanup_interval_ms = cleanup_interval_seconds * 1000
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._last_sweep = self.now_ms()
        self._sweeps = 0

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sweep_expired_locked(self, now: int) -> None:
        if now - self._last_sweep < self._cleanup_interval_ms:
            return

        self._last_sweep = now
        self._sweeps += 1
        expired = [key for key, entry in self._entries.items() if entry.reset_time < now]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(expired), "entries": len(self._entries)},
            )

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for ``identifier`` within its current window.

        Args:
            identifier: Namespaced rate limit key.
            config: Budget for this key.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        with self._lock:
            now = self.now_ms()
            self._sweep_expired_locked(now)

            entry = self._entries.get(identifier)
            if entry is None or entry.reset_time < now:
                entry = RateLimitEntry(count=1, reset_time=now + config.window_ms)
                self._entries[identifier] = entry
                return RateLimitResult(
                    success=True,
                    limit=config.limit,
                    remaining=config.limit - 1,
                    reset=entry.reset_time,
                )

            entry.count += 1
            if entry.count > config.limit:
                return RateLimitResult(
                    success=False,
                    limit=config.limit,
                    remaining=0,
                    reset=entry.reset_time,
                )

            return RateLimitResult(
                success=True,
                limit=config.limit,
                remaining=max(0, config.limit - entry.count),
                reset=entry.reset_time,
            )

    def get_entry(self, identifier: str) -> RateLimitEntry | None:
        """Return a copy of the stored entry for ``identifier``, if any."""

        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, reset_time=entry.reset_time)

    def clear(self) -> None:
        """Drop all counters."""

        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return lightweight store metrics."""

        with self._lock:
            return {
                "entries": len(self._entries),
                "sweeps": self._sweeps,
            }
