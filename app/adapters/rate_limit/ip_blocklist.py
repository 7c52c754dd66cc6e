"""In-memory record of misbehaving client IPs.

Screening violations (scripted user agents, exhausting the global IP budget)
are counted per IP; reaching the threshold blocks the IP for a fixed time.
Violation counts older than the block duration are forgotten, and expired
entries are swept opportunistically, at most once per cleanup interval.

Like the in-memory limiter this is per-process state.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.core.logging import fingerprint

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 3
DEFAULT_BLOCK_SECONDS = 300
DEFAULT_CLEANUP_INTERVAL_SECONDS = 60


@dataclass
class Violations:
    count: int
    first_seen: int


class IpBlocklist:
    """Counts violations per IP and blocks repeat offenders temporarily."""

    def __init__(
        self,
        *,
        threshold: int = DEFAULT_THRESHOLD,
        block_seconds: int = DEFAULT_BLOCK_SECONDS,
        clock: Callable[[], float] = time.time,
        cleanup_interval_seconds: int = DEFAULT_CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the blocklist.

        Args:
            threshold: Violations that trigger a block.
            block_seconds: Block duration, also the memory of past violations.
            clock: Time source returning UNIX time in seconds.
            cleanup_interval_seconds: Minimum delay between expiry sweeps.

        Raises:
            ValueError: If any limit is below 1.
        """
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        if block_seconds < 1:
            raise ValueError("block_seconds must be >= 1")
        if cleanup_interval_seconds < 1:
            raise ValueError("cleanup_interval_seconds must be >= 1")

        self._threshold = threshold
        self._block_ms = block_seconds * 1000
        self._clock = clock
        self._cleanup_interval_ms = cleanup_interval_seconds * 1000
        self._lock = threading.RLock()
        self._blocked_until: dict[str, int] = {}
        self._violations: dict[str, Violations] = {}
        self._last_sweep = self.now_ms()
        self._sweeps = 0

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sweep_locked(self, now: int) -> None:
        if now - self._last_sweep < self._cleanup_interval_ms:
            return

        self._last_sweep = now
        self._sweeps += 1
        for ip in [ip for ip, until in self._blocked_until.items() if until <= now]:
            del self._blocked_until[ip]
        for ip in [ip for ip, seen in self._violations.items() if now - seen.first_seen >= self._block_ms]:
            del self._violations[ip]

    def blocked_until(self, ip: str) -> int | None:
        """Epoch ms at which the block on ``ip`` ends, or None if not blocked."""

        with self._lock:
            now = self.now_ms()
            self._sweep_locked(now)

            until = self._blocked_until.get(ip)
            if until is None:
                return None
            if until <= now:
                del self._blocked_until[ip]
                return None
            return until

    def record_violation(self, ip: str, reason: str) -> bool:
        """Count one violation for ``ip``.

        Returns:
            True if this violation put the IP on the blocklist.
        """
        with self._lock:
            now = self.now_ms()
            self._sweep_locked(now)

            seen = self._violations.get(ip)
            if seen is None or now - seen.first_seen >= self._block_ms:
                seen = Violations(count=0, first_seen=now)
                self._violations[ip] = seen
            seen.count += 1

            logger.warning(
                "ip_screening.violation",
                extra={"client_hash": fingerprint(ip), "reason": reason, "violations": seen.count},
            )
            if seen.count < self._threshold:
                return False

            del self._violations[ip]
            self._blocked_until[ip] = now + self._block_ms
            logger.warning(
                "ip_screening.blocked",
                extra={"client_hash": fingerprint(ip), "block_s": self._block_ms // 1000},
            )
            return True

    def clear(self) -> None:
        with self._lock:
            self._blocked_until.clear()
            self._violations.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "blocked": len(self._blocked_until),
                "suspicious": len(self._violations),
                "sweeps": self._sweeps,
            }
