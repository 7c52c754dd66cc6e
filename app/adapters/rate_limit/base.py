"""Rate limiter interfaces.

Guards depend on this abstraction (not the concrete implementation) so the
counter store can move from process memory to a shared store such as Redis
without changing guard or route code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Budget for one class of endpoints.

    Attributes:
        limit: Max requests per window.
        window_seconds: Size of the fixed window in seconds.
    """

    limit: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        success: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset: UNIX epoch milliseconds when the current window resets.
    """

    success: bool
    limit: int
    remaining: int
    reset: int

    def retry_after_seconds(self, now_ms: int) -> int:
        """Whole seconds until the window resets, rounded up."""
        return max(0, -(-(self.reset - now_ms) // 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request against ``identifier`` and report the outcome.

        Args:
            identifier: Namespaced key, e.g. ``"upload:post:<client id>"``.
            config: Budget to enforce for this key.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def now_ms(self) -> int:
        """Current time of the limiter's clock in epoch milliseconds."""
        raise NotImplementedError

    def ping(self) -> bool:
        """Whether the counter store is reachable; in-process stores always are."""
        return True
