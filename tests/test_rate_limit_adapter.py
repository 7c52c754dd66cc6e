"""Unit tests for in-memory rate limiter adapter."""

from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import RateLimitConfig, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock)
    config = RateLimitConfig(limit=3, window_seconds=60)

    first = limiter.check("k", config)
    assert first.success is True
    assert first.remaining == 2
    assert first.reset == 1_060_000

    assert limiter.check("k", config).remaining == 1
    result = limiter.check("k", config)
    assert result.success is True
    assert result.remaining == 0


def test_blocks_when_over_limit_with_stable_reset() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock)
    config = RateLimitConfig(limit=2, window_seconds=60)

    first = limiter.check("k", config)
    limiter.check("k", config)

    clock.return_value = 1030.0
    blocked = limiter.check("k", config)
    assert blocked.success is False
    assert blocked.remaining == 0
    assert blocked.limit == 2
    assert blocked.reset == first.reset
    assert blocked.retry_after_seconds(limiter.now_ms()) == 30


def test_blocked_requests_still_count() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock)
    config = RateLimitConfig(limit=1, window_seconds=60)

    limiter.check("k", config)
    limiter.check("k", config)
    limiter.check("k", config)

    assert limiter.get_entry("k").count == 3


def test_resets_on_new_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock)
    config = RateLimitConfig(limit=1, window_seconds=10)

    assert limiter.check("k", config).success is True
    assert limiter.check("k", config).success is False

    # The window is still current at exactly its reset time
    clock.return_value = 1010.0
    assert limiter.check("k", config).success is False

    clock.return_value = 1010.5
    renewed = limiter.check("k", config)
    assert renewed.success is True
    assert renewed.remaining == 0
    assert renewed.reset == 1_020_500


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock)
    config = RateLimitConfig(limit=1, window_seconds=60)

    assert limiter.check("projects:get:1.2.3.4", config).success is True
    assert limiter.check("projects:get:1.2.3.4", config).success is False

    assert limiter.check("projects:get:5.6.7.8", config).success is True
    assert limiter.check("tasks:get:1.2.3.4", config).success is True


def test_sweep_runs_at_most_once_per_interval() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock, cleanup_interval_seconds=60)
    config = RateLimitConfig(limit=5, window_seconds=1)

    limiter.check("a", config)
    clock.return_value = 1030.0
    limiter.check("b", config)
    assert limiter.stats() == {"entries": 2, "sweeps": 0}

    clock.return_value = 1060.0
    limiter.check("c", config)
    stats = limiter.stats()
    assert stats["sweeps"] == 1
    # "a" and "b" had expired and were swept; "c" was just added
    assert stats["entries"] == 1
    assert limiter.get_entry("a") is None

    clock.return_value = 1090.0
    limiter.check("d", config)
    assert limiter.stats()["sweeps"] == 1

    clock.return_value = 1120.0
    limiter.check("e", config)
    assert limiter.stats()["sweeps"] == 2


def test_sweep_keeps_live_entries() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryRateLimiter(clock=clock, cleanup_interval_seconds=1)
    config = RateLimitConfig(limit=5, window_seconds=120)

    limiter.check("live", config)
    clock.return_value = 1060.0
    limiter.check("other", config)

    assert limiter.get_entry("live").count == 1


def test_clear_drops_all_entries() -> None:
    limiter = InMemoryRateLimiter(clock=Mock(return_value=1000.0))
    limiter.check("k", RateLimitConfig(limit=1, window_seconds=60))

    limiter.clear()

    assert limiter.stats()["entries"] == 0
    assert limiter.get_entry("k") is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_config_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_invalid_constructor_and_check_args() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimiter(cleanup_interval_seconds=0)

    limiter = InMemoryRateLimiter()
    with pytest.raises(ValueError):
        limiter.check("", RateLimitConfig(limit=1, window_seconds=60))


@pytest.mark.parametrize(
    ("reset", "now", "expected"),
    [
        (10_000, 9_000, 1),
        (10_000, 8_999, 2),
        (10_000, 10_000, 0),
        (10_000, 12_000, 0),
    ],
)
def test_retry_after_rounds_up_and_never_negative(reset: int, now: int, expected: int) -> None:
    result = RateLimitResult(success=False, limit=1, remaining=0, reset=reset)
    assert result.retry_after_seconds(now) == expected
