"""Tests for the request guards (authentication and rate limiting)."""

from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.adapters.auth.base import AbstractSessionProvider
from app.adapters.rate_limit.base import RateLimitConfig
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.api_response import RATE_LIMIT_USER_MESSAGE
from app.core.request_guard import require_auth_and_rate_limit, require_rate_limit
from app.schemas.user import AuthenticatedUser

PRIVATE_BUDGET = RateLimitConfig(limit=1, window_seconds=60)
PUBLIC_BUDGET = RateLimitConfig(limit=2, window_seconds=60)


class StaticSessionProvider(AbstractSessionProvider):
    """Returns the same principal (or none) for every request."""

    def __init__(self, user: AuthenticatedUser | None) -> None:
        self.user = user

    async def get_user(self, request: Request) -> AuthenticatedUser | None:
        return self.user


class FailingSessionProvider(AbstractSessionProvider):
    async def get_user(self, request: Request) -> AuthenticatedUser | None:
        raise RuntimeError("session store offline")


def _guarded_app(limiter: InMemoryRateLimiter, provider: AbstractSessionProvider) -> FastAPI:
    app = FastAPI()
    app.state.rate_limiter = limiter
    app.state.session_provider = provider

    @app.get("/public")
    async def public(request: Request):
        guard = require_rate_limit(request, "public:get", PUBLIC_BUDGET)
        if not guard.success:
            return guard.response
        return {"ok": True}

    @app.get("/private")
    async def private(request: Request):
        guard = await require_auth_and_rate_limit(request, "private:get", PRIVATE_BUDGET)
        if not guard.success:
            return guard.response
        return {"user": guard.user.id}

    return app


@pytest.fixture
def limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=Mock(return_value=1000.0))


@pytest.fixture
def principal() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-1", name="Sok Dara")


class TestRequireAuthAndRateLimit:
    def test_missing_session_returns_401_without_counting(self, limiter: InMemoryRateLimiter) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(None)))

        for _ in range(3):
            response = client.get("/private")
            assert response.status_code == 401
            assert response.json() == {"error": "Unauthorized"}

        assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert limiter.stats()["entries"] == 0

    def test_authenticated_request_passes_user_through(
        self, limiter: InMemoryRateLimiter, principal: AuthenticatedUser
    ) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(principal)))

        response = client.get("/private")

        assert response.status_code == 200
        assert response.json() == {"user": "user-1"}
        assert limiter.get_entry("private:get:anonymous").count == 1

    def test_exhausted_budget_returns_429_with_headers(
        self, limiter: InMemoryRateLimiter, principal: AuthenticatedUser
    ) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(principal)))

        assert client.get("/private").status_code == 200
        response = client.get("/private")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests",
            "message": RATE_LIMIT_USER_MESSAGE,
            "retryAfter": 60,
        }
        assert response.headers["X-RateLimit-Limit"] == "1"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1060000"
        assert response.headers["Retry-After"] == "60"
        assert response.headers["Pragma"] == "no-cache"

    def test_provider_failure_returns_generic_500(self, limiter: InMemoryRateLimiter) -> None:
        client = TestClient(_guarded_app(limiter, FailingSessionProvider()))

        response = client.get("/private")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to authenticate request"}
        assert "offline" not in response.text


class TestRequireRateLimit:
    def test_budget_is_per_client(self, limiter: InMemoryRateLimiter) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(None)))
        first = {"x-forwarded-for": "1.1.1.1"}
        second = {"x-forwarded-for": "2.2.2.2"}

        assert client.get("/public", headers=first).status_code == 200
        assert client.get("/public", headers=first).status_code == 200
        assert client.get("/public", headers=first).status_code == 429

        assert client.get("/public", headers=second).status_code == 200
        assert limiter.get_entry("public:get:1.1.1.1").count == 3

    def test_disabled_rate_limiting_skips_the_store(self, limiter: InMemoryRateLimiter) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(None)))

        with patch("app.core.request_guard.settings") as mock_settings:
            mock_settings.rate_limit.enabled = False
            for _ in range(5):
                assert client.get("/public").status_code == 200

        assert limiter.stats()["entries"] == 0

    def test_headers_can_be_omitted(self, limiter: InMemoryRateLimiter) -> None:
        client = TestClient(_guarded_app(limiter, StaticSessionProvider(None)))

        with patch("app.core.request_guard.settings") as mock_settings:
            mock_settings.rate_limit = MagicMock(enabled=True, include_headers=False)
            client.get("/public")
            client.get("/public")
            response = client.get("/public")

        assert response.status_code == 429
        assert "X-RateLimit-Limit" not in response.headers
        assert "Retry-After" not in response.headers
        assert response.json()["retryAfter"] == 60
