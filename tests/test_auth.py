"""Unit tests for session authentication."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from starlette.requests import Request

from app.adapters.auth.repository_session import (
    LOCAL_DEV_NAME,
    RepositorySessionProvider,
    extract_session_token,
)
from app.adapters.repository.in_memory import InMemoryRepository
from app.core.auth import build_session_provider, parse_cookie_names
from app.core.config import AuthSettings

COOKIE_NAMES = ["authjs.session-token", "__Secure-authjs.session-token"]
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_request(headers: dict[str, str] | None = None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers})


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


def _provider(repository: InMemoryRepository, **kwargs) -> RepositorySessionProvider:
    return RepositorySessionProvider(repository, cookie_names=COOKIE_NAMES, clock=lambda: NOW, **kwargs)


class TestParseCookieNames:
    """Test cookie name parsing utility function."""

    def test_parse_multiple_names_keeps_order(self) -> None:
        assert parse_cookie_names("b, a ,c") == ["b", "a", "c"]

    def test_parse_removes_duplicates(self) -> None:
        assert parse_cookie_names("a,b,a") == ["a", "b"]

    @pytest.mark.parametrize("value", [None, "", "  ,  , "])
    def test_parse_empty_inputs(self, value) -> None:
        assert parse_cookie_names(value) == []


class TestExtractSessionToken:
    def test_reads_cookie(self) -> None:
        request = make_request({"cookie": "authjs.session-token=abc"})
        assert extract_session_token(request, COOKIE_NAMES) == "abc"

    def test_reads_secure_cookie(self) -> None:
        request = make_request({"cookie": "__Secure-authjs.session-token=xyz"})
        assert extract_session_token(request, COOKIE_NAMES) == "xyz"

    def test_reads_bearer_header(self) -> None:
        request = make_request({"authorization": "Bearer tok-1"})
        assert extract_session_token(request, COOKIE_NAMES) == "tok-1"

    def test_cookie_wins_over_header(self) -> None:
        request = make_request({"cookie": "authjs.session-token=abc", "authorization": "Bearer tok-1"})
        assert extract_session_token(request, COOKIE_NAMES) == "abc"

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Bearer ", "tok-1"])
    def test_ignores_other_schemes(self, header: str) -> None:
        assert extract_session_token(make_request({"authorization": header}), COOKIE_NAMES) is None


class TestRepositorySessionProvider:
    @pytest.mark.asyncio
    async def test_valid_session_resolves_user(self, repository: InMemoryRepository) -> None:
        user = repository.create_user(name="Sok Dara", email="dara@example.com")
        session = repository.create_session(user.id, expires=NOW + timedelta(hours=1))

        principal = await _provider(repository).get_user(
            make_request({"authorization": f"Bearer {session.session_token}"})
        )

        assert principal is not None
        assert principal.id == user.id
        assert principal.email == "dara@example.com"

    @pytest.mark.asyncio
    async def test_missing_token_returns_none(self, repository: InMemoryRepository) -> None:
        assert await _provider(repository).get_user(make_request()) is None

    @pytest.mark.asyncio
    async def test_unknown_token_returns_none(self, repository: InMemoryRepository) -> None:
        request = make_request({"authorization": "Bearer not-a-session"})
        assert await _provider(repository).get_user(request) is None

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted(self, repository: InMemoryRepository) -> None:
        user = repository.create_user(name="Sok Dara")
        session = repository.create_session(user.id, expires=NOW - timedelta(seconds=1))

        request = make_request({"cookie": f"authjs.session-token={session.session_token}"})
        assert await _provider(repository).get_user(request) is None
        assert repository.get_session(session.session_token) is None

    @pytest.mark.asyncio
    async def test_session_of_missing_user_returns_none(self, repository: InMemoryRepository) -> None:
        session = repository.create_session("ghost-user", expires=NOW + timedelta(hours=1))

        request = make_request({"authorization": f"Bearer {session.session_token}"})
        assert await _provider(repository).get_user(request) is None

    @pytest.mark.asyncio
    async def test_local_dev_creates_developer_once(self, repository: InMemoryRepository) -> None:
        provider = _provider(repository, local_dev=True, local_dev_email="local@khmer-note.dev")

        first = await provider.get_user(make_request())
        second = await provider.get_user(make_request())

        assert first is not None
        assert first.name == LOCAL_DEV_NAME
        assert first.id == second.id
        assert len(repository.list_users()) == 1

    @pytest.mark.asyncio
    async def test_local_dev_reports_created_developer(self, repository: InMemoryRepository) -> None:
        on_user_created = Mock()
        provider = _provider(repository, local_dev=True, on_user_created=on_user_created)

        await provider.get_user(make_request())
        await provider.get_user(make_request())

        on_user_created.assert_called_once()
        assert on_user_created.call_args.args[0].name == LOCAL_DEV_NAME


@pytest.mark.asyncio
async def test_build_session_provider_uses_configured_cookie(repository: InMemoryRepository) -> None:
    provider = build_session_provider(
        AuthSettings(local_dev=False, session_cookie_names="custom-cookie"),
        repository,
    )
    user = repository.create_user(name="Sok Dara")
    session = repository.create_session(user.id, expires=datetime.now(timezone.utc) + timedelta(hours=1))

    principal = await provider.get_user(make_request({"cookie": f"custom-cookie={session.session_token}"}))
    assert principal is not None
    assert principal.id == user.id

    default_cookie = make_request({"cookie": f"authjs.session-token={session.session_token}"})
    assert await provider.get_user(default_cookie) is None
