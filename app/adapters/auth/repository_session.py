"""Database-session provider backed by the application repository.

The session token is read from the auth cookie or from an
``Authorization: Bearer`` header, looked up in the repository and checked for
expiry. In local development a missing session can resolve to a fixed
developer account instead; ``on_user_created`` is told when that account is
first created so cached user listings can be refreshed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable

from fastapi import Request

from app.adapters.auth.base import AbstractSessionProvider
from app.adapters.repository.base import AbstractRepository
from app.core.logging import fingerprint
from app.schemas.user import AuthenticatedUser, User

logger = logging.getLogger(__name__)

LOCAL_DEV_NAME = "Local Developer"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def extract_session_token(request: Request, cookie_names: Iterable[str]) -> str | None:
    """Find the session token in cookies first, then in the Authorization header."""
    for name in cookie_names:
        token = request.cookies.get(name)
        if token:
            return token

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def _to_principal(user: User) -> AuthenticatedUser:
    return AuthenticatedUser(id=user.id, name=user.name, email=user.email, image=user.image)


class RepositorySessionProvider(AbstractSessionProvider):
    """Resolves principals from sessions stored in the repository."""

    def __init__(
        self,
        repository: AbstractRepository,
        *,
        cookie_names: Iterable[str],
        local_dev: bool = False,
        local_dev_email: str = "local@khmer-note.dev",
        clock: Callable[[], datetime] = _utcnow,
        on_user_created: Callable[[User], None] | None = None,
    ) -> None:
        self._repository = repository
        self._cookie_names = tuple(cookie_names)
        self._local_dev = local_dev
        self._local_dev_email = local_dev_email
        self._clock = clock
        self._on_user_created = on_user_created

    async def get_user(self, request: Request) -> AuthenticatedUser | None:
        token = extract_session_token(request, self._cookie_names)
        if token is None:
            if self._local_dev:
                return _to_principal(self._get_or_create_local_user())
            return None

        session = self._repository.get_session(token)
        if session is None:
            logger.info("auth.unknown_session", extra={"token_hash": fingerprint(token)})
            return None

        if session.expires <= self._clock():
            logger.info("auth.expired_session", extra={"token_hash": fingerprint(token)})
            self._repository.delete_session(token)
            return None

        user = self._repository.get_user(session.user_id)
        if user is None:
            logger.warning(
                "auth.orphaned_session",
                extra={"token_hash": fingerprint(token), "user_id": session.user_id},
            )
            return None

        return _to_principal(user)

    def _get_or_create_local_user(self) -> User:
        user = self._repository.get_user_by_email(self._local_dev_email)
        if user is None:
            user = self._repository.create_user(name=LOCAL_DEV_NAME, email=self._local_dev_email)
            logger.info("auth.local_dev_user_created", extra={"user_id": user.id})
            if self._on_user_created is not None:
                self._on_user_created(user)
        return user
