"""User directory (assignee picker) with a cached listing."""

from __future__ import annotations

import logging
from urllib.parse import quote

from app.adapters.repository.base import AbstractRepository
from app.schemas.user import User, UserCreate
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

USERS_CACHE_KEY = "users:all"
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


def default_avatar_url(name: str) -> str:
    """Generated avatar seeded by the user's name (URI-component encoded)."""
    return AVATAR_URL_TEMPLATE.format(seed=quote(name, safe="-_.!~*'()"))


class UserService:
    def __init__(self, repository: AbstractRepository, cache: SimpleTTLCache) -> None:
        self.repository = repository
        self.cache = cache

    def list_users(self) -> list[User]:
        return self.cache.get_or_set(USERS_CACHE_KEY, self.repository.list_users)

    def create_user(self, payload: UserCreate) -> User:
        """Create a user, defaulting the image to a generated avatar.

        Raises:
            ValidationAppError: If the email is already registered.
        """
        user = self.repository.create_user(
            name=payload.name,
            email=payload.email,
            image=payload.image or default_avatar_url(payload.name),
        )
        self.user_added(user)
        return user

    def user_added(self, user: User) -> None:
        """Refresh the cached listing after a user was stored by any path."""
        self.cache.invalidate(USERS_CACHE_KEY)
        logger.info("user.created", extra={"user_id": user.id})
