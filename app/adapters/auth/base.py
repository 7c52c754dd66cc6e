"""Session provider interface.

The guard layer only needs "who is calling?"; how sessions are issued
(OAuth, credentials) belongs to the external auth provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fastapi import Request

from app.schemas.user import AuthenticatedUser


class AbstractSessionProvider(ABC):
    """Interface for resolving the authenticated principal of a request."""

    @abstractmethod
    async def get_user(self, request: Request) -> AuthenticatedUser | None:
        """Return the principal for ``request``, or None when unauthenticated."""
        ...
