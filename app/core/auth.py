"""Session authentication wiring.

The session provider is built once by the app factory from configuration
and attached to ``app.state``; guards look it up per request.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from app.adapters.auth.base import AbstractSessionProvider
from app.adapters.auth.repository_session import RepositorySessionProvider
from app.adapters.repository.base import AbstractRepository
from app.core.config import AuthSettings
from app.schemas.user import User


def parse_cookie_names(names_string: str | None) -> list[str]:
    """Parse comma-separated cookie names, keeping their configured order.

    Args:
        names_string: Comma-separated string of cookie names, or None.

    Returns:
        List of trimmed, non-empty, de-duplicated names.

    Examples:
        >>> parse_cookie_names("a, b ,a")
        ['a', 'b']
        >>> parse_cookie_names(None)
        []
    """
    if not names_string:
        return []

    names: list[str] = []
    for name in names_string.split(","):
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


def build_session_provider(
    cfg: AuthSettings,
    repository: AbstractRepository,
    *,
    on_user_created: Callable[[User], None] | None = None,
) -> AbstractSessionProvider:
    """Create the session provider selected by configuration.

    Args:
        cfg: Auth settings.
        repository: Store holding users and sessions.
        on_user_created: Called with any user the provider creates itself
            (the local developer account).
    """
    return RepositorySessionProvider(
        repository,
        cookie_names=parse_cookie_names(cfg.session_cookie_names),
        local_dev=cfg.local_dev,
        local_dev_email=cfg.local_dev_email,
        on_user_created=on_user_created,
    )


def get_session_provider(request: Request) -> AbstractSessionProvider:
    """Return the session provider attached to the running application."""
    return request.app.state.session_provider
