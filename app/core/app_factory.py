"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the per-application collaborators: the record store, rate limiter, session
provider, blob store and list cache are created here and attached to
``app.state``, so each app instance (and each test) owns its own state.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.adapters.auth.base import AbstractSessionProvider
from app.adapters.blob.base import AbstractBlobStore
from app.adapters.blob.local import LocalBlobStore
from app.adapters.rate_limit.ip_blocklist import IpBlocklist
from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.repository.base import AbstractRepository
from app.adapters.repository.in_memory import InMemoryRepository
from app.api.routes import (
    health_router,
    kanban_router,
    projects_router,
    public_router,
    sync_router,
    tasks_router,
    upload_router,
    users_router,
)
from app.core.auth import build_session_provider, parse_cookie_names
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import (
    ip_screening_middleware,
    request_id_middleware,
    security_headers_middleware,
)
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter
from app.services.kanban_service import KanbanService
from app.services.project_service import ProjectService
from app.services.sync_service import SyncService
from app.services.task_service import TaskService
from app.services.user_service import UserService
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


def create_app(
    *,
    repository: AbstractRepository | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    session_provider: AbstractSessionProvider | None = None,
    blob_store: AbstractBlobStore | None = None,
    ip_blocklist: IpBlocklist | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Collaborators not passed in are built from ``settings``.

    Args:
        repository: Record store (defaults to an in-memory store).
        rate_limiter: Limiter (defaults to the configured backend).
        session_provider: Principal resolver (defaults to repository sessions).
        blob_store: Upload storage (defaults to the local filesystem store).
        ip_blocklist: Screening blocklist (defaults to an in-memory blocklist).

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Khmer Note API",
        description=(
            "Backend for Khmer Note: projects (pages) with rich-text content, "
            "checklist tasks and a kanban board, a user directory, public file "
            "uploads and read-only published pages. Authenticated by session, "
            "rate limited per client and endpoint."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    repository = repository or InMemoryRepository()
    cache = SimpleTTLCache(ttl_seconds=settings.app.cache_ttl_seconds)
    blob_store = blob_store or LocalBlobStore(
        settings.storage.upload_dir,
        public_base_url=settings.storage.public_base_url,
        add_random_suffix=settings.storage.add_random_suffix,
    )

    app.state.repository = repository
    app.state.cache = cache
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings.rate_limit)
    app.state.ip_blocklist = ip_blocklist or IpBlocklist(
        threshold=settings.rate_limit.suspicious_threshold,
        block_seconds=settings.rate_limit.block_seconds,
        cleanup_interval_seconds=settings.rate_limit.cleanup_interval_seconds,
    )
    app.state.blob_store = blob_store
    app.state.project_service = ProjectService(repository, cache)
    app.state.task_service = TaskService(repository, cache)
    app.state.kanban_service = KanbanService(repository, cache)
    app.state.user_service = UserService(repository, cache)
    app.state.sync_service = SyncService(repository, cache, app.state.project_service)
    app.state.session_provider = session_provider or build_session_provider(
        settings.auth,
        repository,
        on_user_created=app.state.user_service.user_added,
    )

    # Middleware (the last one added runs first)
    app.middleware("http")(ip_screening_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(kanban_router)
    app.include_router(users_router)
    app.include_router(upload_router)
    app.include_router(sync_router)
    app.include_router(public_router)
    app.include_router(health_router)

    # Uploaded blobs are public
    if isinstance(blob_store, LocalBlobStore):
        app.mount(
            settings.storage.public_base_url,
            StaticFiles(directory=blob_store.base_path),
            name="uploads",
        )

    # OpenAPI customizations (security schemes, tags, exemptions)
    cookie_names = parse_cookie_names(settings.auth.session_cookie_names)
    apply_openapi_customizations(app, cookie_names[0] if cookie_names else "authjs.session-token")

    logger.info(
        "app.created",
        extra={
            "app_env": settings.app_env,
            "rate_limit_backend": settings.rate_limit.backend,
            "rate_limit_enabled": settings.rate_limit.enabled,
        },
    )
    return app
