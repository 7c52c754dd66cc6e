"""Project (page) management scoped to the owning user.

Handles:
- Ownership checks (404 before 403, so foreign ids are distinguishable only
  from missing ones by status, never by content)
- Embedding assignee, tasks and kanban cards in detail responses
- Publishing state and its public URL
- The per-owner list cache, invalidated on every write
- The public read-only projection of published projects
"""

from __future__ import annotations

import logging
from typing import Any

from app.adapters.repository.base import AbstractRepository
from app.core.errors import ForbiddenAppError, NotFoundAppError
from app.schemas.project import Project, ProjectCreate, ProjectDetail, ProjectUpdate, PublicProject
from app.utils.simple_cache import SimpleTTLCache, build_cache_key

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIX = "/public"

# Attributes that may be cleared by sending null
NULLABLE_PROJECT_FIELDS = frozenset({"description", "content", "cover", "due_date", "assignee_id"})


def projects_cache_namespace(user_id: str) -> str:
    return f"projects:{user_id}"


def invalidate_project_lists(cache: SimpleTTLCache, user_id: str) -> None:
    """Drop every cached project list of ``user_id``."""
    cache.invalidate_prefix(f"{projects_cache_namespace(user_id)}:")


def published_url_for(project_id: str) -> str:
    return f"{PUBLIC_PATH_PREFIX}/{project_id}"


def provided_changes(update: Any, nullable: frozenset[str]) -> dict[str, Any]:
    """Collect the fields a client actually sent in a partial update.

    A null is kept only for fields that may legitimately be cleared; for the
    others it is treated as "not provided".
    """
    changes: dict[str, Any] = {}
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field not in nullable:
            continue
        changes[field] = value
    return changes


def get_owned_project(repository: AbstractRepository, project_id: str, user_id: str) -> Project:
    """Load a project and verify the caller owns it.

    Raises:
        NotFoundAppError: If the project does not exist.
        ForbiddenAppError: If it belongs to another user.
    """
    project = repository.get_project(project_id)
    if project is None:
        raise NotFoundAppError(
            code="project_not_found",
            message="Project not found",
            details={"resource": "project", "resource_id": project_id},
        )
    if project.user_id != user_id:
        logger.warning(
            "project.access_denied",
            extra={"project_id": project_id, "user_id": user_id},
        )
        raise ForbiddenAppError(
            code="project_forbidden",
            message="Forbidden",
            details={"resource": "project", "resource_id": project_id},
        )
    return project


class ProjectService:
    """Business logic behind the ``/api/projects`` and ``/api/public`` routes."""

    def __init__(self, repository: AbstractRepository, cache: SimpleTTLCache) -> None:
        self.repository = repository
        self.cache = cache

    def _invalidate(self, user_id: str) -> None:
        invalidate_project_lists(self.cache, user_id)

    def detail(self, project: Project) -> ProjectDetail:
        """Embed the assignee, tasks and kanban cards of ``project``."""
        assignee = self.repository.get_user(project.assignee_id) if project.assignee_id else None
        return ProjectDetail(
            **project.model_dump(),
            assignee=assignee,
            tasks=self.repository.list_tasks([project.id]),
            kanban_cards=self.repository.list_cards([project.id]),
        )

    def list_projects(self, user_id: str, *, favorites_only: bool = False) -> list[ProjectDetail]:
        """Return the caller's projects, most recently updated first."""

        key = build_cache_key(projects_cache_namespace(user_id), "favorites" if favorites_only else "all")
        return self.cache.get_or_set(
            key,
            lambda: [
                self.detail(project)
                for project in self.repository.list_projects(user_id, favorites_only=favorites_only)
            ],
        )

    def get_project(self, project_id: str, user_id: str) -> ProjectDetail:
        return self.detail(get_owned_project(self.repository, project_id, user_id))

    def create_project(self, user_id: str, payload: ProjectCreate) -> ProjectDetail:
        """Create a project owned by ``user_id``.

        Omitted optional fields fall back to the record defaults (the page
        emoji included).
        """
        data = payload.model_dump(exclude_none=True)
        project = self.repository.create_project(user_id, data)
        self._invalidate(user_id)

        logger.info("project.created", extra={"project_id": project.id, "user_id": user_id})
        return self.detail(project)

    def update_project(self, project_id: str, user_id: str, payload: ProjectUpdate) -> ProjectDetail:
        """Apply the provided fields of ``payload``.

        Toggling ``is_published`` sets or clears ``published_url``. Changing
        ``content`` bumps ``content_version``.
        """
        current = get_owned_project(self.repository, project_id, user_id)
        changes = provided_changes(payload, NULLABLE_PROJECT_FIELDS)

        if "is_published" in changes:
            changes["published_url"] = published_url_for(project_id) if changes["is_published"] else None
        if "content" in changes:
            changes["content_version"] = current.content_version + 1

        updated = self.repository.update_project(project_id, changes) or current
        self._invalidate(user_id)

        logger.info(
            "project.updated",
            extra={"project_id": project_id, "user_id": user_id, "fields": sorted(changes)},
        )
        return self.detail(updated)

    def delete_project(self, project_id: str, user_id: str) -> None:
        get_owned_project(self.repository, project_id, user_id)
        self.repository.delete_project(project_id)
        self._invalidate(user_id)
        logger.info("project.deleted", extra={"project_id": project_id, "user_id": user_id})

    def get_public_project(self, project_id: str) -> PublicProject:
        """Return the public projection of a published project.

        Raises:
            NotFoundAppError: If the project does not exist.
            ForbiddenAppError: If it is not published.
        """
        project = self.repository.get_project(project_id)
        if project is None:
            raise NotFoundAppError(code="project_not_found", message="Project not found")
        if not project.is_published:
            raise ForbiddenAppError(code="project_not_published", message="Project is not published")

        return PublicProject(
            id=project.id,
            title=project.title,
            content=project.content,
            emoji=project.emoji,
            cover=project.cover,
            is_small_text=project.is_small_text,
            is_full_width=project.is_full_width,
            is_published=project.is_published,
        )
