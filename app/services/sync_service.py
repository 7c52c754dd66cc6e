"""Offline sync: hand out changed projects and merge client snapshots back.

Reconciliation is last-writer-wins per project on ``updated_at``. Tasks and
cards of a project are merged only when the project itself wins; within it
``temp-`` ids are created, ``_deleted`` ids removed and the rest updated.
Ids that do not belong to the project are ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.repository.base import AbstractRepository
from app.schemas.common import KanbanColumn
from app.schemas.project import Project, ProjectDetail
from app.schemas.sync import SyncCard, SyncProject, SyncRequest, SyncResponse, SyncResults, SyncSnapshot, SyncTask
from app.services.project_service import NULLABLE_PROJECT_FIELDS, ProjectService, invalidate_project_lists
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

PROJECT_SYNC_FIELDS = frozenset(
    {"title", "description", "content", "emoji", "cover", "status", "due_date", "is_favorite"}
)
TASK_SYNC_FIELDS = frozenset({"text", "tag", "checked", "order"})
CARD_SYNC_FIELDS = frozenset({"text", "column", "priority", "order"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with stored ones."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _sent_fields(item: Any, fields: frozenset[str], nullable: frozenset[str]) -> dict[str, Any]:
    changes = item.model_dump(include=set(fields), exclude_unset=True)
    return {key: value for key, value in changes.items() if value is not None or key in nullable}


class SyncService:
    """Business logic behind ``/api/sync``."""

    def __init__(
        self,
        repository: AbstractRepository,
        cache: SimpleTTLCache,
        projects: ProjectService,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.projects = projects
        self._clock = clock

    def _all_projects(self, user_id: str, since: datetime | None = None) -> list[ProjectDetail]:
        records = self.repository.list_projects(user_id)
        if since is not None:
            since = as_utc(since)
            records = [project for project in records if project.updated_at >= since]
        return [self.projects.detail(project) for project in records]

    def changes_since(self, user_id: str, since: datetime | None = None) -> SyncSnapshot:
        """Return the caller's projects updated at or after ``since`` (all if omitted)."""

        synced_at = self._clock()
        return SyncSnapshot(projects=self._all_projects(user_id, since), synced_at=synced_at)

    def reconcile(self, user_id: str, payload: SyncRequest) -> SyncResponse:
        """Merge the client's projects and return the caller's full project list.

        An empty ``projects`` list only fetches.
        """
        results = SyncResults()
        for item in payload.projects:
            if item.deleted and not item.is_temporary:
                if self._delete_project(item.id, user_id):
                    results.deleted.append(item.id)
                continue

            if item.is_temporary:
                if not item.deleted:
                    results.created.append(self._create_project(user_id, item).id)
                continue

            if self._update_project(user_id, item):
                results.updated.append(item.id)

        if payload.projects:
            invalidate_project_lists(self.cache, user_id)
            logger.info(
                "sync.reconciled",
                extra={
                    "user_id": user_id,
                    "received": len(payload.projects),
                    "created": len(results.created),
                    "updated": len(results.updated),
                    "deleted": len(results.deleted),
                },
            )

        synced_at = self._clock()
        return SyncResponse(projects=self._all_projects(user_id), synced_at=synced_at, results=results)

    def _delete_project(self, project_id: str, user_id: str) -> bool:
        project = self.repository.get_project(project_id)
        if project is None or project.user_id != user_id:
            return False
        return self.repository.delete_project(project_id)

    def _create_project(self, user_id: str, item: SyncProject) -> Project:
        data = item.model_dump(include=set(PROJECT_SYNC_FIELDS), exclude_none=True)
        project = self.repository.create_project(user_id, data)

        for task in item.tasks or []:
            if not task.deleted:
                self._create_task(project.id, task)
        for card in item.kanban_cards or []:
            if not card.deleted:
                self._create_card(project.id, card)
        return project

    def _update_project(self, user_id: str, item: SyncProject) -> bool:
        existing = self.repository.get_project(item.id)
        if existing is None or existing.user_id != user_id:
            return False
        if as_utc(item.updated_at) <= existing.updated_at:
            logger.info("sync.stale_project", extra={"project_id": item.id, "user_id": user_id})
            return False

        changes = _sent_fields(item, PROJECT_SYNC_FIELDS, NULLABLE_PROJECT_FIELDS)
        if "content" in changes:
            changes["content_version"] = existing.content_version + 1
        self.repository.update_project(item.id, changes)

        if item.tasks is not None:
            self._merge_tasks(item.id, item.tasks)
        if item.kanban_cards is not None:
            self._merge_cards(item.id, item.kanban_cards)
        return True

    def _create_task(self, project_id: str, task: SyncTask) -> None:
        self.repository.create_task(
            project_id,
            {"text": task.text, "tag": task.tag, "checked": bool(task.checked), "order": task.order or 0},
        )

    def _create_card(self, project_id: str, card: SyncCard) -> None:
        self.repository.create_card(
            project_id,
            {
                "text": card.text,
                "column": card.column or KanbanColumn.TODO,
                "priority": card.priority,
                "order": card.order or 0,
            },
        )

    def _merge_tasks(self, project_id: str, tasks: list[SyncTask]) -> None:
        for task in tasks:
            if task.deleted and not task.is_temporary:
                current = self.repository.get_task(task.id)
                if current is not None and current.project_id == project_id:
                    self.repository.delete_task(task.id)
        for task in tasks:
            if task.is_temporary and not task.deleted:
                self._create_task(project_id, task)
        for task in tasks:
            if task.is_temporary or task.deleted:
                continue
            current = self.repository.get_task(task.id)
            if current is not None and current.project_id == project_id:
                self.repository.update_task(task.id, _sent_fields(task, TASK_SYNC_FIELDS, frozenset({"tag"})))

    def _merge_cards(self, project_id: str, cards: list[SyncCard]) -> None:
        for card in cards:
            if card.deleted and not card.is_temporary:
                current = self.repository.get_card(card.id)
                if current is not None and current.project_id == project_id:
                    self.repository.delete_card(card.id)
        for card in cards:
            if card.is_temporary and not card.deleted:
                self._create_card(project_id, card)
        for card in cards:
            if card.is_temporary or card.deleted:
                continue
            current = self.repository.get_card(card.id)
            if current is not None and current.project_id == project_id:
                self.repository.update_card(card.id, _sent_fields(card, CARD_SYNC_FIELDS, frozenset({"priority"})))
