"""Checklist tasks belonging to a user's projects."""

from __future__ import annotations

import logging

from app.adapters.repository.base import AbstractRepository
from app.core.errors import NotFoundAppError
from app.schemas.task import DEFAULT_TASK_TAG, Task, TaskCreate, TaskUpdate
from app.services.project_service import get_owned_project, invalidate_project_lists, provided_changes
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


class TaskService:
    """Business logic behind the ``/api/tasks`` routes.

    Access to a task is decided by its parent project: the caller must own it.
    """

    def __init__(self, repository: AbstractRepository, cache: SimpleTTLCache) -> None:
        self.repository = repository
        self.cache = cache

    def _owned_task(self, task_id: str, user_id: str) -> Task:
        task = self.repository.get_task(task_id)
        if task is None:
            raise NotFoundAppError(
                code="task_not_found",
                message="Task not found",
                details={"resource": "task", "resource_id": task_id},
            )
        get_owned_project(self.repository, task.project_id, user_id)
        return task

    def _touched(self, user_id: str) -> None:
        # Project list entries embed their tasks
        invalidate_project_lists(self.cache, user_id)

    def list_tasks(self, user_id: str, project_id: str | None = None) -> list[Task]:
        """List tasks of one owned project, or of all the caller's projects."""

        if project_id is not None:
            get_owned_project(self.repository, project_id, user_id)
            return self.repository.list_tasks([project_id])

        project_ids = [project.id for project in self.repository.list_projects(user_id)]
        return self.repository.list_tasks(project_ids)

    def get_task(self, task_id: str, user_id: str) -> Task:
        return self._owned_task(task_id, user_id)

    def create_task(self, user_id: str, payload: TaskCreate) -> Task:
        """Append a task to the end of its project's checklist."""

        get_owned_project(self.repository, payload.project_id, user_id)
        task = self.repository.create_task(
            payload.project_id,
            {
                "text": payload.text,
                "checked": bool(payload.checked),
                "tag": payload.tag if payload.tag is not None else DEFAULT_TASK_TAG,
                "order": self.repository.next_task_order(payload.project_id),
            },
        )
        self._touched(user_id)

        logger.info(
            "task.created",
            extra={"task_id": task.id, "project_id": task.project_id, "order": task.order},
        )
        return task

    def update_task(self, task_id: str, user_id: str, payload: TaskUpdate) -> Task:
        current = self._owned_task(task_id, user_id)
        changes = provided_changes(payload, frozenset({"tag"}))
        updated = self.repository.update_task(task_id, changes) or current
        self._touched(user_id)
        return updated

    def delete_task(self, task_id: str, user_id: str) -> None:
        self._owned_task(task_id, user_id)
        self.repository.delete_task(task_id)
        self._touched(user_id)
        logger.info("task.deleted", extra={"task_id": task_id})
