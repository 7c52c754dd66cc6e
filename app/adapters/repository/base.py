"""Persistence interface for users, sessions, projects, tasks and cards.

Services depend on this abstraction so the storage engine (in-memory for
development and tests, a relational database in production) can be swapped
without touching business logic.

Mutating methods take plain dicts of already-validated field values keyed by
snake_case attribute name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from app.schemas.common import KanbanColumn
from app.schemas.kanban import KanbanCard
from app.schemas.project import Project
from app.schemas.task import Task
from app.schemas.user import Session, User


class AbstractRepository(ABC):
    """Interface for the application's record store."""

    # Users

    @abstractmethod
    def list_users(self) -> list[User]:
        """Return all users ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        raise NotImplementedError

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None:
        raise NotImplementedError

    @abstractmethod
    def create_user(
        self,
        *,
        name: str | None,
        email: str | None = None,
        image: str | None = None,
    ) -> User:
        """Create a user.

        Raises:
            ValidationAppError: If the email is already registered.
        """
        raise NotImplementedError

    # Sessions

    @abstractmethod
    def create_session(
        self,
        user_id: str,
        *,
        expires: datetime,
        session_token: str | None = None,
    ) -> Session:
        raise NotImplementedError

    @abstractmethod
    def get_session(self, session_token: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    def delete_session(self, session_token: str) -> bool:
        raise NotImplementedError

    # Projects

    @abstractmethod
    def list_projects(self, user_id: str, *, favorites_only: bool = False) -> list[Project]:
        """Return a user's projects, most recently updated first."""
        raise NotImplementedError

    @abstractmethod
    def get_project(self, project_id: str) -> Project | None:
        raise NotImplementedError

    @abstractmethod
    def create_project(self, user_id: str, data: dict[str, Any]) -> Project:
        raise NotImplementedError

    @abstractmethod
    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project | None:
        raise NotImplementedError

    @abstractmethod
    def delete_project(self, project_id: str) -> bool:
        """Delete a project together with its tasks and kanban cards."""
        raise NotImplementedError

    # Tasks

    @abstractmethod
    def list_tasks(self, project_ids: list[str]) -> list[Task]:
        """Return the tasks of the given projects ordered by position."""
        raise NotImplementedError

    @abstractmethod
    def get_task(self, task_id: str) -> Task | None:
        raise NotImplementedError

    @abstractmethod
    def next_task_order(self, project_id: str) -> int:
        """Position after the last task of a project (0 for an empty list)."""
        raise NotImplementedError

    @abstractmethod
    def create_task(self, project_id: str, data: dict[str, Any]) -> Task:
        raise NotImplementedError

    @abstractmethod
    def update_task(self, task_id: str, changes: dict[str, Any]) -> Task | None:
        raise NotImplementedError

    @abstractmethod
    def delete_task(self, task_id: str) -> Task | None:
        raise NotImplementedError

    # Kanban cards

    @abstractmethod
    def list_cards(self, project_ids: list[str]) -> list[KanbanCard]:
        """Return the cards of the given projects ordered by column, then position."""
        raise NotImplementedError

    @abstractmethod
    def get_card(self, card_id: str) -> KanbanCard | None:
        raise NotImplementedError

    @abstractmethod
    def next_card_order(self, project_id: str, column: KanbanColumn) -> int:
        """Position after the last card of a column (0 for an empty column)."""
        raise NotImplementedError

    @abstractmethod
    def create_card(self, project_id: str, data: dict[str, Any]) -> KanbanCard:
        raise NotImplementedError

    @abstractmethod
    def update_card(self, card_id: str, changes: dict[str, Any]) -> KanbanCard | None:
        raise NotImplementedError

    @abstractmethod
    def delete_card(self, card_id: str) -> KanbanCard | None:
        raise NotImplementedError

    @abstractmethod
    def delete_cards_for_project(self, project_id: str) -> int:
        """Delete every card of a project and return how many were removed."""
        raise NotImplementedError
