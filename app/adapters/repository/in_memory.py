"""In-memory record store.

Notes:
- Per-process only and not persisted: data is lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import secrets
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.repository.base import AbstractRepository
from app.core.errors import ValidationAppError
from app.schemas.common import COLUMN_ORDER, KanbanColumn
from app.schemas.kanban import KanbanCard
from app.schemas.project import Project
from app.schemas.task import Task
from app.schemas.user import Session, User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryRepository(AbstractRepository):
    """Dictionary-backed implementation of AbstractRepository."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._sessions: dict[str, Session] = {}
        self._projects: dict[str, Project] = {}
        self._tasks: dict[str, Task] = {}
        self._cards: dict[str, KanbanCard] = {}

    # Users

    def list_users(self) -> list[User]:
        with self._lock:
            return sorted(self._users.values(), key=lambda user: (user.name or "").lower())

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.email is not None and user.email.lower() == email.lower():
                    return user
            return None

    def create_user(
        self,
        *,
        name: str | None,
        email: str | None = None,
        image: str | None = None,
    ) -> User:
        with self._lock:
            if email is not None and self.get_user_by_email(email) is not None:
                raise ValidationAppError(
                    code="email_taken",
                    message="A user with this email already exists",
                )
            now = self._clock()
            user = User(
                id=_new_id(),
                name=name,
                email=email,
                image=image,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            return user

    # Sessions

    def create_session(
        self,
        user_id: str,
        *,
        expires: datetime,
        session_token: str | None = None,
    ) -> Session:
        with self._lock:
            session = Session(
                session_token=session_token or secrets.token_urlsafe(32),
                user_id=user_id,
                expires=expires,
            )
            self._sessions[session.session_token] = session
            return session

    def get_session(self, session_token: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_token)

    def delete_session(self, session_token: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_token, None) is not None

    # Projects

    def list_projects(self, user_id: str, *, favorites_only: bool = False) -> list[Project]:
        with self._lock:
            projects = [
                project
                for project in self._projects.values()
                if project.user_id == user_id and (project.is_favorite or not favorites_only)
            ]
        return sorted(projects, key=lambda project: project.updated_at, reverse=True)

    def get_project(self, project_id: str) -> Project | None:
        with self._lock:
            return self._projects.get(project_id)

    def create_project(self, user_id: str, data: dict[str, Any]) -> Project:
        with self._lock:
            now = self._clock()
            project = Project(
                **data,
                id=_new_id(),
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            self._projects[project.id] = project
            return project

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project | None:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                return None
            updated = project.model_copy(update={**changes, "updated_at": self._clock()})
            self._projects[project_id] = updated
            return updated

    def delete_project(self, project_id: str) -> bool:
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                return False
            self._tasks = {
                task_id: task for task_id, task in self._tasks.items() if task.project_id != project_id
            }
            self._cards = {
                card_id: card for card_id, card in self._cards.items() if card.project_id != project_id
            }
            return True

    # Tasks

    def list_tasks(self, project_ids: list[str]) -> list[Task]:
        wanted = set(project_ids)
        with self._lock:
            tasks = [task for task in self._tasks.values() if task.project_id in wanted]
        return sorted(tasks, key=lambda task: (task.order, task.created_at))

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def next_task_order(self, project_id: str) -> int:
        with self._lock:
            orders = [task.order for task in self._tasks.values() if task.project_id == project_id]
        return max(orders, default=-1) + 1

    def create_task(self, project_id: str, data: dict[str, Any]) -> Task:
        with self._lock:
            now = self._clock()
            task = Task(
                **data,
                id=_new_id(),
                project_id=project_id,
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            return task

    def update_task(self, task_id: str, changes: dict[str, Any]) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            updated = task.model_copy(update={**changes, "updated_at": self._clock()})
            self._tasks[task_id] = updated
            return updated

    def delete_task(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.pop(task_id, None)

    # Kanban cards

    def list_cards(self, project_ids: list[str]) -> list[KanbanCard]:
        wanted = set(project_ids)
        with self._lock:
            cards = [card for card in self._cards.values() if card.project_id in wanted]
        return sorted(
            cards,
            key=lambda card: (COLUMN_ORDER[card.column], card.order, card.created_at),
        )

    def get_card(self, card_id: str) -> KanbanCard | None:
        with self._lock:
            return self._cards.get(card_id)

    def next_card_order(self, project_id: str, column: KanbanColumn) -> int:
        with self._lock:
            orders = [
                card.order
                for card in self._cards.values()
                if card.project_id == project_id and card.column == column
            ]
        return max(orders, default=-1) + 1

    def create_card(self, project_id: str, data: dict[str, Any]) -> KanbanCard:
        with self._lock:
            now = self._clock()
            card = KanbanCard(
                **data,
                id=_new_id(),
                project_id=project_id,
                created_at=now,
                updated_at=now,
            )
            self._cards[card.id] = card
            return card

    def update_card(self, card_id: str, changes: dict[str, Any]) -> KanbanCard | None:
        with self._lock:
            card = self._cards.get(card_id)
            if card is None:
                return None
            updated = card.model_copy(update={**changes, "updated_at": self._clock()})
            self._cards[card_id] = updated
            return updated

    def delete_card(self, card_id: str) -> KanbanCard | None:
        with self._lock:
            return self._cards.pop(card_id, None)

    def delete_cards_for_project(self, project_id: str) -> int:
        with self._lock:
            doomed = [card_id for card_id, card in self._cards.items() if card.project_id == project_id]
            for card_id in doomed:
                del self._cards[card_id]
            return len(doomed)
