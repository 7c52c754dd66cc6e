"""Schemas for projects (pages) and their public projection."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.schemas.common import (
    DEFAULT_EMOJI,
    CamelModel,
    Content,
    CoverUrl,
    Description,
    Emoji,
    OptionalTitle,
    Status,
    Title,
    Uuid,
)
from app.schemas.kanban import KanbanCard
from app.schemas.task import Task
from app.schemas.user import User


class Project(CamelModel):
    """Stored project record."""

    id: str
    title: str
    description: str | None = None
    content: Any = None
    content_version: int = 0
    emoji: str = DEFAULT_EMOJI
    cover: str | None = None
    status: Status = Status.NOT_STARTED
    due_date: datetime | None = None
    is_favorite: bool = False
    is_small_text: bool = False
    is_full_width: bool = False
    is_locked: bool = False
    is_published: bool = False
    published_url: str | None = None
    user_id: str
    assignee_id: str | None = None
    created_at: datetime
    updated_at: datetime


class ProjectDetail(Project):
    """Project with its assignee, tasks and kanban cards embedded."""

    assignee: User | None = None
    tasks: list[Task] = []
    kanban_cards: list[KanbanCard] = []


class ProjectCreate(CamelModel):
    """Body of ``POST /api/projects``."""

    title: Title
    description: Description | None = None
    content: Content | None = None
    emoji: Emoji | None = None
    cover: CoverUrl | None = None
    status: Status | None = None
    due_date: datetime | None = None
    assignee_id: Uuid | None = None
    is_favorite: bool | None = None


class ProjectUpdate(CamelModel):
    """Body of ``PATCH /api/projects/{id}``; only provided fields change."""

    title: OptionalTitle | None = None
    description: Description | None = None
    content: Content | None = None
    emoji: Emoji | None = None
    cover: CoverUrl | None = None
    status: Status | None = None
    due_date: datetime | None = None
    assignee_id: Uuid | None = None
    is_favorite: bool | None = None
    is_small_text: bool | None = None
    is_full_width: bool | None = None
    is_locked: bool | None = None
    is_published: bool | None = None


class PublicProject(CamelModel):
    """Fields of a published project visible without authentication."""

    id: str
    title: str
    content: Any = None
    emoji: str
    cover: str | None = None
    is_small_text: bool
    is_full_width: bool
    is_published: bool
