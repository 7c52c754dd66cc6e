"""Schemas for project checklist tasks."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel, OptionalTitle, Tag, Title, Uuid

DEFAULT_TASK_TAG = "New"


class Task(CamelModel):
    id: str
    text: str
    tag: str | None = None
    checked: bool = False
    order: int = 0
    project_id: str
    created_at: datetime
    updated_at: datetime


class TaskCreate(CamelModel):
    """Body of ``POST /api/tasks``."""

    text: Title
    checked: bool | None = None
    tag: Tag | None = None
    project_id: Uuid


class TaskUpdate(CamelModel):
    """Body of ``PATCH /api/tasks/{id}``; only provided fields change."""

    text: OptionalTitle | None = None
    checked: bool | None = None
    tag: Tag | None = None
    order: int | None = Field(default=None, ge=0)
