"""Schemas for offline sync: client snapshots in, reconciled projects out.

Records created offline carry ``temp-`` ids (or ``_isNew`` for projects);
records removed offline carry ``_deleted``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.common import (
    CamelModel,
    Content,
    CoverUrl,
    Description,
    Emoji,
    KanbanColumn,
    Priority,
    Status,
    Tag,
    Title,
)
from app.schemas.kanban import TEMP_ID_PREFIX
from app.schemas.project import ProjectDetail

MAX_SYNC_PROJECTS = 100
MAX_SYNC_ITEMS = 500


class SyncTask(CamelModel):
    id: str = Field(..., min_length=1, max_length=64)
    text: Title
    tag: Tag | None = None
    checked: bool | None = None
    order: int | None = Field(default=None, ge=0)
    deleted: bool = Field(default=False, alias="_deleted")

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)


class SyncCard(CamelModel):
    id: str = Field(..., min_length=1, max_length=64)
    text: Title
    column: KanbanColumn | None = None
    priority: Priority | None = None
    order: int | None = Field(default=None, ge=0)
    deleted: bool = Field(default=False, alias="_deleted")

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)


class SyncProject(CamelModel):
    """A project as the client last saw it.

    ``updated_at`` is the client's modification time; an existing project is
    overwritten only when it is newer than the stored one.
    """

    id: str = Field(..., min_length=1, max_length=64)
    title: Title
    description: Description | None = None
    content: Content | None = None
    emoji: Emoji | None = None
    cover: CoverUrl | None = None
    status: Status | None = None
    due_date: datetime | None = None
    is_favorite: bool | None = None
    tasks: list[SyncTask] | None = Field(default=None, max_length=MAX_SYNC_ITEMS)
    kanban_cards: list[SyncCard] | None = Field(default=None, max_length=MAX_SYNC_ITEMS)
    updated_at: datetime
    deleted: bool = Field(default=False, alias="_deleted")
    is_new: bool = Field(default=False, alias="_isNew")

    @property
    def is_temporary(self) -> bool:
        return self.is_new or self.id.startswith(TEMP_ID_PREFIX)


class SyncRequest(CamelModel):
    """Body of ``POST /api/sync``."""

    last_sync_at: datetime | None = None
    projects: list[SyncProject] = Field(default_factory=list, max_length=MAX_SYNC_PROJECTS)


class SyncResults(CamelModel):
    created: list[str] = []
    updated: list[str] = []
    deleted: list[str] = []


class SyncSnapshot(CamelModel):
    """Body of ``GET /api/sync``."""

    projects: list[ProjectDetail]
    synced_at: datetime


class SyncResponse(SyncSnapshot):
    """Body of ``POST /api/sync``."""

    results: SyncResults = Field(default_factory=SyncResults)
