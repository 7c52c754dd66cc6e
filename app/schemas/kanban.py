"""Schemas for kanban board cards."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel, KanbanColumn, OptionalTitle, Priority, Title, Uuid

TEMP_ID_PREFIX = "temp-"


class KanbanCard(CamelModel):
    id: str
    text: str
    column: KanbanColumn = KanbanColumn.TODO
    priority: Priority | None = None
    order: int = 0
    project_id: str
    created_at: datetime
    updated_at: datetime


class KanbanCardCreate(CamelModel):
    """Body of ``POST /api/kanban``."""

    text: Title
    column: KanbanColumn | None = None
    priority: Priority | None = None
    order: int | None = Field(default=None, ge=0)
    project_id: Uuid


class KanbanCardUpdate(CamelModel):
    """Body of ``PATCH /api/kanban/{id}``; only provided fields change."""

    text: OptionalTitle | None = None
    column: KanbanColumn | None = None
    priority: Priority | None = None
    order: int | None = Field(default=None, ge=0)


class KanbanCardSync(CamelModel):
    """One card in a board sync.

    Ids starting with ``temp-`` are cards created on the client and not yet
    persisted; ``_deleted`` marks persisted cards removed on the client.
    """

    id: str = Field(..., min_length=1, max_length=64)
    text: Title
    column: KanbanColumn = KanbanColumn.TODO
    priority: Priority | None = None
    order: int = Field(default=0, ge=0)
    deleted: bool = Field(default=False, alias="_deleted")

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)


class KanbanBoardSync(CamelModel):
    """Body of ``PATCH /api/kanban``."""

    project_id: Uuid
    cards: list[KanbanCardSync] = Field(default_factory=list, max_length=500)
