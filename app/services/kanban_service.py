"""Kanban board cards belonging to a user's projects."""

from __future__ import annotations

import logging

from app.adapters.repository.base import AbstractRepository
from app.core.errors import NotFoundAppError
from app.schemas.common import KanbanColumn
from app.schemas.kanban import (
    KanbanBoardSync,
    KanbanCard,
    KanbanCardCreate,
    KanbanCardUpdate,
)
from app.services.project_service import get_owned_project, invalidate_project_lists, provided_changes
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

RESET_MESSAGE = "Kanban board reset successfully"


class KanbanService:
    """Business logic behind the ``/api/kanban`` routes."""

    def __init__(self, repository: AbstractRepository, cache: SimpleTTLCache) -> None:
        self.repository = repository
        self.cache = cache

    def _owned_card(self, card_id: str, user_id: str) -> KanbanCard:
        card = self.repository.get_card(card_id)
        if card is None:
            raise NotFoundAppError(
                code="card_not_found",
                message="Kanban card not found",
                details={"resource": "kanban_card", "resource_id": card_id},
            )
        get_owned_project(self.repository, card.project_id, user_id)
        return card

    def _touched(self, user_id: str) -> None:
        # Project list entries embed their cards
        invalidate_project_lists(self.cache, user_id)

    def list_cards(self, user_id: str, project_id: str | None = None) -> list[KanbanCard]:
        if project_id is not None:
            get_owned_project(self.repository, project_id, user_id)
            return self.repository.list_cards([project_id])

        project_ids = [project.id for project in self.repository.list_projects(user_id)]
        return self.repository.list_cards(project_ids)

    def get_card(self, card_id: str, user_id: str) -> KanbanCard:
        return self._owned_card(card_id, user_id)

    def create_card(self, user_id: str, payload: KanbanCardCreate) -> KanbanCard:
        """Create a card, appended at the end of its column unless an order is given."""

        get_owned_project(self.repository, payload.project_id, user_id)
        column = payload.column or KanbanColumn.TODO
        order = payload.order
        if order is None:
            order = self.repository.next_card_order(payload.project_id, column)

        card = self.repository.create_card(
            payload.project_id,
            {"text": payload.text, "column": column, "priority": payload.priority, "order": order},
        )
        self._touched(user_id)

        logger.info(
            "kanban.card_created",
            extra={"card_id": card.id, "project_id": card.project_id, "column": column.value},
        )
        return card

    def update_card(self, card_id: str, user_id: str, payload: KanbanCardUpdate) -> KanbanCard:
        current = self._owned_card(card_id, user_id)
        changes = provided_changes(payload, frozenset({"priority"}))
        updated = self.repository.update_card(card_id, changes) or current
        self._touched(user_id)
        return updated

    def delete_card(self, card_id: str, user_id: str) -> None:
        self._owned_card(card_id, user_id)
        self.repository.delete_card(card_id)
        self._touched(user_id)
        logger.info("kanban.card_deleted", extra={"card_id": card_id})

    def sync_board(self, user_id: str, payload: KanbanBoardSync) -> list[KanbanCard]:
        """Reconcile a project's board with the client's copy.

        - ``temp-`` ids not marked deleted are created.
        - Persisted ids marked ``_deleted`` are removed.
        - Other persisted ids are updated in place.

        Ids that do not belong to the project are ignored.

        Returns:
            The project's cards after the sync.
        """
        project_id = payload.project_id
        get_owned_project(self.repository, project_id, user_id)

        created = updated = deleted = skipped = 0
        for item in payload.cards:
            if item.is_temporary:
                if not item.deleted:
                    self.repository.create_card(
                        project_id,
                        {
                            "text": item.text,
                            "column": item.column,
                            "priority": item.priority,
                            "order": item.order,
                        },
                    )
                    created += 1
                continue

            existing = self.repository.get_card(item.id)
            if existing is None or existing.project_id != project_id:
                skipped += 1
                continue

            if item.deleted:
                self.repository.delete_card(item.id)
                deleted += 1
            else:
                self.repository.update_card(
                    item.id,
                    {
                        "text": item.text,
                        "column": item.column,
                        "priority": item.priority,
                        "order": item.order,
                    },
                )
                updated += 1

        self._touched(user_id)
        logger.info(
            "kanban.board_synced",
            extra={
                "project_id": project_id,
                "created": created,
                "updated": updated,
                "deleted": deleted,
                "skipped": skipped,
            },
        )
        return self.repository.list_cards([project_id])

    def reset_board(self, project_id: str, user_id: str) -> int:
        """Delete every card of an owned project and return how many were removed."""

        get_owned_project(self.repository, project_id, user_id)
        removed = self.repository.delete_cards_for_project(project_id)
        self._touched(user_id)
        logger.info("kanban.board_reset", extra={"project_id": project_id, "removed": removed})
        return removed
