from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response, status

from app.core.api_response import bad_request_response
from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_auth_and_rate_limit
from app.core.request_validation import parse_body, validate_id
from app.schemas.common import MessageResponse
from app.schemas.kanban import KanbanBoardSync, KanbanCard, KanbanCardCreate, KanbanCardUpdate
from app.services.kanban_service import RESET_MESSAGE, KanbanService

router = APIRouter(prefix="/api/kanban", tags=["Kanban"])


def get_kanban_service(request: Request) -> KanbanService:
    return request.app.state.kanban_service


@router.get("", response_model=list[KanbanCard])
async def list_cards(
    request: Request,
    project_id: str | None = Query(default=None, alias="projectId"),
) -> Response | list[KanbanCard]:
    guard = await require_auth_and_rate_limit(request, "kanban:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    if project_id is not None:
        validate_id(project_id)
    return get_kanban_service(request).list_cards(guard.user.id, project_id)


@router.post("", response_model=KanbanCard, status_code=status.HTTP_201_CREATED)
async def create_card(request: Request) -> Response | KanbanCard:
    guard = await require_auth_and_rate_limit(request, "kanban:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, KanbanCardCreate)
    return get_kanban_service(request).create_card(guard.user.id, payload)


@router.patch("", response_model=list[KanbanCard])
async def sync_board(request: Request) -> Response | list[KanbanCard]:
    """Reconcile a whole board with the client's copy and return the result."""

    guard = await require_auth_and_rate_limit(request, "kanban:patch", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, KanbanBoardSync)
    return get_kanban_service(request).sync_board(guard.user.id, payload)


@router.delete("", response_model=MessageResponse)
async def reset_board(
    request: Request,
    project_id: str | None = Query(default=None, alias="projectId"),
) -> Response | MessageResponse:
    """Delete every card of a project (``?projectId=`` required)."""

    guard = await require_auth_and_rate_limit(request, "kanban:delete", RATE_LIMITS["heavy"])
    if not guard.success:
        return guard.response

    if not project_id:
        return bad_request_response("projectId is required")

    get_kanban_service(request).reset_board(validate_id(project_id), guard.user.id)
    return MessageResponse(message=RESET_MESSAGE)


@router.get("/{card_id}", response_model=KanbanCard)
async def get_card(request: Request, card_id: str) -> Response | KanbanCard:
    guard = await require_auth_and_rate_limit(request, "kanban:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_kanban_service(request).get_card(validate_id(card_id), guard.user.id)


@router.patch("/{card_id}", response_model=KanbanCard)
async def update_card(request: Request, card_id: str) -> Response | KanbanCard:
    guard = await require_auth_and_rate_limit(request, "kanban:patch", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    validate_id(card_id)
    payload = await parse_body(request, KanbanCardUpdate)
    return get_kanban_service(request).update_card(card_id, guard.user.id, payload)


@router.delete("/{card_id}", response_model=MessageResponse)
async def delete_card(request: Request, card_id: str) -> Response | MessageResponse:
    guard = await require_auth_and_rate_limit(request, "kanban:delete", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    get_kanban_service(request).delete_card(validate_id(card_id), guard.user.id)
    return MessageResponse(message="Kanban card deleted successfully")
