from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_auth_and_rate_limit
from app.core.request_validation import parse_body, validate_id
from app.schemas.common import MessageResponse
from app.schemas.project import ProjectCreate, ProjectDetail, ProjectUpdate
from app.services.project_service import ProjectService

router = APIRouter(prefix="/api/projects", tags=["Projects"])


def get_project_service(request: Request) -> ProjectService:
    return request.app.state.project_service


@router.get("", response_model=list[ProjectDetail])
async def list_projects(request: Request, favorites: str | None = None) -> Response | list[ProjectDetail]:
    """List the caller's projects, newest first.

    ``?favorites=true`` restricts the list to favorites.
    """

    guard = await require_auth_and_rate_limit(request, "projects:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_project_service(request).list_projects(guard.user.id, favorites_only=favorites == "true")


@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
async def create_project(request: Request) -> Response | ProjectDetail:
    guard = await require_auth_and_rate_limit(request, "projects:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, ProjectCreate, allow_large_body=True)
    return get_project_service(request).create_project(guard.user.id, payload)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(request: Request, project_id: str) -> Response | ProjectDetail:
    guard = await require_auth_and_rate_limit(request, "projects:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_project_service(request).get_project(validate_id(project_id), guard.user.id)


@router.patch("/{project_id}", response_model=ProjectDetail)
async def update_project(request: Request, project_id: str) -> Response | ProjectDetail:
    """Update the provided fields of a project.

    Bodies carrying rich-text ``content`` may use the larger body limit.
    """

    guard = await require_auth_and_rate_limit(request, "projects:patch", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    validate_id(project_id)
    payload = await parse_body(request, ProjectUpdate, allow_large_body=True)
    return get_project_service(request).update_project(project_id, guard.user.id, payload)


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(request: Request, project_id: str) -> Response | MessageResponse:
    guard = await require_auth_and_rate_limit(request, "projects:delete", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    get_project_service(request).delete_project(validate_id(project_id), guard.user.id)
    return MessageResponse(message="Project deleted successfully")
