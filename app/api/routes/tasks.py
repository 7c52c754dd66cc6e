from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response, status

from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_auth_and_rate_limit
from app.core.request_validation import parse_body, validate_id
from app.schemas.common import MessageResponse
from app.schemas.task import Task, TaskCreate, TaskUpdate
from app.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


@router.get("", response_model=list[Task])
async def list_tasks(
    request: Request,
    project_id: str | None = Query(default=None, alias="projectId"),
) -> Response | list[Task]:
    guard = await require_auth_and_rate_limit(request, "tasks:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    if project_id is not None:
        validate_id(project_id)
    return get_task_service(request).list_tasks(guard.user.id, project_id)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(request: Request) -> Response | Task:
    guard = await require_auth_and_rate_limit(request, "tasks:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, TaskCreate)
    return get_task_service(request).create_task(guard.user.id, payload)


@router.get("/{task_id}", response_model=Task)
async def get_task(request: Request, task_id: str) -> Response | Task:
    guard = await require_auth_and_rate_limit(request, "tasks:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_task_service(request).get_task(validate_id(task_id), guard.user.id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(request: Request, task_id: str) -> Response | Task:
    guard = await require_auth_and_rate_limit(request, "tasks:patch", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    validate_id(task_id)
    payload = await parse_body(request, TaskUpdate)
    return get_task_service(request).update_task(task_id, guard.user.id, payload)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(request: Request, task_id: str) -> Response | MessageResponse:
    guard = await require_auth_and_rate_limit(request, "tasks:delete", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    get_task_service(request).delete_task(validate_id(task_id), guard.user.id)
    return MessageResponse(message="Task deleted successfully")
