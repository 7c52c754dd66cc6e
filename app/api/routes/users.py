from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_rate_limit
from app.core.request_validation import parse_body
from app.schemas.user import User, UserCreate
from app.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


@router.get("", response_model=list[User])
async def list_users(request: Request) -> Response | list[User]:
    """List users sorted by name (served from cache)."""

    guard = require_rate_limit(request, "users:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_user_service(request).list_users()


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(request: Request) -> Response | User:
    """Create a user; ``image`` (or ``avatar``) defaults to a generated avatar."""

    guard = require_rate_limit(request, "users:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, UserCreate)
    return get_user_service(request).create_user(payload)
