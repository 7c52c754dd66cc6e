from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Request, Response

from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_auth_and_rate_limit
from app.core.request_validation import parse_body
from app.schemas.sync import SyncRequest, SyncResponse, SyncSnapshot
from app.services.sync_service import SyncService

router = APIRouter(prefix="/api/sync", tags=["Sync"])


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service


@router.get("", response_model=SyncSnapshot)
async def pull_changes(
    request: Request,
    since: datetime | None = Query(default=None),
) -> Response | SyncSnapshot:
    """Projects updated at or after ``?since=`` (every project when omitted)."""

    guard = await require_auth_and_rate_limit(request, "sync:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return get_sync_service(request).changes_since(guard.user.id, since)


@router.post("", response_model=SyncResponse)
async def push_changes(request: Request) -> Response | SyncResponse:
    """Merge offline edits and return the caller's projects with per-id results."""

    guard = await require_auth_and_rate_limit(request, "sync:post", RATE_LIMITS["heavy"])
    if not guard.success:
        return guard.response

    payload = await parse_body(request, SyncRequest, allow_large_body=True)
    return get_sync_service(request).reconcile(guard.user.id, payload)
