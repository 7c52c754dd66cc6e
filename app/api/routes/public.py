from __future__ import annotations

from fastapi import APIRouter, Request, Response

from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_rate_limit
from app.schemas.project import PublicProject

router = APIRouter(prefix="/api/public", tags=["Public"])


@router.get("/{project_id}", response_model=PublicProject)
async def get_public_project(request: Request, project_id: str) -> Response | PublicProject:
    """Read-only view of a published project (no authentication).

    Unknown projects yield 404 and unpublished ones 403; only presentation
    fields are exposed.
    """

    guard = require_rate_limit(request, "public:get", RATE_LIMITS["read"])
    if not guard.success:
        return guard.response

    return request.app.state.project_service.get_public_project(project_id)
