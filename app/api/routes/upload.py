from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response

from app.adapters.blob.base import AbstractBlobStore
from app.core.api_response import bad_request_response, internal_error_response
from app.core.config import settings
from app.core.errors import StorageAppError
from app.core.rate_limit import RATE_LIMITS
from app.core.request_guard import require_auth_and_rate_limit
from app.core.request_validation import read_body_limited
from app.schemas.upload import BlobResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])


def get_blob_store(request: Request) -> AbstractBlobStore:
    return request.app.state.blob_store


@router.post("", response_model=BlobResult)
async def upload_file(request: Request, filename: str | None = None) -> Response | BlobResult:
    """Store the raw request body as a public blob named ``?filename=``.

    Returns:
        BlobResult: Public URL, download URL, pathname and content metadata.
    """

    guard = await require_auth_and_rate_limit(request, "upload:post", RATE_LIMITS["write"])
    if not guard.success:
        return guard.response

    if not filename:
        return bad_request_response("Filename is required")

    body = await read_body_limited(request, settings.storage.max_upload_size_mb * 1024 * 1024)
    if not body:
        return bad_request_response("File body is required")

    try:
        blob = await get_blob_store(request).put(
            filename,
            body,
            content_type=request.headers.get("content-type"),
        )
    except StorageAppError as exc:
        return internal_error_response("upload", "file", exc)

    logger.info(
        "upload.completed",
        extra={"user_id": guard.user.id, "pathname": blob.pathname, "size": len(body)},
    )
    return blob
