"""Request body and path parameter validation.

JSON bodies are parsed inside handlers (after the request guard has passed)
rather than by FastAPI's body injection, so that unauthenticated or
throttled callers are rejected before their payload is read.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.errors import PayloadTooLargeAppError, ValidationAppError
from app.schemas.common import is_valid_uuid

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CHUNK_SIZE = 8192


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


_LOCATION_ROOTS = {"body", "query", "path", "header"}


def format_validation_error(errors: Sequence[Any]) -> str:
    """Join pydantic error entries into one client-facing sentence.

    Accepts ``ValidationError.errors()`` or ``RequestValidationError.errors()``.
    """
    messages: list[str] = []
    for error in errors:
        message = error.get("msg", "Invalid value")
        # Strip pydantic's "Value error, " prefix from custom validator messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in _LOCATION_ROOTS)
        messages.append(f"{location}: {message}" if location else message)
    return ", ".join(messages) or "Invalid request"


async def read_body_limited(request: Request, max_bytes: int) -> bytes:
    """Read the raw request body in chunks enforcing a size limit.

    Rejects early on a declared Content-Length above the limit, then enforces
    the limit again while streaming.

    Raises:
        PayloadTooLargeAppError: If the body exceeds ``max_bytes``.
    """
    declared = _declared_length(request)
    if declared is not None and declared > max_bytes:
        logger.warning(
            "request_validation.rejected_by_header",
            extra={"declared_bytes": declared, "max_bytes": max_bytes},
        )
        raise PayloadTooLargeAppError(
            code="payload_too_large",
            message=f"Request body too large (max {max_bytes // 1024}KB)",
            details={"max_bytes": max_bytes, "actual_bytes": declared},
        )

    size = 0
    chunks: list[bytes] = []
    async for chunk in request.stream():
        if not chunk:
            continue
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "request_validation.rejected_by_stream",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise PayloadTooLargeAppError(
                code="payload_too_large",
                message=f"Request body too large (max {max_bytes // 1024}KB)",
                details={"max_bytes": max_bytes},
            )
        chunks.append(chunk)

    return b"".join(chunks)


async def parse_body(
    request: Request,
    model: type[ModelT],
    *,
    allow_large_body: bool = False,
) -> ModelT:
    """Read, decode and validate a JSON request body.

    Args:
        request: Incoming request.
        model: Pydantic model describing the body.
        allow_large_body: Use the larger limit for rich-text payloads.

    Returns:
        The validated model instance.

    Raises:
        ValidationAppError: On oversize bodies, malformed JSON or schema violations.
    """
    max_kb = settings.app.max_content_body_kb if allow_large_body else settings.app.max_body_kb
    raw = await read_body_limited(request, max_kb * 1024)

    try:
        payload = json.loads(raw) if raw else None
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationAppError(code="invalid_json", message="Invalid JSON body") from exc

    if not isinstance(payload, dict):
        raise ValidationAppError(code="invalid_body", message="Request body must be a JSON object")

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationAppError(code="invalid_body", message=format_validation_error(exc.errors())) from exc


def validate_id(value: str) -> str:
    """Ensure a path parameter is a UUID.

    Raises:
        ValidationAppError: If the value is not a UUID.
    """
    if not is_valid_uuid(value):
        raise ValidationAppError(code="invalid_id", message="Invalid ID format")
    return value
