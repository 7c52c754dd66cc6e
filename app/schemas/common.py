"""Shared schema building blocks: enums, field types and input sanitization."""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Annotated, Any
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_CONTENT_LENGTH = 100_000
MAX_EMOJI_LENGTH = 10
MAX_TAG_LENGTH = 50

DEFAULT_EMOJI = "📝"

UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
}


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as the web client expects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Status(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class KanbanColumn(str, Enum):
    TODO = "TODO"
    PROGRESS = "PROGRESS"
    DONE = "DONE"


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Board display order; enum declaration order matches the database enum.
COLUMN_ORDER = {column: index for index, column in enumerate(KanbanColumn)}


def sanitize_text(value: str) -> str:
    """HTML-escape characters that could smuggle markup into stored text."""
    return "".join(_HTML_ESCAPES.get(char, char) for char in value)


def is_valid_uuid(value: str) -> bool:
    return bool(UUID_REGEX.match(value))


def _check_uuid(value: str) -> str:
    if not is_valid_uuid(value):
        raise ValueError("Invalid ID format")
    return value


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Cover must be a valid URL")
    return value


def _check_content_size(value: Any) -> Any:
    if value is None:
        return value
    if len(json.dumps(value, ensure_ascii=False)) > MAX_CONTENT_LENGTH:
        raise ValueError("Content exceeds maximum size")
    return value


Title = Annotated[
    str,
    Field(min_length=1, max_length=MAX_TITLE_LENGTH),
    AfterValidator(sanitize_text),
]
OptionalTitle = Annotated[
    str,
    Field(max_length=MAX_TITLE_LENGTH),
    AfterValidator(sanitize_text),
]
Description = Annotated[
    str,
    Field(max_length=MAX_DESCRIPTION_LENGTH),
    AfterValidator(sanitize_text),
]
Tag = Annotated[
    str,
    Field(max_length=MAX_TAG_LENGTH),
    AfterValidator(sanitize_text),
]
Emoji = Annotated[str, Field(max_length=MAX_EMOJI_LENGTH)]
Uuid = Annotated[str, AfterValidator(_check_uuid)]
CoverUrl = Annotated[str, AfterValidator(_check_url)]
Content = Annotated[Any, AfterValidator(_check_content_size)]


class MessageResponse(BaseModel):
    """Acknowledgement body for deletions and resets."""

    message: str
