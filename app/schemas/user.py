"""Schemas for users and sessions."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.common import CamelModel, Title


class User(CamelModel):
    id: str
    name: str | None = None
    email: str | None = None
    image: str | None = None
    created_at: datetime
    updated_at: datetime


class UserCreate(CamelModel):
    """Body of ``POST /api/users``."""

    name: Title
    email: str | None = Field(default=None, max_length=320)
    image: str | None = Field(
        default=None,
        max_length=2048,
        validation_alias=AliasChoices("image", "avatar"),
    )


class Session(BaseModel):
    """Database session issued by the external auth provider."""

    session_token: str
    user_id: str
    expires: datetime


class AuthenticatedUser(BaseModel):
    """Principal resolved for a request."""

    id: str
    name: str | None = None
    email: str | None = None
    image: str | None = None
