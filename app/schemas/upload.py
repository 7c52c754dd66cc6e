"""Schemas for blob uploads."""

from __future__ import annotations

from app.schemas.common import CamelModel


class BlobResult(CamelModel):
    """Metadata of a stored blob, as returned by ``POST /api/upload``."""

    url: str
    download_url: str
    pathname: str
    content_type: str
    content_disposition: str
