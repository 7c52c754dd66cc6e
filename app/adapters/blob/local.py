"""Local filesystem blob store.

Blobs are written below ``base_path`` and served by the application under
``public_base_url`` (see the static mount in the app factory).
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
import secrets
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from app.adapters.blob.base import AbstractBlobStore
from app.core.errors import StorageAppError, ValidationAppError
from app.schemas.upload import BlobResult

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def normalize_pathname(pathname: str) -> PurePosixPath:
    """Turn a client-supplied name into a safe relative path.

    Raises:
        ValidationAppError: If nothing usable remains after normalization.
    """
    parts = [
        part
        for part in pathname.replace("\\", "/").split("/")
        if part and part not in {".", ".."}
    ]
    if not parts:
        raise ValidationAppError(code="invalid_filename", message="Filename is required")
    return PurePosixPath(*parts)


def with_random_suffix(path: PurePosixPath) -> PurePosixPath:
    suffix = secrets.token_urlsafe(8).replace("_", "").replace("-", "")[:10]
    return path.with_name(f"{path.stem}-{suffix}{path.suffix}")


class LocalBlobStore(AbstractBlobStore):
    """Stores blobs as files on the local filesystem."""

    def __init__(
        self,
        base_path: str | Path,
        *,
        public_base_url: str = "/uploads",
        add_random_suffix: bool = True,
    ) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._public_base_url = public_base_url.rstrip("/")
        self._add_random_suffix = add_random_suffix

    def ping(self) -> bool:
        return self.base_path.is_dir() and os.access(self.base_path, os.W_OK)

    def _write(self, target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    async def put(self, pathname: str, content: bytes, *, content_type: str | None = None) -> BlobResult:
        relative = normalize_pathname(pathname)
        if self._add_random_suffix:
            relative = with_random_suffix(relative)

        target = self.base_path / Path(*relative.parts)
        try:
            await asyncio.to_thread(self._write, target, content)
        except OSError as exc:
            raise StorageAppError(
                code="blob_write_failed",
                message="Failed to store uploaded file",
                details={"hint": type(exc).__name__},
            ) from exc

        resolved_type = content_type or mimetypes.guess_type(relative.name)[0] or DEFAULT_CONTENT_TYPE
        url = f"{self._public_base_url}/{quote(relative.as_posix())}"

        logger.info(
            "blob.stored",
            extra={"pathname": relative.as_posix(), "size": len(content), "content_type": resolved_type},
        )

        return BlobResult(
            url=url,
            download_url=f"{url}?download=1",
            pathname=relative.as_posix(),
            content_type=resolved_type,
            content_disposition=f'attachment; filename="{relative.name}"',
        )
