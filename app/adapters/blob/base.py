"""Blob storage interface used by the upload endpoint."""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.upload import BlobResult


class AbstractBlobStore(ABC):
    """Interface for public blob storage."""

    @abstractmethod
    async def put(self, pathname: str, content: bytes, *, content_type: str | None = None) -> BlobResult:
        """Store ``content`` under ``pathname`` with public read access.

        Args:
            pathname: Client-supplied file name, possibly with folders.
            content: Raw bytes to store.
            content_type: MIME type; guessed from the name when omitted.

        Returns:
            BlobResult: Metadata of the stored blob.

        Raises:
            ValidationAppError: If the pathname is unusable.
            StorageAppError: If the blob cannot be written.
        """
        ...

    def ping(self) -> bool:
        """Whether blobs can currently be written."""
        return True
