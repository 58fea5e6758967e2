"""Object storage for proof-of-delivery evidence (Supabase Storage)."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from supabase import Client, create_client

from app.config import settings
from app.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract object storage interface."""

    @abstractmethod
    async def put(self, path: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """Store bytes at path and return the public URL."""
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Public URL for a stored path."""
        pass


class SupabaseStorage(StorageBackend):
    """Client for Supabase Storage operations."""

    _client: Optional[Client] = None

    def __init__(self, bucket: Optional[str] = None):
        self.bucket_name = bucket or settings.SUPABASE_STORAGE_BUCKET

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Supabase client."""
        if cls._client is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise PersistenceError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
                )
            cls._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_KEY
            )
        return cls._client

    def get_bucket(self):
        """Get the storage bucket."""
        return self.get_client().storage.from_(self.bucket_name)

    async def put(self, path: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """
        Upload file to Supabase Storage.

        Args:
            content: File content as bytes
            path: Storage path (e.g., "proofs/<delivery_id>/package_1700000000000.jpg")
            content_type: MIME type (e.g., "image/jpeg")

        Returns:
            Public URL of the uploaded file
        """
        bucket = self.get_bucket()
        try:
            # The supabase client is synchronous, keep the event loop free
            await asyncio.to_thread(
                bucket.upload,
                path=path,
                file=content,
                file_options={"content-type": content_type},
            )
        except Exception as e:
            logger.error(f"Upload to '{self.bucket_name}/{path}' failed: {e}")
            raise PersistenceError(str(e)) from e

        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return self.get_bucket().get_public_url(path)


_storage: Optional[StorageBackend] = None


def get_storage() -> StorageBackend:
    """Get the configured storage backend."""
    global _storage
    if _storage is None:
        _storage = SupabaseStorage()
    return _storage
