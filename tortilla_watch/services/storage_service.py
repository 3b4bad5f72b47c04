"""
Storage Service for rating photos.

Uploads to a Supabase-compatible storage REST API and returns the public
URL of the stored object.
"""
from typing import Optional
from datetime import datetime
import logging
import re
import httpx

from tortilla_watch.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object cannot be stored."""


class StorageService:
    """Service for uploading rating photos to blob storage."""

    EXTENSIONS = {
        "image/jpeg": "jpeg",
        "image/png": "png",
        "image/webp": "webp",
    }

    @staticmethod
    def object_path(fingerprint: str, content_type: str, now: datetime) -> str:
        """``<fingerprint>/<epoch ms>.<ext>``, fingerprint reduced to safe characters."""
        safe_fingerprint = re.sub(r"[^A-Za-z0-9_-]", "_", fingerprint)[:64] or "anon"
        ext = StorageService.EXTENSIONS.get(content_type, "jpg")
        epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
        return f"{safe_fingerprint}/{epoch_ms}.{ext}"

    @staticmethod
    def public_url(path: str) -> str:
        base = (settings.STORAGE_URL or "").rstrip("/")
        return f"{base}/storage/v1/object/public/{settings.STORAGE_BUCKET}/{path}"

    @staticmethod
    async def upload_image(
        path: str,
        content: bytes,
        content_type: str,
        client: Optional[httpx.AsyncClient] = None
    ) -> str:
        """Upload ``content`` under ``path`` (no overwrite) and return its public URL."""
        if not settings.STORAGE_URL or not settings.STORAGE_SERVICE_KEY:
            raise StorageError("Storage is not configured")

        base = settings.STORAGE_URL.rstrip("/")
        url = f"{base}/storage/v1/object/{settings.STORAGE_BUCKET}/{path}"
        headers = {
            "Authorization": f"Bearer {settings.STORAGE_SERVICE_KEY}",
            "apikey": settings.STORAGE_SERVICE_KEY,
            "Content-Type": content_type,
            "x-upsert": "false",
        }

        try:
            if client is None:
                async with httpx.AsyncClient(timeout=settings.STORAGE_TIMEOUT_SECONDS) as own_client:
                    response = await own_client.post(url, headers=headers, content=content)
            else:
                response = await client.post(url, headers=headers, content=content)
        except httpx.TimeoutException as e:
            raise StorageError("Storage upload timeout") from e
        except httpx.HTTPError as e:
            raise StorageError(f"Storage upload error: {e}") from e

        if response.status_code >= 300:
            raise StorageError(
                f"Storage upload failed: {response.status_code} {response.text[:200]}"
            )

        logger.info(f"Stored rating image {path} ({len(content)} bytes)")
        return StorageService.public_url(path)
