"""Storage service: switches between local filesystem and Supabase based on PRODUCTION flag.

- PRODUCTION=false → LocalStorageService (saves under UPLOAD_DIR)
- PRODUCTION=true  → SupabaseStorageService (saves to a Supabase Storage bucket)
"""

import os
import re
import time
import uuid
from abc import ABC, abstractmethod

import httpx

from app.core.config import settings
from app.core.exceptions import StorageError
from app.core.logging import logger


def sanitize_filename(name: str) -> str:
    """Replace anything outside [A-Za-z0-9._-] with an underscore."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", name)


def build_object_path(file_name: str) -> str:
    """Unique object path: documents/{epoch_ms}-{uuid}-{sanitized name}."""
    return f"documents/{int(time.time() * 1000)}-{uuid.uuid4()}-{sanitize_filename(file_name)}"


class BaseStorageService(ABC):
    """Abstract base for blob storage backends."""

    @abstractmethod
    async def upload(self, rel_path: str, content: bytes, content_type: str = "application/pdf") -> None:
        """Store bytes at ``rel_path``. Never overwrites."""
        ...

    @abstractmethod
    async def download(self, rel_path: str) -> bytes:
        """Return the stored bytes."""
        ...

    @abstractmethod
    async def delete(self, rel_path: str) -> None:
        """Remove the object."""
        ...

    @abstractmethod
    async def signed_url(self, rel_path: str, ttl_seconds: int) -> str:
        """Return a time-limited read URL for the object."""
        ...


# ──────────────────────────────────────────────────────────────────────────────
# LOCAL STORAGE (development)
# ──────────────────────────────────────────────────────────────────────────────

class LocalStorageService(BaseStorageService):
    """Save files under a local directory. Used in dev mode.

    Files are served by the /uploads StaticFiles mount, so the "signed"
    URL is just that path.
    """

    def __init__(self, upload_root: str = settings.UPLOAD_DIR):
        self.upload_root = os.path.abspath(upload_root)
        os.makedirs(self.upload_root, exist_ok=True)

    def _full_path(self, rel_path: str) -> str:
        full_path = os.path.abspath(os.path.join(self.upload_root, rel_path))
        if not full_path.startswith(self.upload_root + os.sep):
            raise StorageError(f"Invalid storage path: {rel_path}")
        return full_path

    async def upload(self, rel_path: str, content: bytes, content_type: str = "application/pdf") -> None:
        full_path = self._full_path(rel_path)
        if os.path.exists(full_path):
            raise StorageError(f"Failed to upload PDF: {rel_path} already exists")

        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(content)
        except OSError as e:
            raise StorageError(f"Failed to upload PDF: {e}") from e

        logger.info(f"Saved locally: {full_path}")

    async def download(self, rel_path: str) -> bytes:
        full_path = self._full_path(rel_path)
        if not os.path.exists(full_path):
            raise StorageError(f"Failed to download PDF for extraction: {rel_path} not found")
        with open(full_path, "rb") as f:
            return f.read()

    async def delete(self, rel_path: str) -> None:
        full_path = self._full_path(rel_path)
        try:
            if os.path.exists(full_path):
                os.remove(full_path)
                logger.info(f"Deleted local file: {full_path}")
        except OSError as e:
            raise StorageError(f"Failed to delete storage object: {e}") from e

    async def signed_url(self, rel_path: str, ttl_seconds: int) -> str:
        self._full_path(rel_path)
        return f"/uploads/{rel_path}"


# ──────────────────────────────────────────────────────────────────────────────
# SUPABASE STORAGE (production)
# ──────────────────────────────────────────────────────────────────────────────

class SupabaseStorageService(BaseStorageService):
    """Save files to a private Supabase Storage bucket. Used in production."""

    def __init__(self):
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise StorageError("SUPABASE_URL and SUPABASE_KEY must be set for production storage.")
        self.base_url = f"{settings.SUPABASE_URL.rstrip('/')}/storage/v1"
        self.bucket = settings.SUPABASE_BUCKET
        self.headers = {
            "apikey": settings.SUPABASE_KEY,
            "Authorization": f"Bearer {settings.SUPABASE_KEY}",
        }

    async def _request(self, method: str, url: str, timeout: float = 60.0, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Supabase {method} {url} failed: {e}")
            raise StorageError(f"Storage request failed: {e}") from e

    async def upload(self, rel_path: str, content: bytes, content_type: str = "application/pdf") -> None:
        url = f"{self.base_url}/object/{self.bucket}/{rel_path}"
        headers = {
            **self.headers,
            "Content-Type": content_type,
            "x-upsert": "false",
        }

        resp = await self._request("POST", url, content=content, headers=headers)

        if resp.status_code not in (200, 201):
            logger.error(f"Supabase upload failed ({resp.status_code}): {resp.text}")
            raise StorageError(f"Failed to upload PDF: {resp.text}")

        logger.info(f"Uploaded to Supabase: {rel_path}")

    async def download(self, rel_path: str) -> bytes:
        url = f"{self.base_url}/object/{self.bucket}/{rel_path}"

        resp = await self._request("GET", url, headers=self.headers)

        if resp.status_code != 200:
            logger.error(f"Supabase download failed ({resp.status_code}): {resp.text}")
            raise StorageError(f"Failed to download PDF for extraction: {resp.text}")

        return resp.content

    async def delete(self, rel_path: str) -> None:
        url = f"{self.base_url}/object/{self.bucket}"
        headers = {**self.headers, "Content-Type": "application/json"}

        resp = await self._request("DELETE", url, timeout=30.0, headers=headers, json={"prefixes": [rel_path]})

        if resp.status_code not in (200, 201):
            logger.error(f"Supabase delete failed ({resp.status_code}): {resp.text}")
            raise StorageError(f"Failed to delete storage object: {resp.text}")

        logger.info(f"Deleted from Supabase: {rel_path}")

    async def signed_url(self, rel_path: str, ttl_seconds: int) -> str:
        url = f"{self.base_url}/object/sign/{self.bucket}/{rel_path}"
        headers = {**self.headers, "Content-Type": "application/json"}

        resp = await self._request("POST", url, timeout=30.0, headers=headers, json={"expiresIn": ttl_seconds})

        signed = resp.json().get("signedURL") if resp.status_code == 200 else None
        if not signed:
            logger.error(f"Supabase sign failed ({resp.status_code}): {resp.text}")
            raise StorageError(f"Failed to create signed URL: {resp.text}")

        # signedURL comes back relative to /storage/v1
        return f"{self.base_url}{signed}"


# ──────────────────────────────────────────────────────────────────────────────
# Singleton, pick implementation based on PRODUCTION flag
# ──────────────────────────────────────────────────────────────────────────────

def _create_storage_service() -> BaseStorageService:
    if settings.PRODUCTION:
        logger.info("Storage: Supabase (production mode)")
        return SupabaseStorageService()
    else:
        logger.info("Storage: Local filesystem (dev mode)")
        return LocalStorageService()


storage_service = _create_storage_service()
