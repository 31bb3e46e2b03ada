"""Storage service for archiving uploaded regulation documents in Supabase storage."""

from typing import Optional

import httpx

from fishregs.core.config import settings
from fishregs.core.exceptions import StorageError
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Service for managing files in Supabase storage."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.url = (url if url is not None else settings.storage.url).rstrip("/")
        self.service_role_key = service_role_key if service_role_key is not None else settings.storage.service_role_key
        self.timeout = timeout or settings.http_timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key)

    async def upload_file(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload bytes to Supabase storage.

        Args:
            content: File bytes
            bucket: Target bucket name
            path: Target path within the bucket
            content_type: MIME type stored with the object

        Returns:
            URL of the stored object

        Raises:
            StorageError: If storage is not configured or the upload fails
        """
        if not self.is_configured:
            raise StorageError("Storage is not configured")

        object_url = f"{self.base_api_url}/object/{bucket}/{path}"
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    object_url,
                    headers={**self.headers, "Content-Type": content_type, "x-upsert": "true"},
                    content=content,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to storage: {e}", exc_info=True)
            raise StorageError(f"Storage upload error: {e}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to storage: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Upload failed: {response.text}")

        LOGGER.info("Archived document", extra={"bucket": bucket, "path": path, "size_bytes": len(content)})
        return object_url
