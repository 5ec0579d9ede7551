"""Storage service for the Supabase guideline bucket."""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from guideline_rag.core.config import settings
from guideline_rag.core.exceptions import AppError
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Service for managing guideline files in Supabase storage."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.url = (url if url is not None else settings.supabase_url).rstrip("/")
        self.service_role_key = (
            service_role_key if service_role_key is not None else settings.supabase_service_role_key
        )
        self.timeout = timeout or settings.http_timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    def _object_url(self, bucket: str, path: str, prefix: str = "object") -> str:
        return f"{self.base_api_url}/{prefix}/{bucket}/{quote(path, safe='/')}"

    async def upload_file(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        """Upload bytes to Supabase storage.

        Args:
            content: File content.
            bucket: Target bucket name.
            path: Target path within the bucket.
            content_type: MIME type stored with the object.

        Returns:
            Dict containing the upload result.

        Raises:
            AppError: If the upload fails.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._object_url(bucket, path),
                    headers={**self.headers, "Content-Type": content_type},
                    content=content,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to Supabase: {str(e)}", exc_info=True)
            raise AppError(f"Storage upload error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise AppError(f"Upload failed: {response.text}")

        return response.json()

    async def download_file(self, bucket: str, path: str) -> bytes:
        """Download an object's bytes with the service role key.

        Raises:
            AppError: If the object cannot be downloaded.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self._object_url(bucket, path),
                    headers=self.headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading file from Supabase: {str(e)}", exc_info=True)
            raise AppError(f"Failed to download file: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to download file from Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise AppError(f"Failed to download file: {response.text}")

        return response.content

    async def delete_file(self, bucket: str, path: str) -> None:
        """Delete an object.

        Raises:
            AppError: If Supabase refuses the deletion.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.delete(
                    self._object_url(bucket, path),
                    headers=self.headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise AppError(f"Storage delete error: {str(e)}", original_error=e)

        if response.status_code not in (200, 204):
            raise AppError(f"Delete failed: {response.text}")

    def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return self._object_url(bucket, path, prefix="object/public")

    async def get_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600
    ) -> str:
        """Generate a time-limited signed download URL.

        Args:
            bucket: Bucket name.
            path: Object path.
            expires_in: Expiration time in seconds.

        Returns:
            Absolute signed URL.

        Raises:
            AppError: If URL generation fails.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._object_url(bucket, path, prefix="object/sign"),
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error generating signed URL: {str(e)}", exc_info=True)
            raise AppError(f"Signed URL error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to generate signed URL: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise AppError(f"Signed URL generation failed: {response.text}")

        signed_path = response.json().get("signedURL")
        if not signed_path:
            raise AppError("Supabase response did not contain signedURL")

        # Supabase returns the path relative to either the project or the storage API
        if signed_path.startswith("http"):
            return signed_path
        if signed_path.startswith("/storage/v1"):
            return f"{self.url}{signed_path}"
        return f"{self.base_api_url}{signed_path}"
