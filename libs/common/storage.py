"""Object storage for uploaded images (Supabase Storage)."""

import uuid
from functools import lru_cache
from typing import Optional

from starlette.concurrency import run_in_threadpool
from supabase import Client, create_client

from libs.common.config import get_settings
from libs.common.errors import UpstreamError, ValidationError
from libs.common.logging import get_logger

logger = get_logger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def validate_image(data: bytes, content_type: Optional[str]) -> str:
    """
    Check type and size of an uploaded image.

    Returns the file extension to store it under.
    """
    if not data:
        raise ValidationError("No file provided", code="FILE_REQUIRED")
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Unsupported file type. Allowed: JPEG, PNG, WebP, GIF",
            code="UNSUPPORTED_FILE_TYPE",
        )
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError(
            "File too large. Maximum size is 5MB", code="FILE_TOO_LARGE"
        )
    return ALLOWED_IMAGE_TYPES[content_type]


class StorageService:
    """Uploads files into the configured Supabase bucket."""

    def __init__(self, client: Optional[Client] = None, bucket: Optional[str] = None):
        settings = get_settings()
        self._client = client
        self.bucket = bucket or settings.SUPABASE_STORAGE_BUCKET

    @property
    def client(self) -> Client:
        if self._client is None:
            settings = get_settings()
            self._client = create_client(
                settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
            )
        return self._client

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        folder: str = "communities",
    ) -> dict[str, str]:
        """
        Validate and store an image.

        Returns: {"url": public URL, "path": object path inside the bucket}
        """
        ext = validate_image(data, content_type)
        path = f"{folder}/{uuid.uuid4()}.{ext}"

        bucket = self.client.storage.from_(self.bucket)
        try:
            await run_in_threadpool(
                bucket.upload,
                path=path,
                file=data,
                file_options={"content-type": content_type},
            )
            url = await run_in_threadpool(bucket.get_public_url, path)
        except Exception as e:
            logger.error(
                "Image upload failed",
                extra={"extra_fields": {"path": path, "file_name": filename, "error": str(e)}},
            )
            raise UpstreamError("Failed to upload image", code="STORAGE_ERROR") from e

        logger.info(
            "Image uploaded",
            extra={"extra_fields": {"path": path, "size": len(data)}},
        )
        return {"url": url, "path": path}


@lru_cache
def get_storage_service() -> StorageService:
    """FastAPI dependency returning the shared storage service."""
    return StorageService()
