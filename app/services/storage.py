"""
Storage Service
Handles file storage - supports Supabase Storage, Google Cloud Storage, S3,
and local filesystem. All objects live in one bucket (STORAGE_BUCKET).
"""

import asyncio
import logging
import secrets
import time
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.workers.base import StorageUploadError

logger = logging.getLogger(__name__)


def generated_image_path(business_id: str) -> str:
    """{businessId}/generated/{epoch ms}_{random}.png"""
    return f"{business_id}/generated/{int(time.time() * 1000)}_{secrets.token_hex(3)}.png"


class StorageService:
    """Service for file storage operations."""

    def __init__(self, bucket: Optional[str] = None):
        self.bucket_name = bucket or settings.STORAGE_BUCKET
        # Priority: Supabase > GCS > Local > S3
        self.use_supabase = settings.USE_SUPABASE_STORAGE
        self.use_gcs = settings.USE_GCS and not self.use_supabase
        self.use_local = settings.USE_LOCAL_STORAGE and not (self.use_supabase or self.use_gcs)

        if self.use_supabase:
            from supabase import create_client
            if not settings.SUPABASE_URL or not settings.SUPABASE_SECRET_KEY:
                raise RuntimeError("SUPABASE_URL and SUPABASE_SECRET_KEY must be set")
            self.supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SECRET_KEY)
            logger.info(f"[Storage] Using Supabase Storage: {self.bucket_name}")

        elif self.use_gcs:
            from google.cloud import storage
            self.gcs_client = storage.Client(project=settings.GCP_PROJECT_ID)
            self.gcs_bucket = self.gcs_client.bucket(self.bucket_name)
            logger.info(f"[Storage] Using Google Cloud Storage: {self.bucket_name}")

        elif self.use_local:
            self.base_path = Path(settings.LOCAL_STORAGE_PATH)
            self.base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"[Storage] Using local storage: {self.base_path}")

        else:
            import boto3
            from botocore.config import Config
            self.s3 = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT or None,
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
                config=Config(signature_version="s3v4")
            )
            logger.info(f"[Storage] Using S3: {self.bucket_name}")

    @property
    def backend(self) -> str:
        if self.use_supabase:
            return "supabase"
        if self.use_gcs:
            return "gcs"
        if self.use_local:
            return "local"
        return "s3"

    async def upload_bytes(self, data: bytes, path: str, content_type: str = "image/png") -> str:
        """
        Upload bytes and return the public URL.

        Raises:
            StorageUploadError: when the backend rejects the upload
        """
        try:
            if self.use_supabase:
                url = await self._upload_supabase(data, path, content_type)
            elif self.use_gcs:
                url = await self._upload_gcs(data, path, content_type)
            elif self.use_local:
                url = await self._upload_local(data, path)
            else:
                url = await self._upload_s3(data, path, content_type)
        except StorageUploadError:
            raise
        except Exception as e:
            raise StorageUploadError(
                f"Failed to upload to storage: {e}",
                details={"path": path, "backend": self.backend},
            ) from e

        logger.info(f"[Storage] Uploaded {len(data)} bytes to {self.bucket_name}/{path}")
        return url

    async def _upload_supabase(self, data: bytes, path: str, content_type: str) -> str:
        bucket = self.supabase.storage.from_(self.bucket_name)
        await asyncio.to_thread(
            lambda: bucket.upload(
                path=path,
                file=data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        )
        return bucket.get_public_url(path)

    async def _upload_gcs(self, data: bytes, path: str, content_type: str) -> str:
        blob = self.gcs_bucket.blob(path)
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        return blob.public_url

    async def _upload_local(self, data: bytes, path: str) -> str:
        """Save file under LOCAL_STORAGE_PATH/<bucket>/ and return its /files URL."""
        file_path = self.base_path / self.bucket_name / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)
        return self.get_public_url(path)

    async def _upload_s3(self, data: bytes, path: str, content_type: str) -> str:
        await asyncio.to_thread(
            self.s3.put_object,
            Bucket=self.bucket_name,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        if settings.S3_ENDPOINT:
            return f"{settings.S3_ENDPOINT.rstrip('/')}/{self.bucket_name}/{path}"
        return f"https://{self.bucket_name}.s3.{settings.S3_REGION}.amazonaws.com/{path}"

    def get_public_url(self, path: str) -> str:
        """Public URL for a locally stored object (served by GET /files/{path})."""
        return f"{settings.API_BASE_URL.rstrip('/')}/files/{self.bucket_name}/{path}"

    async def delete_file(self, path: str):
        """Delete a single file. Missing files are not an error."""
        if self.use_supabase:
            await asyncio.to_thread(lambda: self.supabase.storage.from_(self.bucket_name).remove([path]))
        elif self.use_gcs:
            from google.api_core.exceptions import NotFound
            try:
                await asyncio.to_thread(self.gcs_bucket.blob(path).delete)
            except NotFound:
                logger.warning(f"[Storage] Not found, nothing to delete: {path}")
                return
        elif self.use_local:
            file_path = self.base_path / self.bucket_name / path
            if not file_path.is_file():
                return
            file_path.unlink()
        else:
            await asyncio.to_thread(self.s3.delete_object, Bucket=self.bucket_name, Key=path)
        logger.info(f"[Storage] Deleted file: {path}")

    def local_file(self, path: str) -> Optional[Path]:
        """
        Resolve a /files/ path to a file on disk.

        Returns None when local storage is not in use, the file does not exist,
        or the path escapes the storage root.
        """
        if not self.use_local:
            return None
        root = self.base_path.resolve()
        file_path = (root / path).resolve()
        if root not in file_path.parents or not file_path.is_file():
            return None
        return file_path


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get singleton StorageService instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
