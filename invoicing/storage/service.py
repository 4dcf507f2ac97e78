"""S3-compatible object storage service using MinIO.

Holds the JSON documents of the invoice record store. Provides:
- Lazy client creation
- Bucket auto-creation
- Retry with exponential backoff on S3 errors
- Result models instead of raised exceptions

Based on MinIO Python SDK:
https://min.io/docs/minio/linux/developers/python/API.html
"""

import io
import logging
import mimetypes
from collections.abc import Callable
from typing import BinaryIO, TypeVar

from minio import Minio
from minio.error import S3Error
from pydantic import BaseModel
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invoicing.shared.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageResult(BaseModel):
    """Result of storage operation.

    Attributes:
        success: Whether operation succeeded
        object_name: Full object path in storage
        bucket: Bucket name
        error: Error message if operation failed
        etag: Object ETag (hash) if available
        size: Object size in bytes if available
        data: Object content for downloads
    """

    success: bool
    object_name: str | None = None
    bucket: str | None = None
    error: str | None = None
    etag: str | None = None
    size: int | None = None
    data: bytes | None = None


class ObjectListResult(BaseModel):
    """Result of listing objects under a prefix."""

    success: bool
    object_names: list[str] = []
    error: str | None = None


class StorageService:
    """S3-compatible object storage service."""

    def __init__(self, settings: Settings) -> None:
        """Initialize storage service.

        Args:
            settings: Application settings with storage configuration
        """
        self.settings = settings
        self._client: Minio | None = None
        self._bucket_exists_cache: set[str] = set()

    def _get_client(self) -> Minio:
        """Get or create MinIO client (lazy initialization).

        Returns:
            Configured Minio client instance

        Raises:
            ValueError: If storage credentials are not configured
        """
        if self._client is None:
            if not self.settings.storage_access_key:
                raise ValueError(
                    "Storage access key not configured. "
                    "Set APP_STORAGE_ACCESS_KEY environment variable."
                )
            if not self.settings.storage_secret_key:
                raise ValueError(
                    "Storage secret key not configured. "
                    "Set APP_STORAGE_SECRET_KEY environment variable."
                )

            self._client = Minio(
                endpoint=self.settings.storage_endpoint,
                access_key=self.settings.storage_access_key,
                secret_key=self.settings.storage_secret_key,
                secure=self.settings.storage_secure,
            )
            logger.info(f"MinIO client initialized for endpoint: {self.settings.storage_endpoint}")

        return self._client

    def _with_retry(self, operation: Callable[[], T]) -> T:
        """Run a storage call, retrying on S3 errors.

        The last S3Error is re-raised once attempts are exhausted.
        """
        wait = self.settings.storage_retry_wait
        retrying = Retrying(
            retry=retry_if_exception_type(S3Error),
            stop=stop_after_attempt(self.settings.storage_retry_attempts),
            wait=wait_exponential_jitter(initial=wait, max=10, jitter=wait),
            reraise=True,
        )
        return retrying(operation)

    def is_available(self) -> bool:
        """Check if storage service is available and configured.

        Returns:
            True if storage is enabled and credentials are set
        """
        if not self.settings.storage_enabled:
            return False

        return bool(self.settings.storage_access_key and self.settings.storage_secret_key)

    def health_check(self) -> bool:
        """Check if storage backend is reachable.

        Returns:
            True if MinIO server responds to list_buckets
        """
        if not self.is_available():
            return False

        try:
            client = self._get_client()
            client.list_buckets()
            return True
        except Exception as e:
            logger.warning(f"Storage health check failed: {e}")
            return False

    def _ensure_bucket(self, bucket: str) -> None:
        """Ensure bucket exists, create if missing."""
        if bucket in self._bucket_exists_cache:
            return

        client = self._get_client()
        if not client.bucket_exists(bucket):
            client.make_bucket(bucket)
            logger.info(f"Created bucket: {bucket}")

        self._bucket_exists_cache.add(bucket)

    @staticmethod
    def _detect_content_type(filename: str) -> str:
        """Detect content type from filename, defaulting to octet-stream."""
        content_type, _ = mimetypes.guess_type(filename)
        return content_type or "application/octet-stream"

    def upload_bytes(
        self,
        data: bytes,
        object_name: str,
        content_type: str | None = None,
        bucket: str | None = None,
    ) -> StorageResult:
        """Upload bytes to storage, replacing any existing object.

        Args:
            data: Bytes to upload
            object_name: Target object name in storage
            content_type: MIME type (auto-detected if not provided)
            bucket: Target bucket (defaults to settings.storage_bucket)

        Returns:
            StorageResult with upload details
        """
        bucket = bucket or self.settings.storage_bucket

        try:
            client = self._get_client()
            self._ensure_bucket(bucket)

            if content_type is None:
                content_type = self._detect_content_type(object_name)

            def put() -> object:
                data_stream: BinaryIO = io.BytesIO(data)
                return client.put_object(
                    bucket_name=bucket,
                    object_name=object_name,
                    data=data_stream,
                    length=len(data),
                    content_type=content_type,
                )

            result = self._with_retry(put)

            logger.info(f"Uploaded {object_name} to {bucket} ({len(data)} bytes)")

            return StorageResult(
                success=True,
                object_name=object_name,
                bucket=bucket,
                etag=getattr(result, "etag", None),
                size=len(data),
            )

        except S3Error as e:
            logger.error(f"S3 error uploading {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=f"S3 error: {e.code} - {e.message}",
            )
        except Exception as e:
            logger.error(f"Error uploading {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=str(e),
            )

    def download_bytes(self, object_name: str, bucket: str | None = None) -> StorageResult:
        """Download an object's content.

        Args:
            object_name: Object name in storage
            bucket: Bucket name (defaults to settings.storage_bucket)

        Returns:
            StorageResult with data set on success
        """
        bucket = bucket or self.settings.storage_bucket

        try:
            client = self._get_client()

            def get() -> bytes:
                response = client.get_object(bucket_name=bucket, object_name=object_name)
                try:
                    return response.read()
                finally:
                    response.close()
                    response.release_conn()

            data = self._with_retry(get)

            return StorageResult(
                success=True,
                object_name=object_name,
                bucket=bucket,
                size=len(data),
                data=data,
            )

        except S3Error as e:
            logger.error(f"S3 error downloading {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=f"S3 error: {e.code} - {e.message}",
            )
        except Exception as e:
            logger.error(f"Error downloading {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=str(e),
            )

    def list_objects(self, prefix: str, bucket: str | None = None) -> ObjectListResult:
        """List object names under a prefix.

        Args:
            prefix: Object name prefix (e.g. 'invoices/')
            bucket: Bucket name (defaults to settings.storage_bucket)

        Returns:
            ObjectListResult with object names
        """
        bucket = bucket or self.settings.storage_bucket

        try:
            client = self._get_client()
            self._ensure_bucket(bucket)

            def list_names() -> list[str]:
                objects = client.list_objects(bucket, prefix=prefix, recursive=True)
                return [obj.object_name for obj in objects]

            return ObjectListResult(success=True, object_names=self._with_retry(list_names))

        except S3Error as e:
            logger.error(f"S3 error listing {prefix}: {e}")
            return ObjectListResult(success=False, error=f"S3 error: {e.code} - {e.message}")
        except Exception as e:
            logger.error(f"Error listing {prefix}: {e}")
            return ObjectListResult(success=False, error=str(e))

    def delete_object(
        self,
        object_name: str,
        bucket: str | None = None,
    ) -> StorageResult:
        """Delete object from storage.

        Args:
            object_name: Object name to delete
            bucket: Bucket name (defaults to settings.storage_bucket)

        Returns:
            StorageResult indicating success or failure
        """
        bucket = bucket or self.settings.storage_bucket

        try:
            client = self._get_client()
            client.remove_object(bucket_name=bucket, object_name=object_name)

            logger.info(f"Deleted {object_name} from {bucket}")

            return StorageResult(
                success=True,
                object_name=object_name,
                bucket=bucket,
            )

        except S3Error as e:
            logger.error(f"S3 error deleting {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=f"S3 error: {e.code} - {e.message}",
            )
        except Exception as e:
            logger.error(f"Error deleting {object_name}: {e}")
            return StorageResult(
                success=False,
                object_name=object_name,
                bucket=bucket,
                error=str(e),
            )

    def object_exists(
        self,
        object_name: str,
        bucket: str | None = None,
    ) -> bool:
        """Check if object exists in storage."""
        bucket = bucket or self.settings.storage_bucket

        try:
            client = self._get_client()
            client.stat_object(bucket_name=bucket, object_name=object_name)
            return True
        except S3Error:
            return False
        except Exception:
            return False
