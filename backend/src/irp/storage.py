"""S3-compatible blob storage for report attachments.

Provides the upload/delete contract used by the report workflow and the
path scheme that groups attachments by institution and calendar day.
"""

import os
from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_settings
from .errors import UploadError
from .logging import get_context_logger

logger = get_context_logger(__name__)

DEFAULT_EXTENSION = ".pdf"
UNASSIGNED_PREFIX = "unassigned"

# Error codes S3 and MinIO use when a conditional (If-None-Match) put loses
_EXISTS_CODES = {"PreconditionFailed", "ConditionalRequestConflict"}


class BlobStore:
    """S3-compatible blob store bound to a single bucket.

    Supports MinIO for local development and AWS S3 for production.
    """

    def __init__(self, bucket: str | None = None, client=None):
        settings = get_settings()
        self._client = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
        self._bucket = bucket or settings.report_bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
        overwrite: bool = False,
    ) -> str:
        """Upload bytes under ``path``.

        Args:
            path: Key within the bucket
            data: File content
            content_type: MIME type of the content
            overwrite: Replace an existing object instead of failing

        Returns:
            The stored path

        Raises:
            UploadError: If the object already exists (and overwrite is False)
                or the store rejected the request
        """
        params = {
            "Bucket": self._bucket,
            "Key": path,
            "Body": BytesIO(data),
            "ContentType": content_type,
        }
        if not overwrite:
            params["IfNoneMatch"] = "*"

        try:
            self._client.put_object(**params)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _EXISTS_CODES:
                raise UploadError(f"Object already exists: {path}") from e
            raise UploadError(f"Failed to upload {path}: {e}") from e
        except BotoCoreError as e:
            raise UploadError(f"Failed to upload {path}: {e}") from e

        return path

    def delete(self, paths: Iterable[str]) -> None:
        """Delete objects in one batch request.

        Args:
            paths: Keys to delete; an empty collection is a no-op
        """
        keys = [{"Key": path} for path in paths]
        if not keys:
            return

        response = self._client.delete_objects(
            Bucket=self._bucket,
            Delete={"Objects": keys, "Quiet": True},
        )
        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise ClientError(
                {"Error": {"Code": first.get("Code", ""), "Message": first.get("Message", "")}},
                "DeleteObjects",
            )

    def exists(self, path: str) -> bool:
        """Check if an object exists.

        Args:
            path: Key within the bucket

        Returns:
            True if the object exists, False otherwise
        """
        try:
            self._client.head_object(Bucket=self._bucket, Key=path)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def generate_presigned_url(self, path: str, expiration: int = 3600) -> str:
        """Generate a presigned download URL.

        Args:
            path: Key within the bucket
            expiration: URL expiration time in seconds

        Returns:
            Presigned URL
        """
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": path},
            ExpiresIn=expiration,
        )

    def ensure_bucket(self) -> bool:
        """Create the bucket if it is missing.

        Returns:
            True if the bucket was created, False if it already existed
        """
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return False
        except ClientError as e:
            if e.response["Error"]["Code"] not in ("404", "NoSuchBucket", "NotFound"):
                raise

        self._client.create_bucket(Bucket=self._bucket)
        logger.info(f"Created bucket {self._bucket}", extra={"bucket": self._bucket})
        return True

    def ping(self) -> None:
        """Raise if the bucket is unreachable."""
        self._client.head_bucket(Bucket=self._bucket)


def build_report_storage_path(
    institution_prefix: str | None,
    filename: str | None,
    now: datetime | None = None,
    unique_id: str | None = None,
) -> str:
    """Build the storage key for a report attachment.

    Format: {institution or "unassigned"}/{YYYY-MM-DD}/{uuid}{extension}

    Args:
        institution_prefix: Institution id or registry number, if known
        filename: Original upload filename (used for its extension only)
        now: Timestamp for the date folder (defaults to now, UTC)
        unique_id: Random component (defaults to a new UUID4)

    Returns:
        Storage key
    """
    if now is None:
        now = datetime.now(timezone.utc)

    extension = os.path.splitext(filename or "report.pdf")[1] or DEFAULT_EXTENSION
    folder = institution_prefix or UNASSIGNED_PREFIX
    date_folder = now.strftime("%Y-%m-%d")

    return f"{folder}/{date_folder}/{unique_id or uuid4()}{extension}"


# Singleton instance
_blob_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    """Get the blob store singleton."""
    global _blob_store
    if _blob_store is None:
        _blob_store = BlobStore()
    return _blob_store
