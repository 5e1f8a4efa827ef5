import logging
import os
import uuid
from pathlib import Path
from typing import Iterator, Optional
from uuid import UUID

import boto3
from botocore.exceptions import ClientError

from core.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class BlobNotFoundError(Exception):
    """Raised when a storage locator does not resolve to any content"""


class ContentStore:
    """Blob storage used for file contents.

    A locator returned by ``put`` is opaque to callers; it is persisted on the
    File record and handed back to ``open``/``delete``.
    """

    def put(self, content: bytes, owner_id: UUID, filename: str, mime_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def open(self, locator: str) -> Iterator[bytes]:
        raise NotImplementedError

    def delete(self, locator: str) -> bool:
        raise NotImplementedError

    def _generate_storage_key(self, owner_id: UUID, filename: str) -> str:
        """Generate a unique storage key for the file"""
        file_ext = os.path.splitext(filename)[1]
        return f"{owner_id}/{uuid.uuid4()}{file_ext}"


class LocalContentStore(ContentStore):
    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, locator: str) -> Path:
        target = (self.root / locator).resolve()
        if self.root not in target.parents:
            raise BlobNotFoundError(f"Locator outside of upload directory: {locator}")
        return target

    def put(self, content: bytes, owner_id: UUID, filename: str, mime_type: Optional[str] = None) -> str:
        locator = self._generate_storage_key(owner_id, filename)
        final_path = self._resolve(locator)
        final_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = final_path.with_name(final_path.name + ".part")

        try:
            with open(partial_path, "wb") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(partial_path, final_path)
        except OSError:
            logger.exception("Failed to write content to %s", final_path)
            partial_path.unlink(missing_ok=True)
            raise

        logger.debug("Stored %d bytes at %s", len(content), locator)
        return locator

    def open(self, locator: str) -> Iterator[bytes]:
        path = self._resolve(locator)
        if not path.is_file():
            raise BlobNotFoundError(locator)
        return self._iter_file(path)

    @staticmethod
    def _iter_file(path: Path) -> Iterator[bytes]:
        with open(path, "rb") as handle:
            while True:
                chunk = handle.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

    def delete(self, locator: str) -> bool:
        try:
            path = self._resolve(locator)
        except BlobNotFoundError:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


class R2ContentStore(ContentStore):
    """S3 compatible store (Cloudflare R2 by default)"""

    def __init__(self, bucket_name: Optional[str] = None, s3_client=None):
        self.bucket_name = bucket_name or settings.R2_BUCKET_NAME
        self.s3_client = s3_client or self._create_r2_client()

    def _create_r2_client(self):
        """Create and return a boto3 S3 client configured for Cloudflare R2"""

        return boto3.client(
            's3',
            endpoint_url=settings.R2_ENDPOINT_URL,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name='auto'
        )

    def _generate_storage_key(self, owner_id: UUID, filename: str) -> str:
        return f"users/{super()._generate_storage_key(owner_id, filename)}"

    def put(self, content: bytes, owner_id: UUID, filename: str, mime_type: Optional[str] = None) -> str:
        storage_key = self._generate_storage_key(owner_id, filename)
        upload_params = {
            'Bucket': self.bucket_name,
            'Key': storage_key,
            'Body': content,
        }
        if mime_type:
            upload_params['ContentType'] = mime_type

        self.s3_client.put_object(**upload_params)
        return storage_key

    def open(self, locator: str) -> Iterator[bytes]:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=locator)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFoundError(locator) from e
            raise
        return response["Body"].iter_chunks(CHUNK_SIZE)

    def delete(self, locator: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=locator)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return False
            raise
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=locator)
        return True


def get_content_store() -> ContentStore:
    """FastAPI dependency returning the configured content store"""
    if settings.STORAGE_BACKEND == "r2":
        return R2ContentStore()
    return LocalContentStore(settings.UPLOAD_DIR)
