"""Object store gateway for business image bytes."""

import logging
import mimetypes
import time
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional

from bizmedia.services.errors import StorageFailure
from bizmedia.storage.base import BaseStorageDriver, FileInfo, StorageError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


@dataclass(frozen=True)
class StoredObject:
    """Bytes durably written to the object store."""

    path: str
    url: str


class ObjectStoreGateway:
    """Put/delete/resolve image bytes in a namespace partitioned by business.

    Object paths look like ``{business_id}/{epoch_millis}-{token}.{ext}``;
    the random token keeps concurrent uploads for one business apart.
    All driver errors are raised as ``StorageFailure``.
    """

    def __init__(self, driver: BaseStorageDriver):
        self.driver = driver

    @staticmethod
    def _extension(filename: Optional[str], content_type: Optional[str]) -> str:
        suffix = PurePosixPath(filename or "").suffix.lower().lstrip(".")
        if suffix and suffix.isalnum():
            return suffix
        if content_type in CONTENT_TYPE_EXTENSIONS:
            return CONTENT_TYPE_EXTENSIONS[content_type]
        guessed = mimetypes.guess_extension(content_type or "")
        return guessed.lstrip(".") if guessed else "bin"

    def build_path(self, business_id: str, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
        """Generate a fresh object path for a business."""
        partition = str(business_id).strip("/")
        if not partition or "/" in partition or partition in (".", ".."):
            raise StorageFailure(f"Invalid business partition: {business_id!r}")
        millis = int(time.time() * 1000)
        token = uuid.uuid4().hex[:8]
        return f"{partition}/{millis}-{token}.{self._extension(filename, content_type)}"

    async def put(
        self,
        business_id: str,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        """Store bytes for a business and return the public reference.

        Raises:
            StorageFailure: If the write fails
        """
        path = self.build_path(business_id, filename, content_type)
        try:
            stored_path = await self.driver.upload_file(path, content, content_type)
        except StorageError as e:
            logger.error(f"Failed to store {path}: {e}")
            raise StorageFailure(f"Failed to store image: {e}")

        url = self.driver.get_public_url(stored_path)
        logger.debug(f"Stored {len(content)} bytes at {stored_path}")
        return StoredObject(path=stored_path, url=url)

    async def delete(self, reference: str) -> None:
        """Delete stored bytes by URL or path. Missing objects are not an error.

        Raises:
            StorageFailure: If the backend rejects the delete
        """
        try:
            path = self.driver.path_from_reference(reference)
            await self.driver.delete_file(path)
        except StorageError as e:
            logger.error(f"Failed to delete {reference}: {e}")
            raise StorageFailure(f"Failed to delete image: {e}")
        logger.debug(f"Deleted {path}")

    async def exists(self, reference: str) -> bool:
        try:
            return await self.driver.file_exists(self.driver.path_from_reference(reference))
        except StorageError as e:
            raise StorageFailure(f"Failed to resolve image: {e}")

    def resolve_url(self, path: str) -> str:
        return self.driver.get_public_url(path)

    def path_for(self, reference: str) -> str:
        """Relative object path for a URL or path.

        Raises:
            StorageFailure: If the reference belongs to another namespace
        """
        try:
            return self.driver.path_from_reference(reference)
        except StorageError as e:
            raise StorageFailure(str(e))

    async def list_objects(self, business_id: str) -> List[FileInfo]:
        """List stored objects in a business partition."""
        try:
            return await self.driver.list_files(str(business_id).strip("/"))
        except StorageError as e:
            raise StorageFailure(f"Failed to list images: {e}")
