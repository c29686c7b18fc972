"""Base storage driver interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional


class FileInfo(Dict[str, Any]):
    """File information dict with typed access."""

    @property
    def name(self) -> str:
        return self["name"]

    @property
    def path(self) -> str:
        return self["path"]

    @property
    def size_bytes(self) -> int:
        return self["size_bytes"]

    @property
    def modified_at(self) -> datetime:
        return self["modified_at"]


class BaseStorageDriver(ABC):
    """Base class for storage drivers.

    All storage drivers must implement this interface to provide
    unified access to the business image namespace (S3, Local, etc).
    Paths are always relative to the driver's root and use "/" as separator.
    """

    def __init__(self, config: Dict[str, Any]):
        """Initialize storage driver with configuration.

        Args:
            config: Storage configuration dict with provider-specific settings.
                Every driver accepts an optional ``public_base_url``.
        """
        self.config = config
        self.public_base_url: Optional[str] = (
            config.get("public_base_url") or None
        )

    @abstractmethod
    async def list_files(self, path: str = "") -> List[FileInfo]:
        """List files under a path prefix.

        Args:
            path: Path prefix to list (relative to root)

        Returns:
            List of FileInfo dicts with: name, path, size_bytes, modified_at

        Raises:
            StorageError: If listing fails
        """
        pass

    @abstractmethod
    async def upload_file(self, file_path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload file and return its relative path.

        Args:
            file_path: Destination path (relative to root)
            content: File content as bytes
            content_type: Optional MIME type stored with the object

        Returns:
            Relative path where file was uploaded

        Raises:
            StorageError: If upload fails
        """
        pass

    @abstractmethod
    async def delete_file(self, file_path: str) -> None:
        """Delete a file.

        Deleting a path that does not exist is not an error.

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def file_exists(self, file_path: str) -> bool:
        """Check whether a file exists.

        Raises:
            StorageError: If the backend cannot be queried
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test if storage is accessible.

        Returns:
            True if connection successful, False otherwise
        """
        pass

    @abstractmethod
    def default_public_base_url(self) -> str:
        """Public URL prefix used when none is configured."""
        pass

    def get_public_url(self, file_path: str) -> str:
        """Build the public URL for a stored file."""
        base = (self.public_base_url or self.default_public_base_url()).rstrip("/")
        return f"{base}/{file_path.lstrip('/')}"

    def path_from_reference(self, reference: str) -> str:
        """Turn a public URL or a relative path into a relative path.

        Examples:
            >>> driver.get_public_url("biz-1/1700000000000-ab12cd34.png")
            'https://cdn.example.com/business-images/biz-1/1700000000000-ab12cd34.png'
            >>> driver.path_from_reference(_)
            'biz-1/1700000000000-ab12cd34.png'
        """
        base = (self.public_base_url or self.default_public_base_url()).rstrip("/") + "/"
        if reference.startswith(base):
            reference = reference[len(base):]
        elif "://" in reference:
            raise StorageError(f"Reference {reference} is outside this storage namespace")
        return reference.split("?", 1)[0].lstrip("/")


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class StorageConnectionError(StorageError):
    """Exception for connection errors."""

    pass
