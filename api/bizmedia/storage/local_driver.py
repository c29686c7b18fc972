"""Local filesystem storage driver."""

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os

from bizmedia.storage.base import BaseStorageDriver, FileInfo, StorageError


class LocalStorageDriver(BaseStorageDriver):
    """Local filesystem storage driver.

    Configuration:
        base_path: Absolute path to storage directory
        public_base_url: URL prefix the directory is served under (optional)

    Example:
        >>> driver = LocalStorageDriver({"base_path": "/data/business-images"})
        >>> path = await driver.upload_file("biz-1/logo.png", content)
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        # Resolved so traversal checks and relative paths agree
        self.base_path = Path(config["base_path"]).resolve()

    def _validate_path(self, file_path: str) -> Path:
        """Validate path is within base_path (prevent directory traversal).

        Args:
            file_path: Relative file path

        Returns:
            Absolute Path object

        Raises:
            StorageError: If path tries to escape base_path
        """
        full_path = (self.base_path / file_path).resolve()

        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise StorageError(
                f"Path {file_path} attempts to escape base directory"
            )

        return full_path

    def default_public_base_url(self) -> str:
        return self.base_path.as_uri()

    async def list_files(self, path: str = "") -> List[FileInfo]:
        """List files in local directory.

        Args:
            path: Relative path from base_path

        Returns:
            List of FileInfo dicts
        """
        search_path = self._validate_path(path) if path else self.base_path

        if not search_path.exists():
            return []

        files = []
        try:
            for root, _, filenames in os.walk(search_path):
                for filename in filenames:
                    full_path = Path(root) / filename
                    relative_path = full_path.relative_to(self.base_path)

                    stat = full_path.stat()
                    files.append(
                        FileInfo(
                            {
                                "name": filename,
                                "path": relative_path.as_posix(),
                                "size_bytes": stat.st_size,
                                "modified_at": datetime.utcfromtimestamp(stat.st_mtime),
                            }
                        )
                    )
        except OSError as e:
            raise StorageError(f"Failed to list files: {e}")

        return files

    async def upload_file(self, file_path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Write file to local filesystem.

        Args:
            file_path: Destination path
            content: File content
            content_type: Ignored by the filesystem driver

        Returns:
            Path where file was saved
        """
        full_path = self._validate_path(file_path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise StorageError(f"Failed to upload file: {e}")

        return full_path.relative_to(self.base_path).as_posix()

    async def delete_file(self, file_path: str) -> None:
        """Delete file from local filesystem (missing files are ignored)."""
        full_path = self._validate_path(file_path)

        try:
            await aiofiles.os.remove(full_path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to delete file: {e}")

    async def file_exists(self, file_path: str) -> bool:
        return self._validate_path(file_path).is_file()

    async def test_connection(self) -> bool:
        """Test if base path exists and is writable.

        Returns:
            True if base_path exists and is writable
        """
        try:
            return self.base_path.exists() and os.access(self.base_path, os.W_OK)
        except Exception:
            return False
