"""S3-compatible storage driver (AWS S3, Cloudflare R2, MinIO, etc)."""

from typing import Any, Dict, List, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from bizmedia.storage.base import (
    BaseStorageDriver,
    FileInfo,
    StorageConnectionError,
    StorageError,
)


class S3StorageDriver(BaseStorageDriver):
    """S3-compatible storage driver.

    Supports:
    - AWS S3
    - Cloudflare R2
    - MinIO
    - Any S3-compatible API

    Configuration:
        aws_access_key_id: Access key
        aws_secret_access_key: Secret key
        bucket_name: Bucket name
        region: AWS region (default: us-east-1)
        endpoint_url: Custom endpoint URL (for R2, MinIO, etc)
        base_path: Prefix path within bucket (optional)
        public_base_url: Public URL prefix (CDN or bucket website, optional)

    Example:
        >>> config = {
        ...     "aws_access_key_id": "AKIA...",
        ...     "aws_secret_access_key": "...",
        ...     "bucket_name": "business-images",
        ...     "region": "eu-south-1"
        ... }
        >>> driver = S3StorageDriver(config)
        >>> await driver.upload_file("biz-1/1700000000000-ab12cd34.png", content, "image/png")
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.bucket_name = config["bucket_name"]
        self.base_path = (config.get("base_path") or "").strip("/")
        self.region = config.get("region") or "us-east-1"

        # S3 client configuration
        self.s3_config = {
            "aws_access_key_id": config["aws_access_key_id"],
            "aws_secret_access_key": config["aws_secret_access_key"],
            "region_name": self.region,
        }

        # Support custom endpoint (Cloudflare R2, MinIO, etc)
        if config.get("endpoint_url"):
            self.s3_config["endpoint_url"] = config["endpoint_url"]

        self.session = aioboto3.Session()

    def _get_full_key(self, file_path: str) -> str:
        """Get full S3 key with base_path prefix."""
        if self.base_path:
            return f"{self.base_path}/{file_path}".strip("/")
        return file_path.strip("/")

    def _strip_base_path(self, key: str) -> str:
        """Remove base_path prefix from S3 key."""
        if self.base_path and key.startswith(self.base_path + "/"):
            return key[len(self.base_path) + 1 :]
        return key

    def default_public_base_url(self) -> str:
        endpoint = self.s3_config.get("endpoint_url")
        if endpoint:
            base = f"{endpoint.rstrip('/')}/{self.bucket_name}"
        else:
            base = f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"
        if self.base_path:
            base = f"{base}/{self.base_path}"
        return base

    async def list_files(self, path: str = "") -> List[FileInfo]:
        """List objects under a prefix.

        Args:
            path: Path prefix to list from

        Returns:
            List of FileInfo dicts
        """
        prefix = self._get_full_key(path) if path else self.base_path
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        files = []

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                paginator = s3.get_paginator("list_objects_v2")
                async for page in paginator.paginate(
                    Bucket=self.bucket_name, Prefix=prefix
                ):
                    for obj in page.get("Contents", []):
                        key = obj["Key"]

                        # Skip directory markers
                        if key.endswith("/"):
                            continue

                        files.append(
                            FileInfo(
                                {
                                    "name": key.split("/")[-1],
                                    "path": self._strip_base_path(key),
                                    "size_bytes": obj["Size"],
                                    "modified_at": obj["LastModified"],
                                }
                            )
                        )

        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list files: {e}")

        return files

    async def upload_file(self, file_path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload object to S3.

        Args:
            file_path: Destination path
            content: File content
            content_type: MIME type stored as the object's Content-Type

        Returns:
            Relative path of the uploaded object
        """
        key = self._get_full_key(file_path)
        extra = {"ContentType": content_type} if content_type else {}

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=content,
                    CacheControl="max-age=3600",
                    **extra,
                )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload file: {e}")

        return self._strip_base_path(key)

    async def delete_file(self, file_path: str) -> None:
        """Delete object from S3 (S3 deletes are idempotent)."""
        key = self._get_full_key(file_path)

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return
            raise StorageError(f"Failed to delete file: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete file: {e}")

    async def file_exists(self, file_path: str) -> bool:
        key = self._get_full_key(file_path)

        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to get file info: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to get file info: {e}")

    async def test_connection(self) -> bool:
        """Test S3 connection by checking if bucket exists.

        Returns:
            True if bucket is accessible
        """
        try:
            async with self.session.client("s3", **self.s3_config) as s3:
                await s3.head_bucket(Bucket=self.bucket_name)
            return True

        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in ("404", "NoSuchBucket"):
                raise StorageConnectionError(f"Bucket not found: {self.bucket_name}")
            elif error_code == "403":
                raise StorageConnectionError(f"Access denied to bucket: {self.bucket_name}")
            return False

        except Exception:
            return False
