"""Storage driver factory."""

from typing import Optional

from bizmedia.config import Settings, settings as default_settings
from bizmedia.storage.base import BaseStorageDriver, StorageError
from bizmedia.storage.local_driver import LocalStorageDriver
from bizmedia.storage.s3_driver import S3StorageDriver


def get_storage_driver(settings: Optional[Settings] = None) -> BaseStorageDriver:
    """Get storage driver instance for the business image namespace.

    Args:
        settings: Settings to read the storage configuration from
            (defaults to the application settings)

    Returns:
        Configured storage driver instance

    Raises:
        StorageError: If driver not supported or configuration incomplete

    Example:
        >>> driver = get_storage_driver()
        >>> await driver.file_exists("biz-1/1700000000000-ab12cd34.png")
    """
    settings = settings or default_settings

    driver_config = {
        "public_base_url": settings.storage_public_base_url,
    }

    provider = settings.storage_provider.lower()

    if provider == "local":
        driver_config["base_path"] = settings.storage_base_path
        return LocalStorageDriver(driver_config)

    elif provider == "s3":
        driver_config.update(
            {
                "bucket_name": settings.storage_bucket,
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
                "region": settings.aws_region,
                "endpoint_url": settings.s3_endpoint_url,
            }
        )
        missing = [
            f for f in ("aws_access_key_id", "aws_secret_access_key", "bucket_name")
            if not driver_config.get(f)
        ]
        if missing:
            raise StorageError(f"Missing required S3 configuration: {missing}")
        return S3StorageDriver(driver_config)

    else:
        raise StorageError(f"Unsupported storage provider: {provider}")

