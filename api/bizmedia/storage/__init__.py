"""Storage drivers and gateway for business image bytes."""

from bizmedia.storage.base import BaseStorageDriver, StorageError
from bizmedia.storage.factory import get_storage_driver
from bizmedia.storage.gateway import ObjectStoreGateway, StoredObject

__all__ = [
    "BaseStorageDriver",
    "ObjectStoreGateway",
    "StorageError",
    "StoredObject",
    "get_storage_driver",
]
