"""API dependencies."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizmedia.config import settings
from bizmedia.database import get_db
from bizmedia.services.media_manager import BusinessMediaManager
from bizmedia.storage.base import StorageError
from bizmedia.storage.factory import get_storage_driver
from bizmedia.storage.gateway import ObjectStoreGateway

__all__ = ["get_db", "get_storage_gateway", "get_media_manager"]


def get_storage_gateway() -> ObjectStoreGateway:
    """Get object store gateway for the configured provider."""
    try:
        return ObjectStoreGateway(get_storage_driver(settings))
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Storage not available: {e}",
        )


def get_media_manager(
    db: Session = Depends(get_db),
    gateway: ObjectStoreGateway = Depends(get_storage_gateway),
) -> BusinessMediaManager:
    """Get media manager bound to the request's session."""
    return BusinessMediaManager(db, gateway, settings)
