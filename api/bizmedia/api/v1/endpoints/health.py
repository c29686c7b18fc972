"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends

from bizmedia.api.deps import get_storage_gateway
from bizmedia.storage.base import StorageError
from bizmedia.storage.gateway import ObjectStoreGateway

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz():
    """Simple health check for Kubernetes/Docker."""
    return {"status": "ok"}


@router.get("/healthz/storage")
async def storage_health(gateway: ObjectStoreGateway = Depends(get_storage_gateway)):
    """Check that the image store is reachable and writable."""
    try:
        reachable = await gateway.driver.test_connection()
    except StorageError as e:
        logger.warning(f"Storage health check failed: {e}")
        return {"status": "unavailable", "error": str(e)}

    return {"status": "ok" if reachable else "unavailable"}
