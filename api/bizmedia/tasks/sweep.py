"""Orphaned image sweep task."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict

from bizmedia.celery_app import celery_app
from bizmedia.config import settings
from bizmedia.database import SessionLocal
from bizmedia.services.catalog import AssetCatalog
from bizmedia.services.errors import MediaError
from bizmedia.services.reconciliation import sweep_orphaned_objects
from bizmedia.storage.base import StorageError
from bizmedia.storage.factory import get_storage_driver
from bizmedia.storage.gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


@celery_app.task(name="bizmedia.tasks.sweep.sweep_orphaned_images", bind=True)
def sweep_orphaned_images(self, business_id: str) -> Dict[str, Any]:
    """Delete stored images of a business that no catalog row references.

    Args:
        business_id: Business whose storage partition is swept

    Returns:
        Dict with results:
            - scanned: Objects found in storage
            - referenced: Objects referenced by catalog rows
            - deleted: Orphans deleted
            - skipped_recent: Orphans younger than the grace period
            - errors: Per-object errors (first 10)

    Examples:
        >>> result = sweep_orphaned_images.delay("biz-1")
        >>> result.get()["deleted"]
        2
    """
    db = SessionLocal()

    try:
        logger.info(f"Starting orphan sweep for business {business_id}")
        gateway = ObjectStoreGateway(get_storage_driver(settings))
        grace_period = timedelta(minutes=settings.orphan_grace_period_minutes)

        # Run async sweep in sync context
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            report = loop.run_until_complete(
                sweep_orphaned_objects(AssetCatalog(db), gateway, business_id, grace_period)
            )
        finally:
            loop.close()

        result = report.to_dict()
        result["errors"] = result["errors"][:10]
        return result

    except (MediaError, StorageError) as e:
        logger.error(f"Orphan sweep failed for business {business_id}: {e}")
        return {
            "business_id": business_id,
            "scanned": 0,
            "referenced": 0,
            "deleted": 0,
            "skipped_recent": 0,
            "deleted_paths": [],
            "errors": [str(e)],
        }

    finally:
        db.close()
