"""Out-of-band sweep of orphaned image objects."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bizmedia.services.catalog import AssetCatalog
from bizmedia.services.errors import StorageFailure
from bizmedia.storage.gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Summary of one sweep over a business partition."""

    business_id: str
    scanned: int = 0
    referenced: int = 0
    deleted: int = 0
    skipped_recent: int = 0
    deleted_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def sweep_orphaned_objects(
    catalog: AssetCatalog,
    gateway: ObjectStoreGateway,
    business_id: str,
    grace_period: timedelta = timedelta(minutes=60),
    now: Optional[datetime] = None,
) -> SweepReport:
    """Delete stored objects of a business that no catalog row references.

    Objects younger than ``grace_period`` are left alone: they may belong
    to an upload whose row is about to be written. If any catalog URL
    cannot be mapped to a stored path (e.g. after the public base URL
    changed), nothing is deleted and the URLs are listed in ``errors``.

    Args:
        catalog: Image catalog
        gateway: Object store gateway
        business_id: Business partition to sweep
        grace_period: Minimum object age before it may be deleted
        now: Current time (naive UTC), injectable for tests

    Returns:
        SweepReport with counts and per-object errors

    Raises:
        StorageFailure: If the partition cannot be listed
        CatalogFailure: If catalog references cannot be read
    """
    now = now or datetime.utcnow()
    report = SweepReport(business_id=business_id)

    objects = await gateway.list_objects(business_id)
    report.scanned = len(objects)

    referenced = set()
    unresolved = []
    for url in catalog.referenced_urls(business_id):
        try:
            referenced.add(gateway.path_for(url))
        except StorageFailure:
            unresolved.append(url)
    report.referenced = len(referenced)

    # Without every reference mapped, live objects are indistinguishable from orphans
    if unresolved:
        logger.warning(
            f"Orphan sweep for business {business_id} aborted: "
            f"{len(unresolved)} catalog references outside the storage namespace"
        )
        report.errors.extend(f"Unresolvable catalog reference: {url}" for url in unresolved)
        return report

    for info in objects:
        if info.path in referenced:
            continue

        if now - _as_naive_utc(info.modified_at) < grace_period:
            report.skipped_recent += 1
            continue

        try:
            await gateway.delete(info.path)
        except StorageFailure as e:
            report.errors.append(f"{info.path}: {e.message}")
            continue

        report.deleted += 1
        report.deleted_paths.append(info.path)
        logger.info(f"Deleted orphaned object {info.path}")

    logger.info(
        f"Orphan sweep for business {business_id}: scanned={report.scanned} "
        f"deleted={report.deleted} skipped_recent={report.skipped_recent} "
        f"errors={len(report.errors)}"
    )
    return report
