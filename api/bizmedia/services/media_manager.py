"""Business media manager: keeps the object store and the image catalog consistent.

Every mutation is a sequence of awaited steps. Stages run
validating -> storing -> cataloging -> reconciling -> done, and an error in
any stage ends the operation in ``failed`` with that stage recorded on the
raised ``MediaError``.

Ordering rules:
- bytes are stored before a catalog row references them;
- a new logo is flagged before the previous logo's bytes are removed;
- bytes are deleted before their row, and a failed byte delete leaves the
  row untouched.

A catalog failure after a successful store leaves an orphaned object; it is
logged here and cleaned up by the orphan sweep, not compensated inline.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from bizmedia.config import Settings, settings as default_settings
from bizmedia.models.business_image import BusinessImage
from bizmedia.services.catalog import AssetCatalog
from bizmedia.services.compressor import gallery_profile, logo_profile, maybe_compress
from bizmedia.services.errors import (
    AssetNotFound,
    CatalogFailure,
    InvalidAssetOperation,
    MediaError,
    PartialBatchFailure,
    StorageFailure,
    ValidationRejected,
)
from bizmedia.services.validator import validate_image_file
from bizmedia.storage.gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


class OperationStage(str, Enum):
    VALIDATING = "validating"
    STORING = "storing"
    CATALOGING = "cataloging"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


class OperationTracker:
    """Stage bookkeeping for one logical operation."""

    def __init__(self, operation: str, subject: str):
        self.operation = operation
        self.subject = subject
        self.stage: Optional[OperationStage] = None
        self.failed_stage: Optional[OperationStage] = None

    def advance(self, stage: OperationStage) -> None:
        logger.debug(f"{self.operation}[{self.subject}] -> {stage.value}")
        self.stage = stage

    def __enter__(self) -> "OperationTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            if self.stage != OperationStage.DONE:
                self.advance(OperationStage.DONE)
            return False

        self.failed_stage = self.stage
        if isinstance(exc, MediaError) and exc.stage is None and self.stage is not None:
            exc.stage = self.stage.value
        self.stage = OperationStage.FAILED
        stage_name = self.failed_stage.value if self.failed_stage else "start"
        logger.warning(f"{self.operation}[{self.subject}] failed while {stage_name}: {exc}")
        return False


@dataclass
class UploadedImage:
    """A candidate file as received from the caller.

    ``declared_size`` is set when the body was not read because its
    declared size already exceeds the ceiling.
    """

    filename: str
    content_type: Optional[str]
    content: bytes
    declared_size: Optional[int] = None

    @property
    def size_bytes(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.content)


@dataclass
class ItemFailure:
    """One failed item of a batch operation."""

    name: str
    reason: str


@dataclass
class MediaResult:
    """Ordered image list of a business after an operation."""

    business_id: Optional[str]
    images: List[BusinessImage]
    warnings: List[str] = field(default_factory=list)


@dataclass
class BatchResult(MediaResult):
    """Aggregate outcome of a multi-item operation."""

    succeeded: int = 0
    failures: List[ItemFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures) and self.succeeded > 0

    def raise_for_failures(self) -> None:
        """Raise PartialBatchFailure if any item failed."""
        if self.failures:
            raise PartialBatchFailure(self)


class BusinessMediaManager:
    """Public contract of the asset manager used by the dashboards.

    Example:
        >>> manager = BusinessMediaManager(db, ObjectStoreGateway(get_storage_driver()))
        >>> result = await manager.upload_logo("biz-1", "Caffè Roma", upload)
        >>> [img.is_primary for img in result.images]
        [True]
    """

    def __init__(
        self,
        db: Session,
        gateway: ObjectStoreGateway,
        settings: Optional[Settings] = None,
    ):
        self.catalog = AssetCatalog(db)
        self.gateway = gateway
        self.settings = settings or default_settings

    def _result(self, business_id: Optional[str], warnings: Optional[List[str]] = None) -> MediaResult:
        images = self.catalog.list_for_business(business_id) if business_id else []
        return MediaResult(business_id=business_id, images=images, warnings=warnings or [])

    def list_images(self, business_id: str) -> MediaResult:
        return self._result(business_id)

    def _validate(self, upload: UploadedImage, max_size_mb: float) -> None:
        decision = validate_image_file(upload.content_type, upload.size_bytes, max_size_mb)
        if not decision.valid:
            raise ValidationRejected(decision.error, filename=upload.filename)

    async def upload_logo(self, business_id: str, business_name: str, upload: UploadedImage) -> MediaResult:
        """Store a new logo and retire the previous one.

        Raises:
            ValidationRejected: Bad type or size (nothing stored)
            StorageFailure: Bytes could not be stored (catalog untouched)
            CatalogFailure: Row could not be written (stored bytes orphaned)
        """
        with OperationTracker("upload_logo", business_id) as op:
            op.advance(OperationStage.VALIDATING)
            self._validate(upload, self.settings.logo_max_size_mb)
            content = maybe_compress(upload.content, logo_profile(self.settings))

            op.advance(OperationStage.STORING)
            stored = await self.gateway.put(business_id, content, upload.filename, upload.content_type)

            op.advance(OperationStage.CATALOGING)
            try:
                previous = self.catalog.find_primary(business_id)
                previous_ref = (previous.id, previous.url) if previous else None
                logo = self.catalog.insert_primary(
                    business_id,
                    stored.url,
                    alt_text=_logo_alt_text(business_name),
                )
                logo_id = logo.id
            except CatalogFailure:
                logger.warning(f"Orphaned object {stored.path} left after catalog failure")
                raise

            op.advance(OperationStage.RECONCILING)
            warnings = await self._retire(*previous_ref) if previous_ref else []

        logger.info(f"Logo {logo_id} uploaded for business {business_id}")
        return self._result(business_id, warnings)

    async def upload_gallery(
        self,
        business_id: str,
        business_name: str,
        uploads: Sequence[UploadedImage],
    ) -> BatchResult:
        """Store gallery images; each file succeeds or fails on its own.

        New rows are ordered after the current gallery in submission order.
        """
        if not uploads:
            return BatchResult(business_id=business_id, images=self.catalog.list_for_business(business_id))

        base_order = self.catalog.max_gallery_sort_order(business_id)

        outcomes = await asyncio.gather(
            *(
                self._upload_gallery_item(business_id, business_name, upload, position, base_order)
                for position, upload in enumerate(uploads, 1)
            )
        )

        failures = [outcome for outcome in outcomes if isinstance(outcome, ItemFailure)]
        succeeded = len(outcomes) - len(failures)

        if failures:
            logger.warning(
                f"Gallery upload for business {business_id}: {succeeded} stored, "
                f"{len(failures)} failed ({[f.name for f in failures]})"
            )
        else:
            logger.info(f"Gallery upload for business {business_id}: {succeeded} stored")

        return BatchResult(
            business_id=business_id,
            images=self.catalog.list_for_business(business_id),
            succeeded=succeeded,
            failures=failures,
        )

    async def _upload_gallery_item(
        self,
        business_id: str,
        business_name: str,
        upload: UploadedImage,
        position: int,
        base_order: int,
    ):
        name = upload.filename or f"file {position}"
        try:
            with OperationTracker("upload_gallery", f"{business_id}:{name}") as op:
                op.advance(OperationStage.VALIDATING)
                self._validate(upload, self.settings.gallery_max_size_mb)
                content = maybe_compress(upload.content, gallery_profile(self.settings))

                op.advance(OperationStage.STORING)
                stored = await self.gateway.put(business_id, content, upload.filename, upload.content_type)

                op.advance(OperationStage.CATALOGING)
                try:
                    return self.catalog.create_gallery_image(
                        business_id,
                        stored.url,
                        sort_order=base_order + position,
                        alt_text=_gallery_alt_text(business_name, position),
                    )
                except CatalogFailure:
                    logger.warning(f"Orphaned object {stored.path} left after catalog failure")
                    raise
        except MediaError as e:
            return ItemFailure(name=name, reason=e.message)
        except Exception as e:
            logger.error(f"Unexpected error uploading {name}: {e}", exc_info=True)
            return ItemFailure(name=name, reason=str(e) or e.__class__.__name__)

    async def promote_to_primary(self, asset_id: str) -> MediaResult:
        """Make a gallery image the logo and retire the previous logo.

        Promoting the current logo is a no-op.
        """
        with OperationTracker("promote_to_primary", asset_id) as op:
            op.advance(OperationStage.CATALOGING)
            image = self.catalog.get(asset_id)
            business_id = image.business_id

            if image.is_primary:
                return self._result(business_id)

            previous = self.catalog.find_primary(business_id)
            previous_ref = (previous.id, previous.url) if previous else None
            self.catalog.swap_primary(business_id, asset_id)

            op.advance(OperationStage.RECONCILING)
            warnings = await self._retire(*previous_ref) if previous_ref else []

        logger.info(f"Image {asset_id} promoted to logo for business {business_id}")
        return self._result(business_id, warnings)

    async def _retire(self, image_id: str, url: str) -> List[str]:
        """Remove a former logo: bytes first, then its row.

        Failures are returned as warnings; a failed byte delete leaves the
        row in the gallery pointing at intact bytes.
        """
        try:
            await self.gateway.delete(url)
        except StorageFailure as e:
            logger.warning(f"Previous logo {image_id} kept in gallery, bytes not deleted: {e}")
            return [f"Previous logo could not be removed and was kept in the gallery: {e.message}"]

        try:
            self.catalog.delete(image_id)
        except CatalogFailure as e:
            logger.warning(f"Previous logo {image_id} bytes deleted but row remains: {e}")
            return [f"Previous logo record could not be removed: {e.message}"]

        return []

    async def delete_asset(self, asset_id: str) -> MediaResult:
        """Delete one image: stored bytes first, then the catalog row.

        Raises:
            AssetNotFound: Unknown id
            StorageFailure: Bytes not deleted (catalog untouched)
            CatalogFailure: Row not deleted after its bytes were removed
        """
        with OperationTracker("delete_asset", asset_id) as op:
            op.advance(OperationStage.CATALOGING)
            image = self.catalog.get(asset_id)
            business_id, url = image.business_id, image.url
            await self._delete_protocol(op, asset_id, url)

        logger.info(f"Image {asset_id} deleted for business {business_id}")
        return self._result(business_id)

    async def _delete_protocol(self, op: OperationTracker, asset_id: str, url: str) -> None:
        op.advance(OperationStage.STORING)
        await self.gateway.delete(url)
        op.advance(OperationStage.CATALOGING)
        self.catalog.delete(asset_id)

    async def bulk_delete_assets(
        self,
        asset_ids: Iterable[str],
        business_id: Optional[str] = None,
    ) -> BatchResult:
        """Delete several gallery images; each item succeeds or fails on its own.

        The logo, unknown ids and images of another business are reported as
        failures. Without ``business_id`` the business of the first deletable
        image is used.
        """
        failures: List[ItemFailure] = []
        targets: List[Tuple[str, str]] = []

        for asset_id in dict.fromkeys(asset_ids):
            try:
                image = self._bulk_delete_target(asset_id, business_id)
            except (AssetNotFound, InvalidAssetOperation) as e:
                failures.append(ItemFailure(name=asset_id, reason=e.message))
                continue

            business_id = image.business_id
            targets.append((image.id, image.url))

        outcomes = await asyncio.gather(
            *(self._bulk_delete_item(asset_id, url) for asset_id, url in targets)
        )
        failures.extend(outcome for outcome in outcomes if outcome is not None)
        succeeded = sum(1 for outcome in outcomes if outcome is None)

        if failures:
            logger.warning(
                f"Bulk delete for business {business_id}: {succeeded} deleted, {len(failures)} failed"
            )
        else:
            logger.info(f"Bulk delete for business {business_id}: {succeeded} deleted")

        result = self._result(business_id)
        return BatchResult(
            business_id=business_id,
            images=result.images,
            succeeded=succeeded,
            failures=failures,
        )

    def _bulk_delete_target(self, asset_id: str, business_id: Optional[str]) -> BusinessImage:
        try:
            image = self.catalog.get(asset_id)
        except AssetNotFound:
            raise AssetNotFound("Image not found")

        if business_id is not None and image.business_id != business_id:
            raise AssetNotFound("Image not found for this business")
        if image.is_primary:
            raise InvalidAssetOperation("The logo cannot be bulk deleted")
        return image

    async def _bulk_delete_item(self, asset_id: str, url: str) -> Optional[ItemFailure]:
        try:
            with OperationTracker("bulk_delete", asset_id) as op:
                await self._delete_protocol(op, asset_id, url)
        except MediaError as e:
            return ItemFailure(name=asset_id, reason=e.message)
        except Exception as e:
            logger.error(f"Unexpected error deleting {asset_id}: {e}", exc_info=True)
            return ItemFailure(name=asset_id, reason=str(e) or e.__class__.__name__)
        return None

    async def update_alt_text(self, asset_id: str, alt_text: Optional[str]) -> MediaResult:
        """Catalog-only description edit. Blank text clears the description."""
        text = (alt_text or "").strip() or None
        with OperationTracker("update_alt_text", asset_id) as op:
            op.advance(OperationStage.CATALOGING)
            image = self.catalog.update_alt_text(asset_id, text)
            business_id = image.business_id

        return self._result(business_id)


def _logo_alt_text(business_name: str) -> Optional[str]:
    name = (business_name or "").strip()
    return f"{name} logo" if name else None


def _gallery_alt_text(business_name: str, position: int) -> Optional[str]:
    name = (business_name or "").strip()
    return f"{name} - Image {position}" if name else None
