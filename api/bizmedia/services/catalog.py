"""Business image catalog (metadata rows, scoped by business)."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizmedia.models.business_image import BusinessImage
from bizmedia.services.errors import AssetNotFound, CatalogFailure

logger = logging.getLogger(__name__)


class AssetCatalog:
    """Row-level access to ``business_images``.

    Flag and ordering changes are targeted column updates. Swapping the
    primary image runs in a single transaction so a committed state never
    holds two primaries for one business.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError) -> CatalogFailure:
        self.db.rollback()
        logger.error(f"Catalog {action} failed: {error}")
        return CatalogFailure(f"Failed to {action}: {error}")

    def get(self, asset_id: str) -> BusinessImage:
        """Get image row by id.

        Raises:
            AssetNotFound: If no row has this id
        """
        try:
            image = self.db.query(BusinessImage).filter(BusinessImage.id == asset_id).first()
        except SQLAlchemyError as e:
            raise self._fail("read image", e)

        if not image:
            raise AssetNotFound(f"Image {asset_id} not found")
        return image

    def find_primary(self, business_id: str) -> Optional[BusinessImage]:
        """Current logo of a business, if any.

        If several rows are flagged, the most recently flagged one wins.
        """
        try:
            return (
                self.db.query(BusinessImage)
                .filter(
                    BusinessImage.business_id == business_id,
                    BusinessImage.is_primary.is_(True),
                )
                .order_by(
                    BusinessImage.primary_since.desc().nullslast(),
                    BusinessImage.created_at.desc(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            raise self._fail("read primary image", e)

    def list_gallery(self, business_id: str) -> List[BusinessImage]:
        """Non-primary images ordered by sort order."""
        try:
            return (
                self.db.query(BusinessImage)
                .filter(
                    BusinessImage.business_id == business_id,
                    BusinessImage.is_primary.is_(False),
                )
                .order_by(BusinessImage.sort_order.asc(), BusinessImage.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("list gallery", e)

    def list_for_business(self, business_id: str) -> List[BusinessImage]:
        """Ordered image list: the logo first, then the gallery."""
        primary = self.find_primary(business_id)
        gallery = self.list_gallery(business_id)

        if primary is None:
            return gallery

        # Extra flagged rows (never expected) are shown after the logo
        try:
            extra_flagged = (
                self.db.query(BusinessImage)
                .filter(
                    BusinessImage.business_id == business_id,
                    BusinessImage.is_primary.is_(True),
                    BusinessImage.id != primary.id,
                )
                .order_by(BusinessImage.sort_order.asc(), BusinessImage.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("list images", e)

        return [primary, *extra_flagged, *gallery]

    def max_gallery_sort_order(self, business_id: str) -> int:
        try:
            value = (
                self.db.query(func.max(BusinessImage.sort_order))
                .filter(
                    BusinessImage.business_id == business_id,
                    BusinessImage.is_primary.is_(False),
                )
                .scalar()
            )
        except SQLAlchemyError as e:
            raise self._fail("read gallery order", e)
        return value or 0

    def create_gallery_image(
        self,
        business_id: str,
        url: str,
        sort_order: int,
        alt_text: Optional[str] = None,
    ) -> BusinessImage:
        """Insert a non-primary image row."""
        image = BusinessImage(
            business_id=business_id,
            url=url,
            alt_text=alt_text,
            is_primary=False,
            sort_order=sort_order,
        )
        try:
            self.db.add(image)
            self.db.commit()
            self.db.refresh(image)
        except SQLAlchemyError as e:
            raise self._fail("create image", e)
        return image

    def insert_primary(
        self,
        business_id: str,
        url: str,
        alt_text: Optional[str] = None,
    ) -> BusinessImage:
        """Insert a new logo row, clearing any other primary flag in the same transaction."""
        now = datetime.utcnow()
        image = BusinessImage(
            business_id=business_id,
            url=url,
            alt_text=alt_text,
            is_primary=True,
            sort_order=0,
            primary_since=now,
        )
        try:
            self._clear_primary(business_id)
            self.db.add(image)
            self.db.commit()
            self.db.refresh(image)
        except SQLAlchemyError as e:
            raise self._fail("create logo", e)
        return image

    def swap_primary(self, business_id: str, asset_id: str) -> BusinessImage:
        """Make an existing row the logo in one transaction.

        Every other primary row of the business is unflagged; the promoted
        row gets sort order 0.
        """
        try:
            self._clear_primary(business_id, keep_id=asset_id)
            updated = (
                self.db.query(BusinessImage)
                .filter(
                    BusinessImage.id == asset_id,
                    BusinessImage.business_id == business_id,
                )
                .update(
                    {
                        BusinessImage.is_primary: True,
                        BusinessImage.sort_order: 0,
                        BusinessImage.primary_since: datetime.utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                self.db.rollback()
                raise AssetNotFound(f"Image {asset_id} not found for business {business_id}")
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("set logo", e)
        return self.get(asset_id)

    def _clear_primary(self, business_id: str, keep_id: Optional[str] = None) -> int:
        query = self.db.query(BusinessImage).filter(
            BusinessImage.business_id == business_id,
            BusinessImage.is_primary.is_(True),
        )
        if keep_id is not None:
            query = query.filter(BusinessImage.id != keep_id)
        return query.update(
            {BusinessImage.is_primary: False},
            synchronize_session=False,
        )

    def update_alt_text(self, asset_id: str, alt_text: Optional[str]) -> BusinessImage:
        return self._update_fields(asset_id, {BusinessImage.alt_text: alt_text}, "update description")

    def update_sort_order(self, asset_id: str, sort_order: int) -> BusinessImage:
        return self._update_fields(asset_id, {BusinessImage.sort_order: sort_order}, "update order")

    def _update_fields(self, asset_id: str, values: dict, action: str) -> BusinessImage:
        try:
            updated = (
                self.db.query(BusinessImage)
                .filter(BusinessImage.id == asset_id)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                self.db.rollback()
                raise AssetNotFound(f"Image {asset_id} not found")
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(action, e)
        return self.get(asset_id)

    def delete(self, asset_id: str) -> bool:
        """Delete image row by id.

        Returns:
            True if deleted, False if not found
        """
        try:
            deleted = (
                self.db.query(BusinessImage)
                .filter(BusinessImage.id == asset_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete image", e)
        return deleted > 0

    def referenced_urls(self, business_id: str) -> List[str]:
        """URLs of every catalog row of a business."""
        try:
            rows = (
                self.db.query(BusinessImage.url)
                .filter(BusinessImage.business_id == business_id)
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("list image references", e)
        return [row[0] for row in rows]
