"""Business image model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from bizmedia.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class BusinessImage(Base):
    """Catalog row for one stored image (logo or gallery) of a business."""

    __tablename__ = "business_images"

    id = Column(String(36), primary_key=True, default=_new_id)
    business_id = Column(String(64), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    alt_text = Column(Text, nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    primary_since = Column(DateTime, nullable=True)  # Set when the row becomes the logo
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # One logo per business
        Index(
            "uq_business_images_primary",
            "business_id",
            unique=True,
            postgresql_where=is_primary,
            sqlite_where=is_primary,
        ),
        Index("ix_business_images_business_sort", "business_id", "sort_order"),
    )

    def __repr__(self):
        return (
            f"<BusinessImage(id={self.id}, business_id={self.business_id}, "
            f"is_primary={self.is_primary}, sort_order={self.sort_order})>"
        )
