"""SQLAlchemy models."""

from bizmedia.database import Base
from bizmedia.models.business_image import BusinessImage

__all__ = [
    "Base",
    "BusinessImage",
]
