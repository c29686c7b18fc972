"""Business image schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BusinessImageResponse(BaseModel):
    """Schema for one catalog row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    url: str = Field(..., description="Public URL of the stored image")
    alt_text: Optional[str] = None
    is_primary: bool = Field(..., description="True for the business logo")
    sort_order: int = Field(..., description="Gallery position among non-primary images")
    created_at: datetime


class BusinessImageListResponse(BaseModel):
    """Ordered image list of a business: logo first, then the gallery."""

    business_id: Optional[str] = None
    items: List[BusinessImageResponse] = Field(..., description="Ordered images")
    total: int = Field(..., description="Total images")
    has_logo: bool = Field(..., description="Whether the business has a logo")
    gallery_count: int = Field(..., description="Images in the gallery")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal issues")

    @classmethod
    def from_images(
        cls,
        business_id: Optional[str],
        images: List[Any],
        warnings: Optional[List[str]] = None,
        **extra: Any,
    ) -> "BusinessImageListResponse":
        items = [BusinessImageResponse.model_validate(image) for image in images]
        has_logo = any(item.is_primary for item in items)
        return cls(
            business_id=business_id,
            items=items,
            total=len(items),
            has_logo=has_logo,
            gallery_count=sum(1 for item in items if not item.is_primary),
            warnings=warnings or [],
            **extra,
        )


class ItemFailureResponse(BaseModel):
    """One failed item of a batch operation."""

    name: str = Field(..., description="Filename or image id")
    reason: str = Field(..., description="Human-readable reason")


class GalleryUploadResponse(BusinessImageListResponse):
    """Outcome of a gallery upload."""

    uploaded: int = Field(..., description="Files stored successfully")
    failures: List[ItemFailureResponse] = Field(default_factory=list)


class BulkDeleteRequest(BaseModel):
    """Request to delete several gallery images."""

    image_ids: List[str] = Field(..., min_length=1, description="Gallery image ids")


class BulkDeleteResponse(BusinessImageListResponse):
    """Outcome of a bulk delete."""

    deleted: int = Field(..., description="Images deleted")
    failures: List[ItemFailureResponse] = Field(default_factory=list)


class AltTextUpdate(BaseModel):
    """Schema for updating an image description."""

    alt_text: Optional[str] = Field(None, max_length=500, description="Blank clears it")


class SweepResponse(BaseModel):
    """Response for an orphan sweep request."""

    task_id: str = Field(..., description="Celery task ID")
    status: str = Field(..., description="Task status")
    message: str = Field(..., description="Human-readable message")


class SweepStatus(BaseModel):
    """Status of an orphan sweep task."""

    task_id: str
    status: str  # pending, started, success, failure
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
