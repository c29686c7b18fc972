"""Business image endpoints."""

import logging
from typing import List, NoReturn

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from bizmedia.api.deps import get_media_manager
from bizmedia.schemas.business_image import (
    AltTextUpdate,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BusinessImageListResponse,
    GalleryUploadResponse,
    ItemFailureResponse,
    SweepResponse,
    SweepStatus,
)
from bizmedia.services.errors import (
    AssetNotFound,
    CatalogFailure,
    InvalidAssetOperation,
    MediaError,
    StorageFailure,
    ValidationRejected,
)
from bizmedia.services.media_manager import BatchResult, BusinessMediaManager, UploadedImage
from bizmedia.services.validator import BYTES_PER_MB

router = APIRouter()
logger = logging.getLogger(__name__)


def _raise_http(error: MediaError) -> NoReturn:
    """Translate a media error into an HTTP error."""
    if isinstance(error, ValidationRejected):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, AssetNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, InvalidAssetOperation):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, StorageFailure):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(error, CatalogFailure):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR

    raise HTTPException(
        status_code=code,
        detail={"message": error.message, "stage": error.stage},
    )


def _batch_status(result: BatchResult, success_code: int) -> int:
    if not result.failures:
        return success_code
    if result.succeeded == 0:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_207_MULTI_STATUS


def _failures(result: BatchResult) -> List[ItemFailureResponse]:
    return [ItemFailureResponse(name=f.name, reason=f.reason) for f in result.failures]


async def _to_upload(file: UploadFile, max_size_mb: float) -> UploadedImage:
    filename = file.filename or "upload"
    # Oversized bodies are left unread; validation rejects them on declared size
    if file.size is not None and file.size > max_size_mb * BYTES_PER_MB:
        return UploadedImage(
            filename=filename,
            content_type=file.content_type,
            content=b"",
            declared_size=file.size,
        )

    content = await file.read()
    return UploadedImage(
        filename=filename,
        content_type=file.content_type,
        content=content,
    )


@router.get("/businesses/{business_id}/images", response_model=BusinessImageListResponse)
def list_business_images(
    business_id: str,
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """List images of a business: the logo first, then the gallery in order."""
    try:
        result = manager.list_images(business_id)
    except MediaError as e:
        _raise_http(e)

    return BusinessImageListResponse.from_images(business_id, result.images)


@router.post(
    "/businesses/{business_id}/images/logo",
    response_model=BusinessImageListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_logo(
    business_id: str,
    file: UploadFile = File(..., description="Logo image"),
    business_name: str = Form("", description="Business display name used for the description"),
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Upload a new logo.

    - Validates type and size (5MB by default)
    - Compresses images above 1MB to at most 800px
    - Replaces the previous logo, whose stored bytes are removed
    """
    upload = await _to_upload(file, manager.settings.logo_max_size_mb)

    try:
        result = await manager.upload_logo(business_id, business_name, upload)
    except MediaError as e:
        _raise_http(e)

    return BusinessImageListResponse.from_images(business_id, result.images, result.warnings)


@router.post(
    "/businesses/{business_id}/images/gallery",
    response_model=GalleryUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_gallery(
    business_id: str,
    response: Response,
    files: List[UploadFile] = File(..., description="Gallery images"),
    business_name: str = Form("", description="Business display name used for descriptions"),
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Upload gallery images.

    Each file is validated (10MB by default), compressed above 2MB to at most
    1200px and stored on its own. Responds 207 when only some files were stored.
    """
    uploads = [await _to_upload(file, manager.settings.gallery_max_size_mb) for file in files]

    try:
        result = await manager.upload_gallery(business_id, business_name, uploads)
    except MediaError as e:
        _raise_http(e)

    response.status_code = _batch_status(result, status.HTTP_201_CREATED)
    return GalleryUploadResponse.from_images(
        business_id,
        result.images,
        result.warnings,
        uploaded=result.succeeded,
        failures=_failures(result),
    )


@router.post("/businesses/{business_id}/images/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_images(
    business_id: str,
    request: BulkDeleteRequest,
    response: Response,
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Delete several gallery images. Responds 207 when only some were deleted."""
    try:
        result = await manager.bulk_delete_assets(request.image_ids, business_id=business_id)
    except MediaError as e:
        _raise_http(e)

    response.status_code = _batch_status(result, status.HTTP_200_OK)
    return BulkDeleteResponse.from_images(
        business_id,
        result.images,
        result.warnings,
        deleted=result.succeeded,
        failures=_failures(result),
    )


@router.post("/images/{image_id}/promote", response_model=BusinessImageListResponse)
async def promote_image(
    image_id: str,
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Make a gallery image the logo. The previous logo is removed."""
    try:
        result = await manager.promote_to_primary(image_id)
    except MediaError as e:
        _raise_http(e)

    return BusinessImageListResponse.from_images(result.business_id, result.images, result.warnings)


@router.patch("/images/{image_id}", response_model=BusinessImageListResponse)
async def update_image(
    image_id: str,
    request: AltTextUpdate,
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Update an image description."""
    try:
        result = await manager.update_alt_text(image_id, request.alt_text)
    except MediaError as e:
        _raise_http(e)

    return BusinessImageListResponse.from_images(result.business_id, result.images)


@router.delete("/images/{image_id}", response_model=BusinessImageListResponse)
async def delete_image(
    image_id: str,
    manager: BusinessMediaManager = Depends(get_media_manager),
):
    """Delete an image (logo or gallery) and its stored bytes."""
    try:
        result = await manager.delete_asset(image_id)
    except MediaError as e:
        _raise_http(e)

    return BusinessImageListResponse.from_images(result.business_id, result.images)


@router.post(
    "/businesses/{business_id}/images/sweep",
    response_model=SweepResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def sweep_orphans(business_id: str):
    """Trigger an orphan sweep for a business.

    Dispatches a background task that deletes stored images no catalog
    row references. Returns task ID to track progress.
    """
    from bizmedia.celery_app import celery_app

    try:
        task = celery_app.send_task(
            "bizmedia.tasks.sweep.sweep_orphaned_images",
            args=[business_id],
        )
    except Exception as e:
        logger.error(f"Failed to start orphan sweep: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to start orphan sweep: {str(e)}",
        )

    return SweepResponse(
        task_id=task.id,
        status="accepted",
        message=f"Orphan sweep started for business {business_id}",
    )


@router.get("/images/sweep/{task_id}", response_model=SweepStatus)
def get_sweep_status(task_id: str):
    """Get status of an orphan sweep task."""
    from bizmedia.celery_app import celery_app

    try:
        result = celery_app.AsyncResult(task_id)

        response = SweepStatus(task_id=task_id, status=result.state)

        if result.ready():
            if result.successful():
                response.result = result.result
            else:
                response.error = str(result.info)

        return response

    except Exception as e:
        logger.error(f"Failed to get task status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get task status: {str(e)}",
        )
