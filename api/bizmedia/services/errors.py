"""Failure kinds reported by the business media manager."""

from typing import Optional


class MediaError(Exception):
    """Base exception for media manager errors.

    ``stage`` is the operation stage the error surfaced in
    (validating, storing, cataloging, reconciling) once known.
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class ValidationRejected(MediaError):
    """File rejected on declared type or size. Never touches the network."""

    def __init__(self, reason: str, filename: Optional[str] = None, stage: Optional[str] = "validating"):
        super().__init__(reason, stage=stage)
        self.reason = reason
        self.filename = filename


class StorageFailure(MediaError):
    """Object store put/delete/list failed."""
    pass


class CatalogFailure(MediaError):
    """Metadata catalog read or write failed."""
    pass


class AssetNotFound(MediaError):
    """No catalog row with the given id."""
    pass


class InvalidAssetOperation(MediaError):
    """Operation not allowed for this asset (e.g. bulk deleting the logo)."""
    pass


class PartialBatchFailure(MediaError):
    """Some items of a multi-item operation failed, others succeeded."""

    def __init__(self, result):
        failed = len(result.failures)
        super().__init__(
            f"{failed} of {result.succeeded + failed} items failed"
        )
        self.result = result
