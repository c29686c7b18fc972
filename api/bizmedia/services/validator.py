"""Upload validation on declared file metadata."""

from dataclasses import dataclass
from typing import Optional

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class ValidationResult:
    """Accept/reject decision for one file."""

    valid: bool
    error: Optional[str] = None


def validate_image_file(
    content_type: Optional[str],
    size_bytes: int,
    max_size_mb: float,
) -> ValidationResult:
    """Validate an image upload from its declared type and size.

    Only metadata is inspected; a mislabeled file passes.

    Args:
        content_type: Declared MIME type
        size_bytes: File size in bytes
        max_size_mb: Size ceiling in MB (logo and gallery use different ceilings)

    Returns:
        ValidationResult with a user-displayable error when rejected

    Examples:
        >>> validate_image_file("image/png", 200_000, 5)
        ValidationResult(valid=True, error=None)
        >>> validate_image_file("application/pdf", 200_000, 5).error
        'Unsupported file type. Use JPG, PNG, WebP or GIF.'
    """
    if size_bytes <= 0:
        return ValidationResult(valid=False, error="File is empty.")

    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if normalized not in ALLOWED_CONTENT_TYPES:
        return ValidationResult(
            valid=False,
            error="Unsupported file type. Use JPG, PNG, WebP or GIF.",
        )

    if size_bytes > max_size_mb * BYTES_PER_MB:
        return ValidationResult(
            valid=False,
            error=f"File too large. Maximum {max_size_mb:g}MB allowed.",
        )

    return ValidationResult(valid=True)
