"""Business logic services."""

from bizmedia.services.compressor import compress_image, maybe_compress
from bizmedia.services.validator import validate_image_file

__all__ = ["compress_image", "maybe_compress", "validate_image_file"]
