"""Best-effort image compression before upload."""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps

from bizmedia.config import Settings
from bizmedia.services.validator import BYTES_PER_MB

logger = logging.getLogger(__name__)

# Formats we re-encode; anything else is stored as uploaded
ENCODABLE_FORMATS = {"JPEG", "PNG", "WEBP", "GIF"}


@dataclass(frozen=True)
class CompressionProfile:
    """When and how to compress one class of image (logo or gallery)."""

    threshold_bytes: int
    max_dimension: int
    quality: float


def logo_profile(settings: Settings) -> CompressionProfile:
    return CompressionProfile(
        threshold_bytes=int(settings.logo_compress_threshold_mb * BYTES_PER_MB),
        max_dimension=settings.logo_max_dimension,
        quality=settings.logo_quality,
    )


def gallery_profile(settings: Settings) -> CompressionProfile:
    return CompressionProfile(
        threshold_bytes=int(settings.gallery_compress_threshold_mb * BYTES_PER_MB),
        max_dimension=settings.gallery_max_dimension,
        quality=settings.gallery_quality,
    )


def _encoder_quality(quality: float) -> int:
    """Map a 0-1 quality to the 1-95 scale Pillow encoders use."""
    return max(1, min(95, int(round(quality * 100))))


def compress_image(content: bytes, max_dimension: int, quality: float) -> bytes:
    """Re-encode an image so its longer edge fits ``max_dimension``.

    Aspect ratio is preserved and images are never upscaled. The source
    format is kept. On any decoding or encoding error, or when the result
    is not smaller than the input, the original bytes are returned.

    Args:
        content: Raw image bytes
        max_dimension: Maximum length of the longer edge in pixels
        quality: Encoder quality between 0 and 1

    Returns:
        Compressed bytes, or ``content`` unchanged
    """
    try:
        with Image.open(io.BytesIO(content)) as source:
            image_format = (source.format or "").upper()
            if image_format not in ENCODABLE_FORMATS:
                logger.debug(f"Skipping compression for format {image_format or 'unknown'}")
                return content

            if getattr(source, "is_animated", False):
                logger.debug("Skipping compression for animated image")
                return content

            # Re-encoding drops EXIF, so bake the orientation into the pixels
            img = ImageOps.exif_transpose(source)
            img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

            save_kwargs = {"optimize": True}
            if image_format == "JPEG":
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                save_kwargs["quality"] = _encoder_quality(quality)
            elif image_format == "WEBP":
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA")
                save_kwargs = {"quality": _encoder_quality(quality), "method": 6}

            buffer = io.BytesIO()
            img.save(buffer, format=image_format, **save_kwargs)

    except Exception as e:
        logger.warning(f"Image compression failed, keeping original bytes: {e}")
        return content

    compressed = buffer.getvalue()
    if len(compressed) >= len(content):
        logger.debug(
            f"Compression did not reduce size ({len(content)} -> {len(compressed)} bytes), "
            f"keeping original"
        )
        return content

    logger.debug(f"Compressed image {len(content)} -> {len(compressed)} bytes")
    return compressed


def maybe_compress(content: bytes, profile: CompressionProfile) -> bytes:
    """Compress only when ``content`` is above the profile's threshold."""
    if len(content) <= profile.threshold_bytes:
        return content
    return compress_image(content, profile.max_dimension, profile.quality)
