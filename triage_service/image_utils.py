"""
Image preparation before upload to the image AI service.

Photos are scaled so the longest side equals max_dimension, flattened to RGB
and re-encoded as JPEG to keep uploads small.
"""
import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 800
DEFAULT_JPEG_QUALITY = 80


def compress_image(
    data: bytes,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """Downscale and re-encode an image as JPEG.

    Args:
        data: Raw image bytes (JPEG, PNG or WebP)
        max_dimension: Longest side after scaling, in pixels
        quality: JPEG quality, 1-95

    Returns:
        JPEG bytes

    Raises:
        InvalidInput: if the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        original_size = image.size
        image = ImageOps.exif_transpose(image)
        if image.mode != "RGB":
            image = image.convert("RGB")

        # Scale both up and down so the longest side equals max_dimension
        ratio = min(max_dimension / image.width, max_dimension / image.height)
        if ratio != 1:
            new_size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
            image = image.resize(new_size, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidInput([f"Unreadable image: {e}"]) from e
    compressed = buffer.getvalue()

    logger.info(
        f"Image compressed: {original_size[0]}x{original_size[1]} -> "
        f"{image.size[0]}x{image.size[1]}, {len(data)} -> {len(compressed)} bytes"
    )
    return compressed
