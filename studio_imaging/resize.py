"""
Resize/Compress Engine
Scales an image down to a bounding dimension and searches the encoder quality
for the largest result that fits under a byte ceiling.
"""

import logging
from typing import Optional

from PIL import Image

from .models import DimensionPair, EncodedImage, JPEG, PNG, WEBP, RawImageBuffer, filename_for_media_type
from .surface import SurfaceBackend, allocate_surface, get_backend, open_surface

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 2048
DEFAULT_TARGET_BYTES = 5 * 1024 * 1024

INITIAL_QUALITY = 0.98
# 0.96 down to 0.10 in steps of 0.02, built from integers to avoid float drift
QUALITY_LADDER = tuple(step / 100 for step in range(96, 9, -2))

UPLOAD_MAX_DIMENSION = 4096
UPLOAD_MAX_SIZE_MB = 8

LOSSY_MEDIA_TYPES = {JPEG, WEBP}


def scaled_dimensions(width: int, height: int, max_dimension: int) -> DimensionPair:
    """
    Uniformly scale (width, height) so the larger side is at most max_dimension.

    Smaller images keep their native size; fractional results are truncated.
    """
    if width > max_dimension or height > max_dimension:
        if width > height:
            height = height * max_dimension / width
            width = max_dimension
        else:
            width = width * max_dimension / height
            height = max_dimension

    return DimensionPair(max(1, int(width)), max(1, int(height)))


def _render_scaled(source: Image.Image, canvas: Image.Image) -> None:
    """Draw the source onto the canvas, scaled to fill it"""
    rgba = source.convert('RGBA')
    try:
        if rgba.size == canvas.size:
            canvas.paste(rgba, (0, 0))
        else:
            with rgba.resize(canvas.size, Image.Resampling.LANCZOS) as resized:
                canvas.paste(resized, (0, 0))
    finally:
        rgba.close()


def resize_and_compress(data: bytes, max_dimension: int = DEFAULT_MAX_DIMENSION,
                        target_bytes: int = DEFAULT_TARGET_BYTES, media_type: str = JPEG,
                        backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """
    Downscale an image and compress it under a size ceiling.

    Args:
        data: Encoded input image
        max_dimension: Largest allowed width or height in pixels
        target_bytes: Size ceiling for the encoded output
        media_type: Lossy output type (JPEG or WebP)
        backend: Surface backend (default: Pillow)

    Returns:
        EncodedImage: The first encode at or under target_bytes, trying 0.98
        and then 0.96 down to 0.10; the 0.10 encode if none fits

    Raises:
        DecodeError, SurfaceUnavailableError, EncodeError: on failure
        ValueError: on invalid arguments
    """
    if max_dimension < 1:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")
    if target_bytes < 1:
        raise ValueError(f"target_bytes must be positive, got {target_bytes}")
    if media_type not in LOSSY_MEDIA_TYPES:
        raise ValueError(f"Output type must be one of {sorted(LOSSY_MEDIA_TYPES)}, got {media_type}")

    backend = get_backend(backend)

    with open_surface(data, backend) as source:
        size = scaled_dimensions(source.width, source.height, max_dimension)
        if size.as_tuple() != source.size:
            logger.info(f"📐 Resizing image from {source.size} to {size.as_tuple()}")

        with allocate_surface(size.width, size.height, backend) as canvas:
            _render_scaled(source, canvas)

            result = None
            for quality in (INITIAL_QUALITY,) + QUALITY_LADDER:
                encoded = backend.encode(canvas, media_type, quality)
                result = EncodedImage(data=encoded, media_type=media_type,
                                      width=size.width, height=size.height, quality=quality)
                if result.size <= target_bytes:
                    logger.info(
                        f"🗜️ Optimal quality found: {round(quality * 100)}% -> "
                        f"{result.size / (1024 * 1024):.2f}MB"
                    )
                    return result

    logger.warning(
        f"⚠️ Could not reach {target_bytes} bytes, returning lowest quality result "
        f"({result.size / (1024 * 1024):.2f}MB)"
    )
    return result


def create_preview(data: bytes, max_width: int = 400, max_height: int = 400,
                   backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """Create a display-size PNG preview, fitting width first and then height"""
    backend = get_backend(backend)

    with open_surface(data, backend) as source:
        width, height = source.size
        aspect_ratio = width / height

        if width > max_width:
            width = max_width
            height = width / aspect_ratio
        if height > max_height:
            height = max_height
            width = height * aspect_ratio

        size = DimensionPair(max(1, int(width)), max(1, int(height)))
        with allocate_surface(size.width, size.height, backend) as canvas:
            _render_scaled(source, canvas)
            encoded = backend.encode(canvas, PNG)

    return EncodedImage(data=encoded, media_type=PNG, width=size.width, height=size.height)


def get_image_dimensions(data: bytes, backend: Optional[SurfaceBackend] = None) -> DimensionPair:
    """Natural width and height of an encoded image"""
    with open_surface(data, backend) as surface:
        return DimensionPair(*surface.size)


def compress_for_upload(image: RawImageBuffer, max_size_mb: float = UPLOAD_MAX_SIZE_MB,
                        backend: Optional[SurfaceBackend] = None) -> RawImageBuffer:
    """
    Keep an image under a CDN upload limit.

    Returns the input unchanged when it already fits, or when compression
    fails for any reason.
    """
    limit = int(max_size_mb * 1024 * 1024)
    original_mb = image.size / 1024 / 1024
    logger.info(f"🗜️ Compressing image for upload: {image.filename} ({original_mb:.2f}MB)")

    if image.size <= limit:
        logger.info("✅ Image already under size limit")
        return image

    try:
        result = resize_and_compress(image.data, max_dimension=UPLOAD_MAX_DIMENSION,
                                     target_bytes=limit, backend=backend)
    except Exception as e:
        logger.warning(f"⚠️ Error compressing image, keeping original: {e}")
        return image

    compressed_mb = result.size / 1024 / 1024
    logger.info(
        f"✅ Compressed to: {compressed_mb:.2f}MB "
        f"({(1 - compressed_mb / original_mb) * 100:.1f}% reduction)"
    )
    return result.to_buffer(filename_for_media_type(image.filename, result.media_type))
