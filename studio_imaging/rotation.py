"""
Manual rotation: rotates the actual pixel data in quarter turns
"""

import logging
from typing import Optional

from PIL import Image

from .models import EncodedImage, PNG
from .surface import SurfaceBackend, get_backend, open_surface

logger = logging.getLogger(__name__)

# Positive degrees turn clockwise, as on a canvas
QUARTER_TURNS = {
    90: Image.Transpose.ROTATE_270,
    -90: Image.Transpose.ROTATE_90,
}


def rotate_image(data: bytes, degrees: int, backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """
    Rotate an image a quarter turn and re-encode it as PNG.

    Args:
        data: Encoded input image
        degrees: 90 (clockwise) or -90 (counter-clockwise)

    Returns:
        EncodedImage: PNG with width and height swapped
    """
    if degrees not in QUARTER_TURNS:
        raise ValueError(f"Rotation must be 90 or -90 degrees, got {degrees}")

    backend = get_backend(backend)
    with open_surface(data, backend) as source:
        with source.convert('RGBA') as rgba:
            with rgba.transpose(QUARTER_TURNS[degrees]) as rotated:
                encoded = backend.encode(rotated, PNG)
                width, height = rotated.size

    logger.info(f"🔄 Rotated image {degrees}° -> {width}x{height}")
    return EncodedImage(data=encoded, media_type=PNG, width=width, height=height)


def rotate_clockwise(data: bytes, backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    return rotate_image(data, 90, backend)


def rotate_counter_clockwise(data: bytes, backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    return rotate_image(data, -90, backend)
