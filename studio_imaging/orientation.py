"""
Orientation Corrector
Bakes the EXIF orientation into the pixel data so the image renders right
side up without any metadata-based rotation.

Fail-open: any problem reading, decoding or re-encoding returns the original
buffer untouched.
"""

import logging
from typing import Optional

from PIL import Image

from .exif import NO_ORIENTATION, read_orientation
from .models import DimensionPair, RawImageBuffer
from .surface import SurfaceBackend, get_backend, open_surface, output_media_type

logger = logging.getLogger(__name__)

# orientation -> (effect, equivalent pixel-exact transpose)
ORIENTATION_TRANSFORMS = {
    2: ('horizontal flip', Image.Transpose.FLIP_LEFT_RIGHT),
    3: ('180° rotation', Image.Transpose.ROTATE_180),
    4: ('vertical flip', Image.Transpose.FLIP_TOP_BOTTOM),
    5: ('vertical flip + 90° CW', Image.Transpose.TRANSPOSE),
    6: ('90° CW', Image.Transpose.ROTATE_270),
    7: ('horizontal flip + 90° CW', Image.Transpose.TRANSVERSE),
    8: ('90° CCW', Image.Transpose.ROTATE_90),
}

SWAPPED_ORIENTATIONS = {5, 6, 7, 8}


def transform_matrix(orientation: int, width: int, height: int) -> tuple:
    """
    Affine parameters (a, b, c, d, e, f) for an orientation, applied as
    x' = a*x + c*y + e and y' = b*x + d*y + f with the origin at top-left.

    width/height are the dimensions of the image before any swap.
    """
    w, h = width, height
    matrices = {
        2: (-1, 0, 0, 1, w, 0),
        3: (-1, 0, 0, -1, w, h),
        4: (1, 0, 0, -1, 0, h),
        5: (0, 1, 1, 0, 0, 0),
        6: (0, 1, -1, 0, h, 0),
        7: (0, -1, -1, 0, h, w),
        8: (0, -1, 1, 0, 0, w),
    }
    return matrices.get(orientation, (1, 0, 0, 1, 0, 0))


def map_point(orientation: int, x: float, y: float, width: int, height: int) -> tuple:
    """Map a source coordinate to its position on the corrected surface"""
    a, b, c, d, e, f = transform_matrix(orientation, width, height)
    return a * x + c * y + e, b * x + d * y + f


def oriented_dimensions(orientation: int, dimensions: DimensionPair) -> DimensionPair:
    """Dimensions of the corrected surface; swapped for the 90°/270° cases"""
    if orientation in SWAPPED_ORIENTATIONS:
        return dimensions.swapped()
    return dimensions


def apply_orientation(surface: Image.Image, orientation: int) -> Image.Image:
    """
    Apply the orientation transform to a decoded surface.

    Returns a new surface; the input is left untouched.
    """
    transform = ORIENTATION_TRANSFORMS.get(orientation)
    if transform is None:
        return surface.copy()
    return surface.transpose(transform[1])


def correct_orientation(image: RawImageBuffer, backend: Optional[SurfaceBackend] = None) -> RawImageBuffer:
    """
    Correct image orientation by reading EXIF data and applying the matching transform.

    Args:
        image: Encoded image with its declared media type and file name
        backend: Surface backend to decode/encode with (default: Pillow)

    Returns:
        RawImageBuffer: The corrected image, or the input itself when no
        correction is needed or anything goes wrong
    """
    try:
        logger.info(f"[ORIENTATION] Processing: {image.filename} ({image.media_type})")

        orientation = read_orientation(image.data)
        logger.info(f"[ORIENTATION] EXIF value: {orientation}")

        if orientation == NO_ORIENTATION:
            logger.info("[ORIENTATION] No correction needed")
            return image

        backend = get_backend(backend)
        media_type = output_media_type(image.media_type, backend)

        with open_surface(image.data, backend) as source:
            source_size = DimensionPair(*source.size)
            with apply_orientation(source, orientation) as corrected:
                expected = oriented_dimensions(orientation, source_size)
                if corrected.size != expected.as_tuple():
                    raise RuntimeError(f"Corrected surface is {corrected.size}, expected {expected.as_tuple()}")
                data = backend.encode(corrected, media_type, quality=1.0)

        logger.info(
            f"[ORIENTATION] ✓ Corrected from orientation {orientation} to 1 "
            f"({source_size.width}x{source_size.height} -> {expected.width}x{expected.height}, "
            f"{len(data) / 1024 / 1024:.2f}MB)"
        )
        return RawImageBuffer(data=data, media_type=media_type, filename=image.filename)

    except Exception as e:
        logger.warning(f"[ORIENTATION] Error correcting orientation, keeping original: {e}")
        return image
