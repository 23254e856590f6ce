"""
Transparency Utilities
Detects transparent images and builds cut-outs from black/white masks.
"""

import logging
from typing import Optional

import numpy as np
from PIL import Image

from .models import EncodedImage, PNG
from .surface import SurfaceBackend, get_backend, open_surface

logger = logging.getLogger(__name__)

DETECTION_SAMPLE_SIZE = 200
PERCENTAGE_SAMPLE_SIZE = 100
BLACK_THRESHOLD = 50


def _is_png(media_type: str) -> bool:
    return 'png' in (media_type or '').lower()


def detect_transparency(data: bytes, media_type: str, backend: Optional[SurfaceBackend] = None) -> bool:
    """
    Detect whether an image has meaningful transparency.

    Only PNG files are considered. The image is sampled at up to 200x200 and
    the alpha of every 4th pixel is checked.

    Returns:
        bool: True if the image has transparency; False on any error
    """
    if not _is_png(media_type):
        return False

    try:
        with open_surface(data, backend) as surface:
            scale = min(DETECTION_SAMPLE_SIZE / surface.width, DETECTION_SAMPLE_SIZE / surface.height)
            size = (max(1, int(surface.width * scale)), max(1, int(surface.height * scale)))
            with surface.convert('RGBA') as rgba, rgba.resize(size, Image.Resampling.BILINEAR) as sample:
                alpha = np.asarray(sample.getchannel('A')).ravel()[::4]
    except Exception as e:
        logger.warning(f"⚠️ Error detecting transparency: {e}")
        return False

    transparent = 0
    for sampled, value in enumerate(alpha, start=1):
        if value < 255:
            transparent += 1
        if transparent > 10 and transparent / sampled > 0.05:
            return True

    return bool(alpha.size) and transparent / alpha.size > 0.01


def transparency_percentage(data: bytes, media_type: str, backend: Optional[SurfaceBackend] = None) -> float:
    """Percentage (0-100, two decimals) of non-opaque pixels in a PNG; 0.0 on error"""
    if not _is_png(media_type):
        return 0.0

    try:
        with open_surface(data, backend) as surface:
            size = (PERCENTAGE_SAMPLE_SIZE, PERCENTAGE_SAMPLE_SIZE)
            with surface.convert('RGBA') as rgba, rgba.resize(size, Image.Resampling.BILINEAR) as sample:
                alpha = np.asarray(sample.getchannel('A'))
    except Exception as e:
        logger.warning(f"⚠️ Error calculating transparency percentage: {e}")
        return 0.0

    percentage = np.count_nonzero(alpha < 255) / alpha.size * 100
    return round(float(percentage), 2)


def convert_black_to_transparent(data: bytes, threshold: int = BLACK_THRESHOLD,
                                 backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """Make every near-black pixel (R, G and B below threshold) fully transparent"""
    backend = get_backend(backend)

    with open_surface(data, backend) as surface:
        with surface.convert('RGBA') as rgba:
            pixels = np.array(rgba)

    black = (pixels[:, :, 0] < threshold) & (pixels[:, :, 1] < threshold) & (pixels[:, :, 2] < threshold)
    pixels[black, 3] = 0

    with Image.fromarray(pixels) as corrected:
        encoded = backend.encode(corrected, PNG)
        width, height = corrected.size

    return EncodedImage(data=encoded, media_type=PNG, width=width, height=height)


def apply_mask(original: bytes, mask: bytes, backend: Optional[SurfaceBackend] = None) -> EncodedImage:
    """
    Cut out the original with a mask (destination-in).

    The mask is scaled to the original's size; output alpha is the product of
    both alphas.
    """
    backend = get_backend(backend)

    with open_surface(original, backend) as source, open_surface(mask, backend) as mask_surface:
        with source.convert('RGBA') as rgba, mask_surface.convert('RGBA') as mask_rgba:
            with mask_rgba.resize(rgba.size, Image.Resampling.BILINEAR) as scaled_mask:
                pixels = np.array(rgba)
                mask_alpha = np.asarray(scaled_mask.getchannel('A'), dtype=np.uint16)

    combined = pixels[:, :, 3].astype(np.uint16) * mask_alpha
    pixels[:, :, 3] = ((combined + 127) // 255).astype(np.uint8)

    with Image.fromarray(pixels) as cutout:
        encoded = backend.encode(cutout, PNG)
        width, height = cutout.size

    return EncodedImage(data=encoded, media_type=PNG, width=width, height=height)
