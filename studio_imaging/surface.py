"""
Rendering Surface Backend
Decode/encode/allocate capability used by every image operation.

The operations never touch Pillow's file APIs directly; they go through a
SurfaceBackend so the same pipeline logic can run on another rasterizer.
Surfaces are acquired through the context managers below and are closed on
every exit path.
"""

import io
import logging
from contextlib import contextmanager
from typing import Optional

import PIL
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError, SurfaceUnavailableError
from .models import ENCODABLE_MEDIA_TYPES, PNG

logger = logging.getLogger(__name__)

# Largest canvas area browsers will hand out (16384 x 16384)
MAX_SURFACE_PIXELS = 16384 * 16384

LOSSY_FORMATS = {'JPEG', 'WEBP'}


class SurfaceBackend:
    """
    Capability interface for pixel surfaces.

    decode(bytes) -> Surface, encode(Surface, media_type, quality) -> bytes,
    new_surface(width, height) -> Surface
    """

    name = 'abstract'

    def decode(self, data: bytes) -> Image.Image:
        raise NotImplementedError

    def encode(self, surface: Image.Image, media_type: str, quality: Optional[float] = None) -> bytes:
        raise NotImplementedError

    def new_surface(self, width: int, height: int, mode: str = 'RGBA') -> Image.Image:
        raise NotImplementedError

    def can_encode(self, media_type: str) -> bool:
        raise NotImplementedError

    def describe(self) -> dict:
        return {'name': self.name}


class PillowBackend(SurfaceBackend):
    """Software rasterizer backed by Pillow"""

    name = 'pillow'

    def __init__(self, max_surface_pixels: int = MAX_SURFACE_PIXELS):
        self.max_surface_pixels = max_surface_pixels

    def decode(self, data: bytes) -> Image.Image:
        if not data:
            raise DecodeError("No image data provided")
        if not isinstance(data, (bytes, bytearray)):
            raise DecodeError(f"Image data must be bytes, got {type(data).__name__}")

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Image.DecompressionBombError as exc:
            raise SurfaceUnavailableError(f"Image exceeds the decoder pixel limit: {exc}") from exc
        except (UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError) as exc:
            raise DecodeError(f"Failed to decode image: {exc}") from exc

        width, height = image.size
        if width * height > self.max_surface_pixels:
            image.close()
            raise SurfaceUnavailableError(
                f"Image of {width}x{height} exceeds the maximum surface area of {self.max_surface_pixels} pixels"
            )
        return image

    def encode(self, surface: Image.Image, media_type: str, quality: Optional[float] = None) -> bytes:
        fmt = ENCODABLE_MEDIA_TYPES.get(media_type)
        if fmt is None:
            raise EncodeError(f"Unsupported output media type: {media_type}")

        params = {}
        if fmt in LOSSY_FORMATS:
            params['quality'] = _quality_to_percent(1.0 if quality is None else quality)

        output = io.BytesIO()
        try:
            if fmt == 'JPEG' and surface.mode not in ('RGB', 'L', 'CMYK'):
                with _flatten_for_jpeg(surface) as flat:
                    flat.save(output, format=fmt, **params)
            else:
                surface.save(output, format=fmt, **params)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Failed to encode image as {media_type}: {exc}") from exc

        return output.getvalue()

    def new_surface(self, width: int, height: int, mode: str = 'RGBA') -> Image.Image:
        if width < 1 or height < 1:
            raise SurfaceUnavailableError(f"Cannot allocate a {width}x{height} surface")
        if width * height > self.max_surface_pixels:
            raise SurfaceUnavailableError(
                f"Surface of {width}x{height} exceeds the maximum area of {self.max_surface_pixels} pixels"
            )

        try:
            return Image.new(mode, (width, height), (0, 0, 0, 0) if mode == 'RGBA' else 0)
        except (MemoryError, ValueError) as exc:
            raise SurfaceUnavailableError(f"Failed to allocate a {width}x{height} surface: {exc}") from exc

    def can_encode(self, media_type: str) -> bool:
        return media_type in ENCODABLE_MEDIA_TYPES

    def describe(self) -> dict:
        return {
            'name': self.name,
            'version': PIL.__version__,
            'max_surface_pixels': self.max_surface_pixels,
            'encodable_types': sorted(ENCODABLE_MEDIA_TYPES),
        }


def _quality_to_percent(quality: float) -> int:
    """Map a canvas style 0.0-1.0 quality to Pillow's 1-100 scale"""
    return max(1, min(100, int(round(quality * 100))))


def _flatten_for_jpeg(surface: Image.Image) -> Image.Image:
    """
    Drop the alpha channel the way a canvas JPEG export does: transparent
    pixels end up black.
    """
    if 'A' in surface.getbands() or surface.mode == 'P':
        rgba = surface.convert('RGBA')
        flat = Image.new('RGB', rgba.size, (0, 0, 0))
        flat.paste(rgba, mask=rgba.getchannel('A'))
        rgba.close()
        return flat

    return surface.convert('RGB')


_default_backend = PillowBackend()


def get_backend(backend: Optional[SurfaceBackend] = None) -> SurfaceBackend:
    """Return the given backend, or the process-wide default"""
    return backend if backend is not None else _default_backend


def output_media_type(media_type: str, backend: Optional[SurfaceBackend] = None) -> str:
    """Keep the source media type when it can be re-encoded, PNG otherwise"""
    if media_type and get_backend(backend).can_encode(media_type):
        return media_type
    return PNG


@contextmanager
def open_surface(data: bytes, backend: Optional[SurfaceBackend] = None):
    """Decode bytes into a surface that is released when the block exits"""
    surface = get_backend(backend).decode(data)
    try:
        yield surface
    finally:
        surface.close()


@contextmanager
def allocate_surface(width: int, height: int, backend: Optional[SurfaceBackend] = None, mode: str = 'RGBA'):
    """Allocate a blank surface that is released when the block exits"""
    surface = get_backend(backend).new_surface(width, height, mode)
    try:
        yield surface
    finally:
        surface.close()
