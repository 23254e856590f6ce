"""
Imaging Data Models
Transient value objects passed between the image operations
"""

import os
from dataclasses import dataclass
from typing import Optional

JPEG = 'image/jpeg'
PNG = 'image/png'
WEBP = 'image/webp'

# Media types the Pillow backend can write back out
ENCODABLE_MEDIA_TYPES = {
    JPEG: 'JPEG',
    PNG: 'PNG',
    WEBP: 'WEBP',
    'image/gif': 'GIF',
    'image/bmp': 'BMP',
    'image/tiff': 'TIFF',
}

EXTENSION_MEDIA_TYPES = {
    '.jpg': JPEG,
    '.jpeg': JPEG,
    '.png': PNG,
    '.webp': WEBP,
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.tif': 'image/tiff',
    '.tiff': 'image/tiff',
}

MEDIA_TYPE_EXTENSIONS = {
    JPEG: '.jpg',
    PNG: '.png',
    WEBP: '.webp',
}


def guess_media_type(filename: str, default: str = 'application/octet-stream') -> str:
    """Guess an image media type from a file name extension"""
    ext = os.path.splitext(filename or '')[1].lower()
    return EXTENSION_MEDIA_TYPES.get(ext, default)


def filename_for_media_type(filename: str, media_type: str) -> str:
    """Swap the extension of a file name for the one matching media_type"""
    ext = MEDIA_TYPE_EXTENSIONS.get(media_type)
    if ext is None:
        return filename
    return os.path.splitext(filename or 'image')[0] + ext


@dataclass(frozen=True)
class DimensionPair:
    """Width and height of an image in pixels"""
    width: int
    height: int

    def swapped(self) -> 'DimensionPair':
        return DimensionPair(self.height, self.width)

    def as_tuple(self):
        return (self.width, self.height)


@dataclass(frozen=True)
class RawImageBuffer:
    """
    Encoded bytes of one image file plus its declared media type and name.

    Never mutated; every transform returns a new buffer.
    """
    data: bytes
    media_type: str = 'application/octet-stream'
    filename: str = 'image'

    @classmethod
    def from_path(cls, path: str) -> 'RawImageBuffer':
        with open(path, 'rb') as f:
            data = f.read()
        return cls(data=data, media_type=guess_media_type(path), filename=os.path.basename(path))

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EncodedImage:
    """Result of an encode: bytes, media type and the output dimensions"""
    data: bytes
    media_type: str
    width: int
    height: int
    quality: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def dimensions(self) -> DimensionPair:
        return DimensionPair(self.width, self.height)

    def to_buffer(self, filename: str) -> RawImageBuffer:
        return RawImageBuffer(data=self.data, media_type=self.media_type, filename=filename)

    def metadata(self) -> dict:
        info = {
            'width': self.width,
            'height': self.height,
            'size_bytes': self.size,
            'media_type': self.media_type,
        }
        if self.quality is not None:
            info['quality'] = self.quality
        return info
