"""
Studio Imaging
Image geometry pipeline for product photos: EXIF orientation correction,
resize/compress and floor reflection synthesis.
"""

from .errors import ImagingError, DecodeError, SurfaceUnavailableError, EncodeError
from .models import RawImageBuffer, EncodedImage, DimensionPair
from .orientation import correct_orientation
from .exif import read_orientation
from .resize import resize_and_compress, create_preview, get_image_dimensions, compress_for_upload
from .reflection import ReflectionOptions, ReflectionResult, generate_reflection, generate_reflections, stack_reflection
from .rotation import rotate_image
from .surface import SurfaceBackend, PillowBackend

__all__ = [
    'ImagingError', 'DecodeError', 'SurfaceUnavailableError', 'EncodeError',
    'RawImageBuffer', 'EncodedImage', 'DimensionPair',
    'correct_orientation', 'read_orientation',
    'resize_and_compress', 'create_preview', 'get_image_dimensions', 'compress_for_upload',
    'ReflectionOptions', 'ReflectionResult', 'generate_reflection', 'generate_reflections', 'stack_reflection',
    'rotate_image',
    'SurfaceBackend', 'PillowBackend',
]
