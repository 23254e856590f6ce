"""
In-memory image builders shared by the test modules
"""

import io
import struct

import numpy as np
from PIL import Image

ORIENTATION_TAG = 0x0112


def encode(image, fmt='PNG', **params):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def decode(data):
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def pattern_image(width, height, mode='RGB'):
    """Every pixel gets a distinct colour derived from its coordinates"""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    for y in range(height):
        for x in range(width):
            pixels[y, x] = (x * 37 % 256, y * 53 % 256, (x + y * width) * 11 % 256)
    image = Image.fromarray(pixels)
    return image.convert(mode) if mode != 'RGB' else image


def split_image(width, height, left=(255, 0, 0), right=(0, 0, 255), mode='RGB'):
    """Left half one colour, right half another"""
    image = Image.new(mode, (width, height), left if mode == 'RGB' else left + (255,))
    fill = right if mode == 'RGB' else right + (255,)
    image.paste(Image.new(mode, (width - width // 2, height), fill), (width // 2, 0))
    return image


def noise_image(width, height, seed=1234):
    """High-entropy RGB image that JPEG cannot squeeze much"""
    rng = np.random.default_rng(seed)
    return Image.fromarray(rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8))


def exif_segment(orientation=None, little_endian=True, entries=None, byte_order=None, ifd_offset=8):
    """
    Hand-assembled APP1 segment: "Exif\\0\\0" + TIFF header + one IFD.

    entries is a list of (tag, value) SHORT entries; by default a single
    Orientation entry.
    """
    bo = '<' if little_endian else '>'
    if entries is None:
        entries = [(ORIENTATION_TAG, orientation)]

    mark = byte_order if byte_order is not None else (b'II' if little_endian else b'MM')
    tiff = mark + struct.pack(bo + 'H', 42) + struct.pack(bo + 'I', ifd_offset)
    ifd = struct.pack(bo + 'H', len(entries))
    for tag, value in entries:
        ifd += struct.pack(bo + 'HHI', tag, 3, 1) + struct.pack(bo + 'H', value) + b'\x00\x00'
    ifd += struct.pack(bo + 'I', 0)

    payload = b'Exif\x00\x00' + tiff + ifd
    return b'\xFF\xE1' + struct.pack('>H', len(payload) + 2) + payload


def segment(marker, payload=b''):
    """Generic marker segment with a length field"""
    return struct.pack('>H', marker) + struct.pack('>H', len(payload) + 2) + payload


def jpeg_stream(*segments):
    """SOI + segments + EOI; parseable, not decodable"""
    return b'\xFF\xD8' + b''.join(segments) + b'\xFF\xD9'


def with_segment(jpeg_bytes, app_segment):
    """Insert a segment right after the SOI marker of a real JPEG"""
    return jpeg_bytes[:2] + app_segment + jpeg_bytes[2:]


def oriented_jpeg(image, orientation, little_endian=True, quality=95):
    """A decodable JPEG carrying an EXIF Orientation tag"""
    return with_segment(encode(image, 'JPEG', quality=quality), exif_segment(orientation, little_endian))


def mean_color(image, box):
    """Average RGB over a box, for lossy comparisons"""
    region = np.asarray(image.convert('RGB').crop(box), dtype=np.float64)
    return tuple(region.reshape(-1, 3).mean(axis=0))


def assert_close_color(testcase, actual, expected, tolerance=40):
    for a, e in zip(actual, expected):
        testcase.assertLessEqual(abs(a - e), tolerance, f"{actual} is not close to {expected}")
