"""
EXIF Orientation Reader
Walks the JPEG marker segments of an encoded file and pulls the Orientation
tag (0x0112) out of the first IFD of the APP1 "Exif" block.

Pure function over the byte buffer: every read is bounds-checked and a
missing, truncated or corrupt structure resolves to orientation 1.
"""

import logging

logger = logging.getLogger(__name__)

NO_ORIENTATION = 1

SOI_MARKER = 0xFFD8
APP1_MARKER = 0xFFE1
SOS_MARKER = 0xFFDA
TEM_MARKER = 0xFF01
RST_FIRST = 0xFFD0
RST_LAST = 0xFFD9

LITTLE_ENDIAN_MARK = 0x4949  # "II"
BIG_ENDIAN_MARK = 0x4D4D  # "MM"

ORIENTATION_TAG = 0x0112
IFD_ENTRY_SIZE = 12
EXIF_HEADER_SIZE = 6  # "Exif\0\0"


def _read_uint(data: bytes, offset: int, size: int, little_endian: bool = False):
    """Read an unsigned integer, or None when it would run past the buffer"""
    if offset < 0 or offset + size > len(data):
        return None
    return int.from_bytes(data[offset:offset + size], 'little' if little_endian else 'big')


def _orientation_from_tiff(data: bytes, tiff_start: int) -> int:
    """Find the Orientation tag in the first IFD of a TIFF structure"""
    byte_order = _read_uint(data, tiff_start, 2)
    if byte_order == LITTLE_ENDIAN_MARK:
        little = True
    elif byte_order == BIG_ENDIAN_MARK:
        little = False
    else:
        logger.warning("⚠️ Invalid TIFF byte order in EXIF block")
        return NO_ORIENTATION

    ifd_offset = _read_uint(data, tiff_start + 4, 4, little)
    if ifd_offset is None:
        return NO_ORIENTATION

    ifd_start = tiff_start + ifd_offset
    entry_count = _read_uint(data, ifd_start, 2, little)
    if entry_count is None:
        return NO_ORIENTATION

    for index in range(entry_count):
        entry = ifd_start + 2 + index * IFD_ENTRY_SIZE
        tag = _read_uint(data, entry, 2, little)
        if tag is None:
            break
        if tag == ORIENTATION_TAG:
            value = _read_uint(data, entry + 8, 2, little)
            if value is None or not 1 <= value <= 8:
                logger.warning(f"⚠️ Ignoring out of range EXIF orientation: {value}")
                return NO_ORIENTATION
            return value

    logger.debug("No orientation tag found in EXIF")
    return NO_ORIENTATION


def read_orientation(data: bytes) -> int:
    """
    Read the EXIF orientation of an encoded image.

    Args:
        data: Raw bytes of an image file

    Returns:
        int: Orientation 1-8; 1 for non-JPEG input, missing or corrupt metadata
    """
    length = len(data)
    if _read_uint(data, 0, 2) != SOI_MARKER:
        logger.debug("Not a JPEG file, no EXIF orientation")
        return NO_ORIENTATION

    offset = 2
    while offset + 2 <= length:
        marker = _read_uint(data, offset, 2)
        offset += 2

        if marker == APP1_MARKER:
            segment_length = _read_uint(data, offset, 2)
            if segment_length is None or segment_length < 2:
                break
            offset += 2

            if data[offset:offset + 4] != b'Exif':
                offset += segment_length - 2
                continue

            return _orientation_from_tiff(data, offset + EXIF_HEADER_SIZE)

        if RST_FIRST <= marker <= RST_LAST or marker == TEM_MARKER:
            # Standalone markers carry no length field
            continue

        if marker == SOS_MARKER:
            break

        if marker & 0xFF00 == 0xFF00:
            segment_length = _read_uint(data, offset, 2)
            if segment_length is None or segment_length < 2:
                break
            offset += segment_length
        else:
            break

    logger.debug("Reached end of JPEG without finding orientation")
    return NO_ORIENTATION
