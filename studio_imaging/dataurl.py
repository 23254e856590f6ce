"""
Data URL helpers for the base64 image payloads the browser layer exchanges
"""

import base64
import binascii
import re
from typing import Tuple

from .errors import DecodeError

DATA_URL_PATTERN = re.compile(r'^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[\w.-]+)*;base64,(?P<payload>.*)$', re.DOTALL)


def to_data_url(data: bytes, media_type: str) -> str:
    """Encode bytes as a base64 data URL"""
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(text: str) -> Tuple[bytes, str]:
    """
    Decode a base64 data URL.

    Returns:
        tuple: (bytes, media_type); media type defaults to application/octet-stream

    Raises:
        DecodeError: if the text is not a base64 data URL
    """
    match = DATA_URL_PATTERN.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise DecodeError("Invalid data URL: expected 'data:<type>;base64,<payload>'")

    try:
        data = base64.b64decode(match.group('payload'), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 payload in data URL: {exc}") from exc

    return data, match.group('media_type') or 'application/octet-stream'
