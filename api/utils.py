"""
API Utility Functions
Helper functions for API operations
"""

import os
import time
from typing import Optional, Tuple
from flask import current_app, request
from werkzeug.utils import secure_filename

from studio_imaging.dataurl import parse_data_url, to_data_url
from studio_imaging.errors import DecodeError
from studio_imaging.models import MEDIA_TYPE_EXTENSIONS, EncodedImage, RawImageBuffer, guess_media_type

# Allowed file extensions for API
ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'tiff', 'webp'}

DEFAULT_MAX_FILE_SIZE_MB = 16


def allowed_file(filename: str) -> bool:
    """
    Check if file extension is allowed for API uploads

    Args:
        filename: Name of the file to check

    Returns:
        bool: True if file type is allowed
    """
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def output_filename(original_filename: str, prefix: str, media_type: str) -> str:
    """
    Build the name of a processed file: prefix, safe stem, extension of the output type

    Args:
        original_filename: Name of the uploaded file
        prefix: Label of the operation (e.g. 'corrected', 'reflection')
        media_type: Media type of the output

    Returns:
        str: Output filename
    """
    name = os.path.splitext(secure_filename(original_filename) or 'image')[0] or 'image'
    ext = MEDIA_TYPE_EXTENSIONS.get(media_type)
    if ext is None:
        ext = os.path.splitext(original_filename)[1].lower() or '.png'
    return f"{prefix}_{name}{ext}"


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human readable format

    Args:
        size_bytes: Size in bytes

    Returns:
        str: Formatted file size
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def format_processing_time(start_time: float, end_time: float) -> str:
    """
    Format processing time in human readable format

    Args:
        start_time: Start timestamp
        end_time: End timestamp

    Returns:
        str: Formatted processing time
    """
    duration = end_time - start_time
    if duration < 1:
        return f"{duration * 1000:.0f}ms"
    elif duration < 60:
        return f"{duration:.1f}s"
    else:
        minutes = int(duration // 60)
        seconds = duration % 60
        return f"{minutes}m {seconds:.1f}s"


def max_file_size_bytes() -> int:
    return int(current_app.config.get('API_MAX_FILE_SIZE_MB', DEFAULT_MAX_FILE_SIZE_MB)) * 1024 * 1024


def validate_image_file(file) -> Tuple[bool, str]:
    """
    Validate uploaded image file

    Args:
        file: Uploaded file object

    Returns:
        tuple: (is_valid, error_message)
    """
    if not file or not file.filename:
        return False, "No file provided"

    if not allowed_file(file.filename):
        return False, f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"

    file.seek(0, 2)  # Seek to end
    file_size = file.tell()
    file.seek(0)  # Reset to beginning

    max_size = max_file_size_bytes()
    if file_size > max_size:
        return False, f"File too large. Maximum size: {max_size // (1024 * 1024)}MB"

    if file_size == 0:
        return False, "Empty file provided"

    return True, ""


def read_request_image(field: str = 'image') -> Tuple[Optional[RawImageBuffer], Optional[Tuple[str, str]]]:
    """
    Read the input image of a request, either an uploaded file or a data URL
    in the form field / JSON body key `<field>_data`.

    Returns:
        tuple: (RawImageBuffer, None) on success, (None, (error_code, details)) otherwise
    """
    upload = request.files.get(field)
    if upload is not None:
        is_valid, error_msg = validate_image_file(upload)
        if not is_valid:
            error_code = 'VALIDATION_003' if error_msg.startswith('File too large') else 'VALIDATION_002'
            return None, (error_code, error_msg)

        filename = upload.filename
        media_type = upload.mimetype if (upload.mimetype or '').startswith('image/') else guess_media_type(filename)
        return RawImageBuffer(data=upload.read(), media_type=media_type, filename=filename), None

    payload = request.get_json(silent=True) or {}
    data_url = request.form.get(f'{field}_data') or payload.get(f'{field}_data')
    if not data_url:
        return None, ('VALIDATION_001', f"Either an '{field}' file or '{field}_data' data URL is required")

    try:
        data, media_type = parse_data_url(data_url)
    except DecodeError as exc:
        return None, ('VALIDATION_002', exc.message)

    if len(data) > max_file_size_bytes():
        return None, ('VALIDATION_003', f"File too large. Maximum size: {max_file_size_bytes() // (1024 * 1024)}MB")

    filename = request.form.get('filename') or payload.get('filename') or 'image'
    return RawImageBuffer(data=data, media_type=media_type, filename=filename), None


def request_param(name: str, default=None):
    """Read a parameter from form data, falling back to the JSON body"""
    value = request.form.get(name)
    if value is None:
        payload = request.get_json(silent=True) or {}
        value = payload.get(name)
    return default if value is None or value == '' else value


def parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def encoded_image_payload(image: EncodedImage, start_time: float) -> dict:
    """Fields shared by every response that returns an image"""
    return {
        'image_data': to_data_url(image.data, image.media_type),
        'processing_time': format_processing_time(start_time, time.time()),
        'file_size': format_file_size(image.size),
    }
