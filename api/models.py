"""
API Data Models
Defines request/response models for API endpoints
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timezone

from studio_imaging.errors import DECODE_FAILURE, SURFACE_UNAVAILABLE, ENCODE_FAILURE, ImagingError
from studio_imaging.reflection import ReflectionOptions


@dataclass
class ResizeRequest:
    """Request model for resize/compress"""
    max_dimension: int = 2048
    target_bytes: int = 5 * 1024 * 1024


@dataclass
class ReflectionRequest:
    """Request model for single and batch reflection generation"""
    options: ReflectionOptions = field(default_factory=ReflectionOptions)
    fail_fast: bool = False
    stack: bool = False


@dataclass
class ProcessResponse:
    """Response model for successful image processing"""
    success: bool = True
    message: str = "Image processed successfully"
    image_data: Optional[str] = None
    processing_time: Optional[str] = None
    file_size: Optional[str] = None
    output_filename: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class ErrorResponse:
    """Response model for API errors"""
    success: bool = False
    error: str = "An error occurred"
    error_code: str = "UNKNOWN_001"
    details: Optional[str] = None
    timestamp: str = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = _utc_timestamp()


# Error codes for different types of failures
ERROR_CODES = {
    'AUTH_001': 'API key required',
    'AUTH_002': 'Invalid API key',
    'RATE_001': 'Rate limit exceeded',
    'VALIDATION_001': 'Missing required parameter',
    'VALIDATION_002': 'Invalid file type',
    'VALIDATION_003': 'File too large',
    'VALIDATION_004': 'Invalid parameter value',
    'PROCESSING_001': 'Image decode failed',
    'PROCESSING_002': 'Rendering surface unavailable',
    'PROCESSING_003': 'Image encode failed',
    'SERVICE_003': 'Internal processing error',
}

# Imaging error classification -> (API error code, HTTP status)
IMAGING_ERROR_CODES = {
    DECODE_FAILURE: ('PROCESSING_001', 422),
    SURFACE_UNAVAILABLE: ('PROCESSING_002', 500),
    ENCODE_FAILURE: ('PROCESSING_003', 500),
}


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_error_response(error_code: str, details: str = None) -> Dict[str, Any]:
    """
    Create standardized error response

    Args:
        error_code: Error code from ERROR_CODES
        details: Additional error details

    Returns:
        dict: Error response dictionary
    """
    return {
        'success': False,
        'error': ERROR_CODES.get(error_code, 'Unknown error'),
        'error_code': error_code,
        'details': details,
        'timestamp': _utc_timestamp()
    }


def imaging_error_response(exc: ImagingError) -> Tuple[Dict[str, Any], int]:
    """Map an imaging failure onto the error envelope and an HTTP status"""
    error_code, status = IMAGING_ERROR_CODES.get(exc.code, ('SERVICE_003', 500))
    response = create_error_response(error_code, exc.message)
    response['failure'] = exc.code
    return response, status


def create_success_response(message: str, image_data: str = None,
                            processing_time: str = None, file_size: str = None,
                            output_filename: str = None, metadata: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Create standardized success response

    Args:
        message: Success message
        image_data: Processed image as a data URL
        processing_time: Time taken for processing
        file_size: Size of output file
        output_filename: Name of output file
        metadata: Additional metadata

    Returns:
        dict: Success response dictionary
    """
    response = {
        'success': True,
        'message': message,
        'timestamp': _utc_timestamp()
    }

    if image_data:
        response['image_data'] = image_data
    if processing_time:
        response['processing_time'] = processing_time
    if file_size:
        response['file_size'] = file_size
    if output_filename:
        response['output_filename'] = output_filename
    if metadata:
        response['metadata'] = metadata

    return response
