"""
API Module for the Product Photo Imaging Service
Provides REST API endpoints for orientation correction, resize/compress and reflections
"""

from .endpoints import api_bp
from .auth import validate_api_key
from .models import ResizeRequest, ReflectionRequest, ProcessResponse, ErrorResponse

__all__ = ['api_bp', 'validate_api_key', 'ResizeRequest', 'ReflectionRequest', 'ProcessResponse', 'ErrorResponse']
