"""
API Authentication Module
Handles API key validation and rate limiting
"""

import os
import threading
import time
from functools import wraps
from flask import request, jsonify
from typing import Dict, Any

from .models import create_error_response

DEV_API_KEY = 'dev-api-key-12345'

# In-memory storage for rate limiting (in production, use Redis or database)
rate_limit_storage: Dict[str, Dict[str, Any]] = {}
_rate_limit_lock = threading.Lock()


def get_request_api_key() -> str:
    """API key from the X-API-Key header or the api_key form field"""
    return request.headers.get('X-API-Key') or request.form.get('api_key')


def validate_api_key(api_key: str) -> bool:
    """
    Validate API key against configured keys

    Args:
        api_key: The API key to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not api_key:
        return False

    # Format: API_KEY_1,API_KEY_2,API_KEY_3
    valid_keys = os.getenv('API_KEYS', '').split(',')
    valid_keys = [key.strip() for key in valid_keys if key.strip()]

    # If no API keys configured, use a default for development
    if not valid_keys:
        valid_keys = [DEV_API_KEY]

    return api_key in valid_keys


def check_rate_limit(api_key: str, max_requests: int = None, window_minutes: int = None) -> bool:
    """
    Check if API key has exceeded rate limit

    Args:
        api_key: The API key to check
        max_requests: Maximum requests allowed in time window (API_RATE_LIMIT_REQUESTS)
        window_minutes: Time window in minutes (API_RATE_LIMIT_WINDOW_MINUTES)

    Returns:
        bool: True if within limits, False if exceeded
    """
    if max_requests is None:
        max_requests = int(os.getenv('API_RATE_LIMIT_REQUESTS', '100'))
    if window_minutes is None:
        window_minutes = int(os.getenv('API_RATE_LIMIT_WINDOW_MINUTES', '60'))

    current_time = time.time()
    cutoff_time = current_time - window_minutes * 60

    with _rate_limit_lock:
        key_data = rate_limit_storage.setdefault(api_key, {'requests': []})

        # Clean up old requests (older than window)
        key_data['requests'] = [req_time for req_time in key_data['requests'] if req_time > cutoff_time]

        if len(key_data['requests']) >= max_requests:
            return False

        key_data['requests'].append(current_time)
        return True


def require_api_key(f):
    """
    Decorator to require valid API key for endpoint access
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        api_key = get_request_api_key()

        if not api_key:
            return jsonify(create_error_response(
                'AUTH_001', 'Provide API key via X-API-Key header or api_key parameter'
            )), 401

        if not validate_api_key(api_key):
            return jsonify(create_error_response('AUTH_002', 'API key not found or invalid')), 401

        if not check_rate_limit(api_key):
            return jsonify(create_error_response('RATE_001', 'Too many requests. Please try again later.')), 429

        return f(*args, **kwargs)

    return decorated_function


def get_api_key_info(api_key: str) -> Dict[str, Any]:
    """
    Get information about API key usage

    Args:
        api_key: The API key to check

    Returns:
        dict: API key usage information
    """
    max_requests = int(os.getenv('API_RATE_LIMIT_REQUESTS', '100'))
    window_seconds = int(os.getenv('API_RATE_LIMIT_WINDOW_MINUTES', '60')) * 60

    with _rate_limit_lock:
        requests_seen = list(rate_limit_storage.get(api_key, {}).get('requests', []))

    if not requests_seen:
        return {
            'requests_count': 0,
            'last_request': None,
            'rate_limit_status': 'OK'
        }

    window_start = time.time() - window_seconds
    recent_requests = [req_time for req_time in requests_seen if req_time > window_start]

    return {
        'requests_count': len(recent_requests),
        'last_request': max(requests_seen),
        'rate_limit_status': 'OK' if len(recent_requests) < max_requests else 'EXCEEDED'
    }
