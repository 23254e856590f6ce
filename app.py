#!/usr/bin/env python3
"""
Web Application for the Product Photo Imaging Service
Serves the image geometry pipeline (orientation, resize/compress, reflections)
to the browser UI and backend jobs.
"""

import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables before importing modules that rely on them
load_dotenv()

# Import API blueprint
from api import api_bp
from studio_imaging.resize import DEFAULT_MAX_DIMENSION, DEFAULT_TARGET_BYTES
from studio_imaging.reflection import DEFAULT_MAX_WORKERS

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max request size (batch payloads carry data URLs)
app.config['API_MAX_FILE_SIZE_MB'] = int(os.getenv('API_MAX_FILE_SIZE_MB', '16'))
app.config['RESIZE_MAX_DIMENSION'] = int(os.getenv('RESIZE_MAX_DIMENSION', str(DEFAULT_MAX_DIMENSION)))
app.config['RESIZE_TARGET_BYTES'] = int(os.getenv('RESIZE_TARGET_BYTES', str(DEFAULT_TARGET_BYTES)))
app.config['REFLECTION_MAX_WORKERS'] = int(os.getenv('REFLECTION_MAX_WORKERS', str(DEFAULT_MAX_WORKERS)))

# Configure CORS
CORS(app, resources={
    r"/api/*": {
        "origins": "*",
        "methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", "X-API-Key"],
        "supports_credentials": True
    }
})

# Register API blueprint
app.register_blueprint(api_bp)


@app.errorhandler(413)
def request_too_large(error):
    """Request body exceeded MAX_CONTENT_LENGTH"""
    return jsonify({
        'success': False,
        'error': 'File too large',
        'error_code': 'VALIDATION_003',
        'details': f"Maximum request size is {app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)}MB"
    }), 413


@app.route('/health')
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy'
    })


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
