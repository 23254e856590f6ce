"""
API Endpoints
Routes exposing the image geometry pipeline to a headless backend
"""

import logging
import time
from flask import Blueprint, jsonify, current_app
from flask_cors import cross_origin

from studio_imaging.dataurl import to_data_url
from studio_imaging.errors import ImagingError
from studio_imaging.orientation import correct_orientation
from studio_imaging.exif import read_orientation
from studio_imaging.reflection import ReflectionOptions, generate_reflection, generate_reflections, stack_reflection
from studio_imaging.resize import resize_and_compress, get_image_dimensions
from studio_imaging.rotation import rotate_image
from studio_imaging.surface import get_backend
from studio_imaging.transparency import detect_transparency, transparency_percentage

from .auth import require_api_key, get_api_key_info, get_request_api_key, validate_api_key
from .models import (
    ResizeRequest, ReflectionRequest, create_error_response, create_success_response, imaging_error_response
)
from .utils import (
    read_request_image, request_param, parse_bool, encoded_image_payload, output_filename,
    format_file_size, format_processing_time
)

logger = logging.getLogger(__name__)

REFLECTION_OPTION_FIELDS = ('intensity', 'height', 'blur', 'fadeStrength', 'fade_strength', 'offset')

# Create API blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api/v1')


def _imaging_failure(exc: ImagingError):
    logger.warning(f"❌ {exc.code}: {exc.message}")
    response, status = imaging_error_response(exc)
    return jsonify(response), status


def _reflection_options_from_request() -> ReflectionOptions:
    options = request_param('options')
    if isinstance(options, dict):
        return ReflectionOptions.from_dict(options)
    values = {name: request_param(name) for name in REFLECTION_OPTION_FIELDS}
    return ReflectionOptions.from_dict({key: value for key, value in values.items() if value is not None})


@api_bp.route('/health', methods=['GET'])
@cross_origin()
def health_check():
    """
    Health check endpoint
    """
    try:
        return jsonify({
            'status': 'healthy',
            'timestamp': time.time(),
            'services': {
                'surface_backend': get_backend().describe(),
                'orientation': True,
                'resize': True,
                'reflection': True
            }
        })
    except Exception as e:
        return jsonify({
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': time.time()
        }), 500


@api_bp.route('/validate', methods=['POST'])
@cross_origin()
def validate_request():
    """
    Validate API key
    """
    try:
        api_key = get_request_api_key()

        if not api_key:
            return jsonify(create_error_response('AUTH_001')), 401

        if not validate_api_key(api_key):
            return jsonify(create_error_response('AUTH_002')), 401

        return jsonify({
            'success': True,
            'message': 'API key is valid',
            'api_key_info': get_api_key_info(api_key)
        })

    except Exception as e:
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/orient', methods=['POST'])
@cross_origin()
@require_api_key
def orient_image():
    """
    Bake the EXIF orientation into the pixels.
    Never fails on bad metadata: the original comes back unchanged.
    """
    start_time = time.time()

    try:
        image, error = read_request_image()
        if error:
            return jsonify(create_error_response(*error)), 400

        orientation = read_orientation(image.data)
        corrected = correct_orientation(image)
        changed = corrected is not image

        try:
            dimensions = get_image_dimensions(corrected.data).as_tuple()
        except ImagingError:
            dimensions = (None, None)

        return jsonify(create_success_response(
            message="Orientation corrected" if changed else "No orientation correction needed",
            image_data=to_data_url(corrected.data, corrected.media_type),
            processing_time=format_processing_time(start_time, time.time()),
            file_size=format_file_size(corrected.size),
            output_filename=corrected.filename,
            metadata={
                'orientation': orientation,
                'corrected': changed,
                'width': dimensions[0],
                'height': dimensions[1],
                'size_bytes': corrected.size,
                'media_type': corrected.media_type
            }
        ))

    except Exception as e:
        logger.exception("Orientation request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/resize', methods=['POST'])
@cross_origin()
@require_api_key
def resize_image():
    """
    Downscale to max_dimension and compress under target_bytes
    """
    start_time = time.time()

    try:
        image, error = read_request_image()
        if error:
            return jsonify(create_error_response(*error)), 400

        try:
            params = ResizeRequest(
                max_dimension=int(request_param('max_dimension', current_app.config['RESIZE_MAX_DIMENSION'])),
                target_bytes=int(request_param('target_bytes', current_app.config['RESIZE_TARGET_BYTES']))
            )
            result = resize_and_compress(image.data, params.max_dimension, params.target_bytes)
        except ValueError as e:
            return jsonify(create_error_response('VALIDATION_004', str(e))), 400
        except ImagingError as e:
            return _imaging_failure(e)

        return jsonify(create_success_response(
            message="Image resized and compressed",
            output_filename=output_filename(image.filename, 'compressed', result.media_type),
            metadata={**result.metadata(), 'original_size_bytes': image.size},
            **encoded_image_payload(result, start_time)
        ))

    except Exception as e:
        logger.exception("Resize request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/reflection', methods=['POST'])
@cross_origin()
@require_api_key
def create_reflection():
    """
    Generate the reflection strip for one transparent subject.
    With stack=true the subject and strip come back composed, separated by the offset.
    """
    start_time = time.time()

    try:
        image, error = read_request_image()
        if error:
            return jsonify(create_error_response(*error)), 400

        try:
            params = ReflectionRequest(
                options=_reflection_options_from_request(),
                stack=parse_bool(request_param('stack'))
            )
            result = generate_reflection(image.data, params.options)
            if params.stack:
                result = stack_reflection(image.data, result.data, params.options.offset)
        except ValueError as e:
            return jsonify(create_error_response('VALIDATION_004', str(e))), 400
        except ImagingError as e:
            return _imaging_failure(e)

        return jsonify(create_success_response(
            message="Reflection generated",
            output_filename=output_filename(image.filename, 'reflection', result.media_type),
            metadata={**result.metadata(), 'options': params.options.to_dict(), 'stacked': params.stack},
            **encoded_image_payload(result, start_time)
        ))

    except Exception as e:
        logger.exception("Reflection request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/reflections', methods=['POST'])
@cross_origin()
@require_api_key
def create_reflections():
    """
    Batch reflection generation.

    JSON body: {"images": [{"name": ..., "imageData": <data URL>}], "options": {...}, "fail_fast": false}
    Each result carries its source name; failures are reported per item
    unless fail_fast is set.
    """
    start_time = time.time()

    try:
        images = request_param('images')
        if not isinstance(images, list) or not images:
            return jsonify(create_error_response('VALIDATION_001', "'images' must be a non-empty list")), 400

        try:
            params = ReflectionRequest(
                options=_reflection_options_from_request(),
                fail_fast=parse_bool(request_param('fail_fast'))
            )
            results = generate_reflections(
                images,
                params.options,
                max_workers=current_app.config.get('REFLECTION_MAX_WORKERS'),
                fail_fast=params.fail_fast
            )
        except ValueError as e:
            return jsonify(create_error_response('VALIDATION_004', str(e))), 400
        except ImagingError as e:
            return _imaging_failure(e)

        reflections = []
        for result in results:
            if result.ok:
                reflections.append({
                    'name': result.name,
                    'success': True,
                    'reflectionData': to_data_url(result.reflection.data, result.reflection.media_type),
                    'metadata': result.reflection.metadata()
                })
            else:
                reflections.append({'name': result.name, 'success': False, 'error': result.error.to_dict()})

        failed = sum(1 for result in results if not result.ok)
        response = create_success_response(
            message=f"Generated {len(results) - failed} of {len(results)} reflections",
            processing_time=format_processing_time(start_time, time.time()),
            metadata={'options': params.options.to_dict(), 'failed': failed}
        )
        response['reflections'] = reflections
        return jsonify(response)

    except Exception as e:
        logger.exception("Batch reflection request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/rotate', methods=['POST'])
@cross_origin()
@require_api_key
def rotate():
    """
    Rotate a quarter turn: degrees=90 (clockwise) or -90
    """
    start_time = time.time()

    try:
        image, error = read_request_image()
        if error:
            return jsonify(create_error_response(*error)), 400

        try:
            degrees = int(request_param('degrees', 90))
            result = rotate_image(image.data, degrees)
        except ValueError as e:
            return jsonify(create_error_response('VALIDATION_004', str(e))), 400
        except ImagingError as e:
            return _imaging_failure(e)

        return jsonify(create_success_response(
            message=f"Image rotated {degrees}°",
            output_filename=output_filename(image.filename, 'rotated', result.media_type),
            metadata=result.metadata(),
            **encoded_image_payload(result, start_time)
        ))

    except Exception as e:
        logger.exception("Rotate request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500


@api_bp.route('/transparency', methods=['POST'])
@cross_origin()
@require_api_key
def transparency():
    """
    Report whether an image is transparent and how much of it is
    """
    try:
        image, error = read_request_image()
        if error:
            return jsonify(create_error_response(*error)), 400

        return jsonify(create_success_response(
            message="Transparency analysed",
            metadata={
                'has_transparency': detect_transparency(image.data, image.media_type),
                'transparency_percentage': transparency_percentage(image.data, image.media_type),
                'media_type': image.media_type
            }
        ))

    except Exception as e:
        logger.exception("Transparency request failed")
        return jsonify(create_error_response('SERVICE_003', str(e))), 500
