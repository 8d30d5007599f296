# =============================================================================
# PlantCare AI Backend
# utils.py - Utility Functions
#
# Request parsing helpers and the standard JSON response envelope used by
# every blueprint.
# =============================================================================

from flask import request, jsonify, current_app

from plantcare.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_LOCATION,
    SUPPORTED_LANGUAGES
)


# =============================================================================
# Validation Functions
# =============================================================================

def allowed_file(filename: str) -> bool:
    """
    Check if uploaded file has an allowed extension.

    Args:
        filename: Name of the uploaded file

    Returns:
        bool: True if extension is allowed, False otherwise
    """
    allowed_extensions = current_app.config.get(
        'ALLOWED_EXTENSIONS',
        {'png', 'jpg', 'jpeg', 'gif', 'webp'}
    )
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in allowed_extensions


def parse_bool(value, default=False) -> bool:
    """'true'/'1'/'yes'/'on' (any case) -> True; None -> default."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def get_language(data=None) -> str:
    """
    Requested UI language: JSON/form field, query string, then
    Accept-Language. Unsupported codes fall back to English.
    """
    language = None
    if data and isinstance(data, dict):
        language = data.get('language')
    language = language or request.values.get('language')
    if not language:
        language = request.accept_languages.best_match(SUPPORTED_LANGUAGES)
    return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def parse_location(args, lat_key='lat', lng_key='lng'):
    """
    (lat, lng) from request args, defaulting to Bengaluru.

    Raises:
        ValueError: Only one coordinate given, or non-numeric or
            out-of-range coordinates
    """
    lat = args.get(lat_key)
    lng = args.get(lng_key)
    if lat is None and lng is None:
        return DEFAULT_LOCATION
    if lat is None or lng is None:
        raise ValueError(f"Both {lat_key} and {lng_key} are required")

    lat, lng = float(lat), float(lng)
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValueError("Coordinates out of range")
    return lat, lng


# =============================================================================
# Response Helpers
# =============================================================================

def success_response(data=None, message=None, status_code=200):
    """
    Create a standardized success response.

    Args:
        data: Response data (dict or list)
        message: Success message
        status_code: HTTP status code (default 200)

    Returns:
        tuple: (response, status_code)
    """
    response = {
        'success': True,
        'status': 'success'
    }

    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message

    return jsonify(response), status_code


def error_response(error, details=None, status_code=400, **extra):
    """
    Create a standardized error response.

    Args:
        error: Error message
        details: Additional error details
        status_code: HTTP status code (default 400)
        **extra: Additional top-level fields (error type, language, ...)

    Returns:
        tuple: (response, status_code)
    """
    response = {
        'success': False,
        'status': 'error',
        'error': error
    }

    if details:
        response['details'] = details
    response.update(extra)

    return jsonify(response), status_code

