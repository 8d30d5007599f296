# =============================================================================
# PlantCare AI Backend
# decorators.py - Reusable Decorators
#
# Custom decorators for request validation, domain error handling and
# request logging.
# =============================================================================

from functools import wraps
from flask import request, current_app

from plantcare.exceptions import PlantCareError
from plantcare.utils import allowed_file, error_response


def validate_json(*required_fields):
    """
    Require a JSON object body containing ``required_fields``.

    The parsed body is passed to the view as the ``data`` keyword argument.
    A field that is present but null counts as missing.

    Usage:
        @translate_bp.route('', methods=['POST'])
        @validate_json('texts', 'target')
        def translate(data):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not request.is_json:
                return error_response('Content-Type must be application/json')

            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return error_response('Request body must be a JSON object')

            missing = [name for name in required_fields if data.get(name) is None]
            if missing:
                return error_response('Missing required fields', missing_fields=missing)

            kwargs['data'] = data
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def handle_service_errors(f):
    """
    Convert domain errors into JSON error responses.

    PlantCareError subclasses carry their own HTTP status and a localised
    message; ValueError from argument parsing becomes a 400.

    Usage:
        @scan_bp.route('/camera/start', methods=['POST'])
        @handle_service_errors
        def start_camera():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)

        except PlantCareError as e:
            error_type = e.__class__.__name__
            log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
            log(f"{error_type}: {e.message}")
            return error_response(
                e.message,
                status_code=e.status_code,
                type=error_type,
                language=e.language
            )

        except ValueError as e:
            current_app.logger.warning(f"Invalid request: {e}")
            return error_response(str(e))

    return decorated_function


def validate_file_upload(required=True, allowed_extensions=None, max_size_mb=16):
    """
    Pull the uploaded image from the ``image`` (or ``file``) form field.

    The file is passed to the view as the ``file`` keyword argument, or
    None when the upload is optional and absent.

    Args:
        required: Reject requests without a file
        allowed_extensions: Accepted extensions (config ALLOWED_EXTENSIONS if None)
        max_size_mb: Request size limit for this route

    Usage:
        @scan_bp.route('/analyze', methods=['POST'])
        @validate_file_upload()
        def analyze_upload(file):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            file = request.files.get('image') or request.files.get('file')

            if file is None or file.filename == '':
                if required:
                    return error_response(
                        'No image file provided',
                        details='Upload an image using the "image" or "file" field'
                    )
                kwargs['file'] = None
                return f(*args, **kwargs)

            if allowed_extensions:
                valid = ('.' in file.filename and
                         file.filename.rsplit('.', 1)[1].lower() in allowed_extensions)
            else:
                valid = allowed_file(file.filename)

            if not valid:
                extensions = allowed_extensions or current_app.config.get('ALLOWED_EXTENSIONS', set())
                return error_response('Invalid file type', allowed_extensions=sorted(extensions))

            content_length = request.content_length
            if content_length and content_length > max_size_mb * 1024 * 1024:
                return error_response(
                    f'File too large. Maximum size is {max_size_mb}MB',
                    status_code=413
                )

            kwargs['file'] = file
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def log_request(f):
    """Log method, path and client address, then the response status."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        current_app.logger.info(f"{request.method} {request.path} from {request.remote_addr}")

        response = f(*args, **kwargs)

        if isinstance(response, tuple):
            status_code = response[1] if len(response) > 1 else 200
        else:
            status_code = getattr(response, 'status_code', 200)
        current_app.logger.info(f"{request.method} {request.path} -> {status_code}")

        return response
    return decorated_function
