# =============================================================================
# PlantCare AI Backend
# exceptions.py - Domain Exceptions
#
# Errors raised by the scan core and the external service adapters.
# Routes translate them into JSON error responses.
# =============================================================================

from plantcare.constants import DEFAULT_LANGUAGE, get_message


class PlantCareError(Exception):
    """Base class for all application errors."""

    status_code = 500
    message_key = None

    def __init__(self, message=None, language=DEFAULT_LANGUAGE):
        if message is None and self.message_key:
            message = get_message(self.message_key, language)
        super().__init__(message or self.__class__.__name__)
        self.message = str(self)
        self.language = language


class CameraUnavailableError(PlantCareError):
    """The camera could not be opened (permission, missing device)."""

    status_code = 503
    message_key = 'CAMERA_DENIED'


class CameraAlreadyActiveError(PlantCareError):
    """A second stream was requested while one is already open."""

    status_code = 409
    message_key = 'CAMERA_ALREADY_ACTIVE'


class ScannerStateError(PlantCareError):
    """Operation not allowed in the current scanner state."""

    status_code = 409
    message_key = 'CAMERA_NOT_ACTIVE'


class InvalidFrameError(PlantCareError):
    """Image bytes could not be decoded into a frame."""

    status_code = 400
    message_key = 'INVALID_IMAGE'


class DiagnosisError(PlantCareError):
    """The AI diagnosis failed; carries a user-facing localised message."""

    status_code = 502
    message_key = 'ANALYSIS_FAILED'


class VisionServiceError(PlantCareError):
    """The generative AI collaborator returned an error or nothing."""

    status_code = 502


class WeatherServiceError(PlantCareError):
    status_code = 502
    message_key = 'WEATHER_FAILED'


class PlaceSearchError(PlantCareError):
    status_code = 502
