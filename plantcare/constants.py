"""
PlantCare AI - Shared Constants
Common constants used by the scan core, the API and the CLI
"""

# =============================================================================
# Supported Languages
# =============================================================================
DEFAULT_LANGUAGE = 'en'
SUPPORTED_LANGUAGES = ['en', 'kn']

# =============================================================================
# Severity Levels
# =============================================================================
SEVERITY_HEALTHY = 'healthy'
SEVERITY_MODERATE = 'moderate'
SEVERITY_DISEASED = 'diseased'

# Ordered from most severe to least severe (evaluation order)
SEVERITY_LEVELS = [SEVERITY_DISEASED, SEVERITY_MODERATE, SEVERITY_HEALTHY]

SEVERITY_COLORS = {
    SEVERITY_DISEASED: '#EF4444',   # Red
    SEVERITY_MODERATE: '#F59E0B',   # Amber
    SEVERITY_HEALTHY: '#10B981'     # Emerald
}

# Used when colour coding is switched off
NEUTRAL_COLOR = '#3B82F6'           # Blue

SEVERITY_LABELS = {
    'en': {
        SEVERITY_DISEASED: 'Diseased',
        SEVERITY_MODERATE: 'Moderate',
        SEVERITY_HEALTHY: 'Healthy'
    },
    'kn': {
        SEVERITY_DISEASED: 'ರೋಗಗ್ರಸ್ತ',
        SEVERITY_MODERATE: 'ಮಧ್ಯಮ',
        SEVERITY_HEALTHY: 'ಆರೋಗ್ಯಕರ'
    }
}

# =============================================================================
# Scan Defaults
# =============================================================================
DEFAULT_SENSITIVITY = 70
MIN_SENSITIVITY = 0
MAX_SENSITIVITY = 100

CAMERA_WIDTH = 1280
CAMERA_HEIGHT = 720
SCAN_FPS = 30

JPEG_QUALITY = 90

# =============================================================================
# Plant Encyclopedia
# =============================================================================
PLANT_CATEGORIES = ['vegetable', 'fruit', 'flower', 'herb', 'tree', 'grain']

MONSOON_MONTHS = [6, 7, 8, 9]           # June-September
WINTER_MONTHS = [10, 11, 12, 1, 2]      # October-February
SUMMER_MONTHS = [3, 4, 5]               # March-May

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]

# =============================================================================
# Farmer Connect
# =============================================================================
DEFAULT_SEARCH_RADIUS_KM = 50
MAX_SEARCH_RESULTS = 15
EARTH_RADIUS_KM = 6371

# Bengaluru, used when the client does not send a location
DEFAULT_LOCATION = (12.9716, 77.5946)

# =============================================================================
# Localised Messages
# =============================================================================
MESSAGES = {
    'en': {
        'CAMERA_DENIED': 'Camera access denied. Please check permissions.',
        'CAMERA_ALREADY_ACTIVE': 'Camera is already active.',
        'CAMERA_NOT_ACTIVE': 'Camera is not active. Start the camera first.',
        'ANALYSIS_FAILED': 'Analysis failed. Please try again.',
        'ANALYSIS_IN_PROGRESS': 'An analysis is already running.',
        'INVALID_IMAGE': 'Invalid or corrupt image file',
        'WEATHER_FAILED': 'Could not fetch weather for this city.',
        'NO_PLACES': 'No places found nearby. Try a different search.',
        'ROUTE_NOT_FOUND': 'Route not found.'
    },
    'kn': {
        'CAMERA_DENIED': 'ಕ್ಯಾಮೆರಾ ಪ್ರವೇಶ ನಿರಾಕರಿಸಲಾಗಿದೆ. ದಯವಿಟ್ಟು ಅನುಮತಿಗಳನ್ನು ಪರಿಶೀಲಿಸಿ.',
        'CAMERA_ALREADY_ACTIVE': 'ಕ್ಯಾಮೆರಾ ಈಗಾಗಲೇ ಸಕ್ರಿಯವಾಗಿದೆ.',
        'CAMERA_NOT_ACTIVE': 'ಕ್ಯಾಮೆರಾ ಸಕ್ರಿಯವಾಗಿಲ್ಲ. ಮೊದಲು ಕ್ಯಾಮೆರಾ ಪ್ರಾರಂಭಿಸಿ.',
        'ANALYSIS_FAILED': 'ವಿಶ್ಲೇಷಣೆ ವಿಫಲವಾಗಿದೆ. ದಯವಿಟ್ಟು ಮತ್ತೆ ಪ್ರಯತ್ನಿಸಿ.',
        'ANALYSIS_IN_PROGRESS': 'ವಿಶ್ಲೇಷಣೆ ಈಗಾಗಲೇ ನಡೆಯುತ್ತಿದೆ.',
        'INVALID_IMAGE': 'ಅಮಾನ್ಯ ಚಿತ್ರ ಫೈಲ್',
        'WEATHER_FAILED': 'ಈ ನಗರದ ಹವಾಮಾನ ಪಡೆಯಲು ಸಾಧ್ಯವಾಗಲಿಲ್ಲ.',
        'NO_PLACES': 'ಹತ್ತಿರದಲ್ಲಿ ಯಾವುದೇ ಸ್ಥಳಗಳು ಕಂಡುಬಂದಿಲ್ಲ.',
        'ROUTE_NOT_FOUND': 'ಮಾರ್ಗ ಕಂಡುಬಂದಿಲ್ಲ.'
    }
}


def get_message(key, language=DEFAULT_LANGUAGE):
    """Look up a localised message, falling back to English."""
    messages = MESSAGES.get(language, MESSAGES[DEFAULT_LANGUAGE])
    return messages.get(key, MESSAGES[DEFAULT_LANGUAGE].get(key, key))


def get_severity_label(severity, language=DEFAULT_LANGUAGE):
    """Localised display label for a severity tier."""
    labels = SEVERITY_LABELS.get(language, SEVERITY_LABELS[DEFAULT_LANGUAGE])
    return labels.get(severity, severity.title())
