# =============================================================================
# PlantCare AI Backend
# config.py - Configuration Management
#
# Environment-driven settings for the API server, the live scanner and the
# external services. A local .env file is read with python-dotenv.
# =============================================================================

import os
from dotenv import load_dotenv

# .env values never override the real environment
load_dotenv()


def _env_bool(name, default='False'):
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


class Config:
    """Scanner, service and web settings shared by every environment."""

    # ==========================================================================
    # Flask Core Settings
    # ==========================================================================
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = False
    TESTING = False
    JSON_SORT_KEYS = False

    # ==========================================================================
    # Rate Limiting Configuration
    # ==========================================================================
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', 'True')
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_STRATEGY = os.getenv('RATELIMIT_STRATEGY', 'fixed-window')
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '200 per hour')
    RATELIMIT_HEADERS_ENABLED = True

    # ==========================================================================
    # CORS Configuration
    # ==========================================================================
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:5173').split(',')

    # ==========================================================================
    # File Upload Configuration
    # ==========================================================================
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size
    ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

    # ==========================================================================
    # Generative AI (disease diagnosis, weather advice)
    # ==========================================================================
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash')

    # ==========================================================================
    # External Services
    # ==========================================================================
    OPENWEATHER_API_KEY = os.getenv('OPENWEATHER_API_KEY', '')
    PLACE_SEARCH_PROVIDER = os.getenv('PLACE_SEARCH_PROVIDER', 'fallback')
    MAPTILER_API_KEY = os.getenv('MAPTILER_API_KEY', '')
    PLACE_SEARCH_RADIUS_KM = float(os.getenv('PLACE_SEARCH_RADIUS_KM', '50'))

    # ==========================================================================
    # Live Scan Configuration
    # ==========================================================================
    SCAN_PROFILE = os.getenv('SCAN_PROFILE', 'sensitivity')
    SCAN_SENSITIVITY = int(os.getenv('SCAN_SENSITIVITY', '70'))
    SCAN_DEMO_JITTER = _env_bool('SCAN_DEMO_JITTER')
    SCAN_SEED = int(os.getenv('SCAN_SEED')) if os.getenv('SCAN_SEED') else None
    SCAN_LANGUAGE = os.getenv('SCAN_LANGUAGE', 'en')
    SCAN_FPS = float(os.getenv('SCAN_FPS', '30'))
    CAMERA_INDEX = int(os.getenv('CAMERA_INDEX', '0'))
    CAMERA_WIDTH = int(os.getenv('CAMERA_WIDTH', '1280'))
    CAMERA_HEIGHT = int(os.getenv('CAMERA_HEIGHT', '720'))

    # ==========================================================================
    # Logging
    # ==========================================================================
    LOG_DIR = os.getenv('LOG_DIR', '')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """
    Local development: debug on, verbose logs.
    """
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')

    # Relaxed rate limiting for development
    RATELIMIT_DEFAULT = '1000 per hour'


class TestingConfig(Config):
    """
    pytest: fixed scan profile, no rate limits, no API keys.
    External services are stubbed by the test suite.
    """
    TESTING = True
    DEBUG = True

    # Disable rate limiting during tests
    RATELIMIT_ENABLED = False

    GEMINI_API_KEY = ''
    OPENWEATHER_API_KEY = ''
    MAPTILER_API_KEY = ''
    LOG_DIR = ''

    SCAN_PROFILE = 'fixed'
    SCAN_DEMO_JITTER = False
    SCAN_FPS = 200


class ProductionConfig(Config):
    """
    Production: file logging and a shared rate-limit store.
    Set SECRET_KEY (and REDIS_URL for multi-worker deployments) in the environment.
    """
    DEBUG = False
    TESTING = False

    # Use Redis for rate limiting in production
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')

    # Stricter rate limits for production
    RATELIMIT_DEFAULT = '100 per hour'

    LOG_DIR = os.getenv('LOG_DIR', 'logs')


# =============================================================================
# Configuration Dictionary
# FLASK_ENV value -> settings class
# =============================================================================
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """
    Get the configuration class for an environment name.

    Falls back to the FLASK_ENV environment variable, then development.

    Returns:
        Config: Configuration class for the environment
    """
    env = config_name or os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
