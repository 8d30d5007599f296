# =============================================================================
# PlantCare AI Backend
# app.py - Application Factory & Entry Point
#
# Flask application factory pattern implementation with extension
# initialization, service wiring, blueprint registration and error handlers.
# =============================================================================

import os
import atexit
import logging
from flask import Flask, jsonify

from plantcare import __version__
from plantcare.config import get_config
from plantcare.extensions import cors, limiter
from plantcare.logging_config import setup_logger
from plantcare.utils import error_response


def create_app(config_name=None):
    """
    Application factory function.

    Creates and configures the Flask application with all extensions,
    services, blueprints, and error handlers.

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
                    Defaults to FLASK_ENV environment variable or 'development'

    Returns:
        Flask: Configured Flask application instance
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)

    # Load configuration
    app.config.from_object(get_config(config_name))

    setup_logging(app)

    init_extensions(app)

    # External adapters and the live scanner
    init_services(app)

    register_blueprints(app)

    register_error_handlers(app)

    app.logger.info(f"PlantCare AI API started in {config_name} mode")

    return app


def setup_logging(app):
    """
    Configure application logging.

    The 'plantcare' logger (used by the scan core and services) gets the
    console/rotating-file handlers; the Flask logger follows its level.
    """
    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    setup_logger(
        'plantcare',
        log_dir=app.config.get('LOG_DIR') or None,
        console_level=log_level
    )

    app.logger.setLevel(log_level)


def init_extensions(app):
    """
    Initialize Flask extensions with the application instance.

    Extensions are created in extensions.py without app context,
    then initialized here with the app instance.
    """
    # CORS - Cross Origin Resource Sharing
    cors.init_app(
        app,
        origins=app.config.get('CORS_ORIGINS', ['http://localhost:5173']),
        allow_headers=['Content-Type', 'Accept-Language'],
        methods=['GET', 'POST', 'OPTIONS']
    )

    # Rate limiting
    limiter.init_app(app)

    app.logger.info("Flask extensions initialized")


def init_services(app):
    """
    Create the service objects and store them in app config for the routes.

    Without GEMINI_API_KEY the AI diagnosis and weather advice are disabled;
    everything else still works.
    """
    from plantcare.scan import ExternalAnalysisBridge, build_scheduler
    from plantcare.services import (
        InsightsService,
        RouteService,
        TranslationService,
        VisionClient,
        WeatherService,
        create_provider,
        get_plant_database
    )

    vision_client = None
    bridge = None
    if app.config.get('GEMINI_API_KEY'):
        vision_client = VisionClient(app.config['GEMINI_API_KEY'], model=app.config['GEMINI_MODEL'])
        bridge = ExternalAnalysisBridge(vision_client)
    else:
        app.logger.warning("GEMINI_API_KEY not set - AI diagnosis disabled")

    scheduler = build_scheduler(
        profile_name=app.config['SCAN_PROFILE'],
        sensitivity=app.config['SCAN_SENSITIVITY'],
        demo_jitter=app.config['SCAN_DEMO_JITTER'],
        seed=app.config['SCAN_SEED'],
        camera_index=app.config['CAMERA_INDEX'],
        camera_width=app.config['CAMERA_WIDTH'],
        camera_height=app.config['CAMERA_HEIGHT'],
        fps=app.config['SCAN_FPS'],
        bridge=bridge,
        language=app.config['SCAN_LANGUAGE']
    )
    atexit.register(scheduler.close)

    plant_database = get_plant_database()

    app.config['VISION_CLIENT'] = vision_client
    app.config['ANALYSIS_BRIDGE'] = bridge
    app.config['SCAN_SCHEDULER'] = scheduler
    app.config['PLANT_DATABASE'] = plant_database
    app.config['WEATHER_SERVICE'] = WeatherService(app.config['OPENWEATHER_API_KEY'])
    app.config['PLACE_PROVIDER'] = create_provider(
        app.config['PLACE_SEARCH_PROVIDER'],
        maptiler_api_key=app.config['MAPTILER_API_KEY']
    )
    app.config['ROUTE_SERVICE'] = RouteService()
    app.config['TRANSLATION_SERVICE'] = TranslationService()
    app.config['INSIGHTS_SERVICE'] = InsightsService(plant_database, vision_client)

    app.logger.info(
        f"Services initialized (scan profile: {app.config['SCAN_PROFILE']}, "
        f"{len(plant_database)} plants)"
    )


def register_blueprints(app):
    """
    Register all API route blueprints.

    All API routes are prefixed with '/api'.
    """
    from plantcare.routes import scan_bp, plants_bp, insights_bp, places_bp, translate_bp

    app.register_blueprint(scan_bp, url_prefix='/api/scan')
    app.register_blueprint(plants_bp, url_prefix='/api/plants')
    app.register_blueprint(insights_bp, url_prefix='/api/insights')
    app.register_blueprint(places_bp, url_prefix='/api/places')
    app.register_blueprint(translate_bp, url_prefix='/api/translate')

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring and load balancers."""
        scheduler = app.config['SCAN_SCHEDULER']
        return jsonify({
            'status': 'healthy',
            'message': 'PlantCare AI API is running',
            'version': __version__,
            'scanner': scheduler.state.value,
            'ai_diagnosis': app.config.get('ANALYSIS_BRIDGE') is not None,
            'weather': bool(app.config.get('OPENWEATHER_API_KEY'))
        }), 200

    @app.route('/', methods=['GET'])
    def index():
        """Root endpoint with API information."""
        return jsonify({
            'name': 'PlantCare AI API',
            'description': 'Live plant disease scanning and crop assistant',
            'version': __version__,
            'health': '/health'
        })

    app.logger.info("Blueprints registered")


def register_error_handlers(app):
    """
    Register global error handlers for common HTTP errors.

    Every error leaves the API in the same JSON envelope as the routes'
    own error responses.
    """
    messages = {
        400: ('Bad Request', None),
        404: ('Not Found', 'The requested resource was not found'),
        405: ('Method Not Allowed', 'The method is not allowed for this endpoint'),
        413: ('File Too Large', 'The uploaded file exceeds the maximum allowed size'),
        429: ('Rate Limit Exceeded', 'Too many requests. Please try again later.'),
    }

    def make_handler(code, title, message):
        def handler(error):
            description = message or getattr(error, 'description', None) or 'Invalid request'
            return error_response(title, status_code=code, message=str(description))
        return handler

    for code, (title, message) in messages.items():
        app.register_error_handler(code, make_handler(code, title, message))

    @app.errorhandler(500)
    def internal_server_error(error):
        app.logger.error(f"Internal server error: {error}")
        return error_response(
            'Internal Server Error',
            status_code=500,
            message='An unexpected error occurred. Please try again later.'
        )

    app.logger.info("Error handlers registered")


# =============================================================================
# Application Entry Point
# =============================================================================

if __name__ == '__main__':
    app = create_app()

    port = int(os.getenv('PORT', 5000))

    app.run(
        host='0.0.0.0',
        port=port,
        debug=app.config['DEBUG'],
        threaded=True
    )
