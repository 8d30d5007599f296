# =============================================================================
# PlantCare AI Backend
# routes/insights.py - Farming Insights Routes
#
# Current weather, crops suited to a Karnataka district and month, the
# monthly climate table, and AI farming advice for the weather.
# =============================================================================

from flask import Blueprint, request, current_app

from plantcare.extensions import limiter
from plantcare.services import monthly_climate
from plantcare.services.insights_service import build_crop_context
from plantcare.utils import success_response, error_response, get_language
from plantcare.decorators import handle_service_errors, log_request, validate_json

# Create blueprint
insights_bp = Blueprint('insights', __name__)


@insights_bp.route('/weather', methods=['GET'])
@limiter.limit("30 per minute")
@handle_service_errors
def get_weather():
    """
    Current weather for a city.

    Query:
        city (str): City name - required

    Returns:
        200: temperature, humidity, rain, description, icon_url
        400: Missing city
        502: Weather service unavailable or city unknown
    """
    city = request.args.get('city', '').strip()
    if not city:
        return error_response('City is required', status_code=400)

    weather = current_app.config['WEATHER_SERVICE'].fetch_weather(city, language=get_language())
    return success_response(weather)


@insights_bp.route('/crops', methods=['GET'])
@handle_service_errors
def get_crops():
    """
    Crops grown in a district and those in season for a month.

    Query:
        district (str): Karnataka district - required
        month (str|int): Month name or 1-12 - required
    """
    district = request.args.get('district', '').strip()
    month = request.args.get('month', '').strip()
    if not district or not month:
        return error_response('district and month are required', status_code=400)

    insights = current_app.config['INSIGHTS_SERVICE'].get_crop_insights(district, month)
    return success_response(insights)


@insights_bp.route('/climate', methods=['GET'])
def get_climate():
    """Average monthly temperature and rainfall for Karnataka."""
    return success_response({'months': monthly_climate()})


@insights_bp.route('/advice', methods=['POST'])
@limiter.limit("10 per minute")
@log_request
@handle_service_errors
@validate_json('city')
def get_advice(data):
    """
    AI farming advice for the current weather.

    Body:
        city (str): City for the weather lookup - required
        district, month (str): Add crop suitability context - optional
        crop (str): Crop the farmer is interested in - optional
        language (str): 'en' or 'kn' - optional

    Returns:
        200: weather, insights (if district/month given), advice
        503: AI advice unavailable
    """
    language = get_language(data)
    weather = current_app.config['WEATHER_SERVICE'].fetch_weather(data['city'], language=language)
    service = current_app.config['INSIGHTS_SERVICE']

    insights = None
    context = ''
    if data.get('district') and data.get('month'):
        insights = service.get_crop_insights(data['district'], data['month'])
        context = build_crop_context(insights, city=data['city'], crop=data.get('crop'))

    advice = service.get_weather_advice(weather, context=context, language=language)
    if advice is None:
        return error_response('AI advice is not available', status_code=503)

    return success_response({'weather': weather, 'insights': insights, 'advice': advice})
