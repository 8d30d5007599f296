# =============================================================================
# PlantCare AI Backend
# services/__init__.py - Services Package
#
# Adapters for the external collaborators: generative AI, plant
# encyclopedia, weather, map providers and translation.
# =============================================================================

from .vision_client import VisionClient
from .plant_database import PlantDatabase, get_plant_database
from .weather_service import WeatherService
from .place_search import (
    Place,
    PlaceSearchProvider,
    OverpassProvider,
    NominatimProvider,
    MapTilerProvider,
    FallbackProvider,
    RouteService,
    create_provider
)
from .translation_service import TranslationService, is_text_in_expected_script
from .insights_service import InsightsService, monthly_climate

__all__ = [
    'VisionClient',
    'PlantDatabase',
    'get_plant_database',
    'WeatherService',
    'Place',
    'PlaceSearchProvider',
    'OverpassProvider',
    'NominatimProvider',
    'MapTilerProvider',
    'FallbackProvider',
    'RouteService',
    'create_provider',
    'TranslationService',
    'is_text_in_expected_script',
    'InsightsService',
    'monthly_climate'
]
