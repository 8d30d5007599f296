# =============================================================================
# PlantCare AI Backend
# services/insights_service.py - Crop & Weather Insights
#
# District/month crop suitability from the plant encyclopedia, static
# Karnataka climate normals for dashboard charts, and weather-based farming
# advice from the generative AI collaborator.
# =============================================================================

import json
import logging
from typing import Optional

from plantcare.constants import DEFAULT_LANGUAGE, MONTH_NAMES
from plantcare.exceptions import VisionServiceError

logger = logging.getLogger(__name__)

# Average temperature (C) and rainfall (cm) per month, Karnataka plains
MONTHLY_CLIMATE = [
    (22, 2), (24, 1), (28, 3), (32, 8), (34, 15), (29, 40),
    (27, 60), (27, 55), (28, 30), (26, 12), (24, 5), (22, 2)
]

ADVICE_PROMPT = (
    "You are an agricultural expert for Karnataka, India. Based on the current "
    "weather below, give 3-5 short, practical farming tips (irrigation, pest and "
    "disease risk, field work, harvest timing).\n"
    "Weather: {weather}\n"
    "Context: {context}\n"
    "Answer in {language_name}."
)

LANGUAGE_NAMES = {
    'en': 'English',
    'kn': 'Kannada'
}


def parse_month(month) -> int:
    """Accept 1-12, 'June' or 'jun'; raises ValueError otherwise."""
    if isinstance(month, int) or (isinstance(month, str) and month.strip().isdigit()):
        value = int(month)
        if 1 <= value <= 12:
            return value
        raise ValueError(f"Month out of range: {month}")

    name = (month or '').strip().lower()
    for index, full in enumerate(MONTH_NAMES, start=1):
        if len(name) >= 3 and full.lower().startswith(name):
            return index
    raise ValueError(f"Unknown month: {month}")


def monthly_climate():
    """Static climate normals for charts."""
    return [
        {'month': MONTH_NAMES[i][:3], 'temperature': temp, 'rain': rain}
        for i, (temp, rain) in enumerate(MONTHLY_CLIMATE)
    ]


class InsightsService:
    """
    Args:
        plant_database: PlantDatabase
        vision_client: VisionClient used for text-only advice (optional)
    """

    def __init__(self, plant_database, vision_client=None):
        self.plant_database = plant_database
        self.vision_client = vision_client

    def get_crop_insights(self, district: str, month) -> dict:
        """
        Crops grown in a district, and the subset in season for the month.

        Returns:
            dict: district, month, suitable_crops, all_crops
        """
        month_number = parse_month(month)
        district_plants = self.plant_database.for_district(district)

        all_crops = [p['name'] for p in district_plants]
        suitable = [
            p['name'] for p in district_plants
            if self.plant_database.in_season(p, month_number)
        ]

        logger.debug(f"{district}/{MONTH_NAMES[month_number - 1]}: "
                     f"{len(suitable)} of {len(all_crops)} crops in season")

        return {
            'district': district,
            'month': MONTH_NAMES[month_number - 1],
            'suitable_crops': suitable,
            'all_crops': all_crops
        }

    def get_weather_advice(self, weather: dict, context: str = '',
                           language: str = DEFAULT_LANGUAGE) -> Optional[str]:
        """
        Farming advice for the weather; None when no AI client is configured
        or the request fails.
        """
        if self.vision_client is None:
            return None

        weather_json = json.dumps({
            'temperature': weather.get('temperature'),
            'humidity': weather.get('humidity'),
            'description': weather.get('description'),
            'rain_last_hour_mm': weather.get('rain') or 0
        })
        prompt = ADVICE_PROMPT.format(
            weather=weather_json,
            context=context or 'none',
            language_name=LANGUAGE_NAMES.get(language, 'English')
        )

        try:
            return self.vision_client.generate(prompt)
        except VisionServiceError as e:
            logger.warning(f"Weather advice unavailable: {e}")
            return None


def build_crop_context(insights: dict, city: Optional[str] = None, crop: Optional[str] = None) -> str:
    """Context sentence passed to the advice prompt."""
    district, month = insights['district'], insights['month']
    if insights['suitable_crops']:
        text = (f"The most suitable crops for {district} in {month} are: "
                f"{', '.join(insights['suitable_crops'])}.")
    else:
        text = f"No suitable crops found for {district} in {month}."
    if city:
        text += f" Current city: {city}"
    if crop:
        text += f", User is interested in: {crop}"
    return text
