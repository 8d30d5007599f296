# =============================================================================
# PlantCare AI Backend
# services/weather_service.py - Current Weather
#
# OpenWeatherMap current-weather lookup by city name.
# =============================================================================

import logging

import requests

from plantcare.exceptions import WeatherServiceError

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
OPENWEATHER_ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"
DEFAULT_COUNTRY = "IN"


class WeatherService:
    """
    Current weather for a city.

    Args:
        api_key: OpenWeatherMap API key
        country: Country code appended to city queries
        timeout: Request timeout in seconds
        session: Optional requests.Session
    """

    def __init__(self, api_key: str, country: str = DEFAULT_COUNTRY,
                 timeout: float = 8.0, session=None):
        self.api_key = api_key
        self.country = country
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_weather(self, city: str, language: str = 'en') -> dict:
        """
        Returns:
            dict: city, temperature (C), humidity (%), rain (mm last hour),
                description, icon, icon_url

        Raises:
            WeatherServiceError: Missing key, unknown city or network error
        """
        city = (city or '').strip()
        if not city:
            raise WeatherServiceError("City is required", language=language)
        if not self.api_key:
            raise WeatherServiceError("OPENWEATHER_API_KEY not configured", language=language)

        query = f"{city},{self.country}" if self.country else city

        try:
            response = self.session.get(
                OPENWEATHER_URL,
                params={"q": query, "units": "metric", "appid": self.api_key},
                timeout=self.timeout
            )
            if response.status_code == 404:
                raise WeatherServiceError(language=language)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Weather fetch failed for {city}: {e}")
            raise WeatherServiceError(language=language) from e
        except ValueError as e:
            raise WeatherServiceError(language=language) from e

        return parse_weather(data, city)


def parse_weather(data: dict, city: str) -> dict:
    """Flatten an OpenWeatherMap response."""
    try:
        main = data['main']
        weather = (data.get('weather') or [{}])[0]
        icon = weather.get('icon', '')
        return {
            'city': data.get('name') or city,
            'temperature': main['temp'],
            'humidity': main['humidity'],
            'rain': (data.get('rain') or {}).get('1h', 0),
            'description': weather.get('description', ''),
            'icon': icon,
            'icon_url': OPENWEATHER_ICON_URL.format(icon=icon) if icon else None
        }
    except (KeyError, TypeError) as e:
        raise WeatherServiceError(f"Unexpected weather response: {e}") from e
