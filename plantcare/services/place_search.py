# =============================================================================
# PlantCare AI Backend
# services/place_search.py - Farmer Connect Place Search
#
# Nearby agri shops, markets and services through interchangeable map
# providers (OSM Overpass, Nominatim, MapTiler geocoding), plus driving
# routes through OSRM. Every provider returns plain Place records sorted
# by great-circle distance from the origin.
# =============================================================================

import math
import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Tuple

import requests

from plantcare.constants import (
    DEFAULT_SEARCH_RADIUS_KM,
    MAX_SEARCH_RESULTS,
    EARTH_RADIUS_KM
)
from plantcare.exceptions import PlaceSearchError

logger = logging.getLogger(__name__)

OVERPASS_URL = "https://overpass-api.de/api/interpreter"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
MAPTILER_GEOCODING_URL = "https://api.maptiler.com/geocoding/{query}.json"
OSRM_ROUTE_URL = "https://router.project-osrm.org/route/v1/driving/{lng1},{lat1};{lng2},{lat2}"

USER_AGENT = "PlantCareAI/1.0"
OVERPASS_RADIUS_M = 10000
NOMINATIM_VIEWBOX_DEG = 0.5
PROVIDER_LIMIT = 20


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass
class Place:
    name: str
    address: str
    lat: float
    lng: float
    distance_km: float
    category: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data['distance'] = f"{self.distance_km:.2f} km"
        return data


def rank_places(places: List[Place], radius_km: float, limit: int = MAX_SEARCH_RESULTS) -> List[Place]:
    """Keep places within the radius, nearest first."""
    nearby = [p for p in places if p.distance_km <= radius_km]
    nearby.sort(key=lambda p: p.distance_km)
    return nearby[:limit]


def format_address(tags: dict, lat: float, lng: float) -> str:
    if tags.get('full_address'):
        return tags['full_address']
    parts = [tags.get('addr:street'), tags.get('addr:city')]
    address = ', '.join(p for p in parts if p)
    return address or f"Lat: {lat:.4f}, Lon: {lng:.4f}"


class PlaceSearchProvider:
    """Base class: search(query, origin, radius_km) -> list of Place."""

    name = 'base'

    def __init__(self, session=None, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def search(self, query: str, origin: Tuple[float, float],
               radius_km: float = DEFAULT_SEARCH_RADIUS_KM,
               category: Optional[str] = None) -> List[Place]:
        lat, lng = origin
        places = []
        for element in self.fetch(query, lat, lng, radius_km):
            place = self.to_place(element, lat, lng, category or query)
            if place is not None:
                places.append(place)
        return rank_places(places, radius_km)

    def fetch(self, query, lat, lng, radius_km) -> list:
        raise NotImplementedError

    def to_place(self, element, lat, lng, category) -> Optional[Place]:
        raise NotImplementedError

    def _request(self, method, url, **kwargs):
        headers = kwargs.pop('headers', {})
        headers.setdefault('User-Agent', USER_AGENT)
        try:
            response = self.session.request(method, url, headers=headers,
                                            timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"{self.name} request failed: {e}")
            raise PlaceSearchError(f"{self.name} search failed") from e
        except ValueError as e:
            raise PlaceSearchError(f"{self.name} returned invalid JSON") from e


class OverpassProvider(PlaceSearchProvider):
    """OpenStreetMap points of interest through the Overpass API."""

    name = 'overpass'

    def build_query(self, query: str, lat: float, lng: float, radius_km: float) -> str:
        term = query.replace('\\', '\\\\').replace('"', '\\"')
        radius = int(min(radius_km * 1000, OVERPASS_RADIUS_M))
        around = f"(around:{radius},{lat},{lng})"
        return (
            "[out:json][timeout:25];\n"
            "(\n"
            f'  node["shop"="{term}"]{around};\n'
            f'  node["amenity"="{term}"]{around};\n'
            f'  node["name"~"{term}",i]{around};\n'
            f'  way["shop"="{term}"]{around};\n'
            f'  way["amenity"="{term}"]{around};\n'
            f'  way["name"~"{term}",i]{around};\n'
            ");\n"
            "out center;"
        )

    def fetch(self, query, lat, lng, radius_km):
        data = self._request('POST', OVERPASS_URL,
                             data={'data': self.build_query(query, lat, lng, radius_km)})
        return data.get('elements') or []

    def to_place(self, element, lat, lng, category):
        center = element.get('center') or {}
        p_lat = element.get('lat', center.get('lat'))
        p_lng = element.get('lon', center.get('lon'))
        if p_lat is None or p_lng is None:
            return None

        tags = element.get('tags') or {}
        return Place(
            name=tags.get('name') or f"{category} location",
            address=format_address(tags, p_lat, p_lng),
            lat=float(p_lat),
            lng=float(p_lng),
            distance_km=haversine_km(lat, lng, p_lat, p_lng),
            category=category
        )


class NominatimProvider(PlaceSearchProvider):
    """OpenStreetMap Nominatim geocoder bounded to a box around the origin."""

    name = 'nominatim'

    def fetch(self, query, lat, lng, radius_km):
        d = NOMINATIM_VIEWBOX_DEG
        data = self._request('GET', NOMINATIM_URL, params={
            'format': 'json',
            'q': query,
            'bounded': 1,
            'viewbox': f"{lng - d},{lat - d},{lng + d},{lat + d}",
            'limit': PROVIDER_LIMIT
        })
        return data if isinstance(data, list) else []

    def to_place(self, element, lat, lng, category):
        try:
            p_lat = float(element['lat'])
            p_lng = float(element['lon'])
        except (KeyError, TypeError, ValueError):
            return None

        display_name = element.get('display_name', '')
        return Place(
            name=display_name.split(',')[0] or f"{category} location",
            address=display_name or format_address({}, p_lat, p_lng),
            lat=p_lat,
            lng=p_lng,
            distance_km=haversine_km(lat, lng, p_lat, p_lng),
            category=category
        )


class MapTilerProvider(PlaceSearchProvider):
    """MapTiler geocoding API (requires MAPTILER_API_KEY)."""

    name = 'maptiler'

    def __init__(self, api_key: str, session=None, timeout: float = 30.0):
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key

    def fetch(self, query, lat, lng, radius_km):
        if not self.api_key:
            raise PlaceSearchError("MAPTILER_API_KEY not configured")

        url = MAPTILER_GEOCODING_URL.format(query=requests.utils.quote(query, safe=''))
        data = self._request('GET', url, params={
            'key': self.api_key,
            'proximity': f"{lng},{lat}",
            'limit': PROVIDER_LIMIT
        })
        return data.get('features') or []

    def to_place(self, element, lat, lng, category):
        center = element.get('center') or (element.get('geometry') or {}).get('coordinates')
        if not center or len(center) < 2:
            return None

        p_lng, p_lat = float(center[0]), float(center[1])
        return Place(
            name=element.get('text') or f"{category} location",
            address=element.get('place_name') or format_address({}, p_lat, p_lng),
            lat=p_lat,
            lng=p_lng,
            distance_km=haversine_km(lat, lng, p_lat, p_lng),
            category=category
        )


class FallbackProvider(PlaceSearchProvider):
    """Try providers in order until one finds something nearby."""

    name = 'fallback'

    def __init__(self, providers: List[PlaceSearchProvider]):
        super().__init__()
        self.providers = providers

    def search(self, query, origin, radius_km=DEFAULT_SEARCH_RADIUS_KM, category=None):
        last_error = None
        for provider in self.providers:
            try:
                places = provider.search(query, origin, radius_km, category)
            except PlaceSearchError as e:
                logger.warning(f"{provider.name} failed, trying next provider: {e}")
                last_error = e
                continue
            if places:
                return places
            logger.info(f"{provider.name} found nothing for '{query}'")

        if last_error is not None:
            raise last_error
        return []


def create_provider(name: str, maptiler_api_key: str = '', session=None) -> PlaceSearchProvider:
    """Provider selected by the PLACE_SEARCH_PROVIDER setting."""
    name = (name or 'fallback').lower()
    if name == 'overpass':
        return OverpassProvider(session=session)
    if name == 'nominatim':
        return NominatimProvider(session=session)
    if name == 'maptiler':
        return MapTilerProvider(maptiler_api_key, session=session)
    if name == 'fallback':
        return FallbackProvider([
            OverpassProvider(session=session),
            NominatimProvider(session=session)
        ])
    raise ValueError(f"Unknown place search provider: {name}")


class RouteService:
    """Driving routes through the public OSRM server."""

    def __init__(self, session=None, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def route(self, origin: Tuple[float, float], destination: Tuple[float, float]) -> dict:
        """
        Returns:
            dict: distance_km, duration_min and [lat, lng] coordinates

        Raises:
            PlaceSearchError: No route or request failure
        """
        (lat1, lng1), (lat2, lng2) = origin, destination
        url = OSRM_ROUTE_URL.format(lng1=lng1, lat1=lat1, lng2=lng2, lat2=lat2)

        try:
            response = self.session.get(
                url,
                params={'overview': 'full', 'geometries': 'geojson'},
                headers={'User-Agent': USER_AGENT},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"OSRM request failed: {e}")
            raise PlaceSearchError("Routing failed") from e
        except ValueError as e:
            raise PlaceSearchError("Routing returned invalid JSON") from e

        routes = data.get('routes') or []
        if not routes:
            raise PlaceSearchError("Route not found")

        route = routes[0]
        return {
            'distance_km': round(route['distance'] / 1000, 2),
            'duration_min': round(route['duration'] / 60, 1),
            'coordinates': [[c[1], c[0]] for c in route['geometry']['coordinates']]
        }
