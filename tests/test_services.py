import pytest
import requests

from conftest import FakeResponse, FakeSession, FakeVisionClient
from plantcare.exceptions import PlaceSearchError, VisionServiceError, WeatherServiceError
from plantcare.services import (
    FallbackProvider,
    InsightsService,
    MapTilerProvider,
    NominatimProvider,
    OverpassProvider,
    PlantDatabase,
    RouteService,
    TranslationService,
    WeatherService,
    create_provider,
    is_text_in_expected_script,
    monthly_climate
)
from plantcare.services.insights_service import build_crop_context, parse_month
from plantcare.services.place_search import Place, haversine_km, rank_places

BENGALURU = (12.9716, 77.5946)


# =============================================================================
# Place search
# =============================================================================

class TestPlaceSearch:

    def test_haversine(self):
        assert haversine_km(12.0, 77.0, 12.0, 77.0) == 0
        assert haversine_km(12.0, 77.0, 13.0, 77.0) == pytest.approx(111.19, abs=0.01)

    def test_rank_places(self):
        places = [Place(f"p{d}", "", 0, 0, d) for d in (30, 5, 80, 12)]
        ranked = rank_places(places, radius_km=50)
        assert [p.distance_km for p in ranked] == [5, 12, 30]
        assert len(rank_places(places, radius_km=100, limit=2)) == 2

    def test_place_to_dict(self):
        data = Place("Green Nursery", "MG Road", 12.9, 77.6, 3.14159, 'nursery').to_dict()
        assert data['distance'] == '3.14 km'
        assert data['category'] == 'nursery'

    def test_overpass_query_escapes_term(self):
        query = OverpassProvider().build_query('seed "shop"', 12.97, 77.59, 50)
        assert 'seed \\"shop\\"' in query
        assert '(around:10000,12.97,77.59)' in query

    def test_overpass_search(self):
        session = FakeSession(FakeResponse({'elements': [
            {'lat': 12.98, 'lon': 77.60, 'tags': {'name': 'Near Nursery', 'addr:street': 'MG Road'}},
            {'center': {'lat': 13.2, 'lon': 77.7}, 'tags': {}},
            {'tags': {'name': 'No coordinates'}}
        ]}))
        places = OverpassProvider(session=session).search('nursery', BENGALURU)

        assert [p.name for p in places] == ['Near Nursery', 'nursery location']
        assert places[0].address == 'MG Road'
        assert places[1].address.startswith('Lat: 13.2000')
        assert session.calls[0]['method'] == 'POST'
        assert session.calls[0]['headers']['User-Agent'] == 'PlantCareAI/1.0'

    def test_nominatim_search(self):
        session = FakeSession(FakeResponse([
            {'lat': '12.99', 'lon': '77.61', 'display_name': 'Agro Center, Hebbal, Bengaluru'}
        ]))
        places = NominatimProvider(session=session).search('agro', BENGALURU, radius_km=20)

        assert places[0].name == 'Agro Center'
        assert session.calls[0]['params']['bounded'] == 1

    def test_maptiler_requires_key(self):
        with pytest.raises(PlaceSearchError):
            MapTilerProvider('', session=FakeSession()).search('seeds', BENGALURU)

    def test_maptiler_search(self):
        session = FakeSession(FakeResponse({'features': [
            {'text': 'Seed Store', 'place_name': 'Seed Store, Jayanagar', 'center': [77.58, 12.93]}
        ]}))
        places = MapTilerProvider('k', session=session).search('seeds', BENGALURU)
        assert (places[0].lat, places[0].lng) == (12.93, 77.58)

    def test_request_failure(self):
        session = FakeSession(error=requests.Timeout("slow"))
        with pytest.raises(PlaceSearchError):
            OverpassProvider(session=session).search('nursery', BENGALURU)

    def test_fallback_uses_next_provider(self):
        failing = OverpassProvider(session=FakeSession(error=requests.ConnectionError("down")))
        working = NominatimProvider(session=FakeSession(FakeResponse([
            {'lat': '12.98', 'lon': '77.60', 'display_name': 'Kisan Kendra'}
        ])))
        places = FallbackProvider([failing, working]).search('kisan', BENGALURU)
        assert places[0].name == 'Kisan Kendra'

    def test_fallback_reraises_when_all_fail(self):
        failing = OverpassProvider(session=FakeSession(error=requests.ConnectionError("down")))
        with pytest.raises(PlaceSearchError):
            FallbackProvider([failing]).search('kisan', BENGALURU)

    def test_fallback_empty_result(self):
        empty = NominatimProvider(session=FakeSession(FakeResponse([])))
        assert FallbackProvider([empty]).search('kisan', BENGALURU) == []

    def test_create_provider(self):
        assert isinstance(create_provider('overpass'), OverpassProvider)
        assert isinstance(create_provider('fallback'), FallbackProvider)
        with pytest.raises(ValueError):
            create_provider('bing')

    def test_route(self):
        session = FakeSession(FakeResponse({'routes': [{
            'distance': 12340,
            'duration': 1500,
            'geometry': {'coordinates': [[77.59, 12.97], [77.60, 12.98]]}
        }]}))
        route = RouteService(session=session).route(BENGALURU, (12.98, 77.60))

        assert route == {
            'distance_km': 12.34,
            'duration_min': 25.0,
            'coordinates': [[12.97, 77.59], [12.98, 77.60]]
        }
        assert '77.5946,12.9716;77.6,12.98' in session.calls[0]['url']

    def test_route_not_found(self):
        session = FakeSession(FakeResponse({'routes': []}))
        with pytest.raises(PlaceSearchError):
            RouteService(session=session).route(BENGALURU, (0, 0))


# =============================================================================
# Weather
# =============================================================================

OPENWEATHER_REPLY = {
    'name': 'Mysuru',
    'main': {'temp': 27.4, 'humidity': 71},
    'weather': [{'description': 'light rain', 'icon': '10d'}],
    'rain': {'1h': 0.6}
}


class TestWeatherService:

    def test_fetch_weather(self):
        session = FakeSession(FakeResponse(OPENWEATHER_REPLY))
        weather = WeatherService('key', session=session).fetch_weather('Mysuru')

        assert weather['temperature'] == 27.4
        assert weather['humidity'] == 71
        assert weather['rain'] == 0.6
        assert weather['icon_url'].endswith('10d@2x.png')
        assert session.calls[0]['params']['q'] == 'Mysuru,IN'

    def test_no_rain_field(self):
        reply = dict(OPENWEATHER_REPLY)
        del reply['rain']
        weather = WeatherService('key', session=FakeSession(FakeResponse(reply))).fetch_weather('Mysuru')
        assert weather['rain'] == 0

    @pytest.mark.parametrize('api_key, city, session', [
        ('key', '', FakeSession(FakeResponse(OPENWEATHER_REPLY))),
        ('', 'Mysuru', FakeSession(FakeResponse(OPENWEATHER_REPLY))),
        ('key', 'Atlantis', FakeSession(FakeResponse({}, status_code=404))),
        ('key', 'Mysuru', FakeSession(error=requests.ConnectionError("offline"))),
        ('key', 'Mysuru', FakeSession(FakeResponse({'unexpected': True})))
    ])
    def test_failures(self, api_key, city, session):
        with pytest.raises(WeatherServiceError):
            WeatherService(api_key, session=session).fetch_weather(city)


# =============================================================================
# Translation
# =============================================================================

class FakeTranslator:
    calls = 0

    def __init__(self, target, reply=None, error=None):
        self.target = target
        self.reply = reply
        self.error = error

    def translate(self, text):
        FakeTranslator.calls += 1
        if self.error:
            raise self.error
        return self.reply if self.reply is not None else f"[{self.target}] {text}"


class TestTranslationService:

    def setup_method(self):
        FakeTranslator.calls = 0

    def test_script_check(self):
        assert is_text_in_expected_script('ನೀರು ಹಾಕಿ', 'kn')
        assert not is_text_in_expected_script('neeru haaki', 'kn')
        assert is_text_in_expected_script('water', 'en')
        assert is_text_in_expected_script('anything', 'xx')

    def test_translation_is_cached(self):
        service = TranslationService(lambda target: FakeTranslator(target, reply='ನೀರು'))
        assert service.translate('water', 'kn') == ('ನೀರು', True)
        assert service.translate('water', 'kn') == ('ನೀರು', True)
        assert FakeTranslator.calls == 1
        assert service.cache_size() == 1

        service.clear_cache()
        assert service.cache_size() == 0

    def test_cache_evicts_least_recently_used(self):
        service = TranslationService(lambda target: FakeTranslator(target), max_cache_size=2)
        service.translate('a', 'hi')
        service.translate('b', 'hi')
        service.translate('a', 'hi')
        service.translate('c', 'hi')

        assert service.cache_size() == 2
        assert FakeTranslator.calls == 3

        service.translate('a', 'hi')
        assert FakeTranslator.calls == 3
        service.translate('b', 'hi')
        assert FakeTranslator.calls == 4

    def test_wrong_script_is_flagged(self):
        service = TranslationService(lambda target: FakeTranslator(target, reply='neeru'))
        assert service.translate('water', 'kn') == ('neeru', False)

    def test_failure_returns_original(self):
        service = TranslationService(lambda target: FakeTranslator(target, error=RuntimeError("blocked")))
        assert service.translate('water', 'kn') == ('water', False)
        assert service.cache_size() == 0

    def test_empty_text(self):
        service = TranslationService(lambda target: FakeTranslator(target))
        assert service.translate('', 'kn') == ('', True)
        assert FakeTranslator.calls == 0

    def test_translate_many(self):
        service = TranslationService(lambda target: FakeTranslator(target))
        assert [t for t, _ in service.translate_many(['a', 'b'], 'hi')] == ['[hi] a', '[hi] b']


# =============================================================================
# Insights
# =============================================================================

class TestInsights:

    @pytest.mark.parametrize('value, expected', [(6, 6), ('6', 6), ('June', 6), ('jun', 6), ('DEC', 12)])
    def test_parse_month(self, value, expected):
        assert parse_month(value) == expected

    @pytest.mark.parametrize('value', [0, '13', 'ju', 'Smarch', None])
    def test_parse_month_rejects(self, value):
        with pytest.raises(ValueError):
            parse_month(value)

    def test_monthly_climate(self):
        climate = monthly_climate()
        assert len(climate) == 12
        assert climate[6] == {'month': 'Jul', 'temperature': 27, 'rain': 60}

    def test_crop_insights(self):
        insights = InsightsService(PlantDatabase()).get_crop_insights('Kolar', 'December')

        assert insights['month'] == 'December'
        assert 'Tomato' in insights['all_crops']
        assert 'Tomato' in insights['suitable_crops']
        assert set(insights['suitable_crops']) <= set(insights['all_crops'])

    def test_crop_context(self):
        insights = {'district': 'Kolar', 'month': 'June', 'suitable_crops': ['Tomato', 'Neem']}
        text = build_crop_context(insights, city='Kolar', crop='Tomato')
        assert text.startswith('The most suitable crops for Kolar in June are: Tomato, Neem.')
        assert text.endswith('User is interested in: Tomato')

    def test_advice_without_client(self):
        assert InsightsService(PlantDatabase()).get_weather_advice({'temperature': 30}) is None

    def test_advice_prompt(self):
        client = FakeVisionClient(reply='Irrigate in the evening.')
        service = InsightsService(PlantDatabase(), client)

        advice = service.get_weather_advice(
            {'temperature': 30, 'humidity': 40, 'description': 'clear sky'},
            context='Tomato season', language='kn'
        )

        assert advice == 'Irrigate in the evening.'
        prompt = client.calls[0]['prompt']
        assert 'Kannada' in prompt
        assert 'Tomato season' in prompt
        assert client.calls[0]['image'] is None

    def test_advice_failure(self):
        client = FakeVisionClient(error=VisionServiceError("down"))
        assert InsightsService(PlantDatabase(), client).get_weather_advice({}) is None
