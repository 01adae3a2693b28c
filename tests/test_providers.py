"""Provider tools against mocked HTTP transports. No network access."""

import json

import httpx
import pytest

from tripwise.middleware.hallucination_guardrail import check_flights
from tripwise.tools.external import country, currency, flights, hotels, places, weather
from tripwise.tools.internal.context_analysis import analyze, analyze_user_context


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def empty_caches():
    for module in (country, currency, hotels, places):
        module.clear_cache()
    yield


class TestWeather:
    def test_current_conditions(self, monkeypatch):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.host == "geocoding-api.open-meteo.com":
                return httpx.Response(200, json={"results": [
                    {"name": "Berlin", "country": "Germany", "latitude": 52.52, "longitude": 13.41}
                ]})
            return httpx.Response(200, json={"current": {
                "temperature_2m": 4.6,
                "apparent_temperature": 1.8,
                "relative_humidity_2m": 81,
                "weather_code": 3,
                "wind_speed_10m": 12.4,
            }})

        monkeypatch.setattr(weather, "_http_client", mock_client(handler))
        result = json.loads(weather.get_weather.invoke({"location": "Berlin"}))

        assert result["ok"] is True
        assert result["location"] == "Berlin"
        assert result["temperature"] == 5
        assert result["feels_like"] == 2
        assert result["condition"] == "Overcast"
        assert result["wind_speed"] == 12
        assert result["interpretation"]["clothing"] == "warm layers needed"
        assert seen[1].url.params["wind_speed_unit"] == "kmh"

    def test_unknown_place(self, monkeypatch):
        monkeypatch.setattr(weather, "_http_client", mock_client(lambda r: httpx.Response(200, json={})))
        result = json.loads(weather.get_weather.invoke({"location": "Atlantis"}))
        assert result["ok"] is False
        assert "Atlantis" in result["error"]

    def test_service_error(self, monkeypatch):
        monkeypatch.setattr(weather, "_http_client", mock_client(lambda r: httpx.Response(503)))
        result = json.loads(weather.get_weather.invoke({"location": "Berlin"}))
        assert result["ok"] is False
        assert result["error"].startswith("Weather service error")


class TestCurrency:
    def test_conversion_and_cache(self, monkeypatch):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json={
                "result": "success",
                "rates": {"EUR": 0.925, "ILS": 3.7},
                "time_last_update_utc": "Sat, 17 Oct 2026 00:02:31 +0000",
            })

        monkeypatch.setattr(currency, "_http_client", mock_client(handler))
        result = currency.convert(100, "usd", "eur")
        currency.convert(50, "USD", "ILS")

        assert result.converted == 92.5
        assert result.formatted == "100 USD = 92.50 EUR"
        assert calls == ["/v6/latest/USD"]

    def test_unsupported_code(self, monkeypatch):
        monkeypatch.setattr(currency, "_http_client", mock_client(lambda r: httpx.Response(404)))
        result = json.loads(currency.convert_currency.invoke(
            {"amount": 100, "from_currency": "ZZZ", "to_currency": "USD"}
        ))
        assert result["ok"] is False
        assert "ZZZ" in result["error"]

    def test_missing_target_rate(self, monkeypatch):
        monkeypatch.setattr(currency, "_http_client", mock_client(
            lambda r: httpx.Response(200, json={"result": "success", "rates": {"EUR": 0.9}})
        ))
        result = json.loads(currency.convert_currency.invoke(
            {"amount": 100, "from_currency": "USD", "to_currency": "ZZZ"}
        ))
        assert result["ok"] is False
        assert result["error"] == "Rate not found for 'ZZZ'."


JAPAN = {
    "name": {"common": "Japan"},
    "capital": ["Tokyo"],
    "region": "Asia",
    "subregion": "Eastern Asia",
    "population": 125000000,
    "languages": {"jpn": "Japanese"},
    "currencies": {"JPY": {"name": "Japanese yen", "symbol": "¥"}},
    "timezones": ["UTC+09:00"],
    "car": {"side": "left"},
}


class TestCountry:
    def test_lookup_by_name(self, monkeypatch):
        monkeypatch.setattr(country, "_http_client", mock_client(lambda r: httpx.Response(200, json=[JAPAN])))
        info = country.fetch_country_info("Japan")
        assert info.currencies == ["Japanese yen (¥)"]
        assert info.driving_side == "left"
        assert info.practical_tips["language_note"] == "Primary language: Japanese"

    def test_falls_back_to_capital(self, monkeypatch):
        def handler(request):
            if request.url.path.startswith("/v3.1/name/"):
                return httpx.Response(404)
            return httpx.Response(200, json=[JAPAN])

        monkeypatch.setattr(country, "_http_client", mock_client(handler))
        assert country.fetch_country_info("Tokyo").name == "Japan"

    def test_not_found(self, monkeypatch):
        monkeypatch.setattr(country, "_http_client", mock_client(lambda r: httpx.Response(404)))
        result = json.loads(country.get_country_info.invoke({"country": "Narnia"}))
        assert result["ok"] is False


class TestFlights:
    def test_route_guidance(self):
        result = flights.plan_flight_search("Tel Aviv", "Paris")
        assert (result.origin_code, result.destination_code) == ("TLV", "CDG")
        assert [link.name for link in result.booking_links] == ["Skyscanner", "Kayak", "Google Flights"]
        assert result.estimated_duration.endswith("(short to medium-haul)")

    def test_own_output_never_looks_fabricated(self):
        for origin, destination in (("Tel Aviv", "Paris"), ("London", "Tokyo"), ("Berlin", "New York")):
            assert check_flights({}, flights.search_flights.invoke({"origin": origin, "destination": destination})) == []

    def test_same_city(self):
        assert flights.plan_flight_search("Rome", "rome").ok is False


class TestHotels:
    INTRO = (
        "Lisbon is the capital of Portugal. Most visitors stay in the Baixa district, "
        "and budget travellers find cheap hostels in Bairro Alto."
    )

    def test_parse_accommodation_info(self):
        info = hotels.parse_accommodation_info(self.INTRO, "Lisbon")
        assert info["areas"] == ["Baixa"]
        assert info["budget_tips"]
        assert info["general_info"].startswith("Lisbon is the capital")

    def test_find_hotels_with_budget_level(self, monkeypatch):
        def handler(request):
            if request.url.params.get("list") == "search":
                return httpx.Response(200, json={"query": {"search": [{"title": "Lisbon"}]}})
            return httpx.Response(200, json={"query": {"pages": {"1": {"extract": self.INTRO}}}})

        monkeypatch.setattr(hotels, "_http_client", mock_client(handler))
        result = hotels.find_hotels("Lisbon", "luxury")
        assert result.ok
        assert result.budget_level == "luxury"
        assert result.budget_guide == hotels.BUDGET_GUIDES["luxury"]


class TestPlaces:
    def test_sample_data_without_key(self):
        result = places.find_places("Rome", "restaurants")
        assert result.data_source == "sample"
        assert result.places[0].name == "Local Cuisine Restaurant"

    def test_live_results(self, monkeypatch):
        monkeypatch.setattr(places, "_http_client", mock_client(lambda r: httpx.Response(200, json={
            "local_results": [{"title": "Roscioli", "rating": 4.6, "price": "$$$", "address": "Via dei Giubbonari"}],
        })))
        result = places.find_places("Rome", "restaurants", api_key="key")
        assert result.data_source == "live"
        assert result.places[0].name == "Roscioli"

    def test_live_error_falls_back_to_sample(self, monkeypatch):
        monkeypatch.setattr(places, "_http_client", mock_client(lambda r: httpx.Response(500)))
        assert places.find_places("Rome", api_key="key").data_source == "sample"

    def test_tool_factory(self):
        tool = places.build_places_tool(api_key="key", dev_mode=True)
        result = json.loads(tool.invoke({"city": "Oslo", "search_type": "museums"}))
        assert result["data_source"] == "sample"
        assert result["search_type"] == "museums"


class TestContextAnalysis:
    def test_preferences(self):
        result = analyze("A family trip with kids for 10 days in July, on a budget")
        prefs = result.preferences
        assert (prefs.budget, prefs.group, prefs.duration, prefs.timing) == ("budget", "family", "10 days", "july")
        assert "Cost-conscious options needed" in result.constraints

    def test_tool_output(self):
        result = json.loads(analyze_user_context.invoke({"user_message": "just browsing"}))
        assert result["explicit_requirements"] == []
        assert result["recommendation"].startswith("Ask a clarifying question")
