import logging
from typing import Optional

import httpx
from langchain.tools import tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

USER_AGENT = "Tripwise/1.0"
GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

_http_client = httpx.Client(
    timeout=10.0,
    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
)

# WMO weather interpretation codes, https://open-meteo.com/en/docs
WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


class WeatherInterpretation(BaseModel):
    clothing: str
    activities: str


class CurrentWeatherResult(BaseModel):
    """
    Structured tool result for current conditions at one place.

    On failure, `ok=False` and `error` explains what happened.
    """
    ok: bool = Field(..., description="True if the place was found and conditions were retrieved.")
    query: str = Field(..., description="The location string that was looked up.")
    location: Optional[str] = Field(None, description="Resolved place name.")
    country: Optional[str] = Field(None, description="Country of the resolved place.")
    temperature: Optional[int] = Field(None, description="Air temperature in °C, rounded.")
    feels_like: Optional[int] = Field(None, description="Apparent temperature in °C, rounded.")
    condition: Optional[str] = Field(None, description="Human-readable WMO condition.")
    humidity: Optional[int] = Field(None, description="Relative humidity in percent.")
    wind_speed: Optional[int] = Field(None, description="Wind speed in km/h, rounded.")
    interpretation: Optional[WeatherInterpretation] = None
    error: Optional[str] = Field(None, description="Error message when ok=False.")


def describe_weather_code(code: Optional[int]) -> str:
    return WEATHER_CODES.get(code, "Unknown")


def interpret(temperature: float, condition: str) -> WeatherInterpretation:
    if temperature < 10:
        clothing = "warm layers needed"
    elif temperature < 20:
        clothing = "light jacket recommended"
    elif temperature < 30:
        clothing = "comfortable, light clothing"
    else:
        clothing = "hot, stay cool"

    lowered = condition.lower()
    if "rain" in lowered or "drizzle" in lowered or "thunder" in lowered:
        activities = "indoor activities recommended"
    elif "clear" in lowered:
        activities = "perfect for outdoor activities"
    else:
        activities = "generally good conditions"
    return WeatherInterpretation(clothing=clothing, activities=activities)


def _geocode(location: str) -> dict:
    """Resolve a place name to the first Open-Meteo geocoding hit."""
    logger.info("Geocoding location: %s", location)
    r = _http_client.get(
        GEOCODING_URL,
        params={"name": location, "count": 1, "language": "en", "format": "json"},
    )
    r.raise_for_status()
    results = r.json().get("results") or []
    if not results:
        raise ValueError(f"Could not find '{location}'. Try a nearby city name.")
    return results[0]


def _fetch_current(lat: float, lon: float) -> dict:
    logger.info("Fetching current weather for (%.4f, %.4f)", lat, lon)
    r = _http_client.get(
        FORECAST_URL,
        params={
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m,relative_humidity_2m,apparent_temperature,weather_code,wind_speed_10m",
            "wind_speed_unit": "kmh",
            "timezone": "auto",
        },
    )
    r.raise_for_status()
    return r.json()["current"]


@tool
def get_weather(location: str) -> str:
    """
    Get current real-time weather for a city (NO API KEY required).

    When to use:
    - Packing advice, "what should I wear", climate or temperature questions for a named place.

    Input:
    - location: A human-readable place name, e.g. "Tokyo" or "New York".

    Output:
    - JSON matching `CurrentWeatherResult`: temperature and feels-like in °C,
      WMO condition text, humidity, wind in km/h and a short clothing / activity
      interpretation. On failure `ok=false` and `error` holds a user-safe reason.
    """
    try:
        place = _geocode(location)
        current = _fetch_current(place["latitude"], place["longitude"])
        temperature = round(current["temperature_2m"])
        condition = describe_weather_code(current.get("weather_code"))
        result = CurrentWeatherResult(
            ok=True,
            query=location,
            location=place.get("name", location),
            country=place.get("country"),
            temperature=temperature,
            feels_like=round(current.get("apparent_temperature", current["temperature_2m"])),
            condition=condition,
            humidity=current.get("relative_humidity_2m"),
            wind_speed=round(current.get("wind_speed_10m", 0)),
            interpretation=interpret(temperature, condition),
        )
    except httpx.TimeoutException:
        result = CurrentWeatherResult(
            ok=False, query=location, error=f"Timeout while fetching weather for '{location}'."
        )
    except httpx.HTTPError as e:
        result = CurrentWeatherResult(ok=False, query=location, error=f"Weather service error: {e}")
    except ValueError as e:
        result = CurrentWeatherResult(ok=False, query=location, error=str(e))
    except (KeyError, TypeError) as e:
        logger.exception("Unexpected weather payload for '%s'", location)
        result = CurrentWeatherResult(ok=False, query=location, error=f"Unexpected weather data: {e}")

    return result.model_dump_json()
