import logging
import threading
import time
from typing import Literal, Optional
from urllib.parse import quote_plus

import httpx
from langchain.tools import tool
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

USER_AGENT = "Tripwise/1.0"
SERPAPI_URL = "https://serpapi.com/search.json"
CACHE_TTL_S = 24 * 3600.0
MAX_RESULTS = 10

PlaceType = Literal[
    "restaurants", "attractions", "things_to_do", "cafes", "bars", "museums", "parks", "shopping",
]

_http_client = httpx.Client(
    timeout=10.0,
    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
)

_cache: dict[tuple[str, str], tuple[float, "PlacesSearchResult"]] = {}
_cache_lock = threading.Lock()

SEARCH_QUERIES = {
    "restaurants": "best restaurants in {city}",
    "attractions": "top attractions in {city}",
    "things_to_do": "things to do in {city}",
    "cafes": "best cafes in {city}",
    "bars": "best bars in {city}",
    "shopping": "shopping in {city}",
    "museums": "museums in {city}",
    "parks": "parks in {city}",
}

PLACE_TIPS = {
    "restaurants": [
        "Book popular restaurants in advance, especially on weekends",
        "Try local specialties for an authentic experience",
        "Some places are cash only, so carry a little local currency",
        "Lunch menus are often better value than dinner",
    ],
    "attractions": [
        "Visit popular attractions early morning or late afternoon to avoid crowds",
        "A city pass can pay off if you plan several paid sights",
        "Check for free-entry days or discounted evening tickets",
        "Book skip-the-line tickets online to save time",
    ],
    "things_to_do": [
        "Book tours and activities in advance during peak season",
        "Check the weather before outdoor activities",
        "Read recent reviews to make sure quality is still good",
        "Ask about group discounts if traveling with others",
    ],
    "cafes": [
        "Neighborhood cafes are usually cheaper than those on tourist streets",
        "Try the local coffee or tea specialties",
        "Cafes are a good place to rest and plan the rest of your day",
    ],
    "bars": [
        "Happy hours often come with big discounts",
        "Ask locals for their favorite spots",
        "Check dress codes for upscale venues",
    ],
}

SAMPLE_PLACES = {
    "restaurants": [
        ("Local Cuisine Restaurant", 4.5, "$$", "Local cuisine"),
        ("Italian Trattoria", 4.3, "$$$", "Italian"),
        ("Street Food Market", 4.7, "$", "Street food"),
        ("Fine Dining Experience", 4.8, "$$$$", "Fine dining"),
        ("Cozy Bistro", 4.4, "$$", "Bistro"),
    ],
    "attractions": [
        ("Historic City Center", 4.6, "Free", "Historic site"),
        ("Famous Museum", 4.7, "$$", "Museum"),
        ("Scenic Viewpoint", 4.8, "Free", "Viewpoint"),
        ("Cultural Monument", 4.5, "$", "Monument"),
        ("Beautiful Park", 4.4, "Free", "Park"),
    ],
    "things_to_do": [
        ("Walking Tour", 4.6, "$$", "Tour"),
        ("Local Market Visit", 4.5, "$", "Shopping"),
        ("Cooking Class", 4.7, "$$$", "Activity"),
        ("Bike Tour", 4.4, "$$", "Tour"),
        ("River Cruise", 4.8, "$$$", "Activity"),
    ],
}


class Place(BaseModel):
    rank: int
    name: str
    rating: Optional[float] = None
    reviews: Optional[int] = None
    price_level: Optional[str] = None
    category: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    hours: Optional[str] = None
    maps_url: Optional[str] = None


class PlacesSearchResult(BaseModel):
    """Points of interest in a city. `data_source` is "live" or "sample"."""
    ok: bool
    city: str
    search_type: str
    data_source: Optional[Literal["live", "sample"]] = None
    note: Optional[str] = None
    places: list[Place] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    error: Optional[str] = None


def maps_url(name: str, city: str) -> str:
    return f"https://www.google.com/maps/search/?api=1&query={quote_plus(f'{name} {city}')}"


def _fetch_live(city: str, search_type: str, api_key: str) -> PlacesSearchResult:
    query = SEARCH_QUERIES.get(search_type, "places in {city}").format(city=city)
    logger.info("Searching SerpAPI Google Maps: %s", query)
    r = _http_client.get(
        SERPAPI_URL,
        params={"engine": "google_maps", "q": query, "type": "search", "api_key": api_key},
    )
    r.raise_for_status()
    data = r.json()
    if data.get("error"):
        raise ValueError(data["error"])
    results = data.get("local_results") or []
    if not results:
        raise ValueError(f"No places found for '{query}'.")

    places = []
    for rank, item in enumerate(results[:MAX_RESULTS], start=1):
        hours = item.get("hours")
        places.append(Place(
            rank=rank,
            name=item.get("title", "Unknown"),
            rating=item.get("rating"),
            reviews=item.get("reviews"),
            price_level=item.get("price"),
            category=item.get("type") or search_type,
            address=item.get("address"),
            description=item.get("description") or item.get("snippet"),
            hours=hours if isinstance(hours, str) else None,
            maps_url=item.get("link") or maps_url(item.get("title", ""), city),
        ))
    return PlacesSearchResult(
        ok=True,
        city=city,
        search_type=search_type,
        data_source="live",
        note="Real data from Google Maps",
        places=places,
        tips=PLACE_TIPS.get(search_type, PLACE_TIPS["attractions"]),
    )


def sample_places(city: str, search_type: str) -> PlacesSearchResult:
    rows = SAMPLE_PLACES.get(search_type, SAMPLE_PLACES["attractions"])
    places = [
        Place(
            rank=rank,
            name=name,
            rating=rating,
            price_level=price,
            category=category,
            address=f"{city} - check Google Maps for the exact location",
            description=f"Highly rated {category.lower()} in {city}",
            hours="Check online for current hours",
            maps_url=maps_url(name, city),
        )
        for rank, (name, rating, price, category) in enumerate(rows, start=1)
    ]
    return PlacesSearchResult(
        ok=True,
        city=city,
        search_type=search_type,
        data_source="sample",
        note="Sample placeholders, not real venues. Configure a SerpAPI key for live Google Maps data.",
        places=places,
        tips=PLACE_TIPS.get(search_type, PLACE_TIPS["attractions"]),
    )


def find_places(
    city: str,
    search_type: str = "attractions",
    api_key: Optional[str] = None,
    dev_mode: bool = False,
) -> PlacesSearchResult:
    if not api_key or dev_mode:
        return sample_places(city, search_type)

    key = (city.strip().lower(), search_type)
    now = time.monotonic()
    with _cache_lock:
        cached = _cache.get(key)
    if cached and now - cached[0] < CACHE_TTL_S:
        return cached[1]

    try:
        result = _fetch_live(city, search_type, api_key)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Live places search failed for %s (%s), using sample data", city, e)
        return sample_places(city, search_type)

    with _cache_lock:
        _cache[key] = (now, result)
    return result


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()


def build_places_tool(api_key: Optional[str] = None, dev_mode: bool = False) -> BaseTool:
    """Create the places tool bound to a SerpAPI key (or to sample data)."""

    @tool
    def search_places(city: str, search_type: PlaceType = "attractions") -> str:
        """
        Search restaurants, attractions, cafes, bars, museums, parks, shopping or
        things to do in a city. Returns names, ratings, price levels, addresses,
        Google Maps links and type-specific tips. `data_source` says whether the
        entries are live Google Maps data or sample placeholders.
        """
        return find_places(city, search_type, api_key=api_key, dev_mode=dev_mode).model_dump_json()

    return search_places
