import logging
import re
import threading
import time
from typing import Literal, Optional

import httpx
from langchain.tools import tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

USER_AGENT = "Tripwise/1.0 (travel assistant)"
WIKIVOYAGE_API = "https://en.wikivoyage.org/w/api.php"
CACHE_TTL_S = 24 * 3600.0

BudgetLevel = Literal["budget", "mid-range", "luxury"]

_http_client = httpx.Client(
    timeout=10.0,
    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
)

_cache: dict[str, tuple[float, "HotelSearchResult"]] = {}
_cache_lock = threading.Lock()

BUDGET_KEYWORDS = (
    "budget", "cheap", "affordable", "inexpensive", "hostel",
    "mid-range", "luxury", "expensive", "upscale",
)

AREA_PATTERNS = [
    re.compile(r"in (?:the )?([A-Z][a-z]+(?: [A-Z][a-z]+)*) (?:district|area|neighbou?rhood|quarter)"),
    re.compile(r"([A-Z][a-z]+(?: [A-Z][a-z]+)*) is (?:a )?(?:good|great|popular) (?:area|place) to stay"),
]

BUDGET_GUIDES = {
    "budget": [
        "Hostels with private rooms and family-run guesthouses give the best value",
        "Staying one or two metro stops outside the centre cuts costs noticeably",
        "Look for places with a kitchen to save on meals",
    ],
    "mid-range": [
        "Three-star and boutique hotels near public transport balance price and comfort",
        "Serviced apartments work well for stays longer than a few nights",
        "Check whether breakfast and city tax are included",
    ],
    "luxury": [
        "Five-star hotels in the historic centre or on the waterfront",
        "Book directly with the hotel for upgrades and flexible cancellation",
        "Ask about spa, club-lounge or airport-transfer packages",
    ],
}

BOOKING_PLATFORMS = ["Booking.com", "Hotels.com", "Airbnb", "Hostelworld"]


class HotelSearchResult(BaseModel):
    """Accommodation guidance for a city. Never contains live prices or availability."""
    ok: bool
    city: str
    source: str = "Wikivoyage"
    budget_level: Optional[BudgetLevel] = None
    areas: list[str] = Field(default_factory=list)
    budget_tips: list[str] = Field(default_factory=list)
    general_info: Optional[str] = None
    recommendations: list[str] = Field(default_factory=list)
    budget_guide: list[str] = Field(default_factory=list)
    booking_platforms: list[str] = Field(default_factory=lambda: list(BOOKING_PLATFORMS))
    error: Optional[str] = None


def _search_page(city: str) -> Optional[str]:
    r = _http_client.get(
        WIKIVOYAGE_API,
        params={"action": "query", "list": "search", "srsearch": city, "format": "json"},
    )
    r.raise_for_status()
    hits = (r.json().get("query") or {}).get("search") or []
    return hits[0]["title"] if hits else None


def _fetch_intro(title: str) -> str:
    r = _http_client.get(
        WIKIVOYAGE_API,
        params={
            "action": "query",
            "titles": title,
            "prop": "extracts",
            "exintro": "true",
            "explaintext": "true",
            "format": "json",
        },
    )
    r.raise_for_status()
    pages = (r.json().get("query") or {}).get("pages") or {}
    for page in pages.values():
        return page.get("extract") or ""
    return ""


def _snippet(text: str, index: int, before: int, after: int) -> str:
    return text[max(0, index - before):min(len(text), index + after)].strip()


def parse_accommodation_info(text: str, city: str) -> dict:
    """Pull areas, budget remarks and a short sleeping note out of a guide intro."""
    lowered = text.lower()

    general_info = None
    for marker in ("sleep", "stay"):
        index = lowered.find(marker)
        if index >= 0:
            general_info = _snippet(text, index, 100, 300)[:200]
            break

    budget_tips: list[str] = []
    for keyword in BUDGET_KEYWORDS:
        index = lowered.find(keyword)
        if index >= 0:
            context = _snippet(text, index, 50, 150)
            if context and context not in budget_tips:
                budget_tips.append(context)

    areas: list[str] = []
    for pattern in AREA_PATTERNS:
        for match in pattern.finditer(text):
            if match.group(1) not in areas:
                areas.append(match.group(1))

    return {
        "general_info": general_info,
        "budget_tips": budget_tips[:3],
        "areas": areas[:5],
        "recommendations": [
            f"Compare a few booking platforms for {city} accommodation",
            f"Stay in central {city} for easy access to the main sights",
            "Consider guesthouses or apartments for better value",
        ],
    }


def find_hotels(city: str, budget_level: Optional[BudgetLevel] = None) -> HotelSearchResult:
    key = city.strip().lower()
    now = time.monotonic()
    with _cache_lock:
        cached = _cache.get(key)
    if cached and now - cached[0] < CACHE_TTL_S:
        logger.info("Using cached hotel info for %s", city)
        base = cached[1]
    else:
        logger.info("Fetching hotel info for %s", city)
        title = _search_page(city)
        if title is None:
            return HotelSearchResult(ok=False, city=city, error=f"No travel guide found for '{city}'.")
        parsed = parse_accommodation_info(_fetch_intro(title), city)
        base = HotelSearchResult(ok=True, city=city, **parsed)
        with _cache_lock:
            _cache[key] = (now, base)

    guide = BUDGET_GUIDES.get(budget_level) if budget_level else [
        f"{level}: {tips[0]}" for level, tips in BUDGET_GUIDES.items()
    ]
    return base.model_copy(update={"budget_level": budget_level, "budget_guide": guide})


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()


@tool
def search_hotels(city: str, budget_level: Optional[BudgetLevel] = None) -> str:
    """
    Get accommodation advice for a city: good areas to stay, budget remarks from
    Wikivoyage, guidance for the requested budget level and booking platforms.

    Input:
    - city: city name, e.g. "Lisbon"
    - budget_level: optional "budget", "mid-range" or "luxury"

    Does NOT return live prices or availability.
    """
    try:
        result = find_hotels(city, budget_level)
    except httpx.TimeoutException:
        result = HotelSearchResult(ok=False, city=city, error=f"Timeout while fetching hotel info for '{city}'.")
    except httpx.HTTPError as e:
        result = HotelSearchResult(ok=False, city=city, error=f"Hotel guide service error: {e}")
    except (KeyError, TypeError, ValueError) as e:
        logger.exception("Unexpected hotel guide payload for '%s'", city)
        result = HotelSearchResult(ok=False, city=city, error=f"Unexpected hotel guide data: {e}")

    return result.model_dump_json()
