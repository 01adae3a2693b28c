"""Flight search guidance.

There is no free live-fares API, so this tool deliberately returns no prices,
dates, times, flight numbers or airline names: only the route, a rough
duration class, booking-site search links and booking tips.
"""

import logging
from typing import Optional
from urllib.parse import quote

from langchain.tools import tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

AIRPORT_CODES = {
    "tel aviv": "TLV", "london": "LHR", "paris": "CDG", "new york": "JFK", "tokyo": "NRT",
    "los angeles": "LAX", "dubai": "DXB", "singapore": "SIN", "hong kong": "HKG",
    "bangkok": "BKK", "amsterdam": "AMS", "frankfurt": "FRA", "madrid": "MAD",
    "barcelona": "BCN", "rome": "FCO", "milan": "MXP", "istanbul": "IST",
    "sydney": "SYD", "melbourne": "MEL", "toronto": "YYZ", "vancouver": "YVR",
    "chicago": "ORD", "san francisco": "SFO", "miami": "MIA", "boston": "BOS",
    "seattle": "SEA", "atlanta": "ATL", "denver": "DEN", "las vegas": "LAS",
    "berlin": "BER", "munich": "MUC", "zurich": "ZRH", "vienna": "VIE",
    "prague": "PRG", "lisbon": "LIS", "athens": "ATH", "dublin": "DUB",
    "stockholm": "ARN", "copenhagen": "CPH", "oslo": "OSL", "helsinki": "HEL",
    "delhi": "DEL", "mumbai": "BOM", "shanghai": "PVG", "beijing": "PEK",
    "seoul": "ICN", "taipei": "TPE", "kuala lumpur": "KUL", "jakarta": "CGK",
    "manila": "MNL", "ho chi minh": "SGN", "hanoi": "HAN", "cairo": "CAI",
    "johannesburg": "JNB", "cape town": "CPT", "nairobi": "NBO", "sao paulo": "GRU",
    "rio de janeiro": "GIG", "buenos aires": "EZE", "mexico city": "MEX",
    "lima": "LIM", "bogota": "BOG", "santiago": "SCL", "budapest": "BUD",
    "warsaw": "WAW", "larnaca": "LCA", "eilat": "ETM",
}

LONG_HAUL_CITIES = (
    "new york", "los angeles", "tokyo", "sydney", "melbourne", "singapore", "bangkok",
    "hong kong", "seoul", "beijing", "shanghai", "san francisco", "toronto", "sao paulo",
    "buenos aires", "mexico city", "rio de janeiro", "johannesburg", "cape town",
)

BOOKING_TIPS = [
    "International flights: book 2-3 months ahead",
    "Short-haul flights: book 3-6 weeks ahead",
    "Mid-week departures (Tuesday to Thursday) are usually cheaper",
    "Compare direct and connecting options, and check nearby airports",
    "Set price alerts on more than one site",
    "Use incognito mode so searches don't influence prices",
]


class BookingLink(BaseModel):
    name: str
    url: str


class FlightSearchResult(BaseModel):
    """Route guidance with booking links. Never contains fares or schedules."""
    ok: bool
    origin: str
    destination: str
    origin_code: Optional[str] = None
    destination_code: Optional[str] = None
    route: Optional[str] = None
    estimated_duration: Optional[str] = None
    booking_links: list[BookingLink] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    best_time_to_book: Optional[str] = None
    note: str = "No live fares. Prices, schedules and airlines must be checked on the booking sites."
    error: Optional[str] = None


def airport_code(city: str) -> str:
    """IATA code for well-known cities, otherwise the first three letters upper-cased."""
    key = city.strip().lower()
    return AIRPORT_CODES.get(key, key.replace(" ", "")[:3].upper())


def estimate_duration(origin: str, destination: str) -> str:
    cities = (origin.lower(), destination.lower())
    if any(hub in city for city in cities for hub in LONG_HAUL_CITIES):
        return "10-15 hours (long-haul)"
    return "2-6 hours (short to medium-haul)"


def booking_links(origin_code: str, destination_code: str) -> list[BookingLink]:
    query = quote(f"flights from {origin_code} to {destination_code}")
    return [
        BookingLink(
            name="Skyscanner",
            url=f"https://www.skyscanner.com/transport/flights/{origin_code.lower()}/{destination_code.lower()}/",
        ),
        BookingLink(name="Kayak", url=f"https://www.kayak.com/flights/{origin_code}-{destination_code}"),
        BookingLink(name="Google Flights", url=f"https://www.google.com/travel/flights?q={query}"),
    ]


def plan_flight_search(origin: str, destination: str) -> FlightSearchResult:
    if not origin.strip() or not destination.strip():
        return FlightSearchResult(
            ok=False, origin=origin, destination=destination,
            error="Both an origin and a destination city are required.",
        )
    if origin.strip().lower() == destination.strip().lower():
        return FlightSearchResult(
            ok=False, origin=origin, destination=destination,
            error="Origin and destination are the same city.",
        )

    origin_code, destination_code = airport_code(origin), airport_code(destination)
    logger.info("Building flight guidance %s (%s) -> %s (%s)", origin, origin_code, destination, destination_code)
    return FlightSearchResult(
        ok=True,
        origin=origin,
        destination=destination,
        origin_code=origin_code,
        destination_code=destination_code,
        route=f"{origin} ({origin_code}) → {destination} ({destination_code})",
        estimated_duration=estimate_duration(origin, destination),
        booking_links=booking_links(origin_code, destination_code),
        tips=list(BOOKING_TIPS),
        best_time_to_book="6-8 weeks before departure for short-haul, 2-3 months for international",
    )


@tool
def search_flights(origin: str, destination: str) -> str:
    """
    Get flight guidance for a route: airport codes, a rough duration class,
    Skyscanner / Kayak / Google Flights search links and booking tips.

    This tool NEVER returns prices, dates, departure times, flight numbers or
    airline names. Send users to the booking links for those.
    """
    return plan_flight_search(origin, destination).model_dump_json()
