"""Deterministic tool routing.

Scans a message against per-tool keyword sets and resolves each tool's
arguments with the entity extractors. A keyword hit whose entity cannot be
resolved schedules nothing. The returned calls are always in catalogue
order: weather, country, currency, flights, hotels, places, context.
"""

import logging
import re
from typing import Optional, Sequence

from tripwise.extraction import (
    DEFAULT_HISTORY_DEPTH,
    detect_budget_level,
    detect_place_type,
    extract_amount,
    extract_city_pair,
    extract_city_pair_from_history,
    extract_currency_pair,
    extract_currency_pair_from_history,
    extract_location,
    extract_location_from_history,
    resolve_travel_hub,
)
from tripwise.schema import EntityKind, ExtractedEntity, ToolCall, Turn

logger = logging.getLogger(__name__)

WEATHER_TOOL = "get_weather"
COUNTRY_TOOL = "get_country_info"
CURRENCY_TOOL = "convert_currency"
FLIGHTS_TOOL = "search_flights"
HOTELS_TOOL = "search_hotels"
PLACES_TOOL = "search_places"
CONTEXT_TOOL = "analyze_user_context"

TOOL_ORDER = (
    WEATHER_TOOL,
    COUNTRY_TOOL,
    CURRENCY_TOOL,
    FLIGHTS_TOOL,
    HOTELS_TOOL,
    PLACES_TOOL,
    CONTEXT_TOOL,
)

WEATHER_KEYWORDS = (
    "pack", "packing", "bring", "wear", "weather", "temperature", "climate",
    "warm", "cold", "rain", "raining", "today", "right now", "currently",
)
COUNTRY_KEYWORDS = ("currency", "money", "language", "speak", "visa", "capital", "timezone")
CURRENCY_KEYWORDS = (
    "shekel", "shekels", "nis", "₪", "euro", "euros", "€", "dollar", "dollars", "$",
    "pound", "pounds", "£", "yen", "¥", "convert", "exchange", "budget", "cost",
    "price", "expensive", "cheap", "afford",
)
FLIGHT_KEYWORDS = (
    "flight", "flights", "fly", "flying", "airline", "airlines", "plane", "airport",
    "ticket", "tickets", "direct flight", "round trip", "one way",
)
HOTEL_KEYWORDS = (
    "hotel", "hotels", "stay", "accommodation", "lodging", "hostel", "hostels",
    "reserve", "book", "room", "rooms", "where to stay",
)
PLACES_KEYWORDS = (
    "restaurant", "restaurants", "eat", "eating", "food", "dine", "dining",
    "cafe", "cafes", "coffee", "bar", "bars", "nightlife", "drink",
    "attraction", "attractions", "see", "visit", "sightseeing", "tourist",
    "museum", "museums", "gallery", "galleries", "art",
    "things to do", "activities", "entertainment", "fun",
    "shopping", "shop", "market", "markets",
    "park", "parks", "garden", "gardens", "outdoor",
    "landmark", "landmarks", "monument", "monuments",
)
CONTEXT_KEYWORDS = ("budget", "family", "kids", "children", "week", "days")
CONTEXT_MIN_HITS = 2


def _compile(keywords: Sequence[str]) -> list[re.Pattern]:
    patterns = []
    for keyword in keywords:
        if keyword[0].isalnum():
            patterns.append(re.compile(r"\b" + re.escape(keyword)))
        else:
            patterns.append(re.compile(re.escape(keyword)))
    return patterns


_KEYWORD_SETS = {
    WEATHER_TOOL: _compile(WEATHER_KEYWORDS),
    COUNTRY_TOOL: _compile(COUNTRY_KEYWORDS),
    CURRENCY_TOOL: _compile(CURRENCY_KEYWORDS),
    FLIGHTS_TOOL: _compile(FLIGHT_KEYWORDS),
    HOTELS_TOOL: _compile(HOTEL_KEYWORDS),
    PLACES_TOOL: _compile(PLACES_KEYWORDS),
    CONTEXT_TOOL: _compile(CONTEXT_KEYWORDS),
}


def keyword_hits(tool_name: str, message: str) -> int:
    """Number of distinct keywords of *tool_name*'s set found in *message*."""
    lowered = message.lower()
    return sum(1 for pattern in _KEYWORD_SETS[tool_name] if pattern.search(lowered))


def _source_note(entity: ExtractedEntity) -> str:
    return " (from earlier in the conversation)" if entity.from_history else ""


def detect_required_tools(
    message: str,
    history: Sequence[Turn] = (),
    *,
    default_origin: Optional[str] = None,
    history_depth: int = DEFAULT_HISTORY_DEPTH,
) -> list[ToolCall]:
    """Work out which tools must run for *message* and with which arguments.

    *history* enables the fallback to earlier Human turns; pass an empty
    sequence to resolve entities from *message* alone.
    """
    calls: list[ToolCall] = []

    def _location() -> Optional[ExtractedEntity]:
        if history:
            return extract_location_from_history(message, history, history_depth)
        location = extract_location(message)
        return ExtractedEntity(kind=EntityKind.LOCATION, value=location) if location else None

    if keyword_hits(WEATHER_TOOL, message):
        entity = _location()
        if entity:
            calls.append(ToolCall(
                name=WEATHER_TOOL,
                args={"location": entity.value},
                reasoning=f"Weather-related keywords, location {entity.value}{_source_note(entity)}",
            ))

    if keyword_hits(COUNTRY_TOOL, message):
        entity = _location()
        if entity:
            calls.append(ToolCall(
                name=COUNTRY_TOOL,
                args={"country": entity.value},
                reasoning="Question about country-specific information",
            ))

    if keyword_hits(CURRENCY_TOOL, message):
        amount = extract_amount(message)
        pair = extract_currency_pair(message)
        if pair is None and amount is not None and history:
            entity = extract_currency_pair_from_history(message, history, history_depth)
            pair = entity.value if entity else None
        if pair is not None:
            calls.append(ToolCall(
                name=CURRENCY_TOOL,
                args={
                    "amount": amount if amount is not None else 1.0,
                    "from_currency": pair.from_currency,
                    "to_currency": pair.to_currency,
                },
                reasoning="Money amounts or currencies mentioned",
            ))

    if keyword_hits(FLIGHTS_TOOL, message):
        if history:
            entity = extract_city_pair_from_history(message, history, default_origin, history_depth)
            route = entity.value if entity else None
        else:
            route = extract_city_pair(message, default_origin)
        if route is not None:
            calls.append(ToolCall(
                name=FLIGHTS_TOOL,
                args={"origin": route.origin, "destination": route.destination},
                reasoning=f"Flight question for {route.origin} to {route.destination}",
            ))

    if keyword_hits(HOTELS_TOOL, message):
        entity = _location()
        if entity:
            args = {"city": resolve_travel_hub(entity.value)}
            budget_level = detect_budget_level(message)
            if budget_level:
                args["budget_level"] = budget_level
            calls.append(ToolCall(
                name=HOTELS_TOOL,
                args=args,
                reasoning=f"Accommodation question{_source_note(entity)}",
            ))

    if keyword_hits(PLACES_TOOL, message):
        entity = _location()
        if entity:
            place_type = detect_place_type(message)
            calls.append(ToolCall(
                name=PLACES_TOOL,
                args={"city": resolve_travel_hub(entity.value), "search_type": place_type},
                reasoning=f"Looking for {place_type}{_source_note(entity)}",
            ))

    if keyword_hits(CONTEXT_TOOL, message) >= CONTEXT_MIN_HITS:
        calls.append(ToolCall(
            name=CONTEXT_TOOL,
            args={"user_message": message},
            reasoning="Several budget, group or duration signals",
        ))

    if calls:
        logger.info("Tool selector scheduled: %s", [(c.name, c.args) for c in calls])
    else:
        logger.info("Tool selector scheduled no tools")
    return calls
