"""Pattern-based entity extraction for travel messages.

Every extractor is a pure function of its input text: it walks an ordered list
of patterns (most specific first), normalises each candidate, and returns the
first one that survives. ``None`` means "not determined" and is never an error.

The ``*_from_history`` variants fall back to the most recent Human turns when
the current message yields nothing. Assistant turns are never scanned, so the
model's own place names cannot leak back into tool arguments.
"""

import logging
import re
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from tripwise.schema import (
    CityPair,
    CurrencyPair,
    EntityKind,
    ExtractedEntity,
    Role,
    Turn,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HISTORY_DEPTH = 6

MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

STOP_WORDS = frozenset({
    # time
    "today", "tomorrow", "tonight", "now", "currently", "right", "this", "next", "last",
    "week", "weeks", "weekend", "month", "months", "year", "years", "day", "days",
    "night", "nights", "morning", "evening", "afternoon", "season", "summer", "winter",
    "spring", "autumn", "fall", "soon", "later", "early", "late", "mid", "peak", "off",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    *MONTHS,
    # question and filler words
    "what", "whats", "where", "when", "why", "who", "how", "which", "can", "could",
    "should", "would", "will", "is", "are", "was", "be", "do", "does", "did", "tell",
    "show", "give", "find", "get", "want", "need", "like", "help", "please", "thanks",
    "thank", "hi", "hello", "hey", "any", "some", "the", "a", "an", "my", "our",
    "your", "me", "us", "i", "im", "we", "you", "it", "its", "there", "here", "home",
    "back", "and", "or", "but", "with", "without", "for", "to", "in", "at", "on", "of",
    "from", "near", "around", "during", "about", "also", "too", "then", "really",
    "very", "much", "many", "more", "lot", "lots", "so", "if", "that", "these", "those",
    # verbs that follow "to"
    "go", "going", "know", "buy", "see", "eat", "try", "make", "take", "have", "check",
    "plan", "planning", "spend", "learn", "convert", "exchange", "change", "say",
    "bring", "pack", "packing", "wear", "stay", "book", "visit", "visiting", "travel",
    "traveling", "travelling", "fly", "flying", "explore", "relax", "move", "leave",
    "look", "use", "pay", "rent", "drive", "walk", "enjoy", "afford",
    # generic travel nouns
    "best", "good", "great", "cool", "cheap", "cheapest", "expensive", "direct",
    "place", "places", "time", "trip", "vacation", "holiday", "flight", "flights",
    "hotel", "hotels", "tips", "tip", "ideas", "advice", "weather", "climate",
    "temperature", "forecast", "restaurant", "restaurants", "food", "things",
    "currency", "money", "language", "visa", "capital", "beach", "city", "country",
    "mountains", "airport", "abroad", "somewhere", "anywhere", "everywhere", "budget",
    "family", "kids", "children", "friends", "someone", "people",
})

# Countries resolve to the city most travellers actually fly into.
TRAVEL_HUBS = {
    "israel": "Tel Aviv",
    "portugal": "Lisbon",
    "spain": "Madrid",
    "france": "Paris",
    "italy": "Rome",
    "germany": "Berlin",
    "uk": "London",
    "united kingdom": "London",
    "england": "London",
    "britain": "London",
    "great britain": "London",
    "usa": "New York",
    "us": "New York",
    "united states": "New York",
    "america": "New York",
    "japan": "Tokyo",
    "china": "Beijing",
    "australia": "Sydney",
    "greece": "Athens",
    "netherlands": "Amsterdam",
    "holland": "Amsterdam",
    "thailand": "Bangkok",
    "turkey": "Istanbul",
    "ireland": "Dublin",
    "czechia": "Prague",
    "czech republic": "Prague",
    "austria": "Vienna",
    "uae": "Dubai",
    "canada": "Toronto",
    "mexico": "Mexico City",
    "brazil": "Sao Paulo",
    "argentina": "Buenos Aires",
    "india": "Delhi",
    "south korea": "Seoul",
    "korea": "Seoul",
    "egypt": "Cairo",
}

_WORD = r"[A-Za-z][A-Za-z'\-]*"
_LOC = rf"({_WORD}(?:\s+{_WORD}){{0,2}})"
_PAIR_LOC = rf"({_WORD}(?:\s+{_WORD})?)"

# (pattern, generic): generic tiers only accept lowercase candidates when the
# whole message is written in lowercase.
_LOCATION_PATTERNS: list[tuple[re.Pattern, bool]] = [
    (re.compile(
        rf"\b(?:travel(?:l?ing)?|fly(?:ing)?|flights?|going|heading|headed|moving|trip|"
        rf"vacation|holiday|honeymoon)\s+(?:from\s+{_WORD}(?:\s+{_WORD})?\s+)?to\s+{_LOC}",
        re.I,
    ), False),
    (re.compile(rf"\b(?:visit(?:ing)?|explor(?:e|ing))\s+{_LOC}", re.I), False),
    (re.compile(
        rf"\b(?:weather|forecast|climate|temperature|hotels?|restaurants?|things\s+to\s+do|"
        rf"stay(?:ing)?)\s+(?:in|at|for|near|around)\s+{_LOC}",
        re.I,
    ), False),
    (re.compile(rf"\b(?:in|at|near|around|for)\s+{_LOC}", re.I), True),
    (re.compile(rf"\b{_LOC}\s+(?:weather|climate|temperature|forecast)\b", re.I), True),
    (re.compile(rf"\bto\s+{_LOC}", re.I), True),
]

_CAPITALIZED = re.compile(r"\b([A-Z][a-z]{2,}(?:\s+[A-Z][a-z]+)?)\b")

_FROM_TO = re.compile(rf"\bfrom\s+{_PAIR_LOC}\s+to\s+{_LOC}", re.I)
_TO_FROM = re.compile(rf"\bto\s+{_PAIR_LOC}\s+from\s+{_LOC}", re.I)
_DESTINATION_ONLY = re.compile(
    rf"\b(?:fly(?:ing)?|flights?|travel(?:l?ing)?|going|heading|trip|visit(?:ing)?)\s+(?:to\s+)?{_LOC}",
    re.I,
)
_ORIGIN_ONLY = re.compile(rf"\b(?:from|leaving|departing(?:\s+from)?)\s+{_LOC}", re.I)

# ── Currency vocabulary ─────────────────────────────────────────────────────

CURRENCY_NAMES = {
    "australian dollar": "AUD",
    "canadian dollar": "CAD",
    "swiss franc": "CHF",
    "dollar": "USD",
    "buck": "USD",
    "euro": "EUR",
    "pound": "GBP",
    "sterling": "GBP",
    "yen": "JPY",
    "shekel": "ILS",
    "nis": "ILS",
    "yuan": "CNY",
    "renminbi": "CNY",
    "rupee": "INR",
    "peso": "MXN",
    "reais": "BRL",
    "franc": "CHF",
    "krona": "SEK",
    "kronor": "SEK",
    "lira": "TRY",
    "dirham": "AED",
    "baht": "THB",
    "zloty": "PLN",
    "koruna": "CZK",
    "forint": "HUF",
    "ringgit": "MYR",
}

CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₪": "ILS",
    "₹": "INR",
    "฿": "THB",
}

KNOWN_CURRENCY_CODES = frozenset({
    "USD", "EUR", "GBP", "JPY", "ILS", "CNY", "INR", "MXN", "BRL", "CHF", "SEK",
    "NOK", "DKK", "TRY", "AED", "THB", "PLN", "CZK", "HUF", "MYR", "AUD", "CAD",
    "NZD", "SGD", "HKD", "KRW", "ZAR", "IDR", "PHP", "VND", "EGP", "ISK",
})

# Uppercase words that look like ISO codes but are not currencies.
_NOT_CURRENCY_CODES = frozenset({"USA", "UAE", "NYC", "LAX", "JFK", "THE", "AND", "FAQ"})

_CURRENCY_TOKEN = re.compile(
    r"(?P<symbol>[$€£¥₪₹฿])"
    r"|\b(?P<name>" + "|".join(
        re.escape(name) + r"s?" for name in sorted(CURRENCY_NAMES, key=len, reverse=True)
    ) + r")\b"
    r"|(?-i:\b(?P<code>[A-Z]{3})\b)",
    re.I,
)
_CODE_CONTEXT = re.compile(r"(?:\d\s*|\b(?:to|into)\s+)$", re.I)

_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?"
_AMOUNT_PATTERNS = [
    re.compile(rf"[$€£¥₪₹฿]\s*({_NUMBER})"),
    re.compile(
        rf"(?<![\d.,])({_NUMBER})\s*(?:(?:" + "|".join(
            re.escape(name) + r"s?" for name in CURRENCY_NAMES
        ) + r")\b|(?-i:[A-Z]{3}\b))",
        re.I,
    ),
    re.compile(
        rf"(?<![\d.,:$€£¥₪₹฿])\b({_NUMBER})\b(?!\s*(?:days?|nights?|weeks?|months?|years?|hours?|"
        r"people|persons?|adults?|kids?|children|travell?ers|stars?|%|st\b|nd\b|rd\b|th\b|am\b|pm\b|:))",
        re.I,
    ),
]

PLACE_TYPE_PATTERNS = [
    ("restaurants", re.compile(r"\b(?:restaurants?|eat|eating|food|dine|dining|cuisine|meals?)\b")),
    ("cafes", re.compile(r"\b(?:cafes?|coffee|tea|breakfast|brunch)\b")),
    ("bars", re.compile(r"\b(?:bars?|pubs?|nightlife|drinks?|cocktails?|beers?)\b")),
    ("museums", re.compile(r"\b(?:museums?|galler(?:y|ies)|art|exhibitions?)\b")),
    ("attractions", re.compile(
        r"\b(?:attractions?|landmarks?|monuments?|sightseeing|tourist|visit|see)\b"
    )),
    ("parks", re.compile(r"\b(?:parks?|gardens?|outdoors?|nature)\b")),
    ("shopping", re.compile(r"\b(?:shop|shopping|markets?|malls?|stores?)\b")),
    ("things_to_do", re.compile(r"\b(?:things to do|activities|entertainment|fun|experiences?)\b")),
]

BUDGET_LEVEL_PATTERNS = [
    ("budget", re.compile(r"\b(?:budget|cheap|affordable|hostels?|inexpensive|economical)\b")),
    ("luxury", re.compile(r"\b(?:luxury|luxurious|high-end|premium|upscale|5-star|five star)\b")),
    ("mid-range", re.compile(r"\b(?:mid-range|midrange|moderate|reasonable)\b")),
]


# ── Normalisation ───────────────────────────────────────────────────────────


def _clean_token(token: str) -> str:
    token = token.strip(" \t\n.,!?;:\"()[]")
    if token.lower().endswith("'s"):
        token = token[:-2]
    return token


def _title(token: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in token.split("-"))


def normalize_location(candidate: str) -> Optional[str]:
    """Turn a raw pattern capture into a display-ready place name, or ``None``.

    Leading filler is skipped and the name ends at the first stop word, so
    "my trip", "Tokyo in March" and "Lisbon and Porto" become ``None``,
    "Tokyo" and "Lisbon" respectively.
    """
    if not candidate:
        return None
    tokens = [_clean_token(t) for t in candidate.split()]
    tokens = [t for t in tokens if t]

    kept: list[str] = []
    for token in tokens:
        if token.lower().replace("'", "") in STOP_WORDS:
            if kept:
                break
            continue
        kept.append(token)

    if not kept:
        return None
    location = " ".join(_title(t) for t in kept)
    if len(location) < 3 or location.lower() in STOP_WORDS:
        return None
    return location


def resolve_travel_hub(location: str) -> str:
    """Map a country name to its main travel hub; other names pass through."""
    return TRAVEL_HUBS.get(location.lower().strip(), location)


def _writes_in_lowercase(text: str) -> bool:
    """True when nothing past the first character is capitalised (ignoring "I")."""
    body = re.sub(r"\bI(?:'m|'d|'ll|'ve)?\b", "", text[1:])
    return not any(ch.isupper() for ch in body)


def _first_normalized(pattern: re.Pattern, text: str, require_capital: bool = False) -> Optional[str]:
    for match in pattern.finditer(text):
        candidate = match.group(1)
        if require_capital and not _starts_capitalized(candidate):
            continue
        location = normalize_location(candidate)
        if location:
            return location
    return None


def _starts_capitalized(candidate: str) -> bool:
    for token in candidate.split():
        token = _clean_token(token)
        if token and token.lower() not in STOP_WORDS:
            return token[0].isupper()
    return False


# ── Extractors ──────────────────────────────────────────────────────────────


def extract_location(text: str) -> Optional[str]:
    """Return the most likely place name in *text*, or ``None``."""
    if not text or not text.strip():
        return None
    lowercase = _writes_in_lowercase(text)
    for pattern, generic in _LOCATION_PATTERNS:
        location = _first_normalized(pattern, text, require_capital=generic and not lowercase)
        if location:
            return location
    return _first_normalized(_CAPITALIZED, text)


def extract_destination(text: str) -> Optional[str]:
    """Destination of an explicit travel phrase ("fly to X", "from A to X"), hub-resolved."""
    pair = extract_city_pair(text)
    if pair:
        return pair.destination
    location = _first_normalized(_DESTINATION_ONLY, text)
    return resolve_travel_hub(location) if location else None


def extract_origin(text: str) -> Optional[str]:
    """Origin of a "from X" phrase, hub-resolved."""
    pair = extract_city_pair(text)
    if pair:
        return pair.origin
    location = _first_normalized(_ORIGIN_ONLY, text)
    return resolve_travel_hub(location) if location else None


def extract_city_pair(text: str, default_origin: Optional[str] = None) -> Optional[CityPair]:
    """Find an origin/destination pair.

    Tiers: "from A to B", "to B from A", then a bare destination ("fly to B")
    paired with *default_origin* when one is given.
    """
    if not text:
        return None
    for pattern, origin_group, destination_group in (
        (_FROM_TO, 1, 2),
        (_TO_FROM, 2, 1),
    ):
        for match in pattern.finditer(text):
            origin = normalize_location(match.group(origin_group))
            destination = normalize_location(match.group(destination_group))
            if origin and destination:
                pair = _make_pair(origin, destination)
                if pair:
                    return pair

    if default_origin:
        destination = _first_normalized(_DESTINATION_ONLY, text)
        if destination:
            return _make_pair(default_origin, destination)
    return None


def _make_pair(origin: str, destination: str) -> Optional[CityPair]:
    origin, destination = resolve_travel_hub(origin), resolve_travel_hub(destination)
    if origin.lower() == destination.lower():
        return None
    return CityPair(origin=origin, destination=destination)


def extract_currency_codes(text: str) -> list[str]:
    """Currency codes mentioned in *text*, in order of appearance, without duplicates."""
    found: list[str] = []
    for match in _CURRENCY_TOKEN.finditer(text or ""):
        code = None
        if match.group("symbol"):
            code = CURRENCY_SYMBOLS[match.group("symbol")]
        elif match.group("name"):
            name = match.group("name").lower()
            code = CURRENCY_NAMES.get(name) or CURRENCY_NAMES.get(name[:-1])
        elif match.group("code"):
            token = match.group("code")
            if token in KNOWN_CURRENCY_CODES:
                code = token
            elif token not in _NOT_CURRENCY_CODES and _CODE_CONTEXT.search(text[:match.start()]):
                code = token
        if code and code not in found:
            found.append(code)
    return found


def extract_currency_pair(text: str) -> Optional[CurrencyPair]:
    """Return the source/target currencies; a single currency converts to EUR (or USD from EUR)."""
    codes = extract_currency_codes(text)
    if len(codes) >= 2:
        return CurrencyPair(from_currency=codes[0], to_currency=codes[1])
    if len(codes) == 1:
        source = codes[0]
        return CurrencyPair(from_currency=source, to_currency="USD" if source == "EUR" else "EUR")
    return None


def extract_amount(text: str) -> Optional[float]:
    """Return the money amount in *text*: symbol-prefixed, then currency-suffixed, then bare."""
    if not text:
        return None
    for pattern in _AMOUNT_PATTERNS:
        for match in pattern.finditer(text):
            try:
                amount = float(match.group(1).replace(",", ""))
            except ValueError:
                continue
            if amount > 0:
                return amount
    return None


def detect_place_type(text: str) -> str:
    lowered = text.lower()
    for place_type, pattern in PLACE_TYPE_PATTERNS:
        if pattern.search(lowered):
            return place_type
    return "attractions"


def detect_budget_level(text: str) -> Optional[str]:
    lowered = text.lower()
    for level, pattern in BUDGET_LEVEL_PATTERNS:
        if pattern.search(lowered):
            return level
    return None


# ── History-aware variants ──────────────────────────────────────────────────


def recent_human_turns(history: Sequence[Turn], depth: int = DEFAULT_HISTORY_DEPTH) -> list[Turn]:
    """The last *depth* Human turns, newest first."""
    humans = [turn for turn in reversed(history) if turn.role == Role.HUMAN]
    return humans[:depth]


def _with_history(
    text: str,
    history: Iterable[Turn],
    extractor: Callable[[str], Optional[T]],
    kind: EntityKind,
    depth: int,
) -> Optional[ExtractedEntity]:
    value = extractor(text)
    if value is not None:
        return ExtractedEntity(kind=kind, value=value)
    for n, turn in enumerate(recent_human_turns(list(history), depth), start=1):
        value = extractor(turn.text)
        if value is not None:
            logger.info("Resolved %s %r from history turn %d", kind.value, value, n)
            return ExtractedEntity(kind=kind, value=value, source=f"history-turn-{n}")
    return None


def extract_location_from_history(
    text: str, history: Sequence[Turn], depth: int = DEFAULT_HISTORY_DEPTH
) -> Optional[ExtractedEntity]:
    return _with_history(text, history, extract_location, EntityKind.LOCATION, depth)


def extract_currency_pair_from_history(
    text: str, history: Sequence[Turn], depth: int = DEFAULT_HISTORY_DEPTH
) -> Optional[ExtractedEntity]:
    return _with_history(text, history, extract_currency_pair, EntityKind.CURRENCY_PAIR, depth)


def extract_city_pair_from_history(
    text: str,
    history: Sequence[Turn],
    default_origin: Optional[str] = None,
    depth: int = DEFAULT_HISTORY_DEPTH,
) -> Optional[ExtractedEntity]:
    """Resolve a flight route, borrowing missing endpoints from earlier Human turns.

    Order: explicit pair in the message; destination in the message with the
    origin from history (then *default_origin*); finally both endpoints from
    history for follow-ups like "any direct ones?".
    """
    pair = extract_city_pair(text)
    if pair:
        return ExtractedEntity(kind=EntityKind.CITY_PAIR, value=pair)

    turns = recent_human_turns(history, depth)

    def _from_history(extractor: Callable[[str], Optional[str]]) -> tuple[Optional[str], Optional[int]]:
        for n, turn in enumerate(turns, start=1):
            value = extractor(turn.text)
            if value:
                return value, n
        return None, None

    destination = _first_normalized(_DESTINATION_ONLY, text)
    if destination:
        origin, n = _from_history(extract_origin)
        source = f"history-turn-{n}" if n else "current-message"
        if not origin:
            origin = default_origin
        if origin:
            pair = _make_pair(origin, destination)
            if pair:
                return ExtractedEntity(kind=EntityKind.CITY_PAIR, value=pair, source=source)
        return None

    destination, dest_turn = _from_history(extract_destination)
    origin, origin_turn = _from_history(extract_origin)
    if destination and origin:
        pair = _make_pair(origin, destination)
        if pair:
            n = max(dest_turn or 1, origin_turn or 1)
            return ExtractedEntity(kind=EntityKind.CITY_PAIR, value=pair, source=f"history-turn-{n}")
    return None
