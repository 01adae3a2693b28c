"""Coarse intent scoring plus vague / off-topic heuristics."""

import logging
import re

from tripwise.prompts.query_templates import QUERY_KEYWORDS
from tripwise.schema import QueryType

logger = logging.getLogger(__name__)

MIN_INTENT_SCORE = 1
LONG_KEYWORD_CHARS = 10

_KEYWORD_PATTERNS = {
    query_type: [(keyword, re.compile(r"\b" + re.escape(keyword))) for keyword in keywords]
    for query_type, keywords in QUERY_KEYWORDS.items()
}

_VAGUE_PATTERNS = [
    re.compile(r"^(?:help|travel|trip|vacation|holiday)[.!?]*$", re.I),
    re.compile(r"^(?:tell me about|what about|how about)\s+\w+[.!?]*$", re.I),
    re.compile(r"^where\??$", re.I),
    re.compile(r"^what\??$", re.I),
]

_OFF_TOPIC_PATTERNS = [
    re.compile(r"what is|who is|when was|how do i|can you explain", re.I),
    re.compile(r"weather forecast|stock market|sports|politics|news", re.I),
    re.compile(r"recipe|cooking|programming|math|science", re.I),
]

_TRAVEL_WORDS = (
    "travel", "trip", "visit", "destination", "pack", "hotel", "flight",
    "vacation", "holiday", "tour",
)


def score_intents(message: str) -> dict[QueryType, int]:
    lowered = message.lower()
    scores = {}
    for query_type, patterns in _KEYWORD_PATTERNS.items():
        scores[query_type] = sum(
            2 if len(keyword) > LONG_KEYWORD_CHARS else 1
            for keyword, pattern in patterns
            if pattern.search(lowered)
        )
    return scores


def identify_query_type(message: str) -> QueryType:
    """Pick the best-scoring intent; ties keep the earlier category, weak scores fall back to general."""
    scores = score_intents(message)
    best_type, best_score = QueryType.GENERAL, 0
    for query_type, score in scores.items():
        if score > best_score:
            best_type, best_score = query_type, score
    if best_score < MIN_INTENT_SCORE:
        return QueryType.GENERAL
    logger.debug("Intent scores %s -> %s", {k.value: v for k, v in scores.items()}, best_type.value)
    return best_type


def is_vague_query(message: str) -> bool:
    trimmed = message.strip()
    if len(trimmed.split()) > 3:
        return False
    return any(pattern.search(trimmed) for pattern in _VAGUE_PATTERNS)


def is_off_topic(message: str) -> bool:
    lowered = message.lower()
    if any(word in lowered for word in _TRAVEL_WORDS):
        return False
    return any(pattern.search(message) for pattern in _OFF_TOPIC_PATTERNS)
