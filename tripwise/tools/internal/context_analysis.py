import re
from typing import Optional

from langchain.tools import tool
from pydantic import BaseModel, Field

from tripwise.extraction import MONTHS

BUDGET_PATTERNS = {
    "budget": re.compile(r"\b(?:budget|cheap|affordable|economical)\b|under \$?\d+"),
    "luxury": re.compile(r"\b(?:luxury|expensive|high-end|premium|splurge|5-star)\b"),
    "moderate": re.compile(r"\b(?:mid-range|moderate|reasonable)\b"),
}
STYLE_PATTERNS = {
    "adventure": re.compile(r"\b(?:adventure|hiking|active|outdoors?|trek(?:king)?)\b"),
    "relaxation": re.compile(r"\b(?:relax(?:ing)?|beach(?:es)?|spa|chill|peaceful)\b"),
    "cultural": re.compile(r"\b(?:culture|cultural|museums?|history|art|heritage)\b"),
    "foodie": re.compile(r"\b(?:food|culinary|gastronom\w*|restaurants?|cuisine)\b"),
    "social": re.compile(r"\b(?:party|nightlife|clubs|bars)\b"),
}
GROUP_PATTERNS = {
    "family": re.compile(r"\b(?:family|kids|children|toddlers?)\b"),
    "solo": re.compile(r"\b(?:solo|alone|by myself)\b"),
    "couple": re.compile(r"\b(?:couple|romantic|partner|spouse|honeymoon)\b"),
    "friends": re.compile(r"\b(?:friends|group|buddies)\b"),
}
DURATION_PATTERN = re.compile(r"\b(\d+)\s*(day|night|week|month)s?\b")


class TravelPreferences(BaseModel):
    budget: Optional[str] = None
    style: Optional[str] = None
    duration: Optional[str] = None
    group: Optional[str] = None
    timing: Optional[str] = None


class ContextAnalysisResult(BaseModel):
    ok: bool = True
    preferences: TravelPreferences
    explicit_requirements: list[str] = Field(default_factory=list)
    implicit_needs: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    summary: str = ""
    recommendation: str = ""


def _last_match(patterns: dict[str, re.Pattern], text: str) -> Optional[str]:
    found = None
    for label, pattern in patterns.items():
        if pattern.search(text):
            found = label
    return found


def analyze(message: str) -> ContextAnalysisResult:
    """Read budget, style, duration, group and month signals out of *message*."""
    lowered = message.lower()
    prefs = TravelPreferences(
        budget=_last_match(BUDGET_PATTERNS, lowered),
        style=_last_match(STYLE_PATTERNS, lowered),
        group=_last_match(GROUP_PATTERNS, lowered),
    )
    duration = DURATION_PATTERN.search(lowered)
    if duration:
        prefs.duration = duration.group(0)
    for month in MONTHS:
        if re.search(rf"\b{month}\b", lowered):
            prefs.timing = month

    explicit = [
        f"{label}: {value}"
        for label, value in (
            ("Budget", prefs.budget),
            ("Travel style", prefs.style),
            ("Duration", prefs.duration),
            ("Group", prefs.group),
            ("Timing", prefs.timing),
        )
        if value
    ]
    implicit, constraints = [], []
    if prefs.group == "family":
        implicit += ["Family-friendly activities and accommodations", "Safety considerations"]
    if prefs.style == "adventure":
        implicit += ["Activities for a good fitness level", "Appropriate gear and equipment"]
    if prefs.budget == "budget":
        constraints.append("Cost-conscious options needed")
        implicit.append("Value-for-money recommendations")

    return ContextAnalysisResult(
        preferences=prefs,
        explicit_requirements=explicit,
        implicit_needs=implicit,
        constraints=constraints,
        summary=(
            f"Found {len(explicit)} explicit requirements, {len(implicit)} implicit needs "
            f"and {len(constraints)} constraints."
        ),
        recommendation=(
            "Ask a clarifying question to understand the traveler better."
            if not explicit
            else "Enough context for targeted recommendations."
        ),
    )


@tool
def analyze_user_context(user_message: str) -> str:
    """Extract travel preferences from a message: budget level, travel style,
    trip length, group type and month, plus the implicit needs they imply.
    Runs locally, no network."""
    return analyze(user_message).model_dump_json()
