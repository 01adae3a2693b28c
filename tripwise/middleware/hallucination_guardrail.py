"""Rule-based hallucination checks for draft answers.

Each ``ValidationRule`` covers one tool domain. A rule inspects the tool's
result together with the model's draft and reports a ``Violation`` carrying
the correction directive to send back to the model. The orchestration loop
decides how often a correction may be issued; this module only detects.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable, Optional, Union

from tripwise.middleware.tool_selector import CURRENCY_TOOL, FLIGHTS_TOOL, WEATHER_TOOL
from tripwise.prompts.correction_prompt import (
    currency_correction,
    flight_correction,
    weather_correction,
)
from tripwise.schema import ToolFailure, ToolInvocation, ToolResult, ToolSuccess, Violation

logger = logging.getLogger(__name__)

_MONTHS = (
    r"(?:January|February|March|April|May|June|July|August|September|October|November|December"
    r"|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)"
)
_AIRLINES = (
    r"Turkish Airlines|Lufthansa|Austrian Airlines|Emirates|United Airlines|Delta Air Lines|"
    r"British Airways|Air France|KLM|El Al|Wizz ?Air|Ryanair|easyJet|Aegean|TAP Air Portugal|"
    r"Iberia|Qatar Airways|Etihad|American Airlines|Vueling|ITA Airways|Swiss International"
)

# Signatures of details the flight tool never returns.
FLIGHT_SIGNATURES: list[tuple[str, re.Pattern]] = [
    ("currency amount", re.compile(
        r"[$€£₪¥]\s?(?:\d{1,3}(?:,\d{3})+|\d{2,5})(?![\d])"
        r"|\b\d{2,5}\s?(?:USD|EUR|GBP|ILS|dollars|euros|shekels)\b"
        r"|\b(?:USD|EUR|GBP|ILS)\s?\d"
    )),
    ("specific date", re.compile(
        rf"\b{_MONTHS}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?\b|\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTHS}\b"
    )),
    ("airline name", re.compile(rf"\b(?:{_AIRLINES})\b|\b[A-Z][a-z]+\s+(?:Airlines?|Airways)\b")),
    ("flight number", re.compile(r"\b[A-Z]{2}\s?\d{3,4}\b")),
    ("price range", re.compile(
        r"\b\d{2,5}\s?(?:-|–|to)\s?\d{2,5}\s?(?:USD|EUR|GBP|ILS|dollars|euros|shekels)\b",
        re.I,
    )),
    ("clock time", re.compile(r"\b\d{1,2}:\d{2}\s*(?:AM|PM|am|pm)\b|\b(?:[01]?\d|2[0-3]):[0-5]\d\b")),
]


def _contains_number(text: str, number: str) -> bool:
    return re.search(rf"(?<![\d]){re.escape(number)}(?![\d])", text) is not None


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def amount_forms(value: float) -> list[str]:
    """Textual forms in which a converted amount may legitimately appear."""
    rounded = _round_half_up(value)
    forms = [f"{value:.2f}", f"{value:,.2f}", str(value), str(rounded), f"{rounded:,}"]
    if value == int(value):
        forms.append(str(int(value)))
    return list(dict.fromkeys(forms))


# ── Detectors: (payload, draft) -> list of reasons ─────────────────────────


def check_weather(payload: dict[str, Any], draft: str) -> list[str]:
    reasons = []
    location = payload.get("location")
    if location and location.lower() not in draft.lower():
        reasons.append(f"answer does not mention {location}")
    temperature = payload.get("temperature")
    if isinstance(temperature, (int, float)):
        candidates = {str(_round_half_up(temperature)), str(temperature), f"{temperature:.1f}"}
        if not any(_contains_number(draft, c) for c in candidates):
            reasons.append(f"answer does not quote the temperature {_round_half_up(temperature)}°C")
    return reasons


def check_flights(payload: dict[str, Any], draft: str) -> list[str]:
    return [label for label, pattern in FLIGHT_SIGNATURES if pattern.search(draft)]


def check_currency(payload: dict[str, Any], draft: str) -> list[str]:
    converted = payload.get("converted")
    if not isinstance(converted, (int, float)):
        return []
    if any(_contains_number(draft, form) for form in amount_forms(converted)):
        return []
    return [f"answer does not quote the converted amount {converted:.2f}"]


@dataclass(frozen=True)
class ValidationRule:
    domain: str
    tool_name: str
    detect: Callable[[dict[str, Any], str], list[str]]
    correction_template: Callable[[dict[str, Any], list[str]], str]
    # Flight signatures are fabrications whatever the tool returned.
    requires_success: bool = True


DEFAULT_RULES = (
    ValidationRule(
        domain="weather",
        tool_name=WEATHER_TOOL,
        detect=check_weather,
        correction_template=lambda payload, _reasons: weather_correction(payload),
    ),
    ValidationRule(
        domain="flights",
        tool_name=FLIGHTS_TOOL,
        detect=check_flights,
        correction_template=flight_correction,
        requires_success=False,
    ),
    ValidationRule(
        domain="currency",
        tool_name=CURRENCY_TOOL,
        detect=check_currency,
        correction_template=lambda payload, _reasons: currency_correction(payload),
    ),
)


@dataclass
class ResponseValidator:
    rules: tuple[ValidationRule, ...] = field(default=DEFAULT_RULES)

    def __post_init__(self):
        self._by_domain = {rule.domain: rule for rule in self.rules}

    def check(
        self,
        domain: str,
        result: Union[ToolResult, ToolInvocation],
        draft: str,
    ) -> Optional[Violation]:
        """Compare *draft* against one tool result of *domain*."""
        rule = self._by_domain[domain]
        if isinstance(result, ToolInvocation):
            result = result.result
        if isinstance(result, ToolFailure) and rule.requires_success:
            return None
        payload = result.payload if isinstance(result, ToolSuccess) else {}
        if rule.requires_success and payload.get("success") is False:
            return None

        reasons = rule.detect(payload, draft or "")
        if not reasons:
            return None
        logger.warning("Validation failed for %s: %s", domain, "; ".join(reasons))
        return Violation(
            domain=domain,
            reason="; ".join(reasons),
            correction=rule.correction_template(payload, reasons),
        )

    def validate(
        self,
        invocations: Iterable[ToolInvocation],
        draft: str,
        skip_domains: Iterable[str] = (),
    ) -> list[Violation]:
        """At most one violation per domain, in rule order, over every invocation seen so far."""
        skipped = set(skip_domains)
        invocations = list(invocations)
        violations = []
        for rule in self.rules:
            if rule.domain in skipped:
                continue
            for invocation in invocations:
                if invocation.tool_name != rule.tool_name:
                    continue
                violation = self.check(rule.domain, invocation, draft)
                if violation:
                    violations.append(violation)
                    break
        return violations
