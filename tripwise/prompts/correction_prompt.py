"""Correction directives sent back to the model when a draft contradicts tool data.

Each template names the exact values the rewrite must quote verbatim.
"""

from typing import Any

WEATHER_CORRECTION = """CRITICAL INSTRUCTION: The user asked about {location}, but your answer did not use the weather data.
Use this EXACT data and mention "{location}" and {temperature}°C by name:
- Location: {location}{country_suffix}
- Temperature: {temperature}°C (feels like {feels_like}°C)
- Condition: {condition}
- Humidity: {humidity}%
- Wind: {wind_speed} km/h"""

FLIGHT_CORRECTION = """HALLUCINATION DETECTED: you invented flight details ({signatures}).
The flight tool returns NO prices, NO dates, NO times, NO flight numbers and NO airline names.

Rewrite your answer in this form:
"I've found flight options from {origin} to {destination}.
Check current prices and availability on:
{links}
{tips}"

DO NOT INVENT:
- Specific prices like $230 or a price range
- Specific dates like "March 15th" or departure times
- Airline names or flight numbers like "TK 1234"
Flight prices change constantly. Direct the user to the booking sites."""

CURRENCY_CORRECTION = """CRITICAL INSTRUCTION: Use this EXACT currency conversion and quote the converted amount verbatim:
{amount} {from_currency} = {converted} {to_currency}
Rate: {rate}"""

CORRECTION_WRAPPER = """[SYSTEM: Your previous response did not match the data returned by the tools. Regenerate your full answer to the user's last message, following every instruction below. Do not mention this correction.

{directives}]"""


def _fmt_number(value: Any, places: int = 2) -> str:
    if isinstance(value, (int, float)):
        return f"{value:.{places}f}"
    return str(value)


def weather_correction(payload: dict[str, Any]) -> str:
    country = payload.get("country")
    temperature = payload.get("temperature")
    return WEATHER_CORRECTION.format(
        location=payload.get("location", "the requested location"),
        country_suffix=f", {country}" if country else "",
        temperature=round(temperature) if isinstance(temperature, (int, float)) else temperature,
        feels_like=payload.get("feels_like", "n/a"),
        condition=payload.get("condition", "n/a"),
        humidity=payload.get("humidity", "n/a"),
        wind_speed=payload.get("wind_speed", "n/a"),
    )


def flight_correction(payload: dict[str, Any], signatures: list[str]) -> str:
    links = "\n".join(
        f"- {link.get('name')}: {link.get('url')}" for link in payload.get("booking_links", [])
    )
    return FLIGHT_CORRECTION.format(
        signatures=", ".join(signatures) or "specific flight details",
        origin=payload.get("origin", "your origin"),
        destination=payload.get("destination", "your destination"),
        links=links or "- the major flight search sites",
        tips="\n".join(payload.get("tips", [])),
    )


def currency_correction(payload: dict[str, Any]) -> str:
    return CURRENCY_CORRECTION.format(
        amount=payload.get("amount"),
        from_currency=payload.get("from_currency"),
        converted=_fmt_number(payload.get("converted")),
        to_currency=payload.get("to_currency"),
        rate=_fmt_number(payload.get("rate"), 4),
    )


def build_correction_message(directives: list[str]) -> str:
    """Fold every directive of one validation pass into a single instruction."""
    return CORRECTION_WRAPPER.format(directives="\n\n".join(directives))
