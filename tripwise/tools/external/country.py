import logging
import threading
from typing import Optional

import httpx
from langchain.tools import tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

USER_AGENT = "Tripwise/1.0"
BASE_URL = "https://restcountries.com/v3.1"

_http_client = httpx.Client(
    timeout=10.0,
    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
)

_cache: dict[str, "CountryInfoResult"] = {}
_cache_lock = threading.Lock()


class CountryInfoResult(BaseModel):
    """Practical facts about one country. On failure `ok=False` and `error` is set."""
    ok: bool
    query: str
    name: Optional[str] = None
    capital: Optional[str] = None
    region: Optional[str] = None
    subregion: Optional[str] = None
    population: Optional[int] = None
    languages: list[str] = Field(default_factory=list)
    currencies: list[str] = Field(default_factory=list, description="e.g. 'Euro (€)'")
    timezones: list[str] = Field(default_factory=list)
    driving_side: Optional[str] = None
    practical_tips: dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


def _lookup(path: str, value: str) -> Optional[dict]:
    r = _http_client.get(f"{BASE_URL}/{path}/{value}")
    if r.status_code == 404:
        return None
    r.raise_for_status()
    data = r.json()
    return data[0] if data else None


def _practical_tips(info: CountryInfoResult) -> dict[str, str]:
    tips = {}
    if info.currencies:
        tips["currency_note"] = f"Use {info.currencies[0]} - check exchange rates before traveling"
    if len(info.languages) > 1:
        tips["language_note"] = f"Multiple languages spoken: {', '.join(info.languages)}"
    elif info.languages:
        tips["language_note"] = f"Primary language: {info.languages[0]}"
    if len(info.timezones) > 1:
        tips["timezone_note"] = "Multiple time zones - check the specific city"
    elif info.timezones:
        tips["timezone_note"] = f"Timezone: {info.timezones[0]}"
    return tips


def fetch_country_info(country: str) -> CountryInfoResult:
    """Look *country* up by name, then as a capital city, caching successes."""
    key = country.strip().lower()
    with _cache_lock:
        cached = _cache.get(key)
    if cached is not None:
        logger.info("Using cached country info for %s", country)
        return cached

    logger.info("Fetching country info for %s", country)
    data = _lookup("name", country) or _lookup("capital", country)
    if data is None:
        return CountryInfoResult(ok=False, query=country, error=f"No country found for '{country}'.")

    info = CountryInfoResult(
        ok=True,
        query=country,
        name=data.get("name", {}).get("common"),
        capital=(data.get("capital") or ["N/A"])[0],
        region=data.get("region"),
        subregion=data.get("subregion"),
        population=data.get("population"),
        languages=list((data.get("languages") or {}).values()),
        currencies=[
            f"{c.get('name')} ({c.get('symbol', '')})".replace(" ()", "")
            for c in (data.get("currencies") or {}).values()
        ],
        timezones=data.get("timezones") or [],
        driving_side=(data.get("car") or {}).get("side"),
    )
    info.practical_tips = _practical_tips(info)
    with _cache_lock:
        _cache[key] = info
    return info


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()


@tool
def get_country_info(country: str) -> str:
    """
    Get practical country facts: capital, region, languages, currencies, timezones,
    population and driving side (NO API KEY required).

    Use for currency / money, language, visa-context, capital or timezone questions.
    A capital city name (e.g. "Tokyo") also resolves to its country.
    """
    try:
        result = fetch_country_info(country)
    except httpx.TimeoutException:
        result = CountryInfoResult(ok=False, query=country, error=f"Timeout while fetching data for '{country}'.")
    except httpx.HTTPError as e:
        result = CountryInfoResult(ok=False, query=country, error=f"Country service error: {e}")
    except (KeyError, TypeError, ValueError) as e:
        logger.exception("Unexpected country payload for '%s'", country)
        result = CountryInfoResult(ok=False, query=country, error=f"Unexpected country data: {e}")

    return result.model_dump_json()
