import logging
import threading
import time
from typing import Optional

import httpx
from langchain.tools import tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

USER_AGENT = "Tripwise/1.0"
BASE_URL = "https://open.er-api.com/v6/latest"
CACHE_TTL_S = 3600.0

_http_client = httpx.Client(
    timeout=10.0,
    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
)

# base currency -> (fetched_at, rates, last_update)
_rates_cache: dict[str, tuple[float, dict[str, float], Optional[str]]] = {}
_cache_lock = threading.Lock()


class CurrencyConversionResult(BaseModel):
    """Live conversion of one amount. On failure `ok=False` and `error` is set."""
    ok: bool
    amount: float
    from_currency: str
    to_currency: str
    rate: Optional[float] = Field(None, description="Units of to_currency per one from_currency.")
    converted: Optional[float] = Field(None, description="amount * rate, rounded to 2 decimals.")
    formatted: Optional[str] = None
    last_updated: Optional[str] = None
    note: str = "Rates update hourly. Banks and exchange offices add fees and commissions."
    error: Optional[str] = None


def _get_rates(base: str) -> tuple[dict[str, float], Optional[str]]:
    now = time.monotonic()
    with _cache_lock:
        cached = _rates_cache.get(base)
    if cached and now - cached[0] < CACHE_TTL_S:
        logger.info("Using cached exchange rates for %s", base)
        return cached[1], cached[2]

    logger.info("Fetching exchange rates for %s", base)
    r = _http_client.get(f"{BASE_URL}/{base}")
    if r.status_code == 404:
        raise ValueError(f"Unsupported currency code '{base}'.")
    r.raise_for_status()
    data = r.json()
    if data.get("result") != "success":
        raise ValueError(f"Unsupported currency code '{base}'.")

    rates = data.get("rates") or {}
    last_update = data.get("time_last_update_utc")
    with _cache_lock:
        _rates_cache[base] = (now, rates, last_update)
    return rates, last_update


def convert(amount: float, from_currency: str, to_currency: str) -> CurrencyConversionResult:
    source, target = from_currency.upper(), to_currency.upper()
    if amount <= 0:
        raise ValueError("Amount must be positive.")
    rates, last_update = _get_rates(source)
    rate = rates.get(target)
    if rate is None:
        raise ValueError(f"Rate not found for '{target}'.")

    converted = round(amount * rate, 2)
    return CurrencyConversionResult(
        ok=True,
        amount=amount,
        from_currency=source,
        to_currency=target,
        rate=rate,
        converted=converted,
        formatted=f"{amount:g} {source} = {converted:.2f} {target}",
        last_updated=last_update,
    )


def clear_cache() -> None:
    with _cache_lock:
        _rates_cache.clear()


@tool
def convert_currency(amount: float, from_currency: str, to_currency: str) -> str:
    """
    Convert an amount between two currencies at the live exchange rate (NO API KEY required).

    Input:
    - amount: positive number to convert (use 1 for a plain rate quote)
    - from_currency / to_currency: ISO 4217 codes such as USD, EUR, GBP, JPY, ILS

    Output: JSON matching `CurrencyConversionResult` with `rate` and the exact
    `converted` amount (2 decimals). On failure `ok=false` and `error` is set.
    """
    try:
        result = convert(amount, from_currency, to_currency)
    except httpx.TimeoutException:
        result = CurrencyConversionResult(
            ok=False, amount=amount, from_currency=from_currency, to_currency=to_currency,
            error="Timeout while fetching exchange rates.",
        )
    except httpx.HTTPError as e:
        result = CurrencyConversionResult(
            ok=False, amount=amount, from_currency=from_currency, to_currency=to_currency,
            error=f"Currency service error: {e}",
        )
    except ValueError as e:
        result = CurrencyConversionResult(
            ok=False, amount=amount, from_currency=from_currency, to_currency=to_currency,
            error=str(e),
        )

    return result.model_dump_json()
