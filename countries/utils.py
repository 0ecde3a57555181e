import logging
import math
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional

import requests
from django.conf import settings

from .exceptions import ExternalSource, ExternalSourceError
from .models import CURRENCY_CODE_MAX_LENGTH

logger = logging.getLogger(__name__)

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000


@dataclass
class NormalizedCountry:
    name: Optional[str]
    name_key: Optional[str]
    capital: Optional[str]
    region: Optional[str]
    population: Optional[int]
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    flag_url: Optional[str]

    def as_defaults(self):
        """Model field values for an upsert, keyed by field name."""
        values = asdict(self)
        values.pop("name_key")
        return values


def _get_json(source, url):
    timeout = settings.EXTERNAL_API_TIMEOUT
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        logger.debug("Fetched %s feed from %s", source.value, url)
        return resp.json()
    except requests.RequestException as exc:
        raise ExternalSourceError(source, f"{source.value} API failed: {exc}") from exc
    except ValueError as exc:
        raise ExternalSourceError(source, f"{source.value} API returned invalid JSON") from exc


def fetch_countries():
    data = _get_json(ExternalSource.COUNTRIES, settings.COUNTRIES_API_URL)
    if not isinstance(data, list):
        raise ExternalSourceError(ExternalSource.COUNTRIES, "Invalid countries payload")
    return data


def fetch_exchange_rates():
    data = _get_json(ExternalSource.RATES, settings.EXCHANGE_API_URL)
    # API returns 'rates' mapping
    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict):
        raise ExternalSourceError(ExternalSource.RATES, "Invalid exchange rates payload")
    return rates


def fetch_external_data():
    """
    Fetch the countries catalog and the exchange-rate table in parallel.

    Both requests are always issued; the countries failure is reported first
    when both fail. Returns ``(countries, rates)``.
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        countries_future = executor.submit(fetch_countries)
        rates_future = executor.submit(fetch_exchange_rates)
        countries = countries_future.result()
        rates = rates_future.result()
    return countries, rates


def make_multiplier(rng=None):
    rng = rng or random
    return rng.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)


def pick_currency_code(currencies):
    """
    Uppercased code of the first currency, or None. Later entries are ignored.

    Codes too long for the currency_code column count as no currency.
    """
    if not isinstance(currencies, (list, tuple)) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, dict):
        return None
    code = first.get("code")
    if not isinstance(code, str) or not code.strip():
        return None
    code = code.strip().upper()
    if len(code) > CURRENCY_CODE_MAX_LENGTH:
        return None
    return code


def lookup_rate(rates, currency_code):
    """Rate for ``currency_code`` if it is a positive finite number, else None."""
    if not currency_code:
        return None
    try:
        rate = float(rates.get(currency_code))
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def estimate_gdp(population, exchange_rate, has_currency, rng=None):
    """
    population * random(1000..2000) / exchange_rate.

    0 when the country has no currency, None when it has one but no rate.
    The multiplier is drawn per call, so results are not reproducible unless
    a seeded ``rng`` is passed in.
    """
    if not has_currency:
        return 0
    if exchange_rate is None:
        return None
    return (population * make_multiplier(rng)) / exchange_rate


def normalize_population(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(int(value), 0)


def normalize_country(item, rates, rng=None):
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        name = None
    else:
        name = name.strip()

    population = normalize_population(item.get("population"))
    currency_code = pick_currency_code(item.get("currencies"))
    exchange_rate = lookup_rate(rates, currency_code)

    return NormalizedCountry(
        name=name,
        name_key=name.lower() if name else None,
        capital=item.get("capital") or None,
        region=item.get("region") or None,
        population=population,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimate_gdp(population, exchange_rate, currency_code is not None, rng),
        flag_url=item.get("flag") or None,
    )


def get_summary_image_path() -> str:
    """Return full path to the summary artifact."""
    return str(settings.SUMMARY_IMAGE_PATH)


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)
