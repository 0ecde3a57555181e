import json
import random

import pytest
import requests

COUNTRIES_URL = "https://countries.test/v2/all"
RATES_URL = "https://rates.test/v6/latest/USD"


@pytest.fixture(autouse=True)
def external_settings(settings, tmp_path):
    settings.COUNTRIES_API_URL = COUNTRIES_URL
    settings.EXCHANGE_API_URL = RATES_URL
    settings.SUMMARY_IMAGE_PATH = str(tmp_path / "cache" / "summary.png")
    return settings


@pytest.fixture()
def rng():
    return random.Random(1234)


def make_response(payload=None, status_code=200, url="https://feed.test"):
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = "OK" if status_code < 400 else "Error"
    resp.url = url
    resp._content = json.dumps(payload).encode("utf-8")
    return resp


def fake_get(countries=None, rates=None, countries_status=200, rates_status=200, rates_payload=None):
    """Build a ``requests.get`` replacement serving both feeds."""
    if rates_payload is None:
        rates_payload = {"result": "success", "base_code": "USD", "rates": rates or {}}

    def _get(url, timeout=None):
        if url == COUNTRIES_URL:
            return make_response(countries or [], countries_status, url)
        if url == RATES_URL:
            return make_response(rates_payload, rates_status, url)
        raise AssertionError(f"unexpected url {url}")

    return _get


@pytest.fixture()
def feeds():
    """Factory for patched ``requests.get`` side effects."""
    return fake_get
