from unittest import mock

import pytest
import requests

from countries import utils
from countries.exceptions import ExternalSource, ExternalSourceError

COUNTRIES = [{"name": "Testland", "population": 1000, "currencies": [{"code": "usd"}]}]


class TestFetchExternalData:
    def test_returns_countries_and_rates(self, feeds):
        with mock.patch("countries.utils.requests.get", side_effect=feeds(COUNTRIES, {"USD": 1})) as get:
            countries, rates = utils.fetch_external_data()
        assert countries == COUNTRIES
        assert rates == {"USD": 1}
        assert get.call_count == 2

    def test_passes_timeout(self, feeds, settings):
        settings.EXTERNAL_API_TIMEOUT = 3
        with mock.patch("countries.utils.requests.get", side_effect=feeds(COUNTRIES, {})) as get:
            utils.fetch_external_data()
        assert all(call.kwargs["timeout"] == 3 for call in get.call_args_list)

    def test_countries_http_error(self, feeds):
        with mock.patch("countries.utils.requests.get", side_effect=feeds(countries_status=500)):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_external_data()
        assert exc_info.value.source is ExternalSource.COUNTRIES

    def test_rates_http_error(self, feeds):
        with mock.patch("countries.utils.requests.get", side_effect=feeds(COUNTRIES, rates_status=503)):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_external_data()
        assert exc_info.value.source is ExternalSource.RATES

    def test_rates_payload_without_rates_field(self, feeds):
        get = feeds(COUNTRIES, rates_payload={"result": "error"})
        with mock.patch("countries.utils.requests.get", side_effect=get):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_external_data()
        assert exc_info.value.source is ExternalSource.RATES

    def test_countries_failure_reported_when_both_fail(self, feeds):
        with mock.patch("countries.utils.requests.get", side_effect=feeds(countries_status=500, rates_status=500)):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_external_data()
        assert exc_info.value.source is ExternalSource.COUNTRIES

    def test_connection_error(self):
        with mock.patch("countries.utils.requests.get", side_effect=requests.ConnectionError("boom")):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_countries()
        assert exc_info.value.source is ExternalSource.COUNTRIES
        assert "boom" in exc_info.value.message

    def test_timeout(self):
        with mock.patch("countries.utils.requests.get", side_effect=requests.Timeout()):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_exchange_rates()
        assert exc_info.value.source is ExternalSource.RATES

    def test_countries_payload_must_be_a_list(self, feeds):
        get = feeds(countries={"message": "not found"})
        with mock.patch("countries.utils.requests.get", side_effect=get):
            with pytest.raises(ExternalSourceError) as exc_info:
                utils.fetch_countries()
        assert exc_info.value.source is ExternalSource.COUNTRIES
