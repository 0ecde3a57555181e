import random

import pytest

from countries import utils


class TestPickCurrencyCode:
    def test_uppercases_first_code(self):
        assert utils.pick_currency_code([{"code": "usd"}]) == "USD"

    def test_only_first_currency_is_considered(self):
        assert utils.pick_currency_code([{"code": "eur"}, {"code": "usd"}]) == "EUR"

    def test_first_entry_without_code_is_not_skipped(self):
        assert utils.pick_currency_code([{"name": "Dollar"}, {"code": "usd"}]) is None

    def test_code_longer_than_column_is_no_currency(self):
        assert utils.pick_currency_code([{"code": "abcdefghijk"}]) is None
        assert utils.pick_currency_code([{"code": "abcdefghij"}]) == "ABCDEFGHIJ"

    @pytest.mark.parametrize("currencies", [None, [], "USD", [None], [{"code": ""}], [{"code": 12}]])
    def test_empty_or_malformed(self, currencies):
        assert utils.pick_currency_code(currencies) is None


class TestEstimateGdp:
    def test_no_currency_is_zero(self):
        assert utils.estimate_gdp(1000, 2.0, has_currency=False) == 0

    def test_no_currency_ignores_rate(self):
        assert utils.estimate_gdp(1000, None, has_currency=False) == 0

    def test_missing_rate_is_none(self):
        assert utils.estimate_gdp(1000, None, has_currency=True) is None

    def test_positive_within_multiplier_bounds(self, rng):
        for _ in range(50):
            gdp = utils.estimate_gdp(1000, 2.0, has_currency=True, rng=rng)
            assert 1000 * 1000 / 2.0 <= gdp <= 1000 * 2000 / 2.0

    def test_uses_injected_rng(self):
        class FixedRandom(random.Random):
            def randint(self, a, b):
                assert (a, b) == (1000, 2000)
                return 1500

        assert utils.estimate_gdp(10, 5.0, has_currency=True, rng=FixedRandom()) == 3000


class TestLookupRate:
    def test_present(self):
        assert utils.lookup_rate({"USD": 2}, "USD") == 2.0

    @pytest.mark.parametrize("rates", [{}, {"USD": None}, {"USD": "abc"}, {"USD": 0}, {"USD": -1}, {"USD": float("inf")}])
    def test_unusable_rates_are_absent(self, rates):
        assert utils.lookup_rate(rates, "USD") is None

    def test_no_currency(self):
        assert utils.lookup_rate({"USD": 1}, None) is None


class TestNormalizeCountry:
    def test_full_record(self, rng):
        record = utils.normalize_country(
            {
                "name": "Testland",
                "capital": "Test City",
                "region": "Africa",
                "population": 1000,
                "currencies": [{"code": "usd"}],
                "flag": "https://flags.test/testland.svg",
            },
            {"USD": 2},
            rng,
        )
        assert record.name == "Testland"
        assert record.name_key == "testland"
        assert record.currency_code == "USD"
        assert record.exchange_rate == 2.0
        assert 500_000 <= record.estimated_gdp <= 1_000_000
        assert record.flag_url == "https://flags.test/testland.svg"

    def test_no_currency(self):
        record = utils.normalize_country({"name": "NoMoney", "population": 500, "currencies": []}, {})
        assert record.currency_code is None
        assert record.exchange_rate is None
        assert record.estimated_gdp == 0

    def test_unrated_currency(self):
        record = utils.normalize_country({"name": "Unrated", "population": 10, "currencies": [{"code": "zzz"}]}, {})
        assert record.currency_code == "ZZZ"
        assert record.estimated_gdp is None

    @pytest.mark.parametrize("population", [None, "12", float("nan"), float("inf"), True])
    def test_non_numeric_population_defaults_to_zero(self, population):
        record = utils.normalize_country({"name": "X", "population": population}, {})
        assert record.population == 0

    def test_missing_name(self):
        record = utils.normalize_country({"population": 10}, {})
        assert record.name is None
        assert record.name_key is None

    def test_defaults_exclude_name_key(self):
        record = utils.normalize_country({"name": "X", "population": 1}, {})
        defaults = record.as_defaults()
        assert "name_key" not in defaults
        assert defaults["name"] == "X"
