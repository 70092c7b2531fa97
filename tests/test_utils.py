"""Tests for currency parsing, tax brackets and Social Security ages."""

import pytest

from utils.currency import clean_currency, clean_percent, format_currency_output, format_percent_output
from utils.ss_utils import default_claim_age, get_full_retirement_age
from utils.tax_utils import capital_gains_tax, estimate_ordinary_rate, ordinary_income_tax


class TestCurrency:
    def test_clean_currency(self):
        assert clean_currency("$140,000.00") == 140_000
        assert clean_currency("85k") == 85_000
        assert clean_currency("$1.2M") == pytest.approx(1_200_000)
        assert clean_currency(1200) == 1200.0
        assert clean_currency(None) == 0.0
        assert clean_currency("n/a") == 0.0

    def test_clean_percent(self):
        assert clean_percent("23%") == pytest.approx(0.23)
        assert clean_percent(23) == pytest.approx(0.23)
        assert clean_percent(0.23) == 0.23
        assert clean_percent("") is None
        assert clean_percent("lots") is None

    def test_format(self):
        assert format_currency_output(1_234_567) == "$1,234,567"
        assert format_percent_output(0.235) == "23.5%"
        assert format_percent_output(0.04, 2) == "4.00%"


class TestTax:
    """2026 federal brackets."""

    def test_gains_in_zero_bracket(self):
        assert capital_gains_tax(10_000, 0, "single") == 0.0

    def test_gains_stacked_on_income(self):
        assert capital_gains_tax(10_000, 100_000, "single") == pytest.approx(1_500)

    def test_gains_straddling_bracket(self):
        # 8,400 at 0% and 11,600 at 15%
        assert capital_gains_tax(20_000, 40_000, "single") == pytest.approx(1_740)

    def test_ordinary_income_tax(self):
        assert ordinary_income_tax(12_400, "single") == pytest.approx(1_240)
        assert ordinary_income_tax(50_400, "single") == pytest.approx(1_240 + 38_000 * 0.12)

    def test_estimated_rate(self):
        assert estimate_ordinary_rate(0) == 0.0
        assert estimate_ordinary_rate(15_050, "single") == 0.0
        assert 0.0 < estimate_ordinary_rate(120_000, "married_filing_jointly") < 0.12


class TestSocialSecurityAges:
    def test_full_retirement_age(self):
        assert get_full_retirement_age(1937, 6) == 65.0
        assert get_full_retirement_age(1950, 6) == 66.0
        assert get_full_retirement_age(1957, 6) == pytest.approx(66.5)
        assert get_full_retirement_age(1965, 6) == 67.0

    def test_january_births_use_prior_year(self):
        assert get_full_retirement_age(1960, 1) == pytest.approx(66 + 10 / 12)

    def test_default_claim_age(self):
        assert default_claim_age(1957, 6) == 67
        assert default_claim_age(1950, 6) == 66
        assert default_claim_age(1970, 6) == 67
