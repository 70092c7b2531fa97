"""Tests for asset classification into tax-treatment buckets."""

import pytest

from engine.asset_buckets import annual_payout, classify_assets, normalize_asset_type, normalize_owner
from engine.errors import InvalidParameter
from models import AssetBuckets


class TestAssetBuckets:
    """AssetBuckets arithmetic."""

    def test_total_is_sum_of_buckets(self):
        b = AssetBuckets(tax_deferred=100, tax_free=50, capital_gains=25, cash_equivalents=5)
        assert b.total_assets == 180
        b.take("tax_free", 20)
        b.add("cash_equivalents", 10)
        assert b.total_assets == b.tax_deferred + b.tax_free + b.capital_gains + b.cash_equivalents == 170

    def test_take_reduces_basis_pro_rata(self):
        b = AssetBuckets(capital_gains=100.0, capital_gains_basis=50.0)
        taken = b.take("capital_gains", 40.0)
        assert taken == 40.0
        assert b.capital_gains == pytest.approx(60.0)
        assert b.capital_gains_basis == pytest.approx(30.0)
        assert b.gain_fraction() == pytest.approx(0.5)

    def test_take_is_capped_at_balance(self):
        b = AssetBuckets(cash_equivalents=30.0)
        assert b.take("cash_equivalents", 100.0) == 30.0
        assert b.cash_equivalents == 0.0

    def test_grow_leaves_basis_alone(self):
        b = AssetBuckets(capital_gains=100.0, capital_gains_basis=100.0, tax_free=10.0)
        b.grow(0.10)
        assert b.capital_gains == pytest.approx(110.0)
        assert b.tax_free == pytest.approx(11.0)
        assert b.capital_gains_basis == 100.0

    def test_combine(self):
        total = AssetBuckets.combine([AssetBuckets(tax_deferred=10), AssetBuckets(tax_deferred=5, tax_free=1)])
        assert total.tax_deferred == 15
        assert total.tax_free == 1


class TestNormalization:
    def test_asset_type_aliases(self):
        assert normalize_asset_type("401(k)") == "401k"
        assert normalize_asset_type("Traditional IRA") == "traditional-ira"
        assert normalize_asset_type("roth") == "roth-ira"
        assert normalize_asset_type("money_market") == "money-market"

    def test_owner_aliases(self):
        assert normalize_owner("Person1") == "user"
        assert normalize_owner("partner") == "spouse"
        assert normalize_owner(None) == "user"
        with pytest.raises(InvalidParameter):
            normalize_owner("cousin")

    def test_annual_payout(self):
        assert annual_payout(1000, "monthly") == 12000
        assert annual_payout(1000, "quarterly") == 4000
        with pytest.raises(InvalidParameter):
            annual_payout(1000, "weekly")


class TestClassifyAssets:
    """classify_assets() routing."""

    def test_buckets_by_type_and_owner(self):
        result = classify_assets([
            {"type": "401(k)", "owner": "user", "value": 100_000},
            {"type": "Traditional IRA", "owner": "spouse", "value": 50_000},
            {"type": "roth-ira", "owner": "user", "value": 20_000},
            {"type": "taxable-brokerage", "owner": "joint", "value": 80_000, "cost_basis": 60_000},
            {"type": "savings", "owner": "joint", "value": 10_000},
        ])
        assert result.buckets["user"].tax_deferred == 100_000
        assert result.buckets["user"].tax_free == 20_000
        assert result.buckets["spouse"].tax_deferred == 50_000
        assert result.buckets["joint"].capital_gains == 80_000
        assert result.buckets["joint"].capital_gains_basis == 60_000
        assert result.buckets["joint"].cash_equivalents == 10_000
        assert result.combined.total_assets == 260_000

    def test_excluded_types_are_not_invested(self):
        result = classify_assets([
            {"type": "checking", "value": 5_000},
            {"type": "vehicle", "value": 30_000},
            {"type": "savings", "value": 1_000},
        ])
        assert result.excluded_value == 35_000
        assert result.combined.total_assets == 1_000

    def test_missing_basis_assumes_embedded_gain(self):
        result = classify_assets([{"type": "brokerage", "value": 100_000}])
        assert result.buckets["user"].capital_gains_basis == pytest.approx(80_000)

    def test_paying_annuity_becomes_income(self):
        result = classify_assets([
            {"type": "qualified-annuities", "value": 200_000, "annuity_type": "immediate",
             "payout_amount": 1_000, "payout_frequency": "monthly"},
        ])
        assert result.annuity_income == 12_000
        assert result.combined.total_assets == 0

    def test_deferred_annuity_is_placeholder_asset(self):
        result = classify_assets([
            {"type": "qualified-annuities", "owner": "spouse", "value": 90_000,
             "annuity_type": "deferred", "payout_started": False},
            {"type": "non-qualified-annuities", "value": 40_000, "annuity_type": "deferred"},
        ])
        assert result.annuity_income == 0
        assert result.buckets["spouse"].tax_deferred == 90_000
        assert result.buckets["user"].capital_gains == 40_000

    def test_deferred_annuity_already_paying(self):
        result = classify_assets([
            {"type": "roth-annuities", "value": 50_000, "annuity_type": "deferred",
             "payout_started": True, "payout_amount": 500},
        ])
        assert result.annuity_income == 6_000
        assert result.combined.total_assets == 0

    def test_unknown_type_raises(self):
        with pytest.raises(InvalidParameter):
            classify_assets([{"type": "beanie-babies", "value": 1}])

    def test_negative_value_raises(self):
        with pytest.raises(InvalidParameter):
            classify_assets([{"type": "savings", "value": -1}])
