"""Tests for the dynamic spending governor and guardrails."""

import pytest

from engine.spending_governor import (
    SpendingGovernor,
    SpendingLevels,
    discretionary_factor,
    guardrail_factor,
    split_spending,
    sustainable_withdrawal_rate,
)
from models import WithdrawalPolicy


class TestSplitSpending:
    def test_minimum_discretionary(self):
        levels = split_spending(40_000, 10_000)
        assert levels.discretionary == 24_000
        assert levels.essential == 16_000
        assert levels.healthcare == 10_000
        assert levels.total == 50_000

    def test_quarter_discretionary(self):
        levels = split_spending(200_000)
        assert levels.discretionary == 50_000
        assert levels.essential == 150_000

    def test_discretionary_never_exceeds_total(self):
        levels = split_spending(10_000)
        assert levels.discretionary == 10_000
        assert levels.essential == 0

    def test_scaled(self):
        levels = SpendingLevels(60_000, 20_000, 10_000).scaled(0.75, 0.85)
        assert levels.essential == pytest.approx(45_000)
        assert levels.discretionary == pytest.approx(15_000)
        assert levels.healthcare == pytest.approx(8_500)


class TestDiscretionaryFactor:
    """Regime and drawdown multipliers on discretionary spending."""

    def test_regimes(self):
        assert discretionary_factor("crisis", 1.0, 0.04, 0.04) == 0.5
        assert discretionary_factor("bear", 1.0, 0.04, 0.04) == 0.7
        assert discretionary_factor("bull", 1.2, 0.04, 0.04) == 1.1
        assert discretionary_factor("normal", 1.2, 0.04, 0.04) == 1.0
        assert discretionary_factor("normal", 1.0, 0.04, 0.04) == 1.0

    def test_deep_drawdown_with_unsustainable_rate(self):
        assert discretionary_factor("normal", 0.80, 0.20, 1 / 25) == 0.6

    def test_drawdown(self):
        assert discretionary_factor("normal", 0.80, 0.01, 1 / 25) == 0.8
        assert discretionary_factor("normal", 0.90, 0.20, 1 / 25) == 0.8

    def test_bear_only(self):
        assert discretionary_factor("normal", 0.50, 0.20, 0.04, bear_only=True) == 1.0
        assert discretionary_factor("bull", 1.50, 0.04, 0.04, bear_only=True) == 1.0
        assert discretionary_factor("bear", 1.0, 0.04, 0.04, bear_only=True) == 0.7

    def test_sustainable_rate(self):
        assert sustainable_withdrawal_rate(60, 90) == pytest.approx(1 / 30)
        assert sustainable_withdrawal_rate(85, 90) == pytest.approx(1 / 10)


class TestGuardrails:
    def test_factor_bands(self):
        assert guardrail_factor(0.50) == 0.85
        assert guardrail_factor(0.80) == 0.85
        assert guardrail_factor(0.88) == pytest.approx(0.965)
        assert guardrail_factor(0.90) == pytest.approx(0.975)
        assert guardrail_factor(1.00) == 1.0
        assert guardrail_factor(1.20) == pytest.approx(1.055)
        assert guardrail_factor(5.00) == 1.10

    def test_disabled(self):
        governor = SpendingGovernor(WithdrawalPolicy(guardrails=False), 90)
        assert governor.apply_guardrails(50_000, 0.5) == 50_000

    def test_enabled(self):
        governor = SpendingGovernor(WithdrawalPolicy(guardrails=True), 90)
        assert governor.apply_guardrails(50_000, 0.5) == pytest.approx(42_500)


class TestGovernor:
    def test_crisis_cuts_only_discretionary(self):
        governor = SpendingGovernor(WithdrawalPolicy(dynamic_spending=True), 90)
        base = SpendingLevels(60_000, 20_000, 10_000)
        levels, factor = governor.adjust(base, "crisis", 1.0, 2_000_000, 70)
        assert factor == 0.5
        assert levels.discretionary == 10_000
        assert levels.essential == 60_000
        assert levels.healthcare == 10_000

    def test_static_spending(self):
        governor = SpendingGovernor(WithdrawalPolicy(dynamic_spending=False), 90)
        base = SpendingLevels(60_000, 20_000, 10_000)
        assert governor.adjust(base, "crisis", 0.5, 100_000, 70) == (base, 1.0)
