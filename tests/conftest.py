"""Shared builders for small, deterministic households."""

import pytest

from models import (
    AssetBuckets,
    FixedReturn,
    Household,
    IncomeSources,
    LongTermCareAssumptions,
    MarketAssumptions,
    Person,
    SimulationParameters,
    WithdrawalPolicy,
)


def build_params(
    current_age=60,
    retirement_age=65,
    life_expectancy=95,
    gender="female",
    health="excellent",
    income=None,
    spouse=None,
    buckets=None,
    strategy=FixedReturn(0.0),
    volatility=0.0,
    regime_aware=False,
    withdrawal_rate=0.04,
    dynamic_spending=False,
    guardrails=False,
    annual_expenses=None,
    annual_healthcare_costs=0.0,
    personal_savings=None,
    annual_income=0.0,
    household_savings=0.0,
    ltc=None,
    start_year=2026,
):
    user = Person(
        current_age=current_age,
        retirement_age=retirement_age,
        life_expectancy=life_expectancy,
        health=health,
        gender=gender,
        income=income or IncomeSources(),
        annual_savings=personal_savings,
        annual_income=annual_income,
    )
    household = Household(
        user=user,
        spouse=spouse,
        annual_expenses=annual_expenses,
        annual_healthcare_costs=annual_healthcare_costs,
        annual_savings=household_savings,
    )
    return SimulationParameters(
        household=household,
        buckets=buckets if buckets is not None else {"user": AssetBuckets(cash_equivalents=100_000)},
        market=MarketAssumptions(
            user_strategy=strategy,
            spouse_strategy=strategy,
            return_volatility=volatility,
            regime_aware=regime_aware,
        ),
        policy=WithdrawalPolicy(
            withdrawal_rate=withdrawal_rate,
            dynamic_spending=dynamic_spending,
            guardrails=guardrails,
        ),
        ltc=ltc or LongTermCareAssumptions(enabled=False),
        start_year=start_year,
    )


@pytest.fixture
def make_params():
    return build_params
