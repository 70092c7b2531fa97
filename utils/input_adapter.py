# utils/input_adapter.py
#
# Turns a household profile snapshot (as produced by the intake form or the
# XML loader) into a validated SimulationParameters.
#
from datetime import date
from typing import Any, Dict, Mapping, Optional

from config.expense_assumptions import (
    default_contribution_mix,
    default_life_expectancy,
    default_ordinary_tax_rate,
    ltc_base_annual_cost,
)
from engine.asset_buckets import classify_assets
from engine.errors import InvalidParameter
from models import (
    Allocation,
    CurrentAllocation,
    FixedReturn,
    GlidePath,
    Household,
    IncomeSources,
    LongTermCareAssumptions,
    MarketAssumptions,
    Person,
    RiskProfile,
    SimulationParameters,
    TaxContext,
    WithdrawalPolicy,
)
from utils.currency import clean_currency, clean_percent
from utils.ss_utils import default_claim_age
from utils.tax_utils import estimate_ordinary_rate


def _birth(person: Mapping[str, Any], as_of: date):
    """Returns (birth_year, birth_month, age) from birth_date, birth_year or current_age."""
    birth_date = person.get("birth_date")
    if birth_date:
        born = birth_date if isinstance(birth_date, date) else date.fromisoformat(str(birth_date))
        age = as_of.year - born.year - ((as_of.month, as_of.day) < (born.month, born.day))
        return born.year, born.month, age
    if person.get("birth_year") is not None:
        year = int(person["birth_year"])
        return year, int(person.get("birth_month") or 1), as_of.year - year
    if person.get("current_age") is not None:
        age = int(person["current_age"])
        return as_of.year - age, 1, age
    raise InvalidParameter("birth_date", "each person needs a birth date, birth year or current age")


def _percent_or(raw: Any, default: float) -> float:
    value = clean_percent(raw)
    return default if value is None else value


def parse_strategy(raw: Any, risk_score: int):
    """'glide_path', 'current_allocation', 'risk_profile' or a fixed return ('6%', 0.06)."""
    if raw is None or raw == "" or raw == "risk_profile":
        return RiskProfile(risk_score)
    if raw == "glide_path":
        return GlidePath()
    if raw == "current_allocation":
        return CurrentAllocation()
    rate = clean_percent(raw)
    if rate is None:
        raise InvalidParameter("return_strategy", f"unknown return strategy {raw!r}")
    return FixedReturn(rate)


def build_person(raw: Mapping[str, Any], as_of: date) -> Person:
    birth_year, birth_month, age = _birth(raw, as_of)
    retirement_age = int(raw.get("retirement_age") or 65)
    claim_age = raw.get("ss_claim_age")

    # Guaranteed-income figures arrive as monthly amounts
    income = IncomeSources(
        social_security=clean_currency(raw.get("social_security")) * 12,
        ss_claim_age=int(claim_age) if claim_age else default_claim_age(birth_year, birth_month),
        pension=clean_currency(raw.get("pension")) * 12,
        pension_survivor_pct=clean_percent(raw.get("pension_survivor_pct")) or 0.0,
        part_time_income=clean_currency(raw.get("part_time_income")) * 12,
        part_time_end_age=int(raw["part_time_end_age"]) if raw.get("part_time_end_age") else None,
    )
    savings = raw.get("annual_savings")
    return Person(
        current_age=age,
        # Already retired: retirement starts now
        retirement_age=max(retirement_age, age),
        life_expectancy=int(raw.get("life_expectancy") or default_life_expectancy),
        health=str(raw.get("health") or "good").lower(),
        gender=str(raw.get("gender") or "male").lower(),
        income=income,
        annual_savings=clean_currency(savings) if savings not in (None, "") else None,
        annual_income=clean_currency(raw.get("annual_income")),
        birth_year=birth_year,
    )


def build_parameters(profile: Mapping[str, Any], as_of: Optional[date] = None) -> SimulationParameters:
    """
    Builds SimulationParameters from a profile snapshot.

    Expected keys: `user` (and `spouse` when married) with birth/retirement/income
    fields, `assets` (list of {type, owner, value, ...}), `monthly_expenses`,
    `monthly_healthcare`, `annual_savings`, `legacy_goal`, `state`,
    `has_ltc_insurance`, `ltc_daily_benefit`, `withdrawal_rate`, `allocation`,
    `effective_tax_rate`. Liabilities are accepted but do not enter the projection.
    """
    as_of = as_of or date.today()

    user_raw = profile.get("user") or {}
    spouse_raw = profile.get("spouse")
    married = str(profile.get("marital_status") or "single").lower() in ("married", "partnered")
    if married and not spouse_raw:
        raise InvalidParameter("spouse", "married household without spouse details")

    user = build_person(user_raw, as_of)
    spouse = build_person(spouse_raw, as_of) if married else None

    bucketing = classify_assets(profile.get("assets") or [])
    buckets = bucketing.buckets or {"user": bucketing.owner("user")}

    monthly_expenses = profile.get("monthly_expenses")
    annual_expenses = clean_currency(monthly_expenses) * 12 if monthly_expenses not in (None, "") else None
    healthcare = clean_currency(profile.get("monthly_healthcare")) * 12

    household = Household(
        user=user,
        spouse=spouse,
        annual_expenses=annual_expenses,
        annual_healthcare_costs=healthcare,
        annual_savings=clean_currency(profile.get("annual_savings")),
        contribution_mix=dict(profile.get("contribution_mix") or default_contribution_mix),
        annuity_income=bucketing.annuity_income,
        legacy_goal=clean_currency(profile.get("legacy_goal")),
        state=profile.get("state"),
    )

    allocation_raw = profile.get("allocation")
    market_kwargs: Dict[str, Any] = {
        "user_strategy": parse_strategy(user_raw.get("return_strategy"), int(user_raw.get("risk_score") or 3)),
        "spouse_strategy": parse_strategy(
            (spouse_raw or {}).get("return_strategy"), int((spouse_raw or {}).get("risk_score") or 3)
        ),
        "regime_aware": bool(profile.get("regime_aware", True)),
    }
    if allocation_raw:
        market_kwargs["allocation"] = Allocation(
            clean_percent(allocation_raw.get("stocks")) or 0.0,
            clean_percent(allocation_raw.get("bonds")) or 0.0,
            clean_percent(allocation_raw.get("cash")) or 0.0,
        )
    if profile.get("return_volatility") is not None:
        market_kwargs["return_volatility"] = clean_percent(profile["return_volatility"])

    filing_status = "married_filing_jointly" if married else "single"
    tax_rate = clean_percent(profile.get("effective_tax_rate"))
    if tax_rate is None:
        spending = (annual_expenses or 0.0) + healthcare
        tax_rate = estimate_ordinary_rate(spending, filing_status) if spending > 0 else default_ordinary_tax_rate

    policy = WithdrawalPolicy(
        withdrawal_rate=_percent_or(profile.get("withdrawal_rate"), 0.04),
        dynamic_spending=bool(profile.get("dynamic_spending", True)),
        bear_only=bool(profile.get("bear_only", False)),
        guardrails=bool(profile.get("guardrails", False)),
    )
    ltc = LongTermCareAssumptions(
        enabled=bool(profile.get("model_ltc", True)),
        annual_cost=clean_currency(profile.get("ltc_annual_cost")) or ltc_base_annual_cost,
        has_insurance=bool(profile.get("has_ltc_insurance", False)),
        daily_benefit=clean_currency(profile.get("ltc_daily_benefit")),
    )

    return SimulationParameters(
        household=household,
        buckets=buckets,
        market=MarketAssumptions(**market_kwargs),
        policy=policy,
        tax=TaxContext(ordinary_rate=tax_rate, filing_status=filing_status),
        ltc=ltc,
        start_year=as_of.year,
    )
