# models.py
#
# Value objects passed into and out of the simulation engine.
# SimulationParameters is built once per request and validated on construction.
#
import math
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Literal, NamedTuple, Optional, Union

import pandas as pd

from config.expense_assumptions import (
    default_contribution_mix,
    default_life_expectancy,
    default_ordinary_tax_rate,
    ltc_base_annual_cost,
)
from config.market_assumptions import default_allocation, default_return_volatility, default_risk_profile
from utils.tax_utils import capital_gains_tax

Owner = Literal["user", "spouse", "joint"]
Regime = Literal["bull", "bear", "normal", "crisis"]
HealthStatus = Literal["excellent", "good", "fair", "poor"]
Gender = Literal["male", "female"]

OWNERS = ("user", "spouse", "joint")
REGIMES = ("bull", "bear", "normal", "crisis")
HEALTH_STATUSES = ("excellent", "good", "fair", "poor")
GENDERS = ("male", "female")

# Withdrawal order: cash first, Roth last
BUCKET_KINDS = ("cash_equivalents", "capital_gains", "tax_deferred", "tax_free")


class Allocation(NamedTuple):
    stocks: float
    bonds: float
    cash: float


# =============================================================================
# Return strategies
# =============================================================================

@dataclass(frozen=True)
class FixedReturn:
    rate: float


@dataclass(frozen=True)
class GlidePath:
    pass


@dataclass(frozen=True)
class CurrentAllocation:
    pass


@dataclass(frozen=True)
class RiskProfile:
    score: int = default_risk_profile


ReturnStrategy = Union[FixedReturn, GlidePath, CurrentAllocation, RiskProfile]


# =============================================================================
# Asset buckets
# =============================================================================

@dataclass
class AssetBuckets:
    """
    Balances by tax treatment for one owner (or a combined view).
    total_assets is derived, so it always equals the sum of the four buckets.
    """
    tax_deferred: float = 0.0
    tax_free: float = 0.0
    capital_gains: float = 0.0
    cash_equivalents: float = 0.0
    capital_gains_basis: float = 0.0

    @property
    def total_assets(self) -> float:
        return self.tax_deferred + self.tax_free + self.capital_gains + self.cash_equivalents

    def balance(self, kind: str) -> float:
        return getattr(self, kind)

    def gain_fraction(self) -> float:
        """Share of the capital-gains bucket that is unrealized gain."""
        if self.capital_gains <= 0:
            return 0.0
        return min(1.0, max(0.0, 1.0 - self.capital_gains_basis / self.capital_gains))

    def add(self, kind: str, amount: float, basis: Optional[float] = None) -> None:
        if amount <= 0:
            return
        setattr(self, kind, getattr(self, kind) + amount)
        if kind == "capital_gains":
            self.capital_gains_basis += amount if basis is None else basis

    def take(self, kind: str, amount: float) -> float:
        """Remove up to `amount` from one bucket and return what was actually taken."""
        available = getattr(self, kind)
        taken = min(max(amount, 0.0), max(available, 0.0))
        if taken <= 0:
            return 0.0
        if kind == "capital_gains":
            self.capital_gains_basis -= self.capital_gains_basis * (taken / available)
        setattr(self, kind, available - taken)
        return taken

    def grow(self, rate: float) -> None:
        # basis is unaffected by market moves
        self.tax_deferred *= 1 + rate
        self.tax_free *= 1 + rate
        self.capital_gains *= 1 + rate
        self.cash_equivalents *= 1 + rate

    def copy(self) -> "AssetBuckets":
        return replace(self)

    @classmethod
    def combine(cls, buckets: Iterable["AssetBuckets"]) -> "AssetBuckets":
        total = cls()
        for b in buckets:
            for f in fields(cls):
                setattr(total, f.name, getattr(total, f.name) + getattr(b, f.name))
        return total


# =============================================================================
# Household
# =============================================================================

@dataclass(frozen=True)
class IncomeSources:
    social_security: float = 0.0        # annual benefit at claim age
    ss_claim_age: int = 67
    pension: float = 0.0                # annual, from retirement age
    pension_survivor_pct: float = 0.0
    part_time_income: float = 0.0       # annual, from retirement age
    part_time_end_age: Optional[int] = None


@dataclass(frozen=True)
class Person:
    current_age: int
    retirement_age: int
    life_expectancy: int = default_life_expectancy
    health: HealthStatus = "good"
    gender: Gender = "male"
    income: IncomeSources = field(default_factory=IncomeSources)
    annual_savings: Optional[float] = None
    annual_income: float = 0.0
    birth_year: Optional[int] = None


@dataclass(frozen=True)
class Household:
    user: Person
    spouse: Optional[Person] = None
    annual_expenses: Optional[float] = None     # non-healthcare; None means the withdrawal rate sets spending
    annual_healthcare_costs: float = 0.0
    annual_savings: float = 0.0
    contribution_mix: Dict[str, float] = field(default_factory=lambda: dict(default_contribution_mix))
    annuity_income: float = 0.0
    legacy_goal: float = 0.0
    state: Optional[str] = None

    @property
    def is_married(self) -> bool:
        return self.spouse is not None

    def people(self) -> Dict[str, Person]:
        people = {"user": self.user}
        if self.spouse is not None:
            people["spouse"] = self.spouse
        return people

    @property
    def planning_horizon(self) -> int:
        return max(p.life_expectancy for p in self.people().values())


# =============================================================================
# Assumptions and policies
# =============================================================================

@dataclass(frozen=True)
class MarketAssumptions:
    user_strategy: ReturnStrategy = RiskProfile()
    spouse_strategy: ReturnStrategy = RiskProfile()
    return_volatility: float = default_return_volatility
    allocation: Allocation = Allocation(*default_allocation)
    regime_aware: bool = True

    def strategy_for(self, owner: str) -> ReturnStrategy:
        return self.spouse_strategy if owner == "spouse" else self.user_strategy


@dataclass(frozen=True)
class WithdrawalPolicy:
    withdrawal_rate: float = 0.04
    dynamic_spending: bool = True
    bear_only: bool = False
    guardrails: bool = False


@dataclass(frozen=True)
class TaxContext:
    ordinary_rate: float = default_ordinary_tax_rate
    filing_status: str = "single"
    capital_gains_tax: Callable[[float, float, str], float] = capital_gains_tax


@dataclass(frozen=True)
class LongTermCareAssumptions:
    enabled: bool = False
    annual_cost: float = ltc_base_annual_cost
    has_insurance: bool = False
    daily_benefit: float = 0.0


@dataclass(frozen=True)
class SimulationParameters:
    household: Household
    buckets: Dict[str, AssetBuckets]
    market: MarketAssumptions = field(default_factory=MarketAssumptions)
    policy: WithdrawalPolicy = field(default_factory=WithdrawalPolicy)
    tax: TaxContext = field(default_factory=TaxContext)
    ltc: LongTermCareAssumptions = field(default_factory=LongTermCareAssumptions)
    start_year: int = field(default_factory=lambda: date.today().year)

    def __post_init__(self):
        self.validate()

    @property
    def years_to_retirement(self) -> int:
        user = self.household.user
        return max(0, user.retirement_age - user.current_age)

    def combined_buckets(self) -> AssetBuckets:
        return AssetBuckets.combine(self.buckets.values())

    def with_withdrawal_rate(self, rate: float) -> "SimulationParameters":
        """Copy with a new policy rate. Expense-driven plans ignore it; see run_monte_carlo(withdrawal_rate=...)."""
        return replace(self, policy=replace(self.policy, withdrawal_rate=rate))

    def birth_year(self, person: Person) -> int:
        if person.birth_year is not None:
            return person.birth_year
        return self.start_year - person.current_age

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------
    def validate(self) -> None:
        from engine.errors import InvalidParameter

        def require(condition: bool, name: str, message: str):
            if not condition:
                raise InvalidParameter(name, message)

        def finite(value, name: str, minimum: Optional[float] = 0.0):
            require(value is not None and math.isfinite(value), name, f"must be a finite number, got {value!r}")
            if minimum is not None:
                require(value >= minimum, name, f"must be >= {minimum}, got {value!r}")

        hh = self.household
        for owner, person in hh.people().items():
            require(0 < person.current_age < 120, f"{owner}.current_age", "must be between 1 and 119")
            require(person.retirement_age >= person.current_age, f"{owner}.retirement_age",
                    f"retirement age {person.retirement_age} is before current age {person.current_age}")
            require(person.retirement_age <= 100, f"{owner}.retirement_age", "must be 100 or less")
            require(person.current_age < person.life_expectancy <= 120, f"{owner}.life_expectancy",
                    "must be above the current age and at most 120")
            require(person.health in HEALTH_STATUSES, f"{owner}.health", f"unknown health status {person.health!r}")
            require(person.gender in GENDERS, f"{owner}.gender", f"unknown gender {person.gender!r}")
            inc = person.income
            finite(inc.social_security, f"{owner}.social_security")
            finite(inc.pension, f"{owner}.pension")
            finite(inc.part_time_income, f"{owner}.part_time_income")
            require(0.0 <= inc.pension_survivor_pct <= 1.0, f"{owner}.pension_survivor_pct", "must be within [0, 1]")
            require(62 <= inc.ss_claim_age <= 70, f"{owner}.ss_claim_age", "must be between 62 and 70")
            finite(person.annual_income, f"{owner}.annual_income")
            if person.annual_savings is not None:
                finite(person.annual_savings, f"{owner}.annual_savings")

        if hh.annual_expenses is not None:
            finite(hh.annual_expenses, "annual_expenses")
        finite(hh.annual_healthcare_costs, "annual_healthcare_costs")
        finite(hh.annual_savings, "annual_savings")
        finite(hh.annuity_income, "annuity_income")
        finite(hh.legacy_goal, "legacy_goal")
        for key, weight in hh.contribution_mix.items():
            finite(weight, f"contribution_mix.{key}")

        require(len(self.buckets) > 0, "buckets", "at least one owner is required")
        for owner, b in self.buckets.items():
            require(owner in OWNERS, "buckets", f"unknown owner {owner!r}")
            require(owner != "spouse" or hh.is_married, "buckets.spouse", "spouse assets without a spouse")
            for f in fields(AssetBuckets):
                finite(getattr(b, f.name), f"buckets.{owner}.{f.name}")

        m = self.market
        finite(m.return_volatility, "return_volatility")
        require(len(m.allocation) == 3, "allocation", "expected stock/bond/cash weights")
        for name, weight in zip(Allocation._fields, m.allocation):
            finite(weight, f"allocation.{name}")
        require(abs(sum(m.allocation) - 1.0) <= 1e-6, "allocation",
                f"weights must sum to 100%, got {sum(m.allocation):.2%}")
        for owner in ("user", "spouse"):
            strategy = m.strategy_for(owner)
            if isinstance(strategy, RiskProfile):
                require(strategy.score in (1, 2, 3, 4, 5), f"{owner}_strategy", "risk profile score must be 1..5")
            elif isinstance(strategy, FixedReturn):
                finite(strategy.rate, f"{owner}_strategy.rate", minimum=None)
                require(strategy.rate > -1.0, f"{owner}_strategy.rate", "must be above -100%")
            else:
                require(isinstance(strategy, (GlidePath, CurrentAllocation)), f"{owner}_strategy",
                        f"unknown return strategy {strategy!r}")

        finite(self.policy.withdrawal_rate, "withdrawal_rate")
        require(self.policy.withdrawal_rate <= 1.0, "withdrawal_rate", "must be at most 100%")
        finite(self.tax.ordinary_rate, "ordinary_rate")
        require(self.tax.ordinary_rate < 1.0, "ordinary_rate", "must be below 100%")
        require(callable(self.tax.capital_gains_tax), "capital_gains_tax", "must be callable")
        finite(self.ltc.annual_cost, "ltc.annual_cost")
        finite(self.ltc.daily_benefit, "ltc.daily_benefit")


# =============================================================================
# Outputs
# =============================================================================

@dataclass(frozen=True)
class YearlyCashFlow:
    year: int
    age: int
    portfolio_balance: float
    guaranteed_income: float
    withdrawal: float
    net_cash_flow: float
    market_regime: str
    survivors: int = 1


@dataclass
class ScenarioOutcome:
    success: bool
    ending_balance: float
    years_until_depletion: Optional[int] = None
    cash_flows: List[YearlyCashFlow] = field(default_factory=list)


@dataclass
class SimulationResult:
    probability_of_success: float
    percentiles: Dict[int, float]
    safe_withdrawal_rate: float
    projected_portfolio: float
    cash_flows: List[YearlyCashFlow]
    trials: int
    current_assets: float = 0.0
    average_years_until_depletion: Optional[float] = None
    legacy_goal_probability: float = 0.0

    @property
    def median_ending_balance(self) -> float:
        return self.percentiles[50]

    def cash_flow_frame(self) -> pd.DataFrame:
        """The representative trial's yearly rows as a DataFrame (one row per year)."""
        columns = [f.name for f in fields(YearlyCashFlow)]
        return pd.DataFrame([asdict(row) for row in self.cash_flows], columns=columns)
