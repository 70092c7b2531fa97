# engine/spending_governor.py
#
# Dynamic spending: only discretionary spending reacts to markets; guardrails
# optionally scale the whole net withdrawal need with year-over-year performance.
#

from dataclasses import dataclass, replace
from typing import Tuple

from config.expense_assumptions import (
    bear_spending_factor,
    bull_spending_factor,
    crisis_spending_factor,
    deep_drawdown_ratio,
    deep_drawdown_spending_factor,
    discretionary_ratio,
    drawdown_ratio,
    drawdown_spending_factor,
    guardrail_ceiling,
    guardrail_floor,
    minimum_discretionary,
    minimum_years_remaining,
    strong_gain_ratio,
    unsustainable_rate_multiplier,
)
from models import WithdrawalPolicy


@dataclass(frozen=True)
class SpendingLevels:
    essential: float
    discretionary: float
    healthcare: float

    @property
    def total(self) -> float:
        return self.essential + self.discretionary + self.healthcare

    def scaled(self, non_healthcare_factor: float, healthcare_factor: float) -> "SpendingLevels":
        return SpendingLevels(self.essential * non_healthcare_factor,
                              self.discretionary * non_healthcare_factor,
                              self.healthcare * healthcare_factor)


def split_spending(non_healthcare: float, healthcare: float = 0.0) -> SpendingLevels:
    """
    Essential ~75% / discretionary ~25% of non-healthcare spending, with
    discretionary floored at the minimum but never above the total.
    """
    non_healthcare = max(0.0, non_healthcare)
    discretionary = min(non_healthcare, max(non_healthcare * discretionary_ratio, minimum_discretionary))
    return SpendingLevels(non_healthcare - discretionary, discretionary, max(0.0, healthcare))


def sustainable_withdrawal_rate(age: int, horizon: int) -> float:
    return 1.0 / max(horizon - age, minimum_years_remaining)


def discretionary_factor(
    regime: str,
    funding_ratio: float,
    withdrawal_rate: float,
    sustainable_rate: float,
    bear_only: bool = False,
) -> float:
    if regime == "crisis":
        return crisis_spending_factor
    if regime == "bear":
        return bear_spending_factor
    if bear_only:
        return 1.0
    if funding_ratio < deep_drawdown_ratio and withdrawal_rate > unsustainable_rate_multiplier * sustainable_rate:
        return deep_drawdown_spending_factor
    if funding_ratio < drawdown_ratio:
        return drawdown_spending_factor
    if regime == "bull" and funding_ratio > strong_gain_ratio:
        return bull_spending_factor
    return 1.0


def guardrail_factor(funding_ratio: float) -> float:
    """Graduated multiplier in [0.85, 1.10] on the whole net need."""
    if funding_ratio < deep_drawdown_ratio:
        return max(guardrail_floor, min(0.90, funding_ratio))
    if funding_ratio < drawdown_ratio:
        return 0.95 + (funding_ratio - deep_drawdown_ratio) * 0.5
    if funding_ratio > strong_gain_ratio:
        return min(guardrail_ceiling, 1.05 + (funding_ratio - strong_gain_ratio) * 0.1)
    return 1.0


class SpendingGovernor:
    def __init__(self, policy: WithdrawalPolicy, horizon: int):
        self.policy = policy
        self.horizon = horizon

    def adjust(
        self,
        base: SpendingLevels,
        regime: str,
        funding_ratio: float,
        portfolio_balance: float,
        age: int,
    ) -> Tuple[SpendingLevels, float]:
        """Returns this year's spending and the discretionary factor applied."""
        if not self.policy.dynamic_spending:
            return base, 1.0
        current_rate = base.total / portfolio_balance if portfolio_balance > 0 else float("inf")
        factor = discretionary_factor(
            regime,
            funding_ratio,
            current_rate,
            sustainable_withdrawal_rate(age, self.horizon),
            self.policy.bear_only,
        )
        return replace(base, discretionary=base.discretionary * factor), factor

    def apply_guardrails(self, net_need: float, funding_ratio: float) -> float:
        if not self.policy.guardrails:
            return net_need
        return net_need * guardrail_factor(funding_ratio)
