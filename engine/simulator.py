# engine.simulator.py
#
# One household lifetime trial: accumulation until the user retires, then
# decumulation until depletion or the horizon cap.
#

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from config.expense_assumptions import (
    debt_payoff_dividend_rate,
    debt_payoff_window,
    default_contribution_mix,
    max_age,
    max_decumulation_years,
    survivor_healthcare_factor,
    survivor_nonhealthcare_factor,
)
from engine.errors import NumericAnomaly
from engine.income_calculator import calculate_guaranteed_income
from engine.ltc_model import CareEpisode, LongTermCareModel
from engine.market_generator import ReturnGenerator, expected_return
from engine.market_regimes import MarketRegimeProcess
from engine.mortality_tables import advance_survival
from engine.rmd_tables import required_minimum_distribution
from engine.spending_governor import SpendingGovernor, SpendingLevels, split_spending
from engine.withdrawal_engine import WithdrawalEngine, effective_capital_gains_rate
from models import AssetBuckets, ScenarioOutcome, SimulationParameters, YearlyCashFlow

logger = logging.getLogger(__name__)

# Balances under a millionth of a dollar count as empty
DEPLETION_EPSILON = 1e-6

NO_SPENDING = SpendingLevels(0.0, 0.0, 0.0)


@dataclass
class ScenarioState:
    """Mutable state for one trial. Created fresh per trial and discarded afterwards."""
    user_age: int
    spouse_age: Optional[int]
    user_alive: bool
    spouse_alive: bool
    buckets: Dict[str, AssetBuckets]
    spending: SpendingLevels = NO_SPENDING
    regime: str = "normal"
    prior_portfolio_value: float = 0.0
    survivor_adjusted: bool = False
    care: Dict[str, Optional[CareEpisode]] = field(default_factory=dict)
    had_care: Dict[str, bool] = field(default_factory=dict)

    @property
    def portfolio_balance(self) -> float:
        return sum(b.total_assets for b in self.buckets.values())

    @property
    def survivors(self) -> int:
        return int(self.user_alive) + int(self.spouse_alive)


class ScenarioSimulator:
    """
    Runs single trials for one SimulationParameters.

    Spending is rate-driven when the household gives no expense figure (or when a
    withdrawal rate is passed in, as the calibration does): the first retirement
    year draws withdrawal_rate x the portfolio at retirement, on top of the
    guaranteed income in that year. Otherwise the household's expenses drive it.
    """
    def __init__(self, params: SimulationParameters, withdrawal_rate: Optional[float] = None):
        self.params = params
        self.household = params.household
        self.married = self.household.is_married
        self.years_to_retirement = params.years_to_retirement

        self.rate_driven = withdrawal_rate is not None or self.household.annual_expenses is None
        self.withdrawal_rate = params.policy.withdrawal_rate if withdrawal_rate is None else withdrawal_rate

        self.returns = ReturnGenerator(params.market, self.married)
        self.withdrawals = WithdrawalEngine(params.tax.ordinary_rate)
        self.governor = SpendingGovernor(params.policy, self.household.planning_horizon)
        self.care_model = LongTermCareModel(params.ltc, self.household.state)
        self.max_years = self._decumulation_years()

    # =========================================================================
    # 1. SETUP
    # =========================================================================
    def _decumulation_years(self) -> int:
        """Hard cap: 60 years, or until the youngest reaches 120."""
        ages = [p.current_age + self.years_to_retirement for p in self.household.people().values()]
        return max(1, min(max_decumulation_years, max_age - min(ages)))

    def _initial_state(self) -> ScenarioState:
        spouse = self.household.spouse
        buckets = {owner: b.copy() for owner, b in self.params.buckets.items()}
        return ScenarioState(
            user_age=self.household.user.current_age,
            spouse_age=spouse.current_age if spouse is not None else None,
            user_alive=True,
            spouse_alive=spouse is not None,
            buckets=buckets,
        )

    def _initial_spending(self, portfolio: float, guaranteed_income: float) -> SpendingLevels:
        hh = self.household
        if not self.rate_driven:
            return split_spending(hh.annual_expenses, hh.annual_healthcare_costs)

        total = self.withdrawal_rate * portfolio + guaranteed_income
        if hh.annual_expenses is None:
            healthcare = min(hh.annual_healthcare_costs, total)
        else:
            expenses = hh.annual_expenses + hh.annual_healthcare_costs
            healthcare = total * hh.annual_healthcare_costs / expenses if expenses > 0 else 0.0
        return split_spending(total - healthcare, healthcare)

    # =========================================================================
    # 2. YEARLY HELPERS
    # =========================================================================
    @staticmethod
    def _check_finite(name: str, value: float, year: int):
        if not math.isfinite(value):
            raise NumericAnomaly(name, year, value)

    def _apply_returns(self, rng, state: ScenarioState, years_to_retirement: int, market_draw) -> None:
        rates = self.returns.annual_returns(rng, list(state.buckets), years_to_retirement, market_draw)
        for owner, b in state.buckets.items():
            b.grow(rates[owner])

    def _savings_by_owner(self, state: ScenarioState) -> Dict[str, float]:
        """Annual savings per contributing owner; retired people stop saving."""
        hh = self.household
        people = hh.people()
        ages = {"user": state.user_age, "spouse": state.spouse_age}
        working = {o: ages[o] < p.retirement_age for o, p in people.items()}

        explicit = {o: p.annual_savings for o, p in people.items() if p.annual_savings is not None}
        if explicit:
            return {o: explicit.get(o, 0.0) for o in people if working[o]}

        if hh.annual_savings <= 0:
            return {}
        if not self.married:
            return {"user": hh.annual_savings} if working["user"] else {}

        # No personal figures: split household savings by income share
        total_income = sum(p.annual_income for p in people.values())
        if total_income <= 0:
            return {"joint": hh.annual_savings} if any(working.values()) else {}
        return {
            o: hh.annual_savings * p.annual_income / total_income
            for o, p in people.items() if working[o]
        }

    def _annual_contributions(self, state: ScenarioState, years_from_retirement: int) -> Dict[str, float]:
        contributions = self._savings_by_owner(state)
        # Debt-payoff dividend: savings capacity ramps up over the last 15 working years
        if 1 <= years_from_retirement <= debt_payoff_window:
            ramp = min(1.0, (debt_payoff_window + 1 - years_from_retirement) / 10)
            multiplier = 1.0 + debt_payoff_dividend_rate * ramp
            contributions = {o: amount * multiplier for o, amount in contributions.items()}
        return contributions

    def _contribute(self, state: ScenarioState, contributions: Dict[str, float]) -> None:
        mix = self.household.contribution_mix
        weights = {
            "tax_deferred": mix.get("401k", 0.0) + mix.get("ira", 0.0),
            "tax_free": mix.get("roth", 0.0),
            "capital_gains": mix.get("brokerage", 0.0),
        }
        total_weight = sum(weights.values())
        if total_weight <= 0:
            d = default_contribution_mix
            weights = {"tax_deferred": d["401k"] + d["ira"], "tax_free": d["roth"], "capital_gains": d["brokerage"]}
            total_weight = sum(weights.values())

        for owner, amount in contributions.items():
            if amount <= 0:
                continue
            b = state.buckets.setdefault(owner, AssetBuckets())
            for kind, weight in weights.items():
                b.add(kind, amount * weight / total_weight)

    def _guaranteed_income(self, state: ScenarioState) -> float:
        return calculate_guaranteed_income(
            self.household, state.user_age, state.user_alive, state.spouse_age, state.spouse_alive
        )

    def _required_distribution(self, state: ScenarioState) -> float:
        """RMDs of each living person on their own (and, for the user, joint) tax-deferred assets."""
        total = 0.0
        for owner, person in self.household.people().items():
            alive = state.user_alive if owner == "user" else state.spouse_alive
            if not alive:
                continue
            age = state.user_age if owner == "user" else state.spouse_age
            balance = state.buckets[owner].tax_deferred if owner in state.buckets else 0.0
            if owner == "user" and "joint" in state.buckets:
                balance += state.buckets["joint"].tax_deferred
            total += required_minimum_distribution(balance, age, self.params.birth_year(person))
        return total

    def _care_costs(self, rng, state: ScenarioState) -> float:
        total = 0.0
        for owner, person in self.household.people().items():
            alive = state.user_alive if owner == "user" else state.spouse_alive
            if not alive:
                state.care[owner] = None
                continue
            age = state.user_age if owner == "user" else state.spouse_age
            cost, episode, had = self.care_model.year_cost(
                rng, person, age, state.care.get(owner), state.had_care.get(owner, False)
            )
            state.care[owner] = episode
            state.had_care[owner] = had
            total += cost
        return total

    def _apply_mortality(self, rng, state: ScenarioState) -> None:
        hh = self.household
        both_were_alive = state.user_alive and state.spouse_alive
        survival = advance_survival(
            rng, hh.user, state.user_age, state.user_alive,
            hh.spouse, state.spouse_age, state.spouse_alive,
        )
        state.user_alive, state.spouse_alive = survival.user, survival.spouse

        if not survival.either:
            state.spending = NO_SPENDING
        elif both_were_alive and survival.count == 1 and not state.survivor_adjusted:
            state.spending = state.spending.scaled(survivor_nonhealthcare_factor, survivor_healthcare_factor)
            state.survivor_adjusted = True

    def _advance_ages(self, state: ScenarioState) -> None:
        state.user_age += 1
        if state.spouse_age is not None:
            state.spouse_age += 1

    # =========================================================================
    # 3. SINGLE TRIAL
    # =========================================================================
    def run(self, rng: np.random.Generator, keep_trace: bool = False) -> ScenarioOutcome:
        """
        Runs one trial with its own random generator.

        Args:
            rng: The trial's generator; the only source of randomness.
            keep_trace: Record the yearly cash-flow rows.

        Returns:
            ScenarioOutcome with success, ending balance and, if depleted,
            the number of years from today until the money ran out.
        """
        state = self._initial_state()
        flows: List[YearlyCashFlow] = []
        start_year = self.params.start_year
        ytr = self.years_to_retirement

        market = MarketRegimeProcess(rng, ytr)
        state.regime = market.regime

        # --- ACCUMULATION ---
        for acc_year in range(ytr):
            years_from_retirement = ytr - acc_year
            draw = market.step(years_from_retirement)
            state.regime = draw.regime
            self._apply_returns(rng, state, years_from_retirement, draw)

            contributions = self._annual_contributions(state, years_from_retirement)
            self._contribute(state, contributions)
            savings = sum(contributions.values())

            balance = state.portfolio_balance
            self._check_finite("portfolio_balance", balance, acc_year)
            if keep_trace:
                flows.append(YearlyCashFlow(
                    year=start_year + acc_year,
                    age=state.user_age,
                    portfolio_balance=balance,
                    guaranteed_income=0.0,
                    withdrawal=-savings,
                    net_cash_flow=savings,
                    market_regime=draw.regime,
                    survivors=state.survivors,
                ))
            self._advance_ages(state)

        # --- DECUMULATION ---
        state.prior_portfolio_value = state.portfolio_balance
        state.spending = self._initial_spending(state.portfolio_balance, self._guaranteed_income(state))

        for dist_year in range(self.max_years):
            sim_year = ytr + dist_year
            draw = market.step(-dist_year)
            state.regime = draw.regime
            self._apply_returns(rng, state, -dist_year, draw)

            balance = state.portfolio_balance
            prior = state.prior_portfolio_value
            funding_ratio = balance / prior if prior > 0 else 1.0

            income = self._guaranteed_income(state)
            spending = state.spending
            if dist_year > 0:
                spending, _ = self.governor.adjust(spending, draw.regime, funding_ratio, balance, state.user_age)
            care = self._care_costs(rng, state)

            net_need = max(0.0, spending.total + care - income)
            if dist_year > 0:
                net_need = self.governor.apply_guardrails(net_need, funding_ratio)

            cg_rate = effective_capital_gains_rate(
                net_need, income, self.params.tax.filing_status, self.params.tax.capital_gains_tax
            )
            result = self.withdrawals.withdraw(
                net_need, state.buckets, cg_rate, rmd=self._required_distribution(state)
            )

            balance = state.portfolio_balance
            self._check_finite("portfolio_balance", balance, sim_year)
            self._check_finite("withdrawal", result.gross, sim_year)
            withdrawal = result.net_outflow

            if keep_trace:
                flows.append(YearlyCashFlow(
                    year=start_year + sim_year,
                    age=state.user_age,
                    portfolio_balance=balance,
                    guaranteed_income=income,
                    withdrawal=withdrawal,
                    net_cash_flow=income - withdrawal,
                    market_regime=draw.regime,
                    survivors=state.survivors,
                ))

            if net_need > 0 and (result.shortfall > 0 or balance <= DEPLETION_EPSILON):
                return ScenarioOutcome(False, 0.0, sim_year + 1, flows)

            self._apply_mortality(rng, state)
            self._advance_ages(state)
            state.prior_portfolio_value = balance

        return ScenarioOutcome(True, state.portfolio_balance, None, flows)

    # =========================================================================
    # 4. DETERMINISTIC PROJECTION
    # =========================================================================
    def project_retirement_portfolio(self) -> float:
        """
        Replays accumulation once with expected (non-stochastic) returns.
        Returns the portfolio at retirement, rounded to whole dollars.
        """
        state = self._initial_state()
        ytr = self.years_to_retirement
        for acc_year in range(ytr):
            years_from_retirement = ytr - acc_year
            for owner, b in state.buckets.items():
                b.grow(expected_return(owner, self.params.market, years_from_retirement, self.married))
            self._contribute(state, self._annual_contributions(state, years_from_retirement))
            self._advance_ages(state)
        return float(round(state.portfolio_balance))
