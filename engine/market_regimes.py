# engine/market_regimes.py
#
# Four-state Markov chain (bull / bear / normal / crisis) that drives the
# stock market in regime-aware mode. Near the retirement date the chain leans
# toward bear and crisis states and volatility rises (sequence-of-returns risk).
#

from dataclasses import dataclass
from typing import Dict

import numpy as np

from config.market_assumptions import (
    market_regimes,
    near_retirement_bear_cap,
    near_retirement_bear_multiplier,
    near_retirement_bull_multiplier,
    near_retirement_crisis_cap,
    near_retirement_crisis_multiplier,
    near_retirement_normal_multiplier,
    near_retirement_volatility_multiplier,
    near_retirement_years,
    regime_bond_mu,
    regime_bond_sigma,
    regime_cash_return,
    regime_prior_default,
    regime_prior_near_retirement,
)
from engine.market_generator import draw_lognormal_return
from models import REGIMES, Allocation


@dataclass(frozen=True)
class MarketDraw:
    regime: str
    stock_return: float
    bond_return: float
    cash_return: float

    def blend(self, allocation: Allocation) -> float:
        return (allocation.stocks * self.stock_return
                + allocation.bonds * self.bond_return
                + allocation.cash * self.cash_return)


def is_near_retirement(years_to_retirement: int) -> bool:
    return abs(years_to_retirement) <= near_retirement_years


def _pick(rng: np.random.Generator, weights: Dict[str, float]) -> str:
    u = rng.random()
    cumulative = 0.0
    last = None
    for regime in REGIMES:
        weight = weights.get(regime, 0.0)
        if weight <= 0:
            continue
        cumulative += weight
        last = regime
        if u < cumulative:
            return regime
    # weights summing a hair under 1.0
    return last


def initial_regime(rng: np.random.Generator, years_to_retirement: int) -> str:
    prior = regime_prior_near_retirement if is_near_retirement(years_to_retirement) else regime_prior_default
    return _pick(rng, prior)


def transition_probabilities(regime: str, years_to_retirement: int) -> Dict[str, float]:
    """Next-regime probabilities, reweighted toward bear/crisis near the retirement date."""
    probs = dict(market_regimes[regime]["transitions"])
    if is_near_retirement(years_to_retirement) and regime in ("bull", "normal"):
        probs["bear"] = min(near_retirement_bear_cap, probs["bear"] * near_retirement_bear_multiplier)
        probs["crisis"] = min(near_retirement_crisis_cap, probs["crisis"] * near_retirement_crisis_multiplier)
        probs["bull"] *= near_retirement_bull_multiplier
        probs["normal"] *= near_retirement_normal_multiplier
        total = sum(probs.values())
        probs = {k: v / total for k, v in probs.items()}
    return probs


def draw_market(rng: np.random.Generator, regime: str, years_to_retirement: int) -> MarketDraw:
    params = market_regimes[regime]
    volatility = params["volatility"]
    if is_near_retirement(years_to_retirement):
        volatility *= near_retirement_volatility_multiplier

    stock = draw_lognormal_return(rng, params["mean"], volatility)
    bond = rng.normal(regime_bond_mu, regime_bond_sigma)
    return MarketDraw(regime, stock, float(bond), regime_cash_return)


class MarketRegimeProcess:
    """
    One trial's regime chain. `step` returns the current year's draw and
    then moves the chain to next year's regime.
    """
    def __init__(self, rng: np.random.Generator, years_to_retirement: int):
        self.rng = rng
        self.regime = initial_regime(rng, years_to_retirement)

    def step(self, years_to_retirement: int) -> MarketDraw:
        draw = draw_market(self.rng, self.regime, years_to_retirement)
        self.regime = _pick(self.rng, transition_probabilities(self.regime, years_to_retirement))
        return draw
