# market_generator.py
#
# This code generates one year's real portfolio return per owner.
# Expected return and allocation come from the owner's ReturnStrategy
# (fixed rate, target-date glide path, current allocation or risk profile).
# Draws are log-normal, so a year can never lose more than 100%.
#

import math
from typing import Dict, Optional, Tuple

import numpy as np

from config.market_assumptions import (
    bond_real_return,
    bond_volatility,
    cash_real_return,
    cash_volatility,
    glide_path,
    risk_profile_allocations,
    risk_profile_returns,
    stock_real_return,
    stock_volatility,
)
from models import Allocation, CurrentAllocation, FixedReturn, GlidePath, MarketAssumptions, RiskProfile, ReturnStrategy

ASSET_CLASS_RETURNS = Allocation(stock_real_return, bond_real_return, cash_real_return)
ASSET_CLASS_VOLATILITY = Allocation(stock_volatility, bond_volatility, cash_volatility)


def lognormal_params(mu: float, sigma: float) -> Tuple[float, float]:
    """
    (drift, sigma) of ln(1 + r) for expected return mu and volatility sigma.

    ln(1 + r) ~ Normal(mu - sigma^2 / 2, sigma). With sigma = 0 the draw is exp(mu) - 1.
    """
    return mu - sigma * sigma / 2.0, sigma


def draw_lognormal_return(
    rng: np.random.Generator,
    mu: float,
    sigma: float,
    z: Optional[float] = None,
) -> float:
    """
    One year's return drawn log-normally.

    Args:
        rng: The trial's random generator.
        mu: Expected real return.
        sigma: Return volatility.
        z: Optional pre-drawn standard-normal shock, so several owners can share one market move.

    Returns:
        The annual return, always greater than -1.
    """
    drift, s = lognormal_params(mu, sigma)
    if z is None:
        z = rng.standard_normal()
    return math.exp(drift + s * z) - 1.0


def blend_return(allocation: Allocation, returns: Allocation = ASSET_CLASS_RETURNS) -> float:
    return allocation.stocks * returns.stocks + allocation.bonds * returns.bonds + allocation.cash * returns.cash


def combined_volatility(allocation: Allocation) -> float:
    """Portfolio volatility with no cross-class correlation: sqrt(sum((w * vol)^2))."""
    return math.sqrt(sum((w * v) ** 2 for w, v in zip(allocation, ASSET_CLASS_VOLATILITY)))


def glide_path_allocation(years_to_retirement: int) -> Allocation:
    """Allocation on the target-date schedule; negative years are years into retirement."""
    for threshold, weights in glide_path:
        if years_to_retirement >= threshold:
            return Allocation(*weights)
    return Allocation(*glide_path[-1][1])


def strategy_profile(
    strategy: ReturnStrategy,
    years_to_retirement: int,
    market: MarketAssumptions,
) -> Tuple[float, float, Allocation]:
    """Returns (expected return, volatility, allocation) for one strategy."""
    if isinstance(strategy, FixedReturn):
        return strategy.rate, market.return_volatility, Allocation(*market.allocation)

    if isinstance(strategy, RiskProfile):
        allocation = Allocation(*risk_profile_allocations[strategy.score])
        return risk_profile_returns[strategy.score], combined_volatility(allocation), allocation

    if isinstance(strategy, GlidePath):
        allocation = glide_path_allocation(years_to_retirement)
    elif isinstance(strategy, CurrentAllocation):
        allocation = Allocation(*market.allocation)
    else:
        raise TypeError(f"Unknown return strategy: {strategy!r}")
    return blend_return(allocation), combined_volatility(allocation), allocation


def owner_profile(
    owner: str,
    market: MarketAssumptions,
    years_to_retirement: int,
    married: bool,
) -> Tuple[float, float, Allocation]:
    """
    Profile for one owner's assets. Joint assets (and a single household's)
    take the arithmetic mean of the two spouses' profiles.
    """
    if owner != "joint" or not married:
        who = "spouse" if owner == "spouse" else "user"
        return strategy_profile(market.strategy_for(who), years_to_retirement, market)

    u_mu, u_sig, u_alloc = strategy_profile(market.user_strategy, years_to_retirement, market)
    s_mu, s_sig, s_alloc = strategy_profile(market.spouse_strategy, years_to_retirement, market)
    allocation = Allocation(*[(a + b) / 2 for a, b in zip(u_alloc, s_alloc)])
    return (u_mu + s_mu) / 2, (u_sig + s_sig) / 2, allocation


def expected_return(owner: str, market: MarketAssumptions, years_to_retirement: int, married: bool) -> float:
    return owner_profile(owner, market, years_to_retirement, married)[0]


class ReturnGenerator:
    """
    Draws each owner's portfolio return for one simulated year.
    """
    def __init__(self, market: MarketAssumptions, married: bool):
        self.market = market
        self.married = married

    def annual_returns(
        self,
        rng: np.random.Generator,
        owners,
        years_to_retirement: int,
        market_draw=None,
    ) -> Dict[str, float]:
        """
        Args:
            rng: The trial's random generator.
            owners: Owners holding assets this year.
            years_to_retirement: Drives the glide path (negative once retired).
            market_draw: This year's regime draw; used for allocation-based strategies
                when the market is regime-aware.

        Returns:
            Dict of owner -> annual return.
        """
        # One market-wide shock shared by every owner
        z = rng.standard_normal()
        returns = {}
        for owner in owners:
            mu, sigma, allocation = owner_profile(owner, self.market, years_to_retirement, self.married)
            strategy = self.market.strategy_for("spouse" if owner == "spouse" else "user")
            if self.market.regime_aware and market_draw is not None and not isinstance(strategy, FixedReturn):
                returns[owner] = market_draw.blend(allocation)
            else:
                returns[owner] = draw_lognormal_return(rng, mu, sigma, z=z)
        return returns
