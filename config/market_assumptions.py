# =============================================================================
# Market Info used in simulations
# =============================================================================
# All returns are REAL (after inflation). Allocations are (stock, bond, cash).

# -----------------------------------------------------------------------------
# Asset-class assumptions (historical real returns)
# -----------------------------------------------------------------------------
stock_real_return = 0.07
bond_real_return = 0.025
cash_real_return = 0.005

stock_volatility = 0.16
bond_volatility = 0.05
cash_volatility = 0.01

default_allocation = (0.60, 0.35, 0.05)
default_return_volatility = 0.15

# -----------------------------------------------------------------------------
# Risk profiles (score 1 = conservative .. 5 = aggressive)
# -----------------------------------------------------------------------------
risk_profile_returns = {
    1: 0.050,
    2: 0.056,
    3: 0.061,
    4: 0.066,
    5: 0.070,
}
risk_profile_allocations = {
    1: (0.20, 0.70, 0.10),
    2: (0.40, 0.50, 0.10),
    3: (0.60, 0.35, 0.05),
    4: (0.75, 0.20, 0.05),
    5: (0.90, 0.10, 0.00),
}
default_risk_profile = 3

# -----------------------------------------------------------------------------
# Target-date glide path: (years to retirement at or above, allocation)
# -----------------------------------------------------------------------------
glide_path = [
    (30, (0.90, 0.10, 0.00)),
    (25, (0.85, 0.15, 0.00)),
    (20, (0.80, 0.20, 0.00)),
    (15, (0.70, 0.25, 0.05)),
    (10, (0.60, 0.35, 0.05)),
    (5, (0.50, 0.40, 0.10)),
    (0, (0.40, 0.50, 0.10)),
    (-5, (0.35, 0.55, 0.10)),
    (-10, (0.30, 0.55, 0.15)),
]

# -----------------------------------------------------------------------------
# Market regimes (stock market)
# -----------------------------------------------------------------------------
market_regimes = {
    "bull": {
        "mean": 0.15,
        "volatility": 0.12,
        "transitions": {"bull": 0.70, "bear": 0.20, "normal": 0.10, "crisis": 0.00},
    },
    "bear": {
        "mean": -0.10,
        "volatility": 0.25,
        "transitions": {"bull": 0.30, "bear": 0.30, "normal": 0.30, "crisis": 0.10},
    },
    "normal": {
        "mean": 0.07,
        "volatility": 0.15,
        "transitions": {"bull": 0.30, "bear": 0.20, "normal": 0.40, "crisis": 0.10},
    },
    "crisis": {
        "mean": -0.30,
        "volatility": 0.40,
        "transitions": {"bull": 0.10, "bear": 0.40, "normal": 0.40, "crisis": 0.10},
    },
}

# Starting-regime priors
regime_prior_default = {"bull": 0.30, "normal": 0.50, "bear": 0.15, "crisis": 0.05}
regime_prior_near_retirement = {"bull": 0.25, "normal": 0.40, "bear": 0.25, "crisis": 0.10}

# Sequence-of-returns window around the retirement date
near_retirement_years = 5
near_retirement_volatility_multiplier = 1.2
near_retirement_bear_multiplier = 1.5
near_retirement_bear_cap = 0.40
near_retirement_crisis_multiplier = 2.0
near_retirement_crisis_cap = 0.15
near_retirement_bull_multiplier = 0.7
near_retirement_normal_multiplier = 0.8

# Bonds and cash under the regime model
regime_bond_mu = 0.04
regime_bond_sigma = 0.05
regime_cash_return = 0.02
