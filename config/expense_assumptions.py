# config/expense_assumptions.py
# These are **reasonable defaults** for the spending, savings and care models

# Spending split (non-healthcare expenses)
discretionary_ratio = 0.25
minimum_discretionary = 24_000

# Life expectancy when none is given; also the spending governor's horizon
default_life_expectancy = 93

# Survivor adjustments (applied once, at the first death)
survivor_nonhealthcare_factor = 0.75
survivor_healthcare_factor = 0.85

# Dynamic spending governor (multipliers on discretionary spending)
crisis_spending_factor = 0.5
bear_spending_factor = 0.7
deep_drawdown_spending_factor = 0.6
drawdown_spending_factor = 0.8
bull_spending_factor = 1.1
deep_drawdown_ratio = 0.85
drawdown_ratio = 0.95
strong_gain_ratio = 1.15
unsustainable_rate_multiplier = 1.2
minimum_years_remaining = 10

# Guardrails (multipliers on the entire net withdrawal need)
guardrail_floor = 0.85
guardrail_ceiling = 1.10

# Accumulation
debt_payoff_dividend_rate = 0.15
debt_payoff_window = 15
default_contribution_mix = {
    "401k": 0.70,
    "ira": 0.0,
    "roth": 0.20,
    "brokerage": 0.10,
}

# Taxes on withdrawals
default_gain_ratio = 0.20          # embedded gain in taxable accounts without a basis
gains_share_of_need = 0.25         # share of the need assumed realized as gains when estimating the rate
default_ordinary_tax_rate = 0.22

# Simulation horizon
max_decumulation_years = 60
max_age = 120

# Long-term care (real dollars)
ltc_base_annual_cost = 75_000
ltc_female_duration = 3.7
ltc_male_duration = 2.2
ltc_female_onset_multiplier = 1.15
ltc_health_multipliers = {"excellent": 0.5, "good": 0.85, "fair": 1.3, "poor": 2.0}
ltc_onset_by_age = [
    (65, 0.001),
    (70, 0.003),
    (75, 0.008),
    (80, 0.018),
    (85, 0.035),
    (90, 0.065),
    (95, 0.095),
]
ltc_onset_oldest = 0.12
ltc_regional_multipliers = {
    "CA": 1.40, "NY": 1.35, "MA": 1.30, "CT": 1.25, "NJ": 1.20,
    "FL": 0.90, "TX": 0.80, "GA": 0.85, "NC": 0.90, "AZ": 0.95,
    "NV": 1.00, "WA": 1.15, "OR": 1.10, "CO": 1.05, "IL": 1.00,
    "MI": 0.90, "OH": 0.85, "PA": 0.95, "VA": 1.00, "MD": 1.10,
}
