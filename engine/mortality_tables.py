# engine/mortality_tables.py

"""
Mortality lookups and the yearly survival draw.
- SSA 2021 Period Life Table, probability of dying within one year (qx), ages 50-120
- Health-status multipliers (excellent / good / fair / poor)
- Joint survival for couples
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

# =============================================================================
# SSA 2021 PERIOD LIFE TABLE: age -> (male qx, female qx)
# =============================================================================
BASE_MORTALITY_RATES: Dict[int, Tuple[float, float]] = {
    50: (0.004186, 0.002634), 51: (0.004530, 0.002838), 52: (0.004912, 0.003071),
    53: (0.005346, 0.003344), 54: (0.005838, 0.003658), 55: (0.006390, 0.004005),
    56: (0.006993, 0.004379), 57: (0.007646, 0.004780), 58: (0.008359, 0.005217),
    59: (0.009147, 0.005710), 60: (0.010028, 0.006283), 61: (0.010998, 0.006920),
    62: (0.012047, 0.007610), 63: (0.013168, 0.008351), 64: (0.014366, 0.009154),
    65: (0.015651, 0.010035), 66: (0.017030, 0.010998), 67: (0.018506, 0.012049),
    68: (0.020088, 0.013201), 69: (0.021791, 0.014477), 70: (0.023640, 0.015901),
    71: (0.025660, 0.017483), 72: (0.027872, 0.019230), 73: (0.030275, 0.021139),
    74: (0.032884, 0.023216), 75: (0.035746, 0.025490), 76: (0.038921, 0.027998),
    77: (0.042465, 0.030774), 78: (0.046414, 0.033834), 79: (0.050799, 0.037189),
    80: (0.055651, 0.040853), 81: (0.061000, 0.044842), 82: (0.066875, 0.049174),
    83: (0.073305, 0.053870), 84: (0.080319, 0.058954), 85: (0.087945, 0.064449),
    86: (0.096211, 0.070379), 87: (0.105145, 0.076770), 88: (0.114772, 0.083647),
    89: (0.125116, 0.091037), 90: (0.136200, 0.098966), 91: (0.148046, 0.107461),
    92: (0.160674, 0.116549), 93: (0.174102, 0.126257), 94: (0.188348, 0.136613),
    95: (0.203426, 0.147644), 96: (0.219352, 0.159378), 97: (0.236136, 0.171842),
    98: (0.253789, 0.185064), 99: (0.272320, 0.199071), 100: (0.291735, 0.213890),
    101: (0.312043, 0.229548), 102: (0.333249, 0.246073), 103: (0.355359, 0.263492),
    104: (0.378378, 0.281832), 105: (0.402310, 0.301122), 106: (0.427159, 0.321389),
    107: (0.452928, 0.342661), 108: (0.479619, 0.364966), 109: (0.507236, 0.388332),
    110: (0.535782, 0.412788), 111: (0.565256, 0.438361), 112: (0.595662, 0.465082),
    113: (0.627001, 0.492978), 114: (0.659274, 0.522080), 115: (0.692482, 0.552418),
    116: (0.726625, 0.584022), 117: (0.761705, 0.616923), 118: (0.797720, 0.651152),
    119: (0.834672, 0.686741), 120: (1.000000, 1.000000),
}

HEALTH_ADJUSTMENTS: Dict[str, float] = {
    "excellent": 0.7,
    "good": 1.0,
    "fair": 1.5,
    "poor": 2.2,
}

MIN_TABLE_AGE = 50
MAX_TABLE_AGE = 120


def get_mortality_rate(age: int, gender: str = "male", health: str = "good") -> float:
    """
    Probability of dying within one year at `age`, adjusted for health and capped at 1.
    Ages under 50 use the age-50 rate; beyond 120 death is certain.
    """
    age = int(round(age))
    if age > MAX_TABLE_AGE:
        return 1.0
    age = max(age, MIN_TABLE_AGE)
    male, female = BASE_MORTALITY_RATES[age]
    base = female if gender == "female" else male
    return min(1.0, base * HEALTH_ADJUSTMENTS[health])


def survives_year(rng: np.random.Generator, age: int, gender: str = "male", health: str = "good") -> bool:
    return rng.random() >= get_mortality_rate(age, gender, health)


def survival_probability(
    current_age: int,
    target_age: int,
    gender: str = "male",
    health: str = "good",
) -> float:
    """Probability of living from current_age to target_age."""
    if target_age <= current_age:
        return 1.0
    prob = 1.0
    for age in range(int(round(current_age)), int(round(target_age))):
        prob *= 1.0 - get_mortality_rate(age, gender, health)
    return prob


def life_expectancy(current_age: int, gender: str = "male", health: str = "good") -> float:
    """Expected age at death (curtate expectation plus a half-year for the year of death)."""
    expected_years = 0.5
    alive = 1.0
    for age in range(int(round(current_age)), MAX_TABLE_AGE + 1):
        alive *= 1.0 - get_mortality_rate(age, gender, health)
        expected_years += alive
    return current_age + expected_years


@dataclass(frozen=True)
class JointSurvival:
    user: bool
    spouse: bool

    @property
    def either(self) -> bool:
        return self.user or self.spouse

    @property
    def count(self) -> int:
        return int(self.user) + int(self.spouse)


def advance_survival(
    rng: np.random.Generator,
    user,
    user_age: int,
    user_alive: bool,
    spouse=None,
    spouse_age: Optional[int] = None,
    spouse_alive: bool = False,
) -> JointSurvival:
    """
    Advances alive flags by one year. A single household passes spouse=None.
    One uniform draw is made per living person, user first.
    """
    user_next = user_alive and survives_year(rng, user_age, user.gender, user.health)
    spouse_next = False
    if spouse is not None and spouse_alive:
        spouse_next = survives_year(rng, spouse_age, spouse.gender, spouse.health)
    return JointSurvival(user_next, spouse_next)
