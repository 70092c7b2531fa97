# engine/ltc_model.py
#
# Long-term-care shocks. Each retiree can have one care episode; its cost
# (net of any insurance benefit) is added to healthcare spending while it lasts.
#

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from config.expense_assumptions import (
    ltc_female_duration,
    ltc_female_onset_multiplier,
    ltc_health_multipliers,
    ltc_male_duration,
    ltc_onset_by_age,
    ltc_onset_oldest,
    ltc_regional_multipliers,
)
from models import LongTermCareAssumptions, Person


@dataclass
class CareEpisode:
    years_remaining: int
    annual_cost: float


def annual_onset_probability(age: int, gender: str = "male", health: str = "good") -> float:
    base = ltc_onset_oldest
    for below_age, prob in ltc_onset_by_age:
        if age < below_age:
            base = prob
            break
    if gender == "female":
        base *= ltc_female_onset_multiplier
    return min(1.0, base * ltc_health_multipliers.get(health, 1.0))


def regional_cost(annual_cost: float, state: Optional[str]) -> float:
    return annual_cost * ltc_regional_multipliers.get((state or "").upper(), 1.0)


def out_of_pocket(annual_cost: float, ltc: LongTermCareAssumptions) -> float:
    if not ltc.has_insurance:
        return annual_cost
    return max(0.0, annual_cost - ltc.daily_benefit * 365)


class LongTermCareModel:
    def __init__(self, ltc: LongTermCareAssumptions, state: Optional[str] = None):
        self.ltc = ltc
        self.annual_cost = out_of_pocket(regional_cost(ltc.annual_cost, state), ltc)

    def start_episode(self, rng: np.random.Generator, person: Person, age: int) -> Optional[CareEpisode]:
        """Draws whether care starts this year and, if so, how long it lasts."""
        if not self.ltc.enabled:
            return None
        if rng.random() >= annual_onset_probability(age, person.gender, person.health):
            return None
        average = ltc_female_duration if person.gender == "female" else ltc_male_duration
        years = max(1, math.ceil(average * rng.uniform(0.5, 1.5)))
        return CareEpisode(years, self.annual_cost)

    def year_cost(self, rng: np.random.Generator, person: Person, age: int, episode: Optional[CareEpisode],
                  had_episode: bool):
        """
        Advances one person's care state for the year.

        Returns:
            (cost this year, episode still running, whether the person has had care)
        """
        if episode is None and not had_episode:
            episode = self.start_episode(rng, person, age)
        if episode is None:
            return 0.0, None, had_episode

        cost = episode.annual_cost
        episode.years_remaining -= 1
        return cost, (episode if episode.years_remaining > 0 else None), True
