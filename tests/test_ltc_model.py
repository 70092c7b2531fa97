"""Tests for long-term-care shocks."""

import numpy as np
import pytest

from engine.ltc_model import CareEpisode, LongTermCareModel, annual_onset_probability, out_of_pocket, regional_cost
from models import LongTermCareAssumptions, Person


PERSON = Person(current_age=80, retirement_age=65, gender="female", health="good")


class TestCosts:
    def test_regional_multiplier(self):
        assert regional_cost(100_000, "CA") == pytest.approx(140_000)
        assert regional_cost(100_000, "tx") == pytest.approx(80_000)
        assert regional_cost(100_000, None) == 100_000

    def test_insurance_benefit(self):
        insured = LongTermCareAssumptions(enabled=True, has_insurance=True, daily_benefit=100)
        assert out_of_pocket(75_000, insured) == pytest.approx(75_000 - 36_500)
        assert out_of_pocket(75_000, LongTermCareAssumptions(enabled=True)) == 75_000
        rich = LongTermCareAssumptions(enabled=True, has_insurance=True, daily_benefit=500)
        assert out_of_pocket(75_000, rich) == 0.0


class TestOnset:
    def test_rises_with_age(self):
        assert annual_onset_probability(60) < annual_onset_probability(80) < annual_onset_probability(100)

    def test_female_and_health_multipliers(self):
        assert annual_onset_probability(80, "female", "good") == pytest.approx(0.035 * 1.15 * 0.85)
        assert annual_onset_probability(80, "male", "poor") == pytest.approx(0.035 * 2.0)


class TestEpisodes:
    def test_disabled_model_draws_nothing(self):
        model = LongTermCareModel(LongTermCareAssumptions(enabled=False))
        rng = np.random.default_rng(4)
        cost, episode, had = model.year_cost(rng, PERSON, 85, None, False)
        assert (cost, episode, had) == (0.0, None, False)
        assert rng.random() == np.random.default_rng(4).random()

    def test_running_episode_costs_until_done(self):
        model = LongTermCareModel(LongTermCareAssumptions(enabled=True))
        rng = np.random.default_rng(0)
        episode = CareEpisode(years_remaining=2, annual_cost=50_000)

        cost, episode, had = model.year_cost(rng, PERSON, 85, episode, True)
        assert cost == 50_000
        assert episode is not None and episode.years_remaining == 1

        cost, episode, had = model.year_cost(rng, PERSON, 86, episode, had)
        assert cost == 50_000
        assert episode is None
        assert had

        # one episode per lifetime
        cost, episode, had = model.year_cost(rng, PERSON, 87, episode, had)
        assert cost == 0.0

    def test_new_episode_lasts_at_least_a_year(self):
        model = LongTermCareModel(LongTermCareAssumptions(enabled=True), state="NY")
        rng = np.random.default_rng(1)
        old = Person(current_age=99, retirement_age=65, gender="female", health="poor")
        episodes = [model.start_episode(rng, old, 99) for _ in range(200)]
        started = [e for e in episodes if e is not None]
        assert started
        assert all(e.years_remaining >= 1 for e in started)
        assert all(e.annual_cost == pytest.approx(75_000 * 1.35) for e in started)
