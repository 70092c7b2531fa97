"""Tests for the Monte Carlo orchestrator and withdrawal-rate calibration."""

import math

import numpy as np
import pytest

from engine import CancellationToken, run_monte_carlo, simulate
from engine.errors import CalibrationNonconvergence, InvalidParameter, SimulationCancelled
from engine.monte_carlo import PERCENTILES, calibrate_withdrawal_rate, run_trials, success_probability
from engine.simulator import ScenarioSimulator
from models import AssetBuckets, FixedReturn, IncomeSources


@pytest.fixture
def volatile_plan(make_params):
    """Single 60-year-old, $500k taxable, 6% expected return with 15% volatility."""
    return make_params(
        buckets={"user": AssetBuckets(capital_gains=500_000, capital_gains_basis=400_000)},
        strategy=FixedReturn(0.06),
        volatility=0.15,
        withdrawal_rate=0.04,
    )


@pytest.fixture
def covered_plan(make_params):
    """Retired single whose Social Security covers every expense."""
    return make_params(
        current_age=65,
        retirement_age=65,
        annual_expenses=30_000,
        income=IncomeSources(social_security=40_000, ss_claim_age=62),
        strategy=FixedReturn(0.04),
        volatility=0.0,
    )


class TestScenarios:
    def test_volatile_plan_is_uncertain(self, volatile_plan):
        result = run_monte_carlo(volatile_plan, trials=1000, seed=42, calibrate=False)
        assert 0.0 < result.probability_of_success < 1.0
        assert result.trials == 1000

    def test_covered_plan_always_succeeds(self, covered_plan):
        result = run_monte_carlo(covered_plan, trials=100, seed=1)
        assert result.probability_of_success == 1.0
        assert result.safe_withdrawal_rate == covered_plan.policy.withdrawal_rate
        assert result.percentiles[50] == pytest.approx(100_000 * math.exp(0.04 * 55))
        assert result.legacy_goal_probability == 1.0
        assert result.average_years_until_depletion is None

    def test_certain_depletion(self, make_params):
        params = make_params(withdrawal_rate=1.0)
        result = run_monte_carlo(params, trials=50, seed=3, calibrate=False)
        assert result.probability_of_success == 0.0
        assert result.average_years_until_depletion == 6.0
        assert all(v == 0.0 for v in result.percentiles.values())


class TestResultShape:
    def test_percentiles_ordered(self, volatile_plan):
        result = run_monte_carlo(volatile_plan, trials=200, seed=5, calibrate=False)
        assert tuple(result.percentiles) == PERCENTILES
        values = [result.percentiles[p] for p in PERCENTILES]
        assert values == sorted(values)
        assert result.median_ending_balance == result.percentiles[50]

    def test_summary_fields(self, volatile_plan):
        result = run_monte_carlo(volatile_plan, trials=100, seed=5, calibrate=False)
        assert result.current_assets == 500_000
        assert result.projected_portfolio == ScenarioSimulator(volatile_plan).project_retirement_portfolio()
        assert 0.0 <= result.legacy_goal_probability <= 1.0

    def test_cash_flow_frame(self, volatile_plan):
        frame = run_monte_carlo(volatile_plan, trials=100, seed=5, calibrate=False).cash_flow_frame()
        assert list(frame.columns) == [
            "year", "age", "portfolio_balance", "guaranteed_income",
            "withdrawal", "net_cash_flow", "market_regime", "survivors",
        ]
        assert frame["year"].iloc[0] == 2026
        assert frame["year"].is_monotonic_increasing

    def test_simulate_alias(self, covered_plan):
        assert simulate(covered_plan, trials=20, seed=2).probability_of_success == 1.0


class TestReproducibility:
    def test_same_seed_same_result(self, volatile_plan):
        a = run_monte_carlo(volatile_plan, trials=200, seed=7, calibrate=False)
        b = run_monte_carlo(volatile_plan, trials=200, seed=7, calibrate=False)
        assert a.probability_of_success == b.probability_of_success
        assert a.percentiles == b.percentiles
        assert a.cash_flows == b.cash_flows

    def test_worker_count_does_not_change_result(self, volatile_plan):
        serial = run_monte_carlo(volatile_plan, trials=200, seed=11, calibrate=False, workers=1)
        parallel = run_monte_carlo(volatile_plan, trials=200, seed=11, calibrate=False, workers=2)
        assert serial.probability_of_success == parallel.probability_of_success
        assert serial.percentiles == parallel.percentiles


class TestMonotonicity:
    def test_higher_rate_never_more_successful(self, make_params):
        params = make_params(
            buckets={"user": AssetBuckets(cash_equivalents=500_000)},
            strategy=FixedReturn(0.05),
            volatility=0.15,
        )
        seeds = np.random.SeedSequence(3).spawn(200)
        probabilities = [
            success_probability(run_trials(params, seeds, withdrawal_rate=rate))
            for rate in (0.03, 0.05, 0.08, 0.12)
        ]
        assert probabilities == sorted(probabilities, reverse=True)
        assert probabilities[0] > probabilities[-1]


class TestCalibration:
    """Safe-withdrawal-rate search."""

    def test_calibrated_rate_meets_target(self, make_params):
        params = make_params(
            current_age=65, retirement_age=65,
            strategy=FixedReturn(0.03), volatility=0.10, withdrawal_rate=0.09,
        )
        seeds = np.random.SeedSequence(21).spawn(50)
        rate = calibrate_withdrawal_rate(params, seeds)
        assert 0.0 <= rate < 0.10
        assert success_probability(run_trials(params, seeds, withdrawal_rate=rate)) >= 0.80

    def test_run_reports_calibrated_rate_when_plan_fails(self, make_params):
        params = make_params(withdrawal_rate=1.0)
        result = run_monte_carlo(params, trials=20, seed=1, calibration_trials=20)
        assert result.probability_of_success == 0.0
        assert 0.0 <= result.safe_withdrawal_rate < 0.10

    def test_iteration_limit(self, make_params):
        params = make_params(withdrawal_rate=1.0)
        with pytest.raises(CalibrationNonconvergence) as exc:
            run_monte_carlo(params, trials=20, seed=1, calibration_trials=20, max_calibration_iterations=1)
        assert exc.value.iterations == 1

    def test_calibrated_rate_holds_in_fresh_run(self, make_params):
        params = make_params(
            current_age=65, retirement_age=65, annual_expenses=60_000,
            buckets={"user": AssetBuckets(cash_equivalents=500_000)},
            strategy=FixedReturn(0.05), volatility=0.15,
        )
        calibrated = run_monte_carlo(params, trials=400, seed=4, calibration_trials=400)
        assert calibrated.probability_of_success < 0.80

        rerun = run_monte_carlo(
            params, trials=400, seed=99, calibrate=False, withdrawal_rate=calibrated.safe_withdrawal_rate,
        )
        assert rerun.probability_of_success == pytest.approx(0.80, abs=0.08)
        assert rerun.safe_withdrawal_rate == calibrated.safe_withdrawal_rate


class TestWithdrawalRateOverride:
    def test_override_replaces_expense_driven_spending(self, make_params):
        params = make_params(
            current_age=65, retirement_age=65, annual_expenses=90_000,
            buckets={"user": AssetBuckets(cash_equivalents=500_000)},
            strategy=FixedReturn(0.04),
        )
        by_expenses = run_monte_carlo(params, trials=10, seed=1, calibrate=False)
        by_rate = run_monte_carlo(params, trials=10, seed=1, calibrate=False, withdrawal_rate=0.04)
        assert by_expenses.probability_of_success == 0.0
        assert by_rate.probability_of_success == 1.0
        assert by_rate.cash_flows[0].withdrawal == pytest.approx(20_000)

    def test_override_must_be_a_fraction(self, covered_plan):
        with pytest.raises(InvalidParameter):
            run_monte_carlo(covered_plan, trials=10, withdrawal_rate=1.5)


class TestCancellation:
    def test_cancelled_token_raises(self, volatile_plan):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(SimulationCancelled):
            run_monte_carlo(volatile_plan, trials=200, seed=1, cancel=token)

    def test_timeout(self):
        assert CancellationToken(timeout=0.0).cancelled
        assert not CancellationToken(timeout=60.0).cancelled
        assert not CancellationToken().cancelled


class TestArguments:
    def test_trials_must_be_positive(self, covered_plan):
        with pytest.raises(InvalidParameter):
            run_monte_carlo(covered_plan, trials=0)

    def test_workers_must_be_positive(self, covered_plan):
        with pytest.raises(InvalidParameter):
            run_monte_carlo(covered_plan, trials=10, workers=0)
