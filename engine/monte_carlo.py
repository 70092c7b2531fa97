# engine/monte_carlo.py
#
# Runs many independent trials, aggregates them, and calibrates the safe
# withdrawal rate when the plan falls short of the success target.
#

import logging
import multiprocessing as mp
import time
from contextlib import nullcontext
from typing import List, Optional, Sequence

import numpy as np

from engine.errors import CalibrationNonconvergence, InvalidParameter, NumericAnomaly, SimulationCancelled
from engine.simulator import ScenarioSimulator
from models import ScenarioOutcome, SimulationParameters, SimulationResult

logger = logging.getLogger(__name__)

# =============================================================================
# Run settings
# =============================================================================
DEFAULT_TRIALS = 1000
PERCENTILES = (10, 25, 50, 75, 90)
SUCCESS_TARGET = 0.80
CALIBRATION_LOW = 0.0
CALIBRATION_HIGH = 0.10
CALIBRATION_PRECISION = 0.0001
CALIBRATION_MAX_ITERATIONS = 30
BATCH_SIZE = 100


class CancellationToken:
    """
    Lets a caller stop a run. Checked between trial batches.

    Args:
        timeout: Optional number of seconds after which the token fires on its own.
    """
    def __init__(self, timeout: Optional[float] = None):
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self):
        if self.cancelled:
            raise SimulationCancelled("simulation cancelled between trial batches")


# =============================================================================
# 1. TRIAL BATCHES
# =============================================================================

def _run_batch(task) -> List[ScenarioOutcome]:
    """Worker entry point: runs one batch of trials, each with its own generator."""
    params, seeds, withdrawal_rate, keep_first_trace = task
    simulator = ScenarioSimulator(params, withdrawal_rate)
    outcomes = []
    for i, seed in enumerate(seeds):
        rng = np.random.default_rng(seed)
        outcomes.append(simulator.run(rng, keep_trace=keep_first_trace and i == 0))
    return outcomes


def run_trials(
    params: SimulationParameters,
    seeds: Sequence[np.random.SeedSequence],
    withdrawal_rate: Optional[float] = None,
    pool=None,
    cancel: Optional[CancellationToken] = None,
    keep_first_trace: bool = False,
) -> List[ScenarioOutcome]:
    """
    Runs one trial per seed, in batches, on the pool if one is given.
    Outcomes come back in seed order, so results do not depend on the worker count.
    """
    tasks = [
        (params, seeds[i:i + BATCH_SIZE], withdrawal_rate, keep_first_trace and i == 0)
        for i in range(0, len(seeds), BATCH_SIZE)
    ]
    iterator = pool.imap(_run_batch, tasks) if pool is not None else map(_run_batch, tasks)

    outcomes: List[ScenarioOutcome] = []
    if cancel is not None:
        cancel.raise_if_cancelled()
    for batch in iterator:
        outcomes.extend(batch)
        logger.debug("Completed %d of %d trials", len(outcomes), len(seeds))
        if cancel is not None:
            cancel.raise_if_cancelled()
    return outcomes


def success_probability(outcomes: Sequence[ScenarioOutcome]) -> float:
    if not outcomes:
        return 0.0
    return sum(1 for o in outcomes if o.success) / len(outcomes)


# =============================================================================
# 2. SAFE WITHDRAWAL RATE
# =============================================================================

def calibrate_withdrawal_rate(
    params: SimulationParameters,
    seeds: Sequence[np.random.SeedSequence],
    pool=None,
    cancel: Optional[CancellationToken] = None,
    target: float = SUCCESS_TARGET,
    low: float = CALIBRATION_LOW,
    high: float = CALIBRATION_HIGH,
    precision: float = CALIBRATION_PRECISION,
    max_iterations: int = CALIBRATION_MAX_ITERATIONS,
) -> float:
    """
    Bisects the initial withdrawal rate to the highest one whose success
    probability meets the target. Every candidate reuses the same seeds, so
    candidates differ only in the rate.

    Raises:
        CalibrationNonconvergence: The bracket is still wider than `precision`
            after `max_iterations` candidates.
    """
    iterations = 0
    while high - low > precision:
        if iterations >= max_iterations:
            raise CalibrationNonconvergence(low, high, iterations)
        mid = (low + high) / 2
        outcomes = run_trials(params, seeds, withdrawal_rate=mid, pool=pool, cancel=cancel)
        probability = success_probability(outcomes)
        logger.debug("Calibration candidate %.4f%% -> %.1f%% success", mid * 100, probability * 100)
        if probability >= target:
            low = mid
        else:
            high = mid
        iterations += 1

    logger.info("Safe withdrawal rate %.2f%% after %d candidates", low * 100, iterations)
    return low


# =============================================================================
# 3. ORCHESTRATOR
# =============================================================================

def project_retirement_portfolio(params: SimulationParameters) -> float:
    return ScenarioSimulator(params).project_retirement_portfolio()


def run_monte_carlo(
    params: SimulationParameters,
    trials: int = DEFAULT_TRIALS,
    seed: Optional[int] = None,
    workers: int = 1,
    calibrate: bool = True,
    calibration_trials: int = DEFAULT_TRIALS,
    max_calibration_iterations: int = CALIBRATION_MAX_ITERATIONS,
    cancel: Optional[CancellationToken] = None,
    withdrawal_rate: Optional[float] = None,
) -> SimulationResult:
    """
    Runs the Monte Carlo simulation and aggregates the outcomes.

    Args:
        params: The validated, immutable run configuration.
        trials: Number of independent trials.
        seed: Top-level seed for reproducible runs; None draws fresh entropy.
        workers: Processes to use; 1 runs in this process.
        calibrate: Search for the safe withdrawal rate when success is below 80%.
        calibration_trials: Trials per calibration candidate.
        max_calibration_iterations: Most candidates to try.
        cancel: Optional token checked between batches.
        withdrawal_rate: Runs every trial rate-driven at this initial rate, even when the
            household gives an expense figure. Used to re-run a calibrated rate.

    Returns:
        SimulationResult. Nothing is returned from a partial or non-finite trial set;
        the corresponding SimulationError is raised instead.
    """
    if trials <= 0:
        raise InvalidParameter("trials", "must be positive")
    if workers <= 0:
        raise InvalidParameter("workers", "must be positive")
    if withdrawal_rate is not None and not 0.0 <= withdrawal_rate <= 1.0:
        raise InvalidParameter("withdrawal_rate", "must be between 0 and 1")

    root = np.random.SeedSequence(seed)
    trial_root, calibration_root = root.spawn(2)
    trial_seeds = trial_root.spawn(trials)

    logger.info("Running %d trials on %d worker(s)", trials, workers)
    started = time.perf_counter()

    with (mp.Pool(workers) if workers > 1 else nullcontext()) as pool:
        outcomes = run_trials(
            params, trial_seeds, withdrawal_rate=withdrawal_rate, pool=pool, cancel=cancel, keep_first_trace=True,
        )

        ending = np.array([o.ending_balance for o in outcomes], dtype=float)
        if not np.all(np.isfinite(ending)):
            bad = int(np.argmax(~np.isfinite(ending)))
            raise NumericAnomaly("ending_balance", bad, float(ending[bad]))

        probability = success_probability(outcomes)
        values = np.percentile(ending, PERCENTILES, method="lower")
        percentiles = {p: float(v) for p, v in zip(PERCENTILES, values)}

        if calibrate and probability < SUCCESS_TARGET:
            calibration_seeds = calibration_root.spawn(calibration_trials)
            safe_rate = calibrate_withdrawal_rate(
                params, calibration_seeds, pool=pool, cancel=cancel,
                max_iterations=max_calibration_iterations,
            )
        else:
            safe_rate = params.policy.withdrawal_rate if withdrawal_rate is None else withdrawal_rate

    depletion_years = [o.years_until_depletion for o in outcomes if o.years_until_depletion is not None]
    legacy_goal = params.household.legacy_goal
    legacy_met = sum(1 for o in outcomes if o.success and o.ending_balance >= legacy_goal)

    result = SimulationResult(
        probability_of_success=probability,
        percentiles=percentiles,
        safe_withdrawal_rate=safe_rate,
        projected_portfolio=project_retirement_portfolio(params),
        cash_flows=outcomes[0].cash_flows,
        trials=len(outcomes),
        current_assets=params.combined_buckets().total_assets,
        average_years_until_depletion=float(np.mean(depletion_years)) if depletion_years else None,
        legacy_goal_probability=legacy_met / len(outcomes),
    )
    logger.info(
        "Finished %d trials in %.1fs: %.1f%% success, median ending balance $%s",
        trials, time.perf_counter() - started, probability * 100, f"{percentiles[50]:,.0f}",
    )
    return result


def simulate(params: SimulationParameters, **kwargs) -> SimulationResult:
    """`simulate(params) -> result`: the engine's single entry point."""
    return run_monte_carlo(params, **kwargs)
