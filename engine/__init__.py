# engine/__init__.py

# Expose the orchestrator (the single entry point for callers)
from .monte_carlo import CancellationToken, run_monte_carlo, simulate

# Expose the single-trial simulator and the error taxonomy
from .simulator import ScenarioSimulator
from .errors import (
    CalibrationNonconvergence,
    InvalidParameter,
    NumericAnomaly,
    SimulationCancelled,
    SimulationError,
)
