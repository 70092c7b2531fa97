# engine/errors.py
#
# Failures the engine reports instead of returning a partial result.
#


class SimulationError(Exception):
    """Base class for every failure raised by the simulation engine."""


class InvalidParameter(SimulationError):
    """A SimulationParameters field violates an invariant. Raised before any trial runs."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NumericAnomaly(SimulationError):
    """An intermediate value became non-finite during a trial."""

    def __init__(self, field: str, year: int, value: float):
        self.field = field
        self.year = year
        self.value = value
        super().__init__(f"{field} became {value!r} in simulation year {year}")


class CalibrationNonconvergence(SimulationError):
    """The safe-withdrawal-rate search ran out of iterations before reaching its precision."""

    def __init__(self, low: float, high: float, iterations: int):
        self.low = low
        self.high = high
        self.iterations = iterations
        super().__init__(
            f"withdrawal rate search stopped after {iterations} iterations "
            f"with bracket [{low:.4%}, {high:.4%}]"
        )


class SimulationCancelled(SimulationError):
    """The caller's cancellation token fired between trial batches."""
