from __future__ import annotations

from typing import Optional


class EngineError(ValueError):
    """Base class for every failure the engine raises on bad input or bad numerics."""


class InvalidParameterError(EngineError):
    """Bond terms or call arguments outside their valid domain."""


class NumericInstabilityError(EngineError):
    """Non-finite or non-positive present value while discounting."""


class ConvergenceFailureError(EngineError):
    """
    The yield solver used its whole iteration budget without meeting a stop condition.

    `estimate` holds the last periodic rate reached, so callers can decide whether the
    approximate value is good enough to show.
    """

    def __init__(self, message: str, estimate: float, iterations: Optional[int] = None):
        super().__init__(message)
        self.estimate = estimate
        self.iterations = iterations
