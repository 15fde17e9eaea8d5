"""Exceptions raised by the risk engine.

Missing data is never an error: evaluators turn it into a ``None`` or neutral
component score.  Only misconfiguration and unexpected evaluator crashes
raise.
"""

from __future__ import annotations


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""


class InvalidRangeError(RiskEngineError, ValueError):
    """Raised when a normalisation range is empty or inverted."""

    def __init__(self, minimum: float, maximum: float) -> None:
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Invalid normalisation range [{minimum}, {maximum}]: "
            "minimum must be strictly less than maximum"
        )


class InvalidConfigurationError(RiskEngineError, ValueError):
    """Raised when a weight table or bucket threshold set is inconsistent."""


class EvaluatorFailure(RiskEngineError):
    """An evaluator raised an unexpected exception.

    Attributes:
        dimension: Key of the evaluator that failed (e.g. ``"financial"``).
        cause: The original exception, also chained as ``__cause__``.
    """

    def __init__(self, dimension: str, cause: BaseException) -> None:
        self.dimension = dimension
        self.cause = cause
        super().__init__(f"Evaluator '{dimension}' failed: {cause!r}")
