"""
Error taxonomy for curve construction and curve queries.

- InvalidInput: empty helper set, non-chronological pillars, bad quotes
- HelperError: a single rate helper's own preconditions are violated
- UnreachableQuote: no bracket could be found for a helper's residual
- NonConvergent: solver or global pass loop did not converge
- ExtrapolationDisallowed: query past the last node with extrapolation off
- FrozenCurveError: attempt to mutate a finished curve
"""

from datetime import date
from typing import Optional


class CurveError(Exception):
    """Base class for all curve construction and query errors."""


class InvalidInput(CurveError, ValueError):
    """Inputs to a curve build are inconsistent or malformed."""


class HelperError(InvalidInput):
    """
    A rate helper failed its own preconditions.

    Attributes:
        helper: Label of the offending helper
    """

    def __init__(self, message: str, helper: Optional[str] = None):
        super().__init__(message)
        self.helper = helper


class UnreachableQuote(CurveError, RuntimeError):
    """
    The root solver could not bracket a sign change for a helper's residual.

    Attributes:
        helper: Label of the offending helper
        maturity: Pillar date of the offending helper
    """

    def __init__(
        self,
        message: str,
        helper: Optional[str] = None,
        maturity: Optional[date] = None
    ):
        super().__init__(message)
        self.helper = helper
        self.maturity = maturity


class NonConvergent(CurveError, RuntimeError):
    """
    Iteration did not settle within its cap.

    Attributes:
        iterations: Number of passes (or solver iterations) performed
        max_change: Last observed max absolute node change, if known
        helper: Label of the helper being solved, for solver failures
    """

    def __init__(
        self,
        message: str,
        iterations: int = 0,
        max_change: float = float("nan"),
        helper: Optional[str] = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.max_change = max_change
        self.helper = helper


class ExtrapolationDisallowed(CurveError, ValueError):
    """A curve was queried beyond its last node with extrapolation disabled."""

    def __init__(self, time: float, max_time: float):
        super().__init__(
            f"time {time:.6f} is past the last curve node ({max_time:.6f}) "
            f"and extrapolation is disabled"
        )
        self.time = time
        self.max_time = max_time


class FrozenCurveError(CurveError, RuntimeError):
    """A finished (frozen) curve was asked to change its nodes."""


__all__ = [
    "CurveError",
    "InvalidInput",
    "HelperError",
    "UnreachableQuote",
    "NonConvergent",
    "ExtrapolationDisallowed",
    "FrozenCurveError",
]
