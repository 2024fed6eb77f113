"""
One-dimensional root finding for curve bootstrapping.

BrentSolver wraps scipy's Brent implementation with the bracketing step a
bootstrap needs: starting from a guess and a step, the bracket is widened
geometrically (moving the end with the smaller residual) until the residual
changes sign, never leaving the [lower, upper] domain.
"""

from dataclasses import dataclass
from typing import Callable, Tuple
import logging
import math

from scipy.optimize import brentq

from .errors import NonConvergent, UnreachableQuote

logger = logging.getLogger(__name__)


@dataclass
class BrentSolver:
    """
    Brent's method with bounded geometric bracket expansion.

    Attributes:
        accuracy: Absolute tolerance on the root (brentq xtol)
        max_iterations: Max Brent iterations once bracketed
        max_expansions: Max bracket widenings before giving up
        growth: Widening factor applied to the bracket width
    """
    accuracy: float = 1e-14
    max_iterations: int = 200
    max_expansions: int = 40
    growth: float = 1.6

    def bracket(
        self,
        f: Callable[[float], float],
        guess: float,
        step: float,
        lower: float = -math.inf,
        upper: float = math.inf
    ) -> Tuple[float, float, float, float]:
        """
        Find [a, b] around guess with f(a) and f(b) of opposite sign (or zero).

        Returns:
            Tuple (a, f(a), b, f(b))

        Raises:
            UnreachableQuote: If no sign change exists within the domain or
                the expansion budget is exhausted
        """
        if step <= 0:
            raise ValueError(f"Bracket step must be positive, got {step}")
        if lower >= upper:
            raise ValueError(f"Empty solver domain [{lower}, {upper}]")

        guess = min(max(guess, lower), upper)
        x_lo = max(guess - step, lower)
        x_hi = min(guess + step, upper)
        f_lo = _evaluate(f, x_lo)
        f_hi = _evaluate(f, x_hi)

        expansions = 0
        while f_lo * f_hi > 0:
            if x_lo <= lower and x_hi >= upper:
                raise UnreachableQuote(
                    f"no sign change in [{lower:.12g}, {upper:.12g}]: "
                    f"f(lower)={f_lo:.6g}, f(upper)={f_hi:.6g}"
                )
            if expansions >= self.max_expansions:
                logger.warning(
                    "Bracket expansion exhausted after %d steps at [%.12g, %.12g]",
                    expansions, x_lo, x_hi
                )
                raise UnreachableQuote(
                    f"no sign change after {expansions} bracket expansions "
                    f"around {guess:.12g}"
                )

            width = x_hi - x_lo
            move_low = abs(f_lo) < abs(f_hi)
            if move_low and x_lo <= lower:
                move_low = False
            elif not move_low and x_hi >= upper:
                move_low = True

            if move_low:
                x_lo = max(x_lo - self.growth * width, lower)
                f_lo = _evaluate(f, x_lo)
            else:
                x_hi = min(x_hi + self.growth * width, upper)
                f_hi = _evaluate(f, x_hi)
            expansions += 1

        return x_lo, f_lo, x_hi, f_hi

    def solve(
        self,
        f: Callable[[float], float],
        guess: float,
        step: float,
        lower: float = -math.inf,
        upper: float = math.inf
    ) -> float:
        """
        Find x in [lower, upper] with f(x) = 0, starting near guess.

        Args:
            f: Objective function
            guess: Starting point
            step: Initial half-width of the bracket around guess
            lower: Hard lower bound of the search domain
            upper: Hard upper bound of the search domain

        Returns:
            Root of f

        Raises:
            UnreachableQuote: If no bracket can be found
            NonConvergent: If Brent's method does not converge in the bracket
        """
        x_lo, f_lo, x_hi, f_hi = self.bracket(f, guess, step, lower, upper)

        if f_lo == 0.0:
            return x_lo
        if f_hi == 0.0:
            return x_hi

        root, result = brentq(
            f, x_lo, x_hi,
            xtol=self.accuracy,
            maxiter=self.max_iterations,
            full_output=True,
            disp=False
        )
        if not result.converged:
            raise NonConvergent(
                f"Brent solver did not converge in [{x_lo:.12g}, {x_hi:.12g}]: {result.flag}",
                iterations=result.iterations
            )
        return float(root)


def _evaluate(f: Callable[[float], float], x: float) -> float:
    value = float(f(x))
    if not math.isfinite(value):
        raise UnreachableQuote(f"objective is not finite at {x:.12g}")
    return value


__all__ = [
    "BrentSolver",
]
