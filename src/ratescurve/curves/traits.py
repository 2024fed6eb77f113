"""
Curve traits: what quantity a curve's nodes hold.

- DISCOUNT: discount factors P(0,t)
- ZERO_RATE: continuously compounded zero rates z(t), P = exp(-z t)
- FORWARD_RATE: instantaneous forward rates f(t), P = exp(-int_0^t f)

Each trait provides the identity node value, domain validation, conversion
to discount factors and the solver domain used while bootstrapping.
"""

from enum import Enum
from typing import Tuple
import math

from .interpolation import Interpolator


class CurveTrait(Enum):
    """Curve-space quantity stored at the nodes."""
    DISCOUNT = "discount"
    ZERO_RATE = "zero_rate"
    FORWARD_RATE = "forward_rate"

    @classmethod
    def from_string(cls, s: str) -> "CurveTrait":
        """Parse a trait name such as "discount" or "zero_rate"."""
        key = s.lower().replace("-", "_").replace(" ", "_")
        aliases = {"df": "discount", "zero": "zero_rate", "forward": "forward_rate"}
        try:
            return cls(aliases.get(key, key))
        except ValueError:
            raise ValueError(f"Unknown curve trait: {s}") from None

    @property
    def identity(self) -> float:
        """Node value meaning "no discounting" (DF 1, rate 0)."""
        return 1.0 if self is CurveTrait.DISCOUNT else 0.0

    @property
    def default_interpolation(self) -> str:
        return {
            CurveTrait.DISCOUNT: "log_linear",
            CurveTrait.ZERO_RATE: "linear",
            CurveTrait.FORWARD_RATE: "backward_flat",
        }[self]

    def supports(self, method: str) -> bool:
        """Whether an interpolation method (canonical name) suits this trait."""
        if self is CurveTrait.DISCOUNT:
            return method in ("log_linear", "linear", "cubic_spline")
        return method in ("linear", "cubic_spline", "backward_flat")

    def anchor_value(self, first_value: float) -> float:
        """
        Value of the implicit node at t = 0.

        Discount curves pin it to 1. Rate curves have no natural value at
        t = 0, so it mirrors the first solved node.
        """
        if self is CurveTrait.DISCOUNT:
            return 1.0
        return first_value

    def validate(self, value: float) -> None:
        """Raise ValueError if value is outside the trait's domain."""
        if not math.isfinite(value):
            raise ValueError(f"Node value must be finite, got {value}")
        if self is CurveTrait.DISCOUNT and value <= 0:
            raise ValueError(f"Invalid discount factor: {value}")

    def discount_factor(self, interpolator: Interpolator, t: float) -> float:
        """Discount factor at t (within the node range)."""
        if self is CurveTrait.DISCOUNT:
            return interpolator.interpolate(t)
        if self is CurveTrait.ZERO_RATE:
            return math.exp(-interpolator.interpolate(t) * t)
        return math.exp(-interpolator.primitive(t))

    def instantaneous_forward(self, interpolator: Interpolator, t: float) -> float:
        """Continuously compounded instantaneous forward at t (within the node range)."""
        if self is CurveTrait.DISCOUNT:
            return -interpolator.derivative(t) / interpolator.interpolate(t)
        if self is CurveTrait.ZERO_RATE:
            return interpolator.interpolate(t) + t * interpolator.derivative(t)
        return interpolator.interpolate(t)

    def solver_domain(
        self,
        previous: float,
        dt: float,
        max_rate: float,
        allow_negative_rates: bool
    ) -> Tuple[float, float]:
        """
        Hard [lower, upper] bounds for a node's value.

        Args:
            previous: Value of the preceding node
            dt: Time between the preceding node and this one
            max_rate: Largest absolute rate the search may reach
            allow_negative_rates: If False, forwards (discount curves) or
                rates (rate curves) must stay non-negative
        """
        if self is CurveTrait.DISCOUNT:
            lower = previous * math.exp(-max_rate * dt)
            upper = previous * math.exp(max_rate * dt) if allow_negative_rates else previous
            return lower, upper

        lower = -max_rate if allow_negative_rates else 0.0
        return lower, max_rate

    def initial_step(self, guess: float, dt: float) -> float:
        """Half-width of the first solver bracket: roughly a 1% rate move."""
        if self is CurveTrait.DISCOUNT:
            return max(abs(guess) * 0.01 * dt, 1e-10)
        return 0.01


__all__ = [
    "CurveTrait",
]
