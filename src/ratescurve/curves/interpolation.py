"""
Interpolation methods for yield curves.

Provides:
- LinearInterpolator: Linear interpolation (zero or forward rates)
- LogLinearInterpolator: Linear in log(value); on discount factors this
  gives piecewise constant forward rates
- CubicSplineInterpolator: Natural cubic spline
- BackwardFlatInterpolator: Piecewise constant, each segment takes the
  value of its right-hand knot (piecewise flat forwards)

All interpolators work with year fractions as x-coordinates. Besides the
value they expose the first derivative and the primitive (integral from the
first knot), which the curve needs for instantaneous forwards and for
forward-rate curves. Outside the knot range values are held flat; curves
apply their own extrapolation policy before reaching that point.
"""

from abc import ABC, abstractmethod
from typing import Optional
import math

import numpy as np


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of curve values at those times
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)

        if len(times) != len(values):
            raise ValueError("Times and values must have same length")
        if len(times) < 2:
            raise ValueError("Need at least 2 points for interpolation")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")

        self.times = times
        self.values = values
        self._fit()

    @abstractmethod
    def _fit(self) -> None:
        """Precompute segment data from self.times and self.values."""

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolated value at t."""

    @abstractmethod
    def derivative(self, t: float) -> float:
        """
        First derivative at t.

        At a knot the right-hand segment is used, except at the last knot
        where the left-hand (last) segment is used.
        """

    @abstractmethod
    def primitive(self, t: float) -> float:
        """Integral of the interpolant from the first knot to t."""

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _locate(self, t: float) -> int:
        """Index i of the segment [times[i], times[i+1]] used for t."""
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        return max(0, min(idx, len(self.times) - 2))

    def _clamp(self, t: float) -> float:
        return min(max(t, self.times[0]), self.times[-1])


class LinearInterpolator(Interpolator):
    """
    Linear interpolation between knot points.

    Flat beyond boundaries.
    """

    def _fit(self) -> None:
        dt = np.diff(self.times)
        self._slopes = np.diff(self.values) / dt
        areas = 0.5 * (self.values[:-1] + self.values[1:]) * dt
        self._cum = np.concatenate(([0.0], np.cumsum(areas)))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._locate(t)
        return float(self.values[idx] + self._slopes[idx] * (t - self.times[idx]))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return float(self._slopes[self._locate(t)])

    def primitive(self, t: float) -> float:
        self._check_fitted()
        t = self._clamp(t)
        idx = self._locate(t)
        dx = t - self.times[idx]
        return float(self._cum[idx] + self.values[idx] * dx + 0.5 * self._slopes[idx] * dx * dx)


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation.

    Interpolates linearly in log(value) space. Applied to discount factors
    this corresponds to piecewise constant forward rates, and extending the
    last segment is exactly flat-forward extrapolation.
    """

    def _fit(self) -> None:
        if np.any(self.values <= 0):
            raise ValueError("Log-linear interpolation requires positive values")
        self._log_values = np.log(self.values)
        dt = np.diff(self.times)
        self._slopes = np.diff(self._log_values) / dt

        areas = np.empty(len(dt))
        for i, (h, k) in enumerate(zip(dt, self._slopes)):
            areas[i] = self._segment_integral(self.values[i], k, h)
        self._cum = np.concatenate(([0.0], np.cumsum(areas)))

    @staticmethod
    def _segment_integral(v0: float, k: float, dx: float) -> float:
        if abs(k * dx) < 1e-12:
            return v0 * dx * (1.0 + 0.5 * k * dx)
        return v0 * math.expm1(k * dx) / k

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._locate(t)
        return float(math.exp(self._log_values[idx] + self._slopes[idx] * (t - self.times[idx])))

    def log_slope(self, t: float) -> float:
        """Derivative of log(value) at t, i.e. value'/value."""
        self._check_fitted()
        return float(self._slopes[self._locate(t)])

    def derivative(self, t: float) -> float:
        self._check_fitted()
        idx = self._locate(t)
        dx = self._clamp(t) - self.times[idx]
        value = math.exp(self._log_values[idx] + self._slopes[idx] * dx)
        return float(value * self._slopes[idx])

    def primitive(self, t: float) -> float:
        self._check_fitted()
        t = self._clamp(t)
        idx = self._locate(t)
        dx = t - self.times[idx]
        return float(self._cum[idx] + self._segment_integral(self.values[idx], self._slopes[idx], dx))


class CubicSplineInterpolator(Interpolator):
    """
    Cubic spline interpolation.

    Uses natural cubic splines (second derivative = 0 at boundaries).
    Provides smooth first and second derivatives. Not local: moving one
    knot changes the interpolant on every segment.
    """

    def _fit(self) -> None:
        """
        Fit natural cubic spline.

        Solves tridiagonal system for second derivatives,
        then computes polynomial coefficients for each interval.
        """
        x = self.times
        y = self.values
        n = len(x)
        h = np.diff(x)

        if n == 2:
            # Degenerate to linear
            slope = (y[1] - y[0]) / h[0]
            self.coefficients = np.array([[y[0], slope, 0.0, 0.0]])
        else:
            # Natural spline: M[0] = M[n-1] = 0
            A = np.zeros((n, n))
            b = np.zeros(n)
            A[0, 0] = 1.0
            A[n-1, n-1] = 1.0

            for i in range(1, n-1):
                A[i, i-1] = h[i-1]
                A[i, i] = 2 * (h[i-1] + h[i])
                A[i, i+1] = h[i]
                b[i] = 6 * ((y[i+1] - y[i]) / h[i] - (y[i] - y[i-1]) / h[i-1])

            M = np.linalg.solve(A, b)

            # S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
            self.coefficients = np.zeros((n-1, 4))
            for i in range(n-1):
                self.coefficients[i, 0] = y[i]
                self.coefficients[i, 1] = (y[i+1] - y[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
                self.coefficients[i, 2] = M[i] / 2
                self.coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])

        areas = np.array([
            self._segment_integral(self.coefficients[i], h[i]) for i in range(n-1)
        ])
        self._cum = np.concatenate(([0.0], np.cumsum(areas)))

    @staticmethod
    def _segment_integral(coeffs: np.ndarray, dx: float) -> float:
        a, b, c, d = coeffs
        return a*dx + b*dx**2/2 + c*dx**3/3 + d*dx**4/4

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._locate(t)
        dx = t - self.times[idx]
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)

    def derivative(self, t: float) -> float:
        self._check_fitted()
        idx = self._locate(t)
        dx = self._clamp(t) - self.times[idx]
        _, b, c, d = self.coefficients[idx]
        return float(b + 2*c*dx + 3*d*dx**2)

    def second_derivative(self, t: float) -> float:
        """Second derivative of cubic spline at point t."""
        self._check_fitted()
        idx = self._locate(t)
        dx = self._clamp(t) - self.times[idx]
        _, _, c, d = self.coefficients[idx]
        return float(2*c + 6*d*dx)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        t = self._clamp(t)
        idx = self._locate(t)
        dx = t - self.times[idx]
        return float(self._cum[idx] + self._segment_integral(self.coefficients[idx], dx))


class BackwardFlatInterpolator(Interpolator):
    """
    Backward-flat interpolation.

    On (t[i-1], t[i]] the value is values[i]. Used on instantaneous
    forward rates it gives a piecewise flat forward curve.
    """

    def _fit(self) -> None:
        areas = self.values[1:] * np.diff(self.times)
        self._cum = np.concatenate(([0.0], np.cumsum(areas)))

    def _right_knot(self, t: float) -> int:
        idx = int(np.searchsorted(self.times, t, side='left'))
        return max(1, min(idx, len(self.times) - 1))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        return float(self.values[self._right_knot(t)])

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return 0.0

    def primitive(self, t: float) -> float:
        self._check_fitted()
        t = self._clamp(t)
        if t <= self.times[0]:
            return 0.0
        idx = self._right_knot(t)
        return float(self._cum[idx - 1] + self.values[idx] * (t - self.times[idx - 1]))


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "log_linear", "cubic_spline", "backward_flat"

    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator()
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator()
    elif method in ("backward_flat", "flat"):
        return BackwardFlatInterpolator()
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


def normalize_method(method: str) -> str:
    """Canonical name of an interpolation method."""
    return {
        LinearInterpolator: "linear",
        LogLinearInterpolator: "log_linear",
        CubicSplineInterpolator: "cubic_spline",
        BackwardFlatInterpolator: "backward_flat",
    }[type(create_interpolator(method))]


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicSplineInterpolator",
    "BackwardFlatInterpolator",
    "create_interpolator",
    "normalize_method",
]
