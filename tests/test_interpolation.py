"""
Unit tests for interpolation methods.
"""

import math
import numpy as np
import pytest

from ratescurve.curves import (
    LinearInterpolator,
    LogLinearInterpolator,
    CubicSplineInterpolator,
    BackwardFlatInterpolator,
    create_interpolator,
)
from ratescurve.curves.interpolation import normalize_method


class TestInterpolators:
    """Tests for interpolation methods."""

    @pytest.fixture
    def sample_data(self):
        """Sample interpolation data."""
        x = np.array([0.0, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0])
        y = np.array([0.050, 0.051, 0.052, 0.053, 0.050, 0.048, 0.045])
        return x, y

    def test_linear_interpolator(self, sample_data):
        """Test linear interpolation."""
        x, y = sample_data
        interp = LinearInterpolator()
        interp.fit(x, y)

        # Test exact points
        assert abs(interp(0.0) - 0.050) < 1e-10
        assert abs(interp(1.0) - 0.053) < 1e-10

        # Midpoint between 0 and 0.25
        assert abs(interp(0.125) - 0.0505) < 1e-12

        # Flat outside the knots
        assert interp(20.0) == 0.045

    def test_linear_derivative_and_primitive(self):
        interp = LinearInterpolator()
        interp.fit(np.array([0.0, 1.0, 2.0]), np.array([0.0, 2.0, 2.0]))

        assert abs(interp.derivative(0.5) - 2.0) < 1e-12
        assert abs(interp.derivative(1.5)) < 1e-12
        assert abs(interp.primitive(1.0) - 1.0) < 1e-12
        assert abs(interp.primitive(2.0) - 3.0) < 1e-12

    def test_log_linear_interpolator(self, sample_data):
        """Test log-linear interpolation on discount factors."""
        x, y = sample_data
        dfs = np.exp(-y * x)
        dfs[0] = 1.0

        interp = LogLinearInterpolator()
        interp.fit(x, dfs)

        # Returns the value itself, not its log
        assert abs(interp(1.0) - math.exp(-0.053)) < 1e-14

        # Geometric interpolation between knots
        expected = math.sqrt(dfs[3] * dfs[4])
        assert abs(interp(1.5) - expected) < 1e-14

    def test_log_linear_flat_forward(self):
        """On DFs, log-linear means constant forward between knots."""
        interp = LogLinearInterpolator()
        interp.fit(np.array([0.0, 2.0]), np.array([1.0, math.exp(-0.1)]))

        assert abs(interp(1.0) - math.exp(-0.05)) < 1e-15
        assert abs(interp.log_slope(1.0) + 0.05) < 1e-14
        assert abs(interp.derivative(1.0) + 0.05 * math.exp(-0.05)) < 1e-14
        assert abs(interp.primitive(2.0) - (1 - math.exp(-0.1)) / 0.05) < 1e-13

    def test_log_linear_requires_positive_values(self):
        interp = LogLinearInterpolator()
        with pytest.raises(ValueError):
            interp.fit(np.array([0.0, 1.0]), np.array([1.0, -0.5]))

    def test_cubic_spline_interpolator(self, sample_data):
        """Test cubic spline interpolation."""
        x, y = sample_data
        interp = CubicSplineInterpolator()
        interp.fit(x, y)

        # Test exact points
        assert abs(interp(0.0) - 0.050) < 1e-10
        assert abs(interp(1.0) - 0.053) < 1e-10

        # Natural boundary conditions
        assert abs(interp.second_derivative(0.0)) < 1e-10
        assert abs(interp.second_derivative(10.0)) < 1e-10

    def test_cubic_spline_reproduces_linear_data(self):
        interp = CubicSplineInterpolator()
        x = np.array([0.0, 1.0, 2.0, 4.0])
        interp.fit(x, 1.0 + 2.0 * x)

        assert abs(interp(0.7) - 2.4) < 1e-12
        assert abs(interp.derivative(3.0) - 2.0) < 1e-12
        assert abs(interp.primitive(1.0) - 2.0) < 1e-12

    def test_cubic_spline_two_points(self):
        interp = CubicSplineInterpolator()
        interp.fit(np.array([0.0, 1.0]), np.array([1.0, 3.0]))
        assert abs(interp(0.5) - 2.0) < 1e-12

    def test_backward_flat_interpolator(self):
        """Each segment takes the value of its right-hand knot."""
        interp = BackwardFlatInterpolator()
        interp.fit(np.array([0.0, 1.0, 2.0]), np.array([9.0, 0.02, 0.03]))

        assert interp(0.5) == 0.02
        assert interp(1.0) == 0.02
        assert interp(1.5) == 0.03
        assert interp.derivative(1.5) == 0.0
        assert abs(interp.primitive(1.5) - 0.035) < 1e-15
        assert abs(interp.primitive(5.0) - 0.05) < 1e-15


class TestInterpolatorErrors:
    """Tests for fit validation and the factory."""

    def test_fit_validation(self):
        interp = LinearInterpolator()
        with pytest.raises(ValueError):
            interp.fit(np.array([0.0, 1.0]), np.array([1.0]))
        with pytest.raises(ValueError):
            interp.fit(np.array([0.0]), np.array([1.0]))
        with pytest.raises(ValueError):
            interp.fit(np.array([0.0, 1.0, 1.0]), np.array([1.0, 2.0, 3.0]))

    def test_unfitted(self):
        with pytest.raises(RuntimeError):
            LinearInterpolator().interpolate(0.5)

    def test_factory(self):
        assert isinstance(create_interpolator("linear"), LinearInterpolator)
        assert isinstance(create_interpolator("Log-Linear"), LogLinearInterpolator)
        assert isinstance(create_interpolator("cubic"), CubicSplineInterpolator)
        assert isinstance(create_interpolator("backward_flat"), BackwardFlatInterpolator)
        with pytest.raises(ValueError):
            create_interpolator("nss")

    def test_normalize_method(self):
        assert normalize_method("spline") == "cubic_spline"
        assert normalize_method("loglinear") == "log_linear"
