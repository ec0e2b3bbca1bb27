"""
Tests for the numerical analysis kernel.

Covers quadrature, cumulative ODE marching, the bounded Newton-Raphson
solvers and table interpolation.
"""

import numpy as np
import pytest

from numerical_analysis import (
    aitken_interpolate,
    linear_interpolate,
    newton_raphson_1d,
    newton_raphson_2d,
    simpson_integrate,
    simpson_ode_solve,
)
from numerical_analysis.root_finding import MAX_ITERATIONS


class CallCounter:
    """Wraps a function and counts its calls."""

    def __init__(self, f):
        self.f = f
        self.calls = 0

    def __call__(self, *args):
        self.calls += 1
        return self.f(*args)


class TestSimpson:
    """Composite Simpson quadrature."""

    def test_sine_over_half_period(self):
        """∫₀^π sin = 2."""
        assert simpson_integrate(0.0, np.pi, np.sin, 0.01) == pytest.approx(2.0, abs=1e-9)

    def test_uneven_last_panel(self):
        """A step that does not divide the interval still lands on b."""
        result = simpson_integrate(0.0, 1.0, lambda t: t**2, 0.3)
        assert result == pytest.approx(1/3, abs=1e-12)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            simpson_integrate(1.0, 1.0, np.sin, 0.1)
        with pytest.raises(ValueError):
            simpson_integrate(0.0, 1.0, np.sin, 0.0)


class TestSimpsonODE:
    """Cumulative integration at evenly spaced outputs."""

    def test_output_length_and_start(self):
        values = simpson_ode_solve(1.0, 10, np.cos, 0.01)
        assert len(values) == 11
        assert values[0] == 0.0

    def test_matches_antiderivative(self):
        """y' = 2t gives y = t² at every output node."""
        values = simpson_ode_solve(2.0, 8, lambda t: 2 * t, 0.05)
        nodes = np.linspace(0.0, 2.0, 9)
        np.testing.assert_allclose(values, nodes**2, atol=1e-12)

    def test_monotone_for_nonnegative_integrand(self):
        values = simpson_ode_solve(1.0, 200, lambda t: np.abs(np.sin(20 * t)), 0.001)
        assert np.all(np.diff(values) >= 0)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            simpson_ode_solve(1.0, 0, np.cos, 0.1)
        with pytest.raises(ValueError):
            simpson_ode_solve(-1.0, 10, np.cos, 0.1)


class TestNewtonRaphson1D:
    """Bounded 1-D Newton-Raphson."""

    def test_square_root(self):
        root = newton_raphson_1d(2.0, 1.0, lambda x: x * x, lambda x: 2 * x, 1e-12)
        assert root == pytest.approx(np.sqrt(2), abs=1e-12)

    def test_iteration_cap(self):
        """The function is evaluated at most once per update plus once initially."""
        f = CallCounter(lambda x: x**3 - 1e6)
        newton_raphson_1d(0.0, 1.0, f, lambda x: 3 * x**2, 1e-12)
        assert f.calls <= MAX_ITERATIONS + 1

    def test_unreachable_target_returns_none(self):
        """x² + 1 never reaches 0."""
        assert newton_raphson_1d(0.0, 0.5, lambda x: x**2 + 1, lambda x: 2 * x, 1e-10) is None

    def test_flat_derivative_returns_none(self):
        assert newton_raphson_1d(1.0, 0.0, lambda x: 0.0, lambda x: 0.0, 1e-10) is None

    def test_residual_equal_to_tolerance_is_converged(self):
        root = newton_raphson_1d(0.5, 0.0, lambda x: x, lambda x: 1.0, 0.5)
        assert root == 0.0


class TestNewtonRaphson2D:
    """Bounded 2-D Newton-Raphson with Cramer's rule."""

    def test_linear_system_in_one_step(self):
        result = newton_raphson_2d(
            3.0, 1.0, 0.0, 0.0,
            lambda p, l: p + l, lambda p, l: p - l,
            lambda p, l: 1.0, lambda p, l: 1.0,
            lambda p, l: 1.0, lambda p, l: -1.0,
            1e-12,
        )
        assert result == pytest.approx((2.0, 1.0))

    def test_nonlinear_system(self):
        """(e^p cos l, e^p sin l) = (0, 2) has p = ln 2, l = π/2."""
        result = newton_raphson_2d(
            0.0, 2.0, 0.5, 1.2,
            lambda p, l: np.exp(p) * np.cos(l), lambda p, l: np.exp(p) * np.sin(l),
            lambda p, l: np.exp(p) * np.cos(l), lambda p, l: -np.exp(p) * np.sin(l),
            lambda p, l: np.exp(p) * np.sin(l), lambda p, l: np.exp(p) * np.cos(l),
            1e-12,
        )
        assert result is not None
        np.testing.assert_allclose(result, (np.log(2), np.pi/2), atol=1e-10)

    def test_singular_jacobian_returns_none(self):
        result = newton_raphson_2d(
            1.0, 2.0, 0.0, 0.0,
            lambda p, l: p + l, lambda p, l: p + l,
            lambda p, l: 1.0, lambda p, l: 1.0,
            lambda p, l: 1.0, lambda p, l: 1.0,
            1e-10,
        )
        assert result is None

    def test_iteration_cap_and_sentinel(self):
        """A target off the range of the map gives None after the cap."""
        f1 = CallCounter(lambda p, l: p**2 + 1)
        result = newton_raphson_2d(
            0.0, 0.0, 0.3, 0.3,
            f1, lambda p, l: l,
            lambda p, l: 2 * p, lambda p, l: 0.0,
            lambda p, l: 0.0, lambda p, l: 1.0,
            1e-10,
        )
        assert result is None
        assert f1.calls <= MAX_ITERATIONS + 1


class TestInterpolation:
    """Aitken and linear interpolation."""

    def test_aitken_exact_on_cubic(self):
        X = np.array([0.0, 1.0, 2.0, 4.0])
        f = X**3 - 2 * X + 1
        assert aitken_interpolate(3.0, X, f) == pytest.approx(27 - 6 + 1)

    def test_aitken_slice(self):
        X = np.arange(10.0)
        f = 2 * X + 1
        assert aitken_interpolate(5.5, X, f, start=4, stop=8) == pytest.approx(12.0)

    def test_aitken_empty_slice(self):
        with pytest.raises(ValueError):
            aitken_interpolate(0.0, np.arange(3.0), np.arange(3.0), start=2, stop=2)

    def test_linear(self):
        assert linear_interpolate(1.5, 1.0, 2.0, 10.0, 20.0) == pytest.approx(15.0)
