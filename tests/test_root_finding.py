"""Tests for scalar root finding methods."""

import math

import numpy as np
import pytest

from solver_lab.algorithms.result import Result, Status
from solver_lab.algorithms.root_finding import bisection, fixed_point, newton, secant
from solver_lab.algorithms.stagnation import ErrorSpreadDetector, RelativeImprovementDetector

CUBIC_ROOT = 2.0945514815423265


def cubic(x):
    """Classic x^3 - 2x - 5 (Newton's own example)."""
    return x**3 - 2.0 * x - 5.0


def quadratic(x):
    return x**2 - 4.0


class TestBisection:
    """Tests for the bisection method."""

    def test_finds_root(self) -> None:
        """x^2 - 4 on [0, 3] converges to 2."""
        result = bisection(quadratic, 0.0, 3.0)
        assert result.converged
        assert result.status is Status.CONVERGED
        assert result.method == "bisection"
        assert abs(result.solution - 2.0) < 1e-6

    def test_root_inside_bracket_with_small_residual(self) -> None:
        """The returned root lies in [a, b] with a small residual."""
        a, b, precision = 3.0, 4.0, 1e-8
        result = bisection(math.sin, a, b, precision=precision)
        assert result.converged
        assert a <= result.solution <= b
        assert abs(math.sin(result.solution)) <= precision
        assert result.residual == pytest.approx(abs(math.sin(result.solution)))

    def test_bracket_keeps_sign_change(self) -> None:
        """Every recorded sub-interval contains the root."""
        result = bisection(quadratic, 0.0, 3.0)
        for record in result.trace:
            left, right = record.extras["a"], record.extras["b"]
            assert left <= record.estimate <= right
            assert np.sign(quadratic(left)) != np.sign(quadratic(right))

    def test_half_width_decreases(self) -> None:
        """Recorded errors halve every iteration."""
        result = bisection(cubic, 2.0, 3.0)
        errors = [record.error for record in result.trace]
        for previous, current in zip(errors, errors[1:]):
            assert current == pytest.approx(previous / 2.0)

    def test_endpoint_root_needs_no_iterations(self) -> None:
        """A root at a bound is returned immediately."""
        result = bisection(lambda x: x - 1.0, 1.0, 2.0)
        assert result.converged
        assert result.solution == 1.0
        assert result.iterations_count == 0

    def test_reversed_interval(self) -> None:
        """a >= b is an input error."""
        result = bisection(quadratic, 3.0, 0.0)
        assert not result.converged
        assert result.status is Status.INPUT_ERROR
        assert result.solution is None
        assert result.iterations_count == 0

    def test_no_sign_change(self) -> None:
        """Same sign at both bounds is a numerical failure."""
        result = bisection(lambda x: x**2 + 1.0, -1.0, 1.0)
        assert not result.converged
        assert result.status is Status.NUMERICAL_FAILURE
        assert result.iterations_count == 0

    def test_undefined_at_bound(self) -> None:
        """A handle undefined at a bound gives an input error."""
        result = bisection(math.log, -1.0, 2.0)
        assert result.status is Status.INPUT_ERROR

    def test_iteration_limit_returns_estimate(self) -> None:
        """Reaching the cap still returns the last midpoint."""
        result = bisection(quadratic, 0.0, 3.0, max_iterations=3)
        assert not result.converged
        assert result.status is Status.ITERATION_LIMIT
        assert result.iterations_count == 3
        assert 0.0 < result.solution < 3.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"precision": 0.0}, {"precision": -1.0}, {"max_iterations": 0}],
    )
    def test_invalid_settings(self, kwargs: dict) -> None:
        """Non-positive precision or cap is an input error."""
        result = bisection(quadratic, 0.0, 3.0, **kwargs)
        assert result.status is Status.INPUT_ERROR

    def test_params_forwarded(self) -> None:
        """Named parameters reach the handle."""
        result = bisection(lambda x, c: x * x - c, 0.0, 3.0, params={"c": 9.0})
        assert result.converged
        assert abs(result.solution - 3.0) < 1e-6


class TestNewton:
    """Tests for Newton's method."""

    def test_classic_cubic_from_one(self) -> None:
        """x^3 - 2x - 5 from x0 = 1 converges in fewer than 10 iterations."""
        result = newton(cubic, 1.0)
        assert result.converged
        assert result.iterations_count < 10
        assert abs(result.solution - CUBIC_ROOT) < 1e-6

    def test_trace_links_estimates(self) -> None:
        """Each record's next estimate is the following record's estimate."""
        result = newton(cubic, 1.0)
        for record, following in zip(result.trace, result.trace[1:]):
            assert record.extras["next"] == following.estimate
        assert result.trace[-1].extras["next"] == result.solution

    def test_quadratic_convergence(self) -> None:
        """Steps shrink quadratically near the root."""
        result = newton(quadratic, 3.0)
        errors = [record.error for record in result.trace]
        assert errors[-2] < errors[-3] ** 1.5

    def test_zero_derivative(self) -> None:
        """A flat start point is a numerical failure."""
        result = newton(lambda x: x**2 + 1.0, 0.0)
        assert not result.converged
        assert result.status is Status.NUMERICAL_FAILURE
        assert "Derivative near zero" in result.message

    def test_divergence(self) -> None:
        """Newton on the cube root doubles |x| every step and runs away."""
        result = newton(np.cbrt, 1.0)
        assert not result.converged
        assert result.status is Status.DIVERGENCE
        assert result.iterations_count > 0

    def test_two_cycle_stagnation(self) -> None:
        """x^3 - 2x + 2 from 0 cycles between 0 and 1."""
        result = newton(
            lambda x: x**3 - 2.0 * x + 2.0,
            0.0,
            detector=ErrorSpreadDetector(delta=1e-3),
        )
        assert not result.converged
        assert result.status is Status.STAGNATION
        assert result.solution is not None

    def test_relative_improvement_detector(self) -> None:
        """An injected plateau detector stops the same 0 <-> 1 cycle."""
        result = newton(
            lambda x: x**3 - 2.0 * x + 2.0,
            0.0,
            detector=RelativeImprovementDetector(window_size=4, min_iterations=4),
        )
        assert result.status is Status.STAGNATION
        assert result.iterations_count == 4
        assert [round(r.estimate) for r in result.trace] == [0, 1, 0, 1]

    def test_undefined_start(self) -> None:
        """A handle undefined at x0 gives an input error."""
        result = newton(math.log, -1.0)
        assert result.status is Status.INPUT_ERROR

    def test_domain_failure_mid_run_is_absorbed(self) -> None:
        """Leaving the domain mid-run never raises."""
        result = newton(math.log, 3.0)
        assert isinstance(result, Result)
        assert not result.converged


class TestSecant:
    """Tests for the secant method."""

    def test_finds_root(self) -> None:
        """Seeds (2, 3) converge to the cubic's root."""
        result = secant(cubic, 2.0, 3.0)
        assert result.converged
        assert abs(result.solution - CUBIC_ROOT) < 1e-6

    def test_trace_records_partner(self) -> None:
        """Each record keeps the previous estimate used for the slope."""
        result = secant(cubic, 2.0, 3.0)
        first = result.trace[0]
        assert first.estimate == 3.0
        assert first.extras["previous"] == 2.0

    def test_flat_secant(self) -> None:
        """Equal function values collapse the secant."""
        result = secant(lambda x: 1.0, 0.0, 1.0)
        assert not result.converged
        assert result.status is Status.NUMERICAL_FAILURE
        assert result.iterations_count == 0

    def test_iteration_limit(self) -> None:
        """Reaching the cap returns the last estimate."""
        result = secant(cubic, 2.0, 3.0, max_iterations=2)
        assert result.status is Status.ITERATION_LIMIT
        assert result.iterations_count == 2
        assert result.solution is not None


class TestFixedPoint:
    """Tests for fixed-point iteration."""

    def test_finds_root(self) -> None:
        """cos(x) - x from 0.5 converges to the Dottie number."""
        result = fixed_point(lambda x: math.cos(x) - x, 0.5)
        assert result.converged
        assert abs(result.solution - 0.7390851332151607) < 1e-5

    def test_scale_is_constant(self) -> None:
        """The derivative is taken once at x0."""
        result = fixed_point(lambda x: math.cos(x) - x, 0.5)
        scales = {record.extras["scale"] for record in result.trace}
        assert len(scales) == 1

    def test_flat_start(self) -> None:
        """A zero derivative at x0 leaves the map undefined."""
        result = fixed_point(lambda x: x**2 + 1.0, 0.0)
        assert result.status is Status.NUMERICAL_FAILURE
        assert result.iterations_count == 0

    def test_divergence(self) -> None:
        """A repelling fixed point runs away."""
        result = fixed_point(cubic, 1.0)
        assert not result.converged
        assert result.status is Status.DIVERGENCE


class TestNeverRaises:
    """Every root finder returns a Result for hostile input."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda: bisection(quadratic, "a", 3.0),
            lambda: bisection(quadratic, 0.0, float("nan")),
            lambda: newton(quadratic, None),
            lambda: secant(quadratic, 1.0, float("inf")),
            lambda: fixed_point(quadratic, 1.0, max_iterations=-3),
            lambda: bisection(lambda x: x, -1.0, 10**400),
            lambda: newton(quadratic, 10**400),
        ],
    )
    def test_input_errors(self, call) -> None:
        """Malformed parameters produce input-error results."""
        result = call()
        assert isinstance(result, Result)
        assert result.status is Status.INPUT_ERROR
