"""Scalar root finding: bisection, Newton, secant and fixed-point iteration.

All four methods share one contract:

    method(f, <initial data>, *, precision=1e-6, max_iterations=100) -> Result

where ``f`` is a :class:`~solver_lab.algorithms.functions.FunctionHandle`.
Each iteration appends an :class:`IterationRecord` whose ``estimate`` is the
point where ``f`` was evaluated and whose ``extras`` carry the next estimate
and method-specific data (bracket bounds, derivative, secant partner).

Numerical guards (see ``solver_lab.data.method_specs``):
- derivative below 1e-10 is "near zero" (Newton, fixed point)
- an estimate above 1e10 in magnitude, or non-finite, is a divergence
- ``|f(x1) - f(x0)|`` below 1e-15 collapses the secant

References:
- Burden & Faires: "Numerical Analysis" (9th ed.), Chapter 2
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

import numpy as np

from solver_lab.algorithms.functions import (
    FunctionHandle,
    ScalarFunction,
    central_difference,
)
from solver_lab.algorithms.result import (
    DivergenceError,
    InputError,
    IterationLimitExceeded,
    IterationRecord,
    NumericalFailure,
    Result,
    StagnationDetected,
    as_float,
    check_count,
    check_positive,
    converged_result,
    finite_or_none,
    solver_entry,
)
from solver_lab.algorithms.stagnation import ErrorSpreadDetector, StagnationDetector
from solver_lab.data.method_specs import Method, MethodFamily, get_default, get_guard

logger = logging.getLogger(__name__)

PRECISION: float = float(get_default(MethodFamily.ROOT_FINDING, "precision"))
MAX_ITERATIONS: int = int(get_default(MethodFamily.ROOT_FINDING, "max_iterations"))


def _check_runaway(
    x_new: float,
    trace: list[IterationRecord],
    fx: float,
) -> None:
    """Raise if the new estimate is non-finite or beyond the divergence limit."""
    limit = get_guard("divergence_limit")
    if not math.isfinite(x_new) or abs(x_new) > limit:
        raise DivergenceError(
            f"Method diverges (estimate left the range |x| <= {limit:g})",
            trace=trace,
            residual=finite_or_none(fx),
        )


def _evaluate_start(func: ScalarFunction, x: float, name: str) -> float:
    fx = func(x)
    if not math.isfinite(fx):
        raise InputError(f"Function is undefined at the initial point {name}={x:g}")
    return fx


@solver_entry(Method.BISECTION)
def bisection(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Find a root of ``f`` inside the bracket ``[a, b]`` by interval halving.

    The bracket must contain a sign change. When an endpoint already satisfies
    ``|f(x)| < precision`` it is returned with zero iterations. Each step
    keeps the half whose endpoints still differ in sign; a midpoint value of
    exactly zero sign counts as "same sign" as the left bound, which moves the
    left bound to the midpoint.

    Args:
        f: Function handle.
        a: Left bound (must be < b).
        b: Right bound.
        precision: Tolerance on ``|f(mid)|`` and on the half-interval width.
        max_iterations: Iteration cap.
        params: Named parameters forwarded to ``f``.

    Returns:
        Result whose solution is the root estimate.
    """
    name = Method.BISECTION.value
    left = as_float("a", a)
    right = as_float("b", b)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)

    if left >= right:
        raise InputError(f"Invalid interval: a must be less than b (a={left:g}, b={right:g})")

    func = ScalarFunction(f, params)
    f_left = func(left)
    f_right = func(right)

    if not (math.isfinite(f_left) and math.isfinite(f_right)):
        raise InputError("Function is undefined at the interval bounds")

    if abs(f_left) < precision:
        return converged_result(name, left, [], abs(f_left), "Root found at the left bound")
    if abs(f_right) < precision:
        return converged_result(name, right, [], abs(f_right), "Root found at the right bound")

    if np.sign(f_left) == np.sign(f_right):
        raise NumericalFailure(f"No sign change on the interval [{left:g}, {right:g}]")

    logger.debug("bisection on [%g, %g]", left, right)
    trace: list[IterationRecord] = []

    for i in range(1, max_iterations + 1):
        mid = left + (right - left) / 2.0
        f_mid = func(mid)
        half_width = (right - left) / 2.0

        trace.append(
            IterationRecord(
                index=i,
                estimate=mid,
                value=f_mid,
                error=half_width,
                extras={"a": left, "b": right},
            )
        )

        if not math.isfinite(f_mid):
            raise NumericalFailure(
                f"Function is undefined at the midpoint x={mid:g}",
                trace=trace,
                solution=mid,
            )

        if abs(f_mid) < precision or half_width < precision:
            return converged_result(name, mid, trace, abs(f_mid), f"Root found in {i} iterations")

        if np.sign(f_left) != np.sign(f_mid):
            right = mid
        else:
            left, f_left = mid, f_mid

    root = left + (right - left) / 2.0
    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=root,
        residual=finite_or_none(func(root)),
    )


@solver_entry(Method.NEWTON)
def newton(
    f: FunctionHandle,
    x0: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
    detector: StagnationDetector | None = None,
) -> Result:
    """Newton's method with a central-difference derivative.

    Converges when ``|Δx|`` or ``|f(x)|`` drops below
    ``max(precision, 1e-12)``. A :class:`StagnationDetector` watches the step
    sizes; by default it stops a run whose last three steps differ by less
    than 1e-15 (cycle or plateau), returning the last estimate unconverged.

    Args:
        f: Function handle.
        x0: Initial guess.
        precision: Tolerance on the step and on the residual.
        max_iterations: Iteration cap.
        params: Named parameters forwarded to ``f``.
        detector: Stagnation strategy (default ErrorSpreadDetector()).
    """
    name = Method.NEWTON.value
    x = as_float("x0", x0)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)

    func = ScalarFunction(f, params)
    _evaluate_start(func, x, "x0")

    tolerance = max(precision, get_guard("tolerance_floor"))
    derivative_floor = get_guard("derivative_floor")
    if detector is None:
        detector = ErrorSpreadDetector()

    logger.debug("newton from x0=%g", x)
    trace: list[IterationRecord] = []
    errors: list[float] = []

    for i in range(1, max_iterations + 1):
        fx = func(x)
        dfx = central_difference(func, x)

        if abs(dfx) < derivative_floor:
            raise NumericalFailure(
                f"Derivative near zero at x={x:g}",
                trace=trace,
                residual=finite_or_none(fx),
            )

        x_new = x - fx / dfx
        _check_runaway(x_new, trace, fx)

        error = abs(x_new - x)
        trace.append(
            IterationRecord(
                index=i,
                estimate=x,
                value=fx,
                error=error,
                extras={"derivative": dfx, "next": x_new},
            )
        )

        if error < tolerance or abs(fx) < tolerance:
            return converged_result(
                name, x_new, trace, abs(func(x_new)), f"Converged in {i} iterations"
            )

        errors.append(error)
        if detector.detect(errors).detected:
            raise StagnationDetected(
                "Stagnation: the error stopped decreasing",
                trace=trace,
                solution=x_new,
                residual=finite_or_none(func(x_new)),
            )

        x = x_new

    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=x,
        residual=finite_or_none(func(x)),
    )


@solver_entry(Method.SECANT)
def secant(
    f: FunctionHandle,
    x0: float,
    x1: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Secant method seeded with two points.

    Converges when ``|Δx| < precision`` or ``|f(x)| < precision``. Fails
    when the two most recent function values are numerically equal.
    """
    name = Method.SECANT.value
    x_prev = as_float("x0", x0)
    x_curr = as_float("x1", x1)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)

    func = ScalarFunction(f, params)
    f_prev = _evaluate_start(func, x_prev, "x0")
    f_curr = _evaluate_start(func, x_curr, "x1")
    secant_floor = get_guard("secant_floor")

    logger.debug("secant from x0=%g, x1=%g", x_prev, x_curr)
    trace: list[IterationRecord] = []

    for i in range(1, max_iterations + 1):
        if abs(f_curr - f_prev) < secant_floor:
            raise NumericalFailure(
                "Division by zero: f(x_n) - f(x_n-1) is numerically zero",
                trace=trace,
                residual=finite_or_none(f_curr),
            )

        x_new = x_curr - (x_curr - x_prev) * f_curr / (f_curr - f_prev)
        _check_runaway(x_new, trace, f_curr)

        error = abs(x_new - x_curr)
        trace.append(
            IterationRecord(
                index=i,
                estimate=x_curr,
                value=f_curr,
                error=error,
                extras={"previous": x_prev, "next": x_new},
            )
        )

        if error < precision or abs(f_curr) < precision:
            return converged_result(
                name, x_new, trace, abs(func(x_new)), f"Converged in {i} iterations"
            )

        x_prev, f_prev = x_curr, f_curr
        x_curr = x_new
        f_curr = func(x_curr)

    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=x_curr,
        residual=finite_or_none(f_curr),
    )


@solver_entry(Method.FIXED_POINT)
def fixed_point(
    f: FunctionHandle,
    x0: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Fixed-point iteration on ``φ(x) = x - f(x) / f'(x0)``.

    The derivative is taken once at the initial guess and used as a fixed
    scaling, so the map is a chord method. Converges when
    ``|φ(x) - x| < precision``.
    """
    name = Method.FIXED_POINT.value
    x = as_float("x0", x0)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)

    func = ScalarFunction(f, params)
    _evaluate_start(func, x, "x0")

    slope = central_difference(func, x)
    if not abs(slope) >= get_guard("derivative_floor"):
        raise NumericalFailure(
            f"Derivative near zero at x0={x:g}; the iteration map is undefined"
        )
    scale = 1.0 / slope

    logger.debug("fixed point from x0=%g with scale %g", x, scale)
    trace: list[IterationRecord] = []

    for i in range(1, max_iterations + 1):
        fx = func(x)
        x_new = x - scale * fx
        _check_runaway(x_new, trace, fx)

        error = abs(x_new - x)
        trace.append(
            IterationRecord(
                index=i,
                estimate=x,
                value=fx,
                error=error,
                extras={"next": x_new, "scale": scale},
            )
        )

        if error < precision:
            return converged_result(
                name, x_new, trace, abs(func(x_new)), f"Converged in {i} iterations"
            )

        x = x_new

    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=x,
        residual=finite_or_none(func(x)),
    )


__all__ = [
    "bisection",
    "fixed_point",
    "newton",
    "secant",
]
