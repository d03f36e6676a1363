"""Self-refining composite quadrature for definite integrals.

Implements four rules behind one refinement loop:
- Midpoint rectangles: ``h * Σ f(a + (i + 1/2) h)``
- Trapezoid: ``h * (f(a)/2 + Σ f(x_i) + f(b)/2)``
- Simpson: ``h/3 * (f_0 + 4 f_1 + 2 f_2 + ... + 4 f_{n-1} + f_n)``, n even
- Monte Carlo: ``(b - a) * mean f(U)``, U uniform on [a, b]

Refinement Loop:
    I_1 = rule(n0)
    I_k = rule(n0 * 2^(k-1))
    stop when |I_k - I_{k-1}| < precision (k >= 2)

The loop also stops, unconverged, when the count exceeds a hard ceiling
(1e6 segments, 1e7 Monte Carlo samples) or after ``max_iterations`` estimates.

References:
- Davis & Rabinowitz: "Methods of Numerical Integration" (2nd ed.)
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np

from solver_lab.algorithms.functions import FunctionHandle, ScalarFunction
from solver_lab.algorithms.result import (
    InputError,
    IterationLimitExceeded,
    IterationRecord,
    NumericalFailure,
    Result,
    as_float,
    check_count,
    check_positive,
    converged_result,
    solver_entry,
)
from solver_lab.data.method_specs import (
    Method,
    MethodFamily,
    get_default,
    get_guard,
    get_spec,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

PRECISION: float = float(get_default(MethodFamily.QUADRATURE, "precision"))
MAX_ITERATIONS: int = int(get_default(MethodFamily.QUADRATURE, "max_iterations"))
MIN_SAMPLES: int = int(get_default(MethodFamily.QUADRATURE, "min_samples"))


class QuadratureRule(ABC):
    """Abstract base class for quadrature rules.

    All rule implementations must:
    1. Set ``method`` and ``initial_count``
    2. Implement estimate()
    """

    method: ClassVar[Method]
    count_cap: ClassVar[int] = int(get_guard("segment_cap"))

    @property
    @abstractmethod
    def initial_count(self) -> int:
        """Segment/sample count of the first estimate."""

    @abstractmethod
    def estimate(self, f: ScalarFunction, a: float, b: float, n: int) -> float:
        """Approximate the integral of ``f`` over [a, b] with count ``n``."""

    def describe(self, a: float, b: float, n: int) -> dict[str, Any]:
        """Auxiliary trace fields for an estimate with count ``n``."""
        return {"n": n, "h": (b - a) / n}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MidpointRule(QuadratureRule):
    """Composite midpoint-rectangle rule."""

    method = Method.MIDPOINT

    @property
    def initial_count(self) -> int:
        return 1

    def estimate(self, f: ScalarFunction, a: float, b: float, n: int) -> float:
        h = (b - a) / n
        xs = a + (np.arange(n) + 0.5) * h
        return float(h * np.sum(f.evaluate_many(xs)))


class TrapezoidRule(QuadratureRule):
    """Composite trapezoid rule."""

    method = Method.TRAPEZOID

    @property
    def initial_count(self) -> int:
        return 1

    def estimate(self, f: ScalarFunction, a: float, b: float, n: int) -> float:
        h = (b - a) / n
        values = f.evaluate_many(np.linspace(a, b, n + 1))
        return float(h * (np.sum(values) - 0.5 * (values[0] + values[-1])))


class SimpsonRule(QuadratureRule):
    """Composite Simpson rule (even segment count, weights 1,4,2,...,4,1)."""

    method = Method.SIMPSON

    @property
    def initial_count(self) -> int:
        return 2

    def estimate(self, f: ScalarFunction, a: float, b: float, n: int) -> float:
        if n % 2:
            n += 1
        h = (b - a) / n
        values = f.evaluate_many(np.linspace(a, b, n + 1))

        weights = np.full(n + 1, 2.0)
        weights[1::2] = 4.0
        weights[0] = weights[-1] = 1.0

        return float(h / 3.0 * np.dot(weights, values))

    def describe(self, a: float, b: float, n: int) -> dict[str, Any]:
        n += n % 2
        return {"n": n, "h": (b - a) / n}


@dataclass
class MonteCarloRule(QuadratureRule):
    """Plain Monte Carlo estimate from uniform samples.

    Args:
        min_samples: Sample count of the first estimate (default 10000).
        rng: Generator owned by this rule; a fresh one per solve keeps
            randomness isolated between calls.
    """

    method: ClassVar[Method] = Method.MONTE_CARLO
    count_cap: ClassVar[int] = int(get_guard("sample_cap"))

    min_samples: int = MIN_SAMPLES
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    @property
    def initial_count(self) -> int:
        return self.min_samples

    def estimate(self, f: ScalarFunction, a: float, b: float, n: int) -> float:
        xs = a + self.rng.random(n) * (b - a)
        return float((b - a) * np.mean(f.evaluate_many(xs)))

    def describe(self, a: float, b: float, n: int) -> dict[str, Any]:
        return {"n": n}

    def __repr__(self) -> str:
        return f"MonteCarloRule(min_samples={self.min_samples})"


def refine(
    rule: QuadratureRule,
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Run the doubling refinement loop for ``rule``.

    Raises:
        SolverError: Any failure; public entry points convert it to a Result.
    """
    name = rule.method.value
    lower = as_float("a", a)
    upper = as_float("b", b)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)

    if lower >= upper:
        raise InputError(
            f"Invalid interval: a must be less than b (a={lower:g}, b={upper:g})"
        )

    func = ScalarFunction(f, params)
    n = rule.initial_count
    previous = 0.0
    trace: list[IterationRecord] = []

    logger.debug("%s on [%g, %g] starting at n=%d", name, lower, upper, n)

    for i in range(1, max_iterations + 1):
        current = rule.estimate(func, lower, upper, n)

        if not math.isfinite(current):
            raise NumericalFailure(
                f"Integral diverges (non-finite sum with n={n})",
                trace=trace,
            )

        error = abs(current - previous)
        trace.append(
            IterationRecord(
                index=i,
                estimate=current,
                value=None,
                error=error,
                extras=rule.describe(lower, upper, n),
            )
        )

        if i > 1 and error < precision:
            return converged_result(
                name,
                current,
                trace,
                error,
                f"Integral computed with precision {error:.2e}",
            )

        previous = current
        n *= 2

        if n > rule.count_cap:
            raise IterationLimitExceeded(
                f"Count limit of {rule.count_cap} reached",
                trace=trace,
                solution=current,
                residual=error,
            )

    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=current,
        residual=error,
    )


@solver_entry(Method.MIDPOINT)
def midpoint(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate ``f`` over [a, b] with the self-refining midpoint rule."""
    return refine(
        MidpointRule(), f, a, b,
        precision=precision, max_iterations=max_iterations, params=params,
    )


@solver_entry(Method.TRAPEZOID)
def trapezoid(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate ``f`` over [a, b] with the self-refining trapezoid rule."""
    return refine(
        TrapezoidRule(), f, a, b,
        precision=precision, max_iterations=max_iterations, params=params,
    )


@solver_entry(Method.SIMPSON)
def simpson(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate ``f`` over [a, b] with the self-refining Simpson rule.

    Exact (to rounding) for polynomials up to degree 3, so such integrands
    converge on the second estimate.
    """
    return refine(
        SimpsonRule(), f, a, b,
        precision=precision, max_iterations=max_iterations, params=params,
    )


@solver_entry(Method.MONTE_CARLO)
def monte_carlo(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
    min_samples: int = MIN_SAMPLES,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> Result:
    """Integrate ``f`` over [a, b] with self-refining Monte Carlo sampling.

    Each call draws from its own generator: ``rng`` if given, otherwise a
    new ``numpy.random.default_rng(seed)``. The process-wide NumPy random
    state is never touched, and the same ``seed`` reproduces the same result.

    Args:
        f: Function handle (vectorised handles are much faster here).
        a: Lower bound.
        b: Upper bound.
        precision: Tolerance on the change between successive estimates.
        max_iterations: Maximum number of estimates.
        params: Named parameters forwarded to ``f``.
        min_samples: Samples of the first estimate, doubled each refinement.
        seed: Seed for a fresh generator.
        rng: Caller-owned generator (takes precedence over ``seed``).
    """
    min_samples = check_count("min_samples", min_samples)
    if rng is None:
        rng = np.random.default_rng(seed)
    return refine(
        MonteCarloRule(min_samples=min_samples, rng=rng), f, a, b,
        precision=precision, max_iterations=max_iterations, params=params,
    )


_QUADRATURE_METHODS: dict[Method, Callable[..., Result]] = {
    Method.MIDPOINT: midpoint,
    Method.TRAPEZOID: trapezoid,
    Method.SIMPSON: simpson,
    Method.MONTE_CARLO: monte_carlo,
}


def integrate(
    method: Method | str,
    f: FunctionHandle,
    a: float,
    b: float,
    **kwargs: Any,
) -> Result:
    """Integrate with a rule chosen by name.

    Args:
        method: Quadrature method ('midpoint', 'trapezoid', 'simpson',
            'monte_carlo').
        f: Function handle.
        a: Lower bound.
        b: Upper bound.
        **kwargs: Options of the chosen rule.

    Raises:
        ValueError: If ``method`` is not a quadrature method.

    Example:
        >>> result = integrate("simpson", lambda x: x**2, 0.0, 3.0)
        >>> round(result.solution, 10)
        9.0
    """
    spec = get_spec(method)
    if spec.family is not MethodFamily.QUADRATURE:
        msg = f"Not a quadrature method: {spec.name}"
        raise ValueError(msg)
    return _QUADRATURE_METHODS[spec.method](f, a, b, **kwargs)


__all__ = [
    "QuadratureRule",
    "MidpointRule",
    "TrapezoidRule",
    "SimpsonRule",
    "MonteCarloRule",
    "refine",
    "midpoint",
    "trapezoid",
    "simpson",
    "monte_carlo",
    "integrate",
]
