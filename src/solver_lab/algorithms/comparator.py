"""Side-by-side comparison of the methods of one family.

Each ``compare_*`` function runs a subset of a family's methods on the same
problem and returns ``{method name: Result}`` in the requested order. Every
solve is pure, so with ``max_workers`` the runs are spread over a thread
pool; results are still keyed and ordered as requested.

:func:`consensus` averages the solutions the converged methods agree on,
which is how a comparison is summarised into one reference value.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import TYPE_CHECKING, Any

import numpy as np

from solver_lab.algorithms import linear_systems, ode, quadrature, root_finding
from solver_lab.algorithms.result import Result, Trajectory
from solver_lab.data.method_specs import (
    Method,
    MethodFamily,
    get_guard,
    get_spec,
    list_methods,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from solver_lab.algorithms.functions import FunctionHandle, OdeHandle

logger = logging.getLogger(__name__)

Task = Callable[[], Result]


def _resolve(methods: Iterable[Method | str] | None, family: MethodFamily) -> list[Method]:
    """Parse requested methods, keeping order and dropping duplicates.

    Raises:
        ValueError: On unknown names or methods of another family.
    """
    if methods is None:
        return list_methods(family)

    resolved: list[Method] = []
    for method in methods:
        spec = get_spec(method)
        if spec.family is not family:
            msg = f"{spec.name} is a {spec.family.value} method, expected {family.value}"
            raise ValueError(msg)
        if spec.method not in resolved:
            resolved.append(spec.method)
    return resolved


def _run(tasks: dict[str, Task], max_workers: int | None) -> dict[str, Result]:
    """Execute tasks serially, or on a thread pool when ``max_workers`` is set."""
    if max_workers is None or len(tasks) <= 1:
        return {name: task() for name, task in tasks.items()}

    if max_workers < 1:
        msg = f"max_workers must be positive, got {max_workers}"
        raise ValueError(msg)

    logger.debug("running %d methods on %d workers", len(tasks), max_workers)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {name: executor.submit(task) for name, task in tasks.items()}
        return {name: future.result() for name, future in futures.items()}


def compare_roots(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    x0: float | None = None,
    x1: float | None = None,
    methods: Iterable[Method | str] | None = None,
    precision: float = root_finding.PRECISION,
    max_iterations: int = root_finding.MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
    max_workers: int | None = None,
) -> dict[str, Result]:
    """Run root finders on one equation.

    Bisection uses the bracket ``[a, b]``. Newton and fixed-point iteration
    start at ``x0`` (the bracket midpoint by default). The secant method is
    seeded with ``(x0, x1)`` when both are given, otherwise with ``(a, b)``.

    Example:
        >>> results = compare_roots(lambda x: x**2 - 4.0, 0.0, 3.0)
        >>> sorted(r.converged for r in results.values())
        [True, True, True, True]
    """
    start = (a + b) / 2.0 if x0 is None else x0
    seeds = (x0, x1) if x0 is not None and x1 is not None else (a, b)
    options: dict[str, Any] = {
        "precision": precision,
        "max_iterations": max_iterations,
        "params": params,
    }

    builders: dict[Method, Task] = {
        Method.BISECTION: partial(root_finding.bisection, f, a, b, **options),
        Method.NEWTON: partial(root_finding.newton, f, start, **options),
        Method.SECANT: partial(root_finding.secant, f, *seeds, **options),
        Method.FIXED_POINT: partial(root_finding.fixed_point, f, start, **options),
    }
    tasks = {m.value: builders[m] for m in _resolve(methods, MethodFamily.ROOT_FINDING)}
    return _run(tasks, max_workers)


def compare_quadrature(
    f: FunctionHandle,
    a: float,
    b: float,
    *,
    methods: Iterable[Method | str] | None = None,
    precision: float = quadrature.PRECISION,
    max_iterations: int = quadrature.MAX_ITERATIONS,
    params: Mapping[str, float] | None = None,
    min_samples: int = quadrature.MIN_SAMPLES,
    seed: int | None = None,
    max_workers: int | None = None,
) -> dict[str, Result]:
    """Run quadrature rules on one integral.

    ``min_samples`` and ``seed`` only apply to Monte Carlo.
    """
    tasks = {
        method.value: partial(
            quadrature.integrate,
            method,
            f,
            a,
            b,
            precision=precision,
            max_iterations=max_iterations,
            params=params,
            **({"min_samples": min_samples, "seed": seed} if method is Method.MONTE_CARLO else {}),
        )
        for method in _resolve(methods, MethodFamily.QUADRATURE)
    }
    return _run(tasks, max_workers)


def compare_ode(
    f: OdeHandle,
    x0: float,
    y0: Any,
    x_end: float,
    *,
    methods: Iterable[Method | str] | None = None,
    step: float = ode.STEP,
    max_steps: int = ode.MAX_STEPS,
    params: Mapping[str, float] | None = None,
    max_workers: int | None = None,
) -> dict[str, Result]:
    """Run ODE integrators on one initial value problem."""
    tasks = {
        method.value: partial(
            ode.integrate_ode,
            method,
            f,
            x0,
            y0,
            x_end,
            step=step,
            max_steps=max_steps,
            params=params,
        )
        for method in _resolve(methods, MethodFamily.ODE)
    }
    return _run(tasks, max_workers)


def compare_linear(
    matrix: ArrayLike,
    vector: ArrayLike,
    *,
    methods: Iterable[Method | str] | None = None,
    initial_guess: ArrayLike | None = None,
    precision: float = linear_systems.PRECISION,
    max_iterations: int = linear_systems.MAX_ITERATIONS,
    max_workers: int | None = None,
) -> dict[str, Result]:
    """Run linear solvers on one system.

    Gauss elimination is direct and ignores the iteration options.
    """
    iterative = {
        "initial_guess": initial_guess,
        "precision": precision,
        "max_iterations": max_iterations,
    }
    tasks = {
        method.value: partial(
            linear_systems.solve_linear,
            method,
            matrix,
            vector,
            **({} if method is Method.GAUSS else iterative),
        )
        for method in _resolve(methods, MethodFamily.LINEAR_SYSTEM)
    }
    return _run(tasks, max_workers)


def _comparable(solution: Any) -> float | NDArray[np.float64] | None:
    """Value a solution contributes to the consensus (final state for ODEs)."""
    if isinstance(solution, Trajectory):
        return solution.final[1]
    if isinstance(solution, np.ndarray):
        return solution
    if isinstance(solution, (int, float, np.floating)):
        return float(solution)
    return None


def consensus(
    results: Mapping[str, Result] | Iterable[Result],
) -> float | NDArray[np.float64] | None:
    """Average the solutions of the converged results.

    Scalars, solution vectors and ODE end states are all supported; only
    finite values below the divergence limit in magnitude take part, and
    vectors must share the shape of the first one. Returns ``None`` when no
    result qualifies.

    Example:
        >>> round(consensus(compare_roots(lambda x: x - 1.0, 0.0, 3.0)), 4)
        1.0
    """
    if isinstance(results, Mapping):
        results = results.values()

    limit = get_guard("divergence_limit")
    values: list[Any] = []

    for result in results:
        if not result.converged:
            continue
        value = _comparable(result.solution)
        if value is None:
            continue
        magnitude = np.abs(value)
        if not (np.all(np.isfinite(magnitude)) and np.all(magnitude < limit)):
            continue
        if values and np.shape(value) != np.shape(values[0]):
            continue
        values.append(value)

    if not values:
        return None
    if np.ndim(values[0]) == 0:
        return math.fsum(values) / len(values)
    return np.mean(np.stack(values), axis=0)


__all__ = [
    "compare_linear",
    "compare_ode",
    "compare_quadrature",
    "compare_roots",
    "consensus",
]
