"""Dense linear systems ``A x = b``: Gauss elimination, Jacobi, Gauss-Seidel.

Gauss elimination is direct: exactly ``n`` elimination steps with partial
pivoting, one trace entry per step (augmented-matrix snapshot and pivot),
then back substitution.

Jacobi and Gauss-Seidel are stationary iterations that require strict
diagonal dominance, checked before the first sweep:

    Jacobi:        x_i' = (b_i - Σ_{j≠i} a_ij x_j) / a_ii
    Gauss-Seidel:  x_i' = (b_i - Σ_{j<i} a_ij x_j' - Σ_{j>i} a_ij x_j) / a_ii

Each sweep records the residual ``b - A x'`` with its infinity norm, and the
increment ``||x' - x||_∞``, which is the stopping criterion.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §3.4 and §11.2
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np

from solver_lab.algorithms.result import (
    DivergenceError,
    InputError,
    IterationLimitExceeded,
    IterationRecord,
    NumericalFailure,
    Result,
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
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

PRECISION: float = float(get_default(MethodFamily.LINEAR_SYSTEM, "precision"))
MAX_ITERATIONS: int = int(get_default(MethodFamily.LINEAR_SYSTEM, "max_iterations"))
PIVOT_FLOOR: float = float(get_guard("pivot_floor"))


def _as_system(
    matrix: ArrayLike, vector: ArrayLike
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Validate and copy a dense square system."""
    try:
        A = np.array(matrix, dtype=float)
        b = np.array(vector, dtype=float)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InputError("Matrix and vector must be numeric and rectangular") from exc

    if A.ndim != 2 or A.shape[0] != A.shape[1] or A.shape[0] == 0:
        raise InputError(f"Matrix must be square and non-empty, got shape {A.shape}")
    if b.shape != (A.shape[0],):
        raise InputError(
            f"Incompatible matrix and vector dimensions: {A.shape} and {b.shape}"
        )
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(b))):
        raise InputError("Matrix and vector entries must be finite")

    return A, b


def _initial_guess(initial_guess: ArrayLike | None, n: int) -> NDArray[np.float64]:
    if initial_guess is None:
        return np.zeros(n)
    try:
        x = np.array(initial_guess, dtype=float)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InputError("Initial guess must be numeric") from exc
    if x.shape != (n,) or not np.all(np.isfinite(x)):
        raise InputError(f"Initial guess must be a finite vector of length {n}")
    return x


def residual_norm(
    A: NDArray[np.float64], x: NDArray[np.float64], b: NDArray[np.float64]
) -> float:
    """Infinity norm of ``A x - b``."""
    return float(np.max(np.abs(A @ x - b)))


def is_diagonally_dominant(matrix: ArrayLike) -> bool:
    """Check strict row diagonal dominance: ``|a_ii| > Σ_{j≠i} |a_ij|``."""
    A = np.abs(np.asarray(matrix, dtype=float))
    diagonal = np.diag(A)
    off_diagonal = A.sum(axis=1) - diagonal
    return bool(np.all(diagonal > off_diagonal))


@solver_entry(Method.GAUSS)
def gauss(
    matrix: ArrayLike,
    vector: ArrayLike,
    *,
    pivot_tolerance: float = PIVOT_FLOOR,
) -> Result:
    """Solve ``A x = b`` by Gauss elimination with partial pivoting.

    For each column the row with the largest magnitude entry among the
    remaining rows is swapped into the pivot position (ties keep the upper
    row). A pivot below ``pivot_tolerance`` in magnitude means the matrix is
    singular or nearly so.

    Args:
        matrix: n×n coefficient matrix.
        vector: Right-hand side of length n.
        pivot_tolerance: Smallest acceptable pivot magnitude.

    Returns:
        Result with the solution vector; ``residual`` is ``||Ax - b||_∞``.
    """
    name = Method.GAUSS.value
    A, b = _as_system(matrix, vector)
    pivot_tolerance = check_positive("pivot_tolerance", pivot_tolerance)
    n = A.shape[0]

    augmented = np.column_stack((A, b))
    trace: list[IterationRecord] = []

    logger.debug("gauss elimination on a %dx%d system", n, n)

    with np.errstate(over="ignore", invalid="ignore"):
        for i in range(n):
            max_row = i + int(np.argmax(np.abs(augmented[i:, i])))
            if max_row != i:
                augmented[[i, max_row]] = augmented[[max_row, i]]

            pivot = augmented[i, i]
            if abs(pivot) < pivot_tolerance:
                raise NumericalFailure(
                    "Matrix is singular or nearly singular",
                    trace=trace,
                )

            factors = augmented[i + 1 :, i] / pivot
            augmented[i + 1 :, i:] -= np.outer(factors, augmented[i, i:])

            trace.append(
                IterationRecord(
                    index=i + 1,
                    estimate=float(pivot),
                    value=None,
                    error=0.0,
                    extras={
                        "pivot": i,
                        "swapped_row": max_row,
                        "matrix": augmented.copy(),
                    },
                )
            )

        x = np.zeros(n)
        for i in range(n - 1, -1, -1):
            x[i] = (augmented[i, n] - augmented[i, i + 1 : n] @ x[i + 1 :]) / augmented[i, i]

        residual = residual_norm(A, x, b)

    return converged_result(name, x, trace, residual, f"System solved in {n} steps")


def _jacobi_sweep(
    A: NDArray[np.float64], b: NDArray[np.float64]
) -> Callable[[NDArray[np.float64]], NDArray[np.float64]]:
    diagonal = np.diag(A)
    remainder = A - np.diag(diagonal)

    def sweep(x: NDArray[np.float64]) -> NDArray[np.float64]:
        # Every component reads only the previous iterate.
        return (b - remainder @ x) / diagonal

    return sweep


def _gauss_seidel_sweep(
    A: NDArray[np.float64], b: NDArray[np.float64]
) -> Callable[[NDArray[np.float64]], NDArray[np.float64]]:
    n = A.shape[0]

    def sweep(x: NDArray[np.float64]) -> NDArray[np.float64]:
        x_new = x.copy()
        for i in range(n):
            lower = A[i, :i] @ x_new[:i]  # already updated this sweep
            upper = A[i, i + 1 :] @ x[i + 1 :]  # previous iterate
            x_new[i] = (b[i] - lower - upper) / A[i, i]
        return x_new

    return sweep


def _iterate(
    name: str,
    make_sweep: Callable[
        [NDArray[np.float64], NDArray[np.float64]],
        Callable[[NDArray[np.float64]], NDArray[np.float64]],
    ],
    matrix: ArrayLike,
    vector: ArrayLike,
    initial_guess: ArrayLike | None,
    precision: float,
    max_iterations: int,
) -> Result:
    A, b = _as_system(matrix, vector)
    precision = check_positive("precision", precision)
    max_iterations = check_count("max_iterations", max_iterations)
    x = _initial_guess(initial_guess, A.shape[0])

    if not is_diagonally_dominant(A):
        raise NumericalFailure("Matrix is not strictly diagonally dominant")

    sweep = make_sweep(A, b)
    trace: list[IterationRecord] = []
    residual = residual_norm(A, x, b)

    logger.debug("%s on a %dx%d system", name, *A.shape)

    for k in range(1, max_iterations + 1):
        with np.errstate(over="ignore", invalid="ignore"):
            x_new = sweep(x)
            r = b - A @ x_new

        if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(r))):
            raise DivergenceError("Iteration diverges (non-finite iterate)", trace=trace)

        residual = float(np.max(np.abs(r)))
        increment = float(np.max(np.abs(x_new - x)))

        trace.append(
            IterationRecord(
                index=k,
                estimate=x_new,
                value=None,
                error=increment,
                extras={"residual": r, "residual_norm": residual},
            )
        )

        if increment < precision:
            return converged_result(
                name, x_new, trace, residual, f"Converged in {k} iterations"
            )

        x = x_new

    raise IterationLimitExceeded(
        f"Iteration limit of {max_iterations} reached",
        trace=trace,
        solution=x,
        residual=residual,
    )


@solver_entry(Method.JACOBI)
def jacobi(
    matrix: ArrayLike,
    vector: ArrayLike,
    *,
    initial_guess: ArrayLike | None = None,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
) -> Result:
    """Solve ``A x = b`` by Jacobi iteration.

    Fails before iterating unless ``A`` is strictly diagonally dominant.

    Args:
        matrix: n×n coefficient matrix.
        vector: Right-hand side of length n.
        initial_guess: Starting vector (zeros by default).
        precision: Tolerance on ``||x' - x||_∞``.
        max_iterations: Iteration cap.
    """
    return _iterate(
        Method.JACOBI.value, _jacobi_sweep, matrix, vector,
        initial_guess, precision, max_iterations,
    )


@solver_entry(Method.GAUSS_SEIDEL)
def gauss_seidel(
    matrix: ArrayLike,
    vector: ArrayLike,
    *,
    initial_guess: ArrayLike | None = None,
    precision: float = PRECISION,
    max_iterations: int = MAX_ITERATIONS,
) -> Result:
    """Solve ``A x = b`` by Gauss-Seidel iteration.

    Same contract as :func:`jacobi`; components updated earlier in a sweep
    are used immediately by the rows below them.
    """
    return _iterate(
        Method.GAUSS_SEIDEL.value, _gauss_seidel_sweep, matrix, vector,
        initial_guess, precision, max_iterations,
    )


_LINEAR_METHODS: dict[Method, Callable[..., Result]] = {
    Method.GAUSS: gauss,
    Method.JACOBI: jacobi,
    Method.GAUSS_SEIDEL: gauss_seidel,
}


def solve_linear(
    method: Method | str,
    matrix: ArrayLike,
    vector: ArrayLike,
    **kwargs: Any,
) -> Result:
    """Solve with a linear-system method chosen by name.

    Raises:
        ValueError: If ``method`` is not a linear-system method.
    """
    spec = get_spec(method)
    if spec.family is not MethodFamily.LINEAR_SYSTEM:
        msg = f"Not a linear-system method: {spec.name}"
        raise ValueError(msg)
    return _LINEAR_METHODS[spec.method](matrix, vector, **kwargs)


__all__ = [
    "gauss",
    "gauss_seidel",
    "is_diagonally_dominant",
    "jacobi",
    "residual_norm",
    "solve_linear",
]
