"""Reference problems for solver experiments.

This module provides reproducible test problems with known answers: seeded
strictly diagonally dominant linear systems (solvable by every linear
method) and a small catalogue of scalar, integral and ODE problems with
closed-form solutions.

Key Features:
- Reproducible system generation with seed control
- System fingerprinting for experiment verification
- Handles written with NumPy ufuncs, so quadrature can vectorise them

References:
- Burden & Faires: "Numerical Analysis" (9th ed.), exercises of §2.3, §4.4, §5.4, §7.3
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


DEFAULT_SEED: int = 42
"""Default random seed for reproducible experiments."""


@dataclass(frozen=True, slots=True)
class SystemFingerprint:
    """Fingerprint for linear system identification and verification.

    Used to verify that different experiments use identical systems.
    """

    matrix_size: int
    """System dimension n."""

    dominance_margin: float
    """min_i (|a_ii| - Σ_{j≠i} |a_ij|); positive means strictly dominant."""

    condition_number: float
    """2-norm condition number κ(A)."""

    frobenius_norm: float
    """||A||_F for additional verification."""

    seed: int | None
    """Random seed used for generation."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "matrix_size": self.matrix_size,
            "dominance_margin": self.dominance_margin,
            "condition_number": self.condition_number,
            "frobenius_norm": self.frobenius_norm,
            "random_seed": self.seed,
        }


def dominance_margin(matrix: NDArray[np.float64]) -> float:
    """Smallest row margin ``|a_ii| - Σ_{j≠i} |a_ij|``."""
    magnitudes = np.abs(matrix)
    diagonal = np.diag(magnitudes)
    return float(np.min(2.0 * diagonal - magnitudes.sum(axis=1)))


def create_diagonally_dominant_matrix(
    n: int,
    *,
    dominance: float = 2.0,
    seed: int | None = None,
) -> NDArray[np.float64]:
    """Create a strictly diagonally dominant matrix.

    Off-diagonal entries are uniform on [-1, 1]; each diagonal entry is
    ``dominance`` times its row's off-diagonal magnitude sum (plus one, so
    1×1 and sparse rows stay dominant), with a random sign.

    Args:
        n: Matrix dimension.
        dominance: Ratio |a_ii| / Σ_{j≠i} |a_ij| (must be > 1).
        seed: Random seed for reproducibility.

    Returns:
        n×n strictly diagonally dominant matrix.

    Example:
        >>> A = create_diagonally_dominant_matrix(5, seed=42)
        >>> dominance_margin(A) > 0
        True
    """
    if dominance <= 1.0:
        msg = f"Dominance must be greater than 1, got {dominance}"
        raise ValueError(msg)

    rng = np.random.default_rng(seed)
    matrix = rng.uniform(-1.0, 1.0, size=(n, n))
    np.fill_diagonal(matrix, 0.0)

    row_sums = np.abs(matrix).sum(axis=1)
    signs = rng.choice([-1.0, 1.0], size=n)
    np.fill_diagonal(matrix, signs * (dominance * row_sums + 1.0))

    return matrix


def compute_fingerprint(
    matrix: NDArray[np.float64],
    *,
    seed: int | None = DEFAULT_SEED,
) -> SystemFingerprint:
    """Compute fingerprint for system identification.

    Args:
        matrix: Coefficient matrix.
        seed: Random seed used for generation.

    Returns:
        SystemFingerprint for verification.
    """
    return SystemFingerprint(
        matrix_size=int(matrix.shape[0]),
        dominance_margin=dominance_margin(matrix),
        condition_number=float(np.linalg.cond(matrix)),
        frobenius_norm=float(np.linalg.norm(matrix, "fro")),
        seed=seed,
    )


@dataclass(frozen=True, slots=True)
class LinearProblem:
    """Linear system with a known solution."""

    name: str
    matrix: NDArray[np.float64]
    vector: NDArray[np.float64]
    solution: NDArray[np.float64]
    """Exact solution (ground truth)."""

    fingerprint: SystemFingerprint


def create_linear_problem(
    n: int,
    *,
    dominance: float = 2.0,
    seed: int = DEFAULT_SEED,
) -> LinearProblem:
    """Create a seeded diagonally dominant system with full metadata.

    The right-hand side is built from a random exact solution, so the ground
    truth is known without solving.

    Example:
        >>> problem = create_linear_problem(10)
        >>> problem.fingerprint.dominance_margin > 0
        True
    """
    matrix = create_diagonally_dominant_matrix(n, dominance=dominance, seed=seed)
    solution = np.random.default_rng(seed + 1).uniform(-5.0, 5.0, size=n)

    return LinearProblem(
        name=f"dominant_{n}x{n}",
        matrix=matrix,
        vector=matrix @ solution,
        solution=solution,
        fingerprint=compute_fingerprint(matrix, seed=seed),
    )


# =============================================================================
# SCALAR REFERENCE PROBLEMS
# =============================================================================


@dataclass(frozen=True, slots=True)
class RootProblem:
    """Scalar equation f(x) = 0 with a bracket and a known root."""

    name: str
    f: Callable[..., float]
    a: float
    b: float
    x0: float
    root: float


@dataclass(frozen=True, slots=True)
class IntegralProblem:
    """Definite integral with a closed-form value."""

    name: str
    f: Callable[..., float]
    a: float
    b: float
    exact: float


@dataclass(frozen=True, slots=True)
class OdeProblem:
    """Initial value problem with a closed-form solution."""

    name: str
    f: Callable[..., float]
    x0: float
    y0: float
    x_end: float
    exact: Callable[[float], float]


def reference_root_problems() -> tuple[RootProblem, ...]:
    """Classic root-finding benchmarks."""
    return (
        RootProblem(
            name="x^3 - 2x - 5",
            f=lambda x: x**3 - 2.0 * x - 5.0,
            a=2.0,
            b=3.0,
            x0=2.0,
            root=2.0945514815423265,
        ),
        RootProblem(
            name="cos(x) - x",
            f=lambda x: np.cos(x) - x,
            a=0.0,
            b=1.0,
            x0=0.5,
            root=0.7390851332151607,
        ),
        RootProblem(
            name="exp(x) - 2",
            f=lambda x: np.exp(x) - 2.0,
            a=0.0,
            b=2.0,
            x0=1.0,
            root=float(np.log(2.0)),
        ),
    )


def reference_integral_problems() -> tuple[IntegralProblem, ...]:
    """Definite integrals with known values."""
    return (
        IntegralProblem(name="x^2 - 4 on [0, 3]", f=lambda x: x**2 - 4.0, a=0.0, b=3.0, exact=-3.0),
        IntegralProblem(name="sin(x) on [0, pi]", f=np.sin, a=0.0, b=float(np.pi), exact=2.0),
        IntegralProblem(name="exp(x) on [0, 1]", f=np.exp, a=0.0, b=1.0, exact=float(np.e - 1.0)),
    )


def reference_ode_problems() -> tuple[OdeProblem, ...]:
    """Initial value problems with known solutions."""
    return (
        OdeProblem(
            name="y' = y, y(0) = 1",
            f=lambda x, y: y,
            x0=0.0,
            y0=1.0,
            x_end=1.0,
            exact=np.exp,
        ),
        OdeProblem(
            name="y' = -2xy, y(0) = 1",
            f=lambda x, y: -2.0 * x * y,
            x0=0.0,
            y0=1.0,
            x_end=2.0,
            exact=lambda x: float(np.exp(-x * x)),
        ),
    )


def reference_linear_problems(seed: int = DEFAULT_SEED) -> tuple[LinearProblem, ...]:
    """A small hand-written system and a seeded dominant one.

    The 2×2 system is not diagonally dominant, so only Gauss elimination
    solves it.
    """
    matrix = np.array([[2.0, 1.0], [1.0, -1.0]])
    return (
        LinearProblem(
            name="2x + y = 5, x - y = 1",
            matrix=matrix,
            vector=np.array([5.0, 1.0]),
            solution=np.array([2.0, 1.0]),
            fingerprint=compute_fingerprint(matrix, seed=None),
        ),
        create_linear_problem(6, seed=seed),
    )


__all__ = [
    "DEFAULT_SEED",
    "SystemFingerprint",
    "LinearProblem",
    "RootProblem",
    "IntegralProblem",
    "OdeProblem",
    "compute_fingerprint",
    "create_diagonally_dominant_matrix",
    "create_linear_problem",
    "dominance_margin",
    "reference_integral_problems",
    "reference_linear_problems",
    "reference_ode_problems",
    "reference_root_problems",
]
