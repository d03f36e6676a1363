"""Numerical algorithms module.

This module contains implementations of:
- Root finding (bisection, Newton, secant, fixed-point iteration)
- Self-refining quadrature (midpoint, trapezoid, Simpson, Monte Carlo)
- Fixed-step ODE integration (Euler, classical Runge-Kutta)
- Dense linear solvers (Gauss elimination, Jacobi, Gauss-Seidel)
- Method comparison and the shared Result contract
"""

from solver_lab.algorithms.comparator import (
    compare_linear,
    compare_ode,
    compare_quadrature,
    compare_roots,
    consensus,
)
from solver_lab.algorithms.functions import (
    DomainError,
    FunctionHandle,
    OdeHandle,
)
from solver_lab.algorithms.linear_systems import (
    gauss,
    gauss_seidel,
    is_diagonally_dominant,
    jacobi,
    residual_norm,
    solve_linear,
)
from solver_lab.algorithms.ode import (
    EulerStepper,
    OdeStepper,
    RungeKutta4Stepper,
    euler,
    integrate_ode,
    runge_kutta4,
)
from solver_lab.algorithms.problems import (
    DEFAULT_SEED,
    LinearProblem,
    SystemFingerprint,
    compute_fingerprint,
    create_diagonally_dominant_matrix,
    create_linear_problem,
)
from solver_lab.algorithms.quadrature import (
    MidpointRule,
    MonteCarloRule,
    QuadratureRule,
    SimpsonRule,
    TrapezoidRule,
    integrate,
    midpoint,
    monte_carlo,
    simpson,
    trapezoid,
)
from solver_lab.algorithms.result import (
    IterationRecord,
    Result,
    Status,
    Trajectory,
)
from solver_lab.algorithms.root_finding import (
    bisection,
    fixed_point,
    newton,
    secant,
)
from solver_lab.algorithms.stagnation import (
    ErrorSpreadDetector,
    RelativeImprovementDetector,
    StagnationDetector,
    StagnationResult,
    create_detector,
)

__all__ = [
    # Result contract
    "IterationRecord",
    "Result",
    "Status",
    "Trajectory",
    # Function handles
    "DomainError",
    "FunctionHandle",
    "OdeHandle",
    # Root finding
    "bisection",
    "fixed_point",
    "newton",
    "secant",
    # Quadrature
    "MidpointRule",
    "MonteCarloRule",
    "QuadratureRule",
    "SimpsonRule",
    "TrapezoidRule",
    "integrate",
    "midpoint",
    "monte_carlo",
    "simpson",
    "trapezoid",
    # ODE
    "EulerStepper",
    "OdeStepper",
    "RungeKutta4Stepper",
    "euler",
    "integrate_ode",
    "runge_kutta4",
    # Linear systems
    "gauss",
    "gauss_seidel",
    "is_diagonally_dominant",
    "jacobi",
    "residual_norm",
    "solve_linear",
    # Stagnation detection
    "ErrorSpreadDetector",
    "RelativeImprovementDetector",
    "StagnationDetector",
    "StagnationResult",
    "create_detector",
    # Reference problems
    "DEFAULT_SEED",
    "LinearProblem",
    "SystemFingerprint",
    "compute_fingerprint",
    "create_diagonally_dominant_matrix",
    "create_linear_problem",
    # Comparison
    "compare_linear",
    "compare_ode",
    "compare_quadrature",
    "compare_roots",
    "consensus",
]
