"""
Method Definitions - Single Source of Truth

This module defines every supported numerical method, its family, its
mathematical properties, the default settings of each family's entry points
and the numerical guard thresholds shared by the algorithms.

References:
    - Burden & Faires: "Numerical Analysis" (9th ed.), Chapters 2, 4, 5, 6, 7
    - Higham: "Accuracy and Stability of Numerical Algorithms" (2nd ed.)
"""

from dataclasses import dataclass
from enum import Enum


class MethodFamily(Enum):
    """Algorithm families."""

    ROOT_FINDING = "root_finding"
    QUADRATURE = "quadrature"
    ODE = "ode"
    LINEAR_SYSTEM = "linear_system"


class Method(Enum):
    """Supported numerical methods."""

    BISECTION = "bisection"
    NEWTON = "newton"
    SECANT = "secant"
    FIXED_POINT = "fixed_point"
    MIDPOINT = "midpoint"
    TRAPEZOID = "trapezoid"
    SIMPSON = "simpson"
    MONTE_CARLO = "monte_carlo"
    EULER = "euler"
    RUNGE_KUTTA4 = "rk4"
    GAUSS = "gauss"
    JACOBI = "jacobi"
    GAUSS_SEIDEL = "gauss_seidel"


@dataclass(frozen=True, slots=True)
class MethodSpec:
    """Specification for a numerical method."""

    method: Method
    family: MethodFamily
    label: str
    order: int  # Order of accuracy / convergence, 0 where not meaningful
    deterministic: bool
    iterative: bool  # Whether the method runs a convergence loop

    @property
    def name(self) -> str:
        """Identifier used in results and comparator mappings."""
        return self.method.value


# =============================================================================
# METHOD SPECIFICATIONS
# =============================================================================
# Order: convergence order for root finders (bisection linear, Newton
# quadratic, secant ~1.618 rounded down), error order in h for quadrature and
# ODE steppers, 0 for direct/stationary linear solvers.

_METHOD_SPECS: dict[Method, MethodSpec] = {
    Method.BISECTION: MethodSpec(
        method=Method.BISECTION,
        family=MethodFamily.ROOT_FINDING,
        label="Bisection",
        order=1,
        deterministic=True,
        iterative=True,
    ),
    Method.NEWTON: MethodSpec(
        method=Method.NEWTON,
        family=MethodFamily.ROOT_FINDING,
        label="Newton",
        order=2,
        deterministic=True,
        iterative=True,
    ),
    Method.SECANT: MethodSpec(
        method=Method.SECANT,
        family=MethodFamily.ROOT_FINDING,
        label="Secant",
        order=1,
        deterministic=True,
        iterative=True,
    ),
    Method.FIXED_POINT: MethodSpec(
        method=Method.FIXED_POINT,
        family=MethodFamily.ROOT_FINDING,
        label="Fixed-point iteration",
        order=1,
        deterministic=True,
        iterative=True,
    ),
    Method.MIDPOINT: MethodSpec(
        method=Method.MIDPOINT,
        family=MethodFamily.QUADRATURE,
        label="Midpoint rectangles",
        order=2,
        deterministic=True,
        iterative=True,
    ),
    Method.TRAPEZOID: MethodSpec(
        method=Method.TRAPEZOID,
        family=MethodFamily.QUADRATURE,
        label="Trapezoid",
        order=2,
        deterministic=True,
        iterative=True,
    ),
    Method.SIMPSON: MethodSpec(
        method=Method.SIMPSON,
        family=MethodFamily.QUADRATURE,
        label="Simpson",
        order=4,
        deterministic=True,
        iterative=True,
    ),
    Method.MONTE_CARLO: MethodSpec(
        method=Method.MONTE_CARLO,
        family=MethodFamily.QUADRATURE,
        label="Monte Carlo",
        order=0,
        deterministic=False,
        iterative=True,
    ),
    Method.EULER: MethodSpec(
        method=Method.EULER,
        family=MethodFamily.ODE,
        label="Explicit Euler",
        order=1,
        deterministic=True,
        iterative=False,
    ),
    Method.RUNGE_KUTTA4: MethodSpec(
        method=Method.RUNGE_KUTTA4,
        family=MethodFamily.ODE,
        label="Runge-Kutta 4",
        order=4,
        deterministic=True,
        iterative=False,
    ),
    Method.GAUSS: MethodSpec(
        method=Method.GAUSS,
        family=MethodFamily.LINEAR_SYSTEM,
        label="Gauss elimination",
        order=0,
        deterministic=True,
        iterative=False,
    ),
    Method.JACOBI: MethodSpec(
        method=Method.JACOBI,
        family=MethodFamily.LINEAR_SYSTEM,
        label="Jacobi",
        order=0,
        deterministic=True,
        iterative=True,
    ),
    Method.GAUSS_SEIDEL: MethodSpec(
        method=Method.GAUSS_SEIDEL,
        family=MethodFamily.LINEAR_SYSTEM,
        label="Gauss-Seidel",
        order=0,
        deterministic=True,
        iterative=True,
    ),
}


# =============================================================================
# DEFAULT SETTINGS
# =============================================================================
# Named defaults for every family entry point.

_DEFAULT_SETTINGS: dict[MethodFamily, dict[str, float | int]] = {
    MethodFamily.ROOT_FINDING: {
        "precision": 1e-6,
        "max_iterations": 100,
    },
    MethodFamily.QUADRATURE: {
        "precision": 1e-6,
        "max_iterations": 20,
        "min_samples": 10_000,
    },
    MethodFamily.ODE: {
        "step": 0.1,
        "max_steps": 1000,
    },
    MethodFamily.LINEAR_SYSTEM: {
        "precision": 1e-6,
        "max_iterations": 1000,
    },
}


# =============================================================================
# NUMERICAL GUARDS
# =============================================================================

_NUMERICAL_GUARDS: dict[str, float | int] = {
    "derivative_floor": 1e-10,  # |f'(x)| below this is "near zero"
    "derivative_step_floor": 1e-10,  # Minimum central-difference step
    "derivative_step_scale": 1e-7,  # Step relative to |x|
    "divergence_limit": 1e10,  # |x| above this is a runaway iterate
    "stagnation_delta": 1e-15,  # Error spread below this is a plateau
    "stagnation_min_iterations": 4,
    "secant_floor": 1e-15,  # |f(x1) - f(x0)| below this collapses the secant
    "tolerance_floor": 1e-12,  # Newton never asks for more than this
    "pivot_floor": 1e-10,  # |pivot| below this is singular
    "segment_cap": 1_000_000,  # Deterministic quadrature count ceiling
    "sample_cap": 10_000_000,  # Monte Carlo count ceiling
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_spec(method: Method | str) -> MethodSpec:
    """
    Get the full specification for a method.

    Args:
        method: Method (enum or string like 'newton', 'Gauss-Seidel', 'RK4')

    Returns:
        MethodSpec with all method properties

    Raises:
        ValueError: If method is unknown

    Example:
        >>> get_spec("simpson").order
        4
    """
    if isinstance(method, str):
        method = _parse_method(method)
    return _METHOD_SPECS[method]


def get_default(family: MethodFamily | str, setting: str) -> float | int:
    """
    Get the default value of a family setting.

    Args:
        family: Method family
        setting: One of the family's keys, e.g. 'precision', 'max_iterations'

    Returns:
        Default value

    Example:
        >>> get_default("quadrature", "max_iterations")
        20
    """
    if isinstance(family, str):
        family = _parse_family(family)

    settings = _DEFAULT_SETTINGS[family]
    if setting not in settings:
        valid = list(settings.keys())
        raise ValueError(f"Unknown setting for {family.value}: {setting}. Valid: {valid}")

    return settings[setting]


def get_defaults(family: MethodFamily | str) -> dict[str, float | int]:
    """Get a copy of all default settings of a family."""
    if isinstance(family, str):
        family = _parse_family(family)
    return dict(_DEFAULT_SETTINGS[family])


def get_guard(name: str) -> float | int:
    """
    Get a numerical guard threshold.

    Args:
        name: Guard name, e.g. 'divergence_limit', 'pivot_floor'

    Returns:
        Threshold value

    Example:
        >>> get_guard("pivot_floor")
        1e-10
    """
    if name not in _NUMERICAL_GUARDS:
        valid = list(_NUMERICAL_GUARDS.keys())
        raise ValueError(f"Unknown guard: {name}. Valid: {valid}")
    return _NUMERICAL_GUARDS[name]


def list_guards() -> dict[str, float | int]:
    """Get a copy of all numerical guard thresholds."""
    return dict(_NUMERICAL_GUARDS)


def list_methods(family: MethodFamily | str | None = None) -> list[Method]:
    """
    List methods, optionally restricted to one family.

    Methods are returned in declaration order, which is also the default
    order used by the comparator.
    """
    if family is None:
        return list(Method)
    if isinstance(family, str):
        family = _parse_family(family)
    return [m for m in Method if _METHOD_SPECS[m].family is family]


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

_METHOD_ALIASES: dict[str, Method] = {
    "runge_kutta4": Method.RUNGE_KUTTA4,
    "runge_kutta": Method.RUNGE_KUTTA4,
    "rectangles": Method.MIDPOINT,
    "seidel": Method.GAUSS_SEIDEL,
    "iteration": Method.FIXED_POINT,
}


def _normalize(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def _parse_method(name: str) -> Method:
    """Parse a string into a Method enum."""
    normalized = _normalize(name)

    for method in Method:
        if method.value == normalized:
            return method
    if normalized in _METHOD_ALIASES:
        return _METHOD_ALIASES[normalized]

    valid = [m.value for m in Method]
    raise ValueError(f"Unknown method: '{name}'. Valid: {valid}")


def _parse_family(name: str) -> MethodFamily:
    """Parse a string into a MethodFamily enum."""
    normalized = _normalize(name)

    for family in MethodFamily:
        if family.value == normalized:
            return family

    valid = [f.value for f in MethodFamily]
    raise ValueError(f"Unknown method family: '{name}'. Valid: {valid}")
