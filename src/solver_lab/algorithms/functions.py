"""Function handle contract and safe evaluation wrappers.

The algorithms never parse formulas: callers hand over a plain callable
``f(x, **params)`` (or ``f(x, y, **params)`` for ODE right-hand sides). A
handle may fail for inputs outside its domain, either by raising
:class:`DomainError` (or any ``ArithmeticError``/``ValueError``/``TypeError``)
or by returning a non-finite number. Both failure modes are mapped to NaN
here, so the algorithms only ever have to test for finiteness.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

import numpy as np

from solver_lab.data.method_specs import get_guard

if TYPE_CHECKING:
    from numpy.typing import NDArray


class DomainError(ValueError):
    """Raised by a function handle evaluated outside its domain."""


class FunctionHandle(Protocol):
    """Scalar function of one variable with optional named parameters."""

    def __call__(self, x: float, /, **params: float) -> float: ...


class OdeHandle(Protocol):
    """Right-hand side ``f(x, y)`` of ``y' = f(x, y)``."""

    def __call__(self, x: float, y: float, /, **params: float) -> float: ...


# Failures a handle may raise for an undefined input.
DOMAIN_ERRORS: tuple[type[Exception], ...] = (ArithmeticError, ValueError, TypeError)

_NO_PARAMS: Mapping[str, float] = MappingProxyType({})


class ScalarFunction:
    """Safe evaluator around a :class:`FunctionHandle`.

    Calls never raise: a domain failure or a non-finite output yields NaN.
    ``evaluate_many`` tries a single vectorised call first and falls back to
    point-by-point evaluation when the handle does not accept arrays.

    Example:
        >>> f = ScalarFunction(math.log)
        >>> f(-1.0)
        nan
    """

    __slots__ = ("_handle", "_params")

    def __init__(
        self,
        handle: FunctionHandle,
        params: Mapping[str, float] | None = None,
    ) -> None:
        self._handle = handle
        self._params = MappingProxyType(dict(params)) if params else _NO_PARAMS

    def __call__(self, x: float) -> float:
        try:
            with np.errstate(all="ignore"):
                value = float(self._handle(x, **self._params))
        except DOMAIN_ERRORS:
            return float("nan")
        return value if np.isfinite(value) else float("nan")

    def evaluate_many(self, xs: NDArray[np.float64]) -> NDArray[np.float64]:
        """Evaluate at every point of ``xs``; failures become NaN."""
        try:
            with np.errstate(all="ignore"):
                values = np.array(self._handle(xs, **self._params), dtype=float)
        except DOMAIN_ERRORS:
            values = None

        if values is None or values.shape != xs.shape:
            values = np.fromiter((self(x) for x in xs), dtype=float, count=len(xs))

        values[~np.isfinite(values)] = np.nan
        return values


class OdeFunction:
    """Safe evaluator around an :class:`OdeHandle` (scalar or vector state)."""

    __slots__ = ("_handle", "_params")

    def __init__(
        self,
        handle: OdeHandle,
        params: Mapping[str, float] | None = None,
    ) -> None:
        self._handle = handle
        self._params = MappingProxyType(dict(params)) if params else _NO_PARAMS

    def __call__(
        self, x: float, y: float | NDArray[np.float64]
    ) -> float | NDArray[np.float64]:
        try:
            with np.errstate(all="ignore"):
                value = self._handle(x, y, **self._params)
                if np.ndim(y) == 0:
                    return float(value) if np.isfinite(float(value)) else float("nan")
                slope = np.array(value, dtype=float).reshape(np.shape(y))
        except DOMAIN_ERRORS:
            return float("nan") if np.ndim(y) == 0 else np.full(np.shape(y), np.nan)
        slope[~np.isfinite(slope)] = np.nan
        return slope


def derivative_step(x: float) -> float:
    """Central-difference step scaled to the magnitude of ``x``."""
    scale = get_guard("derivative_step_scale")
    floor = get_guard("derivative_step_floor")
    return max(floor, scale * (abs(x) or 1.0))


def central_difference(f: ScalarFunction, x: float) -> float:
    """Approximate ``f'(x)`` by ``(f(x+h) - f(x-h)) / 2h``."""
    h = derivative_step(x)
    return (f(x + h) - f(x - h)) / (2.0 * h)


__all__ = [
    "DOMAIN_ERRORS",
    "DomainError",
    "FunctionHandle",
    "OdeFunction",
    "OdeHandle",
    "ScalarFunction",
    "central_difference",
    "derivative_step",
]
