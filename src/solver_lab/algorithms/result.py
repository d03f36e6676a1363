"""Result contract shared by every solver family.

Every solve returns a fresh, immutable :class:`Result` holding the solution,
the convergence status, a human-readable message and the ordered trace of
:class:`IterationRecord` entries. Failures are raised internally as
:class:`SolverError` subclasses and turned into results at the single
:func:`solver_entry` boundary, so no exception ever escapes a solve.

Status taxonomy:
- ``input_error``: malformed parameters, detected before iterating
- ``numerical_failure``: structurally unsolvable by the chosen method
- ``divergence``: an iterate ran away or became non-finite
- ``iteration_limit``: cap reached, last iterate still returned
- ``stagnation``: errors stopped changing before convergence
"""

from __future__ import annotations

import functools
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, ParamSpec

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from solver_lab.data.method_specs import Method

logger = logging.getLogger(__name__)

P = ParamSpec("P")


class Status(Enum):
    """Outcome of a solve."""

    CONVERGED = "converged"
    INPUT_ERROR = "input_error"
    NUMERICAL_FAILURE = "numerical_failure"
    DIVERGENCE = "divergence"
    ITERATION_LIMIT = "iteration_limit"
    STAGNATION = "stagnation"


def _freeze(value: Any) -> Any:
    """Return a read-only copy of arrays, leave scalars untouched."""
    if isinstance(value, np.ndarray):
        frozen = np.array(value, dtype=float, copy=True)
        frozen.setflags(write=False)
        return frozen
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Trajectory):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def is_finite(value: Any) -> bool:
    """True if a scalar, array or trajectory holds only finite numbers."""
    if value is None:
        return True
    if isinstance(value, Trajectory):
        return bool(np.all(np.isfinite(value.x)) and np.all(np.isfinite(value.y)))
    if isinstance(value, np.ndarray):
        return bool(np.all(np.isfinite(value)))
    return math.isfinite(value)


@dataclass(frozen=True, slots=True)
class IterationRecord:
    """One entry of a solver trace."""

    index: int
    """1-based position in the trace."""

    estimate: float | NDArray[np.float64]
    """Primary estimate after this iteration (scalar or vector)."""

    value: float | NDArray[np.float64] | None
    """Function value(s) at the estimate, where meaningful."""

    error: float
    """Non-negative estimated error (NaN when no estimate is available)."""

    extras: Mapping[str, Any] = field(default_factory=dict)
    """Method-specific auxiliary fields (bounds, slope, residual vector...)."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "estimate", _freeze(self.estimate))
        object.__setattr__(self, "value", _freeze(self.value))
        object.__setattr__(
            self,
            "extras",
            MappingProxyType({k: _freeze(v) for k, v in self.extras.items()}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "index": self.index,
            "estimate": _jsonable(self.estimate),
            "value": _jsonable(self.value),
            "error": self.error,
            **{k: _jsonable(v) for k, v in self.extras.items()},
        }


@dataclass(frozen=True, slots=True)
class Trajectory:
    """Discrete ODE solution: grid points and the state at each point."""

    x: NDArray[np.float64]
    y: NDArray[np.float64]

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", _freeze(np.asarray(self.x, dtype=float)))
        object.__setattr__(self, "y", _freeze(np.asarray(self.y, dtype=float)))

    def __len__(self) -> int:
        return len(self.x)

    @property
    def final(self) -> tuple[float, float | NDArray[np.float64]]:
        """Last grid point and state."""
        y_end = self.y[-1]
        return float(self.x[-1]), float(y_end) if np.ndim(y_end) == 0 else y_end

    def to_dict(self) -> dict[str, list]:
        return {"x": self.x.tolist(), "y": self.y.tolist()}


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of a single solve (same schema for every family).

    ``solution`` is a float for root finding and quadrature, a
    :class:`Trajectory` for ODEs and a read-only vector for linear systems.
    It is ``None`` when the method failed before producing an estimate.
    """

    solution: float | Trajectory | NDArray[np.float64] | None
    """Root, integral value, trajectory or solution vector."""

    converged: bool
    """True only if the stopping criterion was met within tolerance."""

    message: str
    """Human-readable outcome."""

    method: str
    """Method identifier."""

    status: Status
    """Structured outcome."""

    trace: tuple[IterationRecord, ...] = ()
    """Per-iteration records (tuple for immutability)."""

    residual: float | None = None
    """Final numeric diagnostic (|f(root)|, refinement change, ||Ax-b||...)."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "solution", _freeze(self.solution))
        object.__setattr__(self, "trace", tuple(self.trace))

    @property
    def iterations_count(self) -> int:
        """Number of iterations performed (0 if none were needed)."""
        return len(self.trace)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "method": self.method,
            "converged": self.converged,
            "status": self.status.value,
            "message": self.message,
            "solution": _jsonable(self.solution),
            "residual": self.residual,
            "iterations_count": self.iterations_count,
            "trace": [record.to_dict() for record in self.trace],
        }


# =============================================================================
# ERROR TAXONOMY
# =============================================================================


class SolverError(Exception):
    """Base class for outcomes that end a solve without convergence.

    Raised inside the algorithms only; :func:`solver_entry` converts it to a
    :class:`Result`.
    """

    status: ClassVar[Status] = Status.NUMERICAL_FAILURE

    def __init__(
        self,
        message: str,
        *,
        trace: tuple[IterationRecord, ...] | list[IterationRecord] = (),
        solution: Any = None,
        residual: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.trace = tuple(trace)
        self.solution = solution
        self.residual = residual

    def to_result(self, method: str) -> Result:
        return Result(
            solution=self.solution,
            converged=False,
            message=self.message,
            method=method,
            status=self.status,
            trace=self.trace,
            residual=self.residual,
        )


class InputError(SolverError):
    """Malformed parameters (reversed interval, bad shapes, step <= 0)."""

    status = Status.INPUT_ERROR


class NumericalFailure(SolverError):
    """Problem not solvable by the chosen method (no bracket, singular...)."""

    status = Status.NUMERICAL_FAILURE


class StagnationDetected(NumericalFailure):
    """Successive errors stopped changing before the tolerance was met."""

    status = Status.STAGNATION


class DivergenceError(SolverError):
    """An iterate exceeded the runaway threshold or became non-finite."""

    status = Status.DIVERGENCE


class IterationLimitExceeded(SolverError):
    """Cap reached without satisfying the stopping criterion."""

    status = Status.ITERATION_LIMIT


# =============================================================================
# CONSTRUCTION HELPERS
# =============================================================================


def as_float(name: str, value: Any) -> float:
    """Coerce a scalar parameter, rejecting non-numeric or non-finite input."""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InputError(f"Parameter {name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InputError(f"Parameter {name} must be finite, got {number}")
    return number


def check_positive(name: str, value: Any) -> float:
    """Coerce a strictly positive scalar parameter (tolerance, step)."""
    number = as_float(name, value)
    if number <= 0:
        raise InputError(f"Parameter {name} must be positive, got {number}")
    return number


def check_count(name: str, value: Any) -> int:
    """Coerce an iteration cap, which must be a positive integer."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InputError(f"Parameter {name} must be a positive integer, got {value!r}")
    return int(value)


def finite_or_none(value: float) -> float | None:
    """Absolute value of a diagnostic, or None when it is not finite."""
    return abs(value) if math.isfinite(value) else None


def converged_result(
    method: str,
    solution: Any,
    trace: list[IterationRecord] | tuple[IterationRecord, ...],
    residual: float | None,
    message: str,
) -> Result:
    """Build a converged result, refusing non-finite numbers.

    Raises:
        DivergenceError: If the solution or residual is not finite.
    """
    if not is_finite(solution) or (residual is not None and not math.isfinite(residual)):
        raise DivergenceError(
            "Method diverges (non-finite value at the converged estimate)",
            trace=trace,
        )
    return Result(
        solution=solution,
        converged=True,
        message=message,
        method=method,
        status=Status.CONVERGED,
        trace=tuple(trace),
        residual=residual,
    )


def solver_entry(method: Method) -> Callable[[Callable[P, Result]], Callable[P, Result]]:
    """Mark a function as a solve boundary.

    Any :class:`SolverError` raised by the wrapped function becomes a
    non-converged :class:`Result` tagged with ``method``.
    """
    name = method.value

    def decorator(func: Callable[P, Result]) -> Callable[P, Result]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result:
            try:
                result = func(*args, **kwargs)
            except SolverError as exc:
                logger.debug("%s stopped with %s: %s", name, exc.status.value, exc)
                return exc.to_result(name)
            logger.debug(
                "%s finished with %s after %d iterations",
                name,
                result.status.value,
                result.iterations_count,
            )
            return result

        return wrapper

    return decorator


__all__ = [
    "Status",
    "IterationRecord",
    "Trajectory",
    "Result",
    "SolverError",
    "InputError",
    "NumericalFailure",
    "StagnationDetected",
    "DivergenceError",
    "IterationLimitExceeded",
    "as_float",
    "check_count",
    "check_positive",
    "converged_result",
    "finite_or_none",
    "is_finite",
    "solver_entry",
]
