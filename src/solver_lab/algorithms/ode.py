"""Fixed-step integrators for initial value problems ``y' = f(x, y)``.

Implements explicit Euler and classical 4th-order Runge-Kutta as stepper
strategies driven by one marching loop. The grid is ``x_k = x0 + k*step``;
the final step is shortened so the trajectory ends exactly at ``x_end``.

Error Estimation Method:
    y1 = step(y, h)                    # One full step (returned)
    y2 = step(step(y, h/2), h/2)       # Two half steps
    error = |y1 - y2| / (2^p - 1)      # Richardson estimate, p = order

The full-step value is the one advanced, so Euler stays Euler; the estimate
is a per-step diagnostic only.

References:
- Butcher: "Numerical Methods for Ordinary Differential Equations" (2003)
- Hairer, Nørsett & Wanner: "Solving Ordinary Differential Equations I"
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np

from solver_lab.algorithms.functions import OdeFunction, OdeHandle
from solver_lab.algorithms.result import (
    DivergenceError,
    InputError,
    IterationLimitExceeded,
    IterationRecord,
    Result,
    Trajectory,
    as_float,
    check_count,
    check_positive,
    converged_result,
    is_finite,
    solver_entry,
)
from solver_lab.data.method_specs import Method, MethodFamily, get_default, get_spec

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

    State = float | NDArray[np.float64]

logger = logging.getLogger(__name__)

STEP: float = float(get_default(MethodFamily.ODE, "step"))
MAX_STEPS: int = int(get_default(MethodFamily.ODE, "max_steps"))

# Remaining spans shorter than this fraction of the step snap to x_end.
_GRID_SNAP = 1e-9


class OdeStepper(ABC):
    """Abstract base class for one-step integrators."""

    method: ClassVar[Method]
    order: ClassVar[int]

    @abstractmethod
    def step(self, f: OdeFunction, x: float, y: State, h: float) -> State:
        """Advance ``y`` from ``x`` to ``x + h``."""

    def step_with_error(
        self, f: OdeFunction, x: float, y: State, h: float
    ) -> tuple[State, float]:
        """Advance one step and estimate its local error by step doubling.

        The estimate samples f at x + h/2, which the full step may not; it is
        NaN when f is undefined there.
        """
        y_full = self.step(f, x, y, h)
        y_half = self.step(f, x, y, h / 2.0)
        y_double = self.step(f, x + h / 2.0, y_half, h / 2.0)

        with np.errstate(all="ignore"):
            difference = np.max(np.abs(np.subtract(y_full, y_double)))
        error = float(difference) / (2**self.order - 1)
        return y_full, error if np.isfinite(error) else float("nan")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class EulerStepper(OdeStepper):
    """Explicit Euler: ``y + h f(x, y)``."""

    method = Method.EULER
    order = 1

    def step(self, f: OdeFunction, x: float, y: State, h: float) -> State:
        return y + h * f(x, y)


class RungeKutta4Stepper(OdeStepper):
    """Classical RK4 with slopes at x, x+h/2, x+h/2 and x+h."""

    method = Method.RUNGE_KUTTA4
    order = 4

    def step(self, f: OdeFunction, x: float, y: State, h: float) -> State:
        k1 = f(x, y)
        k2 = f(x + h / 2.0, y + h * k1 / 2.0)
        k3 = f(x + h / 2.0, y + h * k2 / 2.0)
        k4 = f(x + h, y + h * k3)
        return y + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def _initial_state(y0: Any) -> State:
    try:
        y = np.array(y0, dtype=float)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InputError(f"Initial value y0 must be numeric, got {y0!r}") from exc
    if y.ndim > 1 or y.size == 0:
        raise InputError(f"Initial value y0 must be a scalar or a vector, got shape {y.shape}")
    if not np.all(np.isfinite(y)):
        raise InputError("Initial value y0 must be finite")
    return float(y) if y.ndim == 0 else y


def march(
    stepper: OdeStepper,
    f: OdeHandle,
    x0: float,
    y0: Any,
    x_end: float,
    *,
    step: float = STEP,
    max_steps: int = MAX_STEPS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate from ``x0`` to ``x_end`` with a fixed step.

    Raises:
        SolverError: Any failure; public entry points convert it to a Result.
    """
    name = stepper.method.value
    start = as_float("x0", x0)
    stop = as_float("x_end", x_end)
    step = check_positive("step", step)
    max_steps = check_count("max_steps", max_steps)

    if start >= stop:
        raise InputError(
            f"Invalid range: x0 must be less than x_end (x0={start:g}, x_end={stop:g})"
        )

    state = _initial_state(y0)
    func = OdeFunction(f, params)

    xs: list[float] = [start]
    ys: list[State] = [state]
    trace: list[IterationRecord] = []
    total_error = 0.0
    x = start
    k = 0

    logger.debug("%s from x=%g to %g with step %g", name, start, stop, step)

    while x < stop and k < max_steps:
        k += 1
        x_next = start + k * step
        if stop - x_next <= _GRID_SNAP * step:
            x_next = stop
        h = x_next - x

        y_new, local_error = stepper.step_with_error(func, x, state, h)

        if not is_finite(y_new):
            raise DivergenceError(
                f"Solution diverges at x={x_next:g}",
                trace=trace,
            )

        trace.append(
            IterationRecord(
                index=k,
                estimate=y_new,
                value=None,
                error=local_error,
                extras={"x": x_next, "h": h},
            )
        )

        if np.isfinite(local_error):
            total_error += local_error
        x, state = x_next, y_new
        xs.append(x)
        ys.append(state)

    trajectory = Trajectory(x=np.array(xs), y=np.array(ys))

    if x < stop:
        raise IterationLimitExceeded(
            f"Step limit of {max_steps} reached at x={x:g}",
            trace=trace,
            solution=trajectory,
            residual=total_error,
        )

    return converged_result(
        name,
        trajectory,
        trace,
        total_error,
        f"Solution obtained in {k} steps",
    )


@solver_entry(Method.EULER)
def euler(
    f: OdeHandle,
    x0: float,
    y0: Any,
    x_end: float,
    *,
    step: float = STEP,
    max_steps: int = MAX_STEPS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate ``y' = f(x, y)`` with the explicit Euler method.

    Args:
        f: Right-hand side ``f(x, y)``; ``y`` may be a scalar or a vector.
        x0: Start of the range.
        y0: Initial value ``y(x0)``.
        x_end: End of the range (must be > x0).
        step: Step size (must be > 0).
        max_steps: Step cap.
        params: Named parameters forwarded to ``f``.

    Returns:
        Result whose solution is the full Trajectory.
    """
    return march(
        EulerStepper(), f, x0, y0, x_end,
        step=step, max_steps=max_steps, params=params,
    )


@solver_entry(Method.RUNGE_KUTTA4)
def runge_kutta4(
    f: OdeHandle,
    x0: float,
    y0: Any,
    x_end: float,
    *,
    step: float = STEP,
    max_steps: int = MAX_STEPS,
    params: Mapping[str, float] | None = None,
) -> Result:
    """Integrate ``y' = f(x, y)`` with classical 4th-order Runge-Kutta.

    Same arguments and result as :func:`euler`.
    """
    return march(
        RungeKutta4Stepper(), f, x0, y0, x_end,
        step=step, max_steps=max_steps, params=params,
    )


_ODE_METHODS: dict[Method, Callable[..., Result]] = {
    Method.EULER: euler,
    Method.RUNGE_KUTTA4: runge_kutta4,
}


def integrate_ode(
    method: Method | str,
    f: OdeHandle,
    x0: float,
    y0: Any,
    x_end: float,
    **kwargs: Any,
) -> Result:
    """Integrate with an ODE method chosen by name ('euler', 'rk4').

    Raises:
        ValueError: If ``method`` is not an ODE method.
    """
    spec = get_spec(method)
    if spec.family is not MethodFamily.ODE:
        msg = f"Not an ODE method: {spec.name}"
        raise ValueError(msg)
    return _ODE_METHODS[spec.method](f, x0, y0, x_end, **kwargs)


__all__ = [
    "OdeStepper",
    "EulerStepper",
    "RungeKutta4Stepper",
    "march",
    "euler",
    "runge_kutta4",
    "integrate_ode",
]
