"""Stagnation detection strategies for iterative root finders.

An iteration can stop making progress without diverging: Newton's method
trapped in a 2-cycle, or an estimate sitting on a plateau where rounding
dominates the update. The detectors in this module watch the history of
per-iteration errors and flag such runs so the solver can stop early with
``converged=False``. Strategies are swappable via dependency injection.

Key Strategies:
- ErrorSpreadDetector: last few errors differ by less than a tiny delta
- RelativeImprovementDetector: window-based progress monitoring

References:
- Ortega & Rheinboldt, "Iterative Solution of Nonlinear Equations" (1970)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from solver_lab.data.method_specs import get_guard


@dataclass(frozen=True, slots=True)
class StagnationResult:
    """Result of stagnation detection."""

    detected: bool
    """Whether the run stopped making progress."""

    score: float
    """Detection score (for debugging/logging)."""


class StagnationDetector(ABC):
    """Abstract base class for stagnation detection strategies.

    All detector implementations must:
    1. Implement detect() method
    2. Implement get_config() method
    """

    @abstractmethod
    def detect(self, error_history: Sequence[float]) -> StagnationResult:
        """Detect if the iteration has stagnated.

        Args:
            error_history: Per-iteration errors (oldest to newest).

        Returns:
            StagnationResult with detection status and score.
        """

    @abstractmethod
    def get_config(self) -> dict:
        """Get configuration parameters."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


@dataclass
class ErrorSpreadDetector(StagnationDetector):
    """Flags runs whose recent errors have stopped changing.

    Compares the newest error with the one ``window - 1`` iterations back;
    a difference below ``delta`` means the iteration is cycling or stuck.

    Args:
        window: Number of recent errors inspected (default 3).
        min_iterations: Iterations required before checking (default 4).
        delta: Largest change still counted as stagnation (default 1e-15).
    """

    window: int = 3
    min_iterations: int = int(get_guard("stagnation_min_iterations"))
    delta: float = float(get_guard("stagnation_delta"))

    def __post_init__(self) -> None:
        if self.window < 2:
            msg = f"Window must be at least 2, got {self.window}"
            raise ValueError(msg)

    def detect(self, error_history: Sequence[float]) -> StagnationResult:
        """Error spread detection."""
        if len(error_history) < max(self.min_iterations, self.window):
            return StagnationResult(detected=False, score=float("inf"))

        recent = error_history[-self.window :]
        spread = abs(recent[-1] - recent[0])
        return StagnationResult(detected=spread < self.delta, score=spread)

    def get_config(self) -> dict:
        return {
            "window": self.window,
            "min_iterations": self.min_iterations,
            "delta": self.delta,
        }

    def __repr__(self) -> str:
        return f"ErrorSpreadDetector(window={self.window}, delta={self.delta:g})"


@dataclass
class RelativeImprovementDetector(StagnationDetector):
    """Simple relative improvement stagnation detector.

    Monitors the relative decrease of the error over a sliding window.
    Stagnation is detected when the improvement falls below ``threshold``.

    Args:
        window_size: Sliding window for improvement calculation (default 10).
        min_iterations: Minimum iterations before checking (default 20).
        threshold: Minimum relative improvement over the window (default 1e-3).
    """

    window_size: int = 10
    min_iterations: int = 20
    threshold: float = 1e-3

    def detect(self, error_history: Sequence[float]) -> StagnationResult:
        """Relative improvement detection."""
        if len(error_history) < max(self.min_iterations, self.window_size):
            return StagnationResult(detected=False, score=0.0)

        recent = error_history[-self.window_size :]
        error_start, error_end = recent[0], recent[-1]

        if error_start <= 0:
            return StagnationResult(detected=False, score=0.0)

        rel_improvement = (error_start - error_end) / error_start
        return StagnationResult(
            detected=rel_improvement < self.threshold,
            score=rel_improvement,
        )

    def get_config(self) -> dict:
        return {
            "window_size": self.window_size,
            "min_iterations": self.min_iterations,
            "threshold": self.threshold,
        }

    def __repr__(self) -> str:
        return f"RelativeImprovementDetector(window={self.window_size})"


def create_detector(detector_type: str = "spread", **kwargs) -> StagnationDetector:
    """Factory function to create stagnation detectors.

    Args:
        detector_type: Type of detector ('spread', 'relative').
        **kwargs: Detector-specific parameters.

    Returns:
        StagnationDetector instance.

    Example:
        >>> detector = create_detector("relative", window_size=20)
    """
    detectors: dict[str, type[StagnationDetector]] = {
        "spread": ErrorSpreadDetector,
        "relative": RelativeImprovementDetector,
    }

    if detector_type not in detectors:
        msg = f"Unknown detector: {detector_type}. Available: {list(detectors.keys())}"
        raise ValueError(msg)

    return detectors[detector_type](**kwargs)


__all__ = [
    "StagnationResult",
    "StagnationDetector",
    "ErrorSpreadDetector",
    "RelativeImprovementDetector",
    "create_detector",
]
