"""Solver Lab: classical numerical methods with a uniform, traceable result."""

__version__ = "0.1.0"

from solver_lab.algorithms.result import Result, Status
from solver_lab.data.method_specs import (
    Method,
    MethodFamily,
    get_default,
    get_spec,
    list_methods,
)

__all__ = [
    "__version__",
    "Method",
    "MethodFamily",
    "Result",
    "Status",
    "get_default",
    "get_spec",
    "list_methods",
]
