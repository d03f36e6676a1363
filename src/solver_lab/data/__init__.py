"""Data module for method definitions and default settings."""

from solver_lab.data.method_specs import (
    Method,
    MethodFamily,
    MethodSpec,
    get_default,
    get_defaults,
    get_guard,
    get_spec,
    list_guards,
    list_methods,
)

__all__ = [
    "Method",
    "MethodFamily",
    "MethodSpec",
    "get_default",
    "get_defaults",
    "get_guard",
    "get_spec",
    "list_guards",
    "list_methods",
]
