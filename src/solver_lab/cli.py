"""
Command-line interface for Solver Lab.

Usage:
    solver-lab info              Show available numerical methods
    solver-lab defaults          Show default settings and numerical guards
    solver-lab benchmark         Run the reference problems through every method
"""

import json
import logging
from typing import Annotated, Any

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from solver_lab import __version__
from solver_lab.algorithms import (
    Result,
    Status,
    Trajectory,
    compare_linear,
    compare_ode,
    compare_quadrature,
    compare_roots,
    consensus,
)
from solver_lab.algorithms.problems import (
    DEFAULT_SEED,
    reference_integral_problems,
    reference_linear_problems,
    reference_ode_problems,
    reference_root_problems,
)
from solver_lab.data import (
    MethodFamily,
    get_defaults,
    get_spec,
    list_guards,
    list_methods,
)

app = typer.Typer(
    name="solver-lab",
    help="Classical numerical methods with traceable results",
    add_completion=False,
)
console = Console()

_STATUS_STYLES: dict[Status, str] = {
    Status.CONVERGED: "green",
    Status.ITERATION_LIMIT: "yellow",
    Status.STAGNATION: "yellow",
    Status.NUMERICAL_FAILURE: "red",
    Status.DIVERGENCE: "red",
    Status.INPUT_ERROR: "red",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"solver-lab version {__version__}")
        raise typer.Exit()


def _parse_family_option(family: str | None) -> list[MethodFamily]:
    if family is None:
        return list(MethodFamily)
    try:
        return [MethodFamily(family.strip().lower().replace("-", "_"))]
    except ValueError:
        valid = ", ".join(f.value for f in MethodFamily)
        raise typer.BadParameter(f"Unknown family '{family}'. Valid: {valid}") from None


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log solver activity at DEBUG level."),
    ] = False,
) -> None:
    """Solver Lab - Root finding, quadrature, ODEs and linear systems."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
            force=True,
        )


@app.command()  # type: ignore[misc]
def info(
    family: Annotated[
        str | None,
        typer.Option("--family", "-f", help="Restrict to one method family"),
    ] = None,
) -> None:
    """Display information about available numerical methods."""
    table = Table(title="Available Methods")

    table.add_column("Method", style="cyan", no_wrap=True)
    table.add_column("Family")
    table.add_column("Name")
    table.add_column("Order", justify="right")
    table.add_column("Iterative", justify="center")
    table.add_column("Deterministic", justify="center")

    for fam in _parse_family_option(family):
        for method in list_methods(fam):
            spec = get_spec(method)
            table.add_row(
                spec.name,
                spec.family.value,
                spec.label,
                str(spec.order) if spec.order else "-",
                "✓" if spec.iterative else "✗",
                "✓" if spec.deterministic else "✗",
                style="" if spec.deterministic else "dim",
            )

    console.print(table)


@app.command()  # type: ignore[misc]
def defaults(
    family: Annotated[
        str | None,
        typer.Argument(help="Family to show (e.g., quadrature)"),
    ] = None,
) -> None:
    """Show default settings per family and the shared numerical guards."""
    table = Table(title="Default Settings")

    table.add_column("Family", style="bold")
    table.add_column("Setting")
    table.add_column("Default", justify="right")

    for fam in _parse_family_option(family):
        for setting, value in get_defaults(fam).items():
            table.add_row(fam.value, setting, f"{value:g}")

    console.print(table)

    guards = Table(title="Numerical Guards")
    guards.add_column("Guard", style="bold")
    guards.add_column("Threshold", justify="right")
    for name, value in list_guards().items():
        guards.add_row(name, f"{value:g}")

    console.print(guards)


def _format_solution(solution: Any) -> str:
    if solution is None:
        return "-"
    if isinstance(solution, Trajectory):
        x_end, y_end = solution.final
        return f"y({x_end:g}) = {np.array2string(np.asarray(y_end), precision=8)}"
    if isinstance(solution, np.ndarray):
        return np.array2string(solution, precision=6, threshold=6)
    return f"{solution:.10g}"


def _error_against(solution: Any, exact: Any) -> float | None:
    if solution is None:
        return None
    if isinstance(solution, Trajectory):
        solution = solution.final[1]
    return float(np.max(np.abs(np.asarray(solution) - np.asarray(exact))))


def _benchmark_family(
    family: MethodFamily, seed: int, workers: int | None
) -> list[tuple[str, dict[str, Result], Any]]:
    """Run every reference problem of a family, paired with its exact answer."""
    runs: list[tuple[str, dict[str, Result], Any]] = []

    if family is MethodFamily.ROOT_FINDING:
        for p in reference_root_problems():
            results = compare_roots(p.f, p.a, p.b, x0=p.x0, max_workers=workers)
            runs.append((p.name, results, p.root))
    elif family is MethodFamily.QUADRATURE:
        for p in reference_integral_problems():
            results = compare_quadrature(p.f, p.a, p.b, seed=seed, max_workers=workers)
            runs.append((p.name, results, p.exact))
    elif family is MethodFamily.ODE:
        for p in reference_ode_problems():
            results = compare_ode(p.f, p.x0, p.y0, p.x_end, max_workers=workers)
            runs.append((p.name, results, p.exact(p.x_end)))
    else:
        for p in reference_linear_problems(seed):
            results = compare_linear(p.matrix, p.vector, max_workers=workers)
            runs.append((p.name, results, p.solution))

    return runs


@app.command()  # type: ignore[misc]
def benchmark(
    family: Annotated[
        str | None,
        typer.Option("--family", "-f", help="Restrict to one method family"),
    ] = None,
    seed: Annotated[
        int,
        typer.Option("--seed", "-s", help="Seed for Monte Carlo and generated systems"),
    ] = DEFAULT_SEED,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Run methods on a thread pool"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print results as JSON instead of tables."),
    ] = False,
) -> None:
    """Run the built-in reference problems through every method of a family."""
    report: dict[str, dict[str, Any]] = {}

    for fam in _parse_family_option(family):
        table = Table(title=f"Benchmark: {fam.value}")

        table.add_column("Problem", style="bold")
        table.add_column("Method", style="cyan")
        table.add_column("Status")
        table.add_column("Iterations", justify="right")
        table.add_column("Solution", justify="right")
        table.add_column("Residual", justify="right")
        table.add_column("Error", justify="right")

        for problem, results, exact in _benchmark_family(fam, seed, workers):
            agreed = consensus(results)
            report[problem] = {
                "family": fam.value,
                "consensus": _format_solution(agreed),
                "results": {name: r.to_dict() for name, r in results.items()},
            }

            for name, result in results.items():
                error = _error_against(result.solution, exact)
                style = _STATUS_STYLES[result.status]
                table.add_row(
                    problem,
                    name,
                    f"[{style}]{result.status.value}[/]",
                    str(result.iterations_count),
                    _format_solution(result.solution),
                    "-" if result.residual is None else f"{result.residual:.2e}",
                    "-" if error is None else f"{error:.2e}",
                )
            table.add_section()

        if not as_json:
            console.print(table)

    if as_json:
        console.print_json(json.dumps(report))


if __name__ == "__main__":
    app()
