"""
Heat-equation time-stepping driver.

Usage:
    heat-simulate <length> <deltaT> <deltaX>
    heat-simulate 1.0 0.001 0.1 --steps 5000 --csv history.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .datastructures import DEFAULT_TOLERANCE, StepObservation
from .solution import InstabilityError, Solution

log = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Exit with status 1 (not argparse's 2) on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="heat-simulate",
        description="Explicit finite-difference solution of the 1D heat equation",
    )
    parser.add_argument("length", type=float, help="Domain length")
    parser.add_argument("dt", type=float, help="Time step size")
    parser.add_argument("dx", type=float, help="Space step size")
    parser.add_argument("--alpha", type=float, default=1.0, help="Thermal diffusivity")
    parser.add_argument("--steps", type=int, default=100, help="Maximum number of time steps")
    parser.add_argument("--tol", type=float, default=DEFAULT_TOLERANCE, help="Convergence tolerance")
    parser.add_argument(
        "--monitor", action="store_true", help="Stop with an error if the solution diverges"
    )
    parser.add_argument("--grid-out", type=Path, default=None, help="Write the grid (raw float64)")
    parser.add_argument("--csv", type=Path, default=None, help="Write the step history as CSV")
    parser.add_argument("--plot", type=Path, default=None, help="Save the final profile plot")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print per-step lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def format_step(obs: StepObservation) -> str:
    grid = ", ".join(f"Grid[{i}]={v:g}" for i, v in enumerate(obs.values))
    return f"step {obs.step} max error= {obs.max_error:g}, {grid}"


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        solver = Solution(
            args.length,
            args.dx,
            args.dt,
            alpha=args.alpha,
            max_steps=args.steps,
            tolerance=args.tol,
            monitor_instability=args.monitor,
        )
    except ValueError as exc:
        log.error(f"Invalid parameters: {exc}")
        return 1

    print(f"Number of grid points: {solver.grid_function.size}")
    callback = None if args.quiet else (lambda obs: print(format_step(obs)))
    try:
        metrics = solver.simulate(callback=callback)
    except InstabilityError as exc:
        log.error(str(exc))
        return 1

    if metrics.converged:
        xs = " ".join(f"{x:g}" for x in solver.coordinates)
        us = " ".join(f"{u:g}" for u in solver.values)
        print(f"Solution converged XCoordinates= {xs} , YCoordinates= {us}")
    else:
        print(f"Step budget of {metrics.steps} exhausted, max error= {metrics.final_max_error:g}")

    if args.grid_out is not None:
        solver.domain.print_grid(args.grid_out)
    if args.csv is not None:
        solver.time_series.to_dataframe().to_csv(args.csv, index=False)
    if args.plot is not None:
        from FEM.plot_style import save_figure

        from .plotting import plot_profile

        fig, _ = plot_profile(solver.coordinates, solver.values, length=args.length)
        save_figure(fig, args.plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
