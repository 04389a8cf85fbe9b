"""
Stiffness assembly driver.

Usage:
    fe-stiffness fine
    fe-stiffness fine --dump-matrix GlobalKMatrixFile.txt --dump-partials kijdump.bin

Reads ``<prefix>.node`` and ``<prefix>.elem``, assembles the global
stiffness matrix over the interior nodes and reports its structure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .assembly import (
    K,
    assemble_stiffness,
    matrix_bandwidth,
    matrix_structure,
    save_global_matrix,
)
from .datastructures import BOUNDARY_TOL
from .exceptions import DegenerateElementError, MeshParseError
from .mesh import FEGrid

log = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Exit with status 1 (not argparse's 2) on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="fe-stiffness",
        description="Assemble the global stiffness matrix of a triangular mesh",
    )
    parser.add_argument(
        "prefix",
        help="Common name prefix of the .node and .elem files (without extension)",
    )
    parser.add_argument("--k", type=float, default=K, help="Material coefficient C = diag(k, k)")
    parser.add_argument(
        "--area-weighted",
        action="store_true",
        help="Scale element blocks by the element area",
    )
    parser.add_argument(
        "--boundary-x",
        type=float,
        nargs="+",
        default=None,
        help="x = const boundary lines (default: bounding box)",
    )
    parser.add_argument(
        "--boundary-y",
        type=float,
        nargs="+",
        default=None,
        help="y = const boundary lines (default: bounding box)",
    )
    parser.add_argument("--tol", type=float, default=BOUNDARY_TOL, help="Boundary tolerance")
    parser.add_argument(
        "--dump-partials",
        type=Path,
        default=None,
        help="Write per-element B^T C blocks (raw float64)",
    )
    parser.add_argument(
        "--append-partials",
        action="store_true",
        help="Append every element's block instead of overwriting",
    )
    parser.add_argument(
        "--dump-matrix", type=Path, default=None, help="Write the global matrix as text"
    )
    parser.add_argument("--plot", type=Path, default=None, help="Save a sparsity plot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        grid = FEGrid.from_prefix(
            args.prefix,
            boundary_x=args.boundary_x,
            boundary_y=args.boundary_y,
            tol=args.tol,
        )
        globalK = assemble_stiffness(
            grid,
            k=args.k,
            dump_path=args.dump_partials,
            dump_mode="append" if args.append_partials else "overwrite",
            area_weighted=args.area_weighted,
        )
    except (OSError, MeshParseError, DegenerateElementError) as exc:
        log.error(f"Assembly failed: {exc}")
        return 1

    lower, upper = matrix_bandwidth(globalK)
    print(f"Nodes: {grid.num_nodes}, interior nodes: {grid.num_interior_nodes}, elements: {grid.num_elements}")
    print(f"Structure: {matrix_structure(globalK)}")
    print(f"Lower Bandwidth: {lower}")
    print(f"Upper Bandwidth: {upper}")

    if args.dump_matrix is not None:
        save_global_matrix(globalK, args.dump_matrix)
    if args.plot is not None:
        from .plot_style import plot_sparsity, save_figure

        fig, _ = plot_sparsity(globalK)
        save_figure(fig, args.plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
