"""Shared fixtures: structured benchmark meshes written as .node/.elem files."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from FEM import FEGrid, write_element_file, write_node_file


def structured_mesh(nx: int, ny: int, lx: float, ly: float):
    """(nx+1) x (ny+1) nodes numbered row by row, two triangles per cell.

    Cell (i, j) with lower-left node ll is split along ll-ur into
    (ll, lr, ur) and (ll, ur, ul), both counter-clockwise.
    """
    xs = np.linspace(0.0, lx, nx + 1)
    ys = np.linspace(0.0, ly, ny + 1)
    positions = np.array([(x, y) for y in ys for x in xs])

    triangles = []
    for j in range(ny):
        for i in range(nx):
            ll = j * (nx + 1) + i
            lr, ul = ll + 1, ll + nx + 1
            ur = ul + 1
            triangles.append((ll, lr, ur))
            triangles.append((ll, ur, ul))
    return positions, np.array(triangles)


@pytest.fixture
def benchmark_prefix(tmp_path):
    """4x4-cell mesh of [0, 0.6] x [0, 0.4] on disk (25 nodes, 9 interior)."""
    positions, triangles = structured_mesh(4, 4, 0.6, 0.4)
    prefix = tmp_path / "benchmark"
    write_node_file(f"{prefix}.node", positions)
    write_element_file(f"{prefix}.elem", triangles)
    return prefix


@pytest.fixture
def benchmark_grid(benchmark_prefix):
    return FEGrid.from_prefix(benchmark_prefix)


@pytest.fixture
def right_triangle():
    """Single triangle (0,0), (1,0), (0,1)."""
    return FEGrid([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], [[0, 1, 2]])
