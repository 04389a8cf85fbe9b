from __future__ import annotations

from pathlib import Path
from typing import Literal
import logging

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csr_matrix, issparse

from .datastructures import DIM, UNSET, VERTICES
from .mesh import FEGrid

log = logging.getLogger(__name__)

# Diagonal coefficient of the 2x2 material matrix C (Poisson-type operator)
K = 30.0


def material_matrix(k: float = K) -> NDArray[np.float64]:
    """C = diag(k, k)."""
    return k * np.eye(DIM)


def interior_locals(grid: FEGrid, elt_number: int) -> list[int]:
    """Local vertex numbers (0-2) of the interior nodes of an element."""
    return [j for j in range(VERTICES) if grid.get_node(elt_number, j).is_interior]


def element_b_transpose(
    grid: FEGrid, elt_number: int, locals_: list[int]
) -> NDArray[np.float64]:
    """B^T: one shape-function gradient row per interior local vertex, (n, 2)."""
    bt = np.empty((len(locals_), DIM))
    for row, j in enumerate(locals_):
        bt[row] = grid.gradient(elt_number, j)
    return bt


def element_stiffness(
    grid: FEGrid,
    elt_number: int,
    C: NDArray[np.float64],
    area_weighted: bool = False,
) -> tuple[list[int], NDArray[np.float64], NDArray[np.float64]]:
    """
    Local stiffness block restricted to the interior vertices of an element.

    Parameters
    ----------
    grid : FEGrid
        Mesh.
    elt_number : int
        Element index.
    C : ndarray (2, 2)
        Material matrix.
    area_weighted : bool
        Multiply the block by the element area (exact P1 integral).

    Returns
    -------
    locals_ : list of int
        Interior local vertex numbers, in row order of the block.
    kij : ndarray (n, n)
        (B^T C) B, symmetric for symmetric C.
    kij_partial : ndarray (n, 2)
        B^T C.
    """
    locals_ = interior_locals(grid, elt_number)
    bt = element_b_transpose(grid, elt_number, locals_)
    kij_partial = bt @ C
    b = bt.T.copy()
    kij = kij_partial @ b
    if area_weighted:
        kij *= grid.element_area(elt_number)
    return locals_, kij, kij_partial


def _global_ids(grid: FEGrid, elt_number: int, locals_: list[int]) -> NDArray[np.int64]:
    element = grid.element(elt_number)
    ids = np.array([grid.interior_ids[element[j]] for j in locals_], dtype=np.int64)
    assert np.all(ids != UNSET), f"Interior node of element {elt_number} has no matrix index"
    return ids


def _element_blocks(
    grid: FEGrid,
    k: float,
    area_weighted: bool,
    dump_path: str | Path | None,
    dump_mode: Literal["overwrite", "append"],
):
    """Yield (global ids, local block) for every element with interior vertices."""
    if dump_mode not in ("overwrite", "append"):
        raise ValueError(f"dump_mode must be 'overwrite' or 'append', got {dump_mode!r}")
    if dump_path is not None and dump_mode == "append":
        # Start from an empty file so one assembly gives one stream of blocks
        Path(dump_path).write_bytes(b"")

    C = material_matrix(k)
    for e in range(grid.num_elements):
        locals_, kij, kij_partial = element_stiffness(grid, e, C, area_weighted)

        if dump_path is not None:
            mode = "wb" if dump_mode == "overwrite" else "ab"
            with open(dump_path, mode) as fh:
                kij_partial.astype(np.float64).tofile(fh)

        if not locals_:
            continue
        yield _global_ids(grid, e, locals_), kij


def assemble_stiffness(
    grid: FEGrid,
    k: float = K,
    dump_path: str | Path | None = None,
    dump_mode: Literal["overwrite", "append"] = "overwrite",
    area_weighted: bool = False,
) -> NDArray[np.float64]:
    """
    Assemble the dense global stiffness matrix over the interior nodes.

    For every element the interior vertices are collected, their
    shape-function gradients form B^T, and the local block (B^T C) B is
    scatter-added at (interior id, interior id). Contributions of elements
    sharing a node accumulate. The resulting system is not solved.

    Parameters
    ----------
    grid : FEGrid
        Mesh with interior/boundary classification.
    k : float
        Diagonal coefficient of the material matrix C = diag(k, k).
    dump_path : str or Path, optional
        Write each element's B^T C block as raw float64 to this file.
    dump_mode : {"overwrite", "append"}
        "overwrite" rewrites the file per element (it ends up holding the
        last element's block); "append" keeps every block.
    area_weighted : bool
        Scale each block by the element area.

    Returns
    -------
    globalK : ndarray (n_interior, n_interior)
        Symmetric global matrix.
    """
    n = grid.num_interior_nodes
    globalK = np.zeros((n, n))

    for ids, kij in _element_blocks(grid, k, area_weighted, dump_path, dump_mode):
        np.add.at(globalK, (ids[:, np.newaxis], ids[np.newaxis, :]), kij)

    log.info(f"Assembled {n}x{n} stiffness matrix from {grid.num_elements} elements")
    return globalK


def assemble_stiffness_csr(
    grid: FEGrid,
    k: float = K,
    area_weighted: bool = False,
) -> csr_matrix:
    """Same matrix as :func:`assemble_stiffness`, built from (row, col, value) triplets."""
    rows: list[NDArray[np.int64]] = []
    cols: list[NDArray[np.int64]] = []
    data: list[NDArray[np.float64]] = []

    for ids, kij in _element_blocks(grid, k, area_weighted, None, "overwrite"):
        n_loc = len(ids)
        rows.append(np.broadcast_to(ids[:, np.newaxis], (n_loc, n_loc)).ravel())
        cols.append(np.broadcast_to(ids[np.newaxis, :], (n_loc, n_loc)).ravel())
        data.append(kij.ravel())

    n = grid.num_interior_nodes
    if not data:
        return csr_matrix((n, n))
    # Duplicate (row, col) pairs are summed
    return csr_matrix(
        (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
        shape=(n, n),
    )


def _nonzero_offsets(A, tol: float) -> NDArray[np.int64]:
    if issparse(A):
        coo = A.tocoo()
        mask = np.abs(coo.data) > tol
        return coo.col[mask] - coo.row[mask]
    A = np.asarray(A)
    r, c = np.nonzero(np.abs(A) > tol)
    return c - r


def matrix_bandwidth(A, tol: float = 0.0) -> tuple[int, int]:
    """
    Lower and upper bandwidth of a (dense or sparse) matrix.

    Entries with ``|a_ij| <= tol`` count as zero.
    """
    offsets = _nonzero_offsets(A, tol)
    if len(offsets) == 0:
        return 0, 0
    return int(max(0, -offsets.min())), int(max(0, offsets.max()))


def matrix_structure(A, tol: float = 0.0) -> str:
    """
    Classify a square matrix from its bandwidths.

    Returns one of "diagonal", "bidiagonal", "tridiagonal",
    "upper hessenberg", "lower hessenberg", "upper triangular",
    "lower triangular", "banded" or "full". Narrower classes win, so a full
    2x2 matrix is reported as tridiagonal.
    """
    n = A.shape[0]
    lower, upper = matrix_bandwidth(A, tol)
    if lower == 0 and upper == 0:
        return "diagonal"
    if (lower, upper) in ((1, 0), (0, 1)):
        return "bidiagonal"
    if lower == 1 and upper == 1:
        return "tridiagonal"
    if lower == 1 and upper == n - 1:
        return "upper hessenberg"
    if upper == 1 and lower == n - 1:
        return "lower hessenberg"
    if lower == 0 and upper == n - 1:
        return "upper triangular"
    if upper == 0 and lower == n - 1:
        return "lower triangular"
    if lower < n - 1 or upper < n - 1:
        return "banded"
    return "full"


def save_global_matrix(A, path: str | Path) -> Path:
    """Write a matrix as text: one row per line, entries separated by spaces."""
    path = Path(path)
    dense = A.toarray() if issparse(A) else np.asarray(A)
    np.savetxt(path, dense, fmt="%.10g", delimiter=" ")
    log.info(f"Saved global matrix to {path}")
    return path
