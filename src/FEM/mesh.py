"""Unstructured triangular mesh with interior/boundary node classification."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence
import logging

import numpy as np
from numpy.typing import NDArray

from .datastructures import (
    BOUNDARY_TOL,
    DEGENERATE_TOL,
    DIM,
    UNSET,
    VERTICES,
    Element,
    Node,
)
from .exceptions import DegenerateElementError, MeshParseError
from .mesh_io import read_element_file, read_node_file

if TYPE_CHECKING:
    import meshio

log = logging.getLogger(__name__)


def classify_interior(
    positions: NDArray[np.float64],
    boundary_x: Sequence[float] | None = None,
    boundary_y: Sequence[float] | None = None,
    tol: float = BOUNDARY_TOL,
) -> NDArray[np.bool_]:
    """
    Flag nodes that do not lie on any of the given boundary lines.

    Parameters
    ----------
    positions : ndarray (N, 2)
        Node coordinates.
    boundary_x, boundary_y : sequence of float, optional
        x = const and y = const lines that bound the domain. Default to the
        bounding box of ``positions``.
    tol : float
        Absolute tolerance for "lies on the line".

    Returns
    -------
    ndarray (N,) of bool
        True for interior nodes.
    """
    positions = np.asarray(positions, dtype=np.float64)
    if boundary_x is None:
        boundary_x = (positions[:, 0].min(), positions[:, 0].max())
    if boundary_y is None:
        boundary_y = (positions[:, 1].min(), positions[:, 1].max())

    bx = np.asarray(boundary_x, dtype=np.float64)
    by = np.asarray(boundary_y, dtype=np.float64)
    on_x = np.any(np.abs(positions[:, [0]] - bx[None, :]) <= tol, axis=1)
    on_y = np.any(np.abs(positions[:, [1]] - by[None, :]) <= tol, axis=1)
    return ~(on_x | on_y)


class FEGrid:
    """
    Triangular finite element mesh.

    Owns the nodes and elements; element vertex ids index into the node
    sequence. Interior nodes receive dense ids (0, 1, ...) in the order given
    by ``order`` (node-file order when read from disk); these ids are the
    rows/columns of the assembled global matrix.

    The grid is immutable: build a new one to change the mesh.

    Parameters
    ----------
    positions : array_like (N, 2)
        Node coordinates.
    triangles : array_like (M, 3)
        0-based node ids of each triangle.
    is_interior : array_like (N,) of bool, optional
        Explicit classification. If omitted, nodes on ``boundary_x`` /
        ``boundary_y`` (bounding box by default) are boundary nodes.
    boundary_x, boundary_y : sequence of float, optional
        Boundary lines used when ``is_interior`` is not given.
    tol : float
        Tolerance for the boundary test.
    order : array_like (N,), optional
        Node ids in the order interior ids are handed out.
    """

    def __init__(
        self,
        positions: NDArray[np.float64],
        triangles: NDArray[np.int64],
        is_interior: NDArray[np.bool_] | None = None,
        boundary_x: Sequence[float] | None = None,
        boundary_y: Sequence[float] | None = None,
        tol: float = BOUNDARY_TOL,
        order: NDArray[np.int64] | None = None,
    ) -> None:
        positions = np.array(positions, dtype=np.float64)
        triangles = np.array(triangles, dtype=np.int64)

        if positions.ndim != 2 or positions.shape[1] != DIM or len(positions) == 0:
            raise ValueError(f"positions must have shape (N, {DIM}), got {positions.shape}")
        if triangles.ndim != 2 or triangles.shape[1] != VERTICES:
            raise ValueError(f"triangles must have shape (M, {VERTICES}), got {triangles.shape}")
        n_nodes = len(positions)
        bad = np.argwhere((triangles < 0) | (triangles >= n_nodes))
        if len(bad):
            e, k = bad[0]
            raise ValueError(
                f"Element {e} references node {triangles[e, k]} outside 0..{n_nodes - 1}"
            )

        if is_interior is None:
            is_interior = classify_interior(positions, boundary_x, boundary_y, tol)
        is_interior = np.asarray(is_interior, dtype=bool)
        if is_interior.shape != (n_nodes,):
            raise ValueError(f"is_interior must have shape ({n_nodes},), got {is_interior.shape}")

        if order is None:
            order = np.arange(n_nodes)
        order = np.asarray(order, dtype=np.int64)
        if not np.array_equal(np.sort(order), np.arange(n_nodes)):
            raise ValueError("order must be a permutation of the node ids")

        # Dense interior ids, handed out in `order`
        interior_ids = np.full(n_nodes, UNSET, dtype=np.int64)
        in_order = order[is_interior[order]]
        interior_ids[in_order] = np.arange(len(in_order))

        positions.setflags(write=False)
        triangles.setflags(write=False)
        interior_ids.setflags(write=False)
        self._positions = positions
        self._triangles = triangles
        self._interior_ids = interior_ids
        self._num_interior = len(in_order)

        self._nodes = tuple(
            Node(positions[i], bool(is_interior[i]), int(interior_ids[i]))
            for i in range(n_nodes)
        )
        self._elements = tuple(Element(tuple(t)) for t in triangles)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_files(
        cls,
        node_file: str | Path,
        element_file: str | Path,
        boundary_x: Sequence[float] | None = None,
        boundary_y: Sequence[float] | None = None,
        tol: float = BOUNDARY_TOL,
    ) -> FEGrid:
        """
        Read a mesh from a ``.node`` and an ``.elem`` file.

        Classification uses, in order of precedence: the explicit boundary
        lines, the boundary-marker column of the node file, the bounding box.
        """
        records = read_node_file(node_file)
        triangles = read_element_file(element_file)

        n_nodes = len(records.positions)
        bad = np.argwhere(triangles >= n_nodes)
        if len(bad):
            e, k = bad[0]
            raise MeshParseError(
                element_file,
                f"element {e + 1} references node {triangles[e, k] + 1}, "
                f"but only {n_nodes} nodes exist",
            )

        is_interior = None
        if boundary_x is None and boundary_y is None and records.markers is not None:
            is_interior = records.markers == 0

        grid = cls(
            records.positions,
            triangles,
            is_interior=is_interior,
            boundary_x=boundary_x,
            boundary_y=boundary_y,
            tol=tol,
            order=records.file_order,
        )
        log.info(
            f"Loaded {grid.num_nodes} nodes ({grid.num_interior_nodes} interior) "
            f"and {grid.num_elements} elements from {Path(node_file).name}, {Path(element_file).name}"
        )
        return grid

    @classmethod
    def from_prefix(cls, prefix: str | Path, **kwargs) -> FEGrid:
        """Read ``<prefix>.node`` and ``<prefix>.elem``."""
        prefix = str(prefix)
        return cls.from_files(f"{prefix}.node", f"{prefix}.elem", **kwargs)

    @classmethod
    def from_meshio(
        cls,
        mesh: meshio.Mesh | str | Path,
        boundary_x: Sequence[float] | None = None,
        boundary_y: Sequence[float] | None = None,
        tol: float = BOUNDARY_TOL,
        marker_key: str = "boundary_marker",
    ) -> FEGrid:
        """
        Create an FEGrid from a meshio mesh or any file meshio can read.

        Parameters
        ----------
        mesh : meshio.Mesh or str or Path
            Mesh object or path to a mesh file.
        boundary_x, boundary_y : sequence of float, optional
            Boundary lines; bounding box if omitted.
        tol : float
            Tolerance for boundary node detection.
        marker_key : str
            Point-data array holding per-node boundary markers (non-zero on
            the boundary). Used when no boundary lines are given.
        """
        import meshio as mio

        if isinstance(mesh, (str, Path)):
            mesh = mio.read(mesh)

        positions = mesh.points[:, :DIM].astype(np.float64)

        triangles = None
        for cell_block in mesh.cells:
            if cell_block.type == "triangle":
                triangles = cell_block.data.astype(np.int64)
                break
        if triangles is None:
            raise ValueError("No triangle cells found in mesh")

        is_interior = None
        if boundary_x is None and boundary_y is None and marker_key in mesh.point_data:
            is_interior = np.asarray(mesh.point_data[marker_key]).ravel() == 0

        return cls(
            positions,
            triangles,
            is_interior=is_interior,
            boundary_x=boundary_x,
            boundary_y=boundary_y,
            tol=tol,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nodes={self.num_nodes}, "
            f"interior={self.num_interior_nodes}, elements={self.num_elements})"
        )

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    @property
    def num_elements(self) -> int:
        return len(self._elements)

    @property
    def num_interior_nodes(self) -> int:
        return self._num_interior

    @property
    def positions(self) -> NDArray[np.float64]:
        """Read-only (N, 2) node coordinates."""
        return self._positions

    @property
    def triangles(self) -> NDArray[np.int64]:
        """Read-only (M, 3) 0-based connectivity."""
        return self._triangles

    @property
    def interior_ids(self) -> NDArray[np.int64]:
        """Read-only (N,) interior id per node, -1 on the boundary."""
        return self._interior_ids

    @staticmethod
    def _check_index(i: int, n: int, what: str) -> int:
        if not 0 <= i < n:
            raise IndexError(f"{what} index {i} out of range [0, {n})")
        return i

    def node(self, i: int) -> Node:
        return self._nodes[self._check_index(i, self.num_nodes, "Node")]

    def element(self, i: int) -> Element:
        return self._elements[self._check_index(i, self.num_elements, "Element")]

    def get_node(self, elt_number: int, local_node_number: int) -> Node:
        """Node at local vertex ``local_node_number`` of element ``elt_number``."""
        return self._nodes[self.element(elt_number)[local_node_number]]

    # ------------------------------------------------------------------
    # Element geometry
    # ------------------------------------------------------------------
    def _edges(self, elt_number: int, local_node_number: int):
        """Edge vectors from a vertex to the next two vertices (cyclic)."""
        e = self.element(elt_number)
        base = self._positions[e[local_node_number]]
        e0 = self._positions[e[(local_node_number + 1) % VERTICES]] - base
        e1 = self._positions[e[(local_node_number + 2) % VERTICES]] - base
        return e0, e1

    def gradient(self, elt_number: int, local_node_number: int) -> NDArray[np.float64]:
        """
        Gradient of the linear shape function of one triangle vertex.

        With edge vectors ``e0``, ``e1`` from the vertex to the other two
        vertices and ``det = e0 x e1`` (twice the signed area)::

            grad = (-(e1.y - e0.y) / det, (e1.x - e0.x) / det)

        Raises
        ------
        DegenerateElementError
            If the triangle has (numerically) zero area.
        """
        e0, e1 = self._edges(elt_number, local_node_number)
        det = e0[0] * e1[1] - e1[0] * e0[1]

        scale = np.linalg.norm(e0) * np.linalg.norm(e1)
        if scale == 0.0 or abs(det) <= DEGENERATE_TOL * scale:
            raise DegenerateElementError(elt_number, float(det))

        return np.array([-(e1[1] - e0[1]) / det, (e1[0] - e0[0]) / det])

    def element_area(self, elt_number: int) -> float:
        """Area of a triangle: half the absolute determinant of vertex 0's edges."""
        e0, e1 = self._edges(elt_number, 0)
        return abs(e0[0] * e1[1] - e1[0] * e0[1]) / 2
