from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

# Spatial dimension and vertices per element (P1 triangles)
DIM = 2
VERTICES = 3

# Tolerance for boundary node detection (floating-point comparison)
BOUNDARY_TOL = 1e-10

# Tolerance below which |det| marks a triangle as degenerate
DEGENERATE_TOL = 1e-14

# Boundary lines of the rectangular benchmark mesh [0, 0.6] x [0, 0.4]
BENCHMARK_BOUNDARY_X = (0.0, 0.6)
BENCHMARK_BOUNDARY_Y = (0.0, 0.4)

# Sentinel for "no vertex" / "no interior id"
UNSET = -1


@dataclass(frozen=True, eq=False)
class Node:
    """Mesh node: position, interior/boundary flag and dense interior id.

    ``interior_id`` is the row/column of the node in the assembled global
    matrix; boundary nodes carry ``UNSET``.
    """

    position: NDArray[np.float64] = field(
        default_factory=lambda: np.full(DIM, np.finfo(np.float64).max)
    )
    is_interior: bool = True
    interior_id: int = UNSET

    def __post_init__(self) -> None:
        position = np.array(self.position, dtype=np.float64)
        if position.shape != (DIM,):
            raise ValueError(f"Node position must have {DIM} components, got {position.shape}")
        position.setflags(write=False)
        object.__setattr__(self, "position", position)
        if not self.is_interior and self.interior_id != UNSET:
            raise ValueError(f"Boundary node cannot carry interior id {self.interior_id}")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(position={self.position.tolist()}, "
            f"is_interior={self.is_interior}, interior_id={self.interior_id})"
        )

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])


@dataclass(frozen=True)
class Element:
    """Triangle given by three 0-based global node ids (local 0, 1, 2)."""

    vertices: tuple[int, int, int] = (UNSET, UNSET, UNSET)

    def __post_init__(self) -> None:
        vertices = tuple(int(v) for v in self.vertices)
        if len(vertices) != VERTICES:
            raise ValueError(f"Element needs {VERTICES} vertices, got {len(vertices)}")
        object.__setattr__(self, "vertices", vertices)

    def __getitem__(self, local_node_number: int) -> int:
        if not 0 <= local_node_number < VERTICES:
            raise IndexError(
                f"Local node number {local_node_number} out of range [0, {VERTICES})"
            )
        return self.vertices[local_node_number]

    def __iter__(self):
        return iter(self.vertices)

    def __len__(self) -> int:
        return VERTICES

    @property
    def is_valid(self) -> bool:
        return all(v != UNSET for v in self.vertices)
