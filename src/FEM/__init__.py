"""FEM package for 2D linear triangular finite elements.

Builds the global stiffness matrix of a Poisson-type operator over the
interior nodes of an unstructured triangular mesh.

Main components:
- Node, Element: mesh data holders
- FEGrid: mesh with boundary classification, shape-function gradients, areas
- assemble_stiffness: dense global matrix over interior nodes
- read_node_file, read_element_file: .node / .elem readers
"""

from .datastructures import (
    Node,
    Element,
    DIM,
    VERTICES,
    UNSET,
    BOUNDARY_TOL,
    BENCHMARK_BOUNDARY_X,
    BENCHMARK_BOUNDARY_Y,
)
from .exceptions import MeshParseError, DegenerateElementError
from .mesh_io import (
    NodeRecords,
    read_node_file,
    read_element_file,
    write_node_file,
    write_element_file,
)
from .mesh import FEGrid, classify_interior
from .assembly import (
    K,
    material_matrix,
    element_stiffness,
    assemble_stiffness,
    assemble_stiffness_csr,
    matrix_bandwidth,
    matrix_structure,
    save_global_matrix,
)

__all__ = [
    # Mesh
    "Node",
    "Element",
    "FEGrid",
    "classify_interior",
    "DIM",
    "VERTICES",
    "UNSET",
    "BOUNDARY_TOL",
    "BENCHMARK_BOUNDARY_X",
    "BENCHMARK_BOUNDARY_Y",
    # Errors
    "MeshParseError",
    "DegenerateElementError",
    # I/O
    "NodeRecords",
    "read_node_file",
    "read_element_file",
    "write_node_file",
    "write_element_file",
    # Assembly
    "K",
    "material_matrix",
    "element_stiffness",
    "assemble_stiffness",
    "assemble_stiffness_csr",
    "matrix_bandwidth",
    "matrix_structure",
    "save_global_matrix",
]
