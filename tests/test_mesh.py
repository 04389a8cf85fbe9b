"""Tests for the triangular mesh: data holders, readers, classification, geometry.

Run with: pytest tests/test_mesh.py -v
"""

import meshio
import numpy as np
import pytest

from FEM import (
    BENCHMARK_BOUNDARY_X,
    BENCHMARK_BOUNDARY_Y,
    UNSET,
    DegenerateElementError,
    Element,
    FEGrid,
    MeshParseError,
    Node,
    classify_interior,
    read_element_file,
    read_node_file,
)

from conftest import structured_mesh


class TestNodeElement:
    """Leaf data holders."""

    def test_default_element_is_invalid(self):
        e = Element()
        assert e.vertices == (-1, -1, -1)
        assert not e.is_valid

    def test_element_indexing(self):
        e = Element((4, 7, 9))
        assert [e[0], e[1], e[2]] == [4, 7, 9]
        assert list(e) == [4, 7, 9]
        assert e.is_valid

    @pytest.mark.parametrize("local", [3, -1])
    def test_element_index_out_of_range(self, local):
        with pytest.raises(IndexError):
            Element((0, 1, 2))[local]

    def test_element_needs_three_vertices(self):
        with pytest.raises(ValueError):
            Element((0, 1))

    def test_node_coordinates(self):
        n = Node([0.3, 0.2], is_interior=True, interior_id=5)
        assert n.x == 0.3 and n.y == 0.2
        assert n.interior_id == 5

    def test_node_position_is_read_only(self):
        n = Node([0.3, 0.2])
        with pytest.raises(ValueError):
            n.position[0] = 1.0

    def test_boundary_node_cannot_have_interior_id(self):
        with pytest.raises(ValueError):
            Node([0.0, 0.0], is_interior=False, interior_id=3)


class TestReaders:
    """.node / .elem parsing."""

    def test_plain_files(self, benchmark_prefix):
        records = read_node_file(f"{benchmark_prefix}.node")
        triangles = read_element_file(f"{benchmark_prefix}.elem")

        assert records.positions.shape == (25, 2)
        assert records.markers is None
        assert np.allclose(records.positions[4], [0.6, 0.0])
        assert np.array_equal(records.file_order, np.arange(25))
        # 1-based on disk, 0-based in memory
        assert triangles.shape == (32, 3)
        assert triangles.min() == 0 and triangles.max() == 24
        assert list(triangles[0]) == [0, 1, 6]

    def test_triangle_format_with_markers(self, tmp_path):
        node_file = tmp_path / "square.node"
        node_file.write_text(
            "# unit square with centre node\n"
            "5 2 1 1\n"
            "1 0.0 0.0 7.5 1\n"
            "2 1.0 0.0 7.5 1\n"
            "3 1.0 1.0 7.5 1\n"
            "4 0.0 1.0 7.5 1\n"
            "5 0.5 0.5 7.5 0  # centre\n"
        )
        ele_file = tmp_path / "square.elem"
        ele_file.write_text(
            "4 3 0\n"
            "1 1 2 5\n"
            "2 2 3 5\n"
            "3 3 4 5\n"
            "4 4 1 5\n"
        )
        records = read_node_file(node_file)
        assert list(records.markers) == [1, 1, 1, 1, 0]

        grid = FEGrid.from_files(node_file, ele_file)
        assert grid.num_interior_nodes == 1
        assert grid.node(4).is_interior
        assert grid.node(4).interior_id == 0

    def test_non_numeric_coordinate(self, tmp_path):
        node_file = tmp_path / "bad.node"
        node_file.write_text("2\n1 0.0 0.0\n2 abc 1.0\n")
        with pytest.raises(MeshParseError) as excinfo:
            read_node_file(node_file)
        assert excinfo.value.line == 3
        assert "abc" in str(excinfo.value)

    def test_truncated_file(self, tmp_path):
        node_file = tmp_path / "short.node"
        node_file.write_text("3\n1 0.0 0.0\n2 1.0 0.0\n")
        with pytest.raises(MeshParseError, match="ends early"):
            read_node_file(node_file)

    def test_trailing_data(self, tmp_path):
        node_file = tmp_path / "long.node"
        node_file.write_text("1\n1 0.0 0.0\n2 1.0 0.0\n")
        with pytest.raises(MeshParseError, match="trailing"):
            read_node_file(node_file)

    @pytest.mark.parametrize("content", ["0\n", "", "-2\n1 0 0\n"])
    def test_bad_count(self, tmp_path, content):
        node_file = tmp_path / "count.node"
        node_file.write_text(content)
        with pytest.raises(MeshParseError):
            read_node_file(node_file)

    def test_duplicate_and_out_of_range_ids(self, tmp_path):
        dup = tmp_path / "dup.node"
        dup.write_text("2\n1 0.0 0.0\n1 1.0 0.0\n")
        with pytest.raises(MeshParseError, match="duplicate"):
            read_node_file(dup)

        out = tmp_path / "out.elem"
        out.write_text("1\n2 1 2 3\n")
        with pytest.raises(MeshParseError, match="outside"):
            read_element_file(out)

    def test_element_references_missing_node(self, tmp_path):
        node_file = tmp_path / "m.node"
        node_file.write_text("3\n1 0 0\n2 1 0\n3 0 1\n")
        ele_file = tmp_path / "m.elem"
        ele_file.write_text("1\n1 1 2 4\n")
        with pytest.raises(MeshParseError, match="only 3 nodes"):
            FEGrid.from_files(node_file, ele_file)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FEGrid.from_prefix(tmp_path / "nothing")

    def test_parse_error_is_value_error(self):
        assert issubclass(MeshParseError, ValueError)


class TestClassification:
    """Interior/boundary classification and interior ids."""

    def test_benchmark_counts(self, benchmark_grid):
        assert benchmark_grid.num_nodes == 25
        assert benchmark_grid.num_elements == 32
        assert benchmark_grid.num_interior_nodes == 9

    def test_interior_ids_contiguous(self, benchmark_grid):
        ids = [
            benchmark_grid.node(i).interior_id
            for i in range(benchmark_grid.num_nodes)
            if benchmark_grid.node(i).is_interior
        ]
        assert ids == list(range(benchmark_grid.num_interior_nodes))
        boundary = [
            benchmark_grid.node(i).interior_id
            for i in range(benchmark_grid.num_nodes)
            if not benchmark_grid.node(i).is_interior
        ]
        assert all(i == UNSET for i in boundary)

    def test_interior_nodes_are_off_the_boundary(self, benchmark_grid):
        for i in range(benchmark_grid.num_nodes):
            n = benchmark_grid.node(i)
            on_boundary = n.x in (0.0, 0.6) or n.y in (0.0, 0.4)
            assert n.is_interior != on_boundary

    def test_explicit_benchmark_lines_match_bounding_box(self, benchmark_prefix, benchmark_grid):
        explicit = FEGrid.from_prefix(
            benchmark_prefix,
            boundary_x=BENCHMARK_BOUNDARY_X,
            boundary_y=BENCHMARK_BOUNDARY_Y,
        )
        assert np.array_equal(explicit.interior_ids, benchmark_grid.interior_ids)

    def test_explicit_lines_take_precedence_over_markers(self, tmp_path):
        node_file = tmp_path / "marked.node"
        node_file.write_text(
            "5 2 0 1\n"
            "1 0.0 0.0 0\n"
            "2 1.0 0.0 0\n"
            "3 1.0 1.0 0\n"
            "4 0.0 1.0 0\n"
            "5 0.5 0.5 0\n"
        )
        ele_file = tmp_path / "marked.elem"
        ele_file.write_text("4\n1 1 2 5\n2 2 3 5\n3 3 4 5\n4 4 1 5\n")

        # Markers alone: every node is interior
        assert FEGrid.from_files(node_file, ele_file).num_interior_nodes == 5

        explicit = FEGrid.from_files(node_file, ele_file, boundary_x=(0.0, 1.0), boundary_y=(0.0, 1.0))
        assert explicit.num_interior_nodes == 1
        assert explicit.node(4).is_interior

        # One explicit family is enough; the other falls back to the bounding box
        x_only = FEGrid.from_files(node_file, ele_file, boundary_x=(0.0, 1.0))
        assert x_only.num_interior_nodes == 1

    def test_tolerance(self):
        positions = np.array([[0.6 + 1e-13, 0.2], [0.3, 0.2], [0.3, 0.4 - 1e-13]])
        interior = classify_interior(positions, (0.0, 0.6), (0.0, 0.4), tol=1e-10)
        assert list(interior) == [False, True, False]

        strict = classify_interior(positions, (0.0, 0.6), (0.0, 0.4), tol=0.0)
        assert list(strict) == [True, True, True]

    def test_ids_follow_file_order(self, tmp_path):
        positions, triangles = structured_mesh(4, 4, 0.6, 0.4)
        node_file = tmp_path / "rev.node"
        with open(node_file, "w") as fh:
            fh.write("25\n")
            for i in reversed(range(25)):
                fh.write(f"{i + 1} {positions[i, 0]:.5f} {positions[i, 1]:.5f}\n")
        ele_file = tmp_path / "rev.elem"
        with open(ele_file, "w") as fh:
            fh.write("32\n")
            for e, (a, b, c) in enumerate(triangles + 1, start=1):
                fh.write(f"{e} {a} {b} {c}\n")

        grid = FEGrid.from_files(node_file, ele_file)
        interior = [i for i in range(25) if grid.node(i).is_interior]
        # Last record in index order was first in the file
        assert grid.node(interior[-1]).interior_id == 0
        assert grid.node(interior[0]).interior_id == 8
        assert np.allclose(grid.positions, positions, atol=1e-5)

    def test_explicit_flags(self):
        positions, triangles = structured_mesh(2, 2, 1.0, 1.0)
        flags = np.zeros(9, dtype=bool)
        flags[[4, 5]] = True
        grid = FEGrid(positions, triangles, is_interior=flags)
        assert grid.num_interior_nodes == 2
        assert list(grid.interior_ids[[4, 5]]) == [0, 1]

    def test_invalid_connectivity(self):
        with pytest.raises(ValueError):
            FEGrid([[0, 0], [1, 0], [0, 1]], [[0, 1, 3]])
        with pytest.raises(ValueError):
            FEGrid([[0, 0], [1, 0], [0, 1]], [[0, 1]])

    @pytest.mark.parametrize("i", [25, -1])
    def test_accessors_bounds_checked(self, benchmark_grid, i):
        with pytest.raises(IndexError):
            benchmark_grid.node(i)
        with pytest.raises(IndexError):
            benchmark_grid.element(i + 7 if i > 0 else i)

    def test_get_node(self, benchmark_grid):
        e = benchmark_grid.element(0)
        assert benchmark_grid.get_node(0, 2) is benchmark_grid.node(e[2])
        with pytest.raises(IndexError):
            benchmark_grid.get_node(0, 3)

    def test_arrays_are_read_only(self, benchmark_grid):
        with pytest.raises(ValueError):
            benchmark_grid.positions[0, 0] = 1.0
        with pytest.raises(ValueError):
            benchmark_grid.interior_ids[0] = 3


class TestGeometry:
    """Shape-function gradients and element areas."""

    def test_right_triangle_gradients(self, right_triangle):
        assert np.allclose(right_triangle.gradient(0, 0), [-1.0, -1.0])
        assert np.allclose(right_triangle.gradient(0, 1), [1.0, 0.0])
        assert np.allclose(right_triangle.gradient(0, 2), [0.0, 1.0])
        assert right_triangle.element_area(0) == 0.5

    def test_gradient_identities(self):
        """Sum is zero, g_i . (x_j - x_i) = -1, |g_i| = |opposite edge| / (2 area)."""
        pts = np.array([[0.1, 0.2], [1.3, -0.4], [0.7, 1.1]])
        grid = FEGrid(pts, [[0, 1, 2]])
        area = grid.element_area(0)
        grads = np.array([grid.gradient(0, k) for k in range(3)])

        assert np.allclose(grads.sum(axis=0), 0.0, atol=1e-12)
        for i in range(3):
            for j in range(3):
                if i != j:
                    assert np.isclose(grads[i] @ (pts[j] - pts[i]), -1.0)
            opposite = pts[(i + 2) % 3] - pts[(i + 1) % 3]
            assert np.isclose(np.linalg.norm(grads[i]) * 2 * area, np.linalg.norm(opposite))

    def test_orientation_does_not_matter(self):
        ccw = FEGrid([[0, 0], [2, 0], [0, 1]], [[0, 1, 2]])
        cw = FEGrid([[0, 0], [2, 0], [0, 1]], [[0, 2, 1]])
        assert np.allclose(ccw.gradient(0, 0), cw.gradient(0, 0))
        assert np.allclose(ccw.gradient(0, 1), cw.gradient(0, 2))
        assert ccw.element_area(0) == cw.element_area(0) == 1.0

    def test_area_of_benchmark_cells(self, benchmark_grid):
        areas = [benchmark_grid.element_area(e) for e in range(benchmark_grid.num_elements)]
        assert np.allclose(areas, 0.15 * 0.1 / 2)
        assert np.isclose(sum(areas), 0.6 * 0.4)

    def test_degenerate_element(self):
        grid = FEGrid([[0, 0], [1, 1], [2, 2]], [[0, 1, 2]])
        with pytest.raises(DegenerateElementError) as excinfo:
            grid.gradient(0, 1)
        assert excinfo.value.element == 0
        assert grid.element_area(0) == 0.0

    def test_repeated_vertex_is_degenerate(self):
        grid = FEGrid([[0, 0], [1, 0]], [[0, 1, 1]])
        with pytest.raises(DegenerateElementError):
            grid.gradient(0, 0)


class TestMeshio:
    """Construction from meshio meshes."""

    @pytest.fixture
    def square_mesh(self):
        positions, triangles = structured_mesh(2, 2, 1.0, 1.0)
        points = np.column_stack([positions, np.zeros(len(positions))])
        return meshio.Mesh(points, [("triangle", triangles)])

    def test_from_meshio(self, square_mesh):
        grid = FEGrid.from_meshio(square_mesh)
        assert grid.num_nodes == 9
        assert grid.num_elements == 8
        assert grid.num_interior_nodes == 1
        assert grid.node(4).is_interior

    def test_marker_point_data(self, square_mesh):
        markers = np.ones(9, dtype=int)
        markers[[1, 4]] = 0
        square_mesh.point_data["boundary_marker"] = markers
        grid = FEGrid.from_meshio(square_mesh)
        assert grid.num_interior_nodes == 2
        assert grid.node(1).interior_id == 0

    def test_from_file(self, square_mesh, tmp_path):
        path = tmp_path / "square.vtk"
        square_mesh.write(path)
        grid = FEGrid.from_meshio(path)
        assert grid.num_elements == 8

    def test_no_triangles(self):
        mesh = meshio.Mesh(np.zeros((2, 3)), [("line", np.array([[0, 1]]))])
        with pytest.raises(ValueError, match="No triangle"):
            FEGrid.from_meshio(mesh)
