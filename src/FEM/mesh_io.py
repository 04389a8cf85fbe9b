"""Readers for ``.node`` / ``.elem`` mesh files.

Two layouts are accepted:

* plain: first token is the record count, then ``id x y`` (nodes) or
  ``id v0 v1 v2`` (elements);
* Triangle-style headers: ``N 2 n_attr n_markers`` for nodes and
  ``M 3 n_attr`` for elements, with the extra attribute / boundary-marker
  columns appended to each record.

Ids in the files are 1-based; everything returned here is 0-based.
``#`` starts a comment.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging

import numpy as np
from numpy.typing import NDArray

from .datastructures import DIM, VERTICES
from .exceptions import MeshParseError

log = logging.getLogger(__name__)


@dataclass
class NodeRecords:
    """Node data indexed by 0-based node id."""

    positions: NDArray[np.float64]  # (N, 2)
    file_order: NDArray[np.int64]  # node id of each record, in file order
    markers: NDArray[np.int64] | None = None  # boundary markers, if present


def _tokens(path: Path) -> list[tuple[str, int]]:
    """Return (token, line number) pairs with comments stripped."""
    tokens = []
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            for tok in line.split("#", 1)[0].split():
                tokens.append((tok, lineno))
    return tokens


def _first_line_width(tokens: list[tuple[str, int]]) -> int:
    first = tokens[0][1]
    return sum(1 for _, lineno in tokens if lineno == first)


def _as_int(path: Path, tok: tuple[str, int], what: str) -> int:
    try:
        return int(tok[0])
    except ValueError:
        raise MeshParseError(path, f"expected integer {what}, got {tok[0]!r}", tok[1]) from None


def _as_float(path: Path, tok: tuple[str, int], what: str) -> float:
    try:
        value = float(tok[0])
    except ValueError:
        raise MeshParseError(path, f"expected number {what}, got {tok[0]!r}", tok[1]) from None
    if not np.isfinite(value):
        raise MeshParseError(path, f"non-finite {what}: {tok[0]!r}", tok[1])
    return value


def _read_count(path: Path, tokens: list[tuple[str, int]], what: str) -> int:
    if not tokens:
        raise MeshParseError(path, f"empty {what} file")
    count = _as_int(path, tokens[0], f"{what} count")
    if count <= 0:
        raise MeshParseError(path, f"{what} count must be positive, got {count}", tokens[0][1])
    return count


def _records(path: Path, tokens, count: int, width: int, what: str):
    body = tokens
    if len(body) < count * width:
        last = body[-1][1] if body else None
        raise MeshParseError(
            path,
            f"expected {count} {what} records of {width} fields, file ends early",
            last,
        )
    if len(body) > count * width:
        extra = body[count * width]
        raise MeshParseError(path, f"unexpected trailing data {extra[0]!r}", extra[1])
    for i in range(count):
        yield body[i * width:(i + 1) * width]


def _check_id(path: Path, tok, count: int, seen: set[int], what: str) -> int:
    uid = _as_int(path, tok, f"{what} id")
    if not 1 <= uid <= count:
        raise MeshParseError(path, f"{what} id {uid} outside 1..{count}", tok[1])
    if uid in seen:
        raise MeshParseError(path, f"duplicate {what} id {uid}", tok[1])
    seen.add(uid)
    return uid - 1


def read_node_file(path: str | Path) -> NodeRecords:
    """Read a ``.node`` file."""
    path = Path(path)
    tokens = _tokens(path)
    count = _read_count(path, tokens, "node")

    n_attr, n_markers = 0, 0
    if _first_line_width(tokens) == 4:
        dim = _as_int(path, tokens[1], "dimension")
        if dim != DIM:
            raise MeshParseError(path, f"only {DIM}D meshes are supported, got {dim}", tokens[1][1])
        n_attr = _as_int(path, tokens[2], "attribute count")
        n_markers = _as_int(path, tokens[3], "boundary marker count")
        if n_attr < 0 or n_markers not in (0, 1):
            raise MeshParseError(path, "invalid Triangle node header", tokens[0][1])
        body = tokens[4:]
    else:
        body = tokens[1:]

    width = 1 + DIM + n_attr + n_markers
    positions = np.empty((count, DIM), dtype=np.float64)
    file_order = np.empty(count, dtype=np.int64)
    markers = np.zeros(count, dtype=np.int64) if n_markers else None
    seen: set[int] = set()

    for i, rec in enumerate(_records(path, body, count, width, "node")):
        idx = _check_id(path, rec[0], count, seen, "node")
        positions[idx, 0] = _as_float(path, rec[1], "x coordinate")
        positions[idx, 1] = _as_float(path, rec[2], "y coordinate")
        file_order[i] = idx
        if markers is not None:
            markers[idx] = _as_int(path, rec[-1], "boundary marker")

    log.debug(f"Read {count} nodes from {path}")
    return NodeRecords(positions=positions, file_order=file_order, markers=markers)


def read_element_file(path: str | Path) -> NDArray[np.int64]:
    """Read a ``.elem`` / ``.ele`` file. Returns 0-based connectivity (M, 3)."""
    path = Path(path)
    tokens = _tokens(path)
    count = _read_count(path, tokens, "element")

    n_attr = 0
    if _first_line_width(tokens) == 3:
        per_elem = _as_int(path, tokens[1], "nodes per element")
        if per_elem != VERTICES:
            raise MeshParseError(
                path, f"only {VERTICES}-node triangles are supported, got {per_elem}", tokens[1][1]
            )
        n_attr = _as_int(path, tokens[2], "attribute count")
        if n_attr < 0:
            raise MeshParseError(path, "invalid Triangle element header", tokens[0][1])
        body = tokens[3:]
    else:
        body = tokens[1:]

    width = 1 + VERTICES + n_attr
    triangles = np.empty((count, VERTICES), dtype=np.int64)
    seen: set[int] = set()

    for rec in _records(path, body, count, width, "element"):
        idx = _check_id(path, rec[0], count, seen, "element")
        for k in range(VERTICES):
            vertex = _as_int(path, rec[1 + k], "vertex id")
            if vertex < 1:
                raise MeshParseError(path, f"vertex id {vertex} must be >= 1", rec[1 + k][1])
            triangles[idx, k] = vertex - 1

    log.debug(f"Read {count} elements from {path}")
    return triangles


def write_node_file(path: str | Path, positions: NDArray[np.float64], fmt: str = "%.5f") -> None:
    """Write positions in the plain ``.node`` layout."""
    positions = np.asarray(positions, dtype=np.float64)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(f"{len(positions)}\n")
        for i, (x, y) in enumerate(positions, start=1):
            fh.write(f"{i} {fmt % x} {fmt % y}\n")


def write_element_file(path: str | Path, triangles: NDArray[np.int64]) -> None:
    """Write 0-based connectivity in the plain ``.elem`` layout (1-based on disk)."""
    triangles = np.asarray(triangles, dtype=np.int64)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(f"{len(triangles)}\n")
        for i, (a, b, c) in enumerate(triangles + 1, start=1):
            fh.write(f"{i} {a} {b} {c}\n")
