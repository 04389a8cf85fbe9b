"""Errors raised while reading meshes and evaluating element geometry."""

from __future__ import annotations

from pathlib import Path


class MeshParseError(ValueError):
    """A node or element file could not be parsed."""

    def __init__(self, path: str | Path, message: str, line: int | None = None):
        self.path = Path(path)
        self.line = line
        where = f"{self.path}:{line}" if line is not None else str(self.path)
        super().__init__(f"{where}: {message}")


class DegenerateElementError(ArithmeticError):
    """Triangle with (numerically) zero area."""

    def __init__(self, element: int, det: float):
        self.element = element
        self.det = det
        super().__init__(f"Element {element} is degenerate (det={det:.3e})")
