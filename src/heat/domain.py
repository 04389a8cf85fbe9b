"""Structured grids over a square domain [0, L] x [0, L]."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
import logging

import numpy as np
from numpy.typing import NDArray

log = logging.getLogger(__name__)


class Domain(ABC):
    """Discretized spatial domain that can be written to disk."""

    @abstractmethod
    def print_grid(self, output_file: str | Path) -> Path:
        """Write the grid coordinates to ``output_file``."""


class RDomain(Domain):
    """
    Uniform grid over the square [0, L] x [0, L].

    Points are 0, dx, 2dx, ... up to the largest multiple of ``dx`` not
    exceeding ``L``; ``L`` itself is always the last point, so the final
    interval is shorter than ``dx`` when ``L`` is not a multiple of it.
    """

    def __init__(self, length: float, delta: float):
        if not (np.isfinite(length) and length > 0):
            raise ValueError(f"Domain length must be positive and finite, got {length}")
        if not (np.isfinite(delta) and delta > 0):
            raise ValueError(f"Step size must be positive and finite, got {delta}")
        self._length = float(length)
        self._delta = float(delta)
        self.x: NDArray[np.float64] = np.empty(0)
        self.y: NDArray[np.float64] = np.empty(0)
        self.generate_grid()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(length={self._length}, delta={self._delta}, points={self.num_points})"

    @property
    def length(self) -> float:
        return self._length

    @property
    def delta(self) -> float:
        return self._delta

    @property
    def num_points(self) -> int:
        return len(self.x)

    def generate_grid(self) -> None:
        """(Re)build the x and y coordinates from the current length and spacing."""
        n = int(np.floor(self._length / self._delta)) + 1
        x = np.arange(n) * self._delta
        x = x[x <= self._length]

        if np.isclose(x[-1], self._length, rtol=1e-12, atol=0.0):
            x[-1] = self._length
        else:
            x = np.append(x, self._length)

        self.x = x
        # Square domain: y-coordinates identical to x-coordinates
        self.y = x.copy()
        log.debug(f"Generated {len(x)} grid points on [0, {self._length}] with dx={self._delta}")

    def set_step_size(self, dx: float) -> None:
        if not (np.isfinite(dx) and dx > 0):
            raise ValueError(f"Step size must be positive and finite, got {dx}")
        self._delta = float(dx)
        self.generate_grid()

    def print_grid(self, output_file: str | Path) -> Path:
        """Write x then y as raw float64 values, no header."""
        path = Path(output_file)
        with open(path, "wb") as fh:
            self.x.astype(np.float64).tofile(fh)
            self.y.astype(np.float64).tofile(fh)
        log.info(f"Wrote {self.num_points}x2 grid coordinates to {path}")
        return path


def load_grid(path: str | Path) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Read a grid written by :meth:`RDomain.print_grid` back as (x, y)."""
    data = np.fromfile(path, dtype=np.float64)
    if len(data) % 2:
        raise ValueError(f"{path}: odd number of values ({len(data)}), not an x/y grid dump")
    half = len(data) // 2
    return data[:half], data[half:]
