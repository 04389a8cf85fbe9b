"""Scalar field on a uniform 1D grid with an explicit diffusion update."""

from __future__ import annotations

import numpy as np
from numba import njit
from numpy.typing import NDArray


def initial_profile(x: NDArray[np.float64], length: float) -> NDArray[np.float64]:
    """
    f(x) = x * sqrt((L - x)^3).

    ``L - x`` is clipped at zero, so points at or beyond ``L`` give 0.
    """
    x = np.asarray(x, dtype=np.float64)
    r = np.clip(length - x, 0.0, None)
    return x * np.sqrt(r) * r


@njit
def _ftcs_step(values, r):
    """One forward-time central-space step; end points are copied unchanged."""
    n = len(values)
    new_values = values.copy()
    for i in range(1, n - 1):
        new_values[i] = values[i] + r * (values[i - 1] - 2.0 * values[i] + values[i + 1])
    return new_values


class GridFn:
    """
    Discretized scalar field u(x) at x_i = i * dx, i = 0 .. floor(L/dx) + 1.

    Starts from :func:`initial_profile` with both end values pinned to 0 and
    is advanced in place by :meth:`update`. The number of points never
    changes after construction.
    """

    def __init__(self, length: float, delta: float):
        if not (np.isfinite(length) and length > 0):
            raise ValueError(f"Length must be positive and finite, got {length}")
        if not (np.isfinite(delta) and delta > 0):
            raise ValueError(f"Step size must be positive and finite, got {delta}")
        self.length = float(length)
        self.delta = float(delta)
        self._values = np.empty(0)
        self.initialize()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(length={self.length}, delta={self.delta}, size={self.size})"

    def initialize(self) -> None:
        """Reset values to the initial profile with zero end values."""
        n = int(self.length / self.delta) + 2
        values = initial_profile(self.coordinates_for(n), self.length)
        values[0] = 0.0
        values[-1] = 0.0
        self._values = values

    def coordinates_for(self, n: int) -> NDArray[np.float64]:
        return np.arange(n) * self.delta

    @property
    def size(self) -> int:
        return len(self._values)

    @property
    def values(self) -> NDArray[np.float64]:
        """Copy of the current values."""
        return self._values.copy()

    @property
    def coordinates(self) -> NDArray[np.float64]:
        """x_i = i * dx for every value."""
        return self.coordinates_for(self.size)

    def stability_number(self, alpha: float, dt: float) -> float:
        """alpha * dt / dx^2; the explicit scheme needs this <= 1/2."""
        return alpha * dt / (self.delta * self.delta)

    def update(self, alpha: float, dt: float) -> None:
        """
        Advance one explicit step of u_t = alpha * u_xx.

        u_i <- u_i + alpha * dt / dx^2 * (u_{i-1} - 2 u_i + u_{i+1}) for the
        interior points; the end points keep their values. The new array
        replaces the old one only after it is complete. Stability is not
        checked here.
        """
        self._values = _ftcs_step(self._values, self.stability_number(alpha, dt))
