from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np

from FEM.plot_style import setup_style

from .datastructures import TimeSeries
from .gridfn import initial_profile


def plot_profile(x, u, length: float | None = None, title: str = "Temperature profile"):
    """Final field u(x), with the initial profile for reference when ``length`` is given."""
    setup_style()
    fig, ax = plt.subplots(figsize=(6, 4))
    if length is not None:
        xs = np.linspace(0.0, length, 200)
        ax.plot(xs, initial_profile(xs, length), "--", color="gray", label="initial")
    ax.plot(x, u, "o-", label="final")
    ax.set_xlabel("x")
    ax.set_ylabel("u")
    ax.set_title(title)
    ax.legend()
    return fig, ax


def plot_history(time_series: TimeSeries, tolerance: float | None = None):
    """Max pointwise change per step on a log scale."""
    setup_style()
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.semilogy(time_series.step, time_series.max_error)
    if tolerance is not None:
        ax.axhline(tolerance, color="red", linestyle=":", label="tolerance")
        ax.legend()
    ax.set_xlabel("step")
    ax.set_ylabel(r"max $|u^{n+1} - u^n|$")
    ax.set_title("Convergence history")
    return fig, ax
