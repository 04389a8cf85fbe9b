from __future__ import annotations

from pathlib import Path
import logging

import matplotlib.pyplot as plt
import numpy as np
from scipy.sparse import issparse

log = logging.getLogger(__name__)

STYLE_PATH = Path(__file__).resolve().parent / "fem.mplstyle"


def setup_style():
    """Apply shared matplotlib style."""
    if STYLE_PATH.exists():
        plt.style.use(STYLE_PATH)
    plt.rcParams["savefig.bbox"] = "tight"


def save_figure(fig, filename: str | Path):
    """Save figure, creating parent directories; closes the figure."""
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(filepath, bbox_inches="tight")
    plt.close(fig)
    log.info(f"Saved: {filepath}")
    return filepath


def plot_sparsity(A, title: str = "Global stiffness matrix", markersize: float = 2.0):
    """Spy plot of a dense or sparse matrix. Returns (fig, ax)."""
    setup_style()
    fig, ax = plt.subplots(figsize=(5, 5))
    ax.spy(A if issparse(A) else np.asarray(A), markersize=markersize)
    ax.set_title(title)
    ax.set_xlabel("column (interior id)")
    ax.set_ylabel("row (interior id)")
    return fig, ax
