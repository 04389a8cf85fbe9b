"""Data structures for heat-equation configuration and results.

             Params (input/config)         Metrics (output/results)
             ─────────────────────         ────────────────────────
Global       HeatParameters                Metrics
             length, dx, dt, alpha...      steps, converged, wall_time...

Timeseries   -                             TimeSeries
                                           step[], max_error[], values[]
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List

import numpy as np
import pandas as pd

# Explicit FTCS scheme is stable for alpha * dt / dx^2 <= 1/2
STABILITY_LIMIT = 0.5

# Convergence threshold on max |u^{n+1} - u^n|
DEFAULT_TOLERANCE = 1e-6


class SolutionState(Enum):
    CONSTRUCTED = "constructed"
    STEPPING = "stepping"
    CONVERGED = "converged"
    STEP_BUDGET_EXHAUSTED = "step_budget_exhausted"
    DIVERGED = "diverged"


# ============================================================================
# Parameters (Input Configuration)
# ============================================================================


@dataclass
class HeatParameters:
    """Heat-equation run configuration."""

    length: float = 1.0
    dx: float = 0.1
    dt: float = 0.001
    alpha: float = 1.0
    max_steps: int = 100
    tolerance: float = DEFAULT_TOLERANCE
    monitor_instability: bool = False
    divergence_factor: float = 1e6

    def __post_init__(self):
        for name in ("length", "dx", "dt", "alpha", "tolerance", "divergence_factor"):
            value = getattr(self, name)
            if not (np.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be positive and finite, got {value}")
        if not np.isfinite(self.max_steps):
            raise ValueError(f"max_steps must be finite, got {self.max_steps}")
        if int(self.max_steps) != self.max_steps or self.max_steps <= 0:
            raise ValueError(f"max_steps must be a positive integer, got {self.max_steps}")
        self.max_steps = int(self.max_steps)

    @property
    def stability_number(self) -> float:
        """alpha * dt / dx^2."""
        return self.alpha * self.dt / (self.dx * self.dx)

    @property
    def is_stable(self) -> bool:
        return self.stability_number <= STABILITY_LIMIT

    def to_dict(self) -> dict:
        return asdict(self)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()])


# ============================================================================
# Metrics (Output Results)
# ============================================================================


@dataclass
class Metrics:
    """Outcome of one simulation run."""

    steps: int = 0
    converged: bool = False
    final_max_error: float = float("inf")
    wall_time_seconds: float = 0.0
    state: SolutionState = SolutionState.CONSTRUCTED

    def to_dict(self) -> dict:
        return {
            "steps": self.steps,
            "converged": int(self.converged),
            "final_max_error": self.final_max_error,
            "wall_time_seconds": self.wall_time_seconds,
            "state": self.state.value,
        }

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()])


# ============================================================================
# TimeSeries (Per-step history)
# ============================================================================


@dataclass(frozen=True)
class StepObservation:
    """What one time step reports: index, max pointwise change, field values."""

    step: int
    max_error: float
    values: np.ndarray


@dataclass
class TimeSeries:
    """Per-step history (one entry per completed step)."""

    step: List[int] = field(default_factory=list)
    max_error: List[float] = field(default_factory=list)
    values: List[np.ndarray] = field(default_factory=list)

    def append(self, obs: StepObservation) -> None:
        self.step.append(obs.step)
        self.max_error.append(obs.max_error)
        self.values.append(obs.values)

    def __len__(self) -> int:
        return len(self.step)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per step: step, max_error, u_0 ... u_{n-1}."""
        df = pd.DataFrame({"step": self.step, "max_error": self.max_error})
        if self.values:
            values = np.vstack(self.values)
            cols = pd.DataFrame(values, columns=[f"u_{i}" for i in range(values.shape[1])])
            df = pd.concat([df, cols], axis=1)
        return df
