"""Explicit finite-difference heat-equation solver.

Solution (time stepping, convergence test)
├── RDomain (uniform grid over [0, L]^2, binary grid dump)
└── GridFn  (1D field with FTCS update)
"""

from .datastructures import (
    HeatParameters,
    Metrics,
    TimeSeries,
    StepObservation,
    SolutionState,
    STABILITY_LIMIT,
    DEFAULT_TOLERANCE,
)
from .domain import Domain, RDomain, load_grid
from .gridfn import GridFn, initial_profile
from .solution import Solution, InstabilityError

__all__ = [
    "HeatParameters",
    "Metrics",
    "TimeSeries",
    "StepObservation",
    "SolutionState",
    "STABILITY_LIMIT",
    "DEFAULT_TOLERANCE",
    "Domain",
    "RDomain",
    "load_grid",
    "GridFn",
    "initial_profile",
    "Solution",
    "InstabilityError",
]
