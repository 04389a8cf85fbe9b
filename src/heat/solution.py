"""Explicit time stepping of the 1D heat equation until steady state."""

from __future__ import annotations

from typing import Callable
import logging
import time

import numpy as np

from .datastructures import (
    DEFAULT_TOLERANCE,
    STABILITY_LIMIT,
    HeatParameters,
    Metrics,
    SolutionState,
    StepObservation,
    TimeSeries,
)
from .domain import RDomain
from .gridfn import GridFn

log = logging.getLogger(__name__)


class InstabilityError(RuntimeError):
    """Values blew up during monitored time stepping."""

    def __init__(self, step: int, max_abs: float, limit: float):
        self.step = step
        self.max_abs = max_abs
        self.limit = limit
        super().__init__(
            f"Solution diverged at step {step}: max |u| = {max_abs:.6e} exceeds {limit:.6e}"
        )


class Solution:
    """Heat-equation run: an RDomain and a GridFn over the same (length, dx).

    Handles:
    - Parameter validation (HeatParameters)
    - The step loop with max-change convergence test
    - Per-step observations (log, TimeSeries, optional callback)
    - Optional divergence monitoring

    A Solution runs once: CONSTRUCTED -> STEPPING -> CONVERGED or
    STEP_BUDGET_EXHAUSTED (or DIVERGED when monitoring trips).
    """

    def __init__(
        self,
        length: float,
        delta: float,
        dt: float,
        alpha: float = 1.0,
        max_steps: int = 100,
        tolerance: float = DEFAULT_TOLERANCE,
        monitor_instability: bool = False,
        divergence_factor: float = 1e6,
    ):
        self.params = HeatParameters(
            length=length,
            dx=delta,
            dt=dt,
            alpha=alpha,
            max_steps=max_steps,
            tolerance=tolerance,
            monitor_instability=monitor_instability,
            divergence_factor=divergence_factor,
        )
        self.domain = RDomain(length, delta)
        self.grid_function = GridFn(length, delta)
        self.state = SolutionState.CONSTRUCTED
        self.metrics = Metrics()
        self.time_series = TimeSeries()

        r = self.params.stability_number
        if r > STABILITY_LIMIT:
            log.warning(
                f"alpha*dt/dx^2 = {r:.4g} exceeds {STABILITY_LIMIT}; explicit scheme may diverge"
            )

    @classmethod
    def from_parameters(cls, params: HeatParameters) -> Solution:
        return cls(
            length=params.length,
            delta=params.dx,
            dt=params.dt,
            alpha=params.alpha,
            max_steps=params.max_steps,
            tolerance=params.tolerance,
            monitor_instability=params.monitor_instability,
            divergence_factor=params.divergence_factor,
        )

    @property
    def values(self) -> np.ndarray:
        return self.grid_function.values

    @property
    def coordinates(self) -> np.ndarray:
        return self.grid_function.coordinates

    def step(self, step: int) -> StepObservation:
        """Advance one time step and return its observation."""
        previous = self.grid_function.values
        self.grid_function.update(self.params.alpha, self.params.dt)
        current = self.grid_function.values
        max_error = float(np.max(np.abs(current - previous)))
        return StepObservation(step=step, max_error=max_error, values=current)

    def _check_divergence(self, obs: StepObservation, limit: float) -> None:
        max_abs = float(np.max(np.abs(obs.values)))
        if not np.isfinite(max_abs) or max_abs > limit:
            self.state = SolutionState.DIVERGED
            raise InstabilityError(obs.step, max_abs, limit)

    def simulate(
        self, callback: Callable[[StepObservation], None] | None = None
    ) -> Metrics:
        """
        Step until max |u^{n+1} - u^n| < tolerance or the step budget is spent.

        Parameters
        ----------
        callback : callable, optional
            Called with every StepObservation.

        Returns
        -------
        Metrics
            ``converged`` and ``state`` tell the two outcomes apart.

        Raises
        ------
        InstabilityError
            Only with ``monitor_instability``: values became non-finite or
            grew beyond ``divergence_factor`` times the initial maximum.
        """
        if self.state is not SolutionState.CONSTRUCTED:
            raise RuntimeError(f"Solution already run (state={self.state.value})")

        p = self.params
        self.state = SolutionState.STEPPING
        log.info(f"Number of grid points: {self.grid_function.size}")

        initial_max = float(np.max(np.abs(self.grid_function.values)))
        limit = p.divergence_factor * max(initial_max, np.finfo(np.float64).tiny)

        time_start = time.time()
        max_error = float("inf")
        steps = 0
        for step in range(p.max_steps):
            obs = self.step(step)
            steps = step + 1
            max_error = obs.max_error

            self.time_series.append(obs)
            log.info(f"step {step} max error= {max_error:.6e}")
            log.debug(f"step {step} values: {obs.values.tolist()}")
            if callback is not None:
                callback(obs)

            if p.monitor_instability:
                self._check_divergence(obs, limit)

            if max_error < p.tolerance:
                self.state = SolutionState.CONVERGED
                log.info(
                    f"Solution converged after {steps} steps: "
                    f"x={self.coordinates.tolist()}, u={obs.values.tolist()}"
                )
                break
        else:
            self.state = SolutionState.STEP_BUDGET_EXHAUSTED
            log.info(f"Step budget of {p.max_steps} exhausted, max error= {max_error:.6e}")

        self.metrics = Metrics(
            steps=steps,
            converged=self.state is SolutionState.CONVERGED,
            final_max_error=max_error,
            wall_time_seconds=time.time() - time_start,
            state=self.state,
        )
        return self.metrics
