"""
Configuration-driven entry point for both pipelines.

Usage:
    python main.py task=heat heat.length=1.0 heat.dt=0.001 heat.dx=0.1
    python main.py task=stiffness stiffness.prefix=meshes/coarse
    python main.py -m task=heat heat.dx=0.1,0.05,0.025
"""

import logging
import sys
from pathlib import Path

import hydra
from hydra.core.hydra_config import HydraConfig
from omegaconf import DictConfig, OmegaConf

sys.path.insert(0, str(Path(__file__).parent / "src"))

from FEM import FEGrid, assemble_stiffness, matrix_bandwidth, matrix_structure, save_global_matrix  # noqa: E402
from heat import HeatParameters, Solution  # noqa: E402

log = logging.getLogger(__name__)


def output_dir() -> Path:
    return Path(HydraConfig.get().runtime.output_dir)


def run_heat(cfg: DictConfig) -> dict:
    """Run the explicit heat solver and store its history in the output dir."""
    params = HeatParameters(**OmegaConf.to_container(cfg.heat, resolve=True))
    log.info(f"Heat run: L={params.length}, dx={params.dx}, dt={params.dt}, alpha={params.alpha}")

    solver = Solution.from_parameters(params)
    metrics = solver.simulate()

    out = output_dir()
    solver.time_series.to_dataframe().to_csv(out / "history.csv", index=False)
    metrics.to_dataframe().to_csv(out / "metrics.csv", index=False)
    if cfg.output.grid:
        solver.domain.print_grid(out / "grid.bin")
    if cfg.output.plots:
        from FEM.plot_style import save_figure
        from heat.plotting import plot_history, plot_profile

        fig, _ = plot_profile(solver.coordinates, solver.values, length=params.length)
        save_figure(fig, out / "profile.png")
        fig, _ = plot_history(solver.time_series, tolerance=params.tolerance)
        save_figure(fig, out / "history.png")

    log.info(f"Done: {metrics.steps} steps, converged={metrics.converged}, time={metrics.wall_time_seconds:.2f}s")
    return metrics.to_dict()


def run_stiffness(cfg: DictConfig) -> dict:
    """Assemble the global stiffness matrix for a .node/.elem mesh."""
    s = cfg.stiffness
    prefix = hydra.utils.to_absolute_path(s.prefix)
    grid = FEGrid.from_prefix(
        prefix,
        boundary_x=list(s.boundary_x) if s.boundary_x is not None else None,
        boundary_y=list(s.boundary_y) if s.boundary_y is not None else None,
        tol=s.tol,
    )

    out = output_dir()
    globalK = assemble_stiffness(
        grid,
        k=s.k,
        dump_path=out / "kijdump.bin" if cfg.output.partials else None,
        area_weighted=s.area_weighted,
    )
    lower, upper = matrix_bandwidth(globalK)
    structure = matrix_structure(globalK)
    log.info(f"Structure: {structure}, lower bandwidth {lower}, upper bandwidth {upper}")

    if cfg.output.matrix:
        save_global_matrix(globalK, out / "GlobalKMatrixFile.txt")
    if cfg.output.plots:
        from FEM.plot_style import plot_sparsity, save_figure

        fig, _ = plot_sparsity(globalK)
        save_figure(fig, out / "sparsity.png")

    return {
        "interior_nodes": grid.num_interior_nodes,
        "structure": structure,
        "lower_bandwidth": lower,
        "upper_bandwidth": upper,
    }


@hydra.main(config_path="conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> dict:
    """Dispatch on ``cfg.task``."""
    log.info(f"Task: {cfg.task}")
    if cfg.task == "heat":
        return run_heat(cfg)
    elif cfg.task == "stiffness":
        return run_stiffness(cfg)
    else:
        raise ValueError(f"Unknown task: {cfg.task}")


if __name__ == "__main__":
    main()
