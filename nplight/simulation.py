# -*- coding: utf-8 -*-
"""Diagnostic driver: mixed layer -> light/growth -> NP tendencies -> NetCDF."""

# Import typing primitives.
from typing import Any, Dict

# Import timing helper.
from time import perf_counter

# Import logging.
import logging

# Import numpy.
import numpy as np

# Import local modules.
from .biology import NPParameters, compute_np_tendencies, growth_function_from_params, light_function_from_params
from .fields import center_field, column_field
from .grid import RectilinearGrid, build_grid
from .initial_conditions import initial_state
from .io_netcdf import STATE_VARS, load_state_netcdf_rank0, write_results_netcdf_rank0
from .launcher import architecture_from_config, to_device, to_host
from .light import LightParameters, compute_light_growth
from .mixed_layer import buoyancy_threshold, compute_mixed_layer_depth

# Import MPI helpers.
from .mpi_utils import (
    MPIConfig,
    build_column_partition,
    gather_field_slabs_to_rank0,
    reduce_stats_to_rank0,
    scatter_field_slabs,
)

# Create a logger for this module.
logger = logging.getLogger("nplight")


def _quality_stats(light: np.ndarray, h: np.ndarray, grid: RectilinearGrid) -> Dict[str, float]:
    """Per-rank light and mixed-layer diagnostics (reduced on rank0)."""
    finite = np.isfinite(light)
    n_finite = int(np.count_nonzero(finite))
    inside = grid.z_centers[None, None, :] > -h[..., None]
    return {
        "cells": float(light.size),
        "nonfinite_cells": float(light.size - n_finite),
        "columns": float(h.size),
        "mixed_columns": float(np.count_nonzero(np.any(inside, axis=-1))),
        "mixed_cells": float(np.count_nonzero(inside)),
        "light_min": float(light[finite].min()) if n_finite else float("inf"),
        "light_max": float(light[finite].max()) if n_finite else float("-inf"),
        "h_min": float(h.min()) if h.size else float("inf"),
        "h_max": float(h.max()) if h.size else float("-inf"),
    }


def _log_quality_report(report: Dict[str, float], average_growth: bool) -> None:
    """Log a compact summary of the diagnostic pass."""
    logger.info("Light/growth quality report (averaging=%s):", "growth_rate" if average_growth else "light_intensity")
    logger.info(
        "  columns=%d mixed_columns=%d mixed_cells=%d/%d",
        int(report["columns"]),
        int(report["mixed_columns"]),
        int(report["mixed_cells"]),
        int(report["cells"]),
    )
    logger.info("  growth rate range: [%.4e, %.4e] s-1", report["light_min"], report["light_max"])
    logger.info("  mixed-layer depth range: [%.2f, %.2f] m", report["h_min"], report["h_max"])
    logger.info(
        "  kernel wall time: mld=%.4fs light=%.4fs (slowest rank)",
        report["mld_wall_s_max"],
        report["light_wall_s_max"],
    )
    if report["nonfinite_cells"] > 0:
        logger.warning(
            "Light field holds %d non-finite cells (degenerate mixed layer or optical depth underflow).",
            int(report["nonfinite_cells"]),
        )


def run_simulation(comm: Any, rank: int, size: int, cfg: Dict[str, Any]) -> Dict[str, float]:
    """Evaluate mixed layer, light/growth and NP tendencies once and write them.

    Returns the quality report (complete on rank0 only).
    """
    # ------------------------------
    # Parameters
    # ------------------------------
    compute_cfg = cfg.get("compute", {})
    arch = architecture_from_config(compute_cfg)
    light_cfg = cfg.get("light", {})
    light_params = LightParameters.from_dict(light_cfg)
    np_params = NPParameters.from_config(cfg.get("biology", {}), light_cfg)
    average_growth = bool(light_cfg.get("average_growth", False))
    ml_cfg = cfg.get("mixed_layer", {})
    g = float(ml_cfg.get("g", 9.82))
    rho0 = float(ml_cfg.get("rho0", 1026.0))
    delta_b = buoyancy_threshold(float(ml_cfg.get("delta_rho", 0.03)), g, rho0)

    # ------------------------------
    # Grid and column decomposition
    # ------------------------------
    grid = build_grid(cfg.get("grid", {}))
    mpi_active = comm is not None and size > 1
    mpi_cfg = MPIConfig.from_dict(compute_cfg.get("mpi", {}), world_size=size)
    plan = build_column_partition(grid.Ny, size if mpi_active else 1, mpi_cfg.min_rows_per_rank)
    j0, j1 = plan.bounds(rank if mpi_active else 0)
    local_grid = grid.slab(j0, j1)

    if rank == 0:
        logger.info(
            "Grid: Nx=%d Ny=%d Nz=%d H=%.1f m, dz range [%.2f, %.2f] m, topology=%s",
            grid.Nx,
            grid.Ny,
            grid.Nz,
            grid.depth,
            float(grid.dz_centers.min()),
            float(grid.dz_centers.max()),
            "/".join(grid.topology),
        )
        logger.info("Compute: launcher=%s device=%s", arch.kind, arch.device)
        logger.info(
            "Distributed memory: %s (ranks=%d, partition=%s)",
            "enabled" if mpi_active else "disabled",
            size if mpi_active else 1,
            plan.to_dict(),
        )

    # ------------------------------
    # Initial state (rank0) and scatter
    # ------------------------------
    full_state: Dict[str, np.ndarray] = {}
    if rank == 0:
        state_in = cfg.get("state", {}).get("in")
        if state_in:
            full_state = load_state_netcdf_rank0(state_in, grid)
            logger.info("State loaded from %s", state_in)
        else:
            full_state = initial_state(grid, cfg.get("initial_conditions", {}), g=g, rho0=rho0)
            logger.info("State built from analytic initial conditions")

    if mpi_active:
        local_state = {
            name: scatter_field_slabs(comm, plan, full_state.get(name), grid.shape)
            for name in STATE_VARS
        }
    else:
        local_state = full_state

    # ------------------------------
    # Column kernels on the local slab
    # ------------------------------
    xp = arch.xp
    b = center_field(local_grid, to_device(local_state["b"], xp))
    P = center_field(local_grid, to_device(local_state["P"], xp))
    N = center_field(local_grid, to_device(local_state["N"], xp))
    Nr = center_field(local_grid, to_device(local_state["Nr"], xp))
    h = column_field(local_grid, xp=xp)
    light = center_field(local_grid, xp=xp)

    t0 = perf_counter()
    compute_mixed_layer_depth(h, b, delta_b, arch=arch)
    mld_wall = perf_counter() - t0

    t0 = perf_counter()
    compute_light_growth(
        light,
        h,
        P,
        light_function_from_params(np_params),
        growth_function_from_params(np_params),
        average_growth=average_growth,
        params=light_params,
        arch=arch,
    )
    light_wall = perf_counter() - t0

    tendencies = compute_np_tendencies(light.data, P.data, N.data, Nr.data, np_params)

    local_out = {
        "light": to_host(light.data),
        "P": to_host(P.data),
        "N": to_host(N.data),
        "Nr": to_host(Nr.data),
        "b": to_host(b.data),
        "P_tendency": to_host(tendencies["P"]),
        "N_tendency": to_host(tendencies["N"]),
        "Nr_tendency": to_host(tendencies["Nr"]),
    }
    h_local = to_host(h.data)

    stats = _quality_stats(local_out["light"], h_local, local_grid)
    stats["mld_wall_s_max"] = mld_wall
    stats["light_wall_s_max"] = light_wall
    report = reduce_stats_to_rank0(comm if mpi_active else None, stats)
    if rank == 0:
        _log_quality_report(report, average_growth)

    # ------------------------------
    # Gather and write (rank0)
    # ------------------------------
    if mpi_active:
        full_out = {
            name: gather_field_slabs_to_rank0(comm, plan, arr, grid.shape)
            for name, arr in local_out.items()
        }
        h_full = gather_field_slabs_to_rank0(comm, plan, h_local, grid.column_shape)
    else:
        full_out = local_out
        h_full = h_local

    if rank == 0:
        out_nc = cfg.get("output", {}).get("out_netcdf")
        if out_nc:
            write_results_netcdf_rank0(out_nc, cfg, grid, full_out, h_full)
            logger.info("Output NetCDF written: %s", out_nc)
        else:
            logger.info("No output.out_netcdf configured; skipping output.")

    return report
