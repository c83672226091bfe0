# -*- coding: utf-8 -*-
"""Command line interface for nplight.

Parses options, merges defaults, the JSON config file and CLI overrides,
initializes MPI when requested and runs the diagnostic pass.
"""

# Import logging (for the final status line).
import logging

# Import argparse for CLI parsing.
import argparse

# Import typing primitives.
from typing import Any, Dict, List, Optional


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    # Create argument parser with a program name.
    ap = argparse.ArgumentParser(prog="nplight")
    # Configuration file path (defaults only when omitted).
    ap.add_argument("--config", default=None, help="Path to configuration JSON file.")
    # Logging level.
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    # Common operational overrides for pipelines.
    ap.add_argument("--out-nc", default=None, help="Output NetCDF path (rank 0 only).")
    ap.add_argument("--state-in", default=None, help="NetCDF with b, P, N, Nr to evaluate instead of the analytic state.")
    ap.add_argument("--device", default=None, choices=["cpu", "gpu"], help="Compute device override.")
    ap.add_argument(
        "--launcher",
        default=None,
        choices=["serial", "threads", "vectorized"],
        help="Column kernel launcher override.",
    )
    averaging = ap.add_mutually_exclusive_group()
    averaging.add_argument(
        "--average-growth",
        dest="average_growth",
        action="store_const",
        const=True,
        default=None,
        help="Average the growth rate over the mixed layer.",
    )
    averaging.add_argument(
        "--average-light",
        dest="average_growth",
        action="store_const",
        const=False,
        help="Average light over the mixed layer, then compute growth.",
    )
    ap.add_argument(
        "--mpi-mode",
        default=None,
        choices=["auto", "enabled", "disabled"],
        help="Force MPI on/off or auto-detect based on launcher.",
    )
    ap.add_argument(
        "--mpi-min-rows",
        default=None,
        type=int,
        help="Minimum number of y rows per MPI rank (prevents tiny slabs).",
    )
    # Return parsed args.
    return ap.parse_args(argv)


def apply_cli_overrides(cfg: Dict[str, Any], args: Any) -> Dict[str, Any]:
    """Apply CLI overrides (only options that were explicitly supplied)."""
    if args.out_nc is not None:
        # Override the NetCDF output path.
        cfg.setdefault("output", {})["out_netcdf"] = args.out_nc
    if args.state_in is not None:
        # Evaluate a saved state instead of the analytic one.
        cfg.setdefault("state", {})["in"] = args.state_in
    if args.device is not None:
        # Override the compute device (e.g., "cpu" or "gpu").
        cfg.setdefault("compute", {})["device"] = args.device
    if args.launcher is not None:
        cfg.setdefault("compute", {})["launcher"] = args.launcher
    if args.average_growth is not None:
        cfg.setdefault("light", {})["average_growth"] = bool(args.average_growth)
    # MPI overrides (independent from how the launcher was invoked).
    mpi_cfg_overrides = cfg.setdefault("compute", {}).setdefault("mpi", {})
    if args.mpi_mode is not None:
        if args.mpi_mode == "enabled":
            mpi_cfg_overrides["enabled"] = True
        elif args.mpi_mode == "disabled":
            mpi_cfg_overrides["enabled"] = False
        else:
            mpi_cfg_overrides["enabled"] = None
    if args.mpi_min_rows is not None:
        mpi_cfg_overrides["min_rows_per_rank"] = args.mpi_min_rows
    return cfg


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point (`nplight` console script, `python -m nplight`)."""
    # Import config helpers.
    from .config import deep_update, default_config, load_json

    # Import logging configuration.
    from .logging_utils import setup_logging

    # Import MPI utilities.
    from .mpi_utils import HAVE_MPI, MPI, MPIConfig, initialize_mpi

    # Import simulation driver.
    from .simulation import run_simulation

    # Parse command-line arguments into a structured namespace.
    args = parse_args(argv)

    # Load the built-in default configuration dictionary.
    cfg = default_config()

    # Merge the user-provided config file onto the defaults.
    if args.config is not None:
        cfg = deep_update(cfg, load_json(args.config))

    cfg = apply_cli_overrides(cfg, args)

    # Resolve MPI preferences and initialize communicator after config parsing.
    world_size_guess = MPI.COMM_WORLD.Get_size() if HAVE_MPI else 1
    mpi_cfg = MPIConfig.from_dict(cfg.get("compute", {}).get("mpi", {}), world_size=world_size_guess)
    # Persist resolved MPI preferences back into the config for downstream visibility.
    cfg.setdefault("compute", {})["mpi"] = {
        "enabled": mpi_cfg.enabled,
        "min_rows_per_rank": mpi_cfg.min_rows_per_rank,
    }
    comm, rank, size, mpi_world_size, mpi_active = initialize_mpi(mpi_cfg)

    # Configure logging (include rank so MPI logs are distinguishable).
    setup_logging(args.log_level, rank)
    logger = logging.getLogger("nplight")
    if rank == 0 and not mpi_active and mpi_world_size > 1:
        logger.info(
            "MPI explicitly disabled in configuration; running serial on rank0 (world_size=%d).",
            mpi_world_size,
        )

    run_simulation(comm, rank, size, cfg)

    # Emit a final log line on rank 0.
    if rank == 0:
        logger.info("nplight finished.")
