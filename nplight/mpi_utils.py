# -*- coding: utf-8 -*-
"""MPI utilities for nplight.

This module provides:
- MPI initialization (optional)
- column-slab decomposition along y
- scatter/gather of y slabs between rank0 and all ranks
- reduction of per-rank diagnostics to rank0

Columns are independent, so ranks never exchange halos: rank0 scatters the
state, every rank runs the column kernels on its own slab, rank0 gathers.
"""

# Import typing primitives.
from typing import Any, Dict, Optional, Tuple

# Import dataclass for structured configs.
from dataclasses import dataclass

# Import sys for optional early exits when MPI is disabled explicitly.
import sys

# Import numpy for counts/displacements arrays.
import numpy as np


# Try importing mpi4py; allow serial fallback.
try:
    from mpi4py import MPI  # type: ignore
    HAVE_MPI = True
except ImportError:
    MPI = None  # type: ignore
    HAVE_MPI = False


@dataclass(frozen=True)
class MPIConfig:
    """User-facing MPI configuration resolved from JSON/CLI."""

    enabled: bool
    min_rows_per_rank: int

    @classmethod
    def from_dict(cls, cfg: dict, world_size: int | None = None) -> "MPIConfig":
        """Build MPIConfig with safe defaults."""
        world = int(world_size) if world_size is not None else 1
        enabled_raw = cfg.get("enabled", None)
        enabled = bool(enabled_raw) if enabled_raw is not None else (HAVE_MPI and world > 1)
        # If mpi4py is missing, force-disable even if the user requested it.
        if enabled and not HAVE_MPI:
            enabled = False
        min_rows = max(1, int(cfg.get("min_rows_per_rank", 1) or 1))
        return cls(enabled=enabled, min_rows_per_rank=min_rows)


@dataclass(frozen=True)
class PartitionPlan:
    """Ownership of y rows (columns j) shared by all ranks."""

    counts: np.ndarray
    starts: np.ndarray

    def bounds(self, rank: int) -> Tuple[int, int]:
        """Return (j0, j1) bounds for a rank."""
        j0 = int(self.starts[rank])
        j1 = int(self.starts[rank] + self.counts[rank])
        return j0, j1

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the plan for debug logs."""
        return {
            "counts": [int(x) for x in self.counts.tolist()],
            "starts": [int(x) for x in self.starts.tolist()],
        }

    @property
    def size(self) -> int:
        """Return number of ranks participating in this plan."""
        return int(self.counts.size)


def initialize_mpi(mpi_cfg: MPIConfig) -> Tuple[Any, int, int, int, bool]:
    """Return (comm, rank, size, world_size, active) honoring user MPI preferences."""
    if not HAVE_MPI:
        return None, 0, 1, 1, False

    world = MPI.COMM_WORLD
    world_rank = world.Get_rank()
    world_size = world.Get_size()

    # Auto-disable when only one rank is present.
    if world_size == 1:
        return None, 0, 1, 1, False

    # Respect explicit disable requests even if launched under mpirun.
    if not mpi_cfg.enabled:
        if world_rank != 0:
            # Non-root ranks exit quietly so only rank0 proceeds in serial mode.
            MPI.Finalize()
            sys.exit(0)
        return None, 0, 1, world_size, False

    return world, world_rank, world_size, world_size, True


def slab_counts_starts(nrows: int, size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Compute slab row counts and starts for each rank."""
    # Start with floor division.
    counts = np.full(size, nrows // size, dtype=np.int32)
    # Distribute remainder to the first ranks.
    counts[: (nrows % size)] += 1
    # Compute starts as prefix sums of counts.
    starts = np.zeros(size, dtype=np.int32)
    starts[1:] = np.cumsum(counts[:-1])
    return counts, starts


def usable_ranks(ny: int, size: int, min_rows_per_rank: int) -> int:
    """Number of ranks that can each own at least `min_rows_per_rank` rows."""
    return max(1, min(int(size), int(ny) // max(1, int(min_rows_per_rank))))


def build_column_partition(ny: int, size: int, min_rows_per_rank: int = 1) -> PartitionPlan:
    """Split `ny` rows over `size` ranks; trailing ranks may own zero rows."""
    active = usable_ranks(ny, size, min_rows_per_rank)
    counts_active, _ = slab_counts_starts(ny, active)
    counts = np.zeros(int(size), dtype=np.int32)
    counts[:active] = counts_active
    starts = np.zeros(int(size), dtype=np.int32)
    starts[1:] = np.cumsum(counts[:-1])
    return PartitionPlan(counts=counts, starts=starts)


def _rows_first(full: np.ndarray) -> np.ndarray:
    """Move the y axis (axis 1) to the front as a contiguous array."""
    return np.ascontiguousarray(np.moveaxis(full, 1, 0))


def scatter_field_slabs(comm, plan: PartitionPlan, full: Optional[np.ndarray], shape: Tuple[int, ...], dtype=np.float64) -> np.ndarray:
    """Scatter a full field with y on axis 1 from rank0 into per-rank y slabs."""
    rank = comm.Get_rank()
    counts = plan.counts.astype(np.int64)
    starts = plan.starts.astype(np.int64)
    j0, j1 = plan.bounds(rank)
    # Elements per y row (x times everything after y).
    row_size = int(np.prod(shape)) // int(shape[1])
    sendcounts = counts * row_size
    displs = starts * row_size
    local_shape = (j1 - j0, shape[0]) + tuple(shape[2:])
    local = np.empty(local_shape, dtype=dtype)
    if rank == 0:
        arr = np.asarray(full)
        if arr.shape != tuple(shape):
            raise ValueError(f"Scatter source has shape {arr.shape}, expected {tuple(shape)}")
        sendbuf = _rows_first(arr.astype(dtype, copy=False)).ravel()
    else:
        sendbuf = None
    mpitype = MPI._typedict[np.dtype(dtype).char]
    comm.Scatterv([sendbuf, sendcounts, displs, mpitype], local.ravel(), root=0)
    return np.ascontiguousarray(np.moveaxis(local, 0, 1))


def gather_field_slabs_to_rank0(comm, plan: PartitionPlan, slab: np.ndarray, shape: Tuple[int, ...]) -> Optional[np.ndarray]:
    """Gather y slabs from all ranks into a full field on rank0."""
    rank = comm.Get_rank()
    counts = plan.counts.astype(np.int64)
    starts = plan.starts.astype(np.int64)
    row_size = int(np.prod(shape)) // int(shape[1])
    recvcounts = counts * row_size
    displs = starts * row_size
    sendbuf = _rows_first(np.asarray(slab))
    full_rows = np.empty((int(shape[1]), shape[0]) + tuple(shape[2:]), dtype=sendbuf.dtype) if rank == 0 else None
    mpitype = MPI._typedict[np.dtype(sendbuf.dtype).char]
    comm.Gatherv(sendbuf.ravel(), [full_rows, recvcounts, displs, mpitype], root=0)
    if rank != 0:
        return None
    return np.ascontiguousarray(np.moveaxis(full_rows, 0, 1))


def reduce_stats_to_rank0(comm, stats: Dict[str, float]) -> Dict[str, float]:
    """Combine per-rank min/max/sum diagnostics on rank0.

    Keys ending in `_min` are min-reduced, `_max` max-reduced, all others
    summed. Returns `stats` unchanged when running serial.
    """
    if comm is None:
        return dict(stats)
    out: Dict[str, float] = {}
    for key in sorted(stats):
        value = float(stats[key])
        if key.endswith("_min"):
            op = MPI.MIN
        elif key.endswith("_max"):
            op = MPI.MAX
        else:
            op = MPI.SUM
        out[key] = float(comm.reduce(value, op=op, root=0) or 0.0)
    return out
