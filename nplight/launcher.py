# -*- coding: utf-8 -*-
"""Columnar kernel launcher.

A kernel is a plain function ``kernel(i, j, *args)`` that does all the work
for the horizontal column(s) ``(i, j)``. ``i`` and ``j`` are either Python
ints (one column) or 1-D index arrays of equal length (one column per lane),
so kernel bodies must stick to element-wise array operations. Columns never
communicate, which lets the launcher run them in any order.

The ``serial`` launcher is the only one that hands kernels plain scalars.
``threads`` and ``vectorized`` pass index arrays, so any user callable a
kernel applies to per-cell values must accept arrays (ufunc-style).
"""

from __future__ import annotations

# Import logging.
import logging

# Import stdlib helpers.
import importlib
import importlib.util
import os

# Import dataclass for the architecture descriptor.
from dataclasses import dataclass

# Import typing primitives.
from typing import Any, Callable, List, Optional, Tuple

# Import timing helper.
from time import perf_counter

# Import thread pool for the shared-memory launcher.
from concurrent.futures import ThreadPoolExecutor

# Import numpy.
import numpy as np

# Import local grid.
from .grid import RectilinearGrid

logger = logging.getLogger("nplight")

LAUNCHER_KINDS = ("serial", "threads", "vectorized")
DEVICES = ("cpu", "gpu")

# CuPy is optional; GPU requests fall back to NumPy without it.
cupy = importlib.import_module("cupy") if importlib.util.find_spec("cupy") is not None else None


class KernelLaunchError(RuntimeError):
    """A unit of work failed; no output of the launch is valid."""


# ------------------------------
# Array backends
# ------------------------------
def gpu_available() -> bool:
    return cupy is not None


def array_module_of(arr: Any) -> Any:
    """Return cupy for device arrays, numpy for everything else."""
    if cupy is not None and isinstance(arr, cupy.ndarray):
        return cupy
    return np


def to_device(arr: Any, xp: Any) -> Any:
    """Place `arr` on the backend `xp`, copying across devices when needed."""
    if xp is np:
        return np.asarray(to_host(arr))
    return xp.asarray(arr)


def to_host(arr: Any) -> Any:
    """Return `arr` as host (NumPy) data."""
    if array_module_of(arr) is not np:
        return cupy.asnumpy(arr)
    return arr


# ------------------------------
# Thread pool settings
# ------------------------------
@dataclass(frozen=True)
class PoolConfig:
    """How the `threads` launcher splits columns over workers.

    Read from the `compute.shared_memory` config section. Small grids
    (fewer than `min_columns_per_worker` columns) run on the caller's thread.
    """

    workers: int
    min_columns_per_worker: int = 64
    chunk_size: int = 256

    @classmethod
    def from_dict(cls, cfg: dict) -> "PoolConfig":
        raw_workers = cfg.get("workers")
        workers = (os.cpu_count() or 1) if raw_workers in (None, "") else int(raw_workers)
        return cls(
            workers=max(1, workers),
            min_columns_per_worker=max(1, int(cfg.get("min_columns_per_worker", 64))),
            chunk_size=max(1, int(cfg.get("chunk_size", 256))),
        )

    def splits(self, ncols: int) -> bool:
        """True when `ncols` columns are worth spreading over the pool."""
        return self.workers > 1 and ncols >= self.min_columns_per_worker


def column_chunks(ncols: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Consecutive (start, stop) ranges of at most `chunk_size` columns."""
    step = max(1, int(chunk_size))
    return [(start, min(ncols, start + step)) for start in range(0, max(0, ncols), step)]


# ------------------------------
# Architecture
# ------------------------------
@dataclass(frozen=True)
class Architecture:
    """Execution substrate for column kernels."""

    kind: str = "vectorized"
    device: str = "cpu"
    pool: Optional[PoolConfig] = None

    @property
    def xp(self) -> Any:
        if self.device == "gpu" and cupy is not None:
            return cupy
        return np


def _choice(value: Optional[str], allowed: Tuple[str, ...], default: str, what: str) -> str:
    if value is None:
        return default
    name = str(value).lower().strip()
    if name not in allowed:
        raise ValueError(f"Unknown {what} '{value}'. Use one of {', '.join(allowed)}.")
    return name


def normalize_launcher(kind: Optional[str]) -> str:
    return _choice(kind, LAUNCHER_KINDS, "vectorized", "launcher")


def normalize_device(device: Optional[str]) -> str:
    return _choice(device, DEVICES, "cpu", "device")


def architecture_from_config(compute_cfg: dict) -> Architecture:
    """Resolve the `compute` config section into an Architecture."""
    device = normalize_device(compute_cfg.get("device", "cpu"))
    kind = normalize_launcher(compute_cfg.get("launcher", "vectorized"))
    if device == "gpu" and not gpu_available():
        logger.warning("GPU requested but CuPy not available; falling back to CPU.")
        device = "cpu"
    if device == "gpu" and kind != "vectorized":
        logger.warning("Launcher '%s' is CPU-only; using 'vectorized' on the GPU.", kind)
        kind = "vectorized"
    pool = PoolConfig.from_dict(compute_cfg.get("shared_memory", {}) or {})
    return Architecture(kind=kind, device=device, pool=pool)


def column_indices(grid: RectilinearGrid, xp: Any = np) -> Tuple[Any, Any]:
    """Return flat (i, j) index arrays covering every horizontal column."""
    ii, jj = xp.meshgrid(
        xp.arange(grid.Nx, dtype=xp.int64),
        xp.arange(grid.Ny, dtype=xp.int64),
        indexing="ij",
    )
    return ii.ravel(), jj.ravel()


def launch(arch: Architecture, grid: RectilinearGrid, kernel: Callable[..., None], *args: Any) -> None:
    """Run `kernel` over every column of `grid` and block until all finish.

    Raises
    ------
    KernelLaunchError
        If any unit of work raises; the original exception is chained.
    """
    name = getattr(kernel, "__name__", repr(kernel))
    t0 = perf_counter()
    ii, jj = column_indices(grid, arch.xp)
    ncols = int(ii.size)
    units = 0
    try:
        if arch.kind == "serial":
            # One column per unit, scalar indices.
            for i, j in zip(to_host(ii).tolist(), to_host(jj).tolist()):
                kernel(i, j, *args)
            units = ncols
        elif arch.kind == "threads" and arch.pool is not None and arch.pool.splits(ncols):
            chunks = column_chunks(ncols, arch.pool.chunk_size)
            with ThreadPoolExecutor(max_workers=arch.pool.workers) as ex:
                futures = [ex.submit(kernel, ii[s:e], jj[s:e], *args) for s, e in chunks]
                # Leaving the pool waits for every submitted chunk, even after a failure.
                for fut in futures:
                    fut.result()
            units = len(chunks)
        elif ncols > 0:
            kernel(ii, jj, *args)
            units = 1
    except Exception as exc:
        raise KernelLaunchError(f"kernel '{name}' failed on {arch.kind}/{arch.device}: {exc}") from exc

    logger.debug(
        "Launched %s on %s/%s: columns=%d units=%d wall=%.4fs",
        name,
        arch.kind,
        arch.device,
        ncols,
        units,
        perf_counter() - t0,
    )
