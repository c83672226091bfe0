# -*- coding: utf-8 -*-
"""Mixed-layer depth from a surface buoyancy-difference criterion."""

from __future__ import annotations

# Import typing primitives.
from typing import Any, Optional

# Import numpy.
import numpy as np

# Import local helpers.
from .fields import Field, field_data
from .grid import RectilinearGrid
from .launcher import Architecture, array_module_of, launch


def buoyancy_threshold(delta_rho: float = 0.03, g: float = 9.82, rho0: float = 1026.0) -> float:
    """Return the buoyancy jump (m s^-2) equivalent to a density jump `delta_rho`."""
    return (g / rho0) * delta_rho


def _compute_mixed_layer_depth_kernel(
    i: Any,
    j: Any,
    h: Any,
    grid: RectilinearGrid,
    b: Any,
    delta_b: float,
) -> None:
    xp = array_module_of(h)
    Nz = grid.Nz

    b_surface = b[i, j, Nz - 1]
    # Columns that never exceed the threshold are mixed to the bottom.
    depth = xp.full(np.shape(i), grid.depth, dtype=h.dtype)
    found = xp.zeros(np.shape(i), dtype=bool)
    for k in range(Nz - 1, -1, -1):
        crossed = xp.logical_and(xp.logical_not(found), (b_surface - b[i, j, k]) > delta_b)
        depth = xp.where(crossed, -grid.znode(i, j, k), depth)
        found = xp.logical_or(found, crossed)

    h[i, j] = depth


def compute_mixed_layer_depth(
    h: Field,
    b: Any,
    delta_b: float,
    arch: Optional[Architecture] = None,
) -> None:
    """Fill `h` with the depth of the first layer center below the mixed layer.

    Scanning from the surface down, the mixed layer ends at the first layer
    whose buoyancy is more than `delta_b` below the surface buoyancy. Since
    light averaging keeps layers with z > -h, that layer itself is excluded.
    """
    grid = h.grid
    arch = arch if arch is not None else Architecture()
    out = field_data(h)
    xp = array_module_of(out)
    staging = xp.empty_like(out)

    launch(arch, grid, _compute_mixed_layer_depth_kernel, staging, grid, field_data(b), float(delta_b))

    out[...] = staging
