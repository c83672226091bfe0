# -*- coding: utf-8 -*-
"""Analytic initial state: a density front over an Argo-like background."""

from __future__ import annotations

# Import typing primitives.
from typing import Any, Dict

# Import numpy.
import numpy as np

# Import local grid.
from .grid import RectilinearGrid


def background_density(z: Any) -> Any:
    """Background density profile (kg m^-3) fitted to Argo data."""
    return 0.25 * np.tanh(0.0027 * (-653.3 - z)) - 6.8 * z / 1e5 + 1027.56


def front_decay(z: Any) -> Any:
    """Vertical envelope of the front, ~1 near the surface, ~0 at depth."""
    return (np.tanh((z + 500.0) / 300.0) + 1.0) / 2.0


def front(y: Any, center: float = 0.0, width: float = 12000.0) -> Any:
    return np.tanh((y - center) / width)


def density(y: Any, z: Any, ic_cfg: Dict[str, Any]) -> Any:
    amplitude = float(ic_cfg.get("front_amplitude", 0.2))
    center = float(ic_cfg.get("front_center_m", 0.0))
    width = float(ic_cfg.get("front_width_m", 12000.0))
    return background_density(z) + amplitude * front_decay(z) * front(y, center, width)


def initial_state(grid: RectilinearGrid, ic_cfg: Dict[str, Any], g: float = 9.82, rho0: float = 1026.0) -> Dict[str, np.ndarray]:
    """Return full (Nx, Ny, Nz) arrays for b, P, N and Nr."""
    shape = grid.shape
    y = grid.y[None, :, None]
    z = grid.z_centers[None, None, :]

    b = np.broadcast_to(-(g / rho0) * density(y, z, ic_cfg), shape).astype(np.float64)

    cz = float(ic_cfg.get("cz", -200.0))
    P0 = float(ic_cfg.get("P0", 0.4))
    P = np.broadcast_to(np.where(z > cz, P0, 0.0), shape).astype(np.float64)
    N = np.full(shape, float(ic_cfg.get("N0", 13.0)), dtype=np.float64)
    Nr = np.full(shape, float(ic_cfg.get("Nr0", 0.0)), dtype=np.float64)

    return {"b": b, "P": P, "N": N, "Nr": Nr}
