# -*- coding: utf-8 -*-
"""Rectilinear ocean grid with non-uniform vertical spacing.

Layers are stored bottom-first: ``k = 0`` is the deepest layer and
``k = Nz - 1`` touches the surface. Vertical coordinates are negative below
the surface and increase toward zero.
"""

from __future__ import annotations

# Import dataclass for the immutable grid object.
from dataclasses import dataclass, field

# Import typing primitives.
from typing import Any, Dict, Tuple

# Import numpy.
import numpy as np


@dataclass(frozen=True, eq=False)
class RectilinearGrid:
    """Grid geometry consumed by the column kernels.

    Attributes
    ----------
    x, y : np.ndarray
        Horizontal cell centers in meters.
    z_faces : np.ndarray
        Vertical cell faces (length Nz + 1), increasing from -H to 0.
    topology : tuple of str
        Topology per axis, e.g. ("Flat", "Bounded", "Bounded").
    """

    x: np.ndarray
    y: np.ndarray
    z_faces: np.ndarray
    topology: Tuple[str, str, str] = ("Flat", "Bounded", "Bounded")
    z_centers: np.ndarray = field(init=False, repr=False)
    dz_centers: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        faces = np.asarray(self.z_faces, dtype=np.float64)
        if faces.ndim != 1 or faces.size < 2:
            raise ValueError("z_faces must be a 1D array with at least two faces")
        if np.any(np.diff(faces) < 0.0):
            raise ValueError("z_faces must be non-decreasing (bottom to surface)")
        object.__setattr__(self, "x", np.asarray(self.x, dtype=np.float64))
        object.__setattr__(self, "y", np.asarray(self.y, dtype=np.float64))
        object.__setattr__(self, "z_faces", faces)
        object.__setattr__(self, "z_centers", 0.5 * (faces[:-1] + faces[1:]))
        object.__setattr__(self, "dz_centers", np.diff(faces))

    @property
    def Nx(self) -> int:
        return int(self.x.size)

    @property
    def Ny(self) -> int:
        return int(self.y.size)

    @property
    def Nz(self) -> int:
        return int(self.z_centers.size)

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Shape of a cell-centered 3D field."""
        return (self.Nx, self.Ny, self.Nz)

    @property
    def column_shape(self) -> Tuple[int, int]:
        """Shape of a per-column 2D field."""
        return (self.Nx, self.Ny)

    @property
    def depth(self) -> float:
        """Total column depth (positive)."""
        return float(-self.z_faces[0])

    def dz(self, i: Any, j: Any, k: int) -> float:
        """Thickness of layer k (the grid is horizontally uniform)."""
        return float(self.dz_centers[k])

    def znode(self, i: Any, j: Any, k: int) -> float:
        """Vertical coordinate of the center of layer k."""
        return float(self.z_centers[k])

    def slab(self, j0: int, j1: int) -> "RectilinearGrid":
        """Return the sub-grid owning columns j0 <= j < j1."""
        return RectilinearGrid(
            x=self.x.copy(),
            y=self.y[j0:j1].copy(),
            z_faces=self.z_faces.copy(),
            topology=self.topology,
        )


def cosine_stretched_faces(Nz: int, H: float) -> np.ndarray:
    """Faces clustered near the surface: H*cos(linspace(pi/2, 0, Nz+1)) - H."""
    faces = H * np.cos(np.linspace(np.pi / 2.0, 0.0, Nz + 1)) - H
    # cos(pi/2) is not exactly zero in floating point.
    faces[0] = -H
    faces[-1] = 0.0
    return faces


def uniform_faces(Nz: int, H: float) -> np.ndarray:
    """Evenly spaced faces from -H to 0."""
    return np.linspace(-H, 0.0, Nz + 1)


def _centered_axis(n: int, spacing: float) -> np.ndarray:
    """Return n cell centers of width `spacing`, symmetric about zero."""
    half = 0.5 * n * spacing
    return -half + (np.arange(n, dtype=np.float64) + 0.5) * spacing


def build_grid(grid_cfg: Dict[str, Any]) -> RectilinearGrid:
    """Build the model grid from the `grid` config section.

    The y axis carries `Ny` interior cells plus `sponge` cells on each side.
    """
    Nx = int(grid_cfg.get("Nx", 1))
    Ny = int(grid_cfg.get("Ny", 100))
    sponge = int(grid_cfg.get("sponge", 0))
    Nz = int(grid_cfg.get("Nz", 48))
    H = float(grid_cfg.get("H", 1000.0))
    dx = float(grid_cfg.get("dx_m", 1000.0))
    dy = float(grid_cfg.get("dy_m", 1000.0))
    spacing = str(grid_cfg.get("z_spacing", "cosine")).lower().strip()

    if Nx < 1 or Ny < 1 or Nz < 1:
        raise ValueError("grid.Nx, grid.Ny and grid.Nz must be positive")
    if sponge < 0:
        raise ValueError("grid.sponge must be non-negative")
    if H <= 0.0:
        raise ValueError("grid.H must be positive")

    if spacing == "cosine":
        faces = cosine_stretched_faces(Nz, H)
    elif spacing == "uniform":
        faces = uniform_faces(Nz, H)
    else:
        raise ValueError("grid.z_spacing must be 'cosine' or 'uniform'.")

    topology = ("Flat" if Nx == 1 else "Bounded", "Bounded", "Bounded")
    return RectilinearGrid(
        x=_centered_axis(Nx, dx),
        y=_centered_axis(Ny + 2 * sponge, dy),
        z_faces=faces,
        topology=topology,
    )
