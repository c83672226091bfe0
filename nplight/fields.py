# -*- coding: utf-8 -*-
"""Grid-attached scalar fields."""

from __future__ import annotations

# Import dataclass for a simple structured object.
from dataclasses import dataclass

# Import typing primitives.
from typing import Any, Optional

# Import numpy.
import numpy as np

# Import local grid and backend helpers.
from .launcher import array_module_of
from .grid import RectilinearGrid


@dataclass
class Field:
    """A scalar field stored on a grid.

    Attributes
    ----------
    grid : RectilinearGrid
        Grid the field lives on.
    data : array
        Backing array, (Nx, Ny, Nz) for cell-centered fields or (Nx, Ny)
        for per-column fields. NumPy or CuPy.
    """
    grid: RectilinearGrid
    data: Any

    def __post_init__(self) -> None:
        shape = tuple(self.data.shape)
        if shape not in (self.grid.shape, self.grid.column_shape):
            raise ValueError(
                f"Field data has shape {shape}, expected {self.grid.shape} or {self.grid.column_shape}"
            )

    @property
    def is_column_field(self) -> bool:
        return self.data.ndim == 2

    @property
    def xp(self) -> Any:
        return array_module_of(self.data)

    def __getitem__(self, idx: Any) -> Any:
        return self.data[idx]

    def __setitem__(self, idx: Any, value: Any) -> None:
        self.data[idx] = value


def center_field(grid: RectilinearGrid, data: Optional[Any] = None, xp: Any = np, dtype: Any = np.float64) -> Field:
    """Return a cell-centered 3D field (zeros unless `data` is given)."""
    if data is None:
        data = xp.zeros(grid.shape, dtype=dtype)
    return Field(grid=grid, data=data)


def column_field(grid: RectilinearGrid, data: Optional[Any] = None, xp: Any = np, dtype: Any = np.float64) -> Field:
    """Return a per-column 2D field (zeros unless `data` is given)."""
    if data is None:
        data = xp.zeros(grid.column_shape, dtype=dtype)
    return Field(grid=grid, data=data)


def field_data(f: Any) -> Any:
    """Return the backing array of a Field, or `f` itself for raw arrays."""
    return f.data if isinstance(f, Field) else f
