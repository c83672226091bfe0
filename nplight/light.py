# -*- coding: utf-8 -*-
"""Self-shading light field and light-limited growth.

Each horizontal column is processed independently, surface to bottom:

1. attenuate the surface light profile by the biomass integrated from the
   surface down to the current layer (Beer-Lambert);
2. sum light times thickness over the layers whose center lies in the mixed
   layer (z > -h);
3. overwrite those layers with the thickness-weighted mean;
4. when light (not growth) is averaged, turn light into growth rate.

Whether the growth response is applied before (step 1) or after (step 4) the
averaging is a modelling choice: the response is nonlinear, so the two
orderings give different answers.

Layers are kept or dropped from the mixed layer by their center only; a
coarse layer that straddles -h counts fully or not at all.
"""

from __future__ import annotations

# Import dataclass for parameter containers.
from dataclasses import dataclass

# Import typing primitives.
from typing import Any, Callable, Optional

# Import numpy.
import numpy as np

# Import local helpers.
from .fields import Field, field_data
from .grid import RectilinearGrid
from .launcher import Architecture, array_module_of, launch


@dataclass(frozen=True)
class LightParameters:
    """Optical constants of the attenuation integral.

    Attributes
    ----------
    chl2c : float
        Biomass to chlorophyll conversion (mg Chl per unit biomass).
    Kc : float
        Chlorophyll specific attenuation coefficient (m^2 mg^-1).
    """
    chl2c: float = 1.59
    Kc: float = 0.041

    @classmethod
    def from_dict(cls, cfg: dict) -> "LightParameters":
        return cls(chl2c=float(cfg.get("chl2c", 1.59)), Kc=float(cfg.get("Kc", 0.041)))


class AverageGrowthRate:
    """Apply the growth response per layer, then average growth over the mixed layer."""

    name = "average_growth"
    defers_growth = False

    def before_average(self, growth_fn: Callable[[Any], Any], local_light: Any) -> Any:
        return growth_fn(local_light)


class AverageLightIntensity:
    """Average light over the mixed layer, then apply the growth response."""

    name = "average_light"
    defers_growth = True

    def before_average(self, growth_fn: Callable[[Any], Any], local_light: Any) -> Any:
        return local_light


AVERAGE_GROWTH_RATE = AverageGrowthRate()
AVERAGE_LIGHT_INTENSITY = AverageLightIntensity()


def select_averaging_strategy(average_growth: bool) -> Any:
    """Return the strategy matching the `average_growth` flag."""
    return AVERAGE_GROWTH_RATE if average_growth else AVERAGE_LIGHT_INTENSITY


def _compute_light_growth_kernel(
    i: Any,
    j: Any,
    light: Any,
    grid: RectilinearGrid,
    h: Any,
    P: Any,
    light_function: Callable[[Any], Any],
    light_growth_function: Callable[[Any], Any],
    strategy: Any,
    params: LightParameters,
) -> None:
    xp = array_module_of(light)
    Nz = grid.Nz
    chl2c = params.chl2c
    Kc = params.Kc

    # Optical depth from the surface down to (and including) layer k.
    chlinteg = xp.zeros(np.shape(i), dtype=light.dtype)
    for k in range(Nz - 1, -1, -1):
        chlinteg = chlinteg + P[i, j, k] * chl2c * grid.dz(i, j, k)
        z_center = grid.znode(i, j, k)
        local_light = light_function(z_center) / xp.exp(chlinteg * Kc)
        light[i, j, k] = strategy.before_average(light_growth_function, local_light)

    mld = h[i, j]

    light_sum = xp.zeros(np.shape(i), dtype=light.dtype)
    dz_sum = xp.zeros(np.shape(i), dtype=light.dtype)
    for k in range(Nz - 1, -1, -1):
        inside = grid.znode(i, j, k) > -mld
        dz_k = grid.dz(i, j, k)
        light_sum = light_sum + xp.where(inside, light[i, j, k] * dz_k, 0.0)
        dz_sum = dz_sum + xp.where(inside, dz_k, 0.0)

    # dz_sum is zero when no layer is in the mixed layer; the result is then never written.
    with np.errstate(divide="ignore", invalid="ignore"):
        mixed = light_sum / dz_sum

    for k in range(Nz - 1, -1, -1):
        inside = grid.znode(i, j, k) > -mld
        light[i, j, k] = xp.where(inside, mixed, light[i, j, k])

    if strategy.defers_growth:
        for k in range(Nz - 1, -1, -1):
            light[i, j, k] = light_growth_function(light[i, j, k])


def compute_light_growth(
    light: Field,
    h: Field,
    P: Any,
    light_function: Callable[[Any], Any],
    light_growth_function: Callable[[Any], Any],
    average_growth: bool = False,
    params: Optional[LightParameters] = None,
    arch: Optional[Architecture] = None,
) -> None:
    """Fill `light` with the mixed-layer averaged light-limited growth rate.

    Parameters
    ----------
    light : Field
        Output, (Nx, Ny, Nz). Overwritten in every cell.
    h : Field
        Mixed-layer depth per column (positive, meters). Its grid is used.
    P : Field or array
        Phytoplankton biomass, (Nx, Ny, Nz). Read only.
    light_function : callable
        Surface light profile L(z).
    light_growth_function : callable
        Saturating growth response g(light).
    average_growth : bool
        True averages the growth rate over the mixed layer; False averages
        light and applies g afterwards.
    params : LightParameters, optional
        Optical constants (defaults: chl2c=1.59, Kc=0.041).
    arch : Architecture, optional
        Launch substrate. Defaults to the serial launcher on CPU, which calls
        `light_function` and `light_growth_function` with one number at a
        time. The `threads` and `vectorized` launchers call them with arrays,
        so they need ufunc-style callables (e.g. built from numpy functions).

    Raises
    ------
    KernelLaunchError
        If any column fails; `light` is left unchanged.
    """
    grid = h.grid
    params = params if params is not None else LightParameters()
    arch = arch if arch is not None else Architecture(kind="serial")
    strategy = select_averaging_strategy(bool(average_growth))

    out = field_data(light)
    xp = array_module_of(out)
    # Columns write into a staging copy; `light` only sees a completed launch.
    staging = xp.empty_like(out)

    launch(
        arch,
        grid,
        _compute_light_growth_kernel,
        staging,
        grid,
        field_data(h),
        field_data(P),
        light_function,
        light_growth_function,
        strategy,
        params,
    )

    out[...] = staging
