# -*- coding: utf-8 -*-
"""nplight: self-shading light field and light-limited growth for NP models."""

from .fields import Field, center_field, column_field
from .grid import RectilinearGrid, build_grid
from .launcher import Architecture, KernelLaunchError, launch
from .light import (
    AverageGrowthRate,
    AverageLightIntensity,
    LightParameters,
    compute_light_growth,
    select_averaging_strategy,
)
from .mixed_layer import buoyancy_threshold, compute_mixed_layer_depth

__all__ = [
    "Architecture",
    "AverageGrowthRate",
    "AverageLightIntensity",
    "Field",
    "KernelLaunchError",
    "LightParameters",
    "RectilinearGrid",
    "build_grid",
    "buoyancy_threshold",
    "center_field",
    "column_field",
    "compute_light_growth",
    "compute_mixed_layer_depth",
    "launch",
    "select_averaging_strategy",
]
