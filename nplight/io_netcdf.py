# -*- coding: utf-8 -*-
"""NetCDF I/O for diagnostics output and input state (rank0)."""

# Import JSON for embedding config as provenance attribute.
import json

# Import typing primitives.
from typing import Any, Dict

# Import numpy.
import numpy as np

# Import xarray.
import xarray as xr

# Import local helpers.
from .grid import RectilinearGrid
from .time_utils import TIME_UNITS, datetime_to_hours_since_1900, parse_iso8601_to_utc_datetime, utc_now_iso

STATE_VARS = ("b", "P", "N", "Nr")

# name -> (long_name, units) for 3D variables written on (time, x, y, z).
_VAR_ATTRS: Dict[str, tuple] = {
    "light": ("light_limited_growth_rate", "s-1"),
    "P": ("phytoplankton_concentration", "mmol m-3"),
    "N": ("nitrate_concentration", "mmol m-3"),
    "Nr": ("ammonium_concentration", "mmol m-3"),
    "b": ("buoyancy", "m s-2"),
    "P_tendency": ("phytoplankton_tendency", "mmol m-3 s-1"),
    "N_tendency": ("nitrate_tendency", "mmol m-3 s-1"),
    "Nr_tendency": ("ammonium_tendency", "mmol m-3 s-1"),
}


def _grid_coords(grid: RectilinearGrid) -> Dict[str, xr.DataArray]:
    """Return CF-style coordinate arrays for a grid."""
    return {
        "x": xr.DataArray(grid.x, dims=("x",), attrs={"long_name": "x", "units": "m", "axis": "X"}),
        "y": xr.DataArray(grid.y, dims=("y",), attrs={"long_name": "y", "units": "m", "axis": "Y"}),
        "z": xr.DataArray(
            grid.z_centers,
            dims=("z",),
            attrs={"long_name": "depth_of_layer_center", "units": "m", "positive": "up", "axis": "Z"},
        ),
        "z_face": xr.DataArray(
            grid.z_faces,
            dims=("z_face",),
            attrs={"long_name": "depth_of_layer_face", "units": "m", "positive": "up"},
        ),
    }


def write_results_netcdf_rank0(out_path: str, cfg: Dict[str, Any], grid: RectilinearGrid,
                               fields: Dict[str, np.ndarray], h: np.ndarray) -> None:
    """Write light, mixed-layer depth, state and tendencies in CF-friendly NetCDF."""
    out_cfg = cfg.get("output", {})
    fill_value = float(out_cfg.get("fill_value", -9999.0))
    start = parse_iso8601_to_utc_datetime(cfg.get("model", {}).get("start_time"))
    time_value = datetime_to_hours_since_1900(start)

    ds = xr.Dataset()
    coords = _grid_coords(grid)
    coords["time"] = xr.DataArray(
        np.array([time_value], dtype=np.float64),
        dims=("time",),
        attrs={"long_name": "time", "units": TIME_UNITS},
    )
    ds = ds.assign_coords(coords)

    encoding: Dict[str, Dict[str, float]] = {}
    for name, arr in fields.items():
        long_name, units = _VAR_ATTRS.get(name, (name, "1"))
        ds[name] = xr.DataArray(
            np.asarray(arr, dtype=np.float64)[None, ...],
            dims=("time", "x", "y", "z"),
            attrs={"long_name": long_name, "units": units},
        )
        encoding[name] = {"_FillValue": fill_value}

    ds["h"] = xr.DataArray(
        np.asarray(h, dtype=np.float64)[None, ...],
        dims=("time", "x", "y"),
        attrs={"long_name": "mixed_layer_depth", "units": "m", "positive": "down"},
    )
    encoding["h"] = {"_FillValue": fill_value}

    ds["dz"] = xr.DataArray(grid.dz_centers, dims=("z",), attrs={"long_name": "layer_thickness", "units": "m"})

    light_cfg = cfg.get("light", {})
    ds.attrs["title"] = out_cfg.get("title", "NP model light field and light-limited growth")
    ds.attrs["institution"] = out_cfg.get("institution", "")
    ds.attrs["source"] = "nplight"
    ds.attrs["history"] = f"{utc_now_iso()}: results written by nplight"
    ds.attrs["Conventions"] = out_cfg.get("Conventions", "CF-1.10")
    ds.attrs["averaging"] = "growth_rate" if bool(light_cfg.get("average_growth", False)) else "light_intensity"
    ds.attrs["nplight_config_json"] = json.dumps(cfg, separators=(",", ":"), sort_keys=True)

    ds.to_netcdf(out_path, encoding=encoding)


def load_state_netcdf_rank0(path: str, grid: RectilinearGrid) -> Dict[str, np.ndarray]:
    """Load b, P, N and Nr from NetCDF and check them against the grid.

    Variables may carry a leading `time` dimension; the last record is used.
    """
    out: Dict[str, np.ndarray] = {}
    with xr.open_dataset(path) as ds:
        for name in STATE_VARS:
            if name not in ds:
                raise ValueError(f"State file {path} is missing variable '{name}'")
            da = ds[name]
            if "time" in da.dims:
                da = da.isel(time=-1)
            arr = np.asarray(da.transpose("x", "y", "z").values, dtype=np.float64)
            if arr.shape != grid.shape:
                raise ValueError(f"State variable '{name}' has shape {arr.shape}, grid expects {grid.shape}")
            out[name] = arr
    return out
