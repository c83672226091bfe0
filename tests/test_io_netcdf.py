# -*- coding: utf-8 -*-
"""NetCDF output and state input."""

from __future__ import annotations

import netCDF4
import numpy as np
import pytest
import xarray as xr

from nplight.config import default_config
from nplight.grid import build_grid
from nplight.initial_conditions import initial_state
from nplight.io_netcdf import load_state_netcdf_rank0, write_results_netcdf_rank0


def _grid():
    return build_grid({"Ny": 3, "sponge": 1, "Nz": 5, "H": 100.0})


def test_results_file_layout(tmp_path) -> None:
    grid = _grid()
    state = initial_state(grid, {})
    fields = dict(state)
    fields["light"] = np.full(grid.shape, 1e-5)
    h = np.full(grid.column_shape, 30.0)
    cfg = default_config()
    out = tmp_path / "out.nc"

    write_results_netcdf_rank0(str(out), cfg, grid, fields, h)

    with xr.open_dataset(out) as ds:
        assert ds["light"].dims == ("time", "x", "y", "z")
        assert ds["h"].dims == ("time", "x", "y")
        assert ds["light"].attrs["units"] == "s-1"
        assert ds.attrs["Conventions"] == "CF-1.10"
        assert ds.attrs["averaging"] == "light_intensity"
        np.testing.assert_allclose(ds["z"].values, grid.z_centers)
        np.testing.assert_allclose(ds["dz"].values, grid.dz_centers)
        np.testing.assert_allclose(ds["h"].values[0], 30.0)


def test_results_file_is_netcdf4_with_fill_values(tmp_path) -> None:
    grid = _grid()
    out = tmp_path / "fill.nc"
    write_results_netcdf_rank0(str(out), default_config(), grid, initial_state(grid, {}), np.zeros(grid.column_shape))

    with netCDF4.Dataset(str(out)) as nc:
        assert nc.file_format == "NETCDF4"
        assert nc.variables["P"].dimensions == ("time", "x", "y", "z")
        assert nc.variables["P"].getncattr("_FillValue") == -9999.0
        assert nc.variables["h"].getncattr("_FillValue") == -9999.0


def test_written_state_reads_back(tmp_path) -> None:
    grid = _grid()
    state = initial_state(grid, {"P0": 0.7})
    out = tmp_path / "state.nc"
    write_results_netcdf_rank0(str(out), default_config(), grid, state, np.zeros(grid.column_shape))

    loaded = load_state_netcdf_rank0(str(out), grid)

    for name in ("b", "P", "N", "Nr"):
        np.testing.assert_allclose(loaded[name], state[name])


def test_state_grid_mismatch_is_rejected(tmp_path) -> None:
    grid = _grid()
    out = tmp_path / "state.nc"
    write_results_netcdf_rank0(str(out), default_config(), grid, initial_state(grid, {}), np.zeros(grid.column_shape))

    other = build_grid({"Ny": 3, "sponge": 1, "Nz": 6, "H": 100.0})
    with pytest.raises(ValueError):
        load_state_netcdf_rank0(str(out), other)


def test_missing_state_variable_is_rejected(tmp_path) -> None:
    grid = _grid()
    state = initial_state(grid, {})
    state.pop("Nr")
    out = tmp_path / "partial.nc"
    write_results_netcdf_rank0(str(out), default_config(), grid, state, np.zeros(grid.column_shape))

    with pytest.raises(ValueError):
        load_state_netcdf_rank0(str(out), grid)
