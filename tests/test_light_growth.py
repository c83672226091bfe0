# -*- coding: utf-8 -*-
"""Light attenuation, mixed-layer averaging and growth response."""

from __future__ import annotations

import math

import numpy as np
import pytest

from nplight.fields import center_field, column_field
from nplight.grid import RectilinearGrid
from nplight.launcher import Architecture, KernelLaunchError, PoolConfig
from nplight.light import (
    AverageGrowthRate,
    AverageLightIntensity,
    LightParameters,
    compute_light_growth,
    select_averaging_strategy,
)

ARCHS = [
    Architecture(kind="serial"),
    Architecture(kind="threads", pool=PoolConfig(workers=3, min_columns_per_worker=1, chunk_size=2)),
    Architecture(kind="vectorized"),
]


def _grid(nz: int = 3, dz: float = 10.0, nx: int = 1, ny: int = 1, faces: np.ndarray | None = None) -> RectilinearGrid:
    if faces is None:
        faces = np.linspace(-nz * dz, 0.0, nz + 1)
    return RectilinearGrid(x=np.arange(nx, dtype=float), y=np.arange(ny, dtype=float), z_faces=faces)


def _stretched_grid(nx: int = 2, ny: int = 5) -> RectilinearGrid:
    faces = np.array([-300.0, -180.0, -100.0, -55.0, -30.0, -15.0, -6.0, 0.0])
    return _grid(nx=nx, ny=ny, faces=faces)


def _profile(z):
    return 100.0 * np.exp(0.05 * z)


def _michaelis(x):
    return x / (1.0 + x)


def _reference_column(P_col, h_val, z, dz, L, g, average_growth, chl2c, Kc):
    """Plain-Python evaluation of one column."""
    nz = len(z)
    out = [0.0] * nz
    chlinteg = 0.0
    for k in range(nz - 1, -1, -1):
        chlinteg = chlinteg + P_col[k] * chl2c * dz[k]
        local = L(z[k]) / np.exp(chlinteg * Kc)
        out[k] = g(local) if average_growth else local
    light_sum = 0.0
    dz_sum = 0.0
    for k in range(nz - 1, -1, -1):
        if z[k] > -h_val:
            light_sum += out[k] * dz[k]
            dz_sum += dz[k]
    for k in range(nz - 1, -1, -1):
        if z[k] > -h_val:
            out[k] = light_sum / dz_sum
    if not average_growth:
        out = [g(v) for v in out]
    return np.array(out, dtype=np.float64)


def _random_inputs(grid: RectilinearGrid, seed: int = 7):
    rng = np.random.default_rng(seed)
    P = center_field(grid, rng.uniform(0.0, 2.0, size=grid.shape))
    h = column_field(grid, rng.uniform(0.0, 120.0, size=grid.column_shape))
    # One column with no mixed layer, one mixed to the bottom.
    h.data[0, 0] = 0.0
    h.data[-1, -1] = 500.0
    return P, h


def test_uniform_column_without_biomass_gives_saturated_growth_everywhere() -> None:
    grid = _grid(nz=3, dz=10.0)
    P = center_field(grid)
    h = column_field(grid, np.full(grid.column_shape, 15.0))
    light = center_field(grid)

    compute_light_growth(light, h, P, lambda z: 100.0, _michaelis, average_growth=False)

    np.testing.assert_allclose(light.data, 100.0 / 101.0)


def _scalar_profile(z):
    return 100.0 * math.exp(0.05 * z)


def _clipped_michaelis(x):
    return x / (1.0 + x) if x > 0 else 0.0


@pytest.mark.parametrize("average_growth", [False, True])
@pytest.mark.parametrize("growth", [math.tanh, _clipped_michaelis], ids=["tanh", "branching"])
def test_default_launch_accepts_scalar_only_callables(growth, average_growth: bool) -> None:
    grid = _grid(nz=3, dz=10.0, nx=2, ny=3)
    P, h = _random_inputs(grid)
    light = center_field(grid)

    compute_light_growth(light, h, P, _scalar_profile, growth, average_growth=average_growth)

    for i in range(grid.Nx):
        for j in range(grid.Ny):
            expected = _reference_column(
                P.data[i, j], h.data[i, j], grid.z_centers, grid.dz_centers,
                _scalar_profile, growth, average_growth, 1.59, 0.041,
            )
            np.testing.assert_allclose(light.data[i, j], expected, rtol=1e-13)


@pytest.mark.parametrize("average_growth", [False, True])
@pytest.mark.parametrize("arch", ARCHS, ids=lambda a: a.kind)
def test_matches_plain_column_reference(arch: Architecture, average_growth: bool) -> None:
    grid = _stretched_grid()
    P, h = _random_inputs(grid)
    params = LightParameters(chl2c=1.59, Kc=0.041)
    light = center_field(grid)

    compute_light_growth(light, h, P, _profile, _michaelis, average_growth=average_growth, params=params, arch=arch)

    for i in range(grid.Nx):
        for j in range(grid.Ny):
            expected = _reference_column(
                P.data[i, j, :],
                h.data[i, j],
                grid.z_centers,
                grid.dz_centers,
                _profile,
                _michaelis,
                average_growth,
                params.chl2c,
                params.Kc,
            )
            np.testing.assert_allclose(light.data[i, j, :], expected, rtol=1e-12)


def test_architectures_agree() -> None:
    grid = _stretched_grid(nx=3, ny=4)
    P, h = _random_inputs(grid, seed=11)
    results = []
    for arch in ARCHS:
        light = center_field(grid)
        compute_light_growth(light, h, P, _profile, np.sqrt, arch=arch)
        results.append(light.data.copy())
    for other in results[1:]:
        np.testing.assert_allclose(other, results[0], rtol=1e-12)


@pytest.mark.parametrize("average_growth", [False, True])
def test_zero_mixed_layer_depth_keeps_attenuated_values(average_growth: bool) -> None:
    grid = _stretched_grid(nx=1, ny=1)
    P = center_field(grid, np.full(grid.shape, 0.5))
    h = column_field(grid)
    light = center_field(grid)

    compute_light_growth(light, h, P, _profile, _michaelis, average_growth=average_growth)

    params = LightParameters()
    chlinteg = np.cumsum((0.5 * params.chl2c * grid.dz_centers)[::-1])[::-1]
    expected = _michaelis(_profile(grid.z_centers) / np.exp(chlinteg * params.Kc))
    assert np.all(np.isfinite(light.data))
    np.testing.assert_allclose(light.data[0, 0, :], expected, rtol=1e-12)


def test_mixed_layer_cells_share_the_thickness_weighted_mean() -> None:
    grid = _stretched_grid(nx=1, ny=1)
    P = center_field(grid, np.full(grid.shape, 1.0))
    h = column_field(grid, np.full(grid.column_shape, 60.0))
    light = center_field(grid)
    before = center_field(grid)

    compute_light_growth(light, h, P, _profile, np.sqrt, average_growth=True)
    compute_light_growth(before, column_field(grid), P, _profile, np.sqrt, average_growth=True)

    inside = grid.z_centers > -60.0
    # Centers -3, -10.5, -22.5, -42.5 qualify; -77.5 does not.
    assert inside.tolist() == [False, False, False, True, True, True, True]
    col = light.data[0, 0, :]
    ref = before.data[0, 0, :]
    mean = np.sum(ref[inside] * grid.dz_centers[inside]) / np.sum(grid.dz_centers[inside])
    np.testing.assert_allclose(col[inside], mean, rtol=1e-12)
    np.testing.assert_array_equal(col[~inside], ref[~inside])


def test_layer_centered_on_the_boundary_is_excluded() -> None:
    grid = _grid(nz=3, dz=10.0)
    P = center_field(grid, np.array([[[0.0, 0.0, 5.0]]]))
    h = column_field(grid, np.full(grid.column_shape, 15.0))
    light = center_field(grid)
    unmixed = center_field(grid)

    compute_light_growth(light, h, P, lambda z: 100.0, lambda x: x)
    compute_light_growth(unmixed, column_field(grid), P, lambda z: 100.0, lambda x: x)

    # Only the top center (-5) is strictly above -15; the middle layer keeps its own value.
    np.testing.assert_allclose(light.data, unmixed.data, rtol=1e-14)


def test_repeated_calls_are_bit_identical() -> None:
    grid = _stretched_grid()
    P, h = _random_inputs(grid, seed=3)
    first = center_field(grid)
    second = center_field(grid)

    compute_light_growth(first, h, P, _profile, _michaelis)
    compute_light_growth(second, h, P, _profile, _michaelis)
    compute_light_growth(second, h, P, _profile, _michaelis)

    np.testing.assert_array_equal(first.data, second.data)


def test_more_biomass_never_brightens_layers_at_or_below() -> None:
    grid = _stretched_grid(nx=1, ny=1)
    rng = np.random.default_rng(5)
    base = rng.uniform(0.0, 1.0, size=grid.shape)
    k0 = 4
    bumped = base.copy()
    bumped[0, 0, k0] += 3.0
    h = column_field(grid)

    light_base = center_field(grid)
    light_bumped = center_field(grid)
    compute_light_growth(light_base, h, center_field(grid, base), _profile, lambda x: x)
    compute_light_growth(light_bumped, h, center_field(grid, bumped), _profile, lambda x: x)

    assert np.all(light_bumped.data[0, 0, : k0 + 1] < light_base.data[0, 0, : k0 + 1])
    np.testing.assert_array_equal(light_bumped.data[0, 0, k0 + 1 :], light_base.data[0, 0, k0 + 1 :])


def test_averaging_order_matters_for_concave_response() -> None:
    grid = _stretched_grid(nx=1, ny=1)
    P = center_field(grid, np.full(grid.shape, 2.0))
    h = column_field(grid, np.full(grid.column_shape, 60.0))
    grow_avg = center_field(grid)
    light_avg = center_field(grid)

    compute_light_growth(grow_avg, h, P, _profile, np.sqrt, average_growth=True)
    compute_light_growth(light_avg, h, P, _profile, np.sqrt, average_growth=False)

    inside = grid.z_centers > -60.0
    # Jensen: mean of sqrt is below sqrt of mean.
    assert np.all(grow_avg.data[0, 0, inside] < light_avg.data[0, 0, inside])
    np.testing.assert_allclose(grow_avg.data[0, 0, ~inside], light_avg.data[0, 0, ~inside], rtol=1e-12)


def test_zero_thickness_mixed_layer_yields_non_finite_without_raising() -> None:
    faces = np.array([-20.0, -10.0, 0.0, 0.0])
    grid = _grid(faces=faces)
    P = center_field(grid)
    # Only the zero-thickness top layer (center 0) lies above -h.
    h = column_field(grid, np.full(grid.column_shape, 2.0))
    light = center_field(grid)

    compute_light_growth(light, h, P, lambda z: 100.0, _michaelis)

    assert np.isnan(light.data[0, 0, 2])
    np.testing.assert_allclose(light.data[0, 0, :2], 100.0 / 101.0)


def test_no_attenuation_when_extinction_is_zero() -> None:
    grid = _stretched_grid(nx=1, ny=2)
    P = center_field(grid, np.full(grid.shape, 10.0))
    h = column_field(grid)
    light = center_field(grid)

    compute_light_growth(light, h, P, _profile, lambda x: x, params=LightParameters(chl2c=1.0, Kc=0.0))

    np.testing.assert_allclose(light.data, np.broadcast_to(_profile(grid.z_centers), grid.shape), rtol=1e-12)


@pytest.mark.parametrize("arch", ARCHS, ids=lambda a: a.kind)
def test_fault_leaves_output_untouched(arch: Architecture) -> None:
    grid = _grid(nz=3, nx=2, ny=3)
    # Biomass with one layer too few: the top layer index is out of bounds.
    P_short = np.zeros((2, 3, 2))
    h = column_field(grid, np.full(grid.column_shape, 15.0))
    light = center_field(grid, np.full(grid.shape, -1.0))

    with pytest.raises(KernelLaunchError) as excinfo:
        compute_light_growth(light, h, P_short, lambda z: 100.0, _michaelis, arch=arch)

    assert isinstance(excinfo.value.__cause__, IndexError)
    np.testing.assert_array_equal(light.data, -1.0)


def test_strategy_selection() -> None:
    assert isinstance(select_averaging_strategy(True), AverageGrowthRate)
    assert isinstance(select_averaging_strategy(False), AverageLightIntensity)
    assert select_averaging_strategy(False).defers_growth
    assert not select_averaging_strategy(True).defers_growth


def test_light_parameters_from_dict() -> None:
    params = LightParameters.from_dict({"chl2c": 2.0})
    assert params.chl2c == 2.0
    assert params.Kc == 0.041
