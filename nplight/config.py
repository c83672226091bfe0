# -*- coding: utf-8 -*-
"""Configuration handling for nplight.

The model is configured via:
1) A JSON configuration file (config.json).
2) Optional CLI overrides (handled in cli.py).
"""

# Import JSON for reading configuration files.
import json

# Import typing primitives.
from typing import Any, Dict

# CF conventions string written to every output file.
CF_CONVENTIONS = "CF-1.10"


def default_config() -> Dict[str, Any]:
    """Return a complete default configuration dictionary."""
    return {
        "grid": {
            # Flat x when Nx == 1.
            "Nx": 1,
            "Ny": 100,
            "sponge": 20,
            "Nz": 48,
            "H": 1000.0,
            "dx_m": 1000.0,
            "dy_m": 1000.0,
            # "cosine" clusters layers near the surface, "uniform" does not.
            "z_spacing": "cosine",
        },
        "light": {
            "chl2c": 1.59,
            "Kc": 0.041,
            "Kw": 0.059,
            "L0": 100.0,
            "average_growth": False,
        },
        "biology": {
            "mu0_per_day": 1.0,
            "m_per_day": 0.015,
            "kn": 0.75,
            "kr": 0.5,
            "alpha_per_day": 0.0538,
        },
        "mixed_layer": {
            "delta_rho": 0.03,
            "g": 9.82,
            "rho0": 1026.0,
        },
        "initial_conditions": {
            "cz": -200.0,
            "P0": 0.4,
            "N0": 13.0,
            "Nr0": 0.0,
            "front_center_m": 0.0,
            "front_width_m": 12000.0,
            "front_amplitude": 0.2,
        },
        "state": {
            "in": None,
        },
        "model": {
            "start_time": "2025-01-01T00:00:00Z",
        },
        "output": {
            "out_netcdf": "np_light.nc",
            "Conventions": CF_CONVENTIONS,
            "title": "NP model light field and light-limited growth",
            "institution": "",
            "fill_value": -9999.0,
        },
        "compute": {
            "device": "cpu",
            # serial | threads | vectorized
            "launcher": "vectorized",
            "shared_memory": {
                "workers": None,
                "min_columns_per_worker": 64,
                "chunk_size": 256,
            },
            "mpi": {
                "enabled": None,
                "min_rows_per_rank": 1,
            },
        },
    }


def load_json(path: str) -> Dict[str, Any]:
    """Load a JSON file into a Python dictionary."""
    # Open the file with UTF-8 encoding.
    with open(path, "r", encoding="utf-8") as f:
        # Parse JSON into Python dict.
        return json.load(f)


def deep_update(base: Dict[str, Any], other: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dict `other` into dict `base` (non-destructive)."""
    # Start from a shallow copy of base.
    out = dict(base)
    # Iterate keys from other.
    for k, v in other.items():
        # If both sides are dicts, merge recursively.
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_update(out[k], v)  # type: ignore[arg-type]
        else:
            # Otherwise override.
            out[k] = v
    # Return merged dictionary.
    return out
