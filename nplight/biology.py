# -*- coding: utf-8 -*-
"""NP (nutrient / phytoplankton) biology.

Phytoplankton `P` grows on nitrate `N` and ammonium `Nr` at the light-limited
rate produced by :func:`nplight.light.compute_light_growth`; quadratic
mortality returns biomass to the ammonium pool.
"""

from __future__ import annotations

# Import dataclass for parameter containers.
from dataclasses import dataclass

# Import functools for closures over parameters.
from functools import partial

# Import typing primitives.
from typing import Any, Callable, Dict

# Import numpy.
import numpy as np

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class NPParameters:
    """Biological constants, rates in s^-1."""

    mu0: float = 1.0 / SECONDS_PER_DAY
    m: float = 0.015 / SECONDS_PER_DAY
    kn: float = 0.75
    kr: float = 0.5
    alpha: float = 0.0538 / SECONDS_PER_DAY
    L0: float = 100.0
    Kw: float = 0.059

    @classmethod
    def from_config(cls, bio_cfg: dict, light_cfg: dict) -> "NPParameters":
        """Build from the `biology` and `light` sections (per-day rates)."""
        return cls(
            mu0=float(bio_cfg.get("mu0_per_day", 1.0)) / SECONDS_PER_DAY,
            m=float(bio_cfg.get("m_per_day", 0.015)) / SECONDS_PER_DAY,
            kn=float(bio_cfg.get("kn", 0.75)),
            kr=float(bio_cfg.get("kr", 0.5)),
            alpha=float(bio_cfg.get("alpha_per_day", 0.0538)) / SECONDS_PER_DAY,
            L0=float(light_cfg.get("L0", 100.0)),
            Kw=float(light_cfg.get("Kw", 0.059)),
        )


def surface_light(z: Any, L0: float = 100.0, Kw: float = 0.059) -> Any:
    """Light at depth z without self-shading, attenuated by clear water only."""
    return L0 * np.exp(z * Kw)


def smith_growth(light: Any, mu0: float, alpha: float) -> Any:
    """Smith (1936) saturating growth: mu0 * aI / sqrt(mu0^2 + (aI)^2)."""
    ai = light * alpha
    return mu0 * ai / np.sqrt(mu0 ** 2 + ai ** 2)


def light_function_from_params(params: NPParameters) -> Callable[[Any], Any]:
    return partial(surface_light, L0=params.L0, Kw=params.Kw)


def growth_function_from_params(params: NPParameters) -> Callable[[Any], Any]:
    return partial(smith_growth, mu0=params.mu0, alpha=params.alpha)


def nitrate_limitation(N: Any, Nr: Any, kn: float, kr: float) -> Any:
    """Nitrate uptake limitation, inhibited by ammonium."""
    return (N / (N + kn)) * (kr / (Nr + kr))


def ammonium_limitation(Nr: Any, kr: float) -> Any:
    return Nr / (Nr + kr)


def P_forcing(light: Any, P: Any, N: Any, Nr: Any, params: NPParameters) -> Any:
    uptake = nitrate_limitation(N, Nr, params.kn, params.kr) + ammonium_limitation(Nr, params.kr)
    return light * uptake * P - params.m * P ** 2


def N_forcing(light: Any, P: Any, N: Any, Nr: Any, params: NPParameters) -> Any:
    return -light * nitrate_limitation(N, Nr, params.kn, params.kr) * P


def Nr_forcing(light: Any, P: Any, N: Any, Nr: Any, params: NPParameters) -> Any:
    return -light * ammonium_limitation(Nr, params.kr) * P + params.m * P ** 2


def compute_np_tendencies(light: Any, P: Any, N: Any, Nr: Any, params: NPParameters) -> Dict[str, Any]:
    """Return the P, N and Nr tendencies (per second) for the current state.

    `light` is the growth-rate field written by compute_light_growth.
    The three tendencies sum to zero in every cell.
    """
    return {
        "P": P_forcing(light, P, N, Nr, params),
        "N": N_forcing(light, P, N, Nr, params),
        "Nr": Nr_forcing(light, P, N, Nr, params),
    }
