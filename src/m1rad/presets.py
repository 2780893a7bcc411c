"""Named problem setups.

Each preset maps a problem name to a builder that turns a validated
:class:`~m1rad.config.SimulationConfig` into a ``(policy, grid)`` pair with
the initial state filled in. The CLI looks up ``config.problem`` here.

Available problems:
- equilibrium: uniform gas and radiation at the same temperature (no evolution)
- su_olson: non-equilibrium Marshak wave with a volumetric source
- marshak: boundary-driven Marshak wave
- gaussian_pulse: diffusing Gaussian pulse in an optically thick medium
- streaming: free-streaming beam in a transparent slab

Usage:
    from m1rad.presets import build_problem
    policy, grid = build_problem(config)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from m1rad.config import SimulationConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.boundary import BoundarySet, Reflecting
from m1rad.core.state import RadiationGrid
from m1rad.errors import ConfigurationError
from m1rad.fluid.eos import IdealGasEOS
from m1rad.radiation.opacity import ConstantOpacity
from m1rad.verification.gaussian_pulse import build_gaussian_pulse
from m1rad.verification.marshak import build_marshak
from m1rad.verification.streaming import build_streaming
from m1rad.verification.su_olson import build_su_olson

Builder = Callable[[SimulationConfig], tuple[ProblemPolicy, RadiationGrid]]


def build_equilibrium(config: SimulationConfig) -> tuple[ProblemPolicy, RadiationGrid]:
    """Uniform ideal gas in radiative equilibrium inside reflecting walls.

    Parameters (``problem_params``): ``rho`` (1), ``T`` (1), ``kappa`` (1).
    """
    p = {"rho": 1.0, "T": 1.0, "kappa": 1.0, **config.problem_params}
    eos = IdealGasEOS.from_constants(config.constants)
    grid = RadiationGrid.from_config(config.grid)
    policy = ProblemPolicy.build(
        eos, ConstantOpacity(p["kappa"]), BoundarySet.uniform(Reflecting(), grid.span.ndim),
    )
    grid.gas_density[...] = p["rho"]
    grid.gas_energy[...] = eos.egas_from_tgas(p["rho"], p["T"])
    grid.rad_energy[...] = config.constants.a_rad * p["T"] ** 4
    grid.rad_flux[...] = 0.0
    grid.gas_momentum[...] = 0.0
    return policy, grid


_PRESETS: dict[str, dict[str, Any]] = {
    "equilibrium": {
        "description": "Uniform gas and radiation in thermal equilibrium",
        "builder": build_equilibrium,
    },
    "su_olson": {
        "description": "Su-Olson non-equilibrium Marshak wave (volumetric source)",
        "builder": build_su_olson,
    },
    "marshak": {
        "description": "Boundary-driven Marshak wave into a cold slab",
        "builder": build_marshak,
    },
    "gaussian_pulse": {
        "description": "Diffusing Gaussian radiation pulse",
        "builder": build_gaussian_pulse,
    },
    "streaming": {
        "description": "Free-streaming beam in a transparent slab",
        "builder": build_streaming,
    },
}


def list_presets() -> list[dict[str, str]]:
    """Return name and description of every available problem."""
    return [{"name": name, "description": entry["description"]} for name, entry in _PRESETS.items()]


def get_preset_names() -> list[str]:
    """Return list of all preset names."""
    return list(_PRESETS.keys())


def get_builder(name: str) -> Builder:
    """Return the builder registered under ``name``.

    Raises:
        ConfigurationError: If the problem name is not registered.
    """
    if name not in _PRESETS:
        available = ", ".join(_PRESETS.keys())
        raise ConfigurationError(f"Unknown problem '{name}'. Available: {available}")
    return _PRESETS[name]["builder"]


def build_problem(config: SimulationConfig) -> tuple[ProblemPolicy, RadiationGrid]:
    """Policy and initial grid for ``config.problem``."""
    return get_builder(config.problem)(config)
