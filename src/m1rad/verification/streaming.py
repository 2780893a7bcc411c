"""Free-streaming radiation beam in a transparent medium.

A beam with ``E = E_beam`` and ``F = c_hat E_beam`` (reduced flux 1) enters
a transparent, nearly empty slab through ``x = 0``. The front must travel at
exactly the (reduced) speed of light, so at time ``t`` the half-maximum
point of the profile sits at ``x = c_hat t``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from m1rad.config import ConstantsConfig, GridConfig, SimulationConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.boundary import LOWER, UPPER, BoundarySet, FixedState, Outflow
from m1rad.core.state import RadiationGrid, Var
from m1rad.engine import RadiationEngine
from m1rad.fluid.eos import IdealGasEOS
from m1rad.radiation.closure import reduced_flux
from m1rad.radiation.opacity import ConstantOpacity
from m1rad.verification.marshak import front_position

logger = logging.getLogger(__name__)

_DEFAULTS = {
    "E_beam": 1.0,
    "E_initial": 1e-10,
    "rho": 1.0,
    "T_gas": 1e-3,
}


@dataclass
class StreamingResult:
    """Container for free-streaming results.

    Attributes:
        nx: Number of cells.
        t_end: Final time.
        c_hat: Reduced speed of light used.
        x: Cell centers.
        erad: Radiation energy profile.
        front_position: Half-maximum position of the beam.
        expected_position: ``c_hat * t_end``.
        max_reduced_flux: Largest ``|F| / (c_hat E)`` in the final state.
    """

    nx: int
    t_end: float
    c_hat: float
    x: np.ndarray = field(default_factory=lambda: np.zeros(0))
    erad: np.ndarray = field(default_factory=lambda: np.zeros(0))
    front_position: float = 0.0
    expected_position: float = 0.0
    max_reduced_flux: float = 0.0


def streaming_config(
    nx: int = 200,
    c_hat: float | None = None,
    stop_time: float = 0.5,
    **overrides,
) -> SimulationConfig:
    """Unit slab, ``c = a = 1``."""
    settings = dict(
        grid=GridConfig(resolution=[nx], domain_length=[1.0]),
        constants=ConstantsConfig(c_light=1.0, c_hat=c_hat, a_rad=1.0, k_B=1.0),
        enable_v_over_c=False,
        erad_floor=1e-14,
        cfl_rad=0.4,
        stop_time=stop_time,
        problem="streaming",
    )
    settings.update(overrides)
    return SimulationConfig(**settings)


def build_streaming(config: SimulationConfig) -> tuple[ProblemPolicy, RadiationGrid]:
    """Transparent slab with a beam entering through the lower x face."""
    p = {**_DEFAULTS, **config.problem_params}
    consts = config.constants
    eos = IdealGasEOS.from_constants(consts)
    grid = RadiationGrid.from_config(config.grid)
    ndim = grid.span.ndim

    faces = {(axis, side): Outflow() for axis in range(ndim) for side in (LOWER, UPPER)}
    faces[(0, LOWER)] = FixedState({
        Var.RAD_ENERGY: p["E_beam"],
        Var.X1_RAD_FLUX: consts.chat * p["E_beam"],
    })
    policy = ProblemPolicy.build(eos, ConstantOpacity(0.0), BoundarySet(faces, ndim))

    grid.gas_density[...] = p["rho"]
    grid.gas_energy[...] = eos.egas_from_tgas(p["rho"], p["T_gas"])
    grid.rad_energy[...] = p["E_initial"]
    grid.rad_flux[...] = 0.0
    grid.gas_momentum[...] = 0.0
    return policy, grid


def run_streaming(
    nx: int = 200,
    c_hat: float | None = None,
    t_end: float = 0.5,
    **overrides,
) -> StreamingResult:
    """Propagate the beam to ``t_end`` and locate its front."""
    config = streaming_config(nx=nx, c_hat=c_hat, stop_time=t_end, **overrides)
    policy, grid = build_streaming(config)
    engine = RadiationEngine(config, policy, grid)
    engine.run()

    p = {**_DEFAULTS, **config.problem_params}
    chat = config.constants.chat
    x = engine.grid.span.cell_centers()[0]
    E = engine.grid.rad_energy.copy()
    f = reduced_flux(E, engine.grid.rad_flux, chat, config.erad_floor)

    result = StreamingResult(
        nx=nx,
        t_end=engine.time,
        c_hat=chat,
        x=x,
        erad=E,
        front_position=front_position(x, E, 0.5 * p["E_beam"]),
        expected_position=chat * engine.time,
        max_reduced_flux=float(np.max(np.sqrt(np.sum(f**2, axis=0)))),
    )
    logger.info(
        "Streaming nx=%d c_hat=%.3g: front at %.4f (expected %.4f)",
        nx, chat, result.front_position, result.expected_position,
    )
    return result
