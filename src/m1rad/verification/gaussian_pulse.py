"""Diffusing Gaussian radiation pulse in an optically thick medium.

In the diffusion limit the radiation energy obeys ``dE/dt = D d2E/dx2``
with ``D = c / (3 rho kappa)``. A Gaussian pulse keeps its shape:

    E(x, t) = exp(-x^2 / (4 w^2)) / (2 sqrt(pi w^2)),   w^2 = sigma^2 + D t

so its variance grows as ``2 w^2``. The gas is given a negligible heat
capacity and starts in equilibrium with the radiation, so it does not
alter the solution.

Usage::

    from m1rad.verification.gaussian_pulse import run_gaussian_pulse

    result = run_gaussian_pulse(nx=200, t_end=2.0)
    print(f"L1 error: {result.l1_error:.3%}")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from m1rad.config import ConstantsConfig, GridConfig, SimulationConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.boundary import BoundarySet, Outflow
from m1rad.core.state import RadiationGrid
from m1rad.engine import RadiationEngine
from m1rad.fluid.eos import IdealGasEOS
from m1rad.radiation.opacity import ConstantOpacity

logger = logging.getLogger(__name__)

_DEFAULTS = {
    "kappa": 2000.0,
    "rho": 1.0,
    "sigma": 0.025,
    "background": 1e-10,
}


@dataclass
class GaussianPulseResult:
    """Container for Gaussian pulse results.

    Attributes:
        nx: Number of cells.
        t_end: Final time.
        diffusion_coefficient: ``c / (3 rho kappa)``.
        x: Cell centers.
        erad: Simulated radiation energy profile.
        erad_exact: Analytic profile at ``t_end``.
        l1_error: Relative L1 error of the radiation energy.
        variance_growth: Increase of the profile variance.
        expected_variance_growth: ``2 D t_end``.
        energy_conservation: Final conservation ratio.
    """

    nx: int
    t_end: float
    diffusion_coefficient: float
    x: np.ndarray = field(default_factory=lambda: np.zeros(0))
    erad: np.ndarray = field(default_factory=lambda: np.zeros(0))
    erad_exact: np.ndarray = field(default_factory=lambda: np.zeros(0))
    l1_error: float = 0.0
    variance_growth: float = 0.0
    expected_variance_growth: float = 0.0
    energy_conservation: float = 1.0


def gaussian_pulse_analytical(x: np.ndarray, t: float, sigma: float, D: float) -> np.ndarray:
    """Analytic diffusion-limit profile (unit total energy)."""
    w2 = sigma**2 + D * t
    return np.exp(-(x**2) / (4.0 * w2)) / (2.0 * np.sqrt(np.pi * w2))


def _variance(x: np.ndarray, E: np.ndarray) -> float:
    total = np.sum(E)
    mean = np.sum(x * E) / total
    return float(np.sum((x - mean) ** 2 * E) / total)


def gaussian_pulse_config(
    nx: int = 200,
    stop_time: float = 2.0,
    **overrides,
) -> SimulationConfig:
    """Reference configuration: unit domain centered on the pulse."""
    settings = dict(
        grid=GridConfig(resolution=[nx], domain_length=[1.0], origin=[-0.5]),
        # Large molecular mass: negligible gas heat capacity
        constants=ConstantsConfig(c_light=1.0, a_rad=1.0, k_B=1.0, mean_molecular_mass=1e8),
        enable_v_over_c=False,
        erad_floor=0.0,
        cfl_rad=0.4,
        stop_time=stop_time,
        log_interval=500,
        problem="gaussian_pulse",
    )
    settings.update(overrides)
    return SimulationConfig(**settings)


def build_gaussian_pulse(config: SimulationConfig) -> tuple[ProblemPolicy, RadiationGrid]:
    """Policy and initial state (pulse at ``t = 0``) on ``config``'s grid."""
    p = {**_DEFAULTS, **config.problem_params}
    consts = config.constants
    eos = IdealGasEOS.from_constants(consts)
    grid = RadiationGrid.from_config(config.grid)
    ndim = grid.span.ndim
    policy = ProblemPolicy.build(
        eos, ConstantOpacity(p["kappa"]), BoundarySet.uniform(Outflow(), ndim),
    )

    x = grid.span.cell_centers()[0]
    E = gaussian_pulse_analytical(x, 0.0, p["sigma"], 0.0) + p["background"]
    T = (E / consts.a_rad) ** 0.25
    grid.gas_density[...] = p["rho"]
    grid.rad_energy[...] = E
    grid.gas_energy[...] = eos.egas_from_tgas(p["rho"], T)
    grid.rad_flux[...] = 0.0
    grid.gas_momentum[...] = 0.0
    return policy, grid


def run_gaussian_pulse(
    nx: int = 200,
    t_end: float = 2.0,
    **overrides,
) -> GaussianPulseResult:
    """Diffuse the pulse to ``t_end`` and compare with the analytic profile."""
    config = gaussian_pulse_config(nx=nx, stop_time=t_end, **overrides)
    p = {**_DEFAULTS, **config.problem_params}
    D = config.constants.c_light / (3.0 * p["rho"] * p["kappa"])

    policy, grid = build_gaussian_pulse(config)
    x = grid.span.cell_centers()[0]
    var0 = _variance(x, grid.rad_energy - p["background"])

    engine = RadiationEngine(config, policy, grid)
    summary = engine.run()

    E = engine.grid.rad_energy.copy()
    exact = gaussian_pulse_analytical(x, engine.time, p["sigma"], D) + p["background"]
    l1 = float(np.sum(np.abs(E - exact)) / np.sum(np.abs(exact)))
    growth = _variance(x, E - p["background"]) - var0

    result = GaussianPulseResult(
        nx=nx,
        t_end=engine.time,
        diffusion_coefficient=D,
        x=x,
        erad=E,
        erad_exact=exact,
        l1_error=l1,
        variance_growth=growth,
        expected_variance_growth=2.0 * D * engine.time,
        energy_conservation=summary["energy_conservation"],
    )
    logger.info(
        "Gaussian pulse nx=%d t=%.3f: L1=%.4f, variance growth %.4e (expected %.4e)",
        nx, result.t_end, l1, growth, result.expected_variance_growth,
    )
    return result
