"""Boundary-driven (classical) Marshak wave.

A cold slab is irradiated at ``x = 0`` by an isotropic half-space source at
temperature ``T_H`` (incident flux ``c_hat a T_H^4 / 4`` into the domain);
the far wall is reflecting. The material heat capacity is ``alpha T^3``
with ``alpha = 4 a / epsilon`` (as in the Su-Olson problem), which makes the
problem linear in ``u = E / (a T_H^4)`` and ``v = (T / T_H)^4``.

In the P1 limit (Eddington factor 1/3) the linear system

    du/dtau + dF/dx = v - u,   dF/dtau + (1/3) du/dx = -F,   dv/dtau = eps (u - v)

has an exact Laplace-space solution on the half line. The boundary state
``(E_H, flux_fraction c E_H)`` fixes the incoming characteristic
``w = u + sqrt(3) F``, so

    u(x, s) = (w / s) exp(-k x) / (1 + k / (sqrt(3) (1 + s))),
    k^2 = 3 s (1 + s) (1 + eps + s) / (eps + s),

which :func:`marshak_p1_solution` inverts with the fixed Talbot contour
(Abate & Valko 2004). The M1 closure reduces to P1 where ``|f|`` is small,
so the radiation temperature behind the front is checked against it.
A tabulated profile (two columns ``x  T_gas``, read with ``numpy.loadtxt``)
can be supplied as an additional reference.

Usage::

    from m1rad.verification.marshak import run_marshak

    result = run_marshak(nx=200, t_end=10.0)
    print(f"T_rad relative L2 error: {result.l2_error:.3%}")

References
----------
- Su B. & Olson G.L., JQSRT 56, 337 (1996).
- Abate J. & Valko P.P., Int. J. Numer. Meth. Eng. 60, 979 (2004).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from m1rad.config import ConstantsConfig, GridConfig, SimulationConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.boundary import LOWER, UPPER, BoundarySet, MarshakIncident, Reflecting
from m1rad.core.state import RadiationGrid
from m1rad.engine import RadiationEngine
from m1rad.fluid.eos import CubicHeatCapacityEOS
from m1rad.radiation.opacity import ConstantOpacity

logger = logging.getLogger(__name__)

_DEFAULTS = {
    "epsilon": 1.0,
    "kappa": 1.0,
    "rho": 1.0,
    "T_hot": 1.0,
    "T_initial": 1e-2,
    "flux_fraction": 0.25,
}

_SQRT3 = np.sqrt(3.0)

# Reference points cover this fraction of the slab, away from the far wall
_REFERENCE_EXTENT = 0.8
_REFERENCE_POINTS = 100


@dataclass
class MarshakResult:
    """Container for Marshak wave results.

    Attributes:
        nx: Number of cells.
        t_end: Final time.
        x: Cell centers.
        erad: Radiation energy density profile.
        tgas: Gas temperature profile.
        trad: Radiation temperature ``(E / a)^(1/4)``.
        x_reference: Positions of the P1 reference profile.
        trad_reference: P1 radiation temperature at ``x_reference``.
        front_position: First position where ``T_gas`` falls below half of ``T_H``.
        absorbed_energy: Energy gained by the slab (gas plus radiation).
        l2_error: Relative L2 error of ``T_rad`` against the P1 solution
            (nan when ``c_hat != c``).
        file_l2_error: Relative L2 error of ``T_gas`` against a tabulated
            reference file (nan without one).
        steps: Timesteps taken.
    """

    nx: int
    t_end: float
    x: np.ndarray = field(default_factory=lambda: np.zeros(0))
    erad: np.ndarray = field(default_factory=lambda: np.zeros(0))
    tgas: np.ndarray = field(default_factory=lambda: np.zeros(0))
    trad: np.ndarray = field(default_factory=lambda: np.zeros(0))
    x_reference: np.ndarray = field(default_factory=lambda: np.zeros(0))
    trad_reference: np.ndarray = field(default_factory=lambda: np.zeros(0))
    front_position: float = 0.0
    absorbed_energy: float = 0.0
    l2_error: float = float("nan")
    file_l2_error: float = float("nan")
    steps: int = 0


def marshak_p1_solution(
    x: np.ndarray,
    tau: float,
    epsilon: float = 1.0,
    incoming: float = 1.0 + 0.25 * _SQRT3,
    n_terms: int = 24,
) -> np.ndarray:
    """Radiation energy ``u = E / (a T_H^4)`` of the P1 Marshak wave.

    Args:
        x: Positions in mean free paths (``kappa rho x``).
        tau: Time in units of ``1 / (c kappa rho)``.
        epsilon: Heat-capacity parameter of the ``alpha = 4 a / epsilon`` material.
        incoming: Incoming characteristic ``u + sqrt(3) F / c`` at ``x = 0``.
        n_terms: Number of Talbot contour nodes.

    Returns:
        ``u`` at each ``x``. Zero ahead of the characteristic front
        ``x = tau / sqrt(3)``.
    """
    x = np.atleast_1d(np.asarray(x, dtype=float))
    u = np.zeros_like(x)
    # Invert exp(sqrt(3) x s) u(x, s) at the retarded time; it has no delay
    t_ret = tau - _SQRT3 * x
    behind = t_ret > 0.0
    if not behind.any():
        return u

    xs = x[behind][:, None]
    tr = t_ret[behind][:, None]
    r = 2.0 * n_terms / (5.0 * tr)

    def transform(s):
        k = _SQRT3 * np.sqrt(s) * np.sqrt(1.0 + s) * np.sqrt(1.0 + epsilon + s) / np.sqrt(epsilon + s)
        return (incoming / s) * np.exp(-(k - _SQRT3 * s) * xs) / (1.0 + k / (_SQRT3 * (1.0 + s)))

    theta = np.pi * np.arange(1, n_terms) / n_terms
    cot = 1.0 / np.tan(theta)
    s = r * theta * (cot + 1j)
    sigma = theta + (theta * cot - 1.0) * cot

    head = 0.5 * np.real(transform(r + 0j)) * np.exp(r * tr)
    body = np.sum(np.real(np.exp(tr * s) * transform(s) * (1.0 + 1j * sigma)), axis=1, keepdims=True)
    u[behind] = (r / n_terms * (head + body))[:, 0]
    return u


def marshak_config(
    nx: int = 200,
    length: float = 10.0,
    stop_time: float = 10.0,
    **overrides,
) -> SimulationConfig:
    """Reference configuration for the Marshak wave."""
    settings = dict(
        grid=GridConfig(resolution=[nx], domain_length=[length]),
        constants=ConstantsConfig(c_light=1.0, a_rad=1.0, k_B=1.0, mean_molecular_mass=1.0),
        enable_v_over_c=False,
        erad_floor=0.0,
        cfl_rad=0.4,
        stop_time=stop_time,
        initial_dt=1e-9,
        max_dt=1e-2,
        log_interval=200,
        problem="marshak",
    )
    settings.update(overrides)
    return SimulationConfig(**settings)


def build_marshak(config: SimulationConfig) -> tuple[ProblemPolicy, RadiationGrid]:
    """Policy and initial state for the Marshak wave on ``config``'s grid."""
    p = {**_DEFAULTS, **config.problem_params}
    consts = config.constants
    a_rad = consts.a_rad

    eos = CubicHeatCapacityEOS(alpha=4.0 * a_rad / p["epsilon"], gamma=consts.gamma)
    grid = RadiationGrid.from_config(config.grid)
    ndim = grid.span.ndim

    faces = {(axis, side): Reflecting() for axis in range(ndim) for side in (LOWER, UPPER)}
    faces[(0, LOWER)] = MarshakIncident(p["T_hot"], a_rad, consts.chat, p["flux_fraction"])
    policy = ProblemPolicy.build(eos, ConstantOpacity(p["kappa"]), BoundarySet(faces, ndim))

    rho = p["rho"]
    T0 = p["T_initial"]
    grid.gas_density[...] = rho
    grid.gas_energy[...] = eos.egas_from_tgas(rho, T0)
    grid.rad_energy[...] = a_rad * T0**4
    grid.rad_flux[...] = 0.0
    grid.gas_momentum[...] = 0.0
    return policy, grid


def front_position(x: np.ndarray, profile: np.ndarray, level: float) -> float:
    """First position where ``profile`` drops below ``level`` (linear interpolation)."""
    below = np.nonzero(profile < level)[0]
    if below.size == 0:
        return float(x[-1])
    i = int(below[0])
    if i == 0:
        return float(x[0])
    x0, x1 = x[i - 1], x[i]
    y0, y1 = profile[i - 1], profile[i]
    return float(x0 + (level - y0) * (x1 - x0) / (y1 - y0))


def load_reference(path: str | Path) -> tuple[np.ndarray, np.ndarray]:
    """Read a two-column ``x  T_gas`` reference profile."""
    table = np.loadtxt(path, ndmin=2)
    if table.shape[1] < 2:
        raise ValueError(f"reference file {path} needs two columns (x, T_gas)")
    return table[:, 0], table[:, 1]


def _relative_l2(numeric: np.ndarray, exact: np.ndarray) -> float:
    return float(np.sqrt(np.sum((numeric - exact) ** 2) / np.sum(exact**2)))


def run_marshak(
    nx: int = 200,
    length: float = 10.0,
    t_end: float = 10.0,
    reference: str | Path | None = None,
    **overrides,
) -> MarshakResult:
    """Run the Marshak wave and compare against the P1 solution.

    Args:
        nx: Number of cells.
        length: Slab thickness in mean free paths.
        t_end: Final time.
        reference: Optional two-column ``x  T_gas`` reference file.
        **overrides: Extra :class:`SimulationConfig` fields.
    """
    config = marshak_config(nx=nx, length=length, stop_time=t_end, **overrides)
    p = {**_DEFAULTS, **config.problem_params}
    consts = config.constants
    policy, grid = build_marshak(config)
    engine = RadiationEngine(config, policy, grid)
    e_start = engine.total_energy()
    summary = engine.run()

    x = engine.grid.span.cell_centers()[0]
    tgas = policy.gas_temperature(engine.grid.interior_data())
    erad = engine.grid.rad_energy.copy()
    trad = (np.maximum(erad, 0.0) / consts.a_rad) ** 0.25
    result = MarshakResult(
        nx=nx,
        t_end=engine.time,
        x=x,
        erad=erad,
        tgas=tgas,
        trad=trad,
        front_position=front_position(x, tgas, 0.5 * p["T_hot"]),
        absorbed_energy=engine.total_energy() - e_start,
        steps=summary["steps"],
    )

    if consts.chat == consts.c_light:
        chi = p["kappa"] * p["rho"]
        x_ref = (np.arange(_REFERENCE_POINTS) + 0.5) * (_REFERENCE_EXTENT * length / _REFERENCE_POINTS)
        u = marshak_p1_solution(
            chi * x_ref,
            consts.c_light * chi * engine.time,
            epsilon=p["epsilon"],
            incoming=1.0 + _SQRT3 * p["flux_fraction"],
        )
        result.x_reference = x_ref
        result.trad_reference = p["T_hot"] * np.maximum(u, 0.0) ** 0.25
        result.l2_error = _relative_l2(np.interp(x_ref, x, trad), result.trad_reference)

    if reference is not None:
        x_file, t_file = load_reference(reference)
        result.file_l2_error = _relative_l2(np.interp(x_file, x, tgas), t_file)

    logger.info(
        "Marshak nx=%d t=%.2f: front at x=%.4f, absorbed energy %.4e, T_rad L2=%.4f",
        nx, result.t_end, result.front_position, result.absorbed_energy, result.l2_error,
    )
    return result
