"""Implicit matter-radiation coupling (absorption, emission, flux relaxation).

For every cell independently, over one timestep ``dt``, solves the stiff
exchange

    dE/dt   = c_hat rho kappa_P (a T^4 - E) + S
    dE_g/dt = -(c/c_hat) c_hat rho kappa_P (a T^4 - E)
    dF/dt   = -c_hat rho kappa_R (F - F_eq)

with backward Euler. Eliminating the radiation energy leaves a single
nonlinear equation for the gas temperature

    R(T) = E_int(T) - E_int0 + (c/c_hat) (E(T) - E0) = 0
    E(T) = (E0 + d a T^4) / (1 + d),     d = dt c_hat rho kappa_P(T)

solved with a safeguarded Newton iteration on the bracket
``[0, T(E_int0 + (c/c_hat) E0)]`` (all energy in the gas), falling back to
bisection for cells that do not converge. The total
``E_int + (c/c_hat) E`` is conserved exactly (up to the source term).

With first-order v/c terms enabled, the flux relaxes toward
``F_eq = v E + P . v`` and the momentum lost by the radiation is given to
the gas, together with the associated kinetic energy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from m1rad.config import ConstantsConfig, CouplingConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.state import GAS_MOMENTUM, RAD_FLUX, Var
from m1rad.errors import CouplingFailure
from m1rad.radiation.closure import pressure_tensor, reduced_flux

logger = logging.getLogger(__name__)

_TINY = 1e-300


@dataclass
class CouplingStats:
    """Diagnostics of one coupling solve.

    Attributes:
        iterations: Newton plus bisection iterations of the slowest cell.
        bisection_cells: Cells that needed the bisection fallback.
        floor_clamped: Cells whose radiation energy was clamped to the floor.
        max_residual: Largest final residual relative to the cell's total energy.
        source_energy: Radiation energy density added by the source, summed
            over cells (multiply by the cell volume for an energy).
    """

    iterations: int = 0
    bisection_cells: int = 0
    floor_clamped: int = 0
    max_residual: float = 0.0
    source_energy: float = 0.0


def _worst_cell(values: np.ndarray) -> tuple[int, ...]:
    return tuple(int(i) for i in np.unravel_index(int(np.nanargmax(values)), values.shape))


class CouplingSolver:
    """Per-cell implicit energy and momentum exchange.

    Args:
        constants: Physical constants.
        settings: Tolerance and iteration limits.
        erad_floor: Radiation energy floor.
        policy: Problem policy (opacities and energy-temperature relation).
        enable_v_over_c: Include first-order v/c terms and momentum exchange.
    """

    def __init__(
        self,
        constants: ConstantsConfig,
        settings: CouplingConfig,
        erad_floor: float,
        policy: ProblemPolicy,
        enable_v_over_c: bool,
    ) -> None:
        self.c = constants.c_light
        self.c_hat = constants.chat
        self.a_rad = constants.a_rad
        self.settings = settings
        self.erad_floor = erad_floor
        self.policy = policy
        self.enable_v_over_c = enable_v_over_c

    def _exchange(
        self,
        T: np.ndarray,
        rho: np.ndarray,
        E0: np.ndarray,
        eint0: np.ndarray,
        dt: float,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Residual, its derivative, and the radiation energy at temperature T."""
        ratio = self.c / self.c_hat
        d = dt * self.c_hat * rho * self.policy.planck_opacity(rho, T)
        aT4 = self.a_rad * T**4
        E = (E0 + d * aT4) / (1.0 + d)
        R = self.policy.egas_from_tgas(rho, T) - eint0 + ratio * (E - E0)
        dR = self.policy.egas_temp_derivative(rho, T) + ratio * d * 4.0 * self.a_rad * T**3 / (1.0 + d)
        return R, dR, E

    def solve_temperature(
        self,
        rho: np.ndarray,
        E0: np.ndarray,
        eint0: np.ndarray,
        dt: float,
        stats: CouplingStats | None = None,
    ) -> np.ndarray:
        """Gas temperature after the implicit exchange.

        Args:
            rho: Gas density.
            E0: Radiation energy before the exchange (source already added).
            eint0: Gas internal energy before the exchange.
            dt: Timestep.
            stats: Optional stats object updated in place.

        Returns:
            Converged temperature per cell.

        Raises:
            CouplingFailure: Some cell did not converge within the limits.
        """
        cfg = self.settings
        stats = stats if stats is not None else CouplingStats()
        ratio = self.c / self.c_hat
        etot = eint0 + ratio * E0
        scale = cfg.tolerance * np.maximum(np.abs(etot), _TINY)

        T_lo = np.zeros_like(etot)
        T_hi = self.policy.tgas_from_egas(rho, etot)
        T = np.clip(self.policy.tgas_from_egas(rho, np.maximum(eint0, 0.0)), T_lo, T_hi)

        iterations = 0
        R, dR, _ = self._exchange(T, rho, E0, eint0, dt)
        active = ~(np.abs(R) <= scale)
        while active.any() and iterations < cfg.max_newton_iter:
            iterations += 1
            T_hi = np.where(active & (R > 0.0), T, T_hi)
            T_lo = np.where(active & (R < 0.0), T, T_lo)
            with np.errstate(divide="ignore", invalid="ignore"):
                T_newton = T - R / dR
            outside = ~((T_newton > T_lo) & (T_newton < T_hi))
            T_next = np.where(outside, 0.5 * (T_lo + T_hi), T_newton)
            T = np.where(active, T_next, T)
            R, dR, _ = self._exchange(T, rho, E0, eint0, dt)
            active = ~(np.abs(R) <= scale)

        if active.any():
            stats.bisection_cells += int(np.count_nonzero(active))
            for _ in range(cfg.max_bisection_iter):
                if not active.any():
                    break
                iterations += 1
                T_hi = np.where(active & (R > 0.0), T, T_hi)
                T_lo = np.where(active & (R <= 0.0), T, T_lo)
                T = np.where(active, 0.5 * (T_lo + T_hi), T)
                R, dR, _ = self._exchange(T, rho, E0, eint0, dt)
                active = ~(np.abs(R) <= scale)

        stats.iterations = max(stats.iterations, iterations)
        rel = np.abs(R) / np.maximum(np.abs(etot), _TINY)
        stats.max_residual = max(stats.max_residual, float(np.nanmax(rel)) if rel.size else 0.0)
        if active.any():
            rel_active = np.where(active, np.nan_to_num(rel, nan=np.inf), -1.0)
            idx = _worst_cell(rel_active)
            raise CouplingFailure(
                "gas temperature iteration did not converge",
                index=idx,
                variable="gas_temperature",
                residual=float(rel[idx]),
                iterations=iterations,
            )
        return T

    def solve(
        self,
        data: np.ndarray,
        dt: float,
        source: np.ndarray | None = None,
    ) -> tuple[np.ndarray, CouplingStats]:
        """Apply the implicit exchange to a provisional interior state.

        Args:
            data: Interior state ``(NVAR, *shape)`` after the explicit
                transport increment. Not modified.
            dt: Timestep.
            source: Optional radiation energy source rate per cell.

        Returns:
            ``(new_data, stats)``.

        Raises:
            CouplingFailure: Non-convergence, negative gas internal energy, or
                a radiation energy below the floor that cannot be repaired.
        """
        stats = CouplingStats()
        out = data.copy()
        ratio = self.c / self.c_hat

        rho = data[Var.GAS_DENSITY]
        E0 = data[Var.RAD_ENERGY]
        F0 = data[RAD_FLUX]
        p0 = data[GAS_MOMENTUM]
        kin0 = 0.5 * np.sum(p0**2, axis=0) / rho
        eint0 = data[Var.GAS_ENERGY] - kin0

        if source is not None:
            added = dt * source
            E0 = E0 + added
            stats.source_energy = float(np.sum(added))

        etot = eint0 + ratio * E0
        bad = ~np.isfinite(etot) | (etot < 0.0)
        if bad.any():
            idx = _worst_cell(np.where(bad, 1.0, 0.0))
            raise CouplingFailure(
                "negative or non-finite total energy before exchange",
                index=idx,
                variable="total_energy",
                residual=float(etot[idx]),
            )

        T = self.solve_temperature(rho, E0, eint0, dt, stats)

        # Gas energy from the EOS, radiation from exact conservation
        eint1 = self.policy.egas_from_tgas(rho, T)
        E1 = (etot - eint1) / ratio
        clamped = E1 < self.erad_floor
        if clamped.any():
            stats.floor_clamped = int(np.count_nonzero(clamped))
            E1 = np.where(clamped, self.erad_floor, E1)
            eint1 = np.where(clamped, etot - ratio * self.erad_floor, eint1)
            if (eint1 < 0.0).any():
                idx = _worst_cell(-eint1)
                raise CouplingFailure(
                    "radiation floor leaves negative gas internal energy",
                    index=idx,
                    variable="gas_energy",
                    residual=float(eint1[idx]),
                    iterations=stats.iterations,
                )
            T = np.where(clamped, self.policy.tgas_from_egas(rho, np.maximum(eint1, 0.0)), T)
            logger.debug("%d cells clamped to the radiation energy floor", stats.floor_clamped)

        # Flux relaxation
        d_R = dt * self.c_hat * rho * self.policy.rosseland_opacity(rho, T)
        if self.enable_v_over_c:
            v = p0 / rho
            f0 = reduced_flux(E0, F0, self.c_hat, self.erad_floor)
            f0 = f0 / np.maximum(np.sqrt(np.sum(f0**2, axis=0)), 1.0)
            P = pressure_tensor(E1, f0)
            F_eq = v * E1 + np.einsum("ij...,j...->i...", P, v)
            F1 = (F0 + d_R * F_eq) / (1.0 + d_R)

            p1 = p0 - (F1 - F0) / (self.c * self.c_hat)
            kin1 = 0.5 * np.sum(p1**2, axis=0) / rho
            E1 = E1 - (kin1 - kin0) / ratio
            if (E1 < self.erad_floor).any():
                idx = _worst_cell(self.erad_floor - E1)
                raise CouplingFailure(
                    "radiation energy below floor after momentum exchange",
                    index=idx,
                    variable="rad_energy",
                    residual=float(E1[idx]),
                    iterations=stats.iterations,
                )
            out[GAS_MOMENTUM] = p1
            out[Var.GAS_ENERGY] = eint1 + kin1
        else:
            F1 = F0 / (1.0 + d_R)
            out[Var.GAS_ENERGY] = eint1 + kin0

        out[Var.RAD_ENERGY] = E1
        out[RAD_FLUX] = F1
        return out, stats
