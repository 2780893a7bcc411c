"""Explicit hyperbolic update of the M1 radiation moments.

Dimension-by-dimension finite-volume scheme for

    dE/dt + div F = 0
    dF/dt + c_hat^2 div P = 0

Per sweep axis: reconstruct ``E`` and the reduced flux ``f = F/(c_hat E)``
to the faces, build the M1 physical fluxes from the closure, and combine
them with the HLL solver. Face fluxes of an axis are written to their own
buffer before the divergence is accumulated, so the update of a cell never
reads a value already modified by the same evaluation.

Matter coupling (absorption, emission, flux relaxation) is not done here;
see :mod:`m1rad.radiation.coupling`.
"""

from __future__ import annotations

import logging

import numpy as np

from m1rad.config import ConstantsConfig, TransportConfig
from m1rad.core.bases import ProblemPolicy
from m1rad.core.state import NRAD, RAD_FLUX, GridSpan, Var
from m1rad.radiation.closure import pressure_tensor_column, reduced_flux
from m1rad.radiation.reconstruction import cell_values, face_states, reconstruct_edges
from m1rad.radiation.riemann import hll_flux, signal_speed_bounds

logger = logging.getLogger(__name__)


class FluxSolver:
    """HLL flux solver for the radiation subsystem ``(E, F1, F2, F3)``.

    Args:
        span: Grid geometry.
        constants: Physical constants (``c_hat`` is used).
        transport: Reconstruction, limiter and wavespeed options.
        erad_floor: Radiation energy floor, used to bound the reduced flux.
        policy: Problem policy; the Rosseland opacity and the gas
            temperature enter the asymptotic-preserving correction.
    """

    def __init__(
        self,
        span: GridSpan,
        constants: ConstantsConfig,
        transport: TransportConfig,
        erad_floor: float,
        policy: ProblemPolicy,
    ) -> None:
        self.span = span
        self.c_hat = constants.chat
        self.transport = transport
        self.erad_floor = erad_floor
        self.policy = policy
        self.degraded_cells = 0

    def max_signal_speed(self) -> float:
        """Upper bound on every radiation wave speed."""
        return self.c_hat

    def radiation_timestep(self, cfl: float) -> float:
        """Largest stable explicit timestep, ``cfl * min(dx) / c_hat``."""
        return cfl * min(self.span.dx) / self.c_hat

    def _sweep_view(self, data: np.ndarray, axis: int) -> np.ndarray:
        """Padded along ``axis``, interior across it; sweep axis moved to position 1."""
        idx = [slice(None), *self.span.interior]
        idx[axis + 1] = slice(None)
        return np.moveaxis(data[tuple(idx)], axis + 1, 1)

    def _energy_diffusion_scale(self, sub: np.ndarray, axis: int) -> np.ndarray:
        """``min(1, 1/tau)`` per face, ``tau`` from the harmonic-mean absorption."""
        g = self.span.nghost
        rho = sub[Var.GAS_DENSITY]
        T = self.policy.gas_temperature(sub)
        alpha = cell_values(rho * self.policy.rosseland_opacity(rho, T), g)
        a_L, a_R = alpha[:-1], alpha[1:]
        total = a_L + a_R
        harmonic = np.where(total > 0.0, 2.0 * a_L * a_R / np.where(total > 0.0, total, 1.0), 0.0)
        tau = self.span.dx[axis] * harmonic
        return np.where(tau > 1.0, 1.0 / np.where(tau > 1.0, tau, 1.0), 1.0)

    def compute_face_fluxes(self, data: np.ndarray, axis: int) -> np.ndarray:
        """HLL fluxes on every face bounding the interior along ``axis``.

        Args:
            data: Full padded state buffer ``(NVAR, *padded_shape)`` with
                ghost cells filled.
            axis: Sweep axis.

        Returns:
            Face fluxes of ``(E, F1, F2, F3)``, shape
            ``(4, n_axis + 1, *transverse_interior)``.
        """
        g = self.span.nghost
        method = self.transport.reconstruction
        limiter = self.transport.limiter
        c_hat = self.c_hat

        sub = self._sweep_view(data, axis)
        E = sub[Var.RAD_ENERGY]
        f = reduced_flux(E, sub[RAD_FLUX], c_hat, self.erad_floor)
        fmag = np.sqrt(np.sum(f**2, axis=0))
        f = f / np.maximum(fmag, 1.0)

        E_m, E_p = reconstruct_edges(E, g, method, limiter)
        f_edges = [reconstruct_edges(f[k], g, method, limiter) for k in range(3)]
        f_m = np.stack([e[0] for e in f_edges])
        f_p = np.stack([e[1] for e in f_edges])

        # Unphysical edge states fall back to first order in that cell
        bad = (
            (E_m <= 0.0) | (E_p <= 0.0)
            | (np.sum(f_m**2, axis=0) > 1.0) | (np.sum(f_p**2, axis=0) > 1.0)
        )
        n_bad = int(np.count_nonzero(bad))
        if n_bad and method != "constant":
            E_c = cell_values(E, g)
            f_c = np.stack([cell_values(f[k], g) for k in range(3)])
            E_m = np.where(bad, E_c, E_m)
            E_p = np.where(bad, E_c, E_p)
            f_m = np.where(bad, f_c, f_m)
            f_p = np.where(bad, f_c, f_p)
            self.degraded_cells += n_bad
            logger.debug("axis %d: %d cells reconstructed at first order", axis, n_bad)

        E_L, E_R = face_states(E_m, E_p)
        f_L, f_R = f_p[:, :-1], f_m[:, 1:]

        U_L = np.concatenate([E_L[None], c_hat * E_L * f_L])
        U_R = np.concatenate([E_R[None], c_hat * E_R * f_R])
        flux_L = np.concatenate([U_L[1 + axis][None], c_hat**2 * pressure_tensor_column(E_L, f_L, axis)])
        flux_R = np.concatenate([U_R[1 + axis][None], c_hat**2 * pressure_tensor_column(E_R, f_R, axis)])

        S_L, S_R = signal_speed_bounds(
            f_L[axis], f_R[axis], c_hat, self.transport.wavespeeds,
            np.sqrt(np.sum(f_L**2, axis=0)), np.sqrt(np.sum(f_R**2, axis=0)),
        )

        eps = np.ones_like(U_L)
        if self.transport.asymptotic_correction:
            eps[0] = self._energy_diffusion_scale(sub, axis)

        return hll_flux(U_L, U_R, flux_L, flux_R, S_L, S_R, eps)

    def flux_divergence(self, data: np.ndarray) -> np.ndarray:
        """Explicit time derivative ``-div(flux)`` of ``(E, F1, F2, F3)``.

        Args:
            data: Full padded state buffer with ghost cells filled.

        Returns:
            Increment rate on the interior, shape ``(4, *span.shape)``.
        """
        self.degraded_cells = 0
        dUdt = np.zeros((NRAD, *self.span.shape))
        for axis in range(self.span.ndim):
            flux = self.compute_face_fluxes(data, axis)
            div = (flux[:, 1:] - flux[:, :-1]) / self.span.dx[axis]
            dUdt -= np.moveaxis(div, 1, axis + 1)
        return dUdt
