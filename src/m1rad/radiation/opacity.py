"""Opacity policies.

Opacities are specific (per unit mass, e.g. m^2/kg); the absorption
coefficient entering the transport is ``rho * kappa``. Every policy is a
callable ``kappa(rho, T)`` returning an array of the broadcast shape.
"""

from __future__ import annotations

import numpy as np


class ConstantOpacity:
    """Grey opacity independent of density and temperature."""

    def __init__(self, kappa: float) -> None:
        if kappa < 0:
            raise ValueError("kappa must be >= 0")
        self.kappa = kappa

    def __call__(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        return np.full(np.broadcast(rho, T).shape, self.kappa)

    def __repr__(self) -> str:
        return f"ConstantOpacity({self.kappa})"


class PowerLawOpacity:
    """Kramers-type opacity ``kappa = kappa0 rho^m T^-n``.

    The default exponents (m = 1, n = 3.5) give the free-free law. The
    temperature is floored before the power is taken (cold gas would
    otherwise be infinitely opaque), and the result is bounded to
    ``[kappa_floor, kappa_cap]`` to keep the coupling solve finite.

    Args:
        kappa0: Opacity coefficient.
        rho_exponent: Density exponent ``m``.
        temperature_exponent: Temperature exponent ``n`` (opacity falls as T^-n).
        T_floor: Temperature floor applied before the power law.
        kappa_floor: Lower bound on the opacity.
        kappa_cap: Upper bound on the opacity.
    """

    def __init__(
        self,
        kappa0: float,
        rho_exponent: float = 1.0,
        temperature_exponent: float = 3.5,
        T_floor: float = 1e-3,
        kappa_floor: float = 0.0,
        kappa_cap: float = 1e30,
    ) -> None:
        if kappa0 < 0:
            raise ValueError("kappa0 must be >= 0")
        if T_floor <= 0:
            raise ValueError("T_floor must be > 0")
        self.kappa0 = kappa0
        self.rho_exponent = rho_exponent
        self.temperature_exponent = temperature_exponent
        self.T_floor = T_floor
        self.kappa_floor = kappa_floor
        self.kappa_cap = kappa_cap

    def __call__(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        T_safe = np.maximum(T, self.T_floor)
        rho_safe = np.maximum(rho, 0.0)
        kappa = self.kappa0 * rho_safe**self.rho_exponent * T_safe ** (-self.temperature_exponent)
        return np.clip(kappa, self.kappa_floor, self.kappa_cap)
