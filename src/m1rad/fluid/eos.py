"""Energy-temperature relations for the coupled gas.

Energies are internal energy densities (per unit volume): the coupling
solver subtracts the kinetic energy before calling these.
"""

from __future__ import annotations

import numpy as np


class IdealGasEOS:
    """Ideal gas with constant specific heat.

    E_int = rho * c_v * T,   c_v = k_B / ((gamma - 1) * mu)
    """

    def __init__(self, gamma: float = 5.0 / 3.0, mean_molecular_mass: float = 1.0, k_B: float = 1.0) -> None:
        self.gamma = gamma
        self.mu = mean_molecular_mass
        self.k_B = k_B
        self.c_v = k_B / ((gamma - 1.0) * mean_molecular_mass)

    @classmethod
    def from_constants(cls, constants) -> IdealGasEOS:
        """Build from a :class:`m1rad.config.ConstantsConfig`."""
        return cls(constants.gamma, constants.mean_molecular_mass, constants.k_B)

    def tgas_from_egas(self, rho: np.ndarray, e_int: np.ndarray) -> np.ndarray:
        """Temperature from internal energy density."""
        return e_int / (np.maximum(rho, 1e-300) * self.c_v)

    def egas_from_tgas(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        """Internal energy density from temperature."""
        return rho * self.c_v * T

    def egas_temp_derivative(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        """Heat capacity per unit volume, dE_int/dT."""
        return rho * self.c_v * np.ones_like(T)

    def pressure(self, rho: np.ndarray, e_int: np.ndarray) -> np.ndarray:
        return (self.gamma - 1.0) * e_int

    def sound_speed(self, rho: np.ndarray, e_int: np.ndarray) -> np.ndarray:
        """Adiabatic sound speed."""
        p = np.maximum(self.pressure(rho, e_int), 0.0)
        return np.sqrt(self.gamma * p / np.maximum(rho, 1e-300))


class CubicHeatCapacityEOS:
    """Material with heat capacity proportional to T^3 (Su & Olson 1996).

    E_int = alpha T^4 / 4,   dE_int/dT = alpha T^3

    With ``alpha = 4 a / epsilon`` the matter and radiation energies scale
    alike, which makes the non-equilibrium Marshak wave linear in ``T^4``.
    Independent of density.
    """

    def __init__(self, alpha: float, gamma: float = 5.0 / 3.0) -> None:
        if alpha <= 0:
            raise ValueError("alpha must be > 0")
        self.alpha = alpha
        self.gamma = gamma

    def tgas_from_egas(self, rho: np.ndarray, e_int: np.ndarray) -> np.ndarray:
        return (4.0 * np.maximum(e_int, 0.0) / self.alpha) ** 0.25

    def egas_from_tgas(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        return 0.25 * self.alpha * T**4

    def egas_temp_derivative(self, rho: np.ndarray, T: np.ndarray) -> np.ndarray:
        return self.alpha * T**3

    def sound_speed(self, rho: np.ndarray, e_int: np.ndarray) -> np.ndarray:
        p = (self.gamma - 1.0) * np.maximum(e_int, 0.0)
        return np.sqrt(self.gamma * p / np.maximum(rho, 1e-300))
