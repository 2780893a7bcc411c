"""Shared data structures and the problem policy contract.

Defines:
- ``StepResult``: summary of one completed timestep
- ``TimeState``: simulation clock owned by the engine
- ``ProblemPolicy``: the capability set a problem supplies to the core
  (opacities, energy-temperature relation, ghost-zone fill, source term)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, fields

import numpy as np

from m1rad.core.state import RadiationGrid, Var, internal_energy
from m1rad.errors import ConfigurationError

# (rho, T) -> specific opacity
OpacityFn = Callable[[np.ndarray, np.ndarray], np.ndarray]
# (rho, X) -> Y for the energy-temperature relation
ThermoFn = Callable[[np.ndarray, np.ndarray], np.ndarray]
# (grid, time) -> None, fills ghost cells in place
GhostFillFn = Callable[[RadiationGrid, float], None]
# (cell-center coordinates, time) -> energy density per unit time
SourceFn = Callable[[tuple[np.ndarray, ...], float], np.ndarray]


@dataclass
class StepResult:
    """Result of a single simulation timestep.

    Attributes:
        time: Simulation time after this step.
        step: Step number after this step.
        dt: Timestep size used.
        retries: Number of dt halvings needed by this step.
        substeps: Radiation substeps taken inside the step.
        radiation_energy: Volume-integrated radiation energy.
        gas_energy: Volume-integrated gas energy.
        energy_conservation: Conserved total relative to its initial value,
            corrected for injected source energy.
        max_coupling_iterations: Worst-case coupling iterations in the step.
        finished: True when stop_time or max_timesteps is reached.
    """

    time: float = 0.0
    step: int = 0
    dt: float = 0.0
    retries: int = 0
    substeps: int = 1
    radiation_energy: float = 0.0
    gas_energy: float = 0.0
    energy_conservation: float = 1.0
    max_coupling_iterations: int = 0
    finished: bool = False


@dataclass
class TimeState:
    """Simulation clock. Advanced only after a successful full step."""

    t: float = 0.0
    dt: float = 0.0
    step: int = 0


@dataclass(frozen=True)
class ProblemPolicy:
    """Problem-specific capabilities resolved once at engine construction.

    Opacities are specific (per unit mass); the absorption coefficient is
    ``rho * kappa``. The thermodynamic functions take the gas internal
    energy density (total gas energy minus kinetic energy).

    Attributes:
        planck_opacity: Energy-exchange opacity ``kappa_P(rho, T)``.
        rosseland_opacity: Flux-mean opacity ``kappa_R(rho, T)``.
        tgas_from_egas: ``T(rho, E_int)``.
        egas_from_tgas: ``E_int(rho, T)``.
        egas_temp_derivative: ``dE_int/dT (rho, T)``.
        fill_ghost_zones: Fills every ghost cell of the grid in place.
        rad_energy_source: Optional volumetric radiation source ``S(x, t)``.
        sound_speed: Optional ``c_s(rho, E_int)`` for the hydro CFL limit.
    """

    planck_opacity: OpacityFn
    rosseland_opacity: OpacityFn
    tgas_from_egas: ThermoFn
    egas_from_tgas: ThermoFn
    egas_temp_derivative: ThermoFn
    fill_ghost_zones: GhostFillFn
    rad_energy_source: SourceFn | None = None
    sound_speed: ThermoFn | None = None

    @classmethod
    def build(
        cls,
        eos,
        opacity: OpacityFn,
        boundary: GhostFillFn,
        *,
        rosseland_opacity: OpacityFn | None = None,
        source: SourceFn | None = None,
    ) -> ProblemPolicy:
        """Assemble a policy from an EOS object, opacities and a boundary set.

        Args:
            eos: Object with ``tgas_from_egas``, ``egas_from_tgas``,
                ``egas_temp_derivative`` and optionally ``sound_speed``.
            opacity: Planck opacity; also the Rosseland opacity unless given.
            boundary: Ghost-zone fill callable.
            rosseland_opacity: Separate flux-mean opacity.
            source: Volumetric radiation energy source.
        """
        return cls(
            planck_opacity=opacity,
            rosseland_opacity=rosseland_opacity or opacity,
            tgas_from_egas=eos.tgas_from_egas,
            egas_from_tgas=eos.egas_from_tgas,
            egas_temp_derivative=eos.egas_temp_derivative,
            fill_ghost_zones=boundary,
            rad_energy_source=source,
            sound_speed=getattr(eos, "sound_speed", None),
        )

    def validate(self) -> None:
        """Raise ConfigurationError if a required capability is missing."""
        optional = {"rad_energy_source", "sound_speed"}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None and f.name in optional:
                continue
            if not callable(value):
                raise ConfigurationError(f"problem policy capability '{f.name}' is not callable")

    def gas_temperature(self, data: np.ndarray) -> np.ndarray:
        """Gas temperature of a ``(NVAR, ...)`` buffer."""
        eint = np.maximum(internal_energy(data), 0.0)
        return self.tgas_from_egas(data[Var.GAS_DENSITY], eint)
