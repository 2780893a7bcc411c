"""Radiation physics: M1 closure, HLL transport, opacities and matter coupling."""

from m1rad.radiation.closure import (
    eddington_factor,
    m1_signal_speeds,
    pressure_tensor,
    reduced_flux,
)
from m1rad.radiation.coupling import CouplingSolver, CouplingStats
from m1rad.radiation.opacity import ConstantOpacity, PowerLawOpacity
from m1rad.radiation.transport import FluxSolver

__all__ = [
    "ConstantOpacity",
    "CouplingSolver",
    "CouplingStats",
    "FluxSolver",
    "PowerLawOpacity",
    "eddington_factor",
    "m1_signal_speeds",
    "pressure_tensor",
    "reduced_flux",
]
