"""Pydantic v2 configuration for M1 radiation transport runs.

Provides validated, typed, immutable parameters with submodels for the grid,
the physical constants, the transport scheme, and the coupling solver.
Supports JSON I/O and cross-field validation. Models are frozen: derive a
modified copy with ``model_copy(update=...)``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Cells on each side of a cell needed by each reconstruction stencil
STENCIL_HALF_WIDTH: dict[str, int] = {"constant": 1, "plm": 2, "ppm": 3}


class GridConfig(BaseModel):
    """Uniform Cartesian grid."""

    model_config = ConfigDict(frozen=True)

    resolution: list[int] = Field(..., min_length=1, max_length=3, description="Interior cells per axis")
    domain_length: list[float] = Field(..., min_length=1, max_length=3, description="Domain extent per axis")
    nghost: int = Field(3, ge=1, le=8, description="Ghost cells on each side of every face")
    origin: list[float] | None = Field(None, description="Lower domain corner per axis (default 0)")

    @model_validator(mode="after")
    def check_shapes(self) -> GridConfig:
        if len(self.resolution) != len(self.domain_length):
            raise ValueError("resolution and domain_length must have the same length")
        if any(n < 1 for n in self.resolution):
            raise ValueError("resolution entries must be >= 1")
        if any(L <= 0 for L in self.domain_length):
            raise ValueError("domain_length entries must be > 0")
        if self.origin is not None and len(self.origin) != len(self.resolution):
            raise ValueError("origin must have one entry per axis")
        return self

    @property
    def ndim(self) -> int:
        return len(self.resolution)

    @property
    def dx(self) -> tuple[float, ...]:
        return tuple(L / n for L, n in zip(self.domain_length, self.resolution))


class ConstantsConfig(BaseModel):
    """Physical constants seen by the solver."""

    model_config = ConfigDict(frozen=True)

    c_light: float = Field(..., gt=0, description="Speed of light")
    c_hat: float | None = Field(None, gt=0, description="Reduced speed of light (defaults to c_light)")
    a_rad: float = Field(..., gt=0, description="Radiation constant")
    k_B: float = Field(1.0, gt=0, description="Boltzmann constant")
    mean_molecular_mass: float = Field(1.0, gt=0, description="Mean mass per gas particle")
    gamma: float = Field(5.0 / 3.0, gt=1.0, description="Adiabatic index")

    @model_validator(mode="after")
    def check_reduced_speed(self) -> ConstantsConfig:
        if self.c_hat is not None and self.c_hat > self.c_light:
            raise ValueError(f"c_hat ({self.c_hat}) must not exceed c_light ({self.c_light})")
        return self

    @property
    def chat(self) -> float:
        """Reduced speed of light actually used by the transport."""
        return self.c_light if self.c_hat is None else self.c_hat


class TransportConfig(BaseModel):
    """Hyperbolic flux solver options."""

    model_config = ConfigDict(frozen=True)

    reconstruction: Literal["constant", "plm", "ppm"] = Field(
        "plm", description="Spatial reconstruction of E and the reduced flux",
    )
    limiter: Literal["minmod", "mc", "vanleer"] = Field("mc", description="PLM slope limiter")
    wavespeeds: Literal["m1", "c_hat"] = Field(
        "m1", description="Signal speed estimate: M1 eigenvalues or +-c_hat",
    )
    asymptotic_correction: bool = Field(
        True, description="Scale HLL energy diffusion by min(1, 1/tau_cell)",
    )


class CouplingConfig(BaseModel):
    """Implicit matter-radiation energy exchange solver."""

    model_config = ConfigDict(frozen=True)

    tolerance: float = Field(1e-10, gt=0, lt=1, description="Relative residual tolerance")
    max_newton_iter: int = Field(50, ge=1, description="Newton iterations before bisection")
    max_bisection_iter: int = Field(200, ge=0, description="Bisection iterations after Newton")


class SimulationConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(frozen=True)

    grid: GridConfig
    constants: ConstantsConfig
    transport: TransportConfig = Field(default_factory=TransportConfig)
    coupling: CouplingConfig = Field(default_factory=CouplingConfig)

    enable_v_over_c: bool = Field(
        ..., description="Include first-order v/c terms and radiation-gas momentum exchange",
    )
    erad_floor: float = Field(0.0, ge=0, description="Lower bound on radiation energy density")

    cfl_hydro: float = Field(0.4, gt=0, le=1.0, description="CFL number for the gas signal speed")
    cfl_rad: float = Field(0.4, gt=0, le=1.0, description="CFL number for the reduced light speed")
    stop_time: float = Field(..., gt=0, description="Simulation end time")
    max_timesteps: int = Field(100_000, ge=1, description="Step limit for run()")
    initial_dt: float | None = Field(None, gt=0, description="Upper bound on the first timestep")
    max_dt: float | None = Field(None, gt=0, description="Upper bound on every timestep")
    min_dt: float = Field(0.0, ge=0, description="Smallest acceptable timestep")
    max_retries: int = Field(4, ge=0, description="dt halvings after a coupling failure")
    subcycle_radiation: bool = Field(
        False, description="Subcycle the radiation update inside a hydro-limited step",
    )
    log_interval: int = Field(100, ge=1, description="Steps between progress log lines")

    problem: str = Field("equilibrium", description="Problem preset used by the CLI")
    problem_params: dict[str, float] = Field(
        default_factory=dict, description="Preset parameters",
    )

    @model_validator(mode="after")
    def check_consistency(self) -> SimulationConfig:
        need = STENCIL_HALF_WIDTH[self.transport.reconstruction]
        if self.grid.nghost < need:
            raise ValueError(
                f"nghost={self.grid.nghost} too small for "
                f"'{self.transport.reconstruction}' reconstruction (need >= {need})"
            )
        if self.max_dt is not None and self.max_dt < self.min_dt:
            raise ValueError("max_dt must be >= min_dt")
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> SimulationConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with path.open() as f:
            data = json.load(f)
        return cls(**data)

    def to_json(self, path: str | Path | None = None) -> str:
        """Serialize to JSON string, optionally writing to file."""
        out = self.model_dump_json(indent=2)
        if path is not None:
            Path(path).write_text(out)
        return out
