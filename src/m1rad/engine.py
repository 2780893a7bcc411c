"""Radiation engine: orchestrates the coupled transport time loop.

Each step advances the radiation moments and the gas energy by one
two-stage Runge-Kutta (Heun) step:

    U1      = C( U_n + dt L(U_n) )
    U2      = C( U1  + dt L(U1)  )
    U_{n+1} = (U_n + U2) / 2

where ``L`` is the explicit hyperbolic flux divergence (preceded by a
ghost-zone fill) and ``C`` the implicit matter-radiation coupling. A
coupling failure in either stage discards the whole step, which is retried
with half the timestep; the clock only moves after a successful step.

This is the coordination layer that ensures:
1. The problem policy is validated once and used by every component
2. Ghost zones and interior cells satisfy the state invariants each stage
3. Energy (including volumetric source input) is tracked for conservation
4. The simulation terminates at stop_time or max_timesteps
"""

from __future__ import annotations

import logging
import math
import time as wall_time
from enum import Enum, auto
from typing import Any

import numpy as np

from m1rad.config import SimulationConfig
from m1rad.core.bases import ProblemPolicy, StepResult, TimeState
from m1rad.core.state import GAS_MOMENTUM, NRAD, RAD_FLUX, RadiationGrid, Var, internal_energy
from m1rad.diagnostics.checkpoint import load_checkpoint, save_checkpoint
from m1rad.errors import ConfigurationError, CouplingFailure, InvariantViolation, SimulationAbort
from m1rad.radiation.coupling import CouplingSolver, CouplingStats
from m1rad.radiation.transport import FluxSolver

logger = logging.getLogger(__name__)

# Relative slack on |F| <= c_hat E when validating ghost cells and input states
_REALIZABILITY_SLACK = 1e-10


class Stage(Enum):
    """Position inside one Runge-Kutta step."""

    PREDICTOR = auto()
    CORRECTOR = auto()
    ADVANCED = auto()


class RadiationEngine:
    """Time integrator for the M1 radiation subsystem coupled to a static gas.

    Args:
        config: Validated simulation configuration.
        policy: Problem policy (opacities, EOS, boundaries, source).
        grid: Initial state. A zeroed grid is allocated when omitted; the
            caller must then fill it before the first step.

    Raises:
        ConfigurationError: Incomplete policy or a grid that does not match
            the configuration.
    """

    def __init__(
        self,
        config: SimulationConfig,
        policy: ProblemPolicy,
        grid: RadiationGrid | None = None,
    ) -> None:
        policy.validate()
        self.config = config
        self.policy = policy
        self.grid = grid if grid is not None else RadiationGrid.from_config(config.grid)

        span = self.grid.span
        if span.shape != tuple(config.grid.resolution) or span.nghost != config.grid.nghost:
            raise ConfigurationError(
                f"grid {span.shape} with nghost={span.nghost} does not match "
                f"configuration {tuple(config.grid.resolution)} with nghost={config.grid.nghost}"
            )

        consts = config.constants
        self.c_light = consts.c_light
        self.c_hat = consts.chat
        self.clock = TimeState()

        self.flux_solver = FluxSolver(span, consts, config.transport, config.erad_floor, policy)
        self.coupling = CouplingSolver(
            consts, config.coupling, config.erad_floor, policy, config.enable_v_over_c,
        )
        self._cell_centers = span.cell_centers()

        self.initial_energy: float | None = None
        self.injected_energy = 0.0
        self.total_retries = 0
        self.last_retries = 0
        self.last_substeps = 1
        self.last_stats = CouplingStats()

        logger.info(
            "RadiationEngine: grid=%s, reconstruction=%s/%s, wavespeeds=%s, "
            "c_hat/c=%.3g, v/c terms=%s",
            span.shape,
            config.transport.reconstruction,
            config.transport.limiter,
            config.transport.wavespeeds,
            self.c_hat / self.c_light,
            config.enable_v_over_c,
        )

    # ------------------------------------------------------------------
    # Clock and reductions
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        return self.clock.t

    @property
    def step_count(self) -> int:
        return self.clock.step

    @property
    def finished(self) -> bool:
        return (
            self.clock.t >= self.config.stop_time * (1.0 - 1e-12)
            or self.clock.step >= self.config.max_timesteps
        )

    def compute_radiation_energy(self) -> float:
        """Volume-integrated radiation energy."""
        return self.grid.compute_radiation_energy()

    def compute_gas_energy(self) -> float:
        """Volume-integrated total gas energy."""
        return self.grid.compute_gas_energy()

    def total_energy(self) -> float:
        """Conserved total ``E_gas + (c/c_hat) E_rad`` (volume-integrated)."""
        return self.compute_gas_energy() + (self.c_light / self.c_hat) * self.compute_radiation_energy()

    def energy_conservation(self) -> float:
        """``1 + drift / scale``; 1.0 for an exact scheme in a closed box.

        The drift ``E_total - injected - E_total(0)`` is measured against the
        larger of the initial and the injected energy, so a source-driven run
        that starts nearly empty is not judged against its tiny initial total.
        """
        if self.initial_energy is None:
            return 1.0
        scale = max(abs(self.initial_energy), abs(self.injected_energy), 1e-300)
        return 1.0 + self.energy_conservation_error() / scale

    def energy_conservation_error(self) -> float:
        """Absolute drift ``E_total - injected - E_total(0)``."""
        if self.initial_energy is None:
            return 0.0
        return self.total_energy() - self.injected_energy - self.initial_energy

    def get(self, var: Var, index) -> float:
        return self.grid.get(var, index)

    def set(self, var: Var, index, value: float) -> None:
        self.grid.set(var, index, value)

    def get_field_snapshot(self) -> dict[str, np.ndarray]:
        """Copies of the interior arrays, keyed by variable name."""
        return {var.name.lower(): self.grid.interior(var).copy() for var in Var}

    # ------------------------------------------------------------------
    # Timestep selection
    # ------------------------------------------------------------------

    def _hydro_timestep(self) -> float:
        """``cfl_hydro * dx / max(|v| + c_s)``; infinite for a cold static gas."""
        data = self.grid.interior_data()
        rho = data[Var.GAS_DENSITY]
        cs = 0.0
        if self.policy.sound_speed is not None:
            cs = self.policy.sound_speed(rho, np.maximum(internal_energy(data), 0.0))
        dt = math.inf
        for axis, dx in enumerate(self.grid.span.dx):
            speed = float(np.max(np.abs(data[Var.X1_GAS_MOMENTUM + axis]) / rho + cs))
            if speed > 0.0:
                dt = min(dt, self.config.cfl_hydro * dx / speed)
        return dt

    def compute_dt(self, max_dt: float | None = None) -> float:
        """Timestep for the next step.

        Args:
            max_dt: Caller-imposed upper bound.

        Raises:
            ConfigurationError: No finite bound on the timestep exists.
            InvariantViolation: The timestep falls below ``min_dt``.
        """
        cfg = self.config
        dt = self._hydro_timestep()
        if not cfg.subcycle_radiation:
            dt = min(dt, self.flux_solver.radiation_timestep(cfg.cfl_rad))
        if cfg.max_dt is not None:
            dt = min(dt, cfg.max_dt)
        if max_dt is not None:
            dt = min(dt, max_dt)

        # Honor user-specified initial dt
        if cfg.initial_dt is not None and self.clock.step == 0:
            dt = min(dt, cfg.initial_dt)

        remaining = cfg.stop_time - self.clock.t
        if remaining > 0.0:
            dt = min(dt, remaining)

        if not math.isfinite(dt):
            raise ConfigurationError("timestep is unbounded; set max_dt when subcycling a static gas")
        if dt <= 0.0 or dt < cfg.min_dt:
            raise InvariantViolation(
                "timestep below min_dt", variable="dt", value=dt,
                time=self.clock.t, step=self.clock.step,
            )
        return dt

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def _first_bad(self, mask: np.ndarray) -> tuple[int, ...]:
        return tuple(int(i) for i in np.argwhere(mask)[0])

    def _check_cells(self, data: np.ndarray, where: str, time: float, offset: tuple[int, ...] | None = None) -> None:
        """Raise InvariantViolation on the first cell that breaks a state invariant."""
        rho = data[Var.GAS_DENSITY]
        E = data[Var.RAD_ENERGY]
        Fmag = np.sqrt(np.sum(data[RAD_FLUX] ** 2, axis=0))
        gas = data[Var.GAS_ENERGY]
        checks = (
            ("gas density must be positive", "gas_density", ~(rho > 0.0), rho),
            ("gas energy must be finite", "gas_energy", ~np.isfinite(gas), gas),
            (
                "gas momentum must be finite",
                "gas_momentum",
                ~np.all(np.isfinite(data[GAS_MOMENTUM]), axis=0),
                np.sum(data[GAS_MOMENTUM], axis=0),
            ),
            ("radiation energy below floor", "rad_energy", ~(E >= self.config.erad_floor), E),
            (
                "radiation flux exceeds c_hat * E",
                "rad_flux",
                ~(Fmag <= self.c_hat * E * (1.0 + _REALIZABILITY_SLACK) + 1e-300),
                Fmag,
            ),
        )
        for invariant, variable, bad, values in checks:
            if bad.any():
                local = self._first_bad(bad)
                idx = local if offset is None else tuple(i + o for i, o in zip(local, offset))
                raise InvariantViolation(
                    f"{where}: {invariant}",
                    variable=variable,
                    index=idx,
                    value=float(values[local]),
                    time=time,
                    step=self.clock.step,
                )

    def _check_ghost_zones(self, grid: RadiationGrid, time: float) -> None:
        span = grid.span
        for axis in range(span.ndim):
            for side in (0, 1):
                region = span.ghost_region(axis, side)
                offset = tuple(s.start for s in region)
                self._check_cells(grid.data[(slice(None), *region)], "ghost cell", time, offset)

    def validate_state(self) -> None:
        """Check the interior against the state invariants."""
        self._check_cells(self.grid.interior_data(), "interior cell", self.clock.t)

    def _enforce_realizability(self, data: np.ndarray) -> int:
        """Rescale fluxes with ``|F| > c_hat E`` onto the realizability boundary."""
        F = data[RAD_FLUX]
        Fmag = np.sqrt(np.sum(F**2, axis=0))
        limit = self.c_hat * np.maximum(data[Var.RAD_ENERGY], 0.0)
        over = Fmag > limit
        n_over = int(np.count_nonzero(over))
        if n_over:
            scale = np.where(over, limit / np.where(over, Fmag, 1.0), 1.0)
            data[RAD_FLUX] = F * scale
            logger.debug("%d cells rescaled onto |F| = c_hat E", n_over)
        return n_over

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _apply_stage(self, grid: RadiationGrid, time: float, dt: float, stats: CouplingStats) -> float:
        """One forward-Euler transport update plus coupling, in place on ``grid``.

        Returns:
            Radiation energy density injected by the source (summed over cells).
        """
        self.policy.fill_ghost_zones(grid, time)
        self._check_ghost_zones(grid, time)

        dUdt = self.flux_solver.flux_divergence(grid.data)
        interior = grid.interior_data()
        provisional = interior.copy()
        provisional[:NRAD] += dt * dUdt

        source = None
        if self.policy.rad_energy_source is not None:
            source = self.policy.rad_energy_source(self._cell_centers, time)

        new, stage_stats = self.coupling.solve(provisional, dt, source)
        if not np.all(np.isfinite(new)):
            bad = ~np.all(np.isfinite(new), axis=0)
            raise CouplingFailure(
                "non-finite state after coupling",
                index=self._first_bad(bad),
                variable="state",
                iterations=stage_stats.iterations,
            )
        self._enforce_realizability(new)
        self._check_cells(new, "interior cell", time + dt)
        interior[...] = new

        stats.iterations = max(stats.iterations, stage_stats.iterations)
        stats.bisection_cells += stage_stats.bisection_cells
        stats.floor_clamped += stage_stats.floor_clamped
        stats.max_residual = max(stats.max_residual, stage_stats.max_residual)
        return stage_stats.source_energy

    def _rk2_step(self, grid: RadiationGrid, t: float, dt: float, stats: CouplingStats) -> float:
        """Heun step on ``grid`` in place; returns the source energy density added."""
        U_n = grid.interior_data().copy()
        injected = 0.0
        stage = Stage.PREDICTOR
        while stage is not Stage.ADVANCED:
            if stage is Stage.PREDICTOR:
                injected += 0.5 * self._apply_stage(grid, t, dt, stats)
                stage = Stage.CORRECTOR
            else:
                injected += 0.5 * self._apply_stage(grid, t + dt, dt, stats)
                interior = grid.interior_data()
                interior[...] = 0.5 * (U_n + interior)
                stage = Stage.ADVANCED
        return injected

    def _integrate(self, dt: float) -> tuple[RadiationGrid, int, CouplingStats, float]:
        """Advance a working copy by ``dt``, subcycling the radiation if enabled."""
        work = self.grid.copy()
        stats = CouplingStats()
        n_sub = 1
        if self.config.subcycle_radiation:
            dt_rad = self.flux_solver.radiation_timestep(self.config.cfl_rad)
            n_sub = max(1, math.ceil(dt / dt_rad * (1.0 - 1e-12)))
        h = dt / n_sub
        injected = 0.0
        for k in range(n_sub):
            injected += self._rk2_step(work, self.clock.t + k * h, h, stats)
        return work, n_sub, stats, injected

    # ------------------------------------------------------------------
    # Public stepping
    # ------------------------------------------------------------------

    def advance_timestep(self, max_dt: float | None = None) -> tuple[float, float]:
        """Advance the state by one full step.

        Args:
            max_dt: Optional upper bound on the timestep.

        Returns:
            ``(new_time, dt_taken)``.

        Raises:
            InvariantViolation: A state invariant is broken (fatal).
            SimulationAbort: Coupling failed after ``max_retries`` halvings.
        """
        # Cells edited between steps are checked before they reach the coupling
        self.validate_state()
        if self.initial_energy is None:
            self.initial_energy = self.total_energy()

        dt = self.compute_dt(max_dt)
        retries = 0
        while True:
            try:
                work, n_sub, stats, injected = self._integrate(dt)
                break
            except CouplingFailure as exc:
                if retries >= self.config.max_retries:
                    logger.error(
                        "Step %d: coupling failed at t=%.4e after %d retries: %s",
                        self.clock.step, self.clock.t, retries, exc,
                    )
                    raise SimulationAbort(
                        "coupling failed after maximum retries",
                        time=self.clock.t,
                        step=self.clock.step,
                        dt=dt,
                        retries=retries,
                        cause=exc,
                    ) from exc
                retries += 1
                dt *= 0.5
                if dt < self.config.min_dt:
                    raise InvariantViolation(
                        "timestep below min_dt after retry", variable="dt", value=dt,
                        time=self.clock.t, step=self.clock.step,
                    ) from exc
                logger.warning(
                    "Step %d: %s; retrying with dt=%.3e (%d/%d)",
                    self.clock.step, exc, dt, retries, self.config.max_retries,
                )

        self.grid = work
        self.injected_energy += (self.c_light / self.c_hat) * injected * self.grid.span.cell_volume
        self.clock.t += dt
        self.clock.dt = dt
        self.clock.step += 1
        self.total_retries += retries
        self.last_retries = retries
        self.last_substeps = n_sub
        self.last_stats = stats
        return self.clock.t, dt

    def step(self, max_dt: float | None = None) -> StepResult:
        """Advance one step and report diagnostics."""
        t, dt = self.advance_timestep(max_dt)
        finished = self.finished
        result = StepResult(
            time=t,
            step=self.clock.step,
            dt=dt,
            retries=self.last_retries,
            substeps=self.last_substeps,
            radiation_energy=self.compute_radiation_energy(),
            gas_energy=self.compute_gas_energy(),
            energy_conservation=self.energy_conservation(),
            max_coupling_iterations=self.last_stats.iterations,
            finished=finished,
        )
        if self.clock.step % self.config.log_interval == 0 or finished:
            logger.info(
                "Step %d: t=%.4e dt=%.3e E_rad=%.4e E_gas=%.4e E_cons=%.10f",
                result.step, result.time, result.dt,
                result.radiation_energy, result.gas_energy, result.energy_conservation,
            )
        return result

    def run(self, max_steps: int | None = None) -> dict[str, Any]:
        """Execute the simulation loop.

        Args:
            max_steps: Maximum number of timesteps (None = run to stop_time).

        Returns:
            Dictionary with summary statistics.
        """
        t_wall_start = wall_time.monotonic()
        logger.info("Starting simulation: t_end=%.4e", self.config.stop_time)

        start_step = self.clock.step
        while not self.finished:
            if max_steps is not None and self.clock.step - start_step >= max_steps:
                break
            self.step()

        t_wall = wall_time.monotonic() - t_wall_start
        steps = self.clock.step - start_step
        summary = {
            "steps": self.clock.step,
            "sim_time": self.clock.t,
            "wall_time_s": t_wall,
            "energy_conservation": self.energy_conservation(),
            "radiation_energy": self.compute_radiation_energy(),
            "gas_energy": self.compute_gas_energy(),
            "injected_energy": self.injected_energy,
            "total_retries": self.total_retries,
        }
        logger.info(
            "Simulation complete: %d steps in %.2f s (%.1f steps/s), E_cons=%.10f",
            steps, t_wall, steps / max(t_wall, 1e-10), summary["energy_conservation"],
        )
        return summary

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def save_checkpoint(self, filename: str) -> None:
        """Save the state and clock to an HDF5 checkpoint file."""
        save_checkpoint(
            filename,
            self.grid,
            self.clock,
            self.config.model_dump_json(),
            extra={
                "initial_energy": self.initial_energy if self.initial_energy is not None else np.nan,
                "injected_energy": self.injected_energy,
            },
        )

    def load_from_checkpoint(self, filename: str) -> None:
        """Restore state and clock from an HDF5 checkpoint file."""
        data = load_checkpoint(filename)
        grid = data["grid"]
        if grid.span.shape != self.grid.span.shape or grid.span.nghost != self.grid.span.nghost:
            raise ConfigurationError(
                f"checkpoint grid {grid.span.shape} does not match engine grid {self.grid.span.shape}"
            )
        self.grid = grid
        self.clock = data["clock"]
        extra = data["extra"]
        initial = extra.get("initial_energy", np.nan)
        self.initial_energy = None if not np.isfinite(initial) else float(initial)
        self.injected_energy = float(extra.get("injected_energy", 0.0))
        logger.info("Restored from checkpoint: t=%.4e, step=%d", self.clock.t, self.clock.step)

