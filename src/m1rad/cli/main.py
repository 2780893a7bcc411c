"""Command-line interface for the M1 radiation solver.

Usage:
    m1rad simulate config.json --steps=100
    m1rad verify config.json
    m1rad benchmark su-olson --nx 384
    m1rad presets
"""

from __future__ import annotations

import logging
import sys

import click

logger = logging.getLogger(__name__)

_BENCHMARKS = ["su-olson", "marshak", "gaussian-pulse", "streaming"]


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """m1rad: M1 radiation transport with implicit matter coupling."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _echo_summary(title: str, summary: dict) -> None:
    click.echo(f"\n--- {title} ---")
    for key, val in summary.items():
        if isinstance(val, float):
            click.echo(f"  {key}: {val:.6e}")
        else:
            click.echo(f"  {key}: {val}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--steps", type=int, default=None, help="Max timesteps (default: run to stop_time).")
@click.option("--checkpoint", type=click.Path(), default=None, help="Write an HDF5 checkpoint at the end.")
@click.option("--restart", type=click.Path(exists=True), default=None, help="Restart from checkpoint.")
def simulate(
    config_file: str,
    steps: int | None,
    checkpoint: str | None,
    restart: str | None,
) -> None:
    """Run a simulation from a configuration file."""
    from m1rad.config import SimulationConfig
    from m1rad.engine import RadiationEngine
    from m1rad.errors import ConfigurationError, InvariantViolation, SimulationAbort
    from m1rad.presets import build_problem

    click.echo(f"Loading config from {config_file}")
    try:
        config = SimulationConfig.from_file(config_file)
        policy, grid = build_problem(config)
        engine = RadiationEngine(config, policy, grid)
    except (ValueError, ConfigurationError) as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Problem: {config.problem}, grid {tuple(config.grid.resolution)}")

    if restart:
        click.echo(f"Restarting from checkpoint: {restart}")
        engine.load_from_checkpoint(restart)

    try:
        summary = engine.run(max_steps=steps)
    except SimulationAbort as exc:
        click.echo(f"Simulation aborted: {exc}", err=True)
        for key, val in exc.diagnostics().items():
            click.echo(f"  {key}: {val}", err=True)
        sys.exit(1)
    except InvariantViolation as exc:
        click.echo(f"Invariant violated: {exc}", err=True)
        sys.exit(1)

    if checkpoint:
        engine.save_checkpoint(checkpoint)
        click.echo(f"Checkpoint written to {checkpoint}")

    _echo_summary("Simulation Summary", summary)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def verify(config_file: str) -> None:
    """Verify a configuration file is valid."""
    from m1rad.config import SimulationConfig
    from m1rad.presets import get_builder

    try:
        config = SimulationConfig.from_file(config_file)
        get_builder(config.problem)
    except (ValueError, TypeError, OSError) as exc:
        logger.debug("Configuration check failed for %s", config_file, exc_info=True)
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    consts = config.constants
    click.echo("Configuration is valid:")
    click.echo(f"  Grid: {config.grid.resolution}, nghost={config.grid.nghost}")
    click.echo(f"  dx: {', '.join(f'{d:.3e}' for d in config.grid.dx)}")
    click.echo(f"  stop_time: {config.stop_time:.3e}")
    click.echo(f"  c: {consts.c_light:.3e}, c_hat: {consts.chat:.3e}")
    click.echo(
        f"  Transport: {config.transport.reconstruction}/{config.transport.limiter}, "
        f"wavespeeds={config.transport.wavespeeds}, CFL={config.cfl_rad}"
    )
    click.echo(f"  v/c terms: {config.enable_v_over_c}")
    click.echo(f"  Problem: {config.problem}")


@cli.command()
@click.argument("name", type=click.Choice(_BENCHMARKS, case_sensitive=False))
@click.option("--nx", type=int, default=None, help="Number of cells (default: benchmark's own).")
@click.option("--t-end", type=float, default=None, help="Final time (default: benchmark's own).")
@click.option("--reference", type=click.Path(exists=True), default=None,
              help="Two-column reference profile (marshak only).")
def benchmark(name: str, nx: int | None, t_end: float | None, reference: str | None) -> None:
    """Run a verification problem and report its error metrics."""
    from m1rad.errors import InvariantViolation, SimulationAbort
    from m1rad.verification import run_gaussian_pulse, run_marshak, run_streaming, run_su_olson

    kwargs: dict = {}
    if nx is not None:
        kwargs["nx"] = nx
    if t_end is not None:
        kwargs["t_end"] = t_end

    try:
        name = name.lower()
        if name == "su-olson":
            res = run_su_olson(**kwargs)
            summary = {
                "nx": res.nx, "t_end": res.t_end, "steps": res.steps,
                "tgas_l1_error": res.l1_error, "erad_l1_error": res.erad_l1_error,
                "energy_conservation": res.energy_conservation,
            }
        elif name == "marshak":
            res = run_marshak(reference=reference, **kwargs)
            summary = {
                "nx": res.nx, "t_end": res.t_end, "steps": res.steps,
                "front_position": res.front_position,
                "absorbed_energy": res.absorbed_energy, "trad_l2_error": res.l2_error,
                "file_l2_error": res.file_l2_error,
            }
        elif name == "gaussian-pulse":
            res = run_gaussian_pulse(**kwargs)
            summary = {
                "nx": res.nx, "t_end": res.t_end, "l1_error": res.l1_error,
                "variance_growth": res.variance_growth,
                "expected_variance_growth": res.expected_variance_growth,
                "energy_conservation": res.energy_conservation,
            }
        else:
            res = run_streaming(**kwargs)
            summary = {
                "nx": res.nx, "t_end": res.t_end, "c_hat": res.c_hat,
                "front_position": res.front_position,
                "expected_position": res.expected_position,
                "max_reduced_flux": res.max_reduced_flux,
            }
    except (SimulationAbort, InvariantViolation) as exc:
        click.echo(f"Benchmark {name} failed: {exc}", err=True)
        sys.exit(1)

    _echo_summary(f"Benchmark {name}", summary)


@cli.command()
def presets() -> None:
    """List the problems a configuration can select."""
    from m1rad.presets import list_presets

    click.echo("Available problems:")
    for entry in list_presets():
        click.echo(f"  {entry['name']:<16s} {entry['description']}")
