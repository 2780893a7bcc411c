"""Checkpoint/restart support for radiation transport runs.

Saves and loads the padded state buffer, grid geometry and simulation clock
to HDF5 files for restart capability.

Usage:
    # Save checkpoint
    save_checkpoint("checkpoint.h5", grid, clock, config_json)

    # Load checkpoint
    data = load_checkpoint("checkpoint.h5")
    grid = data["grid"]
    clock = data["clock"]
"""

from __future__ import annotations

import logging
from typing import Any

import h5py
import numpy as np

from m1rad.core.bases import TimeState
from m1rad.core.state import GridSpan, RadiationGrid, Var

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = 1


def save_checkpoint(
    filename: str,
    grid: RadiationGrid,
    clock: TimeState,
    config_json: str | None = None,
    extra: dict[str, float] | None = None,
) -> None:
    """Save the full state to an HDF5 checkpoint file.

    Args:
        filename: Output HDF5 file path.
        grid: State buffer, ghost cells included.
        clock: Simulation clock.
        config_json: JSON string of the simulation config (for reference).
        extra: Additional scalars stored as attributes of the ``extra`` group.
    """
    logger.info("Saving checkpoint to %s at t=%.4e, step=%d", filename, clock.t, clock.step)

    span = grid.span
    with h5py.File(filename, "w") as f:
        f.attrs["time"] = clock.t
        f.attrs["dt"] = clock.dt
        f.attrs["step_count"] = clock.step
        f.attrs["checkpoint_version"] = CHECKPOINT_VERSION
        if config_json is not None:
            f.attrs["config_json"] = config_json

        grp_grid = f.create_group("grid")
        grp_grid.attrs["shape"] = np.asarray(span.shape, dtype=np.int64)
        grp_grid.attrs["nghost"] = span.nghost
        grp_grid.attrs["dx"] = np.asarray(span.dx, dtype=np.float64)
        if span.origin is not None:
            grp_grid.attrs["origin"] = np.asarray(span.origin, dtype=np.float64)

        dset = f.create_dataset("state", data=grid.data)
        dset.attrs["variables"] = [var.name for var in Var]

        grp_extra = f.create_group("extra")
        for key, val in (extra or {}).items():
            grp_extra.attrs[key] = val

    logger.info("Checkpoint saved: %s", filename)


def load_checkpoint(filename: str) -> dict[str, Any]:
    """Load a state from an HDF5 checkpoint file.

    Args:
        filename: Input HDF5 file path.

    Returns:
        Dictionary with keys:
            - "grid": RadiationGrid with the saved buffer
            - "clock": TimeState
            - "config_json": str or None
            - "extra": dict of floats

    Raises:
        ValueError: The file was written with an unknown checkpoint version
            or a different variable layout.
    """
    logger.info("Loading checkpoint from %s", filename)

    with h5py.File(filename, "r") as f:
        version = int(f.attrs.get("checkpoint_version", -1))
        if version != CHECKPOINT_VERSION:
            raise ValueError(f"unsupported checkpoint version {version}")

        clock = TimeState(
            t=float(f.attrs["time"]),
            dt=float(f.attrs["dt"]),
            step=int(f.attrs["step_count"]),
        )
        config_json = str(f.attrs["config_json"]) if "config_json" in f.attrs else None

        g = f["grid"].attrs
        span = GridSpan(
            shape=tuple(int(n) for n in g["shape"]),
            nghost=int(g["nghost"]),
            dx=tuple(float(d) for d in g["dx"]),
            origin=tuple(float(o) for o in g["origin"]) if "origin" in g else None,
        )

        names = [str(n.decode() if isinstance(n, bytes) else n) for n in f["state"].attrs["variables"]]
        if names != [var.name for var in Var]:
            raise ValueError(f"checkpoint variable layout {names} does not match {[v.name for v in Var]}")
        grid = RadiationGrid(span, np.array(f["state"]))

        extra = {key: float(val) for key, val in f["extra"].attrs.items()}

    logger.info("Checkpoint loaded: t=%.4e, step=%d, grid=%s", clock.t, clock.step, span.shape)

    return {
        "grid": grid,
        "clock": clock,
        "config_json": config_json,
        "extra": extra,
    }
