"""Tests for HDF5 checkpoint save/load.

Test categories:
1. Save checkpoint creates a valid HDF5 file
2. Load recovers buffer, geometry, clock and extras
3. Version and layout checks
"""

from __future__ import annotations

import h5py
import numpy as np
import pytest


def _grid():
    from m1rad.core.state import GridSpan, RadiationGrid

    span = GridSpan(shape=(6, 4), nghost=2, dx=(0.5, 0.25), origin=(-1.0, 0.0))
    grid = RadiationGrid(span)
    rng = np.random.default_rng(11)
    grid.data[...] = rng.uniform(0.1, 1.0, grid.data.shape)
    return grid


class TestCheckpointSaveLoad:

    def test_save_creates_file(self, tmp_path):
        from m1rad.core.bases import TimeState
        from m1rad.diagnostics.checkpoint import CHECKPOINT_VERSION, save_checkpoint

        path = tmp_path / "state.h5"
        save_checkpoint(str(path), _grid(), TimeState(t=1.5, dt=0.1, step=15))
        assert path.exists()
        with h5py.File(path, "r") as f:
            assert f.attrs["checkpoint_version"] == CHECKPOINT_VERSION
            assert f["state"].shape == (9, 10, 8)

    def test_load_recovers_state(self, tmp_path):
        from m1rad.core.bases import TimeState
        from m1rad.diagnostics.checkpoint import load_checkpoint, save_checkpoint

        grid = _grid()
        path = str(tmp_path / "state.h5")
        save_checkpoint(path, grid, TimeState(t=2.5, dt=0.25, step=100),
                        config_json='{"stop_time": 3.0}', extra={"injected_energy": 4.0})
        data = load_checkpoint(path)

        np.testing.assert_array_equal(data["grid"].data, grid.data)
        assert data["grid"].span == grid.span
        assert data["clock"].t == pytest.approx(2.5)
        assert data["clock"].dt == pytest.approx(0.25)
        assert data["clock"].step == 100
        assert data["config_json"] == '{"stop_time": 3.0}'
        assert data["extra"] == {"injected_energy": 4.0}

    def test_no_origin(self, tmp_path):
        from m1rad.core.bases import TimeState
        from m1rad.core.state import GridSpan, RadiationGrid
        from m1rad.diagnostics.checkpoint import load_checkpoint, save_checkpoint

        grid = RadiationGrid(GridSpan(shape=(4,), nghost=1, dx=(0.25,)))
        path = str(tmp_path / "plain.h5")
        save_checkpoint(path, grid, TimeState())
        data = load_checkpoint(path)
        assert data["grid"].span.origin is None
        assert data["config_json"] is None


class TestCheckpointValidation:

    def test_unknown_version(self, tmp_path):
        from m1rad.core.bases import TimeState
        from m1rad.diagnostics.checkpoint import load_checkpoint, save_checkpoint

        path = str(tmp_path / "old.h5")
        save_checkpoint(path, _grid(), TimeState())
        with h5py.File(path, "a") as f:
            f.attrs["checkpoint_version"] = 99
        with pytest.raises(ValueError, match="version"):
            load_checkpoint(path)

    def test_variable_layout_mismatch(self, tmp_path):
        from m1rad.core.bases import TimeState
        from m1rad.diagnostics.checkpoint import load_checkpoint, save_checkpoint

        path = str(tmp_path / "layout.h5")
        save_checkpoint(path, _grid(), TimeState())
        with h5py.File(path, "a") as f:
            names = [str(n) for n in f["state"].attrs["variables"]]
            f["state"].attrs["variables"] = names[::-1]
        with pytest.raises(ValueError, match="layout"):
            load_checkpoint(path)
