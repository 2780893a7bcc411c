"""Tests for ghost-zone fill policies.

Test categories:
1. Outflow copies the edge cell
2. Reflecting mirrors and flips normal components
3. Periodic wraps
4. Fixed state and Marshak incident radiation
5. Interior is never written; corners are filled in 2-D
"""

from __future__ import annotations

import numpy as np
import pytest


def _ramp_grid(n=6, nghost=2, ndim=1):
    from m1rad.core.state import NVAR, GridSpan, RadiationGrid

    span = GridSpan(shape=(n,) * ndim, nghost=nghost, dx=(1.0,) * ndim)
    grid = RadiationGrid(span)
    interior = grid.interior_data()
    values = np.arange(1, n + 1, dtype=float)
    for var in range(NVAR):
        shape = [1] * ndim
        shape[0] = n
        interior[var] = (var + 1) * 10.0 + values.reshape(shape)
    return grid


class TestOutflow:

    def test_copies_edge(self):
        from m1rad.core.boundary import BoundarySet, Outflow
        from m1rad.core.state import Var

        grid = _ramp_grid()
        BoundarySet.uniform(Outflow(), 1)(grid, 0.0)
        E = grid.data[Var.RAD_ENERGY]
        np.testing.assert_allclose(E[:2], E[2])
        np.testing.assert_allclose(E[-2:], E[-3])


class TestReflecting:

    def test_mirror_and_flip(self):
        from m1rad.core.boundary import BoundarySet, Reflecting
        from m1rad.core.state import Var

        grid = _ramp_grid()
        BoundarySet.uniform(Reflecting(), 1)(grid, 0.0)
        E = grid.data[Var.RAD_ENERGY]
        F = grid.data[Var.X1_RAD_FLUX]
        F2 = grid.data[Var.X2_RAD_FLUX]
        p = grid.data[Var.X1_GAS_MOMENTUM]
        # lower ghosts: index 1 mirrors 2, index 0 mirrors 3
        assert E[1] == E[2] and E[0] == E[3]
        assert E[-2] == E[-3] and E[-1] == E[-4]
        assert F[1] == -F[2] and F[0] == -F[3]
        assert p[-1] == -p[-4]
        # tangential components keep their sign
        assert F2[0] == F2[3]

    def test_needs_enough_cells(self):
        from m1rad.core.boundary import BoundarySet, Reflecting

        grid = _ramp_grid(n=1, nghost=2)
        with pytest.raises(ValueError, match="interior cells"):
            BoundarySet.uniform(Reflecting(), 1)(grid, 0.0)


class TestPeriodic:

    def test_wraps(self):
        from m1rad.core.boundary import BoundarySet, Periodic
        from m1rad.core.state import Var

        grid = _ramp_grid()
        BoundarySet.uniform(Periodic(), 1)(grid, 0.0)
        E = grid.data[Var.RAD_ENERGY]
        np.testing.assert_allclose(E[:2], E[6:8])
        np.testing.assert_allclose(E[-2:], E[2:4])


class TestFixedState:

    def test_prescribed_and_zero_gradient(self):
        from m1rad.core.boundary import LOWER, UPPER, BoundarySet, FixedState, Outflow
        from m1rad.core.state import Var

        grid = _ramp_grid()
        fixed = FixedState({Var.RAD_ENERGY: 5.0, Var.X1_RAD_FLUX: lambda t: 2.0 * t})
        BoundarySet({(0, LOWER): fixed, (0, UPPER): Outflow()}, 1)(grid, 1.5)
        assert np.all(grid.data[Var.RAD_ENERGY, :2] == 5.0)
        assert np.all(grid.data[Var.X1_RAD_FLUX, :2] == 3.0)
        assert np.all(grid.data[Var.GAS_DENSITY, :2] == grid.data[Var.GAS_DENSITY, 2])

    def test_marshak_incident(self):
        from m1rad.core.boundary import LOWER, UPPER, BoundarySet, MarshakIncident, Reflecting
        from m1rad.core.state import Var

        grid = _ramp_grid()
        bc = MarshakIncident(temperature=2.0, a_rad=1.0, c_hat=1.0)
        BoundarySet({(0, LOWER): bc, (0, UPPER): Reflecting()}, 1)(grid, 0.0)
        assert np.all(grid.data[Var.RAD_ENERGY, :2] == 16.0)
        assert np.all(grid.data[Var.X1_RAD_FLUX, :2] == 4.0)
        assert np.all(grid.data[Var.X2_RAD_FLUX, :2] == 0.0)

    def test_marshak_flux_fraction_range(self):
        from m1rad.core.boundary import MarshakIncident

        with pytest.raises(ValueError, match="flux_fraction"):
            MarshakIncident(1.0, 1.0, 1.0, flux_fraction=1.5)


class TestBoundarySet:

    def test_interior_untouched(self):
        from m1rad.core.boundary import BoundarySet, Reflecting

        grid = _ramp_grid(ndim=2)
        before = grid.interior_data().copy()
        BoundarySet.uniform(Reflecting(), 2)(grid, 0.0)
        np.testing.assert_array_equal(grid.interior_data(), before)

    def test_corners_filled(self):
        from m1rad.core.boundary import BoundarySet, Outflow
        from m1rad.core.state import Var

        grid = _ramp_grid(ndim=2)
        BoundarySet.uniform(Outflow(), 2)(grid, 0.0)
        rho = grid.data[Var.GAS_DENSITY]
        assert rho[0, 0] == rho[2, 2]
        assert rho[-1, -1] == rho[-3, -3]

    def test_missing_face(self):
        from m1rad.core.boundary import LOWER, BoundarySet, Outflow

        with pytest.raises(ValueError, match="no boundary condition"):
            BoundarySet({(0, LOWER): Outflow()}, 1)

    def test_dimension_mismatch(self):
        from m1rad.core.boundary import BoundarySet, Outflow

        grid = _ramp_grid(ndim=2)
        with pytest.raises(ValueError, match="1-D"):
            BoundarySet.uniform(Outflow(), 1)(grid, 0.0)
