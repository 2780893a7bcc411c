"""Tests for the state layout and grid buffer.

Test categories:
1. Variable ordering and slices
2. Grid geometry (padding, interior, cell centers)
3. Accessors and bounds checking
4. Reductions and copies
5. Problem policy validation
"""

from __future__ import annotations

import numpy as np
import pytest


class TestVariableLayout:

    def test_order(self):
        from m1rad.core.state import NVAR, Var

        assert NVAR == 9
        assert [v.name for v in Var] == [
            "RAD_ENERGY", "X1_RAD_FLUX", "X2_RAD_FLUX", "X3_RAD_FLUX",
            "GAS_ENERGY", "GAS_DENSITY",
            "X1_GAS_MOMENTUM", "X2_GAS_MOMENTUM", "X3_GAS_MOMENTUM",
        ]

    def test_vector_slices(self):
        from m1rad.core.state import GAS_MOMENTUM, RAD_FLUX

        assert list(range(9))[RAD_FLUX] == [1, 2, 3]
        assert list(range(9))[GAS_MOMENTUM] == [6, 7, 8]


class TestGridSpan:

    def test_padded_shape(self):
        from m1rad.core.state import GridSpan

        span = GridSpan(shape=(8, 4), nghost=2, dx=(0.1, 0.2))
        assert span.padded_shape == (12, 8)
        assert span.interior == (slice(2, 10), slice(2, 6))
        assert span.cell_volume == pytest.approx(0.02)

    def test_cell_centers_with_origin(self):
        from m1rad.core.state import GridSpan

        span = GridSpan(shape=(4,), nghost=1, dx=(0.5,), origin=(-1.0,))
        (x,) = span.cell_centers()
        np.testing.assert_allclose(x, [-0.75, -0.25, 0.25, 0.75])
        np.testing.assert_allclose(span.cell_edges(0), [-1.0, -0.5, 0.0, 0.5, 1.0])

    def test_ghost_region(self):
        from m1rad.core.state import GridSpan

        span = GridSpan(shape=(5, 3), nghost=2, dx=(1.0, 1.0))
        assert span.ghost_region(0, 0) == (slice(0, 2), slice(2, 5))
        assert span.ghost_region(0, 1) == (slice(7, 9), slice(2, 5))
        assert span.ghost_region(1, 1) == (slice(2, 7), slice(5, 7))


class TestRadiationGrid:

    def test_from_config_zeroed(self, small_config):
        from m1rad.core.state import RadiationGrid

        grid = RadiationGrid.from_config(small_config.grid)
        assert grid.data.shape == (9, 22)
        assert np.all(grid.data == 0.0)

    def test_interior_views_are_writable(self, small_config):
        from m1rad.core.state import RadiationGrid, Var

        grid = RadiationGrid.from_config(small_config.grid)
        grid.rad_energy[...] = 2.0
        assert np.all(grid.data[Var.RAD_ENERGY, 3:19] == 2.0)
        assert np.all(grid.data[Var.RAD_ENERGY, :3] == 0.0)
        grid.rad_flux[0] = 0.5
        assert grid.get(Var.X1_RAD_FLUX, 0) == 0.5

    def test_get_set(self, small_config):
        from m1rad.core.state import RadiationGrid, Var

        grid = RadiationGrid.from_config(small_config.grid)
        grid.set(Var.GAS_DENSITY, 5, 3.0)
        assert grid.get(Var.GAS_DENSITY, (5,)) == 3.0
        assert grid.data[Var.GAS_DENSITY, 8] == 3.0

    def test_out_of_bounds(self, small_config):
        from m1rad.core.state import RadiationGrid, Var

        grid = RadiationGrid.from_config(small_config.grid)
        with pytest.raises(IndexError):
            grid.get(Var.RAD_ENERGY, 16)
        with pytest.raises(IndexError):
            grid.set(Var.RAD_ENERGY, -1, 1.0)
        with pytest.raises(IndexError):
            grid.get(Var.RAD_ENERGY, (0, 0))

    def test_wrong_buffer_shape(self):
        from m1rad.core.state import GridSpan, RadiationGrid

        span = GridSpan(shape=(4,), nghost=1, dx=(1.0,))
        with pytest.raises(ValueError, match="shape"):
            RadiationGrid(span, np.zeros((9, 4)))

    def test_reductions(self, small_config):
        from m1rad.core.state import RadiationGrid

        grid = RadiationGrid.from_config(small_config.grid)
        grid.rad_energy[...] = 2.0
        grid.gas_energy[...] = 3.0
        grid.data[0, 0] = 100.0  # ghost cell, must not count
        assert grid.compute_radiation_energy() == pytest.approx(2.0)
        assert grid.compute_gas_energy() == pytest.approx(3.0)

    def test_internal_energy_subtracts_kinetic(self, small_config):
        from m1rad.core.state import RadiationGrid

        grid = RadiationGrid.from_config(small_config.grid)
        grid.gas_density[...] = 2.0
        grid.gas_momentum[0] = 4.0
        grid.gas_energy[...] = 10.0
        np.testing.assert_allclose(grid.gas_internal_energy(), 6.0)

    def test_copy_is_independent(self, small_config):
        from m1rad.core.state import RadiationGrid

        grid = RadiationGrid.from_config(small_config.grid)
        other = grid.copy()
        other.rad_energy[...] = 1.0
        assert np.all(grid.rad_energy == 0.0)


class TestProblemPolicy:

    def test_build_and_validate(self):
        from m1rad.core.bases import ProblemPolicy
        from m1rad.core.boundary import BoundarySet, Outflow
        from m1rad.fluid.eos import IdealGasEOS
        from m1rad.radiation.opacity import ConstantOpacity

        policy = ProblemPolicy.build(IdealGasEOS(), ConstantOpacity(1.0), BoundarySet.uniform(Outflow(), 1))
        policy.validate()
        assert policy.rosseland_opacity is policy.planck_opacity
        assert policy.sound_speed is not None
        assert policy.rad_energy_source is None

    def test_missing_capability(self):
        from m1rad.core.bases import ProblemPolicy
        from m1rad.errors import ConfigurationError
        from m1rad.fluid.eos import IdealGasEOS
        from m1rad.radiation.opacity import ConstantOpacity

        eos = IdealGasEOS()
        policy = ProblemPolicy(
            planck_opacity=ConstantOpacity(1.0),
            rosseland_opacity=ConstantOpacity(1.0),
            tgas_from_egas=eos.tgas_from_egas,
            egas_from_tgas=eos.egas_from_tgas,
            egas_temp_derivative=eos.egas_temp_derivative,
            fill_ghost_zones=None,
        )
        with pytest.raises(ConfigurationError, match="fill_ghost_zones"):
            policy.validate()

    def test_gas_temperature(self):
        from m1rad.core.bases import ProblemPolicy
        from m1rad.core.boundary import BoundarySet, Outflow
        from m1rad.core.state import NVAR, Var
        from m1rad.fluid.eos import IdealGasEOS
        from m1rad.radiation.opacity import ConstantOpacity

        eos = IdealGasEOS(gamma=5.0 / 3.0)
        policy = ProblemPolicy.build(eos, ConstantOpacity(1.0), BoundarySet.uniform(Outflow(), 1))
        data = np.zeros((NVAR, 3))
        data[Var.GAS_DENSITY] = 1.0
        data[Var.GAS_ENERGY] = eos.egas_from_tgas(1.0, np.array([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(policy.gas_temperature(data), [1.0, 2.0, 3.0])

    def test_grid_gas_temperature(self, make_config):
        from m1rad.presets import build_equilibrium

        policy, grid = build_equilibrium(make_config(problem_params={"T": 1.5}))
        np.testing.assert_allclose(grid.gas_temperature(policy), 1.5)
