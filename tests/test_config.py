"""Tests for configuration models and the error hierarchy.

Test categories:
1. Defaults and derived properties
2. Cross-field validation (stencil width, c_hat, dt bounds)
3. JSON round trip through files
4. Error types and diagnostics
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError


class TestConfigDefaults:
    """Default values and derived properties."""

    def test_minimal_config(self, small_config):
        assert small_config.grid.nghost == 3
        assert small_config.transport.reconstruction == "plm"
        assert small_config.transport.wavespeeds == "m1"
        assert small_config.erad_floor == 0.0
        assert small_config.problem == "equilibrium"

    def test_grid_dx(self):
        from m1rad.config import GridConfig

        g = GridConfig(resolution=[10, 20], domain_length=[1.0, 4.0])
        assert g.ndim == 2
        assert g.dx == pytest.approx((0.1, 0.2))

    def test_chat_defaults_to_c(self, unit_constants):
        assert unit_constants.chat == 1.0

    def test_reduced_speed(self):
        from m1rad.config import ConstantsConfig

        c = ConstantsConfig(c_light=3.0, c_hat=0.3, a_rad=1.0)
        assert c.chat == pytest.approx(0.3)

    def test_frozen(self, small_config):
        with pytest.raises(ValidationError):
            small_config.stop_time = 2.0

    def test_v_over_c_flag_required(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        del sample_config_dict["enable_v_over_c"]
        with pytest.raises(ValidationError, match="enable_v_over_c"):
            SimulationConfig(**sample_config_dict)


class TestConfigValidation:
    """Cross-field checks."""

    def test_chat_exceeds_c_rejected(self):
        from m1rad.config import ConstantsConfig

        with pytest.raises(ValidationError, match="c_hat"):
            ConstantsConfig(c_light=1.0, c_hat=2.0, a_rad=1.0)

    def test_too_few_ghosts_for_ppm(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        sample_config_dict["grid"]["nghost"] = 2
        sample_config_dict["transport"] = {"reconstruction": "ppm"}
        with pytest.raises(ValidationError, match="nghost"):
            SimulationConfig(**sample_config_dict)

    def test_constant_reconstruction_needs_one_ghost(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        sample_config_dict["grid"]["nghost"] = 1
        sample_config_dict["transport"] = {"reconstruction": "constant"}
        cfg = SimulationConfig(**sample_config_dict)
        assert cfg.grid.nghost == 1

    def test_mismatched_grid_lengths(self):
        from m1rad.config import GridConfig

        with pytest.raises(ValidationError, match="same length"):
            GridConfig(resolution=[8, 8], domain_length=[1.0])

    def test_negative_domain(self):
        from m1rad.config import GridConfig

        with pytest.raises(ValidationError):
            GridConfig(resolution=[8], domain_length=[-1.0])

    def test_max_dt_below_min_dt(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        sample_config_dict.update(max_dt=1e-6, min_dt=1e-3)
        with pytest.raises(ValidationError, match="max_dt"):
            SimulationConfig(**sample_config_dict)

    def test_unknown_limiter(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        sample_config_dict["transport"] = {"limiter": "superbee"}
        with pytest.raises(ValidationError):
            SimulationConfig(**sample_config_dict)

    def test_cfl_bounds(self, sample_config_dict):
        from m1rad.config import SimulationConfig

        sample_config_dict["cfl_rad"] = 1.5
        with pytest.raises(ValidationError):
            SimulationConfig(**sample_config_dict)


class TestConfigIO:
    """JSON serialization."""

    def test_file_round_trip(self, tmp_path, small_config):
        from m1rad.config import SimulationConfig

        path = tmp_path / "cfg.json"
        small_config.to_json(path)
        loaded = SimulationConfig.from_file(path)
        assert loaded == small_config

    def test_to_json_is_valid_json(self, small_config):
        data = json.loads(small_config.to_json())
        assert data["grid"]["resolution"] == [16]
        assert data["enable_v_over_c"] is False


class TestErrors:
    """Exception hierarchy and diagnostics."""

    def test_configuration_error_is_value_error(self):
        from m1rad.errors import ConfigurationError, M1RadError

        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(ConfigurationError, M1RadError)

    def test_invariant_violation_message(self):
        from m1rad.errors import InvariantViolation

        exc = InvariantViolation("gas density must be positive", variable="gas_density",
                                 index=(3,), value=-1.0, time=0.5, step=7)
        msg = str(exc)
        assert "gas_density" in msg
        assert "(3,)" in msg
        assert "step=7" in msg
        assert exc.index == (3,)

    def test_simulation_abort_diagnostics(self):
        from m1rad.errors import CouplingFailure, SimulationAbort

        cause = CouplingFailure("did not converge", index=(2, 1), variable="gas_temperature",
                                residual=1e-3, iterations=250)
        exc = SimulationAbort("gave up", time=1.0, step=4, dt=1e-3, retries=4, cause=cause)
        diag = exc.diagnostics()
        assert diag["retries"] == 4
        assert diag["cell"] == (2, 1)
        assert diag["variable"] == "gas_temperature"
        assert "did not converge" in str(exc)
