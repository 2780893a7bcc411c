"""Tests for the command-line interface and problem presets.

Validates:
1. presets command and registry lookups
2. verify command on valid and invalid files
3. simulate command with --steps, --checkpoint and --restart
4. Exit status 1 on invariant violations
5. benchmark command on a small streaming run
"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from m1rad.cli.main import cli


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, make_config):
    config = make_config(resolution=(16,), problem="equilibrium", stop_time=0.05)
    path = tmp_path / "equilibrium.json"
    path.write_text(config.to_json())
    return str(path)


class TestPresets:

    def test_registry(self):
        from m1rad.presets import get_preset_names, list_presets

        names = get_preset_names()
        assert names == ["equilibrium", "su_olson", "marshak", "gaussian_pulse", "streaming"]
        assert all(entry["description"] for entry in list_presets())

    def test_unknown_problem(self, make_config):
        from m1rad.errors import ConfigurationError
        from m1rad.presets import build_problem

        with pytest.raises(ConfigurationError, match="Unknown problem"):
            build_problem(make_config(problem="sedov"))

    @pytest.mark.parametrize("name", ["equilibrium", "su_olson", "marshak", "gaussian_pulse", "streaming"])
    def test_builders_produce_valid_state(self, make_config, name):
        from m1rad.engine import RadiationEngine
        from m1rad.presets import build_problem

        config = make_config(resolution=(16,), problem=name, erad_floor=0.0)
        policy, grid = build_problem(config)
        engine = RadiationEngine(config, policy, grid)
        engine.validate_state()
        assert (grid.gas_density > 0).all()

    def test_equilibrium_params(self, make_config):
        from m1rad.presets import build_equilibrium

        config = make_config(problem_params={"T": 2.0, "rho": 3.0})
        policy, grid = build_equilibrium(config)
        assert grid.rad_energy[0] == pytest.approx(16.0)
        assert policy.gas_temperature(grid.interior_data())[0] == pytest.approx(2.0)

    def test_presets_command(self, runner):
        result = runner.invoke(cli, ["presets"])
        assert result.exit_code == 0
        assert "su_olson" in result.output
        assert "streaming" in result.output


class TestVerify:

    def test_valid(self, runner, config_file):
        result = runner.invoke(cli, ["verify", config_file])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Problem: equilibrium" in result.output

    def test_invalid_values(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            "grid": {"resolution": [8], "domain_length": [1.0]},
            "constants": {"c_light": 1.0, "c_hat": 2.0, "a_rad": 1.0},
            "enable_v_over_c": False,
            "stop_time": 1.0,
        }))
        result = runner.invoke(cli, ["verify", str(path)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_unknown_problem(self, runner, tmp_path, make_config):
        path = tmp_path / "unknown.json"
        path.write_text(make_config(problem="sedov").to_json())
        result = runner.invoke(cli, ["verify", str(path)])
        assert result.exit_code == 1

    def test_malformed_json_logs_traceback(self, runner, tmp_path, caplog):
        import logging

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with caplog.at_level(logging.DEBUG, logger="m1rad.cli.main"):
            result = runner.invoke(cli, ["-v", "verify", str(path)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
        records = [r for r in caplog.records if r.name == "m1rad.cli.main"]
        assert records and records[0].exc_info is not None

    def test_unexpected_error_propagates(self, runner, config_file, monkeypatch):
        import m1rad.presets

        def broken(name):
            raise RuntimeError("registry corrupted")

        monkeypatch.setattr(m1rad.presets, "get_builder", broken)
        result = runner.invoke(cli, ["verify", config_file])
        assert isinstance(result.exception, RuntimeError)
        assert "Configuration error" not in result.output


class TestSimulate:

    def test_runs_to_stop_time(self, runner, config_file):
        result = runner.invoke(cli, ["simulate", config_file])
        assert result.exit_code == 0, result.output
        assert "Simulation Summary" in result.output
        assert "energy_conservation" in result.output

    def test_steps_checkpoint_restart(self, runner, config_file, tmp_path):
        chk = str(tmp_path / "run.h5")
        result = runner.invoke(cli, ["simulate", config_file, "--steps", "2", "--checkpoint", chk])
        assert result.exit_code == 0, result.output
        assert "steps: 2" in result.output

        result = runner.invoke(cli, ["simulate", config_file, "--steps", "1", "--restart", chk])
        assert result.exit_code == 0, result.output
        assert "steps: 3" in result.output

    def test_invariant_violation_exit_status(self, runner, tmp_path, make_config):
        config = make_config(problem="equilibrium", min_dt=1.0)
        path = tmp_path / "min_dt.json"
        path.write_text(config.to_json())
        result = runner.invoke(cli, ["simulate", str(path)])
        assert result.exit_code == 1
        assert "Invariant violated" in result.output


class TestBenchmark:

    def test_streaming(self, runner):
        result = runner.invoke(cli, ["benchmark", "streaming", "--nx", "50", "--t-end", "0.2"])
        assert result.exit_code == 0, result.output
        assert "front_position" in result.output

    def test_unknown_benchmark(self, runner):
        result = runner.invoke(cli, ["benchmark", "sedov"])
        assert result.exit_code != 0
