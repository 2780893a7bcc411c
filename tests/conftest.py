"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from m1rad.config import ConstantsConfig, GridConfig, SimulationConfig


@pytest.fixture
def unit_constants():
    """Dimensionless constants, c = a = k_B = 1."""
    return ConstantsConfig(c_light=1.0, a_rad=1.0, k_B=1.0, mean_molecular_mass=1.0)


@pytest.fixture
def sample_config_dict():
    """Minimal valid SimulationConfig as a dictionary."""
    return {
        "grid": {"resolution": [16], "domain_length": [1.0]},
        "constants": {"c_light": 1.0, "a_rad": 1.0, "k_B": 1.0},
        "enable_v_over_c": False,
        "stop_time": 0.1,
    }


@pytest.fixture
def small_config(sample_config_dict):
    """Small 1-D SimulationConfig for fast unit tests."""
    return SimulationConfig(**sample_config_dict)


@pytest.fixture
def make_config(unit_constants):
    """Factory for small configurations with overrides."""

    def _make(resolution=(16,), length=None, **overrides):
        length = length if length is not None else [1.0] * len(resolution)
        settings = dict(
            grid=GridConfig(resolution=list(resolution), domain_length=list(length)),
            constants=unit_constants,
            enable_v_over_c=False,
            stop_time=10.0,
        )
        settings.update(overrides)
        return SimulationConfig(**settings)

    return _make
