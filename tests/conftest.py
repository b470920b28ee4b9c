"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from edgefluid.config import SimulationConfig
from edgefluid.mesh.structured import StructuredMesh


@pytest.fixture
def mesh():
    """Small open field-line mesh for fast unit tests."""
    return StructuredMesh(nx=2, ny=8, nz=4)


@pytest.fixture
def periodic_mesh():
    """Single closed field line, no toroidal variation."""
    return StructuredMesh(nx=1, ny=8, nz=1, periodic_y=True)


@pytest.fixture
def sheared_mesh():
    """Mesh with a non-trivial field-line shift."""
    rng = np.random.default_rng(42)
    nx, ny, mxg, myg = 2, 6, 2, 2
    zshift = rng.uniform(-1.0, 1.0, size=(nx + 2 * mxg, ny + 2 * myg))
    return StructuredMesh(nx=nx, ny=ny, nz=8, mxg=mxg, myg=myg, zshift=zshift)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def sample_config_dict():
    """Minimal valid SimulationConfig as a dictionary."""
    return {
        "mesh": {"nx": 1, "ny": 8, "nz": 1},
        "species": {
            "d+": {
                "type": ["evolve_density"],
                "low_n_diffuse": False,
            },
        },
    }


@pytest.fixture
def small_config(sample_config_dict):
    """Small SimulationConfig for fast unit tests."""
    return SimulationConfig(**sample_config_dict)
