"""Tests for fixed temperature and no-flow boundary components."""

from __future__ import annotations

import numpy as np
import pytest
from pydantic import ValidationError

from edgefluid.config import SimulationConfig
from edgefluid.core.pipeline import ComponentPipeline
from edgefluid.mesh.structured import StructuredMesh
from edgefluid.solver import Solver


def _build(types, **options):
    config = SimulationConfig(
        mesh={"nx": 1, "ny": 6, "nz": 2},
        species={"d+": {"type": types, "low_n_diffuse": False, **options}},
    )
    mesh = StructuredMesh.from_config(config.mesh)
    solver = Solver(mesh)
    return ComponentPipeline.from_config(config, solver, mesh), solver, mesh


class TestFixedTemperature:
    def test_temperature_and_pressure(self):
        pipeline, _, mesh = _build(
            ["evolve_density", "fixed_temperature"],
            temperature=3.0,
            initial_density={"value": 2.0},
        )
        species = pipeline.evaluate().species["d+"]
        np.testing.assert_array_equal(species.get("temperature"), mesh.full(3.0))
        np.testing.assert_array_equal(species.get("pressure"), mesh.full(6.0))

    def test_requires_temperature_option(self):
        with pytest.raises(ValidationError, match="temperature"):
            SimulationConfig(species={"d+": {"type": ["evolve_density", "fixed_temperature"]}})


class TestNoFlowBoundary:
    def test_density_neumann(self):
        pipeline, solver, mesh = _build(["noflow_boundary", "evolve_density"])
        N = solver.fields["Nd+"].value
        N[:, : mesh.ystart] = 5.0
        N[:, mesh.ystart : mesh.yend + 1] = np.arange(mesh.ny)[np.newaxis, :, np.newaxis] + 1.0
        before = N.copy()

        density = pipeline.evaluate().species["d+"].get("density")
        ys, ye = mesh.ystart, mesh.yend
        np.testing.assert_array_equal(density[:, ys - 1], density[:, ys])
        np.testing.assert_array_equal(density[:, ye + 1], density[:, ye])
        # The evolved field keeps its own guard values
        np.testing.assert_array_equal(N, before)

    def test_velocity_zero_on_boundary_face(self):
        pipeline, _, mesh = _build(
            ["evolve_density", "evolve_momentum", "fixed_temperature", "noflow_boundary"],
            temperature=1.0,
            AA=1.0,
            initial_momentum={"value": 0.5},
        )
        species = pipeline.evaluate().species["d+"]
        ys, ye = mesh.ystart, mesh.yend
        for key in ("velocity", "momentum"):
            value = species.get(key)
            np.testing.assert_allclose(value[:, ys - 1] + value[:, ys], 0.0)
            np.testing.assert_allclose(value[:, ye] + value[:, ye + 1], 0.0)

    def test_no_outflow_through_ends(self):
        pipeline, solver, mesh = _build(
            ["evolve_density", "evolve_momentum", "fixed_temperature", "noflow_boundary"],
            temperature=1.0,
            AA=1.0,
            initial_momentum={"value": 0.5},
        )
        pipeline.evaluate()
        # Closed ends conserve the total density
        ddt = solver.fields["Nd+"].ddt
        np.testing.assert_allclose(ddt[mesh.interior].sum(axis=1), 0.0, atol=1e-10)
