"""Tests for ExB advection, index-space diffusion and z hyper-diffusion."""

from __future__ import annotations

import numpy as np
import pytest

from edgefluid.errors import IncompatibleFieldsError
from edgefluid.mesh.structured import StructuredMesh
from edgefluid.operators import (
    CellEdges,
    d4dz4,
    div_n_bxgrad_f_b_xppm,
    div_perp_lap_fv_index,
)


@pytest.fixture
def perp_mesh():
    return StructuredMesh(nx=3, ny=2, nz=8, dx=0.5)


class TestExBAdvection:
    def test_uniform_potential_no_flow(self, perp_mesh, rng):
        n = rng.uniform(1.0, 2.0, size=perp_mesh.shape)
        result = div_n_bxgrad_f_b_xppm(perp_mesh, n, perp_mesh.full(3.0))
        np.testing.assert_array_equal(result, 0.0)

    def test_conservative_without_boundary_flux(self, perp_mesh, rng):
        m = perp_mesh
        n = rng.uniform(1.0, 2.0, size=m.shape)
        phi = rng.normal(size=m.shape)
        result = div_n_bxgrad_f_b_xppm(m, n, phi, bndry_flux=False)
        np.testing.assert_allclose(result[m.interior].sum(axis=(0, 2)), 0.0, atol=1e-10)

    def test_uniform_z_drift_upwind(self, perp_mesh, rng):
        """phi linear in x drives a uniform drift in z."""
        m = perp_mesh
        i = np.arange(m.LocalNx)
        phi = np.broadcast_to((-i * m.dx[0, 0])[:, np.newaxis, np.newaxis], m.shape).copy()
        n = rng.uniform(1.0, 2.0, size=m.shape)

        result = div_n_bxgrad_f_b_xppm(m, n, phi, limiter=CellEdges.UPWIND)

        expected = (n - np.roll(n, 1, axis=2)) / m.dz
        np.testing.assert_allclose(result[m.interior], expected[m.interior], atol=1e-10)

    def test_guards_zeroed(self, perp_mesh, rng):
        m = perp_mesh
        result = div_n_bxgrad_f_b_xppm(m, rng.random(m.shape), rng.random(m.shape))
        assert np.all(result[: m.xstart] == 0.0)
        assert np.all(result[m.xend + 1 :] == 0.0)

    def test_poloidal_vanishes_on_orthogonal_mesh(self, perp_mesh, rng):
        m = perp_mesh
        n = rng.uniform(1.0, 2.0, size=m.shape)
        phi = rng.normal(size=m.shape)
        with_poloidal = div_n_bxgrad_f_b_xppm(m, n, phi, poloidal=True)
        without = div_n_bxgrad_f_b_xppm(m, n, phi, poloidal=False)
        np.testing.assert_array_equal(with_poloidal, without)

    def test_poloidal_drift_with_g23(self, rng):
        m = StructuredMesh(nx=3, ny=4, nz=4, g_23=0.5)
        n = rng.uniform(1.0, 2.0, size=m.shape)
        phi = rng.normal(size=m.shape)
        with_poloidal = div_n_bxgrad_f_b_xppm(m, n, phi, poloidal=True)
        without = div_n_bxgrad_f_b_xppm(m, n, phi, poloidal=False)
        assert not np.allclose(with_poloidal, without)

    def test_incompatible_raises(self, perp_mesh):
        with pytest.raises(IncompatibleFieldsError):
            div_n_bxgrad_f_b_xppm(perp_mesh, perp_mesh.zeros(), np.zeros((1, 1, 1)))


class TestPerpLapIndex:
    def test_uniform_no_flux(self, perp_mesh, rng):
        result = div_perp_lap_fv_index(perp_mesh, rng.random(perp_mesh.shape), perp_mesh.full(2.0))
        np.testing.assert_array_equal(result, 0.0)

    def test_second_difference_in_z(self, perp_mesh, rng):
        m = perp_mesh
        line = rng.random(m.LocalNz)
        f = np.broadcast_to(line, m.shape).copy()
        result = div_perp_lap_fv_index(m, m.full(1.0), f)
        expected = np.roll(f, -1, axis=2) - 2.0 * f + np.roll(f, 1, axis=2)
        np.testing.assert_allclose(result[m.interior], expected[m.interior], atol=1e-12)

    def test_conservative_without_x_flux(self, perp_mesh, rng):
        m = perp_mesh
        a = rng.random(m.shape)
        f = rng.random(m.shape)
        result = div_perp_lap_fv_index(m, a, f, xflux=False)
        np.testing.assert_allclose(result[m.interior].sum(axis=(0, 2)), 0.0, atol=1e-12)


class TestD4DZ4:
    def test_constant_is_zero(self, perp_mesh):
        np.testing.assert_array_equal(d4dz4(perp_mesh, perp_mesh.full(5.0)), 0.0)

    def test_fourier_mode(self, perp_mesh):
        m = perp_mesh
        theta = 2.0 * np.pi / m.LocalNz
        f = np.broadcast_to(np.cos(theta * np.arange(m.LocalNz)), m.shape).copy()
        factor = (2.0 - 2.0 * np.cos(theta)) ** 2 / m.dz**4
        result = d4dz4(m, f)
        np.testing.assert_allclose(result[m.interior], factor * f[m.interior], atol=1e-10)
        assert np.all(result[:, : m.ystart] == 0.0)
