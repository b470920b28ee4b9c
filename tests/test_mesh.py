"""Tests for the structured mesh: layout, guard cells and field alignment."""

from __future__ import annotations

import numpy as np
import pytest

from edgefluid.config import MeshConfig
from edgefluid.errors import IncompatibleFieldsError
from edgefluid.mesh.structured import StructuredMesh

# ====================================================
# Layout
# ====================================================

class TestLayout:
    def test_shape_includes_guards(self, mesh):
        assert mesh.shape == (6, 12, 4)
        assert (mesh.xstart, mesh.xend) == (2, 3)
        assert (mesh.ystart, mesh.yend) == (2, 9)

    def test_interior_slice(self, mesh):
        f = mesh.zeros()
        f[mesh.interior] = 1.0
        assert f.sum() == 2 * 8 * 4

    def test_needs_two_y_guards(self):
        with pytest.raises(ValueError, match="myg"):
            StructuredMesh(nx=1, ny=4, nz=1, myg=1)

    def test_metric_shape_checked(self):
        with pytest.raises(IncompatibleFieldsError):
            StructuredMesh(nx=1, ny=4, nz=1, J=np.ones((3, 3)))

    def test_default_dz(self):
        m = StructuredMesh(nx=1, ny=4, nz=8)
        assert m.dz == pytest.approx(2.0 * np.pi / 8)

    def test_boundary_predicates(self, mesh, periodic_mesh):
        assert mesh.first_y(mesh.xstart)
        assert mesh.last_y(mesh.xstart)
        assert not mesh.periodic_y(mesh.xstart)
        assert periodic_mesh.periodic_y(periodic_mesh.xstart)

    def test_y_normalised_cell_centres(self, mesh):
        y = mesh.y_normalised()
        assert y[mesh.ystart] == pytest.approx(0.5 / 8)
        assert y[mesh.yend] == pytest.approx(1.0 - 0.5 / 8)

    def test_from_config_shear(self):
        cfg = MeshConfig(nx=1, ny=4, nz=4, shear=0.5, dy=2.0)
        m = StructuredMesh.from_config(cfg)
        assert m.zshift[m.xstart, m.ystart] == 0.0
        assert m.zshift[m.xstart, m.ystart + 1] == pytest.approx(1.0)


class TestCompatibility:
    def test_compatible(self, mesh):
        assert mesh.is_compatible(mesh.zeros())
        mesh.check_compatible(a=mesh.zeros(), b=mesh.full(2.0))

    def test_incompatible_names_field(self, mesh):
        with pytest.raises(IncompatibleFieldsError, match="'velocity'"):
            mesh.check_compatible(density=mesh.zeros(), velocity=np.zeros((3, 3, 3)))

    def test_incompatible_is_value_error(self, mesh):
        with pytest.raises(ValueError):
            mesh.check_compatible(f=[1.0, 2.0])


# ====================================================
# Guard cells
# ====================================================

class TestGuardCells:
    def test_communicate_periodic(self, periodic_mesh, rng):
        m = periodic_mesh
        f = rng.random(m.shape)
        m.communicate(f)
        np.testing.assert_array_equal(f[:, : m.ystart], f[:, m.yend - 1 : m.yend + 1])
        np.testing.assert_array_equal(f[:, m.yend + 1 :], f[:, m.ystart : m.ystart + 2])

    def test_communicate_open_untouched(self, mesh, rng):
        f = rng.random(mesh.shape)
        before = f.copy()
        mesh.communicate(f)
        np.testing.assert_array_equal(f, before)

    def test_neumann_boundary(self, mesh, rng):
        f = rng.random(mesh.shape)
        g = mesh.apply_y_boundary(f, "neumann")
        ys, ye = mesh.ystart, mesh.yend
        np.testing.assert_array_equal(g[:, ys - 1], f[:, ys])
        np.testing.assert_array_equal(g[:, ys - 2], f[:, ys + 1])
        np.testing.assert_array_equal(g[:, ye + 1], f[:, ye])
        np.testing.assert_array_equal(g[mesh.interior], f[mesh.interior])

    def test_zero_face_boundary(self, mesh, rng):
        f = rng.random(mesh.shape)
        g = mesh.apply_y_boundary(f, "zero_face")
        ys, ye = mesh.ystart, mesh.yend
        np.testing.assert_allclose(0.5 * (g[:, ys - 1] + g[:, ys]), 0.0)
        np.testing.assert_allclose(0.5 * (g[:, ye] + g[:, ye + 1]), 0.0)

    def test_boundary_returns_copy(self, mesh, rng):
        f = rng.random(mesh.shape)
        before = f.copy()
        mesh.apply_y_boundary(f, "zero_face")
        np.testing.assert_array_equal(f, before)

    def test_boundary_skips_periodic(self, periodic_mesh, rng):
        f = rng.random(periodic_mesh.shape)
        np.testing.assert_array_equal(periodic_mesh.apply_y_boundary(f), f)

    def test_unknown_boundary_kind(self, mesh):
        with pytest.raises(ValueError, match="kind"):
            mesh.apply_y_boundary(mesh.zeros(), "dirichlet")


# ====================================================
# Field-aligned transforms
# ====================================================

class TestFieldAligned:
    def test_round_trip(self, sheared_mesh, rng):
        f = rng.random(sheared_mesh.shape)
        aligned = sheared_mesh.to_field_aligned(f)
        assert not np.allclose(aligned, f)
        back = sheared_mesh.from_field_aligned(aligned)
        np.testing.assert_allclose(back, f, atol=1e-12)

    def test_round_trip_odd_nz(self, rng):
        zshift = rng.uniform(-2.0, 2.0, size=(5, 8))
        m = StructuredMesh(nx=1, ny=4, nz=5, zshift=zshift)
        f = rng.random(m.shape)
        np.testing.assert_allclose(m.from_field_aligned(m.to_field_aligned(f)), f, atol=1e-12)

    def test_shift_by_one_cell(self):
        nz = 8
        m = StructuredMesh(nx=1, ny=4, nz=nz)
        m = StructuredMesh(nx=1, ny=4, nz=nz, zshift=np.full((5, 8), m.dz))
        k = np.arange(nz)
        line = np.sin(2 * np.pi * k / nz) + 0.5 * np.cos(4 * np.pi * k / nz)
        f = np.broadcast_to(line, m.shape).copy()
        np.testing.assert_allclose(m.to_field_aligned(f), np.roll(f, 1, axis=2), atol=1e-12)

    def test_unshifted_is_copy(self, mesh, rng):
        f = rng.random(mesh.shape)
        aligned = mesh.to_field_aligned(f)
        np.testing.assert_array_equal(aligned, f)
        assert aligned is not f

    def test_zero_boundaries(self, sheared_mesh, rng):
        m = sheared_mesh
        result = m.from_field_aligned(rng.random(m.shape), zero_boundaries=True)
        assert np.all(result[: m.xstart] == 0.0)
        assert np.all(result[:, m.yend + 1 :] == 0.0)
        assert np.any(result[m.interior] != 0.0)

    def test_incompatible_raises(self, sheared_mesh):
        with pytest.raises(IncompatibleFieldsError):
            sheared_mesh.to_field_aligned(np.zeros((2, 2, 2)))
