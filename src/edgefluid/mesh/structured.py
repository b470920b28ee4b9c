"""Structured field-aligned mesh: metric, boundaries and guard cells.

The grid is indexed (x, y, z) with:
    x: radial, ``mxg`` guard cells on each side
    y: parallel (along the magnetic field), ``myg`` guard cells on each side
    z: toroidal, periodic, no guard cells

Fields are plain ``numpy`` arrays of shape ``mesh.shape`` including the
guard cells.  Metric coefficients (J, g_22, g_23, Bxy, dx, dy) and the
field-line shift ``zshift`` are 2D arrays over (x, y); ``dz`` is a scalar.

Field-aligned transform:
    A field-aligned representation shifts each z column by ``-zshift(x, y)``
    so that y index lines follow magnetic field lines on a sheared grid.
    The shift is applied spectrally in z:

        f_aligned = irfft( rfft(f) * exp(-i kz zshift) )

    with kz = 2 pi m / (nz dz).  The Nyquist mode of an even ``nz`` is left
    unshifted so that ``from_field_aligned(to_field_aligned(f)) == f``.

This class is a single-process mesh: ``communicate`` only fills the y guard
cells of periodic (closed field line) columns.  Boundary guard cells are
set by boundary components through ``apply_y_boundary``.
"""

from __future__ import annotations

import logging

import numpy as np

from edgefluid.config import MeshConfig
from edgefluid.errors import IncompatibleFieldsError

logger = logging.getLogger(__name__)


class StructuredMesh:
    """Structured 3D mesh with guard cells and a shifted-metric transform.

    Args:
        nx: Interior cells in x.
        ny: Interior cells in y.
        nz: Cells in z.
        mxg: Guard cells on each x side.
        myg: Guard cells on each y side (flux stencils need 2).
        dx: Radial spacing, scalar or (LocalNx, LocalNy) array.
        dy: Parallel spacing, scalar or (LocalNx, LocalNy) array.
        dz: Toroidal spacing (default ``2*pi/nz``).
        J: Jacobian, scalar or 2D array.
        g_22: Covariant metric g_22, scalar or 2D array.
        g_23: Covariant metric g_23, scalar or 2D array.
        Bxy: Magnetic field magnitude, scalar or 2D array.
        zshift: Field-line shift in z, 2D array (default zero).
        periodic_y: Closed field lines, scalar or per-x-column array.
        first_x, last_x: Whether this domain touches the x boundaries.
        first_y, last_y: Whether each column touches the y boundaries,
            scalar or per-x-column array.
    """

    def __init__(
        self,
        nx: int,
        ny: int,
        nz: int,
        mxg: int = 2,
        myg: int = 2,
        dx: float | np.ndarray = 1.0,
        dy: float | np.ndarray = 1.0,
        dz: float | None = None,
        J: float | np.ndarray = 1.0,
        g_22: float | np.ndarray = 1.0,
        g_23: float | np.ndarray = 0.0,
        Bxy: float | np.ndarray = 1.0,
        zshift: np.ndarray | None = None,
        periodic_y: bool | np.ndarray = False,
        first_x: bool = True,
        last_x: bool = True,
        first_y: bool | np.ndarray = True,
        last_y: bool | np.ndarray = True,
    ) -> None:
        if myg < 2:
            raise ValueError(f"parallel flux stencils need myg >= 2, got {myg}")
        if mxg < 1:
            raise ValueError(f"perpendicular stencils need mxg >= 1, got {mxg}")

        self.nx, self.ny, self.nz = nx, ny, nz
        self.mxg, self.myg = mxg, myg
        self.LocalNx = nx + 2 * mxg
        self.LocalNy = ny + 2 * myg
        self.LocalNz = nz

        self.xstart = mxg
        self.xend = mxg + nx - 1
        self.ystart = myg
        self.yend = myg + ny - 1

        self.dx = self._metric(dx, "dx")
        self.dy = self._metric(dy, "dy")
        self.dz = float(dz) if dz is not None else 2.0 * np.pi / nz
        self.J = self._metric(J, "J")
        self.g_22 = self._metric(g_22, "g_22")
        self.g_23 = self._metric(g_23, "g_23")
        self.Bxy = self._metric(Bxy, "Bxy")
        self.zshift = self._metric(0.0 if zshift is None else zshift, "zshift")

        self.first_x = first_x
        self.last_x = last_x
        self.periodic_y_cols = self._column_flags(periodic_y, "periodic_y")
        self.first_y_cols = self._column_flags(first_y, "first_y")
        self.last_y_cols = self._column_flags(last_y, "last_y")

        self._build_shift_phase()

        logger.debug(
            "StructuredMesh: interior=(%d, %d, %d), guards=(%d, %d), "
            "periodic columns=%d, shifted=%s",
            nx, ny, nz, mxg, myg, int(self.periodic_y_cols.sum()), self._shifted,
        )

    @classmethod
    def from_config(cls, cfg: MeshConfig) -> StructuredMesh:
        """Build a uniform mesh from a ``MeshConfig``."""
        local_ny = cfg.ny + 2 * cfg.myg
        ylocal = (np.arange(local_ny) - cfg.myg) * cfg.dy
        zshift = np.broadcast_to(cfg.shear * ylocal, (cfg.nx + 2 * cfg.mxg, local_ny)).copy()
        return cls(
            cfg.nx, cfg.ny, cfg.nz,
            mxg=cfg.mxg, myg=cfg.myg,
            dx=cfg.dx, dy=cfg.dy, dz=cfg.dz,
            J=cfg.J, g_22=cfg.g_22, g_23=cfg.g_23, Bxy=cfg.Bxy,
            zshift=zshift,
            periodic_y=cfg.periodic_y,
        )

    # --- Construction helpers ---

    def _metric(self, value: float | np.ndarray, name: str) -> np.ndarray:
        shape2d = (self.LocalNx, self.LocalNy)
        arr = np.asarray(value, dtype=np.float64)
        if arr.ndim == 0:
            return np.full(shape2d, float(arr))
        if arr.shape != shape2d:
            raise IncompatibleFieldsError(
                f"metric '{name}' has shape {arr.shape}, expected {shape2d}"
            )
        return arr.copy()

    def _column_flags(self, value: bool | np.ndarray, name: str) -> np.ndarray:
        arr = np.asarray(value, dtype=np.bool_)
        if arr.ndim == 0:
            return np.full(self.LocalNx, bool(arr))
        if arr.shape != (self.LocalNx,):
            raise IncompatibleFieldsError(
                f"'{name}' has shape {arr.shape}, expected ({self.LocalNx},)"
            )
        return arr.copy()

    def _build_shift_phase(self) -> None:
        self._shifted = self.LocalNz > 1 and bool(np.any(self.zshift != 0.0))
        if not self._shifted:
            self._phase = None
            return
        m = np.arange(self.LocalNz // 2 + 1)
        kz = 2.0 * np.pi * m / (self.LocalNz * self.dz)
        phase = np.exp(-1j * self.zshift[:, :, np.newaxis] * kz[np.newaxis, np.newaxis, :])
        if self.LocalNz % 2 == 0:
            phase[:, :, -1] = 1.0
        self._phase = phase

    # --- Shape and compatibility ---

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.LocalNx, self.LocalNy, self.LocalNz)

    @property
    def interior(self) -> tuple[slice, slice, slice]:
        """Index tuple selecting interior (non-guard) cells."""
        return (
            slice(self.xstart, self.xend + 1),
            slice(self.ystart, self.yend + 1),
            slice(None),
        )

    def zeros(self) -> np.ndarray:
        return np.zeros(self.shape)

    def full(self, value: float) -> np.ndarray:
        return np.full(self.shape, float(value))

    def is_compatible(self, field: np.ndarray) -> bool:
        return isinstance(field, np.ndarray) and field.shape == self.shape

    def check_compatible(self, **fields: np.ndarray) -> None:
        """Raise ``IncompatibleFieldsError`` unless all fields match the mesh.

        Args:
            **fields: Fields keyed by the name used in the error message.
        """
        for name, field in fields.items():
            if not self.is_compatible(field):
                got = getattr(field, "shape", type(field).__name__)
                raise IncompatibleFieldsError(
                    f"field '{name}' has shape {got}, expected mesh shape {self.shape}"
                )

    # --- Boundary predicates ---

    def first_y(self, i: int) -> bool:
        return bool(self.first_y_cols[i])

    def last_y(self, i: int) -> bool:
        return bool(self.last_y_cols[i])

    def periodic_y(self, i: int) -> bool:
        return bool(self.periodic_y_cols[i])

    def y_normalised(self) -> np.ndarray:
        """Cell-centre y in [0, 1] over the interior, shape (LocalNy,)."""
        return (np.arange(self.LocalNy) - self.ystart + 0.5) / self.ny

    # --- Guard cells ---

    def communicate(self, *fields: np.ndarray) -> None:
        """Fill guard cells in place.

        On a single domain only closed (periodic) field lines have
        neighbouring data: their y guard cells are copied from the opposite
        end of the interior.
        """
        self.check_compatible(**{f"field{n}": f for n, f in enumerate(fields)})
        cols = np.nonzero(self.periodic_y_cols)[0]
        if len(cols) == 0:
            return
        ys, ye, myg = self.ystart, self.yend, self.myg
        for f in fields:
            f[cols, :ys, :] = f[cols, ye - myg + 1 : ye + 1, :]
            f[cols, ye + 1 :, :] = f[cols, ys : ys + myg, :]

    def apply_y_boundary(self, field: np.ndarray, kind: str = "neumann") -> np.ndarray:
        """Return a copy with y-boundary guard cells set on open columns.

        Args:
            field: Field of mesh shape.
            kind: ``"neumann"`` (zero gradient: guard = edge value) or
                ``"zero_face"`` (guard = -edge value, so the face average
                vanishes).

        Returns:
            New array; interior cells and periodic columns unchanged.
        """
        if kind not in ("neumann", "zero_face"):
            raise ValueError(f"kind must be 'neumann' or 'zero_face', got '{kind}'")
        self.check_compatible(field=field)
        sign = 1.0 if kind == "neumann" else -1.0
        f = field.copy()
        ys, ye = self.ystart, self.yend
        open_cols = ~self.periodic_y_cols
        lower = np.nonzero(open_cols & self.first_y_cols)[0]
        upper = np.nonzero(open_cols & self.last_y_cols)[0]
        for g in range(1, self.myg + 1):
            # Mirror about the boundary face
            f[lower, ys - g, :] = sign * f[lower, ys + g - 1, :]
            f[upper, ye + g, :] = sign * f[upper, ye - g + 1, :]
        return f

    # --- Field-aligned transforms ---

    def _shift_z(self, field: np.ndarray, phase: np.ndarray) -> np.ndarray:
        fhat = np.fft.rfft(field, axis=2)
        fhat *= phase
        return np.fft.irfft(fhat, n=self.LocalNz, axis=2)

    def to_field_aligned(self, field: np.ndarray) -> np.ndarray:
        """Shift z columns so y index lines follow the magnetic field."""
        self.check_compatible(field=field)
        if not self._shifted:
            return field.copy()
        return self._shift_z(field, self._phase)

    def from_field_aligned(self, field: np.ndarray, zero_boundaries: bool = False) -> np.ndarray:
        """Inverse of ``to_field_aligned``.

        Args:
            field: Field-aligned field of mesh shape.
            zero_boundaries: Zero all guard cells of the result, for
                operators whose output is only meaningful in the interior.
        """
        self.check_compatible(field=field)
        if self._shifted:
            result = self._shift_z(field, np.conj(self._phase))
        else:
            result = field.copy()
        if zero_boundaries:
            interior = result[self.interior].copy()
            result[...] = 0.0
            result[self.interior] = interior
        return result
