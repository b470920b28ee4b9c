"""Finite-volume perpendicular transport operators.

Operators:
    div_n_bxgrad_f_b_xppm:  ExB advection div(n b x grad(f) / B)
    div_perp_lap_fv_index:  perpendicular diffusion in index space
    d4dz4:                  fourth derivative in the periodic z direction

ExB advection in the x-z plane uses the potential ``f`` as a stream
function interpolated onto cell corners:

             z
             |
    fmp --- vU --- fpp
     |               |
    vL       n      vR    -> x
     |               |
    fmm --- vD --- fpm

Face velocities are differences of corner values, so the discrete
velocity field is divergence free.  The advected ``n`` is reconstructed
at faces with the limiter and taken from the upwind side; a cell only
deposits flux through faces where the flow leaves it, so each face is
counted exactly once.
"""

from __future__ import annotations

import numpy as np
from numba import njit

from edgefluid.mesh.structured import StructuredMesh
from edgefluid.operators.limiters import CellEdges, reconstruct


@njit(cache=True)
def _positive_faces(sL, sR, c, positive):
    if positive and (sL < 0.0 or sR < 0.0):
        return c, c
    return sL, sR


@njit(cache=True)
def _exb_xz_kernel(
    n, f, J, dx, dz,
    xstart, xend, ystart, yend,
    first_x, last_x,
    bndry_flux, positive, limiter,
):
    result = np.zeros_like(n)
    nz = n.shape[2]

    for i in range(xstart, xend + 1):
        for j in range(ystart, yend + 1):
            for k in range(nz):
                kp = (k + 1) % nz
                km = (k - 1 + nz) % nz

                # Stream function on cell corners
                fmm = 0.25 * (f[i, j, k] + f[i - 1, j, k] + f[i, j, km] + f[i - 1, j, km])
                fmp = 0.25 * (f[i, j, k] + f[i, j, kp] + f[i - 1, j, k] + f[i - 1, j, kp])
                fpp = 0.25 * (f[i, j, k] + f[i, j, kp] + f[i + 1, j, k] + f[i + 1, j, kp])
                fpm = 0.25 * (f[i, j, k] + f[i + 1, j, k] + f[i, j, km] + f[i + 1, j, km])

                # Face velocities
                vU = J[i, j] * (fmp - fpp) / dx[i, j]
                vD = J[i, j] * (fmm - fpm) / dx[i, j]
                vR = 0.5 * (J[i, j] + J[i + 1, j]) * (fpp - fpm) / dz
                vL = 0.5 * (J[i, j] + J[i - 1, j]) * (fmp - fmm) / dz

                # X direction
                sL, sR = reconstruct(n[i - 1, j, k], n[i, j, k], n[i + 1, j, k], limiter)
                sL, sR = _positive_faces(sL, sR, n[i, j, k], positive)

                vol = dx[i, j] * J[i, j]
                if i == xend and last_x:
                    if bndry_flux:
                        if vR > 0.0:
                            flux = vR * sR
                        else:
                            # Inflow takes the boundary face value
                            flux = vR * 0.5 * (n[i + 1, j, k] + n[i, j, k])
                        result[i, j, k] += flux / vol
                        result[i + 1, j, k] -= flux / (dx[i + 1, j] * J[i + 1, j])
                elif vR > 0.0:
                    flux = vR * sR
                    result[i, j, k] += flux / vol
                    result[i + 1, j, k] -= flux / (dx[i + 1, j] * J[i + 1, j])

                if i == xstart and first_x:
                    if bndry_flux:
                        if vL < 0.0:
                            flux = vL * sL
                        else:
                            flux = vL * 0.5 * (n[i - 1, j, k] + n[i, j, k])
                        result[i, j, k] -= flux / vol
                        result[i - 1, j, k] += flux / (dx[i - 1, j] * J[i - 1, j])
                elif vL < 0.0:
                    flux = vL * sL
                    result[i, j, k] -= flux / vol
                    result[i - 1, j, k] += flux / (dx[i - 1, j] * J[i - 1, j])

                # Z direction
                sL, sR = reconstruct(n[i, j, km], n[i, j, k], n[i, j, kp], limiter)
                sL, sR = _positive_faces(sL, sR, n[i, j, k], positive)

                if vU > 0.0:
                    flux = vU * sR
                    result[i, j, k] += flux / (J[i, j] * dz)
                    result[i, j, kp] -= flux / (J[i, j] * dz)
                if vD < 0.0:
                    flux = vD * sL
                    result[i, j, k] -= flux / (J[i, j] * dz)
                    result[i, j, km] += flux / (J[i, j] * dz)

    return result


@njit(cache=True)
def _exb_xy_kernel(
    n, dfdx, dfdy, coef, J, dx, dy,
    xstart, xend, ystart, yend,
    first_x, last_x, first_y, last_y, periodic_y,
    bndry_flux,
):
    result = np.zeros_like(n)
    nz = n.shape[2]

    # Radial drift from the parallel potential gradient, face between i and i+1
    for i in range(xstart - 1, xend + 1):
        if (i == xstart - 1 and first_x) or (i == xend and last_x):
            if not bndry_flux:
                continue
        for j in range(ystart, yend + 1):
            c = 0.5 * (coef[i, j] + coef[i + 1, j])
            Jface = 0.5 * (J[i, j] + J[i + 1, j])
            for k in range(nz):
                vx = 0.5 * (dfdy[i, j, k] + dfdy[i + 1, j, k]) * c
                flux = vx * Jface * (n[i, j, k] if vx > 0.0 else n[i + 1, j, k])
                result[i, j, k] += flux / (dx[i, j] * J[i, j])
                result[i + 1, j, k] -= flux / (dx[i + 1, j] * J[i + 1, j])

    # Poloidal drift from the radial potential gradient, face between j and j+1
    for i in range(xstart, xend + 1):
        for j in range(ystart - 1, yend + 1):
            if not periodic_y[i]:
                if (j == ystart - 1 and first_y[i]) or (j == yend and last_y[i]):
                    continue
            c = 0.5 * (coef[i, j] + coef[i, j + 1])
            Jface = 0.5 * (J[i, j] + J[i, j + 1])
            for k in range(nz):
                vy = -0.5 * (dfdx[i, j, k] + dfdx[i, j + 1, k]) * c
                flux = vy * Jface * (n[i, j, k] if vy > 0.0 else n[i, j + 1, k])
                result[i, j, k] += flux / (dy[i, j] * J[i, j])
                result[i, j + 1, k] -= flux / (dy[i, j + 1] * J[i, j + 1])

    return result


def _central_difference(mesh: StructuredMesh, f: np.ndarray, axis: int) -> np.ndarray:
    """Second-order central difference along x (axis 0) or y (axis 1)."""
    out = np.zeros(mesh.shape)
    if axis == 0:
        out[1:-1] = (f[2:] - f[:-2]) / (2.0 * mesh.dx[1:-1, :, np.newaxis])
    else:
        out[:, 1:-1] = (f[:, 2:] - f[:, :-2]) / (2.0 * mesh.dy[:, 1:-1, np.newaxis])
    return out


def div_n_bxgrad_f_b_xppm(
    mesh: StructuredMesh,
    n: np.ndarray,
    f: np.ndarray,
    bndry_flux: bool = True,
    poloidal: bool = False,
    positive: bool = False,
    limiter: int = CellEdges.MC,
) -> np.ndarray:
    """Divergence of the ExB advective flux ``n b x grad(f) / B``.

    Args:
        mesh: Mesh the fields live on.
        n: Advected quantity (density or momentum).
        f: Electrostatic potential (stream function).
        bndry_flux: Allow flux through the radial (x) boundaries.
        poloidal: Include the x-y drift terms that couple through the
            metric ``g_23`` (zero on an orthogonal mesh).
        positive: Fall back to donor-cell values where the limited face
            value of ``n`` would be negative.
        limiter: ``CellEdges`` reconstruction.

    Returns:
        Divergence on interior cells (subtract it from ``ddt``).
    """
    mesh.check_compatible(n=n, f=f)
    n = np.ascontiguousarray(n, dtype=np.float64)
    f = np.ascontiguousarray(f, dtype=np.float64)

    result = _exb_xz_kernel(
        n, f, mesh.J, mesh.dx, mesh.dz,
        mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
        mesh.first_x, mesh.last_x,
        bool(bndry_flux), bool(positive), int(limiter),
    )

    if poloidal:
        dfdx = _central_difference(mesh, f, axis=0)
        dfdy = _central_difference(mesh, f, axis=1)
        coef = mesh.g_23 / (mesh.J * mesh.Bxy**2)
        result += _exb_xy_kernel(
            n, dfdx, dfdy, coef, mesh.J, mesh.dx, mesh.dy,
            mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
            mesh.first_x, mesh.last_x,
            mesh.first_y_cols, mesh.last_y_cols, mesh.periodic_y_cols,
            bool(bndry_flux),
        )

    interior = result[mesh.interior].copy()
    result[...] = 0.0
    result[mesh.interior] = interior
    return result


@njit(cache=True)
def _perp_lap_index_kernel(a, f, xstart, xend, ystart, yend, first_x, last_x, xflux):
    result = np.zeros_like(f)
    nz = f.shape[2]

    # X fluxes through the face between i and i+1
    for i in range(xstart - 1, xend + 1):
        if not xflux:
            if (i == xend and last_x) or (i == xstart - 1 and first_x):
                continue
        for j in range(ystart, yend + 1):
            for k in range(nz):
                flux = (f[i + 1, j, k] - f[i, j, k]) * 0.5 * (a[i + 1, j, k] + a[i, j, k])
                result[i, j, k] += flux
                result[i + 1, j, k] -= flux

    # Z fluxes
    for i in range(xstart, xend + 1):
        for j in range(ystart, yend + 1):
            for k in range(nz):
                kp = (k + 1) % nz
                flux = (f[i, j, kp] - f[i, j, k]) * 0.5 * (a[i, j, kp] + a[i, j, k])
                result[i, j, k] += flux
                result[i, j, kp] -= flux

    return result


def div_perp_lap_fv_index(
    mesh: StructuredMesh,
    a: np.ndarray,
    f: np.ndarray,
    xflux: bool = True,
) -> np.ndarray:
    """Perpendicular diffusion ``div(a grad_perp f)`` in index space.

    Fluxes are differences between neighbouring cells times the face-averaged
    coefficient, with no metric factors, which makes the operator a
    grid-scale regulariser rather than a physical diffusion.

    Args:
        mesh: Mesh the fields live on.
        a: Diffusion coefficient.
        f: Diffused quantity.
        xflux: Allow flux through the radial boundaries.
    """
    mesh.check_compatible(a=a, f=f)
    result = _perp_lap_index_kernel(
        np.ascontiguousarray(a, dtype=np.float64),
        np.ascontiguousarray(f, dtype=np.float64),
        mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
        mesh.first_x, mesh.last_x, bool(xflux),
    )
    interior = result[mesh.interior].copy()
    result[...] = 0.0
    result[mesh.interior] = interior
    return result


def d4dz4(mesh: StructuredMesh, f: np.ndarray) -> np.ndarray:
    """Fourth derivative in z (periodic, second-order central)."""
    mesh.check_compatible(f=f)
    stencil = (
        np.roll(f, -2, axis=2)
        - 4.0 * np.roll(f, -1, axis=2)
        + 6.0 * f
        - 4.0 * np.roll(f, 1, axis=2)
        + np.roll(f, 2, axis=2)
    )
    result = np.zeros(mesh.shape)
    result[mesh.interior] = stencil[mesh.interior] / mesh.dz**4
    return result
