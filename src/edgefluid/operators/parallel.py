"""Finite-volume parallel (along-field) transport operators.

All operators take fields of mesh shape, work in field-aligned coordinates
so that the y index follows the magnetic field, and return a field whose
interior cells hold the result (guard cells are zeroed).

Operators:
    div_par:            div(f v) with Lax-Friedrichs wave-speed dissipation
    div_par_fvv:        div(f v v) with sub/supersonic upwind switching
    div_par_k_grad_par: div(K grad_par f), conservative parallel diffusion
    grad_par:           central parallel gradient

Flux bookkeeping:
    Each cell j computes the flux through its upper face (j+1/2) and its
    lower face (j-1/2) and deposits it into both neighbours, scaled by the
    volume factors

        common = (J[j] + J[j+1]) / (sqrt(g_22[j]) + sqrt(g_22[j+1]))
        f_c    = common / (dy[j] J[j]),   f_n = common / (dy[j+1] J[j+1])

    so the discrete divergence conserves the volume integral on a
    non-uniform metric.  Where the neighbouring cell is not a physical
    boundary the loop also runs over one layer of guard cells, which keeps
    fluxes consistent across domain edges without communicating them.
"""

from __future__ import annotations

import numpy as np
from numba import njit

from edgefluid.mesh.structured import StructuredMesh
from edgefluid.operators.limiters import CellEdges, reconstruct

# Flow regimes at a cell face, relative to the cell computing the flux
SUBSONIC = 0
SUPERSONIC_OUT = 1
SUPERSONIC_IN = -1


@njit(cache=True)
def flow_regime(vpar: float, amax: float, upper: bool = True) -> int:
    """Classify face flow against the larger adjacent wave speed.

    Args:
        vpar: Face velocity (positive along +y).
        amax: Maximum wave speed of the two cells sharing the face.
        upper: True for the j+1/2 face, False for the j-1/2 face.

    Returns:
        ``SUPERSONIC_OUT``, ``SUPERSONIC_IN`` or ``SUBSONIC``.  The
        marginal case ``|vpar| == amax`` is subsonic.
    """
    outward = vpar if upper else -vpar
    if outward > amax:
        return SUPERSONIC_OUT
    if outward < -amax:
        return SUPERSONIC_IN
    return SUBSONIC


@njit(cache=True)
def _y_range(i, ystart, yend, first_y, last_y, periodic_y):
    if (not first_y[i]) or periodic_y[i]:
        ys = ystart - 1
    else:
        ys = ystart
    if (not last_y[i]) or periodic_y[i]:
        ye = yend + 1
    else:
        ye = yend
    return ys, ye


@njit(cache=True)
def _face_factors(J, g_22, dy, i, j, jn):
    common = (J[i, j] + J[i, jn]) / (np.sqrt(g_22[i, j]) + np.sqrt(g_22[i, jn]))
    return common / (dy[i, j] * J[i, j]), common / (dy[i, jn] * J[i, jn])


# ============================================================
# div(f v): advection of f by v
# ============================================================

@njit(cache=True)
def _div_par_kernel(
    f, v, wave_speed, J, g_22, dy,
    xstart, xend, ystart, yend,
    first_y, last_y, periodic_y,
    fixflux, limiter,
):
    result = np.zeros_like(f)
    nz = f.shape[2]

    for i in range(xstart, xend + 1):
        ys, ye = _y_range(i, ystart, yend, first_y, last_y, periodic_y)
        at_lower = first_y[i] and not periodic_y[i]
        at_upper = last_y[i] and not periodic_y[i]

        for j in range(ys, ye + 1):
            frc, frp = _face_factors(J, g_22, dy, i, j, j + 1)
            flc, flm = _face_factors(J, g_22, dy, i, j, j - 1)

            for k in range(nz):
                sL, sR = reconstruct(f[i, j - 1, k], f[i, j, k], f[i, j + 1, k], limiter)

                # Upper face (j+1/2)
                vpar = 0.5 * (v[i, j, k] + v[i, j + 1, k])
                if at_upper and j == yend:
                    bndryval = 0.5 * (f[i, j, k] + f[i, j + 1, k])
                    if fixflux:
                        flux = bndryval * vpar
                    else:
                        flux = sR * vpar + wave_speed[i, j, k] * (sR - bndryval)
                else:
                    amax = max(
                        wave_speed[i, j, k], wave_speed[i, j + 1, k],
                        abs(v[i, j, k]), abs(v[i, j + 1, k]),
                    )
                    flux = sR * 0.5 * (vpar + amax)

                result[i, j, k] += flux * frc
                result[i, j + 1, k] -= flux * frp

                # Lower face (j-1/2)
                vpar = 0.5 * (v[i, j, k] + v[i, j - 1, k])
                if at_lower and j == ystart:
                    bndryval = 0.5 * (f[i, j, k] + f[i, j - 1, k])
                    if fixflux:
                        flux = bndryval * vpar
                    else:
                        flux = sL * vpar - wave_speed[i, j, k] * (sL - bndryval)
                else:
                    amax = max(
                        wave_speed[i, j, k], wave_speed[i, j - 1, k],
                        abs(v[i, j, k]), abs(v[i, j - 1, k]),
                    )
                    flux = sL * 0.5 * (vpar - amax)

                result[i, j, k] -= flux * flc
                result[i, j - 1, k] += flux * flm

    return result


def div_par(
    mesh: StructuredMesh,
    f: np.ndarray,
    v: np.ndarray,
    wave_speed: np.ndarray,
    fixflux: bool = True,
    limiter: int = CellEdges.MC,
) -> np.ndarray:
    """Parallel divergence of the advective flux ``f * v``.

    Face fluxes use the limited face value of ``f`` and a Lax-Friedrichs
    split ``(vpar +/- amax) / 2`` where ``amax`` is the largest wave speed
    or flow speed of the two adjacent cells.

    Args:
        mesh: Mesh the fields live on.
        f: Advected quantity (e.g. density).
        v: Parallel velocity.
        wave_speed: Non-negative local wave speed.
        fixflux: At physical y boundaries use the face average
            ``(f[j] + f[j+1]) / 2 * vpar`` instead of adding a
            wave-speed correction.
        limiter: ``CellEdges`` reconstruction.

    Returns:
        div(f v) on interior cells.

    Raises:
        IncompatibleFieldsError: If any input does not have the mesh shape.
    """
    mesh.check_compatible(f=f, v=v, wave_speed=wave_speed)
    result = _div_par_kernel(
        np.ascontiguousarray(mesh.to_field_aligned(f)),
        np.ascontiguousarray(mesh.to_field_aligned(v)),
        np.ascontiguousarray(mesh.to_field_aligned(wave_speed)),
        mesh.J, mesh.g_22, mesh.dy,
        mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
        mesh.first_y_cols, mesh.last_y_cols, mesh.periodic_y_cols,
        bool(fixflux), int(limiter),
    )
    return mesh.from_field_aligned(result, zero_boundaries=True)


# ============================================================
# div(f v v): self-advection of momentum
# ============================================================

@njit(cache=True)
def _fvv_face_flux(sF, sV, vpar, amax, upper):
    """Interior face flux of f v^2 for one side of a cell."""
    regime = flow_regime(vpar, amax, upper)
    if regime == SUPERSONIC_OUT:
        return sF * vpar * sV
    if regime == SUPERSONIC_IN:
        # Inflow is accounted for by the upwind cell's own face flux
        return 0.0
    if upper:
        return sF * 0.5 * (vpar + amax) * sV
    return sF * 0.5 * (vpar - amax) * sV


@njit(cache=True)
def _div_par_fvv_kernel(
    f, v, wave_speed, J, g_22, dy,
    xstart, xend, ystart, yend,
    first_y, last_y, periodic_y,
    fixflux, limiter,
):
    result = np.zeros_like(f)
    nz = f.shape[2]

    for i in range(xstart, xend + 1):
        ys, ye = _y_range(i, ystart, yend, first_y, last_y, periodic_y)
        at_lower = first_y[i] and not periodic_y[i]
        at_upper = last_y[i] and not periodic_y[i]

        for j in range(ys, ye + 1):
            frc, frp = _face_factors(J, g_22, dy, i, j, j + 1)
            flc, flm = _face_factors(J, g_22, dy, i, j, j - 1)

            for k in range(nz):
                sL, sR = reconstruct(f[i, j - 1, k], f[i, j, k], f[i, j + 1, k], limiter)
                svL, svR = reconstruct(v[i, j - 1, k], v[i, j, k], v[i, j + 1, k], limiter)

                # Upper face (j+1/2)
                vpar = 0.5 * (v[i, j, k] + v[i, j + 1, k])
                if at_upper and j == yend:
                    bndryval = 0.5 * (f[i, j, k] + f[i, j + 1, k])
                    if fixflux:
                        flux = bndryval * vpar * vpar
                    else:
                        # Outgoing characteristic carries the boundary mismatch
                        flux = sR * vpar * svR + wave_speed[i, j, k] * (sR * svR - bndryval * vpar)
                else:
                    amax = max(wave_speed[i, j, k], wave_speed[i, j + 1, k])
                    flux = _fvv_face_flux(sR, svR, vpar, amax, True)

                result[i, j, k] += flux * frc
                result[i, j + 1, k] -= flux * frp

                # Lower face (j-1/2)
                vpar = 0.5 * (v[i, j, k] + v[i, j - 1, k])
                if at_lower and j == ystart:
                    bndryval = 0.5 * (f[i, j, k] + f[i, j - 1, k])
                    if fixflux:
                        flux = bndryval * vpar * vpar
                    else:
                        flux = sL * vpar * svL - wave_speed[i, j, k] * (sL * svL - bndryval * vpar)
                else:
                    amax = max(wave_speed[i, j, k], wave_speed[i, j - 1, k])
                    flux = _fvv_face_flux(sL, svL, vpar, amax, False)

                result[i, j, k] -= flux * flc
                result[i, j - 1, k] += flux * flm

    return result


def div_par_fvv(
    mesh: StructuredMesh,
    f: np.ndarray,
    v: np.ndarray,
    wave_speed: np.ndarray,
    fixflux: bool = True,
    limiter: int = CellEdges.MC,
) -> np.ndarray:
    """Parallel divergence of the self-advective flux ``f * v * v``.

    Both ``f`` and ``v`` are reconstructed at cell faces.  The face
    velocity ``vpar`` (mean of the two cell velocities) is compared with
    ``amax``, the larger wave speed of the two cells:

        vpar beyond +amax (out of the cell):  flux = f_face * vpar * v_face
        vpar beyond -amax (into the cell):    flux = 0
        otherwise (subsonic):                 flux = f_face * (vpar +/- amax)/2 * v_face

    At physical y boundaries the classification is bypassed: with
    ``fixflux`` the face-average ``f`` times ``vpar^2`` is used, otherwise
    a wave-speed-proportional term carries the outgoing characteristic.

    Args:
        mesh: Mesh the fields live on.
        f: Advected quantity (mass density for momentum transport).
        v: Parallel velocity.
        wave_speed: Non-negative local wave speed.
        fixflux: Fix boundary fluxes to the face-average value.
        limiter: ``CellEdges`` reconstruction.

    Returns:
        div(f v v) on interior cells; guard cells are zero.

    Raises:
        IncompatibleFieldsError: If any input does not have the mesh shape.
    """
    mesh.check_compatible(f=f, v=v, wave_speed=wave_speed)
    result = _div_par_fvv_kernel(
        np.ascontiguousarray(mesh.to_field_aligned(f)),
        np.ascontiguousarray(mesh.to_field_aligned(v)),
        np.ascontiguousarray(mesh.to_field_aligned(wave_speed)),
        mesh.J, mesh.g_22, mesh.dy,
        mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
        mesh.first_y_cols, mesh.last_y_cols, mesh.periodic_y_cols,
        bool(fixflux), int(limiter),
    )
    return mesh.from_field_aligned(result, zero_boundaries=True)


# ============================================================
# div(K grad_par f): parallel diffusion
# ============================================================

@njit(cache=True)
def _div_par_k_grad_par_kernel(
    K, f, J, g_22, dy,
    xstart, xend, ystart, yend,
    first_y, last_y, periodic_y,
    bndry_flux,
):
    result = np.zeros_like(f)
    nz = f.shape[2]

    for i in range(xstart, xend + 1):
        for j in range(ystart - 1, yend + 1):
            if (not bndry_flux) and (not periodic_y[i]):
                if j == yend and last_y[i]:
                    continue
                if j == ystart - 1 and first_y[i]:
                    continue

            Jface = 0.5 * (J[i, j] + J[i, j + 1])
            g22face = 0.5 * (g_22[i, j] + g_22[i, j + 1])
            dyface = 0.5 * (dy[i, j] + dy[i, j + 1])
            for k in range(nz):
                # Flux through the upper face of cell j
                Kface = 0.5 * (K[i, j, k] + K[i, j + 1, k])
                gradient = (f[i, j + 1, k] - f[i, j, k]) / dyface
                flux = Kface * Jface * gradient / g22face

                result[i, j, k] += flux / (dy[i, j] * J[i, j])
                result[i, j + 1, k] -= flux / (dy[i, j + 1] * J[i, j + 1])

    return result


def div_par_k_grad_par(
    mesh: StructuredMesh,
    K: np.ndarray,
    f: np.ndarray,
    bndry_flux: bool = True,
) -> np.ndarray:
    """Conservative parallel diffusion ``div(K b b.grad f)``.

    Args:
        mesh: Mesh the fields live on.
        K: Diffusion coefficient (cell centred).
        f: Diffused quantity.
        bndry_flux: Allow diffusive flux through physical y boundaries.

    Returns:
        Diffusion term on interior cells.
    """
    mesh.check_compatible(K=K, f=f)
    result = _div_par_k_grad_par_kernel(
        np.ascontiguousarray(mesh.to_field_aligned(K)),
        np.ascontiguousarray(mesh.to_field_aligned(f)),
        mesh.J, mesh.g_22, mesh.dy,
        mesh.xstart, mesh.xend, mesh.ystart, mesh.yend,
        mesh.first_y_cols, mesh.last_y_cols, mesh.periodic_y_cols,
        bool(bndry_flux),
    )
    return mesh.from_field_aligned(result, zero_boundaries=True)


def grad_par(mesh: StructuredMesh, f: np.ndarray) -> np.ndarray:
    """Central-difference parallel gradient ``b.grad f = df/dy / sqrt(g_22)``."""
    mesh.check_compatible(f=f)
    fa = mesh.to_field_aligned(f)
    xs, xe, ys, ye = mesh.xstart, mesh.xend, mesh.ystart, mesh.yend

    result = np.zeros(mesh.shape)
    denom = 2.0 * mesh.dy[xs : xe + 1, ys : ye + 1] * np.sqrt(mesh.g_22[xs : xe + 1, ys : ye + 1])
    result[xs : xe + 1, ys : ye + 1, :] = (
        fa[xs : xe + 1, ys + 1 : ye + 2, :] - fa[xs : xe + 1, ys - 1 : ye, :]
    ) / denom[:, :, np.newaxis]
    return mesh.from_field_aligned(result, zero_boundaries=True)
