"""Three-point cell-face reconstruction with slope limiters.

Given a stencil (m, c, p) of cell-centre values along one index direction,
``reconstruct`` returns the values at the left (L) and right (R) faces of
the centre cell:

    L = c - slope / 2
    R = c + slope / 2

Limiters:
    UPWIND:  slope = 0 (first order, donor cell)
    MINMOD:  slope = minmod(p - c, c - m)
    MC:      slope = minmod(2 (p - c), (p - m) / 2, 2 (c - m))
             (monotonized central, the default)
    FROMM:   slope = (p - m) / 2 (unlimited central)

All kernels are ``@njit(cache=True)`` so they can be called from the
compiled flux loops as well as from Python.
"""

from __future__ import annotations

from enum import IntEnum

from numba import njit


class CellEdges(IntEnum):
    """Reconstruction scheme codes passed to the compiled kernels."""

    UPWIND = 0
    MINMOD = 1
    MC = 2
    FROMM = 3


def limiter_from_name(name: str | CellEdges) -> CellEdges:
    """Look up a limiter by its configuration name (case-insensitive)."""
    if isinstance(name, CellEdges):
        return name
    try:
        return CellEdges[name.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown limiter '{name}'. Available: {[c.name.lower() for c in CellEdges]}"
        ) from None


@njit(cache=True)
def _sign(x: float) -> float:
    return 1.0 if x >= 0.0 else -1.0


@njit(cache=True)
def minmod2(a: float, b: float) -> float:
    """Smallest-magnitude argument, or zero if the signs differ."""
    if a * b <= 0.0:
        return 0.0
    if abs(a) < abs(b):
        return a
    return b


@njit(cache=True)
def minmod3(a: float, b: float, c: float) -> float:
    """Three-argument minmod used by the MC limiter."""
    sa = _sign(a)
    if _sign(b) != sa or _sign(c) != sa:
        return 0.0
    return sa * min(abs(a), abs(b), abs(c))


@njit(cache=True)
def reconstruct(m: float, c: float, p: float, limiter: int) -> tuple[float, float]:
    """Reconstruct left and right face values of the centre cell.

    Args:
        m: Value in the cell below.
        c: Value in this cell.
        p: Value in the cell above.
        limiter: ``CellEdges`` code.

    Returns:
        (L, R) face values.
    """
    if limiter == 0:
        slope = 0.0
    elif limiter == 1:
        slope = minmod2(p - c, c - m)
    elif limiter == 2:
        slope = minmod3(2.0 * (p - c), 0.5 * (p - m), 2.0 * (c - m))
    else:
        slope = 0.5 * (p - m)
    return c - 0.5 * slope, c + 0.5 * slope
