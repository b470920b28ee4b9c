"""Finite-volume flux-divergence operators on field-aligned meshes."""

from edgefluid.operators.limiters import CellEdges, limiter_from_name, reconstruct
from edgefluid.operators.parallel import (
    SUBSONIC,
    SUPERSONIC_IN,
    SUPERSONIC_OUT,
    div_par,
    div_par_fvv,
    div_par_k_grad_par,
    flow_regime,
    grad_par,
)
from edgefluid.operators.perpendicular import (
    d4dz4,
    div_n_bxgrad_f_b_xppm,
    div_perp_lap_fv_index,
)

__all__ = [
    "CellEdges",
    "SUBSONIC",
    "SUPERSONIC_IN",
    "SUPERSONIC_OUT",
    "d4dz4",
    "div_n_bxgrad_f_b_xppm",
    "div_par",
    "div_par_fvv",
    "div_par_k_grad_par",
    "div_perp_lap_fv_index",
    "flow_regime",
    "grad_par",
    "limiter_from_name",
    "reconstruct",
]
