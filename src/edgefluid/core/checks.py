"""Debug checks on computed fields."""

from __future__ import annotations

import numpy as np

from edgefluid.errors import NonFiniteError
from edgefluid.mesh.structured import StructuredMesh


def check_finite(field: np.ndarray, name: str, mesh: StructuredMesh) -> None:
    """Raise ``NonFiniteError`` if any interior cell is NaN or infinite.

    Args:
        field: Field of mesh shape.
        name: Name reported in the error, e.g. ``"ddt(Nd+)"``.
        mesh: Mesh defining the interior region.
    """
    bad = ~np.isfinite(field[mesh.interior])
    if not bad.any():
        return
    i, j, k = np.argwhere(bad)[0]
    raise NonFiniteError(
        f"{name}: {int(bad.sum())} non-finite values in region 'interior', "
        f"first at (x={i + mesh.xstart}, y={j + mesh.ystart}, z={k})"
    )
