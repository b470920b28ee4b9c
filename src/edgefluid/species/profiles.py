"""Initial profiles and wave speeds shared by species components."""

from __future__ import annotations

import numpy as np

from edgefluid.config import InitialProfileConfig
from edgefluid.core.state import SpeciesReader, StateReader
from edgefluid.mesh.structured import StructuredMesh


def initial_profile(mesh: StructuredMesh, profile: InitialProfileConfig) -> np.ndarray:
    """Evaluate an ``InitialProfileConfig`` on every cell of the mesh.

    The profile only varies along y and is constant in x and z.
    """
    y = mesh.y_normalised()
    line = profile.value + profile.peak * np.exp(-(((y - profile.center) / profile.width) ** 2))
    return np.broadcast_to(line[np.newaxis, :, np.newaxis], mesh.shape).copy()


def sound_speed(state: StateReader, species: SpeciesReader) -> np.ndarray:
    """Wave speed for numerical dissipation.

    Uses ``sound_speed`` from the state if another component published it,
    otherwise ``sqrt(T)`` of the species.

    Raises:
        MissingStateFieldError: If neither is available.
    """
    cs = state.get_optional("sound_speed")
    if cs is not None:
        return cs
    T = species.get("temperature")
    return np.sqrt(np.maximum(T, 0.0))
