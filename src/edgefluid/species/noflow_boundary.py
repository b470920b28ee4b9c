"""No-flow boundary conditions at the ends of open field lines.

Scalars (density, temperature, pressure) get zero-gradient guard cells;
velocity and momentum are mirrored with opposite sign so their value on
the boundary face is zero.  Values are replaced with new arrays through
``update``, so evolved fields are not modified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from edgefluid.core.bases import Component
from edgefluid.core.registry import register_component
from edgefluid.core.state import StateWriter

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

NEUMANN_KEYS = ("density", "temperature", "pressure")
ZERO_FACE_KEYS = ("velocity", "momentum")


@register_component("noflow_boundary")
class NoFlowBoundary(Component):
    """Apply y-boundary conditions to whatever the species has published."""

    follows = NEUMANN_KEYS + ZERO_FACE_KEYS

    def __init__(
        self,
        name: str,
        config: SimulationConfig,
        solver: Solver,
        mesh: StructuredMesh,
    ) -> None:
        super().__init__(name)
        self.mesh = mesh

    def transform(self, state: StateWriter) -> None:
        species = state.species(self.name)
        for key in NEUMANN_KEYS:
            if species.is_set(key):
                species.update(key, self.mesh.apply_y_boundary(species.get(key), "neumann"))
        for key in ZERO_FACE_KEYS:
            if species.is_set(key):
                species.update(key, self.mesh.apply_y_boundary(species.get(key), "zero_face"))
