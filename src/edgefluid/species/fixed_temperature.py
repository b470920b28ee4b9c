"""Constant species temperature."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from edgefluid.core.bases import Component
from edgefluid.core.registry import register_component
from edgefluid.core.state import StateWriter

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

logger = logging.getLogger(__name__)


@register_component("fixed_temperature")
class FixedTemperature(Component):
    """Publish a uniform ``temperature`` and the pressure ``P = N T``."""

    provides = ("temperature", "pressure")
    requires = ("density",)

    def __init__(
        self,
        name: str,
        config: SimulationConfig,
        solver: Solver,
        mesh: StructuredMesh,
    ) -> None:
        super().__init__(name)
        self.mesh = mesh
        self.T = config.species[name].temperature
        logger.info("FixedTemperature '%s': T=%g", name, self.T)

    def transform(self, state: StateWriter) -> None:
        species = state.species(self.name)
        N = species.get("density")
        species.set("temperature", self.mesh.full(self.T))
        species.set("pressure", N * self.T)
