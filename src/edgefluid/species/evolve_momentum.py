"""Species parallel momentum evolution.

    ddt(NV) = - div(NV v_ExB) - div_par(N V V) - grad_par(P) + S

The velocity ``V = NV / (AA N)`` is published during transform, so this
component must run after the one publishing the species density and mass.
Self-advection uses ``div_par_fvv`` without fixed boundary fluxes, so the
outgoing characteristic sets the flux at sheath boundaries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from edgefluid.core.bases import Component
from edgefluid.core.checks import check_finite
from edgefluid.core.registry import register_component
from edgefluid.core.state import StateReader, StateWriter
from edgefluid.operators import div_n_bxgrad_f_b_xppm, div_par_fvv, grad_par, limiter_from_name
from edgefluid.species.profiles import initial_profile, sound_speed

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

logger = logging.getLogger(__name__)


@register_component("evolve_momentum")
class EvolveMomentum(Component):
    """Evolve the parallel momentum ``NV<name>`` of a species."""

    provides = ("momentum", "velocity")
    requires = ("density", "AA")

    def __init__(
        self,
        name: str,
        config: SimulationConfig,
        solver: Solver,
        mesh: StructuredMesh,
    ) -> None:
        super().__init__(name)
        self.mesh = mesh
        options = config.species[name]

        self.bndry_flux = options.bndry_flux
        self.poloidal_flows = options.poloidal_flows
        self.limiter = limiter_from_name(options.limiter)
        self.check_finite = config.check_finite

        self.NV = solver.add(f"NV{name}", initial_profile(mesh, options.initial_momentum))
        logger.info("EvolveMomentum '%s'", name)

    def transform(self, state: StateWriter) -> None:
        NV = self.NV.value
        self.mesh.communicate(NV)

        species = state.species(self.name)
        species.set("momentum", NV)

        N = species.get("density")
        AA = species.get("AA", float)
        species.set("velocity", NV / (AA * N))

    def finalize(self, state: StateReader) -> None:
        mesh = self.mesh
        species = state.species(self.name)
        NV = species.get("momentum")

        phi = state.get_field_optional("phi")
        if phi is not None:
            ddt = -div_n_bxgrad_f_b_xppm(
                mesh, NV, phi,
                bndry_flux=self.bndry_flux,
                poloidal=self.poloidal_flows,
                positive=True,
                limiter=self.limiter,
            )
        else:
            ddt = mesh.zeros()

        N = species.get("density")
        V = species.get("velocity")
        wave = sound_speed(state, species)

        ddt -= div_par_fvv(mesh, N, V, wave, fixflux=False, limiter=self.limiter)

        P = species.get_optional("pressure")
        if P is not None:
            ddt -= grad_par(mesh, P)

        source = species.get_optional("momentum_source")
        if source is not None:
            ddt += source

        if self.check_finite:
            check_finite(ddt, f"ddt(NV{self.name})", mesh)

        self.NV.ddt[...] = ddt
