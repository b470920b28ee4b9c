"""Species density evolution.

Evolves the continuity equation for one species

    ddt(N) = - div(N v_ExB) - div_par(N V) + D_low_n + S

where the terms enter only when their inputs are available: the ExB
drift needs ``fields/phi``, parallel flow needs the species ``velocity``.
Two regularising terms keep the density positive:

- parallel diffusion with coefficient ``dy^2 g_22 log(floor / N)``,
  which vanishes wherever N is above ``density_floor``
- optional perpendicular index-space diffusion ``floor / N``

With ``evolve_log`` the solver advances ``logN`` and the density is
recovered as ``exp(logN)`` each evaluation, so N stays positive.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from edgefluid.config import InitialProfileConfig
from edgefluid.constants import electron_proton_mass_ratio
from edgefluid.core.bases import Component
from edgefluid.core.checks import check_finite
from edgefluid.core.registry import register_component
from edgefluid.core.state import StateReader, StateWriter
from edgefluid.operators import (
    d4dz4,
    div_n_bxgrad_f_b_xppm,
    div_par,
    div_par_k_grad_par,
    div_perp_lap_fv_index,
    limiter_from_name,
)
from edgefluid.species.profiles import initial_profile, sound_speed

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

logger = logging.getLogger(__name__)

# Wave speed scaling applied to parallel density advection when a potential is present
ELECTRON_WAVE_FACTOR = float(np.sqrt(electron_proton_mass_ratio))


def low_n_log_factor(N: np.ndarray, density_floor: float) -> np.ndarray:
    """``log(floor / clamp(N, 1e-6 floor, floor))``.

    Zero wherever ``N >= density_floor``, growing as N falls towards zero
    and bounded by ``log(1e6)``.  The clamp keeps the argument positive for
    any N, including zero and negative values.
    """
    return np.log(density_floor / np.clip(N, 1e-6 * density_floor, density_floor))


@register_component("evolve_density")
class EvolveDensity(Component):
    """Evolve the density ``N<name>`` (or ``logN<name>``) of a species.

    Publishes ``density``, ``AA`` and ``charge`` (unless neutral) during
    transform.

    Args:
        name: Species name.
        config: Simulation configuration.
        solver: Solver the evolved field is registered with.
        mesh: Simulation mesh.
    """

    provides = ("density", "AA", "charge")

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
        self.density_floor = options.density_floor
        self.low_n_diffuse = options.low_n_diffuse
        self.low_n_diffuse_perp = options.low_n_diffuse_perp
        self.hyper_z = options.hyper_z
        self.evolve_log = options.evolve_log
        self.limiter = limiter_from_name(options.limiter)
        self.check_finite = config.check_finite

        self.charge = options.charge
        self.AA = options.AA

        if solver.restarting and "initial_density" in options.model_fields_set:
            logger.warning(
                "Species '%s': initial_density ignored when restarting", name
            )

        if self.evolve_log:
            if solver.restarting:
                self.logN = solver.add(f"logN{name}")
                self.N = np.exp(self.logN.value)
            else:
                self.N = initial_profile(mesh, options.initial_density)
                self.logN = solver.add(f"logN{name}", np.log(self.N))
            # N is written so a restart can switch to evolving density
            solver.restart_vars.add_once(f"N{name}", lambda: self.N)
            solver.outputs.add_repeat(f"N{name}", lambda: self.N)
            self.evolved = self.logN
        else:
            self.evolved = solver.add(f"N{name}", initial_profile(mesh, options.initial_density))
            self.N = self.evolved.value

        self.ddt_N = mesh.zeros()
        self.Sn = mesh.zeros()
        if options.diagnose:
            solver.outputs.add_repeat(f"ddt(N{name})", lambda: self.ddt_N)
            solver.outputs.add_repeat(f"SN{name}", lambda: self.Sn)

        units = config.units
        Nnorm = units.inv_meters_cubed
        Omega_ci = 1.0 / units.seconds
        if isinstance(options.density_source, InitialProfileConfig):
            source = initial_profile(mesh, options.density_source)
        else:
            source = mesh.full(options.density_source)
        self.source = source / (Nnorm * Omega_ci)

        logger.info(
            "EvolveDensity '%s': log=%s, floor=%.2e, low_n_diffuse=%s/%s, hyper_z=%g",
            name, self.evolve_log, self.density_floor,
            self.low_n_diffuse, self.low_n_diffuse_perp, self.hyper_z,
        )

    def transform(self, state: StateWriter) -> None:
        if self.evolve_log:
            self.N = np.exp(self.logN.value)
        else:
            self.N = self.evolved.value

        self.mesh.communicate(self.N)

        species = state.species(self.name)
        species.set("density", self.N)
        species.set("AA", self.AA)
        if self.charge != 0.0:
            species.set("charge", self.charge)

    def finalize(self, state: StateReader) -> None:
        mesh = self.mesh
        species = state.species(self.name)

        # Density with boundary conditions applied by other components
        N = species.get("density")
        phi = state.get_field_optional("phi")

        if phi is not None:
            ddt = -div_n_bxgrad_f_b_xppm(
                mesh, N, phi,
                bndry_flux=self.bndry_flux,
                poloidal=self.poloidal_flows,
                positive=True,
                limiter=self.limiter,
            )
        else:
            ddt = mesh.zeros()

        V = species.get_optional("velocity")
        if V is not None:
            wave = sound_speed(state, species)
            if phi is not None:
                wave = ELECTRON_WAVE_FACTOR * wave
            ddt -= div_par(mesh, N, V, wave, limiter=self.limiter)

        if self.low_n_diffuse:
            K = (mesh.dy**2 * mesh.g_22)[:, :, np.newaxis] * low_n_log_factor(N, self.density_floor)
            ddt += div_par_k_grad_par(mesh, K, N)

        if self.low_n_diffuse_perp:
            a = self.density_floor / np.maximum(N, 1e-3 * self.density_floor)
            ddt += div_perp_lap_fv_index(mesh, a, N, xflux=self.bndry_flux)

        if self.hyper_z > 0.0:
            ddt -= self.hyper_z * mesh.dz**4 * d4dz4(mesh, N)

        self.Sn[...] = self.source
        extra = species.get_optional("density_source")
        if extra is not None:
            self.Sn += extra
        ddt += self.Sn

        if self.check_finite:
            check_finite(ddt, f"ddt(N{self.name})", mesh)

        self.ddt_N[...] = ddt
        if self.evolve_log:
            self.logN.ddt[...] = ddt / N
        else:
            self.evolved.ddt[...] = ddt
