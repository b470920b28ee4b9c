"""Pydantic v2 configuration system for species transport simulations.

Provides validated, typed configuration with submodels for the mesh,
normalisation units, output and each species.  Every option carries an
inline ``description``; ``model_fields_set`` tells explicitly set options
apart from defaulted ones.
"""

from __future__ import annotations

import json
import math
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from edgefluid.constants import electron_proton_mass_ratio

LIMITER_NAMES = ("upwind", "minmod", "mc", "fromm")


class UnitsConfig(BaseModel):
    """Normalisation units shared by all components."""

    inv_meters_cubed: float = Field(1e19, gt=0, description="Density normalisation Nnorm [m^-3]")
    seconds: float = Field(1e-6, gt=0, description="Time normalisation 1/Omega_ci [s]")
    meters: float = Field(1.0, gt=0, description="Length normalisation [m]")
    eV: float = Field(1.0, gt=0, description="Temperature normalisation [eV]")


class MeshConfig(BaseModel):
    """Structured (x, y, z) mesh with uniform metric coefficients.

    y is the parallel (along-field) index direction, z the periodic
    toroidal direction.  ``shear`` sets the field-aligned shift
    zShift = shear * y, with y measured from the first interior cell.
    """

    nx: int = Field(1, ge=1, description="Interior cells in x (radial)")
    ny: int = Field(16, ge=2, description="Interior cells in y (parallel)")
    nz: int = Field(1, ge=1, description="Cells in z (periodic, no guards)")
    mxg: int = Field(2, ge=1, description="Guard cells on each x side")
    myg: int = Field(2, ge=2, description="Guard cells on each y side")
    dx: float = Field(1.0, gt=0, description="Radial grid spacing")
    dy: float = Field(1.0, gt=0, description="Parallel grid spacing")
    dz: float | None = Field(None, gt=0, description="Toroidal spacing (default 2*pi/nz)")
    J: float = Field(1.0, gt=0, description="Jacobian")
    g_22: float = Field(1.0, gt=0, description="Covariant metric g_22")
    g_23: float = Field(0.0, description="Covariant metric g_23 (poloidal ExB coupling)")
    Bxy: float = Field(1.0, gt=0, description="Magnetic field magnitude")
    shear: float = Field(0.0, description="Field-aligned shift per unit y")
    periodic_y: bool = Field(False, description="Closed field lines (periodic in y)")

    @model_validator(mode="after")
    def default_dz(self) -> MeshConfig:
        if self.dz is None:
            self.dz = 2.0 * math.pi / self.nz
        return self


class InitialProfileConfig(BaseModel):
    """Initial profile: ``value + peak * exp(-((y - center) / width)^2)``.

    ``y`` runs from 0 to 1 over the interior parallel cells.
    """

    value: float = Field(1.0, description="Uniform background")
    peak: float = Field(0.0, description="Gaussian amplitude added to the background")
    center: float = Field(0.5, ge=0, le=1, description="Gaussian centre (normalised y)")
    width: float = Field(0.1, gt=0, description="Gaussian width (normalised y)")


class SpeciesOptions(BaseModel):
    """Options for one species and the components that evolve it."""

    type: list[str] = Field(
        default_factory=lambda: ["evolve_density"],
        description="Components acting on this species, e.g. ['evolve_density', 'evolve_momentum']",
    )
    charge: float = Field(-1.0, description="Particle charge. electrons = -1")
    AA: float = Field(
        electron_proton_mass_ratio, gt=0, description="Particle atomic mass. Proton = 1"
    )
    bndry_flux: bool = Field(True, description="Allow flows through radial boundaries")
    poloidal_flows: bool = Field(True, description="Include poloidal ExB flow")
    density_floor: float = Field(1e-5, gt=0, description="Minimum density floor")
    low_n_diffuse: bool = Field(True, description="Parallel diffusion at low density")
    low_n_diffuse_perp: bool = Field(False, description="Perpendicular diffusion at low density")
    hyper_z: float = Field(0.0, ge=0, description="Hyper-diffusion in Z (0 disables)")
    evolve_log: bool = Field(False, description="Evolve the logarithm of density?")
    diagnose: bool = Field(False, description="Output additional diagnostics?")
    limiter: str = Field("mc", description="Cell-face reconstruction: upwind, minmod, mc, fromm")
    density_source: float | InitialProfileConfig = Field(
        0.0,
        description="Source term in ddt(N), uniform or a y profile. Units [m^-3/s]",
    )
    initial_density: InitialProfileConfig = Field(default_factory=InitialProfileConfig)
    initial_momentum: InitialProfileConfig = Field(
        default_factory=lambda: InitialProfileConfig(value=0.0)
    )
    temperature: float | None = Field(
        None, ge=0, description="Fixed temperature (normalised) for fixed_temperature"
    )

    @model_validator(mode="after")
    def validate_options(self) -> SpeciesOptions:
        if not self.type:
            raise ValueError("species must list at least one component type")
        if self.limiter not in LIMITER_NAMES:
            raise ValueError(f"limiter must be one of {LIMITER_NAMES}, got '{self.limiter}'")
        if "fixed_temperature" in self.type and self.temperature is None:
            raise ValueError("fixed_temperature requires 'temperature' to be set")
        return self


class TimeConfig(BaseModel):
    """Output cadence and internal step size."""

    nout: int = Field(1, ge=0, description="Number of output steps")
    timestep: float = Field(1.0, gt=0, description="Time between outputs (normalised)")
    dt: float = Field(0.1, gt=0, description="Internal SSP-RK3 step (normalised)")


class DiagnosticsConfig(BaseModel):
    """Output and restart files."""

    output_filename: str | None = Field(None, description="HDF5 output file (None = no output)")
    restart_filename: str | None = Field(None, description="HDF5 restart file written at the end")


class SimulationConfig(BaseModel):
    """Top-level simulation configuration."""

    mesh: MeshConfig = Field(default_factory=MeshConfig)
    units: UnitsConfig = Field(default_factory=UnitsConfig)
    species: dict[str, SpeciesOptions] = Field(default_factory=dict)
    time: TimeConfig = Field(default_factory=TimeConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    restarting: bool = Field(False, description="Restore evolved fields from restart_from")
    restart_from: str | None = Field(None, description="Restart file to read when restarting")
    check_finite: bool = Field(False, description="Check derivatives for NaN/Inf (debug)")

    # --- I/O helpers ---

    @classmethod
    def from_file(cls, path: str | Path) -> SimulationConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with path.open() as f:
            data = json.load(f)
        return cls(**data)

    def to_json(self, path: str | Path | None = None) -> str:
        """Serialize to JSON string, optionally writing to file."""
        out = self.model_dump_json(indent=2)
        if path is not None:
            Path(path).write_text(out)
        return out
