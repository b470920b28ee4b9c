"""Command-line interface for edgefluid.

Usage:
    edgefluid run config.json --nout=10
    edgefluid check config.json
"""

from __future__ import annotations

import logging
import sys

import click


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """edgefluid: fluid species transport on field-aligned meshes."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--nout", type=int, default=None, help="Number of output steps (default: from config).")
@click.option("--output", "-o", type=str, default=None, help="Override output HDF5 filename.")
@click.option("--restart", type=click.Path(exists=True), default=None, help="Restart from a restart file.")
def run(config_file: str, nout: int | None, output: str | None, restart: str | None) -> None:
    """Run a simulation from a configuration file."""
    from edgefluid.config import SimulationConfig
    from edgefluid.engine import SimulationEngine

    click.echo(f"Loading config from {config_file}")
    config = SimulationConfig.from_file(config_file)

    if output:
        config.diagnostics.output_filename = output
    if restart:
        click.echo(f"Restarting from: {restart}")
        config.restarting = True
        config.restart_from = restart

    engine = SimulationEngine(config)
    summary = engine.run(nout=nout)

    click.echo("\n--- Simulation Summary ---")
    for key, val in summary.items():
        if isinstance(val, float):
            click.echo(f"  {key}: {val:.6e}")
        else:
            click.echo(f"  {key}: {val}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def check(config_file: str) -> None:
    """Validate a configuration file and show the component order."""
    from pydantic import ValidationError

    from edgefluid.config import SimulationConfig
    from edgefluid.core.pipeline import ComponentPipeline
    from edgefluid.errors import ContractViolation
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

    try:
        config = SimulationConfig.from_file(config_file)
        mesh = StructuredMesh.from_config(config.mesh)
        pipeline = ComponentPipeline.from_config(config, Solver(mesh), mesh)
    except (ValidationError, ContractViolation) as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid:")
    click.echo(f"  Mesh: {mesh.shape} (guards x={mesh.mxg}, y={mesh.myg})")
    click.echo(f"  Species: {', '.join(config.species) or '(none)'}")
    click.echo("  Component order:")
    for comp in pipeline:
        click.echo(f"    {comp.type_tag}[{comp.name}]")


if __name__ == "__main__":
    cli()
