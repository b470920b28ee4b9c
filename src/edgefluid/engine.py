"""Simulation engine: builds the mesh, solver and components and runs them.

Wires together: config -> mesh -> solver (with restart data) -> component
pipeline -> output files.  Each output step advances the solver by
``time.timestep`` in internal SSP-RK3 steps of at most ``time.dt`` and
appends one slice to the output file.  A restart file is written at the end
of the run if configured.
"""

from __future__ import annotations

import logging
import time as wall_time
from typing import Any

from edgefluid.config import SimulationConfig
from edgefluid.core.pipeline import ComponentPipeline
from edgefluid.core.state import GlobalState
from edgefluid.diagnostics.datafile import load_restart
from edgefluid.mesh.structured import StructuredMesh
from edgefluid.solver import Solver

logger = logging.getLogger(__name__)


class SimulationEngine:
    """Species transport simulation.

    Args:
        config: Validated SimulationConfig.

    Raises:
        ValueError: If ``restarting`` is set without ``restart_from``.
    """

    def __init__(self, config: SimulationConfig) -> None:
        self.config = config
        self.mesh = StructuredMesh.from_config(config.mesh)

        restart = None
        if config.restarting:
            if config.restart_from is None:
                raise ValueError("restarting requires 'restart_from' to name a restart file")
            restart = load_restart(config.restart_from)

        self.solver = Solver(self.mesh, restart=restart)
        self.pipeline = ComponentPipeline.from_config(config, self.solver, self.mesh)
        self.solver.rhs_function = self.rhs
        self.last_state: GlobalState | None = None

        logger.info(
            "SimulationEngine: mesh=%s, species=%s, evolved=%s, restarting=%s",
            self.mesh.shape, list(config.species), list(self.solver.fields), config.restarting,
        )

    @property
    def time(self) -> float:
        return self.solver.time

    def rhs(self, time: float) -> GlobalState:
        """One right-hand-side evaluation of every component."""
        self.last_state = self.pipeline.evaluate(time)
        return self.last_state

    def run(self, nout: int | None = None) -> dict[str, Any]:
        """Run the configured number of output steps.

        Args:
            nout: Override ``config.time.nout``.

        Returns:
            Summary dictionary with the final time and step counts.
        """
        tc = self.config.time
        nout = tc.nout if nout is None else nout
        output_file = self.config.diagnostics.output_filename
        restart_file = self.config.diagnostics.restart_filename

        logger.info(
            "Starting run: nout=%d, timestep=%.3e, dt=%.3e, t0=%.4e",
            nout, tc.timestep, tc.dt, self.time,
        )
        t_start = wall_time.monotonic()

        # Populate diagnostics for the initial output
        self.solver.evaluate(self.time)
        if output_file is not None:
            self.solver.outputs.write_output(output_file, self.time)

        for n in range(1, nout + 1):
            nsteps = self.solver.advance(tc.timestep, tc.dt)
            if output_file is not None:
                self.solver.outputs.write_output(output_file, self.time)
            logger.info("Output %d/%d: t=%.4e (%d steps)", n, nout, self.time, nsteps)

        if restart_file is not None:
            self.solver.restart_vars.write_restart(restart_file, self.time)

        elapsed = wall_time.monotonic() - t_start
        logger.info("Run finished: t=%.4e, %d steps in %.2f s", self.time, self.solver.step_count, elapsed)
        return {
            "time": self.time,
            "steps": self.solver.step_count,
            "outputs": nout,
            "wall_time": elapsed,
        }
