"""Evolved fields and explicit time integration.

Components register the fields they evolve with ``Solver.add`` and write
the time derivative into ``EvolvedField.ddt`` during finalize.  The solver
owns the values, zeroes every ``ddt`` before each right-hand-side
evaluation and advances with third-order SSP Runge-Kutta (Shu-Osher form):

    u1 = u0 + dt L(u0)
    u2 = 3/4 u0 + 1/4 (u1 + dt L(u1))
    u  = 1/3 u0 + 2/3 (u2 + dt L(u2))

Evolved values are registered with both the output and the restart
datafile, so restarts recover every evolved field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from edgefluid.diagnostics.datafile import Datafile
from edgefluid.mesh.structured import StructuredMesh

logger = logging.getLogger(__name__)


@dataclass
class EvolvedField:
    """A field advanced in time by the solver.

    Attributes:
        name: Variable name, e.g. ``"Nd+"``.
        value: Current value, updated in place by the solver.
        ddt: Time derivative, written in place by the owning component.
    """

    name: str
    value: np.ndarray
    ddt: np.ndarray


class Solver:
    """Single-process explicit solver.

    Args:
        mesh: Mesh all evolved fields live on.
        restart: Variables restored from a restart file (see
            ``load_restart``).  When given, ``add`` takes initial values
            from it and ``restarting`` is True.
    """

    def __init__(self, mesh: StructuredMesh, restart: dict[str, Any] | None = None) -> None:
        self.mesh = mesh
        self._restart = restart
        self.time = float(restart.get("time", 0.0)) if restart is not None else 0.0
        self.fields: dict[str, EvolvedField] = {}
        self.outputs = Datafile()
        self.restart_vars = Datafile()
        self.rhs_function: Callable[[float], Any] | None = None
        self.step_count = 0

    @property
    def restarting(self) -> bool:
        return self._restart is not None

    def add(self, name: str, initial: np.ndarray | float | None = None) -> EvolvedField:
        """Register an evolved field.

        Args:
            name: Unique variable name.
            initial: Initial value on a fresh start (default zero).  Ignored
                when restarting.

        Returns:
            The registered field.

        Raises:
            ValueError: If ``name`` is already registered.
            KeyError: If restarting and the restart data lacks ``name``.
        """
        if name in self.fields:
            raise ValueError(f"evolved field '{name}' already registered")

        if self._restart is not None:
            if name not in self._restart:
                raise KeyError(f"evolved field '{name}' not found in restart data")
            value = np.array(self._restart[name], dtype=np.float64)
        elif initial is None:
            value = self.mesh.zeros()
        else:
            value = np.array(np.broadcast_to(initial, self.mesh.shape), dtype=np.float64)
        self.mesh.check_compatible(**{name: value})

        field = EvolvedField(name=name, value=value, ddt=self.mesh.zeros())
        self.fields[name] = field
        self.outputs.add_repeat(name, lambda: field.value)
        self.restart_vars.add_once(name, lambda: field.value)
        logger.debug("Registered evolved field '%s' (restart=%s)", name, self.restarting)
        return field

    # ============================================================
    # Time integration
    # ============================================================

    def evaluate(self, time: float) -> Any:
        """Zero all derivatives and run the right-hand-side function."""
        if self.rhs_function is None:
            raise RuntimeError("no rhs_function set on solver")
        for field in self.fields.values():
            field.ddt[...] = 0.0
        return self.rhs_function(time)

    def _stage(self, dt: float) -> dict[str, np.ndarray]:
        return {name: f.value + dt * f.ddt for name, f in self.fields.items()}

    def step(self, dt: float) -> None:
        """Advance all evolved fields by ``dt`` with SSP-RK3."""
        u0 = {name: f.value.copy() for name, f in self.fields.items()}
        t = self.time

        self.evaluate(t)
        for name, value in self._stage(dt).items():
            self.fields[name].value[...] = value

        self.evaluate(t + dt)
        for name, value in self._stage(dt).items():
            self.fields[name].value[...] = 0.75 * u0[name] + 0.25 * value

        self.evaluate(t + 0.5 * dt)
        for name, value in self._stage(dt).items():
            self.fields[name].value[...] = u0[name] / 3.0 + 2.0 * value / 3.0

        self.time = t + dt
        self.step_count += 1
        logger.debug("Step %d: t=%.4e dt=%.3e", self.step_count, self.time, dt)

    def advance(self, duration: float, dt: float) -> int:
        """Take steps of at most ``dt`` until ``duration`` has elapsed.

        Returns:
            Number of steps taken.
        """
        nsteps = max(1, int(np.ceil(duration / dt - 1e-12)))
        sub_dt = duration / nsteps
        for _ in range(nsteps):
            self.step(sub_dt)
        return nsteps
