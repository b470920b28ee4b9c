"""Ordered two-phase evaluation of species components.

The pipeline is built once from the configuration.  Transform ordering is
derived from each component's declared ``provides`` / ``requires`` /
``follows`` keys (per species) and resolved with a topological sort, keeping
configuration order wherever the dependencies allow it.

Each ``evaluate`` call builds a fresh ``GlobalState``, runs every
``transform`` with the write capability, seals the state, then runs every
``finalize`` with the read capability.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from edgefluid.core.bases import Component
from edgefluid.core.registry import create_component
from edgefluid.core.state import GlobalState
from edgefluid.errors import ComponentOrderError

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

logger = logging.getLogger(__name__)


def order_components(components: Iterable[Component]) -> list[Component]:
    """Sort components so every publisher runs before its readers.

    Args:
        components: Components in configuration order.

    Returns:
        Components in a valid transform order.

    Raises:
        ComponentOrderError: If a required key has no publisher or the
            dependencies are cyclic.
    """
    components = list(components)

    providers: dict[tuple[str, str], set[int]] = {}
    for idx, comp in enumerate(components):
        for key in comp.provides:
            providers.setdefault((comp.name, key), set()).add(idx)

    deps: list[set[int]] = []
    for idx, comp in enumerate(components):
        before: set[int] = set()
        for key in comp.requires:
            found = providers.get((comp.name, key))
            if not found:
                raise ComponentOrderError(
                    f"{comp!r} requires 'species/{comp.name}/{key}' during transform "
                    f"but no configured component provides it"
                )
            before |= found
        for key in comp.follows:
            before |= providers.get((comp.name, key), set())
        before.discard(idx)
        deps.append(before)

    dependents: list[list[int]] = [[] for _ in components]
    remaining = [len(d) for d in deps]
    for idx, before in enumerate(deps):
        for b in before:
            dependents[b].append(idx)

    ready = [idx for idx, n in enumerate(remaining) if n == 0]
    heapq.heapify(ready)
    order: list[int] = []
    while ready:
        idx = heapq.heappop(ready)
        order.append(idx)
        for d in dependents[idx]:
            remaining[d] -= 1
            if remaining[d] == 0:
                heapq.heappush(ready, d)

    if len(order) != len(components):
        stuck = [components[i] for i, n in enumerate(remaining) if n > 0]
        raise ComponentOrderError(f"cyclic transform dependencies between {stuck}")

    return [components[i] for i in order]


class ComponentPipeline:
    """Dependency-ordered list of components evaluated in two phases.

    Args:
        components: Components in configuration order.
    """

    def __init__(self, components: Iterable[Component]) -> None:
        self.components = order_components(components)
        logger.info(
            "Component order: %s",
            ", ".join(f"{c.type_tag or type(c).__name__}[{c.name}]" for c in self.components),
        )

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        solver: Solver,
        mesh: StructuredMesh,
    ) -> ComponentPipeline:
        """Build every component named in ``config.species``."""
        components = [
            create_component(type_tag, name, config, solver, mesh)
            for name, options in config.species.items()
            for type_tag in options.type
        ]
        return cls(components)

    def evaluate(self, time: float = 0.0) -> GlobalState:
        """Run transform then finalize for all components.

        Args:
            time: Simulation time of the evaluation.

        Returns:
            The sealed state of this evaluation (for diagnostics).
        """
        state = GlobalState(time)
        writer = state.writer()
        for comp in self.components:
            comp.transform(writer)

        reader = state.reader()
        for comp in self.components:
            comp.finalize(reader)
        return state

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)
