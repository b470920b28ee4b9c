"""Registry mapping component type tags to component classes.

Components register themselves with the ``register_component`` decorator
when their module is imported; configuration names them by tag, e.g.
``type = ["evolve_density", "evolve_momentum"]``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from edgefluid.core.bases import Component
from edgefluid.errors import UnknownComponentError

if TYPE_CHECKING:
    from edgefluid.config import SimulationConfig
    from edgefluid.mesh.structured import StructuredMesh
    from edgefluid.solver import Solver

logger = logging.getLogger(__name__)

COMPONENT_REGISTRY: dict[str, type[Component]] = {}


def register_component(type_tag: str):
    """Class decorator registering a component under ``type_tag``."""

    def decorator(cls: type[Component]) -> type[Component]:
        existing = COMPONENT_REGISTRY.get(type_tag)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"component type '{type_tag}' already registered by {existing.__name__}"
            )
        cls.type_tag = type_tag
        COMPONENT_REGISTRY[type_tag] = cls
        return cls

    return decorator


def get_component_class(type_tag: str) -> type[Component]:
    """Look up a registered component class.

    Raises:
        UnknownComponentError: If no component is registered under the tag.
    """
    import edgefluid.species  # noqa: F401  (registers the built-in components)

    cls = COMPONENT_REGISTRY.get(type_tag)
    if cls is None:
        raise UnknownComponentError(
            f"Unknown component type '{type_tag}'. Available: {sorted(COMPONENT_REGISTRY)}"
        )
    return cls


def create_component(
    type_tag: str,
    name: str,
    config: SimulationConfig,
    solver: Solver,
    mesh: StructuredMesh,
) -> Component:
    """Construct the component registered under ``type_tag`` for species ``name``."""
    cls = get_component_class(type_tag)
    logger.debug("Creating %s for species '%s'", cls.__name__, name)
    return cls(name, config, solver, mesh)
