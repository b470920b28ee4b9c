"""Core abstract base class for species components.

Defines the two-phase contract every component implements:

- ``transform(state)``: publish primary variables (density, velocity,
  charge, ...) through a ``StateWriter``.  Runs for every component before
  any ``finalize``.
- ``finalize(state)``: read whatever other components published through a
  ``StateReader`` and write the time derivative of the owned evolved field.

Ordering between transforms is declared, not implied by registration
order.  ``provides`` lists the species keys a component publishes during
transform, ``requires`` the keys it must read during transform, and
``follows`` keys whose publishers (if any are configured) must run first.
The pipeline resolves these per species with a topological sort.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from edgefluid.core.state import StateReader, StateWriter


class Component(ABC):
    """Abstract base for all species components.

    Args:
        name: Species the component acts on (e.g. ``"d+"``).
    """

    type_tag: str = ""
    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    follows: tuple[str, ...] = ()

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def transform(self, state: StateWriter) -> None:
        """Publish this component's primary variables.

        Args:
            state: Write capability for the current evaluation.
        """

    def finalize(self, state: StateReader) -> None:
        """Compute time derivatives once all variables are published.

        Args:
            state: Read-only view of the current evaluation.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
