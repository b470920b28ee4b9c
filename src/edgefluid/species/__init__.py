"""Species components.

Importing this package registers the built-in component types:

- ``evolve_density``: ``EvolveDensity``
- ``evolve_momentum``: ``EvolveMomentum``
- ``fixed_temperature``: ``FixedTemperature``
- ``noflow_boundary``: ``NoFlowBoundary``
"""

from edgefluid.species.evolve_density import EvolveDensity
from edgefluid.species.evolve_momentum import EvolveMomentum
from edgefluid.species.fixed_temperature import FixedTemperature
from edgefluid.species.noflow_boundary import NoFlowBoundary

__all__ = ["EvolveDensity", "EvolveMomentum", "FixedTemperature", "NoFlowBoundary"]
