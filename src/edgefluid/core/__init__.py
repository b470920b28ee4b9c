"""Core component contract, state exchange and pipeline.

- ``Component``: ABC with the transform / finalize contract
- ``GlobalState``: per-evaluation state with phase-gated access
- ``ComponentPipeline``: dependency-ordered two-phase evaluation
"""

from edgefluid.core.bases import Component
from edgefluid.core.state import GlobalState, StateReader, StateWriter

__all__ = ["Component", "GlobalState", "StateReader", "StateWriter"]
