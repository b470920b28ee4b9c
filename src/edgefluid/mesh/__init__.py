"""Mesh module: structured field-aligned grids with guard cells."""

from edgefluid.mesh.structured import StructuredMesh

__all__ = ["StructuredMesh"]
