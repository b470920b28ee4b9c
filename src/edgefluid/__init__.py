"""edgefluid: finite-volume fluid species transport on field-aligned meshes."""

__version__ = "0.1.0"
