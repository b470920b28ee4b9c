"""Output and restart files."""

from edgefluid.diagnostics.datafile import Datafile, load_restart

__all__ = ["Datafile", "load_restart"]
