"""HDF5 output and restart files.

A ``Datafile`` holds named getters rather than arrays, so components
register a quantity once at construction and the current value is read
whenever a file is written:

    outputs.add_repeat("Nd+", lambda: self.N)   # one slice per output
    restart.add_once("Nd+", lambda: self.N)     # written as a plain dataset

Output files grow along a leading time axis (``t_array`` holds the
times); restart files hold a single snapshot plus the time as an
attribute and are read back with ``load_restart``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import h5py
import numpy as np

logger = logging.getLogger(__name__)

Getter = Callable[[], Any]


class Datafile:
    """Registry of quantities written to HDF5 output or restart files."""

    def __init__(self) -> None:
        self._repeat: dict[str, Getter] = {}
        self._once: dict[str, Getter] = {}

    def _check_new(self, name: str) -> None:
        if name in self._repeat or name in self._once:
            raise ValueError(f"'{name}' already registered with this datafile")

    def add_repeat(self, name: str, getter: Getter) -> None:
        """Register a quantity written at every output step."""
        self._check_new(name)
        self._repeat[name] = getter

    def add_once(self, name: str, getter: Getter) -> None:
        """Register a quantity written once per file."""
        self._check_new(name)
        self._once[name] = getter

    def __contains__(self, name: str) -> bool:
        return name in self._repeat or name in self._once

    @property
    def repeat_names(self) -> list[str]:
        return list(self._repeat)

    @property
    def once_names(self) -> list[str]:
        return list(self._once)

    def values(self) -> dict[str, np.ndarray]:
        """Current values of every registered quantity."""
        getters = {**self._once, **self._repeat}
        return {name: np.asarray(get(), dtype=np.float64) for name, get in getters.items()}

    def write_output(self, filename: str | Path, time: float) -> None:
        """Append one time slice of the repeat quantities to ``filename``.

        Once quantities are written the first time the file is created.
        """
        with h5py.File(filename, "a") as f:
            self._append(f, "t_array", np.asarray(time, dtype=np.float64))
            for name, get in self._repeat.items():
                self._append(f, name, np.asarray(get(), dtype=np.float64))
            for name, get in self._once.items():
                if name not in f:
                    f.create_dataset(name, data=np.asarray(get(), dtype=np.float64))
            nt = f["t_array"].shape[0]

        logger.debug("Wrote output %d at t=%.4e to %s", nt, time, filename)

    @staticmethod
    def _append(f: h5py.File, name: str, data: np.ndarray) -> None:
        if name not in f:
            f.create_dataset(
                name,
                data=data[np.newaxis, ...],
                maxshape=(None,) + data.shape,
                chunks=True,
            )
            return
        dset = f[name]
        if dset.shape[1:] != data.shape:
            raise ValueError(
                f"'{name}' changed shape: file has {dset.shape[1:]}, got {data.shape}"
            )
        n = dset.shape[0]
        dset.resize(n + 1, axis=0)
        dset[n] = data

    def write_restart(self, filename: str | Path, time: float) -> None:
        """Write every registered quantity as a single snapshot."""
        logger.info("Writing restart file %s at t=%.4e", filename, time)
        with h5py.File(filename, "w") as f:
            f.attrs["time"] = time
            for name, value in self.values().items():
                f.create_dataset(name, data=value)


def load_restart(filename: str | Path) -> dict[str, Any]:
    """Read a restart file written by ``Datafile.write_restart``.

    Returns:
        Dictionary of arrays keyed by variable name, plus ``"time"``.
    """
    with h5py.File(filename, "r") as f:
        data: dict[str, Any] = {name: np.array(f[name]) for name in f.keys()}
        data["time"] = float(f.attrs.get("time", 0.0))
    logger.info("Loaded restart file %s (%d variables)", filename, len(data) - 1)
    return data
