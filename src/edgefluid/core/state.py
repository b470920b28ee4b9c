"""Per-evaluation state shared between species components.

A fresh ``GlobalState`` is built for every right-hand-side evaluation.  It
holds:
    species: species name -> ``SpeciesState`` (density, velocity, AA, ...)
    fields:  field name -> array (e.g. ``phi``, the electrostatic potential)
    values:  other top-level quantities (e.g. ``sound_speed``)

Access is phase-gated.  During the transform phase components receive a
``StateWriter``, the only object that can publish values; during the
finalize phase they receive a ``StateReader``, which can only read.  Once a
reader has been handed out the state is sealed and any further write
raises ``StatePhaseError``.

Within the transform phase each key is written at most once with ``set``.
Components that apply boundary conditions to a value published by another
component replace it explicitly with ``update``.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from edgefluid.errors import (
    MissingStateFieldError,
    StatePhaseError,
    StateTypeError,
    StateWriteConflictError,
)

TRANSFORM = "transform"
FINALIZE = "finalize"


def _checked(section: str, key: str, value: Any, kind: type | None) -> Any:
    """Return ``value`` as ``kind`` or raise ``StateTypeError``."""
    if kind is None:
        return value
    if kind is float:
        if isinstance(value, np.ndarray) and value.ndim == 0:
            return float(value)
        if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(value, kind):
        return value
    raise StateTypeError(
        f"'{section}/{key}' is {type(value).__name__}, expected {kind.__name__}"
    )


class _Section:
    """Named mapping of published values with checked retrieval."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._values: dict[str, Any] = {}

    def is_set(self, key: str) -> bool:
        return key in self._values

    def keys(self) -> list[str]:
        return list(self._values)

    def get(self, key: str, kind: type | None = np.ndarray) -> Any:
        if key not in self._values:
            raise MissingStateFieldError(self.path, key)
        return _checked(self.path, key, self._values[key], kind)

    def get_optional(self, key: str, kind: type | None = np.ndarray) -> Any:
        if key not in self._values:
            return None
        return _checked(self.path, key, self._values[key], kind)

    def _set(self, key: str, value: Any) -> None:
        if key in self._values:
            raise StateWriteConflictError(
                f"'{self.path}/{key}' already set in this transform phase; use update()"
            )
        self._values[key] = value

    def _update(self, key: str, value: Any) -> None:
        if key not in self._values:
            raise MissingStateFieldError(self.path, key)
        self._values[key] = value


class SpeciesState(_Section):
    """Values published for one species."""

    def __init__(self, name: str) -> None:
        super().__init__(f"species/{name}")
        self.name = name


class GlobalState:
    """Container for one right-hand-side evaluation.

    Args:
        time: Simulation time of the evaluation.
    """

    def __init__(self, time: float = 0.0) -> None:
        self.time = time
        self.species: dict[str, SpeciesState] = {}
        self.fields = _Section("fields")
        self.values = _Section("state")
        self._phase = TRANSFORM

    @property
    def phase(self) -> str:
        return self._phase

    def writer(self) -> StateWriter:
        """Write capability for the transform phase."""
        if self._phase != TRANSFORM:
            raise StatePhaseError("state is sealed; writers are only available during transform")
        return StateWriter(self)

    def reader(self) -> StateReader:
        """Read capability for the finalize phase; seals the state."""
        self._phase = FINALIZE
        return StateReader(self)

    def _require_transform(self) -> None:
        if self._phase != TRANSFORM:
            raise StatePhaseError("cannot write state outside the transform phase")


# ============================================================
# Transform phase: write capability
# ============================================================

class SpeciesWriter:
    """Publish and read values of one species during transform."""

    def __init__(self, state: GlobalState, entry: SpeciesState) -> None:
        self._state = state
        self._entry = entry

    @property
    def name(self) -> str:
        return self._entry.name

    def set(self, key: str, value: Any) -> None:
        """Publish ``value``; each key may be set once per transform phase."""
        self._state._require_transform()
        self._entry._set(key, value)

    def update(self, key: str, value: Any) -> None:
        """Replace an already published value (boundary conditions)."""
        self._state._require_transform()
        self._entry._update(key, value)

    def is_set(self, key: str) -> bool:
        return self._entry.is_set(key)

    def get(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._entry.get(key, kind)

    def get_optional(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._entry.get_optional(key, kind)


class StateWriter:
    """Write capability handed to ``Component.transform``."""

    def __init__(self, state: GlobalState) -> None:
        self._state = state

    @property
    def time(self) -> float:
        return self._state.time

    def species(self, name: str) -> SpeciesWriter:
        """Entry for species ``name``, created on first access."""
        entry = self._state.species.get(name)
        if entry is None:
            self._state._require_transform()
            entry = self._state.species[name] = SpeciesState(name)
        return SpeciesWriter(self._state, entry)

    def set_field(self, name: str, value: np.ndarray) -> None:
        self._state._require_transform()
        self._state.fields._set(name, value)

    def set(self, key: str, value: Any) -> None:
        self._state._require_transform()
        self._state.values._set(key, value)

    def get_field(self, name: str) -> np.ndarray:
        return self._state.fields.get(name)

    def get(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._state.values.get(key, kind)


# ============================================================
# Finalize phase: read capability
# ============================================================

class SpeciesReader:
    """Read-only view of one species during finalize."""

    def __init__(self, entry: SpeciesState) -> None:
        self._entry = entry

    @property
    def name(self) -> str:
        return self._entry.name

    def is_set(self, key: str) -> bool:
        return self._entry.is_set(key)

    def keys(self) -> list[str]:
        return self._entry.keys()

    def get(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._entry.get(key, kind)

    def get_optional(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._entry.get_optional(key, kind)


class StateReader:
    """Read capability handed to ``Component.finalize``."""

    def __init__(self, state: GlobalState) -> None:
        self._state = state

    @property
    def time(self) -> float:
        return self._state.time

    def has_species(self, name: str) -> bool:
        return name in self._state.species

    def species(self, name: str) -> SpeciesReader:
        entry = self._state.species.get(name)
        if entry is None:
            raise MissingStateFieldError("species", name)
        return SpeciesReader(entry)

    def is_field_set(self, name: str) -> bool:
        return self._state.fields.is_set(name)

    def get_field(self, name: str) -> np.ndarray:
        return self._state.fields.get(name)

    def get_field_optional(self, name: str) -> np.ndarray | None:
        return self._state.fields.get_optional(name)

    def is_set(self, key: str) -> bool:
        return self._state.values.is_set(key)

    def get(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._state.values.get(key, kind)

    def get_optional(self, key: str, kind: type | None = np.ndarray) -> Any:
        return self._state.values.get_optional(key, kind)
