"""Tests for the phase-gated per-evaluation state."""

from __future__ import annotations

import numpy as np
import pytest

from edgefluid.core.state import FINALIZE, TRANSFORM, GlobalState
from edgefluid.errors import (
    ContractViolation,
    MissingStateFieldError,
    StatePhaseError,
    StateTypeError,
    StateWriteConflictError,
)


@pytest.fixture
def state():
    return GlobalState(time=1.5)


class TestTransformPhase:
    def test_set_and_get(self, state):
        writer = state.writer()
        species = writer.species("d+")
        species.set("density", np.ones(3))
        np.testing.assert_array_equal(species.get("density"), 1.0)
        assert species.is_set("density")
        assert writer.time == 1.5

    def test_second_set_conflicts(self, state):
        species = state.writer().species("d+")
        species.set("density", np.ones(3))
        with pytest.raises(StateWriteConflictError, match="update"):
            species.set("density", np.zeros(3))

    def test_update_replaces(self, state):
        species = state.writer().species("d+")
        species.set("velocity", np.ones(3))
        species.update("velocity", np.zeros(3))
        np.testing.assert_array_equal(species.get("velocity"), 0.0)

    def test_update_requires_existing(self, state):
        species = state.writer().species("d+")
        with pytest.raises(MissingStateFieldError):
            species.update("velocity", np.zeros(3))

    def test_species_entries_shared(self, state):
        writer = state.writer()
        writer.species("d+").set("AA", 2.0)
        assert writer.species("d+").get("AA", float) == 2.0
        assert "d+" in state.species

    def test_fields_and_values(self, state):
        writer = state.writer()
        writer.set_field("phi", np.zeros(4))
        writer.set("sound_speed", np.ones(4))
        np.testing.assert_array_equal(writer.get_field("phi"), 0.0)
        np.testing.assert_array_equal(writer.get("sound_speed"), 1.0)
        with pytest.raises(StateWriteConflictError):
            writer.set_field("phi", np.ones(4))


class TestRetrieval:
    def test_missing_raises_key_error(self, state):
        species = state.writer().species("d+")
        with pytest.raises(MissingStateFieldError) as excinfo:
            species.get("temperature")
        assert isinstance(excinfo.value, KeyError)
        assert isinstance(excinfo.value, ContractViolation)
        assert "temperature" in str(excinfo.value)
        assert "species/d+" in str(excinfo.value)

    def test_get_optional_missing(self, state):
        species = state.writer().species("d+")
        assert species.get_optional("pressure") is None

    def test_float_kind(self, state):
        species = state.writer().species("d+")
        species.set("AA", np.float64(2.0))
        species.set("charge", 1)
        assert isinstance(species.get("AA", float), float)
        assert species.get("charge", float) == 1.0

    def test_kind_mismatch(self, state):
        species = state.writer().species("d+")
        species.set("density", np.ones(3))
        species.set("AA", 2.0)
        with pytest.raises(StateTypeError):
            species.get("density", float)
        with pytest.raises(StateTypeError):
            species.get("AA")

    def test_any_kind(self, state):
        species = state.writer().species("d+")
        species.set("label", "ions")
        assert species.get("label", None) == "ions"


class TestPhases:
    def test_reader_seals_state(self, state):
        assert state.phase == TRANSFORM
        state.reader()
        assert state.phase == FINALIZE
        with pytest.raises(StatePhaseError):
            state.writer()

    def test_stale_writer_cannot_write(self, state):
        writer = state.writer()
        species = writer.species("d+")
        state.reader()
        with pytest.raises(StatePhaseError):
            species.set("density", np.ones(3))
        with pytest.raises(StatePhaseError):
            writer.set_field("phi", np.ones(3))
        with pytest.raises(StatePhaseError):
            writer.species("e")

    def test_reader_reads(self, state):
        writer = state.writer()
        writer.species("d+").set("density", np.ones(3))
        writer.set_field("phi", np.zeros(3))
        reader = state.reader()

        species = reader.species("d+")
        assert reader.has_species("d+")
        assert species.keys() == ["density"]
        assert reader.is_field_set("phi")
        assert reader.get_field_optional("psi") is None
        assert reader.get_optional("sound_speed") is None
        assert reader.time == 1.5

    def test_reader_has_no_setters(self, state):
        reader = state.reader()
        assert not hasattr(reader, "set")
        assert not hasattr(reader, "set_field")

    def test_reader_missing_species(self, state):
        reader = state.reader()
        with pytest.raises(MissingStateFieldError):
            reader.species("he+")
