"""Exception types for contract violations.

Every error raised by the operators, the state exchange and the component
pipeline derives from ``ContractViolation``.  These indicate programmer or
configuration mistakes and abort the current right-hand-side evaluation;
numerical degeneracies (low density, supersonic flow) are handled by the
operators themselves and never raised.
"""

from __future__ import annotations


class ContractViolation(Exception):
    """Base class for fatal contract violations."""


class IncompatibleFieldsError(ContractViolation, ValueError):
    """Operator inputs are not defined on the same mesh."""


class MissingStateFieldError(ContractViolation, KeyError):
    """A required value was not published into the state.

    Args:
        section: State section that was searched (e.g. ``"species/d+"``).
        key: Name of the missing value.
    """

    def __init__(self, section: str, key: str) -> None:
        self.section = section
        self.key = key
        super().__init__(f"'{key}' not set in state section '{section}'")

    def __str__(self) -> str:
        return str(self.args[0])


class StateWriteConflictError(ContractViolation):
    """A value was written twice during one transform phase."""


class StatePhaseError(ContractViolation):
    """State was written outside the transform phase."""


class StateTypeError(ContractViolation, TypeError):
    """A state value does not have the requested kind."""


class ComponentOrderError(ContractViolation):
    """Component dependencies cannot be satisfied."""


class UnknownComponentError(ContractViolation, KeyError):
    """No component is registered under a type tag."""

    def __str__(self) -> str:
        return str(self.args[0])


class NonFiniteError(ContractViolation, ArithmeticError):
    """A computed field contains NaN or infinite values."""
