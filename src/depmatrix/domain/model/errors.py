"""Errors raised by the reconciliation domain."""

from __future__ import annotations


class ReconciliationError(ValueError):
    """Base class for local, synchronous reconciliation failures."""


class InvalidClaimError(ReconciliationError):
    """Raised when a claim is missing one of its required fields."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidIdentifierError(ReconciliationError):
    """Raised when an empty or blank service identifier is canonicalized."""

    def __init__(self, value: str | None) -> None:
        super().__init__(f"Service identifier must not be blank: {value!r}")
        self.value = value
