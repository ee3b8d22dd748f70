"""Ports for producing raw claims."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from depmatrix.domain.model import Claim


class ClaimSourceError(RuntimeError):
    """Raised when a claim source cannot produce its batch at all."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


@runtime_checkable
class ClaimSource(Protocol):
    """Anything that yields a finite batch of validated claims."""

    @property
    def name(self) -> str: ...

    def claims(self) -> Iterable[Claim]: ...


__all__ = ["ClaimSource", "ClaimSourceError"]
