"""Ports for persisting applications and claim history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from depmatrix.domain.model import Application, ClaimRecord

if TYPE_CHECKING:
    from collections.abc import Iterable


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ApplicationRepository(Repository[Application], Protocol):
    """Canonical application nodes, unique by name."""

    def get_by_name(self, name: str) -> Application | None: ...

    def find_or_create(self, name: str) -> Application:
        """Return the application called ``name``, creating it atomically if absent."""
        ...

    def list_applications(self) -> list[Application]: ...


@runtime_checkable
class ClaimRepository(Repository[ClaimRecord], Protocol):
    """Append-only store of raw claims."""

    def list_claims(self) -> Iterable[ClaimRecord]: ...

    def count(self) -> int: ...
