"""In-memory claim source for tests and embedding applications."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from depmatrix.domain.model import Claim


@dataclass(slots=True)
class InMemoryClaimSource:
    """Hands out a fixed batch of claims in insertion order."""

    items: list[Claim] = field(default_factory=list["Claim"])
    name: str = "memory"

    @classmethod
    def of(cls, claims: Iterable[Claim], *, name: str = "memory") -> InMemoryClaimSource:
        return cls(list(claims), name)

    def add(self, claim: Claim) -> None:
        self.items.append(claim)

    def claims(self) -> list[Claim]:
        return list(self.items)


if TYPE_CHECKING:
    from depmatrix.domain.ports.sources import ClaimSource

    _source_check: ClaimSource = InMemoryClaimSource()
