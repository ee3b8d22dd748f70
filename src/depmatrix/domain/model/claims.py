"""Claim primitives used by reconciliation.

A ``Claim`` is one source's raw assertion that an application depends on
another. Claims are built by adapters (or the processing engine), validated on
construction, and never mutated once handed to the normalizer: metadata
accumulation goes through :meth:`Claim.with_metadata`, which returns a copy.

``NormalizedClaim`` is the reconciled view of one canonical edge, carrying the
ordered provenance of every raw claim that collapsed into it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, NamedTuple

from .enums import ConfidenceLevel, DependencyType
from .errors import InvalidClaimError

if TYPE_CHECKING:
    from collections.abc import Mapping


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DependencyEdge(NamedTuple):
    """Identity key of a dependency: ``(from_application, to_application)``."""

    from_application: str
    to_application: str

    def __str__(self) -> str:
        return f"{self.from_application} -> {self.to_application}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Claim:
    """Raw dependency claim as produced by one source."""

    from_application: str
    to_application: str
    source: str
    dependency_type: DependencyType = DependencyType.RUNTIME
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    timestamp: datetime = field(default_factory=_utcnow)
    raw_data: str = ""
    metadata: Mapping[str, object | None] = field(default_factory=dict["str", "object | None"])

    def __post_init__(self) -> None:
        for name in ("from_application", "to_application", "source"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidClaimError(f"Claim is missing required field '{name}'", field=name)
        object.__setattr__(self, "timestamp", _as_utc(self.timestamp))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def with_metadata(self, key: str, value: object | None) -> Claim:
        """Return a copy with ``key`` set to ``value`` in the metadata."""

        return replace(self, metadata={**self.metadata, key: value})

    @property
    def raw_edge(self) -> DependencyEdge:
        return DependencyEdge(self.from_application, self.to_application)

    def __str__(self) -> str:
        return (
            f"Claim({self.from_application} -> {self.to_application}, "
            f"source={self.source}, confidence={self.confidence.name})"
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class ProvenanceEntry:
    """One contributing observation of a normalized claim.

    Equality (and therefore distinctness) is decided by ``source``,
    ``timestamp`` and ``raw_data``; ``claim`` points back at the raw claim for
    audit and conflict analysis.
    """

    source: str
    timestamp: datetime
    raw_data: str
    claim: Claim = field(compare=False, repr=False)

    @classmethod
    def for_claim(cls, claim: Claim) -> ProvenanceEntry:
        return cls(
            source=claim.source,
            timestamp=claim.timestamp,
            raw_data=claim.raw_data,
            claim=claim,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedClaim:
    """Canonical, provenance-tracked dependency between two applications."""

    from_application: str
    to_application: str
    dependency_type: DependencyType
    confidence: ConfidenceLevel
    source: str
    timestamp: datetime
    raw_data: str
    provenance: tuple[ProvenanceEntry, ...]
    metadata: Mapping[str, str] = field(default_factory=dict["str", "str"])

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def edge(self) -> DependencyEdge:
        return DependencyEdge(self.from_application, self.to_application)

    @property
    def sources(self) -> tuple[str, ...]:
        """Distinct contributing sources in first-seen order."""

        return tuple(dict.fromkeys(entry.source for entry in self.provenance))

    @property
    def claims(self) -> tuple[Claim, ...]:
        return tuple(entry.claim for entry in self.provenance)

    def __str__(self) -> str:
        return (
            f"NormalizedClaim({self.edge}, confidence={self.confidence.name}, "
            f"sources={len(self.provenance)})"
        )
