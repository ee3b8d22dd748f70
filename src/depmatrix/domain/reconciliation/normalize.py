"""Claim normalization and merge stage.

Responsibilities of this stage:
- canonicalize both endpoints of every claim
- calibrate confidence by source weight
- normalize metadata and record provenance
- merge claims that share a canonical edge

Merge rules for one canonical edge:
- output order follows the first appearance of each edge in the input
- provenance is concatenated in arrival order
- confidence is the highest calibrated confidence of any member
- metadata keys from earlier members win; ``merged_from_sources`` and
  ``all_sources`` are recomputed for groups with more than one member

All mutable state is local to one call, so a single normalizer can be shared
between concurrent callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from depmatrix.domain.model import DependencyEdge, NormalizedClaim, ProvenanceEntry

from .canonicalize import ServiceNameCanonicalizer
from .confidence import SourceWeights
from .metadata import ALL_SOURCES_KEY, MERGED_FROM_SOURCES_KEY, MetadataNormalizer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from depmatrix.domain.model import Claim

type Clock = Callable[[], datetime]

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class ClaimNormalizer:
    """Turn a batch of raw claims into one normalized claim per canonical edge."""

    canonicalizer: ServiceNameCanonicalizer = field(default_factory=ServiceNameCanonicalizer)
    weights: SourceWeights = field(default_factory=SourceWeights)
    metadata_normalizer: MetadataNormalizer = field(default_factory=MetadataNormalizer)
    clock: Clock = _utcnow

    def normalize_claim(self, claim: Claim, *, normalized_at: datetime | None = None) -> NormalizedClaim:
        """Normalize a single claim without merging."""

        stamp = normalized_at if normalized_at is not None else self.clock()
        return NormalizedClaim(
            from_application=self.canonicalizer.canonicalize(claim.from_application),
            to_application=self.canonicalizer.canonicalize(claim.to_application),
            dependency_type=claim.dependency_type,
            confidence=self.weights.calibrate(claim.confidence, claim.source),
            source=claim.source,
            timestamp=claim.timestamp,
            raw_data=claim.raw_data,
            provenance=(ProvenanceEntry.for_claim(claim),),
            metadata=self.metadata_normalizer.normalize(
                claim.metadata, source=claim.source, normalized_at=stamp
            ),
        )

    def normalize_claims(self, claims: Iterable[Claim] | None) -> list[NormalizedClaim]:
        if claims is None:
            return []

        normalized_at = self.clock()
        groups: dict[DependencyEdge, list[NormalizedClaim]] = {}
        count = 0
        for claim in claims:
            normalized = self.normalize_claim(claim, normalized_at=normalized_at)
            groups.setdefault(normalized.edge, []).append(normalized)
            count += 1

        results: list[NormalizedClaim] = []
        merges = 0
        for edge, members in groups.items():
            if len(members) == 1:
                results.append(members[0])
                continue
            merged = _merge(members)
            merges += 1
            log.debug(
                "Merged %d claims into %s (sources=%s)",
                len(members),
                edge,
                merged.metadata[ALL_SOURCES_KEY],
            )
            results.append(merged)

        if count:
            log.info(
                "Normalized %d claims into %d edges (%d merged)",
                count,
                len(results),
                merges,
            )
        return results


def _merge(members: list[NormalizedClaim]) -> NormalizedClaim:
    first = members[0]
    provenance = tuple(entry for member in members for entry in member.provenance)

    metadata: dict[str, str] = {}
    for member in members:
        for key, value in member.metadata.items():
            metadata.setdefault(key, value)
    metadata[MERGED_FROM_SOURCES_KEY] = str(len(set(provenance)))
    metadata[ALL_SOURCES_KEY] = ",".join(dict.fromkeys(entry.source for entry in provenance))

    return NormalizedClaim(
        from_application=first.from_application,
        to_application=first.to_application,
        dependency_type=first.dependency_type,
        confidence=max(member.confidence for member in members),
        source=first.source,
        timestamp=first.timestamp,
        raw_data=first.raw_data,
        provenance=provenance,
        metadata=metadata,
    )


_DEFAULT_NORMALIZER = ClaimNormalizer()


def normalize_claims(
    claims: Iterable[Claim] | None,
    *,
    normalizer: ClaimNormalizer | None = None,
) -> list[NormalizedClaim]:
    """Normalize ``claims`` with the default tables unless a normalizer is given."""

    return (normalizer or _DEFAULT_NORMALIZER).normalize_claims(claims)
