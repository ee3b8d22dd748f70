"""Conflict detection over a snapshot of claims.

Claims are grouped by canonical edge. Each edge is checked for:

- VALUE_MISMATCH: explicit target facts (``target_host``, ``target_port``)
  that disagree between claims of the same canonical edge
- SOURCE_DISAGREEMENT: a trusted source reports other dependencies of the
  same consumer but not this one
- CONFIDENCE_DIVERGENCE: per-source peak confidence differs by several bands
- TEMPORAL_GAP: consecutive observations of the edge are far apart in time

Severity points are ``(distinct sources - 1) + strength``, where strength
depends on the kind of conflict (see :class:`ConflictDetector`).

Detection is read-only. Every piece of mutable state is local to one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import IntEnum, StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, NamedTuple

from depmatrix.domain.model import Claim, ConfidenceLevel, DependencyEdge, NormalizedClaim

from .canonicalize import ServiceNameCanonicalizer
from .confidence import SourceWeights
from .metadata import normalize_metadata_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

type ClaimInput = Claim | NormalizedClaim

TARGET_HOST_KEY: Final[str] = "target_host"
TARGET_PORT_KEY: Final[str] = "target_port"
UNKNOWN_VALUE: Final[str] = "unknown"
_TARGET_FACT_KEYS: Final[tuple[str, ...]] = (TARGET_HOST_KEY, TARGET_PORT_KEY)

log = logging.getLogger(__name__)


class ConflictLabel(NamedTuple):
    display_name: str
    description: str


class ConflictType(StrEnum):
    VALUE_MISMATCH = "value_mismatch"
    SOURCE_DISAGREEMENT = "source_disagreement"
    CONFIDENCE_DIVERGENCE = "confidence_divergence"
    TEMPORAL_GAP = "temporal_gap"

    @property
    def display_name(self) -> str:
        return CONFLICT_TYPE_LABELS[self].display_name

    @property
    def description(self) -> str:
        return CONFLICT_TYPE_LABELS[self].description


class ConflictSeverity(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def display_name(self) -> str:
        return CONFLICT_SEVERITY_LABELS[self].display_name

    @property
    def description(self) -> str:
        return CONFLICT_SEVERITY_LABELS[self].description

    @classmethod
    def from_points(cls, points: int) -> ConflictSeverity:
        if points >= 4:  # noqa: PLR2004
            return cls.HIGH
        if points >= 2:  # noqa: PLR2004
            return cls.MEDIUM
        return cls.LOW


CONFLICT_TYPE_LABELS: Final[Mapping[ConflictType, ConflictLabel]] = {
    ConflictType.VALUE_MISMATCH: ConflictLabel(
        "Value Mismatch",
        "Sources disagree about the concrete target of the same dependency",
    ),
    ConflictType.SOURCE_DISAGREEMENT: ConflictLabel(
        "Source Disagreement",
        "Different sources disagree about this dependency",
    ),
    ConflictType.CONFIDENCE_DIVERGENCE: ConflictLabel(
        "Confidence Divergence",
        "Sources report significantly different confidence levels",
    ),
    ConflictType.TEMPORAL_GAP: ConflictLabel(
        "Temporal Gap",
        "Dependency appears and disappears over time",
    ),
}

CONFLICT_SEVERITY_LABELS: Final[Mapping[ConflictSeverity, ConflictLabel]] = {
    ConflictSeverity.LOW: ConflictLabel(
        "Low", "Minor disagreement, likely due to measurement variance"
    ),
    ConflictSeverity.MEDIUM: ConflictLabel(
        "Medium", "Moderate disagreement, requires investigation"
    ),
    ConflictSeverity.HIGH: ConflictLabel(
        "High", "Significant disagreement, requires immediate attention"
    ),
}


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictReport:
    """Self-describing report of one disagreement on one canonical edge."""

    type: ConflictType
    severity: ConflictSeverity
    description: str
    edge: DependencyEdge
    conflicting_claims: tuple[Claim, ...]
    details: Mapping[str, str] = field(default_factory=dict["str", "str"])

    def __post_init__(self) -> None:
        claims = tuple(self.conflicting_claims)
        if len(claims) < 2:  # noqa: PLR2004
            raise ValueError(
                f"A conflict report needs at least two claims, got {len(claims)} for {self.edge}"
            )
        object.__setattr__(self, "conflicting_claims", claims)
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(claim.source for claim in self.conflicting_claims))

    def __str__(self) -> str:
        return f"[{self.severity.display_name}] {self.type.display_name}: {self.description}"


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictSettings:
    trusted_source_weight: float = 0.85
    value_min_confidence: ConfidenceLevel = ConfidenceLevel.LOW
    confidence_spread_threshold: int = 2
    temporal_gap: timedelta = timedelta(days=7)
    long_temporal_gap: timedelta = timedelta(days=30)

    def __post_init__(self) -> None:
        if self.confidence_spread_threshold < 1:
            raise ValueError("confidence_spread_threshold must be at least 1")
        if self.long_temporal_gap < self.temporal_gap:
            raise ValueError("long_temporal_gap must not be shorter than temporal_gap")


@dataclass(slots=True)
class _Snapshot:
    """Per-call view of the input: claims grouped by edge and by consumer."""

    by_edge: dict[DependencyEdge, list[Claim]] = field(default_factory=dict)
    by_consumer: dict[str, dict[str, list[Claim]]] = field(default_factory=dict)
    calibrated: dict[int, ConfidenceLevel] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictDetector:
    """Scan claims for disagreements between sources.

    Strength per conflict kind:

    - value mismatch and source disagreement: rank (ordinal - 1) of the
      runner-up side's peak calibrated confidence, so two confident sides
      weigh more than one confident side against noise
    - confidence divergence: the band spread
    - temporal gap: 3 beyond ``long_temporal_gap``, otherwise 1
    """

    canonicalizer: ServiceNameCanonicalizer = field(default_factory=ServiceNameCanonicalizer)
    weights: SourceWeights = field(default_factory=SourceWeights)
    settings: ConflictSettings = field(default_factory=ConflictSettings)

    def detect_all_conflicts(self, claims: Iterable[ClaimInput] | None) -> list[ConflictReport]:
        snapshot = self._snapshot(claims)
        reports: list[ConflictReport] = []
        for edge, edge_claims in snapshot.by_edge.items():
            reports.extend(self._detect_edge(edge, edge_claims, snapshot))
        if reports:
            log.info(
                "Detected %d conflicts across %d edges",
                len(reports),
                len(snapshot.by_edge),
            )
        return reports

    def detect_conflicts_for_edge(
        self,
        claims: Iterable[ClaimInput] | None,
        from_application: str,
        to_application: str,
    ) -> list[ConflictReport]:
        edge = DependencyEdge(
            self.canonicalizer.canonicalize(from_application),
            self.canonicalizer.canonicalize(to_application),
        )
        snapshot = self._snapshot(claims)
        edge_claims = snapshot.by_edge.get(edge)
        if not edge_claims:
            return []
        return self._detect_edge(edge, edge_claims, snapshot)

    # ------------------------------------------------------------------ #
    # snapshot
    # ------------------------------------------------------------------ #

    def _snapshot(self, claims: Iterable[ClaimInput] | None) -> _Snapshot:
        snapshot = _Snapshot()
        names: dict[str, str] = {}

        def canonical(name: str) -> str:
            if name not in names:
                names[name] = self.canonicalizer.canonicalize(name)
            return names[name]

        for claim in _expand(claims):
            edge = DependencyEdge(canonical(claim.from_application), canonical(claim.to_application))
            snapshot.by_edge.setdefault(edge, []).append(claim)
            consumer = snapshot.by_consumer.setdefault(edge.from_application, {})
            consumer.setdefault(claim.source, []).append(claim)
            snapshot.calibrated[id(claim)] = self.weights.calibrate(claim.confidence, claim.source)
        return snapshot

    def _detect_edge(
        self,
        edge: DependencyEdge,
        claims: list[Claim],
        snapshot: _Snapshot,
    ) -> list[ConflictReport]:
        reports: list[ConflictReport] = []
        for report in (
            self._value_mismatch(edge, claims, snapshot),
            self._source_disagreement(edge, claims, snapshot),
            self._confidence_divergence(edge, claims, snapshot),
        ):
            if report is not None:
                reports.append(report)
        reports.extend(self._temporal_gaps(edge, claims))
        return reports

    # ------------------------------------------------------------------ #
    # detectors
    # ------------------------------------------------------------------ #

    def _value_mismatch(
        self,
        edge: DependencyEdge,
        claims: list[Claim],
        snapshot: _Snapshot,
    ) -> ConflictReport | None:
        eligible = [
            claim
            for claim in claims
            if snapshot.calibrated[id(claim)] >= self.settings.value_min_confidence
        ]
        involved: dict[int, Claim] = {}
        details: dict[str, str] = {}
        disagreements: list[str] = []
        strength = 0
        for key in _TARGET_FACT_KEYS:
            sides: dict[str, list[Claim]] = {}
            for claim in eligible:
                value = self._target_fact(claim, key)
                if value is not None:
                    sides.setdefault(value, []).append(claim)
            if len(sides) < 2:  # noqa: PLR2004
                continue
            for side in sides.values():
                for claim in side:
                    involved.setdefault(id(claim), claim)
            strength = max(strength, _runner_up_rank(sides.values(), snapshot))
            details[key] = ", ".join(sides)
            disagreements.append(f"{key} ({' vs '.join(sides)})")

        if not disagreements:
            return None
        conflicting = [claim for claim in claims if id(claim) in involved]
        sources = _distinct_sources(conflicting)
        details["sources"] = ",".join(sources)
        details["strength"] = str(strength)
        return self._report(
            ConflictType.VALUE_MISMATCH,
            edge,
            conflicting,
            f"{edge}: sources disagree on {'; '.join(disagreements)}",
            strength,
            details,
        )

    def _source_disagreement(
        self,
        edge: DependencyEdge,
        claims: list[Claim],
        snapshot: _Snapshot,
    ) -> ConflictReport | None:
        asserting = _distinct_sources(claims)
        consumer_claims = snapshot.by_consumer.get(edge.from_application, {})
        absent = [
            source
            for source in consumer_claims
            if source not in asserting
            and self.weights.weight_for(source) >= self.settings.trusted_source_weight
        ]
        if not absent:
            return None

        contradicting = [claim for source in absent for claim in consumer_claims[source]]
        strength = _runner_up_rank((claims, contradicting), snapshot)
        conflicting = [*claims, *contradicting]
        details = {
            "asserted_by": ",".join(asserting),
            "absent_from": ",".join(absent),
            "strength": str(strength),
        }
        return self._report(
            ConflictType.SOURCE_DISAGREEMENT,
            edge,
            conflicting,
            (
                f"{edge}: reported by {', '.join(asserting)} but not by trusted "
                f"source(s) {', '.join(absent)}"
            ),
            strength,
            details,
        )

    def _confidence_divergence(
        self,
        edge: DependencyEdge,
        claims: list[Claim],
        snapshot: _Snapshot,
    ) -> ConflictReport | None:
        peaks: dict[str, ConfidenceLevel] = {}
        for claim in claims:
            level = snapshot.calibrated[id(claim)]
            if claim.source not in peaks or level > peaks[claim.source]:
                peaks[claim.source] = level
        if len(peaks) < 2:  # noqa: PLR2004
            return None
        spread = max(peaks.values()) - min(peaks.values())
        if spread < self.settings.confidence_spread_threshold:
            return None

        details = {source: level.name for source, level in peaks.items()}
        details["spread"] = str(spread)
        return self._report(
            ConflictType.CONFIDENCE_DIVERGENCE,
            edge,
            claims,
            f"{edge}: source confidence spreads over {spread} bands",
            spread,
            details,
        )

    def _temporal_gaps(self, edge: DependencyEdge, claims: list[Claim]) -> list[ConflictReport]:
        ordered = sorted(claims, key=lambda claim: claim.timestamp)
        reports: list[ConflictReport] = []
        for current, following in zip(ordered, ordered[1:], strict=False):
            gap = following.timestamp - current.timestamp
            if gap <= self.settings.temporal_gap:
                continue
            strength = 3 if gap > self.settings.long_temporal_gap else 1
            hours = int(gap.total_seconds() // 3600)
            reports.append(
                self._report(
                    ConflictType.TEMPORAL_GAP,
                    edge,
                    [current, following],
                    f"{edge}: no observation for {hours} hours",
                    strength,
                    {"gap_hours": str(hours), "strength": str(strength)},
                )
            )
        return reports

    def _report(
        self,
        conflict_type: ConflictType,
        edge: DependencyEdge,
        claims: Sequence[Claim],
        description: str,
        strength: int,
        details: dict[str, str],
    ) -> ConflictReport:
        points = (len(_distinct_sources(claims)) - 1) + strength
        severity = ConflictSeverity.from_points(points)
        log.debug("%s on %s: points=%d severity=%s", conflict_type, edge, points, severity.name)
        return ConflictReport(
            type=conflict_type,
            severity=severity,
            description=description,
            edge=edge,
            conflicting_claims=tuple(claims),
            details=details,
        )

    def _target_fact(self, claim: Claim, key: str) -> str | None:
        for raw_key, raw_value in claim.metadata.items():
            if raw_value is None or normalize_metadata_key(raw_key) != key:
                continue
            value = str(raw_value).strip()
            if not value or value.lower() == UNKNOWN_VALUE:
                return None
            if key == TARGET_HOST_KEY:
                return self.canonicalizer.canonicalize(value)
            return value
        return None


def _expand(claims: Iterable[ClaimInput] | None) -> list[Claim]:
    if claims is None:
        return []
    seen: set[int] = set()
    expanded: list[Claim] = []
    for item in claims:
        members = item.claims if isinstance(item, NormalizedClaim) else (item,)
        for claim in members:
            if id(claim) in seen:
                continue
            seen.add(id(claim))
            expanded.append(claim)
    return expanded


def _distinct_sources(claims: Iterable[Claim]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(claim.source for claim in claims))


def _runner_up_rank(sides: Iterable[Sequence[Claim]], snapshot: _Snapshot) -> int:
    peaks = sorted(
        (max(snapshot.calibrated[id(claim)] for claim in side) for side in sides if side),
        reverse=True,
    )
    if len(peaks) < 2:  # noqa: PLR2004
        return 0
    return int(peaks[1]) - 1


_DEFAULT_DETECTOR = ConflictDetector()


def detect_all_conflicts(
    claims: Iterable[ClaimInput] | None,
    *,
    detector: ConflictDetector | None = None,
) -> list[ConflictReport]:
    """Detect conflicts with the default tables unless a detector is given."""

    return (detector or _DEFAULT_DETECTOR).detect_all_conflicts(claims)
