"""Reconciliation core: turn raw dependency claims into a trustworthy matrix.

Layered flow:
1) calibrate confidence by per-source trust weight
2) canonicalize both endpoints of each claim
3) normalize metadata and record provenance
4) merge claims sharing a canonical edge
5) scan the batch for conflicts between sources

Every stage is a pure, synchronous transform over an in-memory batch. Alias,
weight and reserved-key tables are passed in at construction.
"""

from __future__ import annotations

from depmatrix.domain.model import InvalidClaimError, InvalidIdentifierError, ReconciliationError

from .canonicalize import (
    DEFAULT_ALIASES,
    AliasTable,
    ServiceNameCanonicalizer,
    canonicalize,
)
from .confidence import (
    DEFAULT_SOURCE_WEIGHTS,
    DEFAULT_UNKNOWN_SOURCE_WEIGHT,
    SourceWeights,
    calibrate,
    compare_levels,
)
from .conflicts import (
    CONFLICT_SEVERITY_LABELS,
    CONFLICT_TYPE_LABELS,
    ConflictDetector,
    ConflictReport,
    ConflictSettings,
    ConflictSeverity,
    ConflictType,
    detect_all_conflicts,
)
from .metadata import RESERVED_METADATA_KEYS, MetadataNormalizer, normalize_metadata_key
from .normalize import ClaimNormalizer, normalize_claims

__all__ = [
    "CONFLICT_SEVERITY_LABELS",
    "CONFLICT_TYPE_LABELS",
    "DEFAULT_ALIASES",
    "DEFAULT_SOURCE_WEIGHTS",
    "DEFAULT_UNKNOWN_SOURCE_WEIGHT",
    "RESERVED_METADATA_KEYS",
    "AliasTable",
    "ClaimNormalizer",
    "ConflictDetector",
    "ConflictReport",
    "ConflictSettings",
    "ConflictSeverity",
    "ConflictType",
    "InvalidClaimError",
    "InvalidIdentifierError",
    "MetadataNormalizer",
    "ReconciliationError",
    "ServiceNameCanonicalizer",
    "SourceWeights",
    "calibrate",
    "canonicalize",
    "compare_levels",
    "detect_all_conflicts",
    "normalize_claims",
    "normalize_metadata_key",
]
