"""Reconciliation tables loaded from an optional TOML file.

Every table has a built-in default. A file only overrides what it names::

    [aliases]
    replace_defaults = false
    entries = { "orders-db" = "orders-database" }

    [weights]
    default = 1.0
    sources = { "network-discovery" = 0.6 }

    [canonicalizer]
    database_cues = ["database", "mysql", "postgres", "mongodb", "oracle"]

    [metadata]
    reserved_keys = ["ingest_batch"]

    [conflicts]
    trusted_source_weight = 0.85
    value_min_confidence = "MEDIUM"
    temporal_gap_days = 7
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from depmatrix.domain.model import ConfidenceLevel
from depmatrix.domain.reconciliation import (
    DEFAULT_ALIASES,
    RESERVED_METADATA_KEYS,
    AliasTable,
    ClaimNormalizer,
    ConflictDetector,
    ConflictSettings,
    MetadataNormalizer,
    ServiceNameCanonicalizer,
    SourceWeights,
)
from depmatrix.domain.reconciliation.canonicalize import (
    DEFAULT_DATABASE_CUES,
    DEFAULT_RECOGNIZED_SUFFIXES,
)

from .errors import ConfigurationError

CONFIG_PATH_ENV: Final[str] = "DEPMATRIX_CONFIG"

log = logging.getLogger(__name__)

ConfidenceName = Literal["LOW", "MEDIUM", "HIGH", "VERY_HIGH"]


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AliasSection(_Section):
    replace_defaults: bool = False
    entries: dict[str, str] = Field(default_factory=dict)


class WeightSection(_Section):
    default: float | None = None
    sources: dict[str, float] = Field(default_factory=dict)


class CanonicalizerSection(_Section):
    recognized_suffixes: list[str] | None = None
    database_cues: list[str] | None = None


class MetadataSection(_Section):
    reserved_keys: list[str] = Field(default_factory=list)


class ConflictSection(_Section):
    trusted_source_weight: float | None = None
    value_min_confidence: ConfidenceName | None = None
    confidence_spread_threshold: int | None = Field(default=None, ge=1)
    temporal_gap_days: float | None = Field(default=None, gt=0)
    long_temporal_gap_days: float | None = Field(default=None, gt=0)


class ReconciliationFile(_Section):
    aliases: AliasSection = Field(default_factory=AliasSection)
    weights: WeightSection = Field(default_factory=WeightSection)
    canonicalizer: CanonicalizerSection = Field(default_factory=CanonicalizerSection)
    metadata: MetadataSection = Field(default_factory=MetadataSection)
    conflicts: ConflictSection = Field(default_factory=ConflictSection)


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Tables the reconciliation core is built from."""

    aliases: AliasTable = field(default_factory=AliasTable)
    source_weights: SourceWeights = field(default_factory=SourceWeights)
    database_cues: tuple[str, ...] = DEFAULT_DATABASE_CUES
    reserved_keys: frozenset[str] = RESERVED_METADATA_KEYS
    conflict_settings: ConflictSettings = field(default_factory=ConflictSettings)
    origin: Path | None = None

    def canonicalizer(self) -> ServiceNameCanonicalizer:
        return ServiceNameCanonicalizer(self.aliases, self.database_cues)

    def weights(self) -> SourceWeights:
        return self.source_weights

    def metadata_normalizer(self) -> MetadataNormalizer:
        return MetadataNormalizer(self.reserved_keys)

    def normalizer(self) -> ClaimNormalizer:
        return ClaimNormalizer(
            canonicalizer=self.canonicalizer(),
            weights=self.source_weights,
            metadata_normalizer=self.metadata_normalizer(),
        )

    def detector(self) -> ConflictDetector:
        return ConflictDetector(
            canonicalizer=self.canonicalizer(),
            weights=self.source_weights,
            settings=self.conflict_settings,
        )


def get_reconciliation_config(path: str | Path | None = None) -> ReconciliationConfig:
    """Build the reconciliation tables from ``path`` (or ``$DEPMATRIX_CONFIG``) over the defaults."""

    resolved = path if path is not None else os.getenv(CONFIG_PATH_ENV) or None
    if resolved is None:
        return ReconciliationConfig()

    config_path = Path(resolved).expanduser()
    origin = str(config_path)
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError("configuration file not found", origin=origin) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"invalid TOML: {exc}", origin=origin) from exc

    try:
        parsed = ReconciliationFile.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(str(exc), origin=origin) from exc

    try:
        config = _build_config(parsed, origin=config_path)
    except ValueError as exc:
        raise ConfigurationError(str(exc), origin=origin) from exc
    log.info(
        "Loaded reconciliation config from %s (%d aliases, %d source weights)",
        config_path,
        len(config.aliases),
        len(config.source_weights.weights),
    )
    return config


def _build_config(parsed: ReconciliationFile, *, origin: Path) -> ReconciliationConfig:
    base_aliases = {} if parsed.aliases.replace_defaults else dict(DEFAULT_ALIASES)
    suffixes = (
        tuple(parsed.canonicalizer.recognized_suffixes)
        if parsed.canonicalizer.recognized_suffixes is not None
        else DEFAULT_RECOGNIZED_SUFFIXES
    )
    aliases = AliasTable({**base_aliases, **parsed.aliases.entries}, suffixes)

    weights = SourceWeights().with_overrides(
        parsed.weights.sources,
        default_weight=parsed.weights.default,
    )

    database_cues = (
        tuple(parsed.canonicalizer.database_cues)
        if parsed.canonicalizer.database_cues is not None
        else DEFAULT_DATABASE_CUES
    )

    reserved = RESERVED_METADATA_KEYS | frozenset(parsed.metadata.reserved_keys)

    defaults = ConflictSettings()
    section = parsed.conflicts
    settings = ConflictSettings(
        trusted_source_weight=(
            section.trusted_source_weight
            if section.trusted_source_weight is not None
            else defaults.trusted_source_weight
        ),
        value_min_confidence=(
            ConfidenceLevel[section.value_min_confidence]
            if section.value_min_confidence is not None
            else defaults.value_min_confidence
        ),
        confidence_spread_threshold=(
            section.confidence_spread_threshold
            if section.confidence_spread_threshold is not None
            else defaults.confidence_spread_threshold
        ),
        temporal_gap=(
            timedelta(days=section.temporal_gap_days)
            if section.temporal_gap_days is not None
            else defaults.temporal_gap
        ),
        long_temporal_gap=(
            timedelta(days=section.long_temporal_gap_days)
            if section.long_temporal_gap_days is not None
            else defaults.long_temporal_gap
        ),
    )

    return ReconciliationConfig(
        aliases=aliases,
        source_weights=weights,
        database_cues=database_cues,
        reserved_keys=reserved,
        conflict_settings=settings,
        origin=origin,
    )
