"""Service name canonicalization.

Responsibilities of this stage:
- map raw hostnames, labels and config values to one canonical service name
- stay a pure string transform (no persistence lookups)

Resolution order:
1) exact, case-sensitive alias lookup on the stripped input
2) suffix inference on the lower-cased name: keep names that already end with
   a recognized suffix, otherwise append ``-database`` when a database cue is
   present and ``-service`` for everything else
3) an inferred name that is itself an alias resolves through the alias table

Alias targets are validated to be canonical, so ``canonicalize`` is idempotent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from depmatrix.domain.model import InvalidIdentifierError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

DEFAULT_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        # databases
        "mysql-primary": "mysql-database",
        "mysql-service": "mysql-database",
        "db-mysql": "mysql-database",
        "postgresql-primary": "postgresql-database",
        "postgres-service": "postgresql-database",
        "db-postgres": "postgresql-database",
        # caches
        "redis-cache": "redis-service",
        "cache-redis": "redis-service",
        # brokers
        "kafka-cluster": "kafka-service",
        "kafka-broker": "kafka-service",
        "message-broker": "kafka-service",
        # common services
        "auth-service": "authentication-service",
        "user-service": "user-management-service",
        "payment-service": "payment-gateway",
    }
)
DEFAULT_RECOGNIZED_SUFFIXES: Final[tuple[str, ...]] = ("-service", "-database", "-gateway", "-api")
DEFAULT_DATABASE_CUES: Final[tuple[str, ...]] = ("database", "mysql", "postgres", "mongodb", "oracle")
DATABASE_SUFFIX: Final[str] = "-database"
SERVICE_SUFFIX: Final[str] = "-service"

_TOKEN_SPLIT = re.compile(r"[-_.]")


def _has_suffix(name: str, suffixes: tuple[str, ...]) -> bool:
    return any(name.endswith(suffix) for suffix in suffixes)


@dataclass(frozen=True, slots=True)
class AliasTable:
    """Immutable ``raw name -> canonical name`` table.

    Every target must already be canonical: trimmed, lower case, carrying a
    recognized suffix and not itself an alias for a different name.
    """

    entries: Mapping[str, str] = field(default_factory=lambda: DEFAULT_ALIASES)
    recognized_suffixes: tuple[str, ...] = DEFAULT_RECOGNIZED_SUFFIXES

    def __post_init__(self) -> None:
        missing = [
            suffix
            for suffix in (SERVICE_SUFFIX, DATABASE_SUFFIX)
            if suffix not in self.recognized_suffixes
        ]
        if missing:
            raise ValueError(
                f"Recognized suffixes must include the inferred suffixes: {', '.join(missing)}"
            )
        entries = dict(self.entries)
        for alias, target in entries.items():
            if not alias.strip() or not target.strip():
                raise ValueError(f"Alias entries must not be blank: {alias!r} -> {target!r}")
            if target != target.strip().lower():
                raise ValueError(
                    f"Alias target {target!r} for {alias!r} must be trimmed and lower case"
                )
            if not _has_suffix(target, self.recognized_suffixes):
                raise ValueError(
                    f"Alias target {target!r} for {alias!r} lacks a recognized suffix "
                    f"({', '.join(self.recognized_suffixes)})"
                )
            chained = entries.get(target)
            if chained is not None and chained != target:
                raise ValueError(
                    f"Alias target {target!r} for {alias!r} is itself an alias of {chained!r}"
                )
        object.__setattr__(self, "entries", MappingProxyType(entries))

    def get(self, name: str) -> str | None:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def with_overrides(self, overrides: Mapping[str, str]) -> AliasTable:
        return AliasTable({**self.entries, **overrides}, self.recognized_suffixes)


@dataclass(frozen=True, slots=True)
class ServiceNameCanonicalizer:
    """Deterministic raw identifier -> canonical service name transform."""

    aliases: AliasTable = field(default_factory=AliasTable)
    database_cues: tuple[str, ...] = DEFAULT_DATABASE_CUES

    @property
    def recognized_suffixes(self) -> tuple[str, ...]:
        return self.aliases.recognized_suffixes

    def canonicalize(self, raw: str | None) -> str:
        if raw is None or not raw.strip():
            raise InvalidIdentifierError(raw)
        name = raw.strip()

        aliased = self.aliases.get(name)
        if aliased is not None:
            return aliased

        inferred = self._apply_suffix_rule(name.lower())
        return self.aliases.get(inferred) or inferred

    def __call__(self, raw: str | None) -> str:
        return self.canonicalize(raw)

    def _apply_suffix_rule(self, name: str) -> str:
        if _has_suffix(name, self.recognized_suffixes):
            return name
        if self._looks_like_database(name):
            return name + DATABASE_SUFFIX
        return name + SERVICE_SUFFIX

    def _looks_like_database(self, name: str) -> bool:
        if any(cue in name for cue in self.database_cues):
            return True
        # "db" only counts as a whole token ("orders-db", "db_main"), not inside words
        return "db" in _TOKEN_SPLIT.split(name)


def canonicalize(raw: str | None, *, canonicalizer: ServiceNameCanonicalizer | None = None) -> str:
    """Canonicalize ``raw`` with the default alias table unless one is given."""

    return (canonicalizer or _DEFAULT_CANONICALIZER).canonicalize(raw)


_DEFAULT_CANONICALIZER = ServiceNameCanonicalizer()
