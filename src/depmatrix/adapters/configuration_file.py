"""Dependency extraction from application configuration files.

Properties-style and YAML-like ``key = value`` / ``key: value`` lines are
scanned for database URLs, service URLs, broker lists and host keys::

    db.primary.url=jdbc:mysql://mysql-primary:3306/main
    service.user.url=http://user-service:8080/api
    messaging.kafka.brokers=kafka-broker:9092
    cache.redis.host=redis-cache

Each line yields at most one claim; the first matching rule wins. Comment
lines (``#``, ``//``, ``/*``, ``*``) are skipped.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Final

from depmatrix.domain.model import Claim, ConfidenceLevel, DependencyType, Source
from depmatrix.domain.ports.sources import ClaimSourceError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

log = logging.getLogger(__name__)

TARGET_HOST_KEY: Final[str] = "target_host"
TARGET_PORT_KEY: Final[str] = "target_port"
CONFIG_LINE_KEY: Final[str] = "config_line"
DEPENDENCY_EVIDENCE_KEY: Final[str] = "dependency_evidence"
UNKNOWN_VALUE: Final[str] = "unknown"

_DATABASE_URL = re.compile(
    r"(?:^|\W)(?:url|connection|jdbc)\s*[=:]\s*(?:jdbc:)?(?P<scheme>(?!https?://)[^:\s]+)://"
    r"(?P<host>[^:/\s]+)(?::(?P<port>\d+))?(?:/(?P<database>\w+))?",
    re.IGNORECASE,
)
_SERVICE_URL = re.compile(
    r"(?:^|\W)(?:url|endpoint)\s*[=:]\s*(?P<scheme>https?)://(?P<host>[^:/\s]+)(?::(?P<port>\d+))?",
    re.IGNORECASE,
)
_BROKERS = re.compile(
    r"(?:^|\W)(?:brokers?|bootstrap[._-]servers?)\s*[=:]\s*(?P<host>[^:\s,]+)(?::(?P<port>\d+))?",
    re.IGNORECASE,
)
_HOST = re.compile(r"(?:^|\W)(?:host|server)\s*[=:]\s*(?P<host>[^:\s]+)", re.IGNORECASE)
_IPV4 = re.compile(r"\d{1,3}(?:\.\d{1,3}){3}")
_COMMENT_PREFIXES: Final[tuple[str, ...]] = ("#", "//", "/*", "*")

_DEFAULT_DATABASE_PORTS: Final[dict[str, str]] = {
    "mysql": "3306",
    "postgresql": "5432",
    "postgres": "5432",
    "oracle": "1521",
    "mongodb": "27017",
    "redis": "6379",
}


@dataclass(frozen=True, slots=True)
class _Extraction:
    host: str
    confidence: ConfidenceLevel
    metadata: dict[str, object | None]


def _database(line: str) -> _Extraction | None:
    match = _DATABASE_URL.search(line)
    if match is None:
        return None
    scheme = match["scheme"].lower()
    return _Extraction(
        host=match["host"],
        confidence=ConfidenceLevel.VERY_HIGH,
        metadata={
            TARGET_PORT_KEY: match["port"] or _DEFAULT_DATABASE_PORTS.get(scheme, UNKNOWN_VALUE),
            "database_type": scheme,
            "database_name": match["database"] or UNKNOWN_VALUE,
            DEPENDENCY_EVIDENCE_KEY: "explicit_database_url",
        },
    )


def _service(line: str) -> _Extraction | None:
    match = _SERVICE_URL.search(line)
    if match is None:
        return None
    scheme = match["scheme"].lower()
    return _Extraction(
        host=match["host"],
        confidence=ConfidenceLevel.VERY_HIGH,
        metadata={
            TARGET_PORT_KEY: match["port"] or ("443" if scheme == "https" else "80"),
            "protocol": scheme,
            DEPENDENCY_EVIDENCE_KEY: "explicit_service_url",
        },
    )


def _brokers(line: str) -> _Extraction | None:
    match = _BROKERS.search(line)
    if match is None:
        return None
    return _Extraction(
        host=match["host"],
        confidence=ConfidenceLevel.VERY_HIGH,
        metadata={
            TARGET_PORT_KEY: match["port"] or "9092",
            "service_type": "kafka",
            DEPENDENCY_EVIDENCE_KEY: "kafka_brokers_config",
        },
    )


def _host(line: str) -> _Extraction | None:
    match = _HOST.search(line)
    if match is None:
        return None
    host = match["host"]
    if host == "localhost" or _IPV4.fullmatch(host):
        return None
    return _Extraction(
        host=host,
        confidence=ConfidenceLevel.HIGH,
        metadata={
            TARGET_PORT_KEY: UNKNOWN_VALUE,
            DEPENDENCY_EVIDENCE_KEY: "host_port_reference",
        },
    )


_RULES: Final[tuple[Callable[[str], _Extraction | None], ...]] = (
    _database,
    _service,
    _brokers,
    _host,
)


def _is_comment(line: str) -> bool:
    return not line or line.startswith(_COMMENT_PREFIXES)


def extract_dependency(line: str) -> _Extraction | None:
    stripped = line.strip()
    if _is_comment(stripped):
        return None
    for rule in _RULES:
        extraction = rule(stripped)
        if extraction is not None:
            return extraction
    return None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class ConfigurationFileClaimSource:
    """Claim source reading one application's configuration file."""

    path: Path
    application: str
    clock: Callable[[], datetime] = _utcnow
    name: str = Source.CONFIGURATION_FILE.value
    skipped: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if not self.application.strip():
            raise ValueError("Application name must not be blank")

    def claims(self) -> list[Claim]:
        self.skipped = 0
        start = time.perf_counter()
        timestamp = self.clock()
        lines = self._read_lines()
        claims: list[Claim] = []
        for number, raw in enumerate(lines, start=1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                self.skipped += 1
                log.warning("Skipping %s line %d: %s", self.path.name, number, exc)
                continue
            claim = self._claim_for(line, number, timestamp)
            if claim is not None:
                claims.append(claim)
        log.info(
            "Parsed configuration for %s from %s in %d ms: %d lines, %d dependencies, %d skipped",
            self.application,
            self.path,
            int((time.perf_counter() - start) * 1000),
            len(lines),
            len(claims),
            self.skipped,
        )
        return claims

    def _claim_for(self, line: str, number: int, timestamp: datetime) -> Claim | None:
        extraction = extract_dependency(line)
        if extraction is None:
            return None
        return Claim(
            from_application=self.application,
            to_application=extraction.host,
            source=self.name,
            dependency_type=DependencyType.RUNTIME,
            confidence=extraction.confidence,
            timestamp=timestamp,
            raw_data=line.strip(),
            metadata={
                TARGET_HOST_KEY: extraction.host,
                **extraction.metadata,
                CONFIG_LINE_KEY: str(number),
            },
        )

    def _read_lines(self) -> list[bytes]:
        try:
            return self.path.read_bytes().splitlines()
        except OSError as exc:
            raise ClaimSourceError(
                f"Cannot read configuration file {self.path}: {exc}", source=self.name
            ) from exc


def configuration_sources(
    assignments: Iterable[tuple[str, Path]],
) -> list[ConfigurationFileClaimSource]:
    """Build one source per ``(application, path)`` pair."""

    return [ConfigurationFileClaimSource(path, application) for application, path in assignments]


if TYPE_CHECKING:
    from depmatrix.domain.ports.sources import ClaimSource

    _source_check: ClaimSource = ConfigurationFileClaimSource(Path(), "app")
