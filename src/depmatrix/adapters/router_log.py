"""Router access log parsing.

Two line formats are understood:

- structured: ``2024-01-15 10:30:45 [INFO] 192.168.1.100 -> 192.168.1.200:8080
  GET /api/users 200 45ms``
- simple: ``web-portal -> user-service``

Addresses listed in the host table are replaced by service names. Unknown
addresses become ``service-<a>-<b>-<c>-<d>`` so they still canonicalize to a
stable name.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from depmatrix.domain.model import (
    Claim,
    ConfidenceLevel,
    DependencyType,
    RouterLogEntry,
    Source,
)
from depmatrix.domain.ports.sources import ClaimSourceError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

log = logging.getLogger(__name__)

_IPV4 = r"\d{1,3}(?:\.\d{1,3}){3}"
_STRUCTURED_LINE = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2})"
    rf".*?(?P<source>{_IPV4})\s*->\s*(?P<target>{_IPV4}):(?P<port>\d+)"
    r"(?:\s+(?P<method>[A-Z]+)\s+(?P<path>\S+))?"
    r".*?\b(?P<status>\d{3})\s+(?P<elapsed>\d+)ms\s*$"
)
_TIMESTAMP_FORMATS: Final[tuple[str, ...]] = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")
_SLOW_RESPONSE_MS: Final[int] = 1000


def confidence_for(status: int | None, response_time_ms: int | None) -> ConfidenceLevel:
    """Successful fast calls are strong evidence; client errors still prove the dependency."""

    if status is None:
        return ConfidenceLevel.HIGH
    if status == 200 and response_time_ms is not None and response_time_ms < _SLOW_RESPONSE_MS:  # noqa: PLR2004
        return ConfidenceLevel.VERY_HIGH
    if 200 <= status < 300:  # noqa: PLR2004
        return ConfidenceLevel.HIGH
    if 400 <= status < 500:  # noqa: PLR2004
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _parse_timestamp(value: str) -> datetime:
    for pattern in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, pattern).replace(tzinfo=UTC)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized timestamp: {value!r}")


def parse_router_log_line(line: str) -> RouterLogEntry | None:
    """Parse one log line; ``None`` for blank lines, ``ValueError`` for garbage."""

    stripped = line.strip()
    if not stripped:
        return None

    match = _STRUCTURED_LINE.match(stripped)
    if match is not None:
        return RouterLogEntry(
            source_ip=match["source"],
            target_ip=match["target"],
            timestamp=_parse_timestamp(match["timestamp"]),
            target_port=match["port"],
            method=match["method"],
            path=match["path"],
            status=int(match["status"]),
            response_time_ms=int(match["elapsed"]),
            raw_line=stripped,
        )

    parts = stripped.split("->")
    if len(parts) == 2:  # noqa: PLR2004
        source, target = (part.strip() for part in parts)
        if source and target:
            return RouterLogEntry(source_ip=source, target_ip=target, raw_line=stripped)
    raise ValueError(f"Unrecognized router log line: {stripped!r}")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class RouterLogClaimSource:
    """Claim source reading a router access log file."""

    path: Path
    hosts: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    clock: Callable[[], datetime] = _utcnow
    name: str = Source.ROUTER_LOG.value
    skipped: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def resolve_host(self, address: str) -> str:
        if address in self.hosts:
            return self.hosts[address]
        if re.fullmatch(_IPV4, address):
            return "service-" + address.replace(".", "-")
        return address

    def entries(self) -> Iterator[RouterLogEntry]:
        """Yield parsed entries with addresses resolved through the host table."""

        self.skipped = 0
        total = 0
        start = time.perf_counter()
        for number, raw in enumerate(self._read_lines(), start=1):
            total += 1
            try:
                entry = parse_router_log_line(raw.decode("utf-8"))
            except ValueError as exc:  # includes UnicodeDecodeError
                self.skipped += 1
                log.warning("Skipping %s line %d: %s", self.path.name, number, exc)
                continue
            if entry is None:
                continue
            yield RouterLogEntry(
                source_ip=self.resolve_host(entry.source_ip or ""),
                target_ip=self.resolve_host(entry.target_ip or ""),
                timestamp=entry.timestamp,
                target_port=entry.target_port,
                method=entry.method,
                path=entry.path,
                status=entry.status,
                response_time_ms=entry.response_time_ms,
                raw_line=entry.raw_line,
            )
        log.info(
            "Parsed %s in %d ms: %d lines, %d skipped",
            self.path,
            int((time.perf_counter() - start) * 1000),
            total,
            self.skipped,
        )

    def claims(self) -> list[Claim]:
        return [self._to_claim(entry) for entry in self.entries()]

    def _to_claim(self, entry: RouterLogEntry) -> Claim:
        metadata: dict[str, object | None] = {}
        if entry.status is None:
            metadata["log_format"] = "simple"
        else:
            metadata.update(
                target_port=entry.target_port,
                http_method=entry.method,
                path=entry.path,
                http_status=entry.status,
                response_time_ms=entry.response_time_ms,
            )
        return Claim(
            from_application=entry.source_ip or "",
            to_application=entry.target_ip or "",
            source=self.name,
            dependency_type=DependencyType.RUNTIME,
            confidence=confidence_for(entry.status, entry.response_time_ms),
            timestamp=entry.timestamp or self.clock(),
            raw_data=entry.raw_line,
            metadata=metadata,
        )

    def _read_lines(self) -> Iterator[bytes]:
        try:
            with self.path.open("rb") as handle:
                yield from handle
        except OSError as exc:
            raise ClaimSourceError(
                f"Cannot read router log {self.path}: {exc}", source=self.name
            ) from exc


if TYPE_CHECKING:
    from depmatrix.domain.ports.sources import ClaimSource

    _source_check: ClaimSource = RouterLogClaimSource(Path())
