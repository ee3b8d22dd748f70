"""Raw source observations consumed by the claim processing engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class RouterLogEntry:
    source_ip: str | None
    target_ip: str | None
    timestamp: datetime | None = None
    target_port: str | None = None
    method: str | None = None
    path: str | None = None
    status: int | None = None
    response_time_ms: int | None = None
    raw_line: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class CodebaseDependency:
    """Build manifest entry; ``group_id`` depends on ``artifact_id``."""

    group_id: str | None
    artifact_id: str | None
    version: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ApiGatewayCall:
    source_service: str | None
    target_service: str | None
    timestamp: datetime | None = None
    endpoint: str | None = None
    method: str | None = None
    status: int | None = None
    response_time_ms: int | None = None
