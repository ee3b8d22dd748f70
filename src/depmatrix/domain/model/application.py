from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .claims import Claim


@dataclass(slots=True, kw_only=True)
class Application:
    """Canonical dependency-graph node, created lazily by the persistence layer."""

    name: str
    id: UUID = field(default_factory=uuid4)


@dataclass(slots=True, kw_only=True)
class ClaimRecord:
    """A raw claim as stored by the ingestion write path."""

    claim: Claim
    from_application: Application
    to_application: Application
    confidence_score: float
    id: UUID = field(default_factory=uuid4)
    recorded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
