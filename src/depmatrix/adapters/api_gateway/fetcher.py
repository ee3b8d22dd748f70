"""API gateway claim source."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from depmatrix.domain.model import ConfidenceLevel, Source

from .client import ApiGatewayClient
from .translator import gateway_call_to_claim

if TYPE_CHECKING:
    from depmatrix.domain.model import ApiGatewayCall, Claim

log = getLogger(__name__)


class GatewayCallClient(Protocol):
    def fetch_calls(
        self, *, since: datetime | None = None, max_calls: int | None = None
    ) -> list[ApiGatewayCall]: ...


@dataclass(slots=True)
class ApiGatewayClaimSource:
    """Claim source polling the gateway call log once per ``claims()`` call."""

    client: GatewayCallClient = field(default_factory=ApiGatewayClient)
    since: datetime | None = None
    max_calls: int | None = None
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    name: str = Source.API_GATEWAY.value

    def calls(self) -> list[ApiGatewayCall]:
        return self.client.fetch_calls(since=self.since, max_calls=self.max_calls)

    def claims(self) -> list[Claim]:
        observed_at = datetime.now(tz=UTC)
        claims = [
            gateway_call_to_claim(call, confidence=self.confidence, observed_at=observed_at)
            for call in self.calls()
        ]
        log.debug("Translated %d gateway calls into claims", len(claims))
        return claims


if TYPE_CHECKING:
    from depmatrix.domain.ports.sources import ClaimSource

    _source_check: ClaimSource = ApiGatewayClaimSource()
