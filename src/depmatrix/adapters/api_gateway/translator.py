"""Translate API gateway payloads into observations and claims."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from depmatrix.domain.model import (
    ApiGatewayCall,
    Claim,
    ConfidenceLevel,
    DependencyType,
    Source,
)

from .schema import GatewayCallPayload

if TYPE_CHECKING:
    from collections.abc import Mapping


def parse_gateway_call(payload: GatewayCallPayload | Mapping[str, object]) -> ApiGatewayCall:
    model = (
        payload
        if isinstance(payload, GatewayCallPayload)
        else GatewayCallPayload.model_validate(payload)
    )
    timestamp = model.timestamp
    if timestamp is not None and timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return ApiGatewayCall(
        source_service=model.source_service,
        target_service=model.target_service,
        timestamp=timestamp,
        endpoint=model.endpoint,
        method=model.method.upper() if model.method else None,
        status=model.status,
        response_time_ms=model.response_time_ms,
    )


def gateway_call_to_claim(
    call: ApiGatewayCall,
    *,
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH,
    observed_at: datetime | None = None,
) -> Claim:
    """Build a claim from ``call``; blank services raise ``InvalidClaimError``."""

    return Claim(
        from_application=call.source_service or "",
        to_application=call.target_service or "",
        source=Source.API_GATEWAY.value,
        dependency_type=DependencyType.API_CALL,
        confidence=confidence,
        timestamp=call.timestamp or observed_at or datetime.now(tz=UTC),
        raw_data=f"{call.method or '-'} {call.endpoint or '-'} "
        f"{call.source_service} -> {call.target_service}",
        metadata={
            "endpoint": call.endpoint,
            "http_method": call.method,
            "http_status": call.status,
            "response_time_ms": call.response_time_ms,
        },
    )
