"""Public interface for the API gateway adapter."""

from __future__ import annotations

from .client import ApiGatewayClient, ApiGatewayError
from .fetcher import ApiGatewayClaimSource
from .schema import GatewayCallPayload, GatewayCallsPage
from .translator import gateway_call_to_claim, parse_gateway_call

__all__ = [
    "ApiGatewayClaimSource",
    "ApiGatewayClient",
    "ApiGatewayError",
    "GatewayCallPayload",
    "GatewayCallsPage",
    "gateway_call_to_claim",
    "parse_gateway_call",
]
