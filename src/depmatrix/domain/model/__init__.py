"""Domain model for the dependency matrix."""

from __future__ import annotations

from .application import Application, ClaimRecord
from .claims import Claim, DependencyEdge, NormalizedClaim, ProvenanceEntry
from .enums import ConfidenceLevel, DependencyType, Source
from .errors import InvalidClaimError, InvalidIdentifierError, ReconciliationError
from .observations import ApiGatewayCall, CodebaseDependency, RouterLogEntry

__all__ = [
    "ApiGatewayCall",
    "Application",
    "Claim",
    "ClaimRecord",
    "CodebaseDependency",
    "ConfidenceLevel",
    "DependencyEdge",
    "DependencyType",
    "InvalidClaimError",
    "InvalidIdentifierError",
    "NormalizedClaim",
    "ProvenanceEntry",
    "ReconciliationError",
    "RouterLogEntry",
    "Source",
]
