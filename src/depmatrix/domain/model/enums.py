"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Final


class DependencyType(StrEnum):
    API_CALL = "api_call"
    DATA_FLOW = "data_flow"
    RUNTIME = "runtime"
    BUILD_TIME = "build_time"
    HEALTH_CHECK = "health_check"
    CONFIGURATION = "configuration"

    @classmethod
    def parse(cls, value: str | None) -> DependencyType:
        """Parse a loose label (``"Build Time"``, ``"build-time"``), defaulting to RUNTIME."""

        if value is None or not value.strip():
            return cls.RUNTIME
        normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.RUNTIME


class ConfidenceLevel(IntEnum):
    """Ordered confidence scale; the integer value is the band ordinal."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    VERY_HIGH = 4

    @property
    def display_name(self) -> str:
        return _CONFIDENCE_DISPLAY_NAMES[self]

    @classmethod
    def lowest(cls) -> ConfidenceLevel:
        return cls.LOW

    @classmethod
    def highest(cls) -> ConfidenceLevel:
        return cls.VERY_HIGH

    @classmethod
    def from_ordinal(cls, ordinal: int) -> ConfidenceLevel:
        """Return the band for ``ordinal``, clamped to the scale."""

        return cls(min(max(ordinal, cls.LOW), cls.VERY_HIGH))

    @classmethod
    def from_score(cls, score: float) -> ConfidenceLevel:
        """Map a numeric trust score in ``[0, 1]`` to a band."""

        if score >= 0.9:  # noqa: PLR2004
            return cls.VERY_HIGH
        if score >= 0.7:  # noqa: PLR2004
            return cls.HIGH
        if score >= 0.5:  # noqa: PLR2004
            return cls.MEDIUM
        return cls.LOW


_CONFIDENCE_DISPLAY_NAMES: Final[dict[ConfidenceLevel, str]] = {
    ConfidenceLevel.LOW: "Low",
    ConfidenceLevel.MEDIUM: "Medium",
    ConfidenceLevel.HIGH: "High",
    ConfidenceLevel.VERY_HIGH: "Very High",
}


class Source(StrEnum):
    """Source identifiers emitted by the bundled producers.

    Claims carry free-text sources; these are the well-known ones.
    """

    CONFIGURATION_FILE = "configuration-file"
    CODEBASE = "codebase"
    ROUTER_LOG = "router-log"
    API_GATEWAY = "api-gateway"
    NETWORK_DISCOVERY = "network-discovery"
