"""Confidence calibration by per-source trust weights.

A claim's confidence band is scaled by the weight of the source that produced
it: the calibrated ordinal is ``round(ordinal * weight)`` (half rounds up),
clamped to the scale. ``network-discovery`` at 0.7 therefore moves VERY_HIGH
down one band to HIGH, while ``configuration-file`` at 1.0 leaves every band
unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from depmatrix.domain.model import ConfidenceLevel, Source

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_SOURCE_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        Source.CONFIGURATION_FILE: 1.0,
        Source.CODEBASE: 0.95,
        Source.ROUTER_LOG: 0.9,
        Source.API_GATEWAY: 0.85,
        Source.NETWORK_DISCOVERY: 0.7,
    }
)
DEFAULT_UNKNOWN_SOURCE_WEIGHT: Final[float] = 1.0


def compare_levels(left: ConfidenceLevel, right: ConfidenceLevel) -> int:
    """Return -1, 0 or 1 as ``left`` is below, equal to or above ``right``."""

    return (left > right) - (left < right)


def calibrate(level: ConfidenceLevel, weight: float) -> ConfidenceLevel:
    """Scale ``level`` by ``weight``; total over every float, including NaN."""

    if math.isnan(weight):
        return ConfidenceLevel.lowest()
    scaled = int(level) * weight
    if scaled <= ConfidenceLevel.lowest():
        return ConfidenceLevel.lowest()
    if scaled >= ConfidenceLevel.highest():
        return ConfidenceLevel.highest()
    return ConfidenceLevel.from_ordinal(math.floor(scaled + 0.5))


@dataclass(frozen=True, slots=True)
class SourceWeights:
    """Trust weight per source identifier with an explicit fallback."""

    weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_SOURCE_WEIGHTS)
    default_weight: float = DEFAULT_UNKNOWN_SOURCE_WEIGHT

    def __post_init__(self) -> None:
        normalized = {str(source): weight for source, weight in self.weights.items()}
        object.__setattr__(self, "weights", MappingProxyType(normalized))

    def weight_for(self, source: str) -> float:
        return self.weights.get(source, self.default_weight)

    def is_known(self, source: str) -> bool:
        return source in self.weights

    def calibrate(self, level: ConfidenceLevel, source: str) -> ConfidenceLevel:
        return calibrate(level, self.weight_for(source))

    def with_overrides(
        self,
        overrides: Mapping[str, float],
        *,
        default_weight: float | None = None,
    ) -> SourceWeights:
        return SourceWeights(
            weights={**self.weights, **overrides},
            default_weight=self.default_weight if default_weight is None else default_weight,
        )
