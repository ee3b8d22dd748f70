"""Metadata normalization for claims.

Keys are trimmed, lower-cased and have spaces and hyphens folded to
underscores. Absent values are dropped instead of becoming empty strings.
Bookkeeping keys are reserved: user metadata can never overwrite them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

SOURCE_TYPE_KEY: Final[str] = "source_type"
NORMALIZED_AT_KEY: Final[str] = "normalized_at"
MERGED_FROM_SOURCES_KEY: Final[str] = "merged_from_sources"
ALL_SOURCES_KEY: Final[str] = "all_sources"
RESERVED_METADATA_KEYS: Final[frozenset[str]] = frozenset(
    {SOURCE_TYPE_KEY, NORMALIZED_AT_KEY, MERGED_FROM_SOURCES_KEY, ALL_SOURCES_KEY}
)

log = logging.getLogger(__name__)


def normalize_metadata_key(key: str) -> str:
    return key.strip().lower().replace(" ", "_").replace("-", "_")


@dataclass(frozen=True, slots=True)
class MetadataNormalizer:
    reserved_keys: frozenset[str] = RESERVED_METADATA_KEYS

    def normalize(
        self,
        metadata: Mapping[str, object | None] | None,
        *,
        source: str,
        normalized_at: datetime,
    ) -> dict[str, str]:
        """Return normalized user metadata followed by ``source_type`` and ``normalized_at``."""

        result = self.normalize_user_metadata(metadata)
        result[SOURCE_TYPE_KEY] = source
        result[NORMALIZED_AT_KEY] = normalized_at.isoformat()
        return result

    def normalize_user_metadata(self, metadata: Mapping[str, object | None] | None) -> dict[str, str]:
        result: dict[str, str] = {}
        if not metadata:
            return result
        for raw_key, raw_value in metadata.items():
            if raw_value is None:
                continue
            key = normalize_metadata_key(str(raw_key))
            if not key:
                continue
            if key in self.reserved_keys:
                log.debug("Dropping reserved metadata key %r from user metadata", raw_key)
                continue
            # first raw key wins when two spellings collapse to the same key
            result.setdefault(key, str(raw_value).strip())
        return result
