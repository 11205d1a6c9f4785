"""Ordered key heuristics used while flattening records."""

from __future__ import annotations

import re
from typing import Final, Iterable

GUID_KEY_PATTERN: Final = re.compile(r"guid|globalid|tekla_guid|id_guid", flags=re.IGNORECASE)

# First matching pattern wins; canonical keys themselves are never scanned.
CANONICAL_FIELD_PATTERNS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"product[\s_.-]*name", flags=re.IGNORECASE), "ProductName"),
    (re.compile(r"product[\s_.-]*description", flags=re.IGNORECASE), "ProductDescription"),
    (re.compile(r"product[\s_.-]*object[\s_.-]*type", flags=re.IGNORECASE), "ProductType"),
)

CANONICAL_PRODUCT_FIELDS: Final = tuple(field for _, field in CANONICAL_FIELD_PATTERNS)


def is_guid_key(key: str) -> bool:
    return bool(GUID_KEY_PATTERN.search(key))


def match_canonical_field(key: str) -> str | None:
    """Return the canonical field a flattened key stands for, if any."""
    if key in CANONICAL_PRODUCT_FIELDS:
        return None
    for pattern, field in CANONICAL_FIELD_PATTERNS:
        if pattern.search(key):
            return field
    return None


def find_canonical_values(items: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Return the first non-empty value per canonical field, in key order."""
    found: dict[str, str] = {}
    for key, value in items:
        if not value.strip():
            continue
        field = match_canonical_field(key)
        if field and field not in found:
            found[field] = value
    return found
