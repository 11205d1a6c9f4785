"""Field discovery over flattened object records."""

from .engine import FieldDiscoveryEngine
from .statistics import (
    DEFAULT_FIELD_KEYS,
    DISPLAY_DENYLIST,
    aggregate_fields,
    default_fields,
    percentage,
    select_display_fields,
)

__all__ = [
    "DEFAULT_FIELD_KEYS",
    "DISPLAY_DENYLIST",
    "FieldDiscoveryEngine",
    "aggregate_fields",
    "default_fields",
    "percentage",
    "select_display_fields",
]
