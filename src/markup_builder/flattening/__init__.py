"""Flattening of provider property records."""

from .flattener import (
    RESERVED_KEYS,
    PropertyFlattener,
    flatten_record,
    sanitize_key,
    serialize_value,
)
from .records import (
    DecodedRecord,
    EmptyProperties,
    PropertyObjectMap,
    PropertySetArray,
    decode_properties,
    decode_record,
)

__all__ = [
    "RESERVED_KEYS",
    "DecodedRecord",
    "EmptyProperties",
    "PropertyFlattener",
    "PropertyObjectMap",
    "PropertySetArray",
    "decode_properties",
    "decode_record",
    "flatten_record",
    "sanitize_key",
    "serialize_value",
]
