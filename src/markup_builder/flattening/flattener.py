"""Flatten nested provider property records into canonical key/value maps."""

from __future__ import annotations

import json
import re
from typing import Any, Final, Mapping

from markup_builder.core.logging import get_logger
from markup_builder.core.models import FlattenedRecord, ObjectId
from markup_builder.enrichment import SupplementalDataFetcher, run_enrichment
from markup_builder.guid import resolve_guids

from .patterns import CANONICAL_PRODUCT_FIELDS, find_canonical_values, is_guid_key
from .records import (
    DEFAULT_PROPERTY,
    OBJECT_MAP_GROUP,
    DecodedRecord,
    PropertyObjectMap,
    PropertyPayload,
    PropertySetArray,
    decode_record,
)

LOGGER = get_logger(__name__)

GUID_KEYS: Final = ("GUID", "GUID_IFC", "GUID_MS")
RESERVED_KEYS: Final = ("Project", "ModelId", "FileName", "Name", "Type", *GUID_KEYS)
VALUE_JOINER: Final = " | "

_WHITESPACE_RUN = re.compile(r"\s+")
_DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def sanitize_key(text: Any) -> str:
    """Return ``text`` reduced to ``[A-Za-z0-9_.-]`` with whitespace runs as ``_``."""
    cleaned = _WHITESPACE_RUN.sub("_", str(text).strip())
    cleaned = cleaned.replace("+", ".")
    cleaned = _DISALLOWED_CHARS.sub("", cleaned)
    return cleaned.strip()


def serialize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return VALUE_JOINER.join(serialize_value(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def seed_record(
    model_id: str,
    project_name: str = "",
    model_names: Mapping[str, str] | None = None,
) -> FlattenedRecord:
    names = model_names or {}
    return {
        "Project": project_name or "",
        "ModelId": model_id or "",
        "FileName": names.get(model_id, "") or "",
        "Name": "",
        "Type": "Unknown",
        "GUID": "",
        "GUID_IFC": "",
        "GUID_MS": "",
    }


def flatten_properties(payload: PropertyPayload, record: FlattenedRecord) -> None:
    """Write every property of ``payload`` into ``record`` under a unique key."""
    occurrences: dict[str, int] = {}
    if isinstance(payload, PropertySetArray):
        for property_set in payload.sets:
            group = sanitize_key(property_set.name)
            for prop in property_set.properties:
                name = sanitize_key(prop.name) or DEFAULT_PROPERTY
                base = f"{group}.{name}" if group else name
                _assign_unique(record, occurrences, base, serialize_value(prop.value))
    elif isinstance(payload, PropertyObjectMap):
        for key, value in payload.entries:
            name = sanitize_key(key) or DEFAULT_PROPERTY
            _assign_unique(record, occurrences, f"{OBJECT_MAP_GROUP}.{name}", serialize_value(value))


def _assign_unique(
    record: FlattenedRecord,
    occurrences: dict[str, int],
    base: str,
    value: str,
) -> None:
    count = occurrences.get(base, 0)
    key = base if count == 0 else f"{base}_{count}"
    while key in record:
        count += 1
        key = f"{base}_{count}"
    occurrences[base] = count + 1
    record[key] = value


def apply_canonical_fields(record: FlattenedRecord, decoded: DecodedRecord) -> None:
    if decoded.object_id:
        record["ObjectId"] = decoded.object_id
    if decoded.name:
        record["Name"] = decoded.name
    if decoded.type:
        record["Type"] = decoded.type
    product_values = {
        "ProductName": decoded.product.name,
        "ProductDescription": decoded.product.description,
        "ProductType": decoded.product.type,
    }
    for field, value in product_values.items():
        if value:
            record[field] = value

    missing = [field for field in CANONICAL_PRODUCT_FIELDS if not record.get(field)]
    if missing:
        found = find_canonical_values(list(record.items()))
        for field in missing:
            if field in found:
                record[field] = found[field]


def resolve_record_guids(record: FlattenedRecord, decoded: DecodedRecord) -> None:
    candidates = [value for key, value in record.items() if key not in GUID_KEYS and is_guid_key(key)]
    if decoded.global_id:
        candidates.append(decoded.global_id)
    ifc, ms = resolve_guids(candidates)
    record["GUID_IFC"] = ifc
    record["GUID_MS"] = ms


def finalize_guid(record: FlattenedRecord) -> None:
    record["GUID"] = record.get("GUID_IFC") or record.get("GUID_MS") or ""


def _prepare(
    raw: Any,
    model_id: str,
    project_name: str,
    model_names: Mapping[str, str] | None,
) -> tuple[DecodedRecord, FlattenedRecord]:
    decoded = decode_record(raw)
    record = seed_record(model_id, project_name, model_names)
    flatten_properties(decoded.properties, record)
    apply_canonical_fields(record, decoded)
    resolve_record_guids(record, decoded)
    return decoded, record


def flatten_record(
    raw: Any,
    model_id: str,
    project_name: str = "",
    model_names: Mapping[str, str] | None = None,
) -> FlattenedRecord:
    """Flatten ``raw`` without provider enrichment."""
    _, record = _prepare(raw, model_id, project_name, model_names)
    finalize_guid(record)
    return record


class PropertyFlattener:
    """Turns one provider record into a FlattenedRecord, enriching missing fields."""

    def __init__(
        self,
        fetcher: SupplementalDataFetcher | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._log = logger or LOGGER

    async def flatten(
        self,
        raw: Any,
        model_id: str,
        project_name: str = "",
        model_names: Mapping[str, str] | None = None,
        *,
        object_id: ObjectId | None = None,
    ) -> FlattenedRecord:
        decoded, record = _prepare(raw, model_id, project_name, model_names)
        target_id = object_id if object_id is not None else decoded.object_id
        if self._fetcher is not None and target_id not in (None, ""):
            try:
                steps = await run_enrichment(record, self._fetcher, model_id, target_id)
            except Exception as exc:  # pylint: disable=broad-except
                self._log.warning(
                    "flatten.enrichment_failed",
                    model_id=model_id,
                    object_id=target_id,
                    error=str(exc),
                )
            else:
                if steps:
                    self._log.debug(
                        "flatten.enriched",
                        model_id=model_id,
                        object_id=target_id,
                        steps=steps,
                    )

        finalize_guid(record)
        return record
