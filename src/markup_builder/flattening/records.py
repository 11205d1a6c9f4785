"""Decode provider property payloads into a closed set of record shapes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_GROUP = "Unknown"
DEFAULT_PROPERTY = "Unknown"
OBJECT_MAP_GROUP = "Properties"


@dataclass(slots=True, frozen=True)
class RawProperty:
    name: str
    value: Any


@dataclass(slots=True, frozen=True)
class PropertySet:
    name: str
    properties: tuple[RawProperty, ...] = ()


@dataclass(slots=True, frozen=True)
class PropertySetArray:
    sets: tuple[PropertySet, ...]


@dataclass(slots=True, frozen=True)
class PropertyObjectMap:
    entries: tuple[tuple[str, Any], ...]


@dataclass(slots=True, frozen=True)
class EmptyProperties:
    pass


PropertyPayload = PropertySetArray | PropertyObjectMap | EmptyProperties


@dataclass(slots=True, frozen=True)
class ProductInfo:
    name: str = ""
    description: str = ""
    type: str = ""


@dataclass(slots=True, frozen=True)
class DecodedRecord:
    object_id: str = ""
    name: str = ""
    type: str = ""
    product: ProductInfo = ProductInfo()
    global_id: str = ""
    properties: PropertyPayload = EmptyProperties()


def decode_record(raw: Any) -> DecodedRecord:
    """Decode one provider record; unknown shapes decode to an empty record."""
    if raw is None:
        return DecodedRecord()
    product = _field(raw, "product")
    return DecodedRecord(
        object_id=_text(_first_present(raw, "id", "runtimeId")),
        name=_text(_field(raw, "name")),
        type=_text(_field(raw, "type")),
        product=ProductInfo(
            name=_text(_field(product, "name")),
            description=_text(_field(product, "description")),
            type=_text(_field(product, "type")),
        ),
        global_id=_text(_first_present(raw, "globalId", "GlobalId")),
        properties=decode_properties(_field(raw, "properties")),
    )


def decode_properties(payload: Any) -> PropertyPayload:
    if isinstance(payload, (list, tuple)):
        sets = tuple(_decode_set(item) for item in payload if _is_record(item))
        return PropertySetArray(sets=sets) if sets else EmptyProperties()
    if isinstance(payload, Mapping):
        entries = tuple((str(key), value) for key, value in payload.items())
        return PropertyObjectMap(entries=entries) if entries else EmptyProperties()
    return EmptyProperties()


def _decode_set(item: Any) -> PropertySet:
    raw_properties = _field(item, "properties")
    properties: list[RawProperty] = []
    if isinstance(raw_properties, (list, tuple)):
        for prop in raw_properties:
            if not _is_record(prop):
                continue
            display_value = _field(prop, "displayValue")
            value = display_value if display_value is not None else _field(prop, "value")
            properties.append(
                RawProperty(name=_name_or_default(_field(prop, "name"), DEFAULT_PROPERTY), value=value)
            )
    return PropertySet(
        name=_name_or_default(_field(item, "name"), DEFAULT_GROUP),
        properties=tuple(properties),
    )


def _is_record(value: Any) -> bool:
    return isinstance(value, Mapping) or hasattr(value, "__dict__")


def _field(source: Any, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _first_present(source: Any, *keys: str) -> Any:
    for key in keys:
        value = _field(source, key)
        if value is not None and value != "":
            return value
    return None


def _name_or_default(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
