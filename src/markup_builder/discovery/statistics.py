"""Per-key statistics over a batch of flattened records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Iterable, Sequence

from markup_builder.core.models import DiscoveredField, FlattenedRecord

DISPLAY_DENYLIST: Final = frozenset({"ObjectId", "Project", "ModelId", "FileName"})
DEFAULT_FIELD_KEYS: Final = ("Name", "Type", "GUID", "GUID_IFC", "GUID_MS")
DEFAULT_DISPLAY_LIMIT: Final = 20
DEFAULT_SAMPLE_LIMIT: Final = 2


@dataclass(slots=True)
class _FieldStats:
    occurrences: int = 0
    objects_with_value: int = 0
    samples: list[str] = field(default_factory=list)


def percentage(count: int, total: int) -> int:
    """Return ``100 * count / total`` rounded half up, clamped to 0..100."""
    if total <= 0:
        return 0
    value = (200 * count + total) // (2 * total)
    return max(0, min(100, value))


def split_key(key: str) -> tuple[str, str]:
    if "." in key:
        set_name, property_name = key.split(".", 1)
        return set_name, property_name
    return "", key


def display_name(key: str) -> str:
    set_name, property_name = split_key(key)
    return f"{set_name} > {property_name}" if set_name else property_name


def aggregate_fields(
    records: Sequence[FlattenedRecord],
    *,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> list[DiscoveredField]:
    """Rank every key seen in ``records`` by the share of objects with a value.

    Ties keep first-encounter order.
    """
    total = len(records)
    if total == 0:
        return []
    stats: dict[str, _FieldStats] = {}
    for record in records:
        for key, value in record.items():
            entry = stats.setdefault(key, _FieldStats())
            entry.occurrences += 1
            text = (value or "").strip()
            if not text:
                continue
            entry.objects_with_value += 1
            if len(entry.samples) < sample_limit and text not in entry.samples:
                entry.samples.append(text)

    fields = [_build_field(key, entry, total) for key, entry in stats.items()]
    fields.sort(key=lambda item: item.frequency, reverse=True)
    return fields


def _build_field(key: str, entry: _FieldStats, total: int) -> DiscoveredField:
    set_name, property_name = split_key(key)
    return DiscoveredField(
        key=key,
        set_name=set_name,
        property_name=property_name,
        display_name=display_name(key),
        frequency=percentage(entry.objects_with_value, total),
        value_samples=tuple(entry.samples),
        objects_with_value=entry.objects_with_value,
        occurrences=entry.occurrences,
    )


def default_fields(known: Iterable[DiscoveredField] = ()) -> list[DiscoveredField]:
    """Return the fallback field set, reusing statistics for keys already seen."""
    by_key = {item.key: item for item in known}
    return [
        by_key.get(key)
        or DiscoveredField(
            key=key,
            set_name="",
            property_name=key,
            display_name=key,
            frequency=0,
        )
        for key in DEFAULT_FIELD_KEYS
    ]


def select_display_fields(
    fields: Sequence[DiscoveredField],
    *,
    limit: int = DEFAULT_DISPLAY_LIMIT,
    denylist: frozenset[str] = DISPLAY_DENYLIST,
) -> tuple[list[DiscoveredField], bool]:
    """Return the fields offered to the user and whether defaults were substituted."""
    qualifying = [
        item for item in fields if item.key not in denylist and item.objects_with_value > 0
    ]
    if not qualifying:
        return default_fields(fields), True
    return qualifying[: max(limit, 0)], False
