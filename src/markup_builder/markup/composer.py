"""Compose markup text from a field selection and a flattened record."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from markup_builder.core.models import (
    DiscoveredField,
    FlattenedObject,
    MarkupConfig,
    MarkupResult,
    ObjectRef,
)


class MarkupComposer:
    """Builds label text in the caller's field order."""

    def __init__(self, field_keys: Iterable[str], config: MarkupConfig | None = None) -> None:
        self._field_keys = tuple(field_keys)
        self._config = config or MarkupConfig()

    @property
    def field_keys(self) -> tuple[str, ...]:
        return self._field_keys

    @property
    def config(self) -> MarkupConfig:
        return self._config

    def values(self, record: Mapping[str, str]) -> list[str]:
        values: list[str] = []
        for key in self._field_keys:
            value = (record.get(key) or "").strip()
            if value:
                values.append(value)
        return values

    def compose(self, record: Mapping[str, str]) -> MarkupResult:
        values = self.values(record)
        if not values:
            return MarkupResult(text="", status="notfound")
        return MarkupResult(text=self._render(values), status="found")

    def compose_all(self, objects: Iterable[FlattenedObject]) -> dict[ObjectRef, MarkupResult]:
        return {item.ref: self.compose(item.values) for item in objects}

    def preview(self, fields: Sequence[DiscoveredField]) -> str:
        """Render the template using each field's first sample, or its name."""
        by_key = {item.key: item for item in fields}
        parts: list[str] = []
        for key in self._field_keys:
            field = by_key.get(key)
            if field is None:
                parts.append(key)
            elif field.value_samples:
                parts.append(field.value_samples[0])
            else:
                parts.append(field.property_name or key)
        if not parts:
            return ""
        return self._render(parts)

    def _render(self, values: Sequence[str]) -> str:
        return f"{self._config.prefix}{self._config.effective_separator.join(values)}"
