"""Shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ObjectId = int | str
FlattenedRecord = dict[str, str]
MarkupStatus = Literal["found", "partial", "notfound"]


@dataclass(slots=True, frozen=True)
class ObjectRef:
    model_id: str
    object_id: ObjectId


@dataclass(slots=True, frozen=True)
class SelectedModelObjects:
    model_id: str
    object_ids: tuple[ObjectId, ...] = ()


@dataclass(slots=True)
class ObjectRecord:
    ref: ObjectRef
    raw: Any


@dataclass(slots=True)
class FlattenedObject:
    ref: ObjectRef
    values: FlattenedRecord


@dataclass(slots=True, frozen=True)
class DiscoveredField:
    key: str
    set_name: str
    property_name: str
    display_name: str
    frequency: int
    value_samples: tuple[str, ...] = ()
    objects_with_value: int = 0
    occurrences: int = 0


@dataclass(slots=True, frozen=True)
class MarkupConfig:
    prefix: str = ""
    separator: str = " | "
    line_break: bool = False
    layout: Literal["inline", "lines"] = "inline"
    position: Literal["center", "top"] = "center"

    @property
    def effective_separator(self) -> str:
        if self.line_break or self.layout == "lines":
            return "\n"
        return self.separator


@dataclass(slots=True, frozen=True)
class MarkupResult:
    text: str
    count: int = 1
    status: MarkupStatus = "found"


@dataclass(slots=True, frozen=True)
class CondensedGroup:
    text: str
    count: int


@dataclass(slots=True, frozen=True)
class ReferenceInfo:
    global_id: str = ""
    file_name: str = ""
    common_type: str = ""


@dataclass(slots=True, frozen=True)
class LoadedModel:
    id: str
    name: str = ""


@dataclass(slots=True, frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    def scaled(self, factor: float) -> "Vector3":
        return Vector3(self.x * factor, self.y * factor, self.z * factor)


@dataclass(slots=True, frozen=True)
class BoundingBox:
    min: Vector3
    max: Vector3

    def midpoint(self) -> Vector3:
        return Vector3(
            (self.min.x + self.max.x) / 2.0,
            (self.min.y + self.max.y) / 2.0,
            (self.min.z + self.max.z) / 2.0,
        )


@dataclass(slots=True, frozen=True)
class MarkupAnchor:
    start: Vector3
    end: Vector3


@dataclass(slots=True, frozen=True)
class MarkupRequest:
    text: str
    ref: ObjectRef
    anchor: MarkupAnchor | None = None


@dataclass(slots=True)
class DiscoveryReport:
    fields: list[DiscoveredField]
    display_fields: list[DiscoveredField]
    records: list[FlattenedObject]
    total_objects: int
    used_default_fields: bool = False
    message: str = ""


@dataclass(slots=True)
class ApplyReport:
    results: dict[ObjectRef, MarkupResult] = field(default_factory=dict)
    markup_ids: list[Any] = field(default_factory=list)
    removed_ids: list[Any] = field(default_factory=list)
    message: str = ""

    @property
    def applied(self) -> int:
        return len(self.markup_ids)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results.values() if result.status == "partial")

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results.values() if result.status == "notfound")
