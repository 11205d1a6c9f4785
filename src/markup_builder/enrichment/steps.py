"""Independent enrichment steps applied to a flattened record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Final

import anyio

from markup_builder.core.models import FlattenedRecord, ObjectId, ReferenceInfo
from markup_builder.guid import GuidKind, classify, normalize

from .fetcher import SupplementalDataFetcher

LAYERS_KEY: Final = "Presentation_Layers"
UNKNOWN_TYPE: Final = "Unknown"


@dataclass(slots=True, frozen=True)
class EnrichmentStep:
    name: str
    needed: Callable[[FlattenedRecord], bool]
    fetch: Callable[[SupplementalDataFetcher, str, ObjectId], Awaitable[Any]]
    apply: Callable[[FlattenedRecord, Any], None]


def fill_guid(record: FlattenedRecord, value: str) -> None:
    """Store ``value`` in the matching GUID slot unless that slot is already set."""
    kind = classify(value)
    if kind is GuidKind.IFC and not record.get("GUID_IFC"):
        record["GUID_IFC"] = normalize(value)
    elif kind is GuidKind.MS and not record.get("GUID_MS"):
        record["GUID_MS"] = normalize(value)


def _guid_missing(record: FlattenedRecord) -> bool:
    return not record.get("GUID_IFC") or not record.get("GUID_MS")


def _reference_needed(record: FlattenedRecord) -> bool:
    return (
        _guid_missing(record)
        or not record.get("FileName")
        or record.get("Type", "") in ("", UNKNOWN_TYPE)
    )


def _apply_reference(record: FlattenedRecord, info: ReferenceInfo) -> None:
    if info.global_id:
        fill_guid(record, info.global_id)
    if info.file_name and not record.get("FileName"):
        record["FileName"] = info.file_name
    if info.common_type and record.get("Type", "") in ("", UNKNOWN_TYPE):
        record["Type"] = info.common_type


def _apply_layers(record: FlattenedRecord, layers: list[str]) -> None:
    if layers and not record.get(LAYERS_KEY):
        record[LAYERS_KEY] = " | ".join(layers)


def _apply_external_id(record: FlattenedRecord, external_id: str) -> None:
    if external_id:
        fill_guid(record, external_id)


ENRICHMENT_STEPS: Final[tuple[EnrichmentStep, ...]] = (
    EnrichmentStep(
        name="reference",
        needed=_reference_needed,
        fetch=lambda fetcher, model_id, object_id: fetcher.fetch_reference_info(model_id, object_id),
        apply=_apply_reference,
    ),
    EnrichmentStep(
        name="presentation_layers",
        needed=lambda record: not record.get(LAYERS_KEY),
        fetch=lambda fetcher, model_id, object_id: fetcher.fetch_presentation_layers(
            model_id, object_id
        ),
        apply=_apply_layers,
    ),
    EnrichmentStep(
        name="external_id",
        needed=_guid_missing,
        fetch=lambda fetcher, model_id, object_id: fetcher.fetch_external_id(model_id, object_id),
        apply=_apply_external_id,
    ),
)


async def run_enrichment(
    record: FlattenedRecord,
    fetcher: SupplementalDataFetcher,
    model_id: str,
    object_id: ObjectId,
    steps: tuple[EnrichmentStep, ...] = ENRICHMENT_STEPS,
) -> list[str]:
    """Fetch every needed step concurrently, then apply results in step order.

    Returns the names of the steps that were run.
    """
    pending = [step for step in steps if step.needed(record)]
    if not pending:
        return []
    results: list[Any] = [None] * len(pending)

    async def _fetch(index: int, step: EnrichmentStep) -> None:
        results[index] = await step.fetch(fetcher, model_id, object_id)

    async with anyio.create_task_group() as group:
        for index, step in enumerate(pending):
            group.start_soon(_fetch, index, step)

    for step, result in zip(pending, results):
        step.apply(record, result)
    return [step.name for step in pending]
