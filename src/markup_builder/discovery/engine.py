"""Field discovery over a user selection."""

from __future__ import annotations

from typing import Any, Sequence

import anyio

from markup_builder.core.config import Settings, get_settings
from markup_builder.core.exceptions import (
    EmptySelectionError,
    ObjectFetchError,
    OperationInProgressError,
)
from markup_builder.core.logging import get_logger
from markup_builder.core.models import (
    DiscoveryReport,
    FlattenedObject,
    FlattenedRecord,
    ObjectRecord,
    ObjectId,
    ObjectRef,
    SelectedModelObjects,
)
from markup_builder.enrichment import SupplementalDataFetcher
from markup_builder.flattening import PropertyFlattener, decode_record
from markup_builder.provider.base import WorkspaceProvider, as_record_list, require_provider

from .statistics import aggregate_fields, select_display_fields

LOGGER = get_logger(__name__)


class FieldDiscoveryEngine:
    """Flattens a batch of objects and ranks the fields they populate.

    Only one pass runs at a time. ``invalidate`` marks a running pass as stale
    so its result is returned to its caller but never published as ``latest``.
    """

    def __init__(
        self,
        provider: WorkspaceProvider | None,
        settings: Settings | None = None,
        *,
        fetcher: SupplementalDataFetcher | None = None,
        flattener: PropertyFlattener | None = None,
        logger: Any | None = None,
    ) -> None:
        self._provider = provider
        self._settings = settings or get_settings()
        self._log = logger or LOGGER
        self._fetcher = fetcher or (
            SupplementalDataFetcher(provider, logger=self._log) if provider is not None else None
        )
        self._flattener = flattener or PropertyFlattener(self._fetcher, logger=self._log)
        self._in_flight = False
        self._generation = 0
        self._latest: DiscoveryReport | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def latest(self) -> DiscoveryReport | None:
        return self._latest

    def invalidate(self) -> None:
        """Drop the published result and ignore any pass still running."""
        self._generation += 1
        self._latest = None

    async def collect_records(self) -> list[ObjectRecord]:
        """Read the current selection and fetch raw properties per model."""
        provider = require_provider(self._provider)
        selection = await provider.get_selected_objects()
        selected = [entry for entry in selection or [] if entry.object_ids]
        if not selected:
            raise EmptySelectionError("No objects selected")

        records: list[ObjectRecord] = []
        for entry in selected:
            try:
                records.extend(await self._fetch_model_records(provider, entry))
            except ObjectFetchError as exc:
                self._log.warning(
                    "discovery.model_fetch_failed",
                    model_id=entry.model_id,
                    object_count=len(entry.object_ids),
                    error=str(exc),
                )
        self._log.info(
            "discovery.selection_loaded",
            model_count=len(selected),
            object_count=len(records),
        )
        return records

    async def _fetch_model_records(
        self,
        provider: WorkspaceProvider,
        entry: SelectedModelObjects,
    ) -> list[ObjectRecord]:
        try:
            payload = await provider.get_object_properties(
                entry.model_id,
                list(entry.object_ids),
                include_hidden=self._settings.include_hidden_properties,
            )
        except Exception as exc:  # pylint: disable=broad-except
            raise ObjectFetchError(
                f"Properties for model '{entry.model_id}' could not be fetched"
            ) from exc
        raw_records = as_record_list(payload)
        matched = _match_records(entry.object_ids, raw_records)
        missing = [object_id for object_id in entry.object_ids if object_id not in matched]
        if missing:
            self._log.warning(
                "discovery.records_missing",
                model_id=entry.model_id,
                requested=len(entry.object_ids),
                received=len(raw_records),
                missing=missing,
            )
        return [
            ObjectRecord(ref=ObjectRef(entry.model_id, object_id), raw=matched[object_id])
            for object_id in entry.object_ids
            if object_id in matched
        ]

    async def discover(self, records: Sequence[ObjectRecord]) -> DiscoveryReport:
        if self._in_flight:
            raise OperationInProgressError("Field discovery is already running")
        self._in_flight = True
        generation = self._generation
        try:
            report = await self._run(records)
        finally:
            self._in_flight = False

        if generation == self._generation:
            self._latest = report
        else:
            self._log.info("discovery.stale_result_ignored", total_objects=report.total_objects)
        return report

    async def _run(self, records: Sequence[ObjectRecord]) -> DiscoveryReport:
        total = len(records)
        self._log.info("discovery.start", total_objects=total)
        if total == 0:
            display, used_defaults = select_display_fields([])
            return DiscoveryReport(
                fields=[],
                display_fields=display,
                records=[],
                total_objects=0,
                used_default_fields=used_defaults,
                message=f"{len(display)} fields discovered from 0 objects",
            )

        project_name, model_names = await self._load_context()
        flattened: list[FlattenedRecord | None] = [None] * total
        limiter = anyio.CapacityLimiter(max(1, self._settings.max_concurrency))

        async def _flatten(index: int, record: ObjectRecord) -> None:
            async with limiter:
                try:
                    flattened[index] = await self._flattener.flatten(
                        record.raw,
                        record.ref.model_id,
                        project_name,
                        model_names,
                        object_id=record.ref.object_id,
                    )
                except Exception as exc:  # pylint: disable=broad-except
                    self._log.warning(
                        "discovery.flatten_failed",
                        model_id=record.ref.model_id,
                        object_id=record.ref.object_id,
                        error=str(exc),
                    )

        async with anyio.create_task_group() as group:
            for index, record in enumerate(records):
                group.start_soon(_flatten, index, record)

        objects = [
            FlattenedObject(ref=record.ref, values=values)
            for record, values in zip(records, flattened)
            if values is not None
        ]
        fields = aggregate_fields(
            [item.values for item in objects],
            sample_limit=self._settings.discovery_sample_limit,
        )
        display, used_defaults = select_display_fields(
            fields, limit=self._settings.discovery_field_limit
        )
        if used_defaults:
            self._log.info("discovery.default_fields_used", total_objects=total)
        message = f"{len(display)} fields discovered from {len(objects)} objects"
        self._log.info(
            "discovery.complete",
            field_count=len(fields),
            display_count=len(display),
            total_objects=len(objects),
        )
        return DiscoveryReport(
            fields=fields,
            display_fields=display,
            records=objects,
            total_objects=len(objects),
            used_default_fields=used_defaults,
            message=message,
        )

    async def _load_context(self) -> tuple[str, dict[str, str]]:
        if self._fetcher is None:
            return "", {}
        fetcher = self._fetcher
        context: dict[str, Any] = {"project": "", "models": {}}

        async def _project() -> None:
            context["project"] = await fetcher.fetch_project_name()

        async def _models() -> None:
            context["models"] = await fetcher.build_model_name_map()

        async with anyio.create_task_group() as group:
            group.start_soon(_project)
            group.start_soon(_models)
        return context["project"], context["models"]


def _match_records(
    object_ids: Sequence[ObjectId], raw_records: Sequence[Any]
) -> dict[ObjectId, Any]:
    """Pair returned records with requested ids.

    A record that carries ``id``/``runtimeId`` is matched by that id; only
    records without one fall back to their position in the response.
    """
    by_text = {str(object_id): object_id for object_id in object_ids}
    matched: dict[ObjectId, Any] = {}
    for index, raw in enumerate(raw_records):
        record_id = decode_record(raw).object_id
        if record_id:
            object_id = by_text.get(record_id)
        else:
            object_id = object_ids[index] if index < len(object_ids) else None
        if object_id is None or object_id in matched:
            LOGGER.debug("discovery.record_unmatched", index=index, record_id=record_id)
            continue
        matched[object_id] = raw
    return matched
