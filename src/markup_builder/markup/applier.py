"""Create markups on the provider and keep re-application idempotent."""

from __future__ import annotations

from typing import Any, Literal, Mapping

import anyio

from markup_builder.core.config import Settings, get_settings
from markup_builder.core.exceptions import OperationInProgressError
from markup_builder.core.logging import get_logger
from markup_builder.core.models import (
    ApplyReport,
    MarkupAnchor,
    MarkupConfig,
    MarkupRequest,
    MarkupResult,
    ObjectRef,
    Vector3,
)
from markup_builder.enrichment import SupplementalDataFetcher
from markup_builder.provider.base import WorkspaceProvider, require_provider

LOGGER = get_logger(__name__)


class MarkupApplier:
    """Applies composed texts as markups, replacing the markups of the previous run.

    The ids created by the last pass are the only state kept between passes.
    Removal of those ids happens before new markups are created, so repeated
    runs never stack duplicate labels.
    """

    def __init__(
        self,
        provider: WorkspaceProvider | None,
        settings: Settings | None = None,
        *,
        fetcher: SupplementalDataFetcher | None = None,
        logger: Any | None = None,
    ) -> None:
        self._provider = provider
        self._settings = settings or get_settings()
        self._log = logger or LOGGER
        self._fetcher = fetcher or (
            SupplementalDataFetcher(provider, logger=self._log) if provider is not None else None
        )
        self._previous_ids: tuple[Any, ...] = ()
        self._in_flight = False

    @property
    def previous_ids(self) -> tuple[Any, ...]:
        return self._previous_ids

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def apply(
        self,
        targets: Mapping[ObjectRef, str],
        config: MarkupConfig | None = None,
    ) -> ApplyReport:
        provider = require_provider(self._provider)
        if self._in_flight:
            raise OperationInProgressError("Markup application is already running")
        self._in_flight = True
        try:
            return await self._apply(provider, targets, config or MarkupConfig())
        finally:
            self._in_flight = False

    async def clear(self) -> list[Any]:
        """Remove the markups created by the previous pass."""
        provider = require_provider(self._provider)
        if self._in_flight:
            raise OperationInProgressError("Markup application is already running")
        self._in_flight = True
        try:
            removed, leftover = await self._remove_previous(provider)
            self._previous_ids = tuple(leftover)
            return removed
        finally:
            self._in_flight = False

    async def _apply(
        self,
        provider: WorkspaceProvider,
        targets: Mapping[ObjectRef, str],
        config: MarkupConfig,
    ) -> ApplyReport:
        removed, leftover = await self._remove_previous(provider)

        items = list(targets.items())
        results: dict[ObjectRef, MarkupResult] = {}
        outcomes: list[tuple[MarkupResult, Any] | None] = [None] * len(items)
        limiter = anyio.CapacityLimiter(max(1, self._settings.max_concurrency))

        async def _create(index: int, ref: ObjectRef, text: str) -> None:
            async with limiter:
                try:
                    anchor = await self._anchor_for(ref, config.position)
                    markup_id = await provider.create_markup(
                        MarkupRequest(text=text, ref=ref, anchor=anchor)
                    )
                except Exception as exc:  # pylint: disable=broad-except
                    self._log.error(
                        "markup.create_failed",
                        model_id=ref.model_id,
                        object_id=ref.object_id,
                        error=str(exc),
                    )
                    outcomes[index] = (MarkupResult(text=text, status="partial"), None)
                    return
                outcomes[index] = (MarkupResult(text=text, status="found"), markup_id)

        async with anyio.create_task_group() as group:
            for index, (ref, text) in enumerate(items):
                if not (text or "").strip():
                    outcomes[index] = (MarkupResult(text="", status="notfound"), None)
                    continue
                group.start_soon(_create, index, ref, text)

        markup_ids: list[Any] = []
        for (ref, _), outcome in zip(items, outcomes):
            if outcome is None:
                continue
            result, markup_id = outcome
            results[ref] = result
            if markup_id is not None:
                markup_ids.append(markup_id)

        self._previous_ids = tuple(leftover) + tuple(markup_ids)
        report = ApplyReport(
            results=results,
            markup_ids=markup_ids,
            removed_ids=removed,
            message=f"Markup applied to {len(markup_ids)} objects",
        )
        self._log.info(
            "markup.apply_complete",
            applied=report.applied,
            failed=report.failed,
            skipped=report.skipped,
            removed=len(removed),
        )
        return report

    async def _remove_previous(self, provider: WorkspaceProvider) -> tuple[list[Any], list[Any]]:
        """Return ``(removed, still_present)`` for the previous pass's ids."""
        previous = list(self._previous_ids)
        if not previous:
            return [], []
        try:
            await provider.remove_markups(previous)
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("markup.remove_failed", count=len(previous), error=str(exc))
            return [], previous
        self._log.debug("markup.removed", count=len(previous))
        return previous, []

    async def _anchor_for(
        self,
        ref: ObjectRef,
        position: Literal["center", "top"],
    ) -> MarkupAnchor | None:
        if not self._settings.point_markups or self._fetcher is None:
            return None
        box = await self._fetcher.fetch_bounding_box(ref.model_id, ref.object_id)
        if box is None:
            return None
        point = box.midpoint()
        if position == "top":
            point = Vector3(point.x, point.y, box.max.z)
        scaled = point.scaled(self._settings.markup_unit_scale)
        return MarkupAnchor(start=scaled, end=scaled)
