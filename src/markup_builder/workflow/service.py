"""High-level facade tying discovery, composition, application and summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from markup_builder.core.config import Settings, get_settings
from markup_builder.core.exceptions import (
    EmptySelectionError,
    OperationInProgressError,
    ProviderUnavailableError,
)
from markup_builder.core.logging import get_logger
from markup_builder.core.models import (
    ApplyReport,
    CondensedGroup,
    DiscoveryReport,
    MarkupConfig,
    MarkupResult,
    ObjectRef,
)
from markup_builder.discovery import FieldDiscoveryEngine
from markup_builder.enrichment import SupplementalDataFetcher
from markup_builder.markup import (
    MarkupApplier,
    MarkupComposer,
    SummarySink,
    condense,
    export_summary,
    render,
)
from markup_builder.provider.base import WorkspaceProvider

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class MarkupRunResult:
    """Outcome of composing and applying markups for one discovery pass."""

    composed: dict[ObjectRef, MarkupResult] = field(default_factory=dict)
    apply: ApplyReport | None = None
    groups: list[CondensedGroup] = field(default_factory=list)
    summary: str = ""
    message: str = ""


class MarkupWorkflow:
    """Orchestrates a selection through discovery and markup application."""

    def __init__(
        self,
        provider: WorkspaceProvider | None,
        settings: Settings | None = None,
        *,
        logger: Any | None = None,
        engine: FieldDiscoveryEngine | None = None,
        applier: MarkupApplier | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._log = logger or LOGGER
        fetcher = SupplementalDataFetcher(provider, logger=self._log) if provider is not None else None
        self._engine = engine or FieldDiscoveryEngine(
            provider, self._settings, fetcher=fetcher, logger=self._log
        )
        self._applier = applier or MarkupApplier(
            provider, self._settings, fetcher=fetcher, logger=self._log
        )
        self._discovering = False

    @property
    def engine(self) -> FieldDiscoveryEngine:
        return self._engine

    @property
    def applier(self) -> MarkupApplier:
        return self._applier

    def default_config(self) -> MarkupConfig:
        return MarkupConfig(
            prefix=self._settings.default_prefix,
            separator=self._settings.default_separator,
        )

    async def discover_fields(self) -> DiscoveryReport:
        """Discover fields over the current selection.

        A missing provider or an empty selection yields an empty report whose
        message explains why. A call made while another discovery is running
        raises ``OperationInProgressError`` and leaves the running pass and
        ``engine.latest`` untouched; other errors propagate.
        """
        if self._discovering or self._engine.in_flight:
            raise OperationInProgressError("Field discovery is already running")
        self._discovering = True
        try:
            self._engine.invalidate()
            try:
                records = await self._engine.collect_records()
            except (ProviderUnavailableError, EmptySelectionError) as exc:
                self._log.warning("workflow.discovery_aborted", reason=type(exc).__name__)
                return DiscoveryReport(
                    fields=[],
                    display_fields=[],
                    records=[],
                    total_objects=0,
                    message=str(exc),
                )
            return await self._engine.discover(records)
        finally:
            self._discovering = False

    async def apply_markups(
        self,
        field_keys: Sequence[str],
        config: MarkupConfig | None = None,
        *,
        report: DiscoveryReport | None = None,
    ) -> MarkupRunResult:
        """Compose labels for the discovered objects and apply them as markups."""
        config = config or self.default_config()
        report = report or self._engine.latest
        if report is None:
            report = await self.discover_fields()
        if not report.records:
            return MarkupRunResult(message=report.message or "No objects to mark up")

        composer = MarkupComposer(field_keys, config)
        composed = composer.compose_all(report.records)
        targets = {ref: result.text for ref, result in composed.items()}
        try:
            applied = await self._applier.apply(targets, config)
        except ProviderUnavailableError as exc:
            self._log.warning("workflow.apply_aborted", reason=type(exc).__name__)
            return MarkupRunResult(composed=composed, message=str(exc))

        groups = condense(
            result for result in applied.results.values() if result.status == "found"
        )
        summary = render(groups, suffix=self._settings.summary_suffix)
        self._log.info(
            "workflow.apply_complete",
            field_count=len(field_keys),
            applied=applied.applied,
            groups=len(groups),
        )
        return MarkupRunResult(
            composed=composed,
            apply=applied,
            groups=groups,
            summary=summary,
            message=applied.message,
        )

    async def clear_markups(self) -> list[Any]:
        return await self._applier.clear()

    def export(self, result: MarkupRunResult, sink: SummarySink) -> None:
        export_summary(result.summary, sink)


async def run_markup_workflow(
    provider: WorkspaceProvider | None,
    field_keys: Iterable[str],
    config: MarkupConfig | None = None,
    *,
    settings: Settings | None = None,
) -> tuple[DiscoveryReport, MarkupRunResult]:
    """Convenience helper running discovery followed by one apply pass."""
    workflow = MarkupWorkflow(provider, settings)
    report = await workflow.discover_fields()
    result = await workflow.apply_markups(list(field_keys), config, report=report)
    return report, result


__all__ = ["MarkupRunResult", "MarkupWorkflow", "run_markup_workflow"]
