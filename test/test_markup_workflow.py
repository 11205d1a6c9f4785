from __future__ import annotations

from functools import partial
from typing import Any

import anyio
import pytest

from markup_builder.core.config import Settings
from markup_builder.core.exceptions import OperationInProgressError
from markup_builder.core.models import CondensedGroup, MarkupConfig, ObjectRef, SelectedModelObjects
from markup_builder.discovery import FieldDiscoveryEngine
from markup_builder.provider import InMemoryWorkspaceProvider, ModelSnapshot
from markup_builder.workflow import MarkupWorkflow, run_markup_workflow


def _beam(object_id: int, **values: str) -> dict[str, Any]:
    properties = [{"name": key, "value": value} for key, value in values.items()]
    return {"id": object_id, "properties": [{"name": "Pset1", "properties": properties}] if properties else []}


def _provider(objects: dict[int, Any], **kwargs: Any) -> InMemoryWorkspaceProvider:
    return InMemoryWorkspaceProvider(
        [ModelSnapshot(model_id="m1", name="frame.ifc", objects=objects)],
        project_name="Demo",
        **kwargs,
    )


def _settings() -> Settings:
    return Settings(point_markups=False)


def test_three_object_scenario_end_to_end() -> None:
    provider = _provider(
        {
            1: _beam(1, Name="Beam-01", Weight="120"),
            2: _beam(2, Name="Beam-02"),
            3: _beam(3),
        }
    )

    report, result = anyio.run(
        partial(
            run_markup_workflow,
            provider,
            ["Pset1.Name", "Pset1.Weight"],
            MarkupConfig(separator=" | "),
            settings=_settings(),
        )
    )
    by_key = {item.key: item for item in report.fields}

    assert by_key["Pset1.Name"].frequency == 67
    assert by_key["Pset1.Name"].value_samples == ("Beam-01", "Beam-02")
    assert by_key["Pset1.Weight"].frequency == 33
    assert result.composed[ObjectRef("m1", 1)].text == "Beam-01 | 120"
    assert result.composed[ObjectRef("m1", 2)].text == "Beam-02"
    assert result.composed[ObjectRef("m1", 3)].status == "notfound"
    assert result.apply.applied == 2
    assert result.message == "Markup applied to 2 objects"
    assert len(provider.markups) == 2
    assert result.summary == "Beam-01 | 120 - 1tk\nBeam-02 - 1tk"


def test_identical_texts_condense_into_one_group() -> None:
    provider = _provider({1: _beam(1, Name="Beam"), 2: _beam(2, Name="Beam")})
    workflow = MarkupWorkflow(provider, _settings())

    async def _run():
        await workflow.discover_fields()
        return await workflow.apply_markups(["Pset1.Name"])

    result = anyio.run(_run)

    assert result.groups == [CondensedGroup("Beam", 2)]
    assert result.summary == "Beam - 2tk"


def test_failed_markups_are_left_out_of_summary() -> None:
    provider = _provider({1: _beam(1, Name="Beam"), 2: _beam(2, Name="Beam")}, markup_failures={2})
    workflow = MarkupWorkflow(provider, _settings())

    result = anyio.run(workflow.apply_markups, ["Pset1.Name"])

    assert result.apply.failed == 1
    assert result.groups == [CondensedGroup("Beam", 1)]


def test_empty_selection_is_reported_not_raised() -> None:
    provider = _provider({}, selection=[SelectedModelObjects(model_id="m1")])
    workflow = MarkupWorkflow(provider, _settings())

    report = anyio.run(workflow.discover_fields)
    result = anyio.run(workflow.apply_markups, ["Name"])

    assert report.total_objects == 0
    assert report.message == "No objects selected"
    assert result.apply is None
    assert provider.markups == {}


def test_missing_provider_is_reported() -> None:
    workflow = MarkupWorkflow(None, _settings())

    report = anyio.run(workflow.discover_fields)

    assert report.message == "Workspace provider is not connected"


def test_default_config_comes_from_settings() -> None:
    workflow = MarkupWorkflow(None, Settings(default_prefix="#", default_separator=" ~ "))

    assert workflow.default_config() == MarkupConfig(prefix="#", separator=" ~ ")


def test_reapply_replaces_markups() -> None:
    provider = _provider({1: _beam(1, Name="Beam")})
    workflow = MarkupWorkflow(provider, _settings())

    async def _run():
        report = await workflow.discover_fields()
        await workflow.apply_markups(["Pset1.Name"], report=report)
        await workflow.apply_markups(["Pset1.Name"], report=report)
        return await workflow.clear_markups()

    removed = anyio.run(_run)

    assert len(removed) == 1
    assert provider.markups == {}
    assert len(provider.removed) == 2


def test_overlapping_discover_fields_keeps_running_pass_published() -> None:
    gates: list[anyio.Event] = []

    class SlowFlattener:
        async def flatten(self, raw, model_id, project_name="", model_names=None, *, object_id=None):
            await gates[0].wait()
            return {"Name": "x"}

    provider = _provider({1: _beam(1, Name="Beam-01")})
    engine = FieldDiscoveryEngine(provider, _settings(), flattener=SlowFlattener())
    workflow = MarkupWorkflow(provider, _settings(), engine=engine)
    outcome: dict[str, Any] = {}

    async def _run() -> None:
        gates.append(anyio.Event())

        async def _first() -> None:
            outcome["first"] = await workflow.discover_fields()

        async with anyio.create_task_group() as group:
            group.start_soon(_first)
            while not engine.in_flight:
                await anyio.sleep(0)
            with pytest.raises(OperationInProgressError):
                await workflow.discover_fields()
            gates[0].set()

    anyio.run(_run)

    assert outcome["first"].total_objects == 1
    assert engine.latest is outcome["first"]
    assert not engine.in_flight
