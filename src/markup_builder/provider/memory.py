"""Dictionary-backed workspace provider for offline runs and tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from markup_builder.core.exceptions import MarkupCreationError, ProviderError
from markup_builder.core.models import (
    BoundingBox,
    LoadedModel,
    MarkupRequest,
    ObjectId,
    SelectedModelObjects,
    Vector3,
)


@dataclass(slots=True)
class ModelSnapshot:
    """Objects of one loaded model keyed by object id."""

    model_id: str
    name: str = ""
    objects: dict[ObjectId, Any] = field(default_factory=dict)
    metadata: dict[ObjectId, Mapping[str, Any]] = field(default_factory=dict)
    layers: dict[ObjectId, list[str]] = field(default_factory=dict)
    external_ids: dict[ObjectId, str] = field(default_factory=dict)
    bounding_boxes: dict[ObjectId, BoundingBox] = field(default_factory=dict)


class InMemoryWorkspaceProvider:
    """Provider that serves a fixed snapshot and records markup calls.

    ``failures`` maps an operation name (the provider method name) to the
    exception it raises; ``markup_failures`` lists object ids whose markup
    creation fails.
    """

    def __init__(
        self,
        models: Iterable[ModelSnapshot] = (),
        *,
        project_name: str = "",
        selection: Sequence[SelectedModelObjects] | None = None,
        failures: Mapping[str, Exception] | None = None,
        markup_failures: Iterable[ObjectId] = (),
    ) -> None:
        self.models: dict[str, ModelSnapshot] = {model.model_id: model for model in models}
        self.project_name = project_name
        self.selection = list(selection) if selection is not None else None
        self.failures: dict[str, Exception] = dict(failures or {})
        self.markup_failures = set(markup_failures)
        self.markups: dict[int, MarkupRequest] = {}
        self.removed: list[Any] = []
        self.calls: list[str] = []
        self._next_markup_id = 1

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "InMemoryWorkspaceProvider":
        """Build a provider from a JSON-style snapshot.

        Expected shape::

            {"project": "Demo", "models": [{"id": "m1", "name": "a.ifc",
              "objects": [{"id": 1, "properties": [...]}, ...]}]}

        Every object is selected unless a ``selection`` list of
        ``{"modelId", "objectIds"}`` entries is given.
        """
        models: list[ModelSnapshot] = []
        for entry in data.get("models") or []:
            model_id = str(entry.get("id") or entry.get("modelId") or "")
            if not model_id:
                raise ProviderError("Snapshot model is missing an id")
            snapshot = ModelSnapshot(model_id=model_id, name=str(entry.get("name") or ""))
            for obj in entry.get("objects") or []:
                object_id = obj.get("id", obj.get("runtimeId"))
                if object_id is None:
                    raise ProviderError(f"Snapshot object in model '{model_id}' is missing an id")
                snapshot.objects[object_id] = obj
                if isinstance(obj.get("metadata"), Mapping):
                    snapshot.metadata[object_id] = obj["metadata"]
                if isinstance(obj.get("layers"), list):
                    snapshot.layers[object_id] = [str(layer) for layer in obj["layers"]]
                if obj.get("externalId"):
                    snapshot.external_ids[object_id] = str(obj["externalId"])
                box = obj.get("boundingBox")
                if isinstance(box, Mapping):
                    snapshot.bounding_boxes[object_id] = BoundingBox(
                        min=Vector3(**box["min"]),
                        max=Vector3(**box["max"]),
                    )
            models.append(snapshot)

        selection = None
        if data.get("selection") is not None:
            selection = [
                SelectedModelObjects(
                    model_id=str(item.get("modelId")),
                    object_ids=tuple(item.get("objectIds") or ()),
                )
                for item in data["selection"]
            ]
        return cls(models, project_name=str(data.get("project") or ""), selection=selection)

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryWorkspaceProvider":
        with Path(path).open("r", encoding="utf-8") as handle:
            return cls.from_snapshot(json.load(handle))

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        failure = self.failures.get(operation)
        if failure is not None:
            raise failure

    def _model(self, model_id: str) -> ModelSnapshot:
        model = self.models.get(model_id)
        if model is None:
            raise ProviderError(f"Model '{model_id}' is not loaded")
        return model

    async def get_selected_objects(self) -> list[SelectedModelObjects]:
        self._enter("get_selected_objects")
        if self.selection is not None:
            return list(self.selection)
        return [
            SelectedModelObjects(model_id=model.model_id, object_ids=tuple(model.objects))
            for model in self.models.values()
        ]

    async def get_object_properties(
        self,
        model_id: str,
        object_ids: Sequence[ObjectId],
        *,
        include_hidden: bool = True,
    ) -> list[Any]:
        self._enter("get_object_properties")
        model = self._model(model_id)
        return [model.objects[object_id] for object_id in object_ids if object_id in model.objects]

    async def get_object_metadata(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[Mapping[str, Any]]:
        self._enter("get_object_metadata")
        model = self._model(model_id)
        return [model.metadata.get(object_id, {}) for object_id in object_ids]

    async def get_presentation_layers(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[list[str]]:
        self._enter("get_presentation_layers")
        model = self._model(model_id)
        return [list(model.layers.get(object_id, [])) for object_id in object_ids]

    async def convert_to_external_ids(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[str]:
        self._enter("convert_to_external_ids")
        model = self._model(model_id)
        return [model.external_ids.get(object_id, "") for object_id in object_ids]

    async def list_loaded_models(self) -> list[LoadedModel]:
        self._enter("list_loaded_models")
        return [LoadedModel(id=model.model_id, name=model.name) for model in self.models.values()]

    async def get_loaded_model(self, model_id: str) -> LoadedModel | None:
        self._enter("get_loaded_model")
        model = self.models.get(model_id)
        if model is None:
            return None
        return LoadedModel(id=model.model_id, name=model.name)

    async def get_project_name(self) -> str:
        self._enter("get_project_name")
        return self.project_name

    async def get_object_bounding_boxes(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[BoundingBox]:
        self._enter("get_object_bounding_boxes")
        model = self._model(model_id)
        return [
            model.bounding_boxes[object_id]
            for object_id in object_ids
            if object_id in model.bounding_boxes
        ]

    async def create_markup(self, request: MarkupRequest) -> int:
        self._enter("create_markup")
        if request.ref.object_id in self.markup_failures:
            raise MarkupCreationError(f"Markup rejected for object '{request.ref.object_id}'")
        markup_id = self._next_markup_id
        self._next_markup_id += 1
        self.markups[markup_id] = request
        return markup_id

    async def remove_markups(self, markup_ids: Sequence[Any]) -> None:
        self._enter("remove_markups")
        for markup_id in markup_ids:
            self.markups.pop(markup_id, None)
            self.removed.append(markup_id)


__all__ = ["InMemoryWorkspaceProvider", "ModelSnapshot"]
