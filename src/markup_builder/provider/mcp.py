"""Workspace provider backed by MCP tools exposed by the viewer bridge."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from markup_builder.core.config import Settings, get_settings
from markup_builder.core.exceptions import MarkupCreationError, ProviderError
from markup_builder.core.logging import get_logger
from markup_builder.core.mcp_client import MCPToolClient
from markup_builder.core.models import (
    BoundingBox,
    LoadedModel,
    MarkupRequest,
    ObjectId,
    SelectedModelObjects,
    Vector3,
)

from .base import as_record_list

LOGGER = get_logger(__name__)

DEFAULT_TOOL_NAMES: dict[str, str] = {
    "selection": "get_selection",
    "properties": "get_object_properties",
    "metadata": "get_hierarchy_parents",
    "layers": "get_presentation_layers",
    "external_ids": "convert_to_object_ids",
    "models": "get_models",
    "model": "get_model",
    "project": "get_project",
    "bounding_boxes": "get_object_bounding_boxes",
    "add_markup": "add_text_markup",
    "remove_markups": "remove_markups",
}


class MCPWorkspaceProvider:
    """Thin async wrapper mapping provider operations onto MCP tool calls."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        mcp_client: MCPToolClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._server_name = self._settings.provider_service_name
        self._tools = {**DEFAULT_TOOL_NAMES, **self._settings.provider_tool_overrides}
        self._mcp = mcp_client or MCPToolClient(self._settings)

    async def _call(self, operation: str, arguments: Mapping[str, Any] | None = None) -> Any:
        tool_name = self._tools[operation]
        LOGGER.debug("provider.request", operation=operation, tool=tool_name)
        return await self._mcp.invoke_json_tool(self._server_name, tool_name, arguments)

    async def get_selected_objects(self) -> list[SelectedModelObjects]:
        raw = await self._call("selection")
        entries = _unwrap(raw, "selection", "models", "modelObjects")
        selection: list[SelectedModelObjects] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            model_id = _first(entry, "modelId", "model_id")
            if model_id in (None, ""):
                continue
            ids = _first(entry, "objectRuntimeIds", "object_runtime_ids", "objectIds", "object_ids")
            if ids is None:
                objects = entry.get("objects") or []
                ids = [_first(item, "id", "runtimeId") for item in objects if isinstance(item, Mapping)]
            selection.append(
                SelectedModelObjects(
                    model_id=str(model_id),
                    object_ids=tuple(item for item in ids or [] if item not in (None, "")),
                )
            )
        return selection

    async def get_object_properties(
        self,
        model_id: str,
        object_ids: Sequence[ObjectId],
        *,
        include_hidden: bool = True,
    ) -> list[Any]:
        raw = await self._call(
            "properties",
            {"modelId": model_id, "objectIds": list(object_ids), "includeHidden": include_hidden},
        )
        return _unwrap(raw, "objects", "results")

    async def get_object_metadata(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[Mapping[str, Any]]:
        raw = await self._call("metadata", {"modelId": model_id, "objectIds": list(object_ids)})
        return [item for item in _unwrap(raw, "metadata", "results") if isinstance(item, Mapping)]

    async def get_presentation_layers(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[list[str]]:
        raw = await self._call("layers", {"modelId": model_id, "objectIds": list(object_ids)})
        layers: list[list[str]] = []
        for item in _unwrap(raw, "layers", "presentationLayers", "presentation_layers"):
            if isinstance(item, (list, tuple)):
                layers.append([str(layer) for layer in item if layer not in (None, "")])
            elif item not in (None, ""):
                layers.append([str(item)])
        return layers

    async def convert_to_external_ids(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[str]:
        raw = await self._call(
            "external_ids", {"modelId": model_id, "objectRuntimeIds": list(object_ids)}
        )
        return [str(item) for item in _unwrap(raw, "externalIds", "external_ids", "ids")]

    async def list_loaded_models(self) -> list[LoadedModel]:
        raw = await self._call("models")
        return [
            model
            for model in (_to_model(item) for item in _unwrap(raw, "models", "results"))
            if model is not None
        ]

    async def get_loaded_model(self, model_id: str) -> LoadedModel | None:
        raw = await self._call("model", {"modelId": model_id})
        if isinstance(raw, Mapping) and isinstance(raw.get("model"), Mapping):
            raw = raw["model"]
        return _to_model(raw)

    async def get_project_name(self) -> str:
        raw = await self._call("project")
        if isinstance(raw, Mapping):
            project = raw.get("project") if isinstance(raw.get("project"), Mapping) else raw
            return str(project.get("name") or "")
        return str(raw or "")

    async def get_object_bounding_boxes(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[BoundingBox]:
        raw = await self._call(
            "bounding_boxes", {"modelId": model_id, "objectRuntimeIds": list(object_ids)}
        )
        boxes: list[BoundingBox] = []
        for item in _unwrap(raw, "boundingBoxes", "bounding_boxes", "results"):
            box = _to_box(item)
            if box is not None:
                boxes.append(box)
        return boxes

    async def create_markup(self, request: MarkupRequest) -> Any:
        arguments: dict[str, Any] = {
            "text": request.text,
            "modelId": request.ref.model_id,
            "objectId": request.ref.object_id,
        }
        if request.anchor is not None:
            arguments["start"] = _vector_payload(request.anchor.start)
            arguments["end"] = _vector_payload(request.anchor.end)
        raw = await self._call("add_markup", {"markups": [arguments]})
        first = raw
        if isinstance(raw, (Mapping, list)):
            created = _unwrap(raw, "markups", "results")
            first = created[0] if created else None
        markup_id = _first(first, "id", "markupId", "markup_id") if isinstance(first, Mapping) else first
        if markup_id in (None, "") or isinstance(markup_id, (list, dict)):
            raise MarkupCreationError(
                f"No markup id returned for object '{request.ref.object_id}'"
            )
        return markup_id

    async def remove_markups(self, markup_ids: Sequence[Any]) -> None:
        if not markup_ids:
            return
        await self._call("remove_markups", {"ids": list(markup_ids)})

    async def aclose(self) -> None:
        await self._mcp.aclose()

    async def __aenter__(self) -> "MCPWorkspaceProvider":
        await self._mcp.connect(self._server_name)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _unwrap(raw: Any, *keys: str) -> list[Any]:
    """Return the record list from ``raw``, which may be wrapped in an envelope."""
    if isinstance(raw, Mapping):
        for key in (*keys, "data"):
            value = raw.get(key)
            if isinstance(value, list):
                return value
        if any(key in raw for key in (*keys, "data")):
            return []
    if raw is None or raw == "":
        return []
    if isinstance(raw, (str, int, float)):
        LOGGER.warning("provider.unexpected_payload", payload_type=type(raw).__name__)
        raise ProviderError(f"Unexpected provider payload of type {type(raw).__name__}")
    return as_record_list(raw)


def _first(entry: Any, *keys: str) -> Any:
    if not isinstance(entry, Mapping):
        return None
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _to_model(item: Any) -> LoadedModel | None:
    if not isinstance(item, Mapping):
        return None
    model_id = _first(item, "id", "modelId", "model_id")
    if model_id in (None, ""):
        return None
    return LoadedModel(id=str(model_id), name=str(item.get("name") or ""))


def _to_vector(payload: Any) -> Vector3 | None:
    if isinstance(payload, Mapping):
        try:
            return Vector3(float(payload["x"]), float(payload["y"]), float(payload["z"]))
        except (KeyError, TypeError, ValueError):
            return None
    if isinstance(payload, (list, tuple)) and len(payload) == 3:
        try:
            return Vector3(*(float(value) for value in payload))
        except (TypeError, ValueError):
            return None
    return None


def _to_box(item: Any) -> BoundingBox | None:
    if not isinstance(item, Mapping):
        return None
    box = _first(item, "boundingBox", "bounding_box") or item
    if not isinstance(box, Mapping):
        return None
    low = _to_vector(box.get("min"))
    high = _to_vector(box.get("max"))
    if low is None or high is None:
        return None
    return BoundingBox(min=low, max=high)


def _vector_payload(vector: Vector3) -> dict[str, float]:
    return {"positionX": vector.x, "positionY": vector.y, "positionZ": vector.z}


__all__ = ["DEFAULT_TOOL_NAMES", "MCPWorkspaceProvider"]
