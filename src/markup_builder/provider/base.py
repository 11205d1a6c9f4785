"""Contract between the markup core and a model workspace provider."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from markup_builder.core.exceptions import ProviderUnavailableError
from markup_builder.core.models import (
    BoundingBox,
    LoadedModel,
    MarkupRequest,
    ObjectId,
    SelectedModelObjects,
)


class WorkspaceProvider(Protocol):
    """Asynchronous calls the core makes against the 3D-model workspace."""

    async def get_selected_objects(self) -> list[SelectedModelObjects]: ...

    async def get_object_properties(
        self,
        model_id: str,
        object_ids: Sequence[ObjectId],
        *,
        include_hidden: bool = True,
    ) -> list[Any]: ...

    async def get_object_metadata(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[Mapping[str, Any]]: ...

    async def get_presentation_layers(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[list[str]]: ...

    async def convert_to_external_ids(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[str]: ...

    async def list_loaded_models(self) -> list[LoadedModel]: ...

    async def get_loaded_model(self, model_id: str) -> LoadedModel | None: ...

    async def get_project_name(self) -> str: ...

    async def get_object_bounding_boxes(
        self, model_id: str, object_ids: Sequence[ObjectId]
    ) -> list[BoundingBox]: ...

    async def create_markup(self, request: MarkupRequest) -> Any: ...

    async def remove_markups(self, markup_ids: Sequence[Any]) -> None: ...


def require_provider(provider: WorkspaceProvider | None) -> WorkspaceProvider:
    """Return ``provider`` or fail fast when the workspace handle is missing."""
    if provider is None:
        raise ProviderUnavailableError("Workspace provider is not connected")
    return provider


def as_record_list(payload: Any) -> list[Any]:
    """Normalise a single record or a sequence of records into a list."""
    if payload is None:
        return []
    if isinstance(payload, (list, tuple)):
        return list(payload)
    return [payload]
