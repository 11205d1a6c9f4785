"""Best-effort supplemental lookups against the workspace provider."""

from __future__ import annotations

from typing import Any, Mapping

from markup_builder.core.logging import get_logger
from markup_builder.core.models import BoundingBox, ObjectId, ReferenceInfo
from markup_builder.provider.base import WorkspaceProvider

LOGGER = get_logger(__name__)


class SupplementalDataFetcher:
    """Wraps provider enrichment calls so a failure degrades to an empty default.

    None of the calls retry, and a failing call never affects the others.
    """

    def __init__(self, provider: WorkspaceProvider, *, logger: Any | None = None) -> None:
        self._provider = provider
        self._log = logger or LOGGER

    async def fetch_reference_info(self, model_id: str, object_id: ObjectId) -> ReferenceInfo:
        try:
            entries = await self._provider.get_object_metadata(model_id, [object_id])
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning(
                "enrichment.reference_failed",
                model_id=model_id,
                object_id=object_id,
                error=str(exc),
            )
            return ReferenceInfo()
        entry = entries[0] if entries else None
        if not isinstance(entry, Mapping):
            return ReferenceInfo()
        return ReferenceInfo(
            global_id=_text(entry.get("globalId") or entry.get("global_id")),
            file_name=_file_name(entry.get("file")),
            common_type=_text(entry.get("commonType") or entry.get("common_type")),
        )

    async def fetch_presentation_layers(self, model_id: str, object_id: ObjectId) -> list[str]:
        try:
            layers = await self._provider.get_presentation_layers(model_id, [object_id])
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning(
                "enrichment.layers_failed",
                model_id=model_id,
                object_id=object_id,
                error=str(exc),
            )
            return []
        if not layers or not isinstance(layers[0], (list, tuple)):
            return []
        return [_text(layer) for layer in layers[0] if _text(layer)]

    async def fetch_external_id(self, model_id: str, object_id: ObjectId) -> str:
        try:
            external_ids = await self._provider.convert_to_external_ids(model_id, [object_id])
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning(
                "enrichment.external_id_failed",
                model_id=model_id,
                object_id=object_id,
                error=str(exc),
            )
            return ""
        if not external_ids:
            return ""
        return _text(external_ids[0])

    async def fetch_project_name(self) -> str:
        try:
            return _text(await self._provider.get_project_name())
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("enrichment.project_name_failed", error=str(exc))
            return ""

    async def build_model_name_map(self) -> dict[str, str]:
        """Map loaded model ids to names, asking per model where the listing has none."""
        try:
            models = await self._provider.list_loaded_models()
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("enrichment.model_list_failed", error=str(exc))
            return {}
        names: dict[str, str] = {}
        for model in models or []:
            name = _text(model.name)
            if not name:
                try:
                    detail = await self._provider.get_loaded_model(model.id)
                except Exception as exc:  # pylint: disable=broad-except
                    self._log.warning(
                        "enrichment.model_lookup_failed",
                        model_id=model.id,
                        error=str(exc),
                    )
                    detail = None
                name = _text(detail.name) if detail is not None else ""
            names[model.id] = name
        return names

    async def fetch_bounding_box(self, model_id: str, object_id: ObjectId) -> BoundingBox | None:
        try:
            boxes = await self._provider.get_object_bounding_boxes(model_id, [object_id])
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning(
                "enrichment.bounding_box_failed",
                model_id=model_id,
                object_id=object_id,
                error=str(exc),
            )
            return None
        return boxes[0] if boxes else None


def _file_name(value: Any) -> str:
    if isinstance(value, Mapping):
        return _text(value.get("name"))
    return _text(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
