"""Shared core utilities for the markup builder."""

from .config import Settings, get_settings
from .exceptions import (
    ClipboardError,
    EmptySelectionError,
    MarkupBuilderError,
    MarkupCreationError,
    ObjectFetchError,
    OperationInProgressError,
    ProviderError,
    ProviderUnavailableError,
)
from .logging import configure_logging, get_logger
from .models import (
    ApplyReport,
    BoundingBox,
    CondensedGroup,
    DiscoveredField,
    DiscoveryReport,
    FlattenedObject,
    FlattenedRecord,
    LoadedModel,
    MarkupAnchor,
    MarkupConfig,
    MarkupRequest,
    MarkupResult,
    ObjectRecord,
    ObjectRef,
    ReferenceInfo,
    SelectedModelObjects,
    Vector3,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "MarkupBuilderError",
    "ProviderUnavailableError",
    "ProviderError",
    "EmptySelectionError",
    "ObjectFetchError",
    "MarkupCreationError",
    "ClipboardError",
    "OperationInProgressError",
    "ApplyReport",
    "BoundingBox",
    "CondensedGroup",
    "DiscoveredField",
    "DiscoveryReport",
    "FlattenedObject",
    "FlattenedRecord",
    "LoadedModel",
    "MarkupAnchor",
    "MarkupConfig",
    "MarkupRequest",
    "MarkupResult",
    "ObjectRecord",
    "ObjectRef",
    "ReferenceInfo",
    "SelectedModelObjects",
    "Vector3",
]
