"""Custom exception hierarchy for the markup builder."""

from __future__ import annotations


class MarkupBuilderError(Exception):
    """Base error for field discovery and markup application."""


class ProviderUnavailableError(MarkupBuilderError):
    """Raised when no workspace provider handle is available."""


class ProviderError(MarkupBuilderError):
    """Raised when a provider call fails or returns an unusable payload."""


class EmptySelectionError(MarkupBuilderError):
    """Raised when the user has not selected any objects."""


class ObjectFetchError(MarkupBuilderError):
    """Raised when properties for a model's objects cannot be fetched."""


class MarkupCreationError(MarkupBuilderError):
    """Raised when the provider does not create a markup for an object."""


class ClipboardError(MarkupBuilderError):
    """Raised when a summary cannot be handed to its sink."""


class OperationInProgressError(MarkupBuilderError):
    """Raised when a discovery or apply pass overlaps a running one."""
