"""Workspace provider contract and adapters."""

from .base import WorkspaceProvider, as_record_list, require_provider
from .memory import InMemoryWorkspaceProvider, ModelSnapshot
from .mcp import DEFAULT_TOOL_NAMES, MCPWorkspaceProvider

__all__ = [
    "DEFAULT_TOOL_NAMES",
    "InMemoryWorkspaceProvider",
    "MCPWorkspaceProvider",
    "ModelSnapshot",
    "WorkspaceProvider",
    "as_record_list",
    "require_provider",
]
