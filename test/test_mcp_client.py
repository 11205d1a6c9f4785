from __future__ import annotations

from typing import Any

import anyio
import pytest
from mcp import types

from markup_builder.core.config import Settings
from markup_builder.core.exceptions import ProviderError, ProviderUnavailableError
from markup_builder.core.mcp_client import MCPToolClient, _ServerConnection


class FakeSession:
    def __init__(self, result: types.CallToolResult) -> None:
        self._result = result
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        self.calls.append((name, arguments))
        return self._result


def _client(result: types.CallToolResult) -> tuple[MCPToolClient, FakeSession]:
    client = MCPToolClient(Settings(), connections={"viewer": {"url": "http://localhost/mcp"}})
    session = FakeSession(result)
    client._connections["viewer"] = _ServerConnection(session=session)
    return client, session


def _text_result(*texts: str, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text) for text in texts],
        isError=is_error,
    )


def test_invoke_json_tool_parses_text_payload() -> None:
    client, session = _client(_text_result('```json\n{"objects": [1, 2]}\n```'))

    payload = anyio.run(client.invoke_json_tool, "viewer", "get_object_properties", {"modelId": "m1"})

    assert payload == {"objects": [1, 2]}
    assert session.calls == [("get_object_properties", {"modelId": "m1"})]


def test_invoke_json_tool_prefers_structured_content() -> None:
    result = types.CallToolResult(content=[], structuredContent={"name": "Tower"}, isError=False)
    client, _ = _client(result)

    assert anyio.run(client.invoke_json_tool, "viewer", "get_project") == {"name": "Tower"}


def test_empty_text_payload_is_none() -> None:
    client, _ = _client(_text_result())

    assert anyio.run(client.invoke_json_tool, "viewer", "remove_markups") is None


def test_tool_error_raises_provider_error() -> None:
    client, _ = _client(_text_result("model not loaded", is_error=True))

    with pytest.raises(ProviderError, match="model not loaded"):
        anyio.run(client.invoke_tool, "viewer", "get_model")


def test_unknown_server_and_transport_are_unavailable() -> None:
    client = MCPToolClient(
        Settings(),
        connections={"legacy": {"transport": "sse", "url": "http://localhost/sse"}},
    )

    with pytest.raises(ProviderUnavailableError):
        anyio.run(client.connect, "missing")
    with pytest.raises(ProviderUnavailableError):
        anyio.run(client.connect, "legacy")


def test_closed_client_rejects_calls() -> None:
    client, _ = _client(_text_result("{}"))

    anyio.run(client.aclose)

    with pytest.raises(RuntimeError):
        anyio.run(client.invoke_tool, "viewer", "get_project")
