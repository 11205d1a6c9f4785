"""Async MCP session pool used to reach the viewer bridge tools."""

from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Mapping

import anyio
from httpx import HTTPError
from mcp import ClientSession, McpError, types
from mcp.client.streamable_http import streamablehttp_client

from markup_builder.core.config import Settings, get_settings
from markup_builder.core.exceptions import ProviderError, ProviderUnavailableError
from markup_builder.core.json_utils import parse_json_response
from markup_builder.core.logging import get_logger

LOGGER = get_logger(__name__)

SUPPORTED_TRANSPORT = "streamable_http"


@dataclass(slots=True, frozen=True)
class _Endpoint:
    name: str
    url: str
    headers: Mapping[str, str] | None
    timeout: float

    @classmethod
    def resolve(
        cls,
        name: str,
        config: Mapping[str, Any] | None,
        default_timeout: float,
    ) -> "_Endpoint":
        if not config:
            raise ProviderUnavailableError(f"MCP server '{name}' is not configured")
        transport = config.get("transport", SUPPORTED_TRANSPORT)
        if transport != SUPPORTED_TRANSPORT:
            raise ProviderUnavailableError(
                f"MCP server '{name}' uses transport '{transport}', expected '{SUPPORTED_TRANSPORT}'"
            )
        if not config.get("url"):
            raise ProviderUnavailableError(f"MCP server '{name}' has no url")
        return cls(
            name=name,
            url=str(config["url"]),
            headers=config.get("headers"),
            timeout=float(config.get("timeout") or default_timeout),
        )


@dataclass
class _ServerConnection:
    session: ClientSession
    stack: AsyncExitStack = field(default_factory=AsyncExitStack)
    closed: bool = False

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self.stack.aclose()


class MCPToolClient:
    """Pool of MCP sessions keyed by server name.

    Sessions open lazily on first use. AnyIO cancel scopes tie each session to
    the task that opened it, so callers sharing one client across a task group
    should enter it with ``async with`` first; that connects every configured
    server from the owning task.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        connections: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._configs = dict(connections) if connections is not None else self._settings.mcp_service_configs()
        self._connections: dict[str, _ServerConnection] = {}
        self._open_lock = anyio.Lock()
        self._closed = False

    async def connect(self, server_name: str | None = None) -> None:
        """Open the session for ``server_name``, or for all configured servers."""
        for name in [server_name] if server_name else list(self._configs):
            await self._session_for(name)

    async def invoke_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> Any:
        """Call ``tool_name`` and return its structured content or text blocks."""
        if self._closed:
            raise RuntimeError("MCPToolClient is closed")
        session = await self._session_for(server_name)
        call_args = dict(arguments or {})
        LOGGER.debug("mcp.call", server=server_name, tool=tool_name, arguments=sorted(call_args))
        try:
            result = await session.call_tool(tool_name, call_args)
        except (McpError, HTTPError) as exc:
            raise ProviderError(f"Call to '{tool_name}' on '{server_name}' failed: {exc}") from exc
        if result.isError:
            detail = "\n".join(_text_blocks(result)) or "no detail given"
            raise ProviderError(f"Tool '{tool_name}' on '{server_name}' failed: {detail}")
        return _result_payload(result)

    async def invoke_json_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> Any:
        """Call ``tool_name`` and decode its answer as JSON."""
        payload = await self.invoke_tool(server_name, tool_name, arguments)
        if isinstance(payload, str):
            payload = payload.strip()
            return parse_json_response(payload) if payload else None
        if payload is None or isinstance(payload, (dict, list, int, float)):
            return payload
        raise ProviderError(f"Tool '{tool_name}' on '{server_name}' did not answer with JSON")

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        while self._connections:
            server_name, connection = self._connections.popitem()
            try:
                await connection.close()
            except Exception as exc:  # pylint: disable=broad-except
                LOGGER.warning("mcp.close_failed", server=server_name, error=str(exc))
            else:
                LOGGER.debug("mcp.disconnected", server=server_name)

    async def __aenter__(self) -> "MCPToolClient":
        if self._closed:
            raise RuntimeError("MCPToolClient is closed")
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _session_for(self, server_name: str) -> ClientSession:
        async with self._open_lock:
            connection = self._connections.get(server_name)
            if connection is None:
                endpoint = _Endpoint.resolve(
                    server_name,
                    self._configs.get(server_name),
                    self._settings.request_timeout or 30,
                )
                connection = await _open(endpoint)
                self._connections[server_name] = connection
                LOGGER.debug("mcp.connected", server=server_name, url=endpoint.url)
            return connection.session


async def _open(endpoint: _Endpoint) -> _ServerConnection:
    stack = AsyncExitStack()
    try:
        read_stream, write_stream, _ = await stack.enter_async_context(
            streamablehttp_client(endpoint.url, headers=endpoint.headers, timeout=endpoint.timeout)
        )
        session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
        await session.initialize()
    except Exception as exc:
        await stack.aclose()
        raise ProviderUnavailableError(f"Cannot reach MCP server '{endpoint.name}'") from exc
    return _ServerConnection(session=session, stack=stack)


def _text_blocks(result: types.CallToolResult) -> list[str]:
    return [
        block.text
        for block in result.content
        if isinstance(block, types.TextContent) and block.text
    ]


def _result_payload(result: types.CallToolResult) -> Any:
    if result.structuredContent is not None:
        return result.structuredContent
    blocks = _text_blocks(result)
    if len(blocks) > 1:
        return blocks
    return blocks[0] if blocks else ""


__all__ = ["MCPToolClient"]
