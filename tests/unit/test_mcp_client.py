from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from tornado_agents.mcp_client.client import McpServerClient
from tornado_agents.mcp_client.errors import McpClientError, McpTimeoutError
from tornado_agents.mcp_client.types import McpServerConfig


class FakeSession:
    def __init__(self, *, delay_s: float = 0.0, fail: bool = False) -> None:
        self.delay_s = delay_s
        self.fail = fail
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def list_tools(self) -> ListToolsResult:
        return ListToolsResult(tools=[Tool(name="echo", inputSchema={"type": "object", "properties": {}})])

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> CallToolResult:
        self.calls.append((name, dict(arguments or {})))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.fail:
            raise ConnectionError("pipe closed")
        return CallToolResult(content=[TextContent(type="text", text="pong")])


class FakeMultiClient:
    def __init__(self, session: FakeSession) -> None:
        self._session = session
        self.opened = 0

    @asynccontextmanager
    async def session(self, server_name: str):
        self.opened += 1
        yield self._session


def _client(monkeypatch: pytest.MonkeyPatch, session: FakeSession, *, timeout_s: float = 5.0) -> tuple[McpServerClient, FakeMultiClient]:
    multi = FakeMultiClient(session)
    client = McpServerClient(McpServerConfig(server_key="fs", connection={"transport": "stdio"}, timeout_s=timeout_s))
    monkeypatch.setattr(client, "_multi_client", lambda: multi)
    return client, multi


def test_list_and_call(monkeypatch: pytest.MonkeyPatch) -> None:
    session = FakeSession()
    client, multi = _client(monkeypatch, session)

    tools = asyncio.run(client.list_tools())
    result = asyncio.run(client.call_tool("echo", {"x": 1}))

    assert [t.name for t in tools] == ["echo"]
    assert result.content[0].text == "pong"
    assert session.calls == [("echo", {"x": 1})]
    assert multi.opened == 2


def test_open_keeps_one_session(monkeypatch: pytest.MonkeyPatch) -> None:
    client, multi = _client(monkeypatch, FakeSession())

    async def scenario() -> None:
        async with client:
            await client.call_tool("echo", {})
            await client.call_tool("echo", {})

    asyncio.run(scenario())
    assert multi.opened == 1


def test_timeout_maps_to_mcp_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client(monkeypatch, FakeSession(delay_s=1.0), timeout_s=0.05)

    with pytest.raises(McpTimeoutError) as ei:
        asyncio.run(client.call_tool("echo", {}))
    assert ei.value.error_type == "timeout"


def test_transport_errors_are_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client(monkeypatch, FakeSession(fail=True))

    with pytest.raises(McpClientError) as ei:
        asyncio.run(client.call_tool("echo", {}))
    assert ei.value.error_type == "mcp_error"
    assert "pipe closed" in ei.value.message


def test_call_tool_validates_inputs(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client(monkeypatch, FakeSession())
    with pytest.raises(ValueError):
        asyncio.run(client.call_tool("", {}))
