from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol, TypeVar

from mcp import ClientSession
from mcp.types import CallToolResult, Tool

from tornado_agents.observability.logging import get_logger

from .errors import McpClientError, McpDependencyMissingError, McpTimeoutError
from .types import McpServerConfig

T = TypeVar("T")


class McpToolClient(Protocol):
    """Smallest MCP client surface the tool core consumes."""

    @property
    def server_key(self) -> str:
        ...

    async def list_tools(self) -> list[Tool]:
        ...

    async def call_tool(self, name: str, args: dict[str, Any]) -> CallToolResult:
        """Call a single MCP tool.

        Implementations raise McpClientError on transport/protocol failures.
        """
        ...


class McpServerClient:
    """MCP client for one configured server.

    Connections are managed by `langchain-mcp-adapters` (stdio, streamable
    HTTP or SSE); the protocol itself is the upstream MCP SDK `ClientSession`.

    Without `open()`, every call creates (and tears down) its own session.
    `open()` / `async with client:` keeps one session for several calls.
    """

    def __init__(self, cfg: McpServerConfig) -> None:
        self._cfg = cfg
        self._log = get_logger("tornado_agents.mcp")
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    @property
    def server_key(self) -> str:
        return self._cfg.server_key

    @property
    def config(self) -> McpServerConfig:
        return self._cfg

    def _multi_client(self) -> Any:
        try:
            from langchain_mcp_adapters.client import MultiServerMCPClient
        except ImportError as e:  # pragma: no cover
            raise McpDependencyMissingError(
                missing="langchain-mcp-adapters",
                install_hint="Install it with: pip install langchain-mcp-adapters",
            ) from e

        # The upstream library types its connection configs; ours is a plain dict.
        return MultiServerMCPClient({self._cfg.server_key: dict(self._cfg.connection)})  # type: ignore[arg-type]

    async def open(self) -> None:
        if self._session is not None:
            return
        stack = AsyncExitStack()
        try:
            self._session = await stack.enter_async_context(self._multi_client().session(self._cfg.server_key))
        except asyncio.CancelledError:
            await stack.aclose()
            raise
        except McpClientError:
            await stack.aclose()
            raise
        except Exception as e:  # noqa: BLE001
            await stack.aclose()
            raise McpClientError("mcp_init_failed", str(e), details={"exc": type(e).__name__}) from e
        self._stack = stack
        self._log.info("mcp_session_opened", server=self._cfg.server_key)

    async def aclose(self) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()
            self._log.info("mcp_session_closed", server=self._cfg.server_key)

    async def __aenter__(self) -> "McpServerClient":
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with self._multi_client().session(self._cfg.server_key) as session:
            yield session

    async def _run(self, op: str, fn: Callable[[ClientSession], Awaitable[T]]) -> T:
        async def do_call() -> T:
            async with self._session_scope() as session:
                return await fn(session)

        try:
            return await asyncio.wait_for(do_call(), timeout=self._cfg.timeout_s)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            raise McpTimeoutError(timeout_s=float(self._cfg.timeout_s)) from e
        except McpClientError:
            raise
        except Exception as e:  # noqa: BLE001
            raise McpClientError(
                "mcp_error",
                str(e) or type(e).__name__,
                details={"exc": type(e).__name__, "op": op, "server": self._cfg.server_key},
            ) from e

    async def list_tools(self) -> list[Tool]:
        async def op(session: ClientSession) -> list[Tool]:
            result = await session.list_tools()
            return list(result.tools)

        return await self._run("list_tools", op)

    async def call_tool(self, name: str, args: dict[str, Any]) -> CallToolResult:
        if not isinstance(name, str) or not name:
            raise ValueError("tool name must be a non-empty string")
        if not isinstance(args, dict):
            raise ValueError("tool args must be a dict")

        async def op(session: ClientSession) -> CallToolResult:
            return await session.call_tool(name, arguments=args)

        return await self._run("call_tool", op)
