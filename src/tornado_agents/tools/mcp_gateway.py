from __future__ import annotations

from typing import Any, Mapping

from tornado_agents.core.errors import ToolRegistrationError
from tornado_agents.core.types import RemoteBinding, ToolDescriptor, ToolNamespace
from tornado_agents.mcp_client.client import McpServerClient, McpToolClient
from tornado_agents.mcp_client.types import McpServerConfig
from tornado_agents.observability.logging import get_logger

from .mcp_naming import McpNameMaps, prefixed_tool_name
from .name_mapping import sanitize_tool_name
from .registry import ToolRegistry
from .tool_specs import parameters_from_input_schema


class McpGateway:
    """Turns the tools of configured MCP servers into remote-bound descriptors.

    Responsibilities:
    - List tools on every server (one client per server_key).
    - Apply the per-server `allowed_tools` filter.
    - Prefix model-facing names when more than one server is configured.
    - Build ToolDescriptors whose RemoteBinding points back at the server.

    `clients` overrides the client used for a server_key (tests, custom
    transports); servers without an override get an McpServerClient.
    """

    def __init__(
        self,
        servers: Mapping[str, McpServerConfig | dict[str, Any]],
        *,
        clients: Mapping[str, McpToolClient] | None = None,
    ) -> None:
        self._servers: dict[str, McpServerConfig] = {
            key: cfg if isinstance(cfg, McpServerConfig) else McpServerConfig.from_dict(key, cfg)
            for key, cfg in servers.items()
        }
        self._clients: dict[str, McpToolClient] = dict(clients or {})
        self._multi = len(self._servers) > 1
        self._maps = McpNameMaps.build(list(self._servers))
        self._descriptors: list[ToolDescriptor] | None = None
        self._log = get_logger("tornado_agents.mcp")

    @property
    def multi(self) -> bool:
        return self._multi

    @property
    def name_maps(self) -> McpNameMaps:
        return self._maps

    def client_for(self, server_key: str) -> McpToolClient:
        client = self._clients.get(server_key)
        if client is None:
            client = McpServerClient(self._servers[server_key])
            self._clients[server_key] = client
        return client

    async def load(self) -> list[ToolDescriptor]:
        """List and convert tools; cached after the first successful call.

        Listing failures (McpClientError) propagate: a server that cannot be
        reached at startup is a configuration problem, not a tool failure.
        """

        if self._descriptors is not None:
            return list(self._descriptors)

        out: list[ToolDescriptor] = []
        seen: set[str] = set()

        for server_key, cfg in self._servers.items():
            client = self.client_for(server_key)
            allowed = set(cfg.allowed_tools)
            listed = await client.list_tools()

            for tool in listed:
                raw_name = getattr(tool, "name", None)
                if not isinstance(raw_name, str) or not raw_name:
                    continue
                if allowed and raw_name not in allowed:
                    continue

                name = sanitize_tool_name(
                    prefixed_tool_name(server_key=server_key, tool_name=raw_name, maps=self._maps, multi=self._multi)
                )
                if name in seen:
                    raise ToolRegistrationError(f"duplicate model tool name after prefixing: {name!r}")
                seen.add(name)

                out.append(
                    ToolDescriptor(
                        name=name,
                        description=getattr(tool, "description", None) or "",
                        parameters=parameters_from_input_schema(getattr(tool, "inputSchema", None)),
                        binding=RemoteBinding(client=client, remote_name=raw_name, server_key=server_key),
                    )
                )

        self._descriptors = out
        self._log.info("mcp_tools_loaded", servers=len(self._servers), tools=len(out), multi=self._multi)
        return list(out)

    def descriptors(self) -> list[ToolDescriptor]:
        if self._descriptors is None:
            raise RuntimeError("McpGateway not loaded")
        return list(self._descriptors)

    async def register(self, registry: ToolRegistry) -> list[ToolDescriptor]:
        descriptors = await self.load()
        return registry.add_tools(descriptors, namespace=ToolNamespace.MCP)
