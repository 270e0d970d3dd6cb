from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Keys understood by this project but not by MultiServerMCPClient.
_LOCAL_KEYS = {"allowed_tools", "timeout_s"}


@dataclass(frozen=True, slots=True)
class McpServerConfig:
    """One MCP server entry from `mcp.servers`.

    `connection` is passed to `langchain_mcp_adapters.client.MultiServerMCPClient`
    as-is (`transport: stdio | streamable_http | sse`, plus command/args/env/cwd
    or url/headers).
    """

    server_key: str
    connection: dict[str, Any]
    allowed_tools: list[str] = field(default_factory=list)
    timeout_s: float = 30.0

    @classmethod
    def from_dict(cls, server_key: str, raw: dict[str, Any]) -> "McpServerConfig":
        connection = {k: v for k, v in raw.items() if k not in _LOCAL_KEYS}
        # Normalize transport alias.
        if connection.get("transport") == "http":
            connection["transport"] = "streamable_http"
        return cls(
            server_key=server_key,
            connection=connection,
            allowed_tools=list(raw.get("allowed_tools") or []),
            timeout_s=float(raw.get("timeout_s", 30.0)),
        )
