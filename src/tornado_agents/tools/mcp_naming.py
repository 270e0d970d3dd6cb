from __future__ import annotations

import hashlib
from dataclasses import dataclass

PREFIX_SEPARATOR = "__"


@dataclass(frozen=True, slots=True)
class McpNameMaps:
    """Stable server_key <-> prefix mapping for multi-server setups."""

    server_to_prefix: dict[str, str]
    prefix_to_server: dict[str, str]

    @classmethod
    def build(cls, server_keys: list[str]) -> "McpNameMaps":
        server_to_prefix: dict[str, str] = {}
        taken: set[str] = set()

        for key in server_keys:
            salt = 0
            prefix = server_prefix(key)
            while prefix in taken:
                salt += 1
                prefix = server_prefix(f"{key}#{salt}")
            taken.add(prefix)
            server_to_prefix[key] = prefix

        return cls(
            server_to_prefix=server_to_prefix,
            prefix_to_server={p: k for k, p in server_to_prefix.items()},
        )


def server_prefix(server_key: str) -> str:
    """Four characters derived from the server key.

    Starts with a lowercase letter and is the same in every process.
    """

    digest = hashlib.blake2s(server_key.encode("utf-8"), digest_size=2).digest()
    n = int.from_bytes(digest, "big")
    return chr(ord("a") + n % 26) + f"{n:04x}"[-3:]


def prefixed_tool_name(*, server_key: str, tool_name: str, maps: McpNameMaps, multi: bool) -> str:
    if not multi:
        return tool_name
    return f"{maps.server_to_prefix[server_key]}{PREFIX_SEPARATOR}{tool_name}"


def split_prefixed_tool_name(name: str, *, maps: McpNameMaps) -> tuple[str, str]:
    """Inverse of `prefixed_tool_name` for multi-server names: (server_key, tool_name)."""

    prefix, sep, tool_name = name.partition(PREFIX_SEPARATOR)
    if not sep or not prefix or not tool_name:
        raise ValueError(f"not a prefixed MCP tool name: {name!r}")

    server_key = maps.prefix_to_server.get(prefix)
    if server_key is None:
        raise ValueError(f"unknown tool prefix: {prefix!r}")
    return server_key, tool_name
