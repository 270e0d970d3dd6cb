from __future__ import annotations

import threading
from typing import Any, Callable, Iterable

from tornado_agents.core.errors import ToolNotFoundError, ToolRegistrationError
from tornado_agents.core.types import RemoteBinding, ToolDescriptor, ToolNamespace
from tornado_agents.observability.logging import get_logger

from .function_tool import tool_from_callable


def _as_descriptor(tool: ToolDescriptor | Callable[..., Any]) -> ToolDescriptor:
    if isinstance(tool, ToolDescriptor):
        return tool
    return tool_from_callable(tool)


class ToolRegistry:
    """Name -> ToolDescriptor lookup across two disjoint namespaces.

    Local tools (functions, agents-as-tools) and MCP tools are kept apart; a
    name lives in exactly one namespace. Registration is additive and may
    happen before or between runs; it is serialized with a lock so that
    concurrent resolution always sees a consistent table.
    """

    def __init__(self, tools: Iterable[ToolDescriptor | Callable[..., Any]] | None = None) -> None:
        self._lock = threading.RLock()
        self._tools: dict[ToolNamespace, dict[str, ToolDescriptor]] = {ns: {} for ns in ToolNamespace}
        self._log = get_logger("tornado_agents.tools")
        if tools:
            self.add_tools(tools)

    def add_tool(
        self,
        tool: ToolDescriptor | Callable[..., Any],
        *,
        namespace: ToolNamespace | None = None,
    ) -> ToolDescriptor:
        descriptor = _as_descriptor(tool)

        if descriptor.binding is None:
            raise ToolRegistrationError(f"tool {descriptor.name!r} has no local or remote binding")

        if namespace is None:
            namespace = ToolNamespace.MCP if isinstance(descriptor.binding, RemoteBinding) else ToolNamespace.LOCAL

        with self._lock:
            for ns, table in self._tools.items():
                if descriptor.name in table:
                    raise ToolRegistrationError(
                        f"tool {descriptor.name!r} is already registered in the {ns.value} namespace"
                    )
            self._tools[namespace][descriptor.name] = descriptor

        self._log.debug("tool_registered", tool=descriptor.name, namespace=namespace.value)
        return descriptor

    def add_tools(
        self,
        tools: Iterable[ToolDescriptor | Callable[..., Any]],
        *,
        namespace: ToolNamespace | None = None,
    ) -> list[ToolDescriptor]:
        return [self.add_tool(t, namespace=namespace) for t in tools]

    def resolve(self, name: str, namespace: ToolNamespace) -> ToolDescriptor:
        """Exact, case-sensitive lookup within one namespace."""

        with self._lock:
            descriptor = self._tools[namespace].get(name)
        if descriptor is None:
            raise ToolNotFoundError(name, namespace=namespace.value)
        return descriptor

    def namespace_of(self, name: str) -> ToolNamespace:
        """The namespace a tool was registered in; this picks its dispatch path."""

        with self._lock:
            for ns, table in self._tools.items():
                if name in table:
                    return ns
        raise ToolNotFoundError(name)

    def descriptors(self, namespace: ToolNamespace | None = None) -> list[ToolDescriptor]:
        with self._lock:
            if namespace is not None:
                return list(self._tools[namespace].values())
            return [d for table in self._tools.values() for d in table.values()]

    def names(self, namespace: ToolNamespace | None = None) -> list[str]:
        return [d.name for d in self.descriptors(namespace)]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return any(name in table for table in self._tools.values())

    def __len__(self) -> int:
        with self._lock:
            return sum(len(table) for table in self._tools.values())

