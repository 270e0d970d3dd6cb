from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Mapping, Union

from tornado_agents.core.types import FunctionCall, FunctionResult, ToolNamespace
from tornado_agents.observability.logging import get_logger

from .arguments import normalize_arguments, parse_arguments_object
from .invoker import invoke_local
from .mcp_bridge import call_remote
from .policy import PolicyError, ToolPolicy
from .postprocess import ToolResultProcessor, apply_result_processor
from .registry import ToolRegistry
from .result_codec import failure_result

# Asked before a tool listed in `permission_required` runs. May be sync or async.
ToolApprover = Callable[[FunctionCall], Union[bool, Awaitable[bool]]]


class ToolRunner:
    """Single dispatch entry point for model-requested tool calls.

    Resolution errors (ToolNotFoundError, and MalformedArgumentsError on the
    MCP path) raise. Everything that happens once a tool has been found is
    reported through the returned FunctionResult.

    Tools mapped to True in `permission_required` run only when `approve`
    returns a truthy value for the call. Without an approver they never run.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        policy: ToolPolicy | None = None,
        result_processor: ToolResultProcessor | None = None,
        permission_required: Mapping[str, bool] | None = None,
        approve: ToolApprover | None = None,
    ) -> None:
        self._registry = registry
        self._policy = policy or ToolPolicy()
        self._result_processor = result_processor
        self._permission_required = dict(permission_required or {})
        self._approve = approve
        self._log = get_logger("tornado_agents.tools")

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def policy(self) -> ToolPolicy:
        return self._policy

    @property
    def permission_required(self) -> dict[str, bool]:
        return dict(self._permission_required)

    async def _approved(self, call: FunctionCall) -> bool:
        if not self._permission_required.get(call.name, False):
            return True
        if self._approve is None:
            return False
        out = self._approve(call)
        if inspect.isawaitable(out):
            out = await out
        return bool(out)

    async def _rejection(self, call: FunctionCall) -> FunctionResult | None:
        try:
            self._policy.check(call.name)
        except PolicyError as e:
            self._log.info("tool_rejected", tool_call_id=call.id, tool=call.name, error_type=e.error_type)
            return failure_result(call, error_type=e.error_type, message=e.message)

        if not await self._approved(call):
            self._log.info("tool_rejected", tool_call_id=call.id, tool=call.name, error_type="permission_denied")
            return failure_result(call, error_type="permission_denied", message=f"Permission to run {call.name} was denied")
        return None

    async def call_function_tool(self, call: FunctionCall) -> FunctionResult:
        descriptor = self._registry.resolve(call.name, ToolNamespace.LOCAL)
        arguments = normalize_arguments(call.arguments)

        result = await self._rejection(call)
        if result is None:
            result = await invoke_local(descriptor, call, arguments)

        return await apply_result_processor(self._result_processor, call, result)

    async def call_mcp_tool(self, call: FunctionCall) -> FunctionResult:
        descriptor = self._registry.resolve(call.name, ToolNamespace.MCP)
        # Malformed arguments raise here, before policy and approval.
        arguments = parse_arguments_object(call.name, normalize_arguments(call.arguments))

        result = await self._rejection(call)
        if result is None:
            result = await call_remote(descriptor, call, arguments)

        return await apply_result_processor(self._result_processor, call, result)

    async def invoke(self, call: FunctionCall) -> FunctionResult:
        if self._registry.namespace_of(call.name) is ToolNamespace.MCP:
            return await self.call_mcp_tool(call)
        return await self.call_function_tool(call)
