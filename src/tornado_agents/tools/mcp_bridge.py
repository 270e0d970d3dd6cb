from __future__ import annotations

import asyncio
from typing import Any

from mcp.types import CallToolResult, TextContent

from tornado_agents.core.types import FunctionCall, FunctionResult, RemoteBinding, ToolDescriptor
from tornado_agents.mcp_client.errors import McpClientError
from tornado_agents.observability.logging import get_logger

from .arguments import parse_arguments_object
from .result_codec import default_success_content, dumps_payload, failure_result, success_result

_log = get_logger("tornado_agents.mcp")


def split_call_result(result: CallToolResult) -> tuple[str, list[dict[str, Any]] | None]:
    """Flatten an MCP tool result into (text, non-text blocks).

    Text blocks are joined with newlines; every other block kind is kept
    as a plain dict so callers can still reach images, audio or resources.
    """

    texts: list[str] = []
    others: list[dict[str, Any]] = []
    for block in result.content or []:
        if isinstance(block, TextContent):
            texts.append(block.text)
        else:
            others.append(block.model_dump(mode="json", exclude_none=True))

    if texts:
        text = "\n".join(texts)
    else:
        structured = getattr(result, "structuredContent", None)
        text = dumps_payload(structured) if structured else ""

    return text, (others or None)


async def resolve_remote(descriptor: ToolDescriptor, call: FunctionCall, normalized_args: str) -> FunctionResult:
    """Execute a call against an MCP-hosted tool.

    Malformed arguments raise MalformedArgumentsError before anything is
    sent. Everything after that (missing binding, transport failure, a
    server-side error result) is reported as a failed FunctionResult.
    """

    return await call_remote(descriptor, call, parse_arguments_object(call.name, normalized_args))


async def call_remote(descriptor: ToolDescriptor, call: FunctionCall, arguments: dict[str, Any]) -> FunctionResult:
    """Send already-parsed arguments to the descriptor's MCP server."""

    binding = descriptor.binding
    if not isinstance(binding, RemoteBinding):
        return failure_result(
            call,
            error_type="no_remote_binding",
            message=f"Tool {call.name} has no MCP server binding",
        )

    meta = {"tool_call_id": call.id, "tool": call.name, "server": binding.server_key, "remote_tool": binding.remote_name}

    try:
        out = await binding.client.call_tool(binding.remote_name, arguments)
    except asyncio.CancelledError:
        raise
    except McpClientError as e:
        _log.warning("mcp_call_failed", **meta, error_type=e.error_type, error=e.message)
        return failure_result(call, error_type=e.error_type, message=e.message, details=e.details)
    except Exception as e:  # noqa: BLE001
        _log.warning("mcp_call_failed", **meta, exc=type(e).__name__, error=str(e))
        return failure_result(
            call,
            error_type="mcp_error",
            message=str(e) or type(e).__name__,
            details={"exc": type(e).__name__},
        )

    text, remote_content = split_call_result(out)

    if out.isError:
        message = text or "MCP tool reported an error"
        _log.info("tool_failed", **meta)
        return failure_result(call, error_type="mcp_tool_error", message=message, remote_content=remote_content)

    _log.info("tool_ok", **meta, blocks=len(out.content or []))
    return success_result(call, text or default_success_content(), remote_content=remote_content)
