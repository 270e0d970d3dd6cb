"""Tool invocation core: registration, argument handling and dispatch."""

from __future__ import annotations

from .arguments import normalize_arguments, parse_arguments_object
from .function_tool import function_tool, tool_from_callable
from .invoker import ToolRejected, invoke_local
from .mcp_bridge import resolve_remote
from .mcp_gateway import McpGateway
from .policy import PolicyError, ToolPolicy
from .postprocess import ToolResultProcessor, apply_result_processor
from .registry import ToolRegistry
from .runner import ToolApprover, ToolRunner
from .tool_specs import get_openai_tool_specs

__all__ = [
    "McpGateway",
    "PolicyError",
    "ToolPolicy",
    "ToolRegistry",
    "ToolApprover",
    "ToolRejected",
    "ToolResultProcessor",
    "ToolRunner",
    "apply_result_processor",
    "function_tool",
    "get_openai_tool_specs",
    "invoke_local",
    "normalize_arguments",
    "parse_arguments_object",
    "resolve_remote",
    "tool_from_callable",
]
