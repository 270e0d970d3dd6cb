"""tornado-agents: tool-calling LLM agents over OpenAI-compatible chat APIs."""

from __future__ import annotations

from .agents import Conversation, GuardrailOutput, RunResult, TornadoAgent
from .core import __version__
from .core.types import FunctionCall, FunctionResult, ToolDescriptor, ToolNamespace
from .tools import ToolRegistry, ToolRejected, function_tool, tool_from_callable

__all__ = [
    "Conversation",
    "FunctionCall",
    "FunctionResult",
    "GuardrailOutput",
    "RunResult",
    "ToolDescriptor",
    "ToolNamespace",
    "ToolRegistry",
    "ToolRejected",
    "TornadoAgent",
    "__version__",
    "function_tool",
    "tool_from_callable",
]
