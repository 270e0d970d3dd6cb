"""Chat model adapters."""

from __future__ import annotations

from .base import ChatModel, DeltaHandler, ModelTurn
from .fake import ScriptedChatModel, scripted_call, tool_turn
from .openai_compat import OpenAICompatChatModel
from .tool_call_accumulator import ToolCallAccumulator

__all__ = [
    "ChatModel",
    "DeltaHandler",
    "ModelTurn",
    "OpenAICompatChatModel",
    "ScriptedChatModel",
    "ToolCallAccumulator",
    "scripted_call",
    "tool_turn",
]
