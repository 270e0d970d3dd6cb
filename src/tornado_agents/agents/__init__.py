"""Agents and the run loop."""

from __future__ import annotations

from .agent import RunResult, TornadoAgent
from .conversation import Conversation
from .events import (
    CompletedEvent,
    RunEvent,
    RunEventStream,
    RunEventType,
    RunStartedEvent,
    StreamingEvent,
    ToolCompletedEvent,
    ToolInvokedEvent,
)
from .guardrails import GuardrailOutput
from .runner import AgentRunner

__all__ = [
    "AgentRunner",
    "CompletedEvent",
    "Conversation",
    "GuardrailOutput",
    "RunEvent",
    "RunEventStream",
    "RunEventType",
    "RunResult",
    "RunStartedEvent",
    "StreamingEvent",
    "ToolCompletedEvent",
    "ToolInvokedEvent",
    "TornadoAgent",
]
