from __future__ import annotations

from typing import Any

from tornado_agents.core.types import FunctionCall, FunctionResult

from .arguments import normalize_arguments


def tool_message_from_result(r: FunctionResult) -> dict[str, Any]:
    """Build an OpenAI-compatible tool message from a FunctionResult.

    `name` is kept for providers that still read it on tool messages.
    """

    return {
        "role": "tool",
        "tool_call_id": r.call_id,
        "name": r.name,
        "content": r.content,
    }


def assistant_message_with_tool_calls(text: str, calls: list[FunctionCall]) -> dict[str, Any]:
    """Echo a model turn back into the conversation.

    Arguments are echoed normalized: providers reject a null/blank
    `arguments` field on replay.
    """

    msg: dict[str, Any] = {"role": "assistant", "content": text or None}
    if calls:
        msg["tool_calls"] = [
            {
                "id": c.id,
                "type": "function",
                "function": {"name": c.name, "arguments": normalize_arguments(c.arguments)},
            }
            for c in calls
        ]
    return msg
