from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol, Union

from tornado_agents.core.types import FunctionCall

# Receives each streamed text fragment. May be sync or async.
DeltaHandler = Callable[[str], Union[None, Awaitable[None]]]


@dataclass(frozen=True, slots=True)
class ModelTurn:
    """One assistant response: text plus zero or more function calls."""

    text: str = ""
    tool_calls: list[FunctionCall] = field(default_factory=list)
    finish_reason: str | None = None


class ChatModel(Protocol):
    """The chat-completion surface the agent runner drives.

    `messages` and `tools` are OpenAI-format dicts. With `stream=True`,
    text fragments are handed to `on_delta` as they arrive; the returned
    ModelTurn still carries the full text.
    """

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        response_format: dict[str, Any] | None = None,
        stream: bool = False,
        on_delta: DeltaHandler | None = None,
    ) -> ModelTurn:
        ...


async def emit_delta(on_delta: DeltaHandler | None, text: str) -> None:
    if on_delta is None or not text:
        return
    out = on_delta(text)
    if inspect.isawaitable(out):
        await out
