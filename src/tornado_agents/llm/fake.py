"""Offline chat model for tests and `--fake` CLI runs."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable, Union

from tornado_agents.core.types import FunctionCall
from tornado_agents.observability.ids import new_call_id

from .base import DeltaHandler, ModelTurn, emit_delta

ScriptStep = Union[ModelTurn, str, Callable[[list[dict[str, Any]]], ModelTurn]]


def scripted_call(name: str, arguments: str | dict[str, Any] | None = None, *, call_id: str | None = None) -> FunctionCall:
    """A FunctionCall for a script; dict arguments are JSON-encoded."""

    if isinstance(arguments, dict):
        arguments = json.dumps(arguments)
    return FunctionCall(id=call_id or new_call_id(), name=name, arguments=arguments)


def tool_turn(*calls: FunctionCall, text: str = "") -> ModelTurn:
    """A turn requesting `calls`, re-indexed in the given order."""

    indexed = [FunctionCall(id=c.id, name=c.name, arguments=c.arguments, index=i) for i, c in enumerate(calls)]
    return ModelTurn(text=text, tool_calls=indexed, finish_reason="tool_calls")


class ScriptedChatModel:
    """Replays scripted turns in order.

    A step is a ModelTurn, plain text (a final answer), or a callable that
    receives the request messages and returns a ModelTurn. Every request is
    recorded in `requests`. When the script runs out, `default` is replayed;
    without a default the model raises RuntimeError.
    """

    def __init__(
        self,
        script: Iterable[ScriptStep] = (),
        *,
        default: ScriptStep | None = None,
        chunk_size: int = 8,
    ) -> None:
        self._script = list(script)
        self._default = default
        self._chunk_size = max(1, int(chunk_size))
        self.requests: list[dict[str, Any]] = []

    @property
    def remaining(self) -> int:
        return len(self._script)

    def _next_turn(self, messages: list[dict[str, Any]]) -> ModelTurn:
        if self._script:
            step = self._script.pop(0)
        elif self._default is not None:
            step = self._default
        else:
            raise RuntimeError("ScriptedChatModel has no scripted turns left")

        if isinstance(step, ModelTurn):
            return step
        if isinstance(step, str):
            return ModelTurn(text=step, finish_reason="stop")
        return step(messages)

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
        self.requests.append(
            {
                "messages": [dict(m) for m in messages],
                "tools": list(tools or []),
                "tool_choice": tool_choice,
                "response_format": response_format,
                "stream": stream,
            }
        )

        turn = self._next_turn(messages)
        if stream:
            for i in range(0, len(turn.text), self._chunk_size):
                await emit_delta(on_delta, turn.text[i : i + self._chunk_size])
        return turn
