"""Streaming tool-call accumulator.

OpenAI-compatible streaming delivers tool calls in fragments: the first
fragment of a call carries its `id` and function name, later ones usually
only the `index` and another slice of the argument text.

Argument text is kept raw. It is not required to be valid JSON here;
normalization and validation happen at dispatch time, where a malformed
payload can be reported back to the model instead of being dropped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from tornado_agents.core.types import FunctionCall
from tornado_agents.observability.ids import new_call_id
from tornado_agents.observability.logging import get_logger


@dataclass(slots=True)
class _AccumulatedToolCall:
    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""
    last_json_error: str | None = None


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


class ToolCallAccumulator:
    """Accumulate streamed tool_call fragments into FunctionCalls.

    Fragments are keyed by `index`; a fragment without an index is matched
    by `id`, and failing that starts a new call.
    """

    def __init__(self) -> None:
        self._calls: dict[int, _AccumulatedToolCall] = {}
        self._log = get_logger("tornado_agents.llm")

    def _slot_for(self, tc: Any) -> _AccumulatedToolCall:
        index = _field(tc, "index")
        if isinstance(index, int):
            return self._calls.setdefault(index, _AccumulatedToolCall(index=index))

        tc_id = _field(tc, "id")
        if tc_id:
            for acc in self._calls.values():
                if acc.id == tc_id:
                    return acc

        next_index = max(self._calls, default=-1) + 1
        return self._calls.setdefault(next_index, _AccumulatedToolCall(index=next_index))

    def add_delta(self, delta_tool_calls: list[Any]) -> None:
        """Consume the `tool_calls` list of one streamed delta.

        Items may be dicts or SDK objects with the same shape:
        `{"index": int, "id": str, "function": {"name": str, "arguments": str}}`.
        """

        for tc in delta_tool_calls:
            acc = self._slot_for(tc)

            tc_id = _field(tc, "id")
            if isinstance(tc_id, str) and tc_id and not acc.id:
                acc.id = tc_id

            fn = _field(tc, "function")
            if fn is None:
                continue

            name = _field(fn, "name")
            if isinstance(name, str) and name and not acc.name:
                acc.name = name

            args = _field(fn, "arguments")
            if isinstance(args, str) and args:
                acc.arguments += args
                self._track_json_error(acc)

    def _track_json_error(self, acc: _AccumulatedToolCall) -> None:
        # Diagnostics only; partial JSON is never used.
        try:
            json.loads(acc.arguments)
            acc.last_json_error = None
        except json.JSONDecodeError as e:
            acc.last_json_error = f"{e.msg} (pos={e.pos})"

    def finalize(self) -> list[FunctionCall]:
        """All accumulated calls, in index order.

        Calls that never received a function name are dropped (and logged);
        calls without an id get a generated one.
        """

        out: list[FunctionCall] = []
        for index in sorted(self._calls):
            acc = self._calls[index]
            if not acc.name:
                self._log.warning("tool_call_dropped", index=acc.index, tool_call_id=acc.id, reason="missing name")
                continue
            if acc.last_json_error:
                self._log.debug("tool_call_args_not_json", tool=acc.name, json_error=acc.last_json_error)
            out.append(
                FunctionCall(
                    id=acc.id or new_call_id(),
                    name=acc.name,
                    arguments=acc.arguments or None,
                    index=len(out),
                )
            )
        return out
