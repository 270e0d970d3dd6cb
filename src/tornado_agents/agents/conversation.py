from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator

from tornado_agents.core.types import FunctionCall, FunctionResult
from tornado_agents.tools.tool_messages import assistant_message_with_tool_calls, tool_message_from_result


class Conversation:
    """Ordered OpenAI-format chat messages for one run (or several, when reused).

    Messages are plain dicts: `{"role": "system" | "user" | "assistant" | "tool", ...}`.
    """

    def __init__(self, messages: Iterable[dict[str, Any]] | None = None) -> None:
        self._messages: list[dict[str, Any]] = [dict(m) for m in (messages or [])]

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [dict(m) for m in self._messages]

    @property
    def system_message(self) -> str | None:
        for m in self._messages:
            if m.get("role") == "system":
                return m.get("content")
        return None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.messages)

    def append(self, message: dict[str, Any]) -> None:
        if not isinstance(message, dict) or not message.get("role"):
            raise ValueError("message must be a dict with a role")
        self._messages.append(dict(message))

    def set_system(self, text: str) -> None:
        """Replace the system message, or insert one at the front."""

        for i, m in enumerate(self._messages):
            if m.get("role") == "system":
                self._messages[i] = {"role": "system", "content": text}
                return
        self._messages.insert(0, {"role": "system", "content": text})

    def append_user(self, text: str) -> None:
        self.append({"role": "user", "content": text})

    def append_assistant(self, text: str, tool_calls: list[FunctionCall] | None = None) -> None:
        self.append(assistant_message_with_tool_calls(text, list(tool_calls or [])))

    def append_tool_result(self, result: FunctionResult) -> None:
        self.append(tool_message_from_result(result))

    def last_assistant_text(self) -> str:
        for m in reversed(self._messages):
            if m.get("role") == "assistant":
                return str(m.get("content") or "")
        return ""

    def trim(self, max_messages: int, *, keep_system: bool = True) -> None:
        """Keep the last `max_messages` non-system messages.

        Tool messages orphaned from their assistant message at the cut are
        dropped too; providers reject a tool message without its call.
        """

        if max_messages < 0:
            raise ValueError("max_messages must be >= 0")

        system = [m for m in self._messages if m.get("role") == "system"][:1] if keep_system else []
        rest = [m for m in self._messages if m.get("role") != "system"]
        kept = rest[-max_messages:] if max_messages else []
        while kept and kept[0].get("role") == "tool":
            kept.pop(0)
        self._messages = system + kept

    def to_json(self) -> str:
        return json.dumps({"messages": self._messages}, ensure_ascii=False, indent=2)

    @classmethod
    def from_json(cls, text: str) -> "Conversation":
        data = json.loads(text)
        messages = data.get("messages") if isinstance(data, dict) else data
        if not isinstance(messages, list):
            raise ValueError("conversation JSON must hold a list of messages")
        return cls(messages)

    def save(self, path: str | Path) -> None:
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "Conversation":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
