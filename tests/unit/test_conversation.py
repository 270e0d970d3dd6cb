from __future__ import annotations

from pathlib import Path

import pytest

from tornado_agents.agents.conversation import Conversation
from tornado_agents.core.types import FunctionCall, FunctionResult


def _sample() -> Conversation:
    conv = Conversation()
    conv.set_system("be brief")
    conv.append_user("weather?")
    conv.append_assistant("", [FunctionCall(id="c1", name="GetWeather", arguments='{"latitude":1,"longitude":2}')])
    conv.append_tool_result(FunctionResult(call_id="c1", name="GetWeather", content="sunny"))
    conv.append_assistant("It is sunny.")
    return conv


def test_append_helpers_produce_openai_messages() -> None:
    messages = _sample().messages

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool", "assistant"]
    assert messages[2]["tool_calls"][0]["function"]["name"] == "GetWeather"
    assert messages[3]["tool_call_id"] == "c1"


def test_set_system_replaces_existing() -> None:
    conv = _sample()
    conv.set_system("be verbose")

    assert conv.system_message == "be verbose"
    assert sum(1 for m in conv.messages if m["role"] == "system") == 1


def test_trim_keeps_system_and_drops_orphaned_tool_messages() -> None:
    conv = _sample()
    conv.trim(2)

    assert [m["role"] for m in conv.messages] == ["system", "assistant"]
    assert conv.last_assistant_text() == "It is sunny."


def test_trim_without_system() -> None:
    conv = _sample()
    conv.trim(1, keep_system=False)
    assert [m["role"] for m in conv.messages] == ["assistant"]


def test_append_rejects_roleless_message() -> None:
    with pytest.raises(ValueError):
        Conversation().append({"content": "x"})


def test_messages_are_copies() -> None:
    conv = _sample()
    conv.messages[0]["content"] = "mutated"
    assert conv.system_message == "be brief"


def test_save_and_load(tmp_path: Path) -> None:
    conv = _sample()
    p = tmp_path / "conv.json"

    conv.save(p)
    loaded = Conversation.load(p)

    assert loaded.messages == conv.messages
    assert len(loaded) == 5
