from __future__ import annotations

from types import SimpleNamespace

from tornado_agents.llm.tool_call_accumulator import ToolCallAccumulator


def _delta(index: int, *, id: str | None = None, name: str | None = None, args: str | None = None) -> dict:
    fn: dict = {}
    if name is not None:
        fn["name"] = name
    if args is not None:
        fn["arguments"] = args
    out: dict = {"index": index, "function": fn}
    if id is not None:
        out["id"] = id
    return out


def test_accumulator_joins_fragmented_args_by_index() -> None:
    acc = ToolCallAccumulator()

    acc.add_delta([_delta(0, id="call_1", name="echo", args='{"text": "h')])
    acc.add_delta([_delta(0, args='i"}')])

    calls = acc.finalize()

    assert len(calls) == 1
    assert calls[0].id == "call_1"
    assert calls[0].name == "echo"
    assert calls[0].arguments == '{"text": "hi"}'
    assert calls[0].index == 0


def test_accumulator_keeps_invalid_json_raw() -> None:
    acc = ToolCallAccumulator()

    acc.add_delta([_delta(0, id="call_1", name="echo", args='{"text":')])

    calls = acc.finalize()

    assert len(calls) == 1
    assert calls[0].arguments == '{"text":'


def test_accumulator_orders_by_index_and_interleaves() -> None:
    acc = ToolCallAccumulator()

    acc.add_delta([_delta(1, id="call_b", name="second", args="{")])
    acc.add_delta([_delta(0, id="call_a", name="first", args="{}")])
    acc.add_delta([_delta(1, args="}")])

    calls = acc.finalize()

    assert [c.name for c in calls] == ["first", "second"]
    assert [c.index for c in calls] == [0, 1]
    assert calls[1].arguments == "{}"


def test_accumulator_missing_args_is_none() -> None:
    acc = ToolCallAccumulator()
    acc.add_delta([_delta(0, id="call_1", name="list_dirs")])

    calls = acc.finalize()
    assert calls[0].arguments is None


def test_accumulator_drops_nameless_calls_and_generates_ids() -> None:
    acc = ToolCallAccumulator()
    acc.add_delta([_delta(0, args="{}"), _delta(1, name="ok", args="{}")])

    calls = acc.finalize()

    assert len(calls) == 1
    assert calls[0].name == "ok"
    assert calls[0].id.startswith("call_")
    assert calls[0].index == 0


def test_accumulator_reads_sdk_objects() -> None:
    acc = ToolCallAccumulator()
    acc.add_delta(
        [
            SimpleNamespace(
                index=0,
                id="call_1",
                function=SimpleNamespace(name="search", arguments='{"query": "x"}'),
            )
        ]
    )

    calls = acc.finalize()
    assert calls[0].name == "search"
    assert calls[0].arguments == '{"query": "x"}'
