from __future__ import annotations

import asyncio
import json

import pytest

from tornado_agents.core.errors import ToolNotFoundError
from tornado_agents.core.types import FunctionCall, FunctionResult, RemoteBinding, ToolDescriptor, ToolNamespace
from tornado_agents.tools.invoker import NO_DELEGATE_CONTENT, ToolRejected
from tornado_agents.tools.policy import ToolPolicy
from tornado_agents.tools.registry import ToolRegistry
from tornado_agents.tools.runner import ToolRunner


def ListAllowedDirectories() -> str:
    return "Allowed directories:\n/home/user/projects"


def GetCurrentTime(timezone: str | None = None) -> str:
    return f"12:00 {timezone or 'UTC'}"


async def Search(query: str) -> dict:
    await asyncio.sleep(0)
    return {"query": query, "hits": 3}


def GetWeather(latitude: float, longitude: float, units: str = "metric") -> str:
    return f"22 degrees at {latitude},{longitude} ({units})"


def Explode() -> str:
    raise RuntimeError("kaboom")


def Reject() -> str:
    raise ToolRejected("quota", "daily quota used up", details={"limit": "10"})


def ReportFailure() -> FunctionResult:
    return FunctionResult(call_id="ignored", name="ignored", content="disk full", invocation_succeeded=False)


def _runner(**kwargs) -> ToolRunner:
    registry = ToolRegistry([ListAllowedDirectories, GetCurrentTime, Search, GetWeather, Explode, Reject, ReportFailure])
    return ToolRunner(registry, **kwargs)


def _call(name: str, arguments: str | None = None) -> FunctionCall:
    return FunctionCall(id=f"call_{name}", name=name, arguments=arguments)


@pytest.mark.parametrize("raw", [None, "", "   \t\n  ", "null", "undefined", "[]", "{}"])
def test_zero_parameter_tool_accepts_every_empty_form(raw: str | None) -> None:
    r = asyncio.run(_runner().invoke(_call("ListAllowedDirectories", raw)))

    assert r.invocation_succeeded is True
    assert "/home/user/projects" in r.content
    assert r.call_id == "call_ListAllowedDirectories"


def test_optional_parameter_default_and_supplied() -> None:
    runner = _runner()

    r1 = asyncio.run(runner.invoke(_call("GetCurrentTime", None)))
    r2 = asyncio.run(runner.invoke(_call("GetCurrentTime", '{"timezone": "PST"}')))

    assert r1.content == "12:00 UTC"
    assert r2.content == "12:00 PST"


def test_required_parameter_async_tool() -> None:
    r = asyncio.run(_runner().invoke(_call("Search", '{"query": "tornado"}')))

    assert r.invocation_succeeded is True
    assert json.loads(r.content) == {"query": "tornado", "hits": 3}


def test_get_weather_default_and_explicit_units() -> None:
    runner = _runner()

    r1 = asyncio.run(runner.invoke(_call("GetWeather", '{"latitude":42.0,"longitude":-71.0}')))
    r2 = asyncio.run(runner.invoke(_call("GetWeather", '{"latitude":42.0,"longitude":-71.0,"units":"imperial"}')))

    assert r1.invocation_succeeded and "metric" in r1.content
    assert r2.invocation_succeeded and "imperial" in r2.content


def test_unknown_tool_raises_naming_the_tool() -> None:
    with pytest.raises(ToolNotFoundError) as ei:
        asyncio.run(_runner().invoke(_call("DoesNotExist", "{}")))

    assert "DoesNotExist" in str(ei.value)

    with pytest.raises(ToolNotFoundError):
        asyncio.run(_runner().call_function_tool(_call("DoesNotExist")))


def test_missing_required_argument_is_failed_result() -> None:
    r = asyncio.run(_runner().invoke(_call("Search", "{}")))

    assert r.invocation_succeeded is False
    assert r.error and r.error["type"] == "invalid_arguments"
    assert "error" in json.loads(r.content)


def test_malformed_local_arguments_are_failed_result() -> None:
    r = asyncio.run(_runner().invoke(_call("Search", "{not json")))

    assert r.invocation_succeeded is False
    assert r.error and r.error["type"] == "malformed_arguments"


def test_delegate_exception_becomes_failure() -> None:
    r = asyncio.run(_runner().invoke(_call("Explode")))

    assert r.invocation_succeeded is False
    assert json.loads(r.content) == {"error": "kaboom"}
    assert r.error and r.error["type"] == "RuntimeError"


def test_tool_rejected_keeps_error_type() -> None:
    r = asyncio.run(_runner().invoke(_call("Reject")))

    assert r.invocation_succeeded is False
    assert r.error and r.error["type"] == "quota"
    assert r.error["detail_limit"] == "10"


def test_delegate_set_failed_result_is_rekeyed() -> None:
    r = asyncio.run(_runner().invoke(_call("ReportFailure")))

    assert r.invocation_succeeded is False
    assert r.call_id == "call_ReportFailure"
    assert r.name == "ReportFailure"
    assert r.content == "disk full"
    assert r.error and r.error["type"] == "tool_failed"


class _UnusedClient:
    server_key = "x"

    async def list_tools(self) -> list:  # pragma: no cover
        return []

    async def call_tool(self, name: str, args: dict):  # pragma: no cover
        raise AssertionError("not called")


def test_local_namespace_descriptor_without_delegate() -> None:
    registry = ToolRegistry()
    registry.add_tool(
        ToolDescriptor(name="Orphan", binding=RemoteBinding(client=_UnusedClient(), remote_name="Orphan")),
        namespace=ToolNamespace.LOCAL,
    )

    r = asyncio.run(ToolRunner(registry).invoke(_call("Orphan")))

    assert r.invocation_succeeded is False
    assert r.content == NO_DELEGATE_CONTENT


def test_result_processor_runs_once_and_can_mutate() -> None:
    seen: list[str] = []

    def processor(tool_name: str, result: FunctionResult, call: FunctionCall) -> None:
        seen.append(call.id)
        result.content += " [checked]"

    r = asyncio.run(_runner(result_processor=processor).invoke(_call("GetCurrentTime")))

    assert seen == ["call_GetCurrentTime"]
    assert r.content == "12:00 UTC [checked]"


def test_async_result_processor_can_replace() -> None:
    async def processor(tool_name: str, result: FunctionResult, call: FunctionCall) -> FunctionResult:
        return FunctionResult(call_id=result.call_id, name=tool_name, content="replaced")

    r = asyncio.run(_runner(result_processor=processor).invoke(_call("Explode")))
    assert r.content == "replaced"


def test_result_processor_exception_propagates() -> None:
    def processor(tool_name: str, result: FunctionResult, call: FunctionCall) -> None:
        raise ValueError("processor bug")

    with pytest.raises(ValueError):
        asyncio.run(_runner(result_processor=processor).invoke(_call("GetCurrentTime")))


def test_policy_rejections_are_failed_results() -> None:
    runner = _runner(policy=ToolPolicy(whitelist=["Search"]))
    r = asyncio.run(runner.invoke(_call("GetCurrentTime")))
    assert r.invocation_succeeded is False
    assert r.error and r.error["type"] == "not_allowed"

    runner = _runner(policy=ToolPolicy(enabled=False))
    r = asyncio.run(runner.invoke(_call("GetCurrentTime")))
    assert r.error and r.error["type"] == "tools_disabled"


def test_tools_needing_permission_run_only_when_approved() -> None:
    asked: list[str] = []

    async def approve(call: FunctionCall) -> bool:
        asked.append(call.name)
        return call.arguments == '{"timezone": "CET"}'

    runner = _runner(permission_required={"GetCurrentTime": True, "Search": False}, approve=approve)

    approved = asyncio.run(runner.invoke(_call("GetCurrentTime", '{"timezone": "CET"}')))
    denied = asyncio.run(runner.invoke(_call("GetCurrentTime", '{"timezone": "PST"}')))
    free = asyncio.run(runner.invoke(_call("Search", '{"query": "q"}')))

    assert approved.invocation_succeeded is True
    assert approved.content == "12:00 CET"
    assert denied.invocation_succeeded is False
    assert denied.error and denied.error["type"] == "permission_denied"
    assert "GetCurrentTime" in json.loads(denied.content)["error"]
    assert free.invocation_succeeded is True
    assert asked == ["GetCurrentTime", "GetCurrentTime"]


def test_permission_required_without_approver_denies() -> None:
    ran: list[str] = []

    def DeleteData() -> str:
        ran.append("deleted")
        return "deleted"

    runner = ToolRunner(ToolRegistry([DeleteData]), permission_required={"DeleteData": True}, approve=None)

    r = asyncio.run(runner.invoke(_call("DeleteData")))

    assert r.error and r.error["type"] == "permission_denied"
    assert ran == []


def test_sync_approver_is_accepted() -> None:
    runner = _runner(permission_required={"GetCurrentTime": True}, approve=lambda call: True)

    r = asyncio.run(runner.invoke(_call("GetCurrentTime")))

    assert r.content == "12:00 UTC"
