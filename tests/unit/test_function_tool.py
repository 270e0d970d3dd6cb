from __future__ import annotations

from typing import Annotated, Any

import pytest
from pydantic import Field, ValidationError

from tornado_agents.core.errors import ToolRegistrationError
from tornado_agents.core.types import LocalBinding
from tornado_agents.tools.function_tool import bind_arguments, function_tool, tool_from_callable


def get_weather(
    latitude: Annotated[float, Field(description="latitude of the location")],
    longitude: float,
    units: str = "metric",
) -> str:
    """Get the current weather in a given location"""
    return f"{latitude},{longitude},{units}"


@function_tool(name="SearchTool", description="search the web")
def search(query: str) -> str:
    return query


def with_extras(city: str, **extra: Any) -> dict:
    return {"city": city, **extra}


def positional(a: int, /, b: int = 2) -> int:
    return a + b


def _binding(fn) -> LocalBinding:
    binding = tool_from_callable(fn).binding
    assert isinstance(binding, LocalBinding)
    return binding


def test_descriptor_from_plain_function() -> None:
    d = tool_from_callable(get_weather)

    assert d.name == "get_weather"
    assert d.description == "Get the current weather in a given location"
    assert isinstance(d.binding, LocalBinding)

    props = d.parameters["properties"]
    assert set(props) == {"latitude", "longitude", "units"}
    assert props["latitude"]["description"] == "latitude of the location"
    assert sorted(d.parameters["required"]) == ["latitude", "longitude"]


def test_decorator_metadata_and_explicit_override() -> None:
    d = tool_from_callable(search)
    assert d.name == "SearchTool"
    assert d.description == "search the web"

    d2 = tool_from_callable(search, name="Other", description="x")
    assert d2.name == "Other"
    assert d2.description == "x"


def test_lambda_needs_explicit_name() -> None:
    with pytest.raises(ToolRegistrationError):
        tool_from_callable(lambda: None)

    d = tool_from_callable(lambda: None, name="noop")
    assert d.name == "noop"
    assert d.parameters["properties"] == {}


def test_invalid_tool_name_rejected() -> None:
    with pytest.raises(ToolRegistrationError):
        tool_from_callable(search, name="bad name")


def test_bind_arguments_applies_defaults_and_coerces() -> None:
    args, kwargs = bind_arguments(_binding(get_weather), {"latitude": "50.1", "longitude": 14.4})

    assert args == []
    assert kwargs == {"latitude": 50.1, "longitude": 14.4, "units": "metric"}


def test_bind_arguments_ignores_unknown_keys() -> None:
    _, kwargs = bind_arguments(_binding(search), {"query": "x", "page": 2})
    assert kwargs == {"query": "x"}


def test_bind_arguments_forwards_extras_to_var_kwargs() -> None:
    _, kwargs = bind_arguments(_binding(with_extras), {"city": "Prague", "units": "imperial"})
    assert kwargs == {"city": "Prague", "units": "imperial"}


def test_bind_arguments_positional_only() -> None:
    args, kwargs = bind_arguments(_binding(positional), {"a": 1})
    assert args == [1]
    assert kwargs == {"b": 2}


def test_bind_arguments_missing_required_raises() -> None:
    with pytest.raises(ValidationError):
        bind_arguments(_binding(get_weather), {"latitude": 1.0})
