from __future__ import annotations

from typing import Any

from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel

from tornado_agents.core.types import ToolDescriptor

_EMPTY_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}


def parameters_from_model(model: type[BaseModel]) -> dict[str, Any]:
    """JSON Schema `parameters` object for an arguments model.

    We prefer LangChain's own converter, which strips pydantic titles and
    inlines definitions the way function-calling APIs expect.
    """

    try:
        spec = convert_to_openai_tool(model)
        parameters = spec.get("function", {}).get("parameters")
    except (TypeError, ValueError, KeyError):
        parameters = None

    if not isinstance(parameters, dict):
        parameters = model.model_json_schema()

    if parameters.get("type") != "object":
        return dict(_EMPTY_PARAMETERS)
    parameters.setdefault("properties", {})
    return parameters


def parameters_from_input_schema(schema: Any) -> dict[str, Any]:
    """Use an MCP tool's `inputSchema` as-is when it is an object schema."""

    if isinstance(schema, dict) and schema.get("type") == "object":
        out = dict(schema)
        out.setdefault("properties", {})
        return out
    return dict(_EMPTY_PARAMETERS)


def tool_to_openai_spec(descriptor: ToolDescriptor) -> dict[str, Any]:
    """OpenAI-compatible tool spec:

    {
      "type": "function",
      "function": {"name": ..., "description": ..., "parameters": {...JSON Schema...}}
    }
    """

    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description or "",
            "parameters": descriptor.parameters or dict(_EMPTY_PARAMETERS),
        },
    }


def get_openai_tool_specs(descriptors: list[ToolDescriptor]) -> list[dict[str, Any]]:
    return [tool_to_openai_spec(d) for d in descriptors]
