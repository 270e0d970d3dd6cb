from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from tornado_agents.core.types import FunctionCall, FunctionResult


def _is_json_primitive(obj: Any) -> bool:
    return obj is None or isinstance(obj, (str, int, float, bool))


def _is_json_friendly(obj: Any) -> bool:
    if _is_json_primitive(obj):
        return True
    if isinstance(obj, (list, tuple)):
        return all(_is_json_friendly(v) for v in obj)
    if isinstance(obj, dict):
        return all(isinstance(k, str) and _is_json_friendly(v) for k, v in obj.items())
    return False


def dumps_payload(payload: Any) -> str:
    """Serialize a payload for tool message content.

    Content should always be a JSON string, never a Python repr.
    """

    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def default_success_content() -> str:
    """Content for a successful call whose delegate returned nothing."""

    return dumps_payload({"result": "ok"})


def error_content(message: str) -> str:
    return dumps_payload({"error": str(message)})


def content_from_output(output: Any) -> str:
    """Turn a delegate's return value into model-facing text."""

    if output is None:
        return default_success_content()

    if isinstance(output, str):
        return output

    if isinstance(output, BaseModel):
        return output.model_dump_json()

    if _is_json_friendly(output):
        return dumps_payload(output)

    # Unknown/complex object
    return dumps_payload({"value": repr(output)})


def normalize_error(*, error_type: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    err: dict[str, Any] = {
        "type": str(error_type),
        "message": str(message),
        "details": details or {},
    }

    # Flat detail_* fields for log aggregation.
    for k, v in (details or {}).items():
        err[f"detail_{k}"] = str(v)

    return err


def success_result(
    call: FunctionCall,
    output: Any,
    *,
    remote_content: list[dict[str, Any]] | None = None,
) -> FunctionResult:
    return FunctionResult(
        call_id=call.id,
        name=call.name,
        content=content_from_output(output),
        invocation_succeeded=True,
        remote_content=remote_content,
    )


def failure_result(
    call: FunctionCall,
    *,
    error_type: str,
    message: str,
    details: dict[str, Any] | None = None,
    content: str | None = None,
    remote_content: list[dict[str, Any]] | None = None,
) -> FunctionResult:
    """Build a failed result. `content` defaults to `{"error": message}`."""

    return FunctionResult(
        call_id=call.id,
        name=call.name,
        content=content if content is not None else error_content(message),
        invocation_succeeded=False,
        error=normalize_error(error_type=error_type, message=message, details=details),
        remote_content=remote_content,
    )
