from __future__ import annotations

import asyncio
import inspect
from typing import Any

from pydantic import ValidationError

from tornado_agents.core.errors import MalformedArgumentsError
from tornado_agents.core.types import FunctionCall, FunctionResult, LocalBinding, ToolDescriptor
from tornado_agents.observability.logging import get_logger

from .arguments import parse_arguments_object
from .function_tool import bind_arguments
from .result_codec import error_content, failure_result, normalize_error, success_result

NO_DELEGATE_CONTENT = "Error No Delegate found"

_log = get_logger("tornado_agents.tools")


class ToolRejected(RuntimeError):
    """Structured tool rejection.

    Raise this from a tool handler to fail with a normalized error type
    rather than an arbitrary exception.
    """

    def __init__(
        self,
        error_type: str,
        message: str,
        *,
        details: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details or {}


def _adopt_delegate_result(call: FunctionCall, out: FunctionResult) -> FunctionResult:
    # A handler may build its own FunctionResult; re-key it to this call.
    out.call_id = call.id
    out.name = call.name
    if not out.invocation_succeeded:
        if not out.content:
            out.content = error_content("tool reported failure")
        if out.error is None:
            out.error = normalize_error(error_type="tool_failed", message=out.content)
    return out


async def invoke_local(descriptor: ToolDescriptor, call: FunctionCall, normalized_args: str) -> FunctionResult:
    """Execute a call against a delegate-backed tool.

    Failures are reported as data (invocation_succeeded=False), never raised;
    only task cancellation propagates.
    """

    binding = descriptor.binding
    if not isinstance(binding, LocalBinding):
        return failure_result(
            call,
            error_type="no_delegate",
            message=NO_DELEGATE_CONTENT,
            content=NO_DELEGATE_CONTENT,
        )

    meta = {"tool_call_id": call.id, "tool": call.name}

    try:
        arguments = parse_arguments_object(call.name, normalized_args)
        args, kwargs = bind_arguments(binding, arguments)
    except MalformedArgumentsError as e:
        _log.info("tool_bad_arguments", **meta, reason=e.reason)
        return failure_result(call, error_type="malformed_arguments", message=str(e))
    except ValidationError as e:
        _log.info("tool_bad_arguments", **meta, error_count=e.error_count())
        return failure_result(
            call,
            error_type="invalid_arguments",
            message=f"Invalid arguments for {call.name}: {e}",
            details={"errors": str(e.error_count())},
        )

    try:
        out: Any = binding.handler(*args, **kwargs)
        if inspect.isawaitable(out):
            out = await out
    except asyncio.CancelledError:
        raise
    except ToolRejected as e:
        _log.info("tool_rejected", **meta, error_type=e.error_type)
        return failure_result(call, error_type=e.error_type, message=e.message, details=e.details)
    except Exception as e:  # noqa: BLE001
        _log.warning("tool_failed", **meta, exc=type(e).__name__, error=str(e))
        return failure_result(
            call,
            error_type=type(e).__name__,
            message=str(e) or type(e).__name__,
            details={"exc": type(e).__name__},
        )

    if isinstance(out, FunctionResult):
        result = _adopt_delegate_result(call, out)
    else:
        result = success_result(call, out)

    _log.info("tool_ok" if result.invocation_succeeded else "tool_failed", **meta)
    return result
