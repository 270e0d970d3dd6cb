from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Union

from tornado_agents.core.types import FunctionCall, FunctionResult

# processor(tool_name, result, call): mutate `result` in place and return None,
# or return a replacement FunctionResult. May be sync or async.
ToolResultProcessor = Callable[
    [str, FunctionResult, FunctionCall],
    Union[FunctionResult, None, Awaitable[Union[FunctionResult, None]]],
]


async def apply_result_processor(
    processor: ToolResultProcessor | None,
    call: FunctionCall,
    result: FunctionResult,
) -> FunctionResult:
    """Run the agent's result processor once for a completed call.

    Exceptions raised by the processor are not tool failures and propagate.
    """

    if processor is None:
        return result

    out = processor(call.name, result, call)
    if inspect.isawaitable(out):
        out = await out

    if isinstance(out, FunctionResult):
        return out
    return result
