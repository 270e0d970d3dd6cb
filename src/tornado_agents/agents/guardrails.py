from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from tornado_agents.core.errors import GuardrailTripwireError


@dataclass(frozen=True, slots=True)
class GuardrailOutput:
    output_info: Any = None
    tripwire_triggered: bool = False


InputGuardrail = Callable[[str], Union[GuardrailOutput, Awaitable[GuardrailOutput]]]


async def run_input_guardrail(guardrail: InputGuardrail | None, text: str) -> GuardrailOutput | None:
    """Run the guardrail on the user input; raise if its tripwire fires."""

    if guardrail is None:
        return None

    out = guardrail(text)
    if inspect.isawaitable(out):
        out = await out
    if not isinstance(out, GuardrailOutput):
        raise TypeError(f"input guardrail must return GuardrailOutput, got {type(out).__name__}")

    if out.tripwire_triggered:
        raise GuardrailTripwireError(out.output_info)
    return out
