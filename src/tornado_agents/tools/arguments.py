"""Tool-call argument normalization.

Models frequently "forget" arguments for zero-parameter tools: they omit the
field, send an empty or blank string, or send the literal `null`,
`undefined` or `[]`. All of those collapse to `{}` here. Anything else is
passed through untouched; proving it is valid JSON is the caller's job.
"""

from __future__ import annotations

import json
from typing import Any

from tornado_agents.core.errors import MalformedArgumentsError

EMPTY_ARGUMENTS = "{}"

_NO_ARGUMENT_TOKENS = frozenset({"null", "undefined", "[]"})


def normalize_arguments(raw: str | None) -> str:
    """Return JSON object text for a raw argument string. Never raises."""

    if raw is None or not raw.strip():
        return EMPTY_ARGUMENTS

    if raw.strip() in _NO_ARGUMENT_TOKENS:
        return EMPTY_ARGUMENTS

    return raw


def parse_arguments_object(tool_name: str, raw: str | None) -> dict[str, Any]:
    """Normalize and decode arguments into a string-keyed mapping.

    Raises MalformedArgumentsError when the normalized text is not valid JSON
    or does not decode to a JSON object.
    """

    normalized = normalize_arguments(raw)
    try:
        parsed = json.loads(normalized)
    except json.JSONDecodeError as e:
        raise MalformedArgumentsError(tool_name, raw, reason=str(e)) from e

    if not isinstance(parsed, dict):
        raise MalformedArgumentsError(tool_name, raw, reason=f"expected a JSON object, got {type(parsed).__name__}")

    return parsed
