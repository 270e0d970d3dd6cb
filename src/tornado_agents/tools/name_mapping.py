from __future__ import annotations

import re


_TOOL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def to_model_tool_name(name: str) -> str:
    """Validate and return a model-facing tool name.

    Function-calling APIs accept letters, digits, underscore and hyphen, up to
    64 characters.
    """

    if not isinstance(name, str) or not name:
        raise ValueError("name must be a non-empty string")
    if not _TOOL_NAME_RE.fullmatch(name):
        raise ValueError(f"tool name is not function-calling compatible: {name!r}")
    return name


def sanitize_tool_name(name: str) -> str:
    """Best-effort conversion of an arbitrary label (agent name, MCP tool name) into a valid tool name."""

    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", str(name or "")).strip("_")
    if not cleaned:
        cleaned = "tool"
    return cleaned[:64]
