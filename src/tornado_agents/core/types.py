from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

if TYPE_CHECKING:
    from tornado_agents.mcp_client.client import McpToolClient


class ToolNamespace(str, Enum):
    """Dispatch namespaces. A tool name lives in exactly one of them."""

    LOCAL = "local"
    MCP = "mcp"


@dataclass(frozen=True, slots=True)
class ToolParameter:
    name: str
    annotation: Any
    required: bool
    default: Any = None
    positional_only: bool = False


@dataclass(frozen=True, slots=True)
class LocalBinding:
    """A tool backed by an in-process callable.

    `arguments_model` is built once at registration time from the callable's
    signature and is what validates model-supplied arguments.
    """

    handler: Callable[..., Any]
    arguments_model: type[BaseModel]
    parameters: tuple[ToolParameter, ...] = ()
    accepts_var_kwargs: bool = False


@dataclass(frozen=True, slots=True)
class RemoteBinding:
    """A tool hosted by an MCP server."""

    client: McpToolClient
    remote_name: str
    server_key: str = ""


ToolBinding = LocalBinding | RemoteBinding


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    name: str
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "additionalProperties": False}
    )
    binding: ToolBinding | None = None


@dataclass(frozen=True, slots=True)
class FunctionCall:
    """A single model-requested tool invocation.

    `arguments` is the raw string the model sent and may be None, blank or
    malformed. `index` is the call's position within its model turn.
    """

    id: str
    name: str
    arguments: str | None = None
    index: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("FunctionCall.name must be a non-empty string")


@dataclass(slots=True)
class FunctionResult:
    """Outcome of one FunctionCall, keyed by `call_id`.

    `content` is what the model sees. It is never None: failed calls carry a
    JSON error payload.
    """

    call_id: str
    name: str
    content: str
    invocation_succeeded: bool = True
    error: dict[str, Any] | None = None
    remote_content: list[dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        if self.content is None:
            self.content = ""
