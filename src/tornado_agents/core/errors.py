from __future__ import annotations


class TornadoError(Exception):
    """Base exception for this project."""


class ConfigError(TornadoError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ToolRegistrationError(TornadoError):
    """Raised when a tool cannot be registered (duplicate name, missing binding, bad signature)."""


class ToolNotFoundError(TornadoError):
    """A tool name did not resolve in the namespace it was dispatched through."""

    def __init__(self, name: str, *, namespace: str | None = None):
        super().__init__(f"I don't have a tool called {name}")
        self.name = name
        self.namespace = namespace


class MalformedArgumentsError(TornadoError):
    """Tool arguments are still not a JSON object after normalization."""

    def __init__(self, tool_name: str, raw_arguments: str | None, *, reason: str = ""):
        message = f"Function arguments for {tool_name} are not valid JSON: {raw_arguments}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
        self.reason = reason


class RunEventStreamClosedError(TornadoError):
    """An event was emitted after the run's Completed event."""


class MaxTurnsExceededError(TornadoError):
    def __init__(self, max_turns: int):
        super().__init__(f"agent run exceeded max_turns={max_turns}")
        self.max_turns = max_turns


class RunCancelledError(TornadoError):
    """The run observed a cooperative cancellation request."""

    def __init__(self, run_id: str):
        super().__init__(f"run {run_id} cancelled")
        self.run_id = run_id


class GuardrailTripwireError(TornadoError):
    def __init__(self, output_info: object):
        super().__init__(f"input guardrail tripwire triggered: {output_info}")
        self.output_info = output_info
