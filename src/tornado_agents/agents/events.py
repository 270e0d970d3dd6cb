"""Run events.

Every event of a run carries the run id and a 0-based sequence number that
strictly increases within the run. Order per run:

    RunStarted -> { Streaming* -> ToolInvoked* -> ToolCompleted* }* -> Completed

A cancelled or failed run emits no Completed event.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Union

from tornado_agents.core.errors import RunEventStreamClosedError
from tornado_agents.core.types import FunctionCall, FunctionResult


class RunEventType(str, Enum):
    RUN_STARTED = "run_started"
    STREAMING = "streaming"
    TOOL_INVOKED = "tool_invoked"
    TOOL_COMPLETED = "tool_completed"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class RunEvent:
    event_type: ClassVar[RunEventType]

    run_id: str
    sequence: int


@dataclass(frozen=True, slots=True)
class RunStartedEvent(RunEvent):
    event_type: ClassVar[RunEventType] = RunEventType.RUN_STARTED

    agent_name: str
    input: str


@dataclass(frozen=True, slots=True)
class StreamingEvent(RunEvent):
    """A text fragment of the current model turn."""

    event_type: ClassVar[RunEventType] = RunEventType.STREAMING

    delta: str
    turn: int


@dataclass(frozen=True, slots=True)
class ToolInvokedEvent(RunEvent):
    event_type: ClassVar[RunEventType] = RunEventType.TOOL_INVOKED

    call: FunctionCall
    turn: int


@dataclass(frozen=True, slots=True)
class ToolCompletedEvent(RunEvent):
    event_type: ClassVar[RunEventType] = RunEventType.TOOL_COMPLETED

    call: FunctionCall
    result: FunctionResult
    turn: int


@dataclass(frozen=True, slots=True)
class CompletedEvent(RunEvent):
    event_type: ClassVar[RunEventType] = RunEventType.COMPLETED

    final_output: str


RunEventHandler = Callable[[RunEvent], Union[None, Awaitable[None]]]


class RunEventStream:
    """Ordered, cooperative event delivery for one run.

    `emit` awaits the handler before returning, so a slow handler slows the
    run down and a failing handler fails it. Handler calls are serialized.
    """

    def __init__(self, run_id: str, handler: RunEventHandler | None = None) -> None:
        self._run_id = run_id
        self._handler = handler
        self._events: list[RunEvent] = []
        self._next_sequence = 0
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> tuple[RunEvent, ...]:
        return tuple(self._events)

    async def emit(self, event_cls: type[RunEvent], **fields: Any) -> RunEvent:
        async with self._lock:
            if self._closed:
                raise RunEventStreamClosedError(
                    f"run {self._run_id} already completed; cannot emit {event_cls.event_type.value}"
                )

            event = event_cls(run_id=self._run_id, sequence=self._next_sequence, **fields)
            self._next_sequence += 1
            self._events.append(event)
            if isinstance(event, CompletedEvent):
                self._closed = True

            if self._handler is not None:
                out = self._handler(event)
                if inspect.isawaitable(out):
                    await out

        return event
