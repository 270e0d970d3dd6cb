from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterable, Mapping

from pydantic import BaseModel

from tornado_agents.core.config import AppConfig, ToolsConfig
from tornado_agents.core.types import FunctionResult, ToolDescriptor, ToolNamespace
from tornado_agents.llm.base import ChatModel
from tornado_agents.observability import bind_context, get_logger, set_state
from tornado_agents.observability.ids import new_run_id
from tornado_agents.tools.function_tool import tool_from_callable
from tornado_agents.tools.mcp_gateway import McpGateway
from tornado_agents.tools.name_mapping import sanitize_tool_name
from tornado_agents.tools.policy import ToolPolicy
from tornado_agents.tools.postprocess import ToolResultProcessor
from tornado_agents.tools.registry import ToolRegistry
from tornado_agents.tools.runner import ToolApprover, ToolRunner

from .conversation import Conversation
from .events import CompletedEvent, RunEvent, RunEventHandler, RunEventStream, RunStartedEvent
from .guardrails import InputGuardrail, run_input_guardrail
from .runner import AgentRunner

ToolLike = ToolDescriptor | Callable[..., Any]


@dataclass(frozen=True, slots=True)
class RunResult:
    final_output: str
    conversation: Conversation
    tool_results: list[FunctionResult]
    turns: int
    run_id: str
    parsed: Any = None


def response_format_for(schema: type[BaseModel]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": sanitize_tool_name(schema.__name__),
            "schema": schema.model_json_schema(),
            "strict": False,
        },
    }


class TornadoAgent:
    """A tool-calling agent bound to one chat model.

    Tools are local callables (or other agents via `as_tool`) and MCP tools.
    Each run gets its own run id, event stream and conversation; one agent
    may serve several runs at once.
    """

    def __init__(
        self,
        model: ChatModel,
        name: str = "Assistant",
        instructions: str = "You are a helpful assistant",
        tools: Iterable[ToolLike] | None = None,
        mcp_tools: Iterable[ToolDescriptor] | None = None,
        tool_result_processor: ToolResultProcessor | None = None,
        streaming: bool = False,
        output_schema: type[BaseModel] | None = None,
        max_turns: int = 10,
        policy: ToolPolicy | None = None,
        input_guardrail: InputGuardrail | None = None,
        tools_config: ToolsConfig | None = None,
        tool_permission_required: Mapping[str, bool] | None = None,
        approve_tool: ToolApprover | None = None,
    ) -> None:
        self.model = model
        self.name = name
        self.instructions = instructions
        self.streaming = streaming
        self.max_turns = max_turns
        self.input_guardrail = input_guardrail
        self.tools_config = tools_config or ToolsConfig()
        self.output_schema: type[BaseModel] | None = None

        permission_required = {**self.tools_config.permission_required, **(tool_permission_required or {})}

        self.registry = ToolRegistry()
        self._tool_runner = ToolRunner(
            self.registry,
            policy=policy or ToolPolicy.from_config(self.tools_config),
            result_processor=tool_result_processor,
            permission_required=permission_required,
            approve=approve_tool,
        )
        self._log = get_logger("tornado_agents.agent")
        # run_id -> cancel token of each in-flight run.
        self._runs: dict[str, asyncio.Event] = {}

        if tools:
            self.add_tool(list(tools))
        if mcp_tools:
            self.registry.add_tools(mcp_tools, namespace=ToolNamespace.MCP)
        self.update_output_schema(output_schema)

    @classmethod
    def from_config(cls, cfg: AppConfig, model: ChatModel, **kwargs: Any) -> "TornadoAgent":
        kwargs.setdefault("name", cfg.agent.name)
        kwargs.setdefault("instructions", cfg.agent.instructions)
        kwargs.setdefault("streaming", cfg.agent.streaming)
        kwargs.setdefault("max_turns", cfg.agent.max_turns)
        kwargs.setdefault("tools_config", cfg.tools)
        return cls(model, **kwargs)

    @property
    def running(self) -> bool:
        return bool(self._runs)

    @property
    def active_runs(self) -> tuple[str, ...]:
        return tuple(self._runs)

    @property
    def cancelled(self) -> bool:
        """True while some in-flight run has a pending cancel request."""

        return any(token.is_set() for token in self._runs.values())

    @property
    def tool_permission_required(self) -> dict[str, bool]:
        return self._tool_runner.permission_required

    @property
    def tool_list(self) -> list[ToolDescriptor]:
        return self.registry.descriptors()

    def add_tool(self, tool: ToolLike | Iterable[ToolLike]) -> list[ToolDescriptor]:
        """Register a descriptor, a callable, or a list of either."""

        if isinstance(tool, ToolDescriptor) or callable(tool):
            return [self.registry.add_tool(tool)]
        return self.registry.add_tools(tool)

    async def add_mcp_tools(self, gateway: McpGateway) -> list[ToolDescriptor]:
        return await gateway.register(self.registry)

    def update_output_schema(self, schema: type[BaseModel] | None) -> None:
        if schema is not None and not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            raise TypeError("output_schema must be a pydantic BaseModel subclass")
        self.output_schema = schema

    def as_tool(self, name: str | None = None, description: str | None = None) -> ToolDescriptor:
        """Expose this agent as a local tool taking a single `input` string."""

        agent = self

        async def run_agent(input: str) -> str:
            result = await agent.run(input)
            return result.final_output

        return tool_from_callable(
            run_agent,
            name=sanitize_tool_name(name or self.name),
            description=description or self.instructions,
        )

    def cancel(self, run_id: str | None = None) -> list[str]:
        """Request cooperative cancellation of one in-flight run, or of all.

        Observed before each model turn and each tool round. Runs started
        afterwards are not affected. Returns the run ids that were signalled.
        The run id is on every event, starting with RunStartedEvent.
        """

        if run_id is None:
            targets = list(self._runs)
        else:
            targets = [run_id] if run_id in self._runs else []

        for rid in targets:
            self._runs[rid].set()
        self._log.info("run_cancel_requested", agent=self.name, run_ids=targets)
        return targets

    def _parse_output(self, text: str) -> Any:
        if self.output_schema is None:
            return None
        return self.output_schema.model_validate_json(text)

    async def run(
        self,
        input: str | None = None,
        *,
        conversation: Conversation | None = None,
        on_event: RunEventHandler | None = None,
    ) -> RunResult:
        run_id = new_run_id()
        bind_context(run_id=run_id, agent=self.name)
        set_state("START")

        conv = conversation if conversation is not None else Conversation()
        if self.instructions and conv.system_message is None:
            conv.set_system(self.instructions)

        if input:
            await run_input_guardrail(self.input_guardrail, input)
            conv.append_user(input)

        events = RunEventStream(run_id, on_event)
        cancel_token = asyncio.Event()
        runner = AgentRunner(
            model=self.model,
            tool_runner=self._tool_runner,
            tools_cfg=self.tools_config,
            max_turns=self.max_turns,
            streaming=self.streaming,
            response_format=response_format_for(self.output_schema) if self.output_schema else None,
            cancel_event=cancel_token,
        )

        t0 = time.perf_counter()
        self._runs[run_id] = cancel_token
        try:
            await events.emit(RunStartedEvent, agent_name=self.name, input=input or "")
            outcome = await runner.run(conv, events)
        finally:
            del self._runs[run_id]

        parsed = self._parse_output(outcome.final_output)
        await events.emit(CompletedEvent, final_output=outcome.final_output)

        set_state("DONE")
        self._log.info(
            "run_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            turns=outcome.turns,
            tool_results=len(outcome.tool_results),
            final_output_len=len(outcome.final_output),
        )

        return RunResult(
            final_output=outcome.final_output,
            conversation=conv,
            tool_results=outcome.tool_results,
            turns=outcome.turns,
            run_id=run_id,
            parsed=parsed,
        )

    async def run_stream(
        self,
        input: str | None = None,
        *,
        conversation: Conversation | None = None,
    ) -> AsyncIterator[RunEvent]:
        """Yield the run's events as they are emitted.

        If the run fails, its exception is raised here after the events
        produced before the failure. Leaving the loop early cancels the run.
        """

        queue: asyncio.Queue[RunEvent | None] = asyncio.Queue()

        async def handler(event: RunEvent) -> None:
            await queue.put(event)

        task = asyncio.create_task(self.run(input, conversation=conversation, on_event=handler))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            task.result()
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    def run_sync(self, input: str | None = None, **kwargs: Any) -> RunResult:
        return asyncio.run(self.run(input, **kwargs))
