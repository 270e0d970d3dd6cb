from __future__ import annotations

import asyncio
import operator
import time
from dataclasses import dataclass
from typing import Annotated, Any, cast

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from tornado_agents.core.config import ToolsConfig
from tornado_agents.core.errors import (
    MalformedArgumentsError,
    MaxTurnsExceededError,
    RunCancelledError,
    ToolNotFoundError,
)
from tornado_agents.core.types import FunctionCall, FunctionResult
from tornado_agents.llm.base import ChatModel
from tornado_agents.observability import add_error, get_logger, set_state, set_turn
from tornado_agents.tools.result_codec import failure_result
from tornado_agents.tools.runner import ToolRunner
from tornado_agents.tools.tool_specs import get_openai_tool_specs

from .conversation import Conversation
from .events import RunEventStream, StreamingEvent, ToolCompletedEvent, ToolInvokedEvent


class AgentState(TypedDict, total=False):
    turn: int

    # Calls requested by the latest model turn, in request order.
    pending_calls: list[FunctionCall]

    # Accumulated across tool rounds.
    tool_results: Annotated[list[FunctionResult], operator.add]

    final_output: str


@dataclass(frozen=True, slots=True)
class RunOutcome:
    final_output: str
    tool_results: list[FunctionResult]
    turns: int


class AgentRunner:
    """LangGraph-based model -> tools -> model loop for one agent.

    The conversation and the event stream live outside the graph state; the
    graph only carries turn bookkeeping and results.
    """

    def __init__(
        self,
        *,
        model: ChatModel,
        tool_runner: ToolRunner,
        tools_cfg: ToolsConfig,
        max_turns: int,
        streaming: bool = False,
        response_format: dict[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._model = model
        self._tool_runner = tool_runner
        self._tools_cfg = tools_cfg
        self._max_turns = max(1, int(max_turns))
        self._streaming = streaming
        self._response_format = response_format
        self._cancel_event = cancel_event if cancel_event is not None else asyncio.Event()
        self._log = get_logger("tornado_agents.agent")

    async def run(self, conversation: Conversation, events: RunEventStream) -> RunOutcome:
        graph = self._build_graph(conversation, events)
        out_state = cast(
            AgentState,
            await graph.ainvoke(
                {"turn": 0, "pending_calls": [], "tool_results": [], "final_output": ""},
                config={"recursion_limit": self._max_turns * 2 + 5},
            ),
        )
        return RunOutcome(
            final_output=str(out_state.get("final_output", "")),
            tool_results=list(out_state.get("tool_results", [])),
            turns=int(out_state.get("turn", 0)),
        )

    def _check_cancelled(self, run_id: str) -> None:
        if self._cancel_event.is_set():
            raise RunCancelledError(run_id)

    async def _dispatch(self, call: FunctionCall) -> FunctionResult:
        try:
            return await self._tool_runner.invoke(call)
        except (ToolNotFoundError, MalformedArgumentsError) as e:
            if self._tools_cfg.fail_on_resolution_error:
                raise
            error_type = "not_found" if isinstance(e, ToolNotFoundError) else "malformed_arguments"
            add_error(error_type)
            self._log.info("tool_unresolved", tool_call_id=call.id, tool=call.name, error_type=error_type)
            return failure_result(call, error_type=error_type, message=str(e))

    async def _run_round(self, calls: list[FunctionCall], max_concurrency: int) -> list[FunctionResult]:
        """Run one turn's calls concurrently and return results in request order.

        A call that raises cancels the calls still running. The round returns
        only after every task has finished, then re-raises the error of the
        first failed call in request order.
        """

        if not calls:
            return []

        sem = asyncio.Semaphore(max_concurrency)

        async def one(call: FunctionCall) -> FunctionResult:
            async with sem:
                return await self._dispatch(call)

        tasks = [asyncio.create_task(one(c)) for c in calls]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                raise cast(BaseException, task.exception())
        return [task.result() for task in tasks]

    def _build_graph(self, conversation: Conversation, events: RunEventStream):
        tools_cfg = self._tools_cfg
        max_calls = max(0, int(tools_cfg.max_calls_per_turn))
        max_conc = max(1, int(tools_cfg.max_concurrency))
        registry = self._tool_runner.registry

        async def model_node(state: AgentState) -> dict[str, Any]:
            self._check_cancelled(events.run_id)

            turn = int(state.get("turn", 0)) + 1
            if turn > self._max_turns:
                raise MaxTurnsExceededError(self._max_turns)
            set_turn(turn)
            set_state("MODEL")

            async def on_delta(delta: str) -> None:
                await events.emit(StreamingEvent, delta=delta, turn=turn)

            specs = get_openai_tool_specs(registry.descriptors())

            t0 = time.perf_counter()
            model_turn = await self._model.complete(
                conversation.messages,
                tools=specs or None,
                tool_choice="auto" if specs else None,
                response_format=self._response_format,
                stream=self._streaming,
                on_delta=on_delta if self._streaming else None,
            )
            conversation.append_assistant(model_turn.text, model_turn.tool_calls)

            self._log.info(
                "model_turn_done",
                latency_ms=round((time.perf_counter() - t0) * 1000, 2),
                tool_calls=len(model_turn.tool_calls),
                text_len=len(model_turn.text),
                finish_reason=model_turn.finish_reason,
            )

            return {
                "turn": turn,
                "pending_calls": list(model_turn.tool_calls),
                "final_output": model_turn.text,
            }

        def route(state: AgentState) -> str:
            return "tools" if state.get("pending_calls") else END

        async def tools_node(state: AgentState) -> dict[str, Any]:
            set_state("TOOLS")

            turn = int(state.get("turn", 0))
            calls: list[FunctionCall] = list(state.get("pending_calls", []))
            runnable = calls[:max_calls] if max_calls > 0 else calls
            skipped = calls[len(runnable) :]

            try:
                self._check_cancelled(events.run_id)
                for call in calls:
                    await events.emit(ToolInvokedEvent, call=call, turn=turn)
                results = await self._run_round(runnable, max_conc)
            except (Exception, asyncio.CancelledError) as e:
                # The assistant message already lists these calls; answer all of them.
                cancelled = isinstance(e, (RunCancelledError, asyncio.CancelledError))
                error_type = "cancelled" if cancelled else "aborted"
                for call in calls:
                    conversation.append_tool_result(
                        failure_result(call, error_type=error_type, message=f"tool round {error_type}: {type(e).__name__}")
                    )
                raise

            if skipped:
                add_error("tool_calls_truncated_by_max_calls_per_turn")
                self._log.warning("tool_calls_skipped", skipped=len(skipped), max_calls_per_turn=max_calls)
            for call in skipped:
                results.append(
                    failure_result(
                        call,
                        error_type="skipped",
                        message=f"skipped: more than {max_calls} tool calls in one turn",
                    )
                )

            # Every answer is in the conversation before any handler sees a ToolCompleted.
            for result in results:
                conversation.append_tool_result(result)
            for call, result in zip(calls, results):
                await events.emit(ToolCompletedEvent, call=call, result=result, turn=turn)

            return {"pending_calls": [], "tool_results": results}

        builder = StateGraph(AgentState)
        builder.add_node("model", model_node)
        builder.add_node("tools", tools_node)

        builder.add_edge(START, "model")
        builder.add_conditional_edges("model", route, ["tools", END])
        builder.add_edge("tools", "model")

        return builder.compile()
