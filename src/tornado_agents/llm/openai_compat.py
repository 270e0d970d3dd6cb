"""OpenAI-compatible chat model adapter.

Any endpoint that speaks the Chat Completions API (OpenAI, Azure-style
proxies, vLLM, Ollama, DashScope compat mode, ...) is reached through
`openai.AsyncOpenAI` with a custom `base_url`.
"""

from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from tornado_agents.core.config import ModelConfig
from tornado_agents.core.types import FunctionCall
from tornado_agents.observability.ids import new_call_id
from tornado_agents.observability.logging import get_logger

from .base import DeltaHandler, ModelTurn, emit_delta
from .tool_call_accumulator import ToolCallAccumulator


class OpenAICompatChatModel:
    def __init__(self, cfg: ModelConfig, *, client: AsyncOpenAI | None = None) -> None:
        self._cfg = cfg
        self._client = client or AsyncOpenAI(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout=cfg.timeout_s,
            max_retries=cfg.max_retries,
        )
        self._log = get_logger("tornado_agents.llm")

    @property
    def model(self) -> str:
        return self._cfg.model

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        tool_choice: str | dict[str, Any] | None,
        response_format: dict[str, Any] | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self._cfg.model, "messages": messages}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = tool_choice or "auto"
        if response_format is not None:
            kwargs["response_format"] = response_format
        if self._cfg.temperature is not None:
            kwargs["temperature"] = self._cfg.temperature
        return kwargs

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        response_format: dict[str, Any] | None = None,
        stream: bool = False,
        on_delta: DeltaHandler | None = None,
    ) -> ModelTurn:
        kwargs = self._request_kwargs(messages, tools, tool_choice, response_format)
        if stream:
            turn = await self._complete_streaming(kwargs, on_delta)
        else:
            turn = await self._complete_once(kwargs)

        self._log.info(
            "chat_completion_done",
            model=self._cfg.model,
            stream=stream,
            text_len=len(turn.text),
            tool_calls=len(turn.tool_calls),
            finish_reason=turn.finish_reason,
        )
        return turn

    async def _complete_once(self, kwargs: dict[str, Any]) -> ModelTurn:
        resp = await self._client.chat.completions.create(**kwargs)
        if not resp.choices:
            return ModelTurn()

        choice = resp.choices[0]
        msg = choice.message
        calls: list[FunctionCall] = []
        for tc in msg.tool_calls or []:
            fn = getattr(tc, "function", None)
            name = getattr(fn, "name", None)
            if not name:
                continue
            calls.append(
                FunctionCall(
                    id=getattr(tc, "id", None) or new_call_id(),
                    name=name,
                    arguments=getattr(fn, "arguments", None),
                    index=len(calls),
                )
            )

        return ModelTurn(text=msg.content or "", tool_calls=calls, finish_reason=choice.finish_reason)

    async def _complete_streaming(self, kwargs: dict[str, Any], on_delta: DeltaHandler | None) -> ModelTurn:
        acc = ToolCallAccumulator()
        text_parts: list[str] = []
        finish_reason: str | None = None

        stream_iter = await self._client.chat.completions.create(**kwargs, stream=True)
        async for ev in stream_iter:
            choices = getattr(ev, "choices", None) or []
            if not choices:
                continue

            choice = choices[0]
            if getattr(choice, "finish_reason", None):
                finish_reason = choice.finish_reason

            delta = getattr(choice, "delta", None)
            if delta is None:
                continue

            content = getattr(delta, "content", None)
            if isinstance(content, str) and content:
                text_parts.append(content)
                await emit_delta(on_delta, content)

            delta_tool_calls = getattr(delta, "tool_calls", None)
            if delta_tool_calls:
                acc.add_delta(list(delta_tool_calls))

        return ModelTurn(text="".join(text_parts), tool_calls=acc.finalize(), finish_reason=finish_reason)
