from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from tornado_agents.agents.agent import TornadoAgent
from tornado_agents.agents.events import RunEvent, StreamingEvent, ToolCompletedEvent, ToolInvokedEvent
from tornado_agents.llm.base import ChatModel, ModelTurn
from tornado_agents.llm.fake import ScriptedChatModel
from tornado_agents.llm.openai_compat import OpenAICompatChatModel
from tornado_agents.mcp_client.errors import McpClientError
from tornado_agents.observability.logging import configure_logging, get_logger
from tornado_agents.tools.mcp_gateway import McpGateway
from tornado_agents.tools.tool_specs import tool_to_openai_spec

from .config import AppConfig, load_config


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tornado-agents", description="Run a tool-calling agent")
    p.add_argument("--config", default="configs/agent.yaml", help="YAML config path")
    p.add_argument("--prompt", default="Hello!", help="user input for the run")
    p.add_argument("--log-level", default=None, help="overrides logging.level from the config")
    p.add_argument("--list-tools", action="store_true", help="print the tools exposed to the model and exit")
    p.add_argument("--fake", action="store_true", help="use an offline scripted model instead of the API")
    return p


def _fake_model() -> ChatModel:
    def echo(messages: list[dict[str, Any]]) -> ModelTurn:
        last_user = next((m.get("content") for m in reversed(messages) if m.get("role") == "user"), "")
        return ModelTurn(text=f"(fake) {last_user}", finish_reason="stop")

    return ScriptedChatModel(default=echo)


def _print_event(event: RunEvent) -> None:
    if isinstance(event, StreamingEvent):
        sys.stdout.write(event.delta)
        sys.stdout.flush()
    elif isinstance(event, ToolInvokedEvent):
        sys.stderr.write(f"\n[tool] {event.call.name}({event.call.arguments or ''})\n")
    elif isinstance(event, ToolCompletedEvent):
        status = "ok" if event.result.invocation_succeeded else "failed"
        sys.stderr.write(f"[tool] {event.call.name} -> {status}\n")


async def _run(cfg: AppConfig, args: argparse.Namespace) -> int:
    log = get_logger("tornado_agents.cli")
    model = _fake_model() if args.fake else OpenAICompatChatModel(cfg.model)
    agent = TornadoAgent.from_config(cfg, model)

    if cfg.mcp.enabled:
        try:
            loaded = await agent.add_mcp_tools(McpGateway(cfg.mcp.servers))
            log.info("mcp_tools_registered", tools=len(loaded))
        except McpClientError as e:
            # Chat-only when MCP servers are unreachable.
            log.warning("mcp_load_failed", error_type=e.error_type, error=e.message)

    if args.list_tools:
        specs = [tool_to_openai_spec(d) for d in agent.tool_list]
        print(json.dumps(specs, ensure_ascii=False, indent=2))
        return 0

    result = await agent.run(args.prompt, on_event=_print_event)
    if agent.streaming:
        sys.stdout.write("\n")
    else:
        print(result.final_output)

    log.info("cli_run_output", run_id=result.run_id, turns=result.turns, tool_results=len(result.tool_results))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # Offline stub: allow running without a real key.
    if args.fake and not os.getenv("OPENAI_API_KEY"):
        os.environ["OPENAI_API_KEY"] = "sk-fake"

    cfg = load_config(args.config)
    configure_logging(level=(args.log_level or cfg.logging.level).upper(), json_output=cfg.logging.json)

    return asyncio.run(_run(cfg, args))
