from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

# re-export for contract/tests
__all__ = [
    "AgentSettings",
    "AppConfig",
    "ConfigError",
    "LoggingConfig",
    "McpConfig",
    "ModelConfig",
    "ToolsConfig",
    "load_config",
    "parse_config",
]


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_HTTP_TRANSPORTS = {"streamable_http", "http", "sse"}


def _expand_env_in_str(value: str, *, path: str) -> str:
    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in os.environ or os.environ[key] == "":
            raise ConfigError(f"environment variable {key!r} is not set", path=path)
        return os.environ[key]

    return _ENV_PATTERN.sub(repl, value)


def _expand_env(obj: Any, *, path: str) -> Any:
    if isinstance(obj, str):
        return _expand_env_in_str(obj, path=path)
    if isinstance(obj, list):
        return [_expand_env(v, path=path) for v in obj]
    if isinstance(obj, dict):
        return {k: _expand_env(v, path=f"{path}.{k}" if path else str(k)) for k, v in obj.items()}
    return obj


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("must be a mapping", path=key)
    return value


def _str_list(value: Any, *, path: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ConfigError("must be a list of strings", path=path)
    return list(value)


@dataclass(frozen=True)
class ModelConfig:
    api_key: str
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4.1-mini"
    timeout_s: float = 60.0
    max_retries: int = 3
    temperature: float | None = None


@dataclass(frozen=True)
class AgentSettings:
    name: str = "Assistant"
    instructions: str = "You are a helpful assistant."
    streaming: bool = True
    max_turns: int = 10


@dataclass(frozen=True)
class ToolsConfig:
    enabled: bool = True
    # 0 means unlimited.
    max_calls_per_turn: int = 0
    max_concurrency: int = 5
    whitelist: list[str] = field(default_factory=list)
    rate_limit: dict[str, float] = field(default_factory=dict)
    # Tool name -> whether a call needs caller approval before it runs.
    permission_required: dict[str, bool] = field(default_factory=dict)
    fail_on_resolution_error: bool = False


@dataclass(frozen=True)
class McpConfig:
    """Client-side MCP configuration.

    `servers` maps server_key -> connection dict in the format accepted by
    `langchain_mcp_adapters.client.MultiServerMCPClient`, plus two local keys:
    `allowed_tools` (list[str]) and `timeout_s` (float).
    """

    enabled: bool = False
    servers: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass(frozen=True)
class AppConfig:
    model: ModelConfig
    agent: AgentSettings = field(default_factory=AgentSettings)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    mcp: McpConfig = field(default_factory=McpConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> AppConfig:
    """Load a YAML config file, expanding ${ENV_VAR} references."""

    # Local dev: allow injecting secrets from .env (do not commit it).
    load_dotenv(override=False)

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError("config file does not exist", path=str(config_path))

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error: {e}", path=str(config_path)) from e

    if not isinstance(raw, dict):
        raise ConfigError("top level must be a YAML mapping", path=str(config_path))

    return parse_config(raw)


def parse_config(raw: dict[str, Any]) -> AppConfig:
    expanded = _expand_env(raw, path="")

    model_raw = _section(expanded, "model")
    api_key = model_raw.get("api_key")
    if api_key is None or api_key == "":
        api_key = os.getenv("OPENAI_API_KEY")
    if not isinstance(api_key, str) or not api_key.strip():
        raise ConfigError("must be a non-empty string (or set OPENAI_API_KEY)", path="model.api_key")

    temperature = model_raw.get("temperature")
    model = ModelConfig(
        api_key=api_key,
        base_url=str(model_raw.get("base_url", ModelConfig.base_url)),
        model=str(model_raw.get("model", ModelConfig.model)),
        timeout_s=float(model_raw.get("timeout_s", ModelConfig.timeout_s)),
        max_retries=int(model_raw.get("max_retries", ModelConfig.max_retries)),
        temperature=float(temperature) if temperature is not None else None,
    )

    agent_raw = _section(expanded, "agent")
    agent = AgentSettings(
        name=str(agent_raw.get("name", AgentSettings.name)),
        instructions=str(agent_raw.get("instructions", AgentSettings.instructions)),
        streaming=bool(agent_raw.get("streaming", AgentSettings.streaming)),
        max_turns=int(agent_raw.get("max_turns", AgentSettings.max_turns)),
    )
    if agent.max_turns < 1:
        raise ConfigError("must be an integer >= 1", path="agent.max_turns")

    tools_raw = _section(expanded, "tools")
    rate_limit = tools_raw.get("rate_limit") or {}
    if not isinstance(rate_limit, dict) or not all(isinstance(k, str) for k in rate_limit.keys()):
        raise ConfigError("must be a mapping of tool name to calls per second", path="tools.rate_limit")
    permission_required = tools_raw.get("permission_required") or {}
    if not isinstance(permission_required, dict) or not all(
        isinstance(k, str) and isinstance(v, bool) for k, v in permission_required.items()
    ):
        raise ConfigError("must be a mapping of tool name to true/false", path="tools.permission_required")
    tools = ToolsConfig(
        enabled=bool(tools_raw.get("enabled", ToolsConfig.enabled)),
        max_calls_per_turn=int(tools_raw.get("max_calls_per_turn", ToolsConfig.max_calls_per_turn)),
        max_concurrency=int(tools_raw.get("max_concurrency", ToolsConfig.max_concurrency)),
        whitelist=_str_list(tools_raw.get("whitelist"), path="tools.whitelist"),
        rate_limit={k: float(v) for k, v in rate_limit.items()},
        permission_required=dict(permission_required),
        fail_on_resolution_error=bool(
            tools_raw.get("fail_on_resolution_error", ToolsConfig.fail_on_resolution_error)
        ),
    )
    if tools.max_concurrency < 1:
        raise ConfigError("must be an integer >= 1", path="tools.max_concurrency")
    if tools.max_calls_per_turn < 0:
        raise ConfigError("must be an integer >= 0", path="tools.max_calls_per_turn")

    mcp = _parse_mcp(_section(expanded, "mcp"))

    logging_raw = _section(expanded, "logging")
    logging_cfg = LoggingConfig(
        level=str(logging_raw.get("level", LoggingConfig.level)).upper(),
        json=bool(logging_raw.get("json", LoggingConfig.json)),
    )

    return AppConfig(model=model, agent=agent, tools=tools, mcp=mcp, logging=logging_cfg)


def _parse_mcp(mcp_raw: dict[str, Any]) -> McpConfig:
    if not mcp_raw:
        return McpConfig()

    enabled = bool(mcp_raw.get("enabled", McpConfig.enabled))
    servers_raw = mcp_raw.get("servers", {})
    if servers_raw is None:
        servers_raw = {}
    if not isinstance(servers_raw, dict):
        raise ConfigError("must be a mapping of server name to config", path="mcp.servers")

    servers: dict[str, dict[str, Any]] = {}
    for k, v in servers_raw.items():
        if not isinstance(k, str) or not k:
            raise ConfigError("server name must be a non-empty string", path="mcp.servers")
        if not isinstance(v, dict):
            raise ConfigError("server config must be a mapping", path=f"mcp.servers.{k}")
        servers[k] = dict(v)

    if enabled and not servers:
        raise ConfigError("mcp.servers is required when MCP is enabled", path="mcp.servers")

    if enabled:
        for name, scfg in servers.items():
            t = str(scfg.get("transport", ""))
            if t != "stdio" and t not in _HTTP_TRANSPORTS:
                raise ConfigError(f"unsupported transport: {t!r}", path=f"mcp.servers.{name}.transport")
            if t == "stdio":
                cmd = scfg.get("command")
                if not isinstance(cmd, str) or not cmd.strip():
                    raise ConfigError("stdio transport needs a command", path=f"mcp.servers.{name}.command")
                _str_list(scfg.get("args", []), path=f"mcp.servers.{name}.args")
            else:
                u = scfg.get("url")
                if not isinstance(u, str) or not u.strip():
                    raise ConfigError("http transport needs a url", path=f"mcp.servers.{name}.url")
            _str_list(scfg.get("allowed_tools"), path=f"mcp.servers.{name}.allowed_tools")

    return McpConfig(enabled=enabled, servers=servers)
