from __future__ import annotations

from pathlib import Path

import pytest

from tornado_agents.core.config import load_config
from tornado_agents.core.errors import ConfigError
from tornado_agents.mcp_client.types import McpServerConfig


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "cfg.yaml"
    p.write_text(text.lstrip(), encoding="utf-8")
    return p


def test_mcp_enabled_requires_servers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")

    p = _write(
        tmp_path,
        """
mcp:
  enabled: true
""",
    )

    with pytest.raises(ConfigError) as ei:
        load_config(p)

    assert "mcp.servers" in str(ei.value)


def test_mcp_disabled_allows_empty_servers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")

    p = _write(
        tmp_path,
        """
mcp:
  enabled: false
""",
    )

    cfg = load_config(p)
    assert cfg.mcp.enabled is False
    assert cfg.mcp.servers == {}


def test_stdio_server_requires_command(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")

    p = _write(
        tmp_path,
        """
mcp:
  enabled: true
  servers:
    fs:
      transport: stdio
      args: ["-y", "server"]
""",
    )

    with pytest.raises(ConfigError) as ei:
        load_config(p)

    assert ei.value.path == "mcp.servers.fs.command"


def test_http_server_requires_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")

    p = _write(
        tmp_path,
        """
mcp:
  enabled: true
  servers:
    remote:
      transport: streamable_http
""",
    )

    with pytest.raises(ConfigError) as ei:
        load_config(p)

    assert ei.value.path == "mcp.servers.remote.url"


def test_unknown_transport_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")

    p = _write(
        tmp_path,
        """
mcp:
  enabled: true
  servers:
    ws:
      transport: websocket
      url: ws://localhost
""",
    )

    with pytest.raises(ConfigError) as ei:
        load_config(p)

    assert ei.value.path == "mcp.servers.ws.transport"


def test_server_config_splits_local_keys() -> None:
    cfg = McpServerConfig.from_dict(
        "remote",
        {"transport": "http", "url": "http://localhost:8000/mcp", "allowed_tools": ["search"], "timeout_s": 5},
    )

    assert cfg.server_key == "remote"
    assert cfg.connection == {"transport": "streamable_http", "url": "http://localhost:8000/mcp"}
    assert cfg.allowed_tools == ["search"]
    assert cfg.timeout_s == 5.0
