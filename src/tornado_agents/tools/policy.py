"""Which tool calls may run.

Rules, checked in this order for every call on both dispatch paths:
- `tools.enabled=false` rejects every call.
- A non-empty `tools.whitelist` rejects names it does not list.
- `tools.rate_limit` maps a tool name to calls per second; values <= 0 are
  ignored.

A rejection is not an error of the run: the ToolRunner answers the call with
a failed result carrying `error_type`.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Mapping

from tornado_agents.core.config import ToolsConfig

Clock = Callable[[], float]


class PolicyError(RuntimeError):
    error_type = "policy"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ToolDisabledError(PolicyError):
    error_type = "tools_disabled"


class ToolNotAllowedError(PolicyError):
    error_type = "not_allowed"


class ToolRateLimitedError(PolicyError):
    error_type = "rate_limited"


class RateLimiter:
    """Admits one call per `1 / calls_per_second` seconds."""

    def __init__(self, tool_name: str, calls_per_second: float, *, clock: Clock = time.monotonic) -> None:
        if calls_per_second <= 0:
            raise ValueError(f"calls_per_second must be > 0 for {tool_name!r}")
        self.tool_name = tool_name
        self._interval_s = 1.0 / calls_per_second
        self._clock = clock
        self._earliest = float("-inf")
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            now = self._clock()
            wait_s = self._earliest - now
            if wait_s > 0:
                raise ToolRateLimitedError(f"{self.tool_name} is rate limited; retry in {wait_s:.2f}s")
            self._earliest = now + self._interval_s


class ToolPolicy:
    def __init__(
        self,
        *,
        enabled: bool = True,
        whitelist: Iterable[str] | None = None,
        rate_limit: Mapping[str, float] | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._enabled = bool(enabled)
        self._allowed = frozenset(name for name in (whitelist or ()) if name)
        self._limiters = {
            name: RateLimiter(name, float(cps), clock=clock)
            for name, cps in (rate_limit or {}).items()
            if name and float(cps) > 0
        }

    @classmethod
    def from_config(cls, cfg: ToolsConfig) -> "ToolPolicy":
        return cls(enabled=cfg.enabled, whitelist=cfg.whitelist, rate_limit=cfg.rate_limit)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def check(self, tool_name: str) -> None:
        """Raise a PolicyError subclass when `tool_name` may not run now."""

        if not self._enabled:
            raise ToolDisabledError("tool calls are disabled (tools.enabled=false)")
        if self._allowed and tool_name not in self._allowed:
            raise ToolNotAllowedError(f"{tool_name} is not in tools.whitelist")

        limiter = self._limiters.get(tool_name)
        if limiter is not None:
            limiter.acquire()
