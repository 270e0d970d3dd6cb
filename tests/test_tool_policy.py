from __future__ import annotations

import pytest

from tornado_agents.core.config import ToolsConfig
from tornado_agents.tools.policy import (
    RateLimiter,
    ToolDisabledError,
    ToolNotAllowedError,
    ToolPolicy,
    ToolRateLimitedError,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_empty_whitelist_allows_every_tool() -> None:
    policy = ToolPolicy(enabled=True, whitelist=[])
    policy.check("any_tool")


def test_disabled_rejects_every_tool() -> None:
    policy = ToolPolicy(enabled=False)
    with pytest.raises(ToolDisabledError) as ei:
        policy.check("any_tool")
    assert ei.value.error_type == "tools_disabled"


def test_whitelist_rejects_unlisted_names() -> None:
    policy = ToolPolicy(whitelist=["allowed"])

    policy.check("allowed")
    with pytest.raises(ToolNotAllowedError) as ei:
        policy.check("denied")
    assert ei.value.error_type == "not_allowed"
    assert "denied" in ei.value.message


def test_rate_limit_is_calls_per_second() -> None:
    clock = FakeClock()
    policy = ToolPolicy(rate_limit={"tool": 2}, clock=clock)

    policy.check("tool")
    with pytest.raises(ToolRateLimitedError) as ei:
        policy.check("tool")
    assert ei.value.error_type == "rate_limited"

    clock.now += 0.5
    policy.check("tool")

    # Other tools are not limited.
    policy.check("other")
    policy.check("other")


def test_non_positive_rate_limits_are_ignored() -> None:
    policy = ToolPolicy(rate_limit={"tool": 0, "neg": -1})
    policy.check("tool")
    policy.check("tool")
    policy.check("neg")


def test_rate_limiter_rejects_non_positive_rate() -> None:
    with pytest.raises(ValueError):
        RateLimiter("tool", 0)


def test_policy_from_config() -> None:
    policy = ToolPolicy.from_config(ToolsConfig(enabled=True, whitelist=["search"]))

    assert policy.enabled
    policy.check("search")
    with pytest.raises(ToolNotAllowedError):
        policy.check("other")
