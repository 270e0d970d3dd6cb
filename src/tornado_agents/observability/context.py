from __future__ import annotations

from contextvars import ContextVar


_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_agent: ContextVar[str | None] = ContextVar("agent", default=None)
_turn: ContextVar[int | None] = ContextVar("turn", default=None)
_state: ContextVar[str | None] = ContextVar("state", default=None)
_errors: ContextVar[list[str] | None] = ContextVar("errors", default=None)


def bind_context(*, run_id: str, agent: str) -> None:
    _run_id.set(run_id)
    _agent.set(agent)
    _turn.set(0)
    _errors.set([])


def set_turn(turn: int) -> None:
    _turn.set(turn)


def set_state(state: str) -> None:
    _state.set(state)


def add_error(message: str) -> None:
    errs = list(_errors.get() or [])
    errs.append(message)
    _errors.set(errs)


def snapshot() -> dict[str, object]:
    """Return a snapshot of current observability context for logging."""

    out: dict[str, object] = {}
    if (v := _run_id.get()) is not None:
        out["run_id"] = v
    if (v := _agent.get()) is not None:
        out["agent"] = v
    if (v := _turn.get()) is not None:
        out["turn"] = v
    if (v := _state.get()) is not None:
        out["state"] = v
    errors = _errors.get()
    if errors:
        out["errors"] = list(errors)
    return out
