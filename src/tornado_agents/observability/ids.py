from __future__ import annotations

import secrets


def new_run_id() -> str:
    return secrets.token_hex(16)


def new_call_id() -> str:
    return f"call_{secrets.token_hex(12)}"
