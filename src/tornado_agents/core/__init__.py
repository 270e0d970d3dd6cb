"""Project core.

This package hosts the stable building blocks shared by tools, MCP and agents
(config, errors, contracts/types, and CLI entrypoints).
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
